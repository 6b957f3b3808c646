import logging

from sharetrack.app import start_api
from sharetrack.app.logging_setup import setup_logging
from sharetrack.config import Settings

if __name__ == "__main__":
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    logging.getLogger("sharetrack").info("Starting sharetrack API server...")
    start_api(settings)

from .application import create_app, start_api

__all__ = [
    "create_app",
    "start_api",
]

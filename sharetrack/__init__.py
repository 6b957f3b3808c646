"""Background share tasks with an in-memory progress ledger."""

__version__ = "1.0.0"

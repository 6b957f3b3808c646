from .ledger import InMemoryShareLedger, ShareLedger
from .models import ShareStatus, ShareTask
from .persistence import JsonSnapshotStore, SnapshotScheduler

__all__ = [
    "InMemoryShareLedger",
    "JsonSnapshotStore",
    "ShareLedger",
    "ShareStatus",
    "ShareTask",
    "SnapshotScheduler",
]

"""Share ledger: task history plus the set of tasks still in flight."""
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Protocol

from .models import ShareStatus, ShareTask, utcnow

_logger = logging.getLogger("sharetrack")


class ShareLedger(Protocol):
    """Store interface used by the task manager and the routes."""

    def create(self, task: ShareTask) -> ShareTask: ...
    def update(self, share_id: str, **changes: Any) -> Optional[ShareTask]: ...
    def complete(self, share_id: str) -> None: ...
    def query(self, share_id: str) -> Optional[ShareTask]: ...
    def list(self, limit: int) -> List[ShareTask]: ...
    def running(self) -> List[ShareTask]: ...
    def is_active(self, share_id: str) -> bool: ...
    def trim(self) -> int: ...
    def clear(self) -> int: ...
    def stats(self) -> Dict[str, Any]: ...
    def export(self) -> List[Dict[str, Any]]: ...
    def restore(self, records: List[Dict[str, Any]]) -> int: ...


class InMemoryShareLedger:
    """
    Process-local ledger.

    History is insertion ordered and capped at `history_cap` records, oldest
    evicted first. Active tasks are tracked separately, so a running task
    evicted from history is still returned by `query` and `running`.

    All access happens on the event loop thread, so there is no locking.
    """

    def __init__(self, history_cap: int = 100):
        if history_cap < 1:
            raise ValueError("history_cap must be at least 1")
        self.history_cap = history_cap
        self._history: "OrderedDict[str, ShareTask]" = OrderedDict()
        self._active: Dict[str, ShareTask] = {}
        self._created_total = 0

    def __len__(self) -> int:
        return len(self._history)

    def __contains__(self, share_id: object) -> bool:
        return share_id in self._history or share_id in self._active

    def create(self, task: ShareTask) -> ShareTask:
        if task.id in self:
            raise ValueError(f"Duplicate share id {task.id}")
        self._history[task.id] = task
        self._active[task.id] = task
        self._created_total += 1
        _logger.info("Created share share_id=%s requested=%d link=%s", task.id, task.requested, task.link)
        self.trim()
        return task

    def update(self, share_id: str, **changes: Any) -> Optional[ShareTask]:
        task = self.query(share_id)
        if task is None:
            _logger.warning("Attempted to update missing share share_id=%s", share_id)
            return None
        if task.is_terminal:
            _logger.warning(
                "Ignoring update to finished share share_id=%s status=%s changes=%s",
                share_id,
                task.status.value,
                sorted(changes),
            )
            return None

        unknown = set(changes) - set(ShareTask.model_fields)
        if unknown:
            raise ValueError(f"Unknown share fields: {sorted(unknown)}")

        if "status" in changes:
            status = ShareStatus(changes["status"])
            changes["status"] = status
            if status.is_terminal and changes.get("end_time") is None:
                changes["end_time"] = utcnow()

        for field, value in changes.items():
            setattr(task, field, value)

        if "status" in changes:
            _logger.info(
                "Updated share share_id=%s status=%s success=%d failed=%d",
                share_id,
                task.status.value,
                task.success,
                task.failed,
            )
        return task

    def complete(self, share_id: str) -> None:
        if self._active.pop(share_id, None) is not None:
            _logger.debug("Share no longer active share_id=%s", share_id)

    def query(self, share_id: str) -> Optional[ShareTask]:
        return self._active.get(share_id) or self._history.get(share_id)

    def list(self, limit: int) -> List[ShareTask]:
        if limit <= 0:
            return []
        return list(reversed(self._history.values()))[:limit]

    def running(self) -> List[ShareTask]:
        return list(self._active.values())

    def is_active(self, share_id: str) -> bool:
        return share_id in self._active

    def trim(self) -> int:
        evicted = 0
        while len(self._history) > self.history_cap:
            share_id, task = self._history.popitem(last=False)
            evicted += 1
            if share_id in self._active:
                _logger.warning("Evicted running share from history share_id=%s", share_id)
        if evicted:
            _logger.debug("Trimmed history evicted=%d remaining=%d", evicted, len(self._history))
        return evicted

    def clear(self) -> int:
        removed = [share_id for share_id in self._history if share_id not in self._active]
        for share_id in removed:
            del self._history[share_id]
        _logger.info("Cleared history removed=%d kept_active=%d", len(removed), len(self._history))
        return len(removed)

    def stats(self) -> Dict[str, Any]:
        tasks = {t.id: t for t in self._history.values()}
        tasks.update(self._active)
        by_status = {status.value: 0 for status in ShareStatus}
        for task in tasks.values():
            by_status[task.status.value] += 1
        return {
            "total_tasks": len(tasks),
            "active_tasks": len(self._active),
            "created_total": self._created_total,
            "by_status": by_status,
            "total_requested": sum(t.requested for t in tasks.values()),
            "total_success": sum(t.success for t in tasks.values()),
            "total_failed": sum(t.failed for t in tasks.values()),
        }

    def export(self) -> List[Dict[str, Any]]:
        return [task.model_dump(mode="json") for task in self._history.values()]

    def restore(self, records: List[Dict[str, Any]]) -> int:
        """Load snapshot records; tasks still processing when saved are marked failed."""
        restored = 0
        for record in records:
            try:
                task = ShareTask.model_validate(record)
            except ValueError:
                _logger.warning("Skipping malformed snapshot record id=%r", record.get("id") if isinstance(record, dict) else None)
                continue
            if task.id in self:
                continue
            if not task.is_terminal:
                task.status = ShareStatus.failed
                task.end_time = task.end_time or utcnow()
                task.error = "interrupted"
            self._history[task.id] = task
            restored += 1
        self.trim()
        _logger.info("Restored history records=%d", restored)
        return restored

"""Share task data model"""
import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ShareStatus(str, Enum):
    processing = "processing"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not ShareStatus.processing


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class ShareTask(BaseModel):
    """One share campaign, tracked from creation to a terminal status."""

    id: str
    link: str
    requested: int
    success: int = 0
    failed: int = 0
    status: ShareStatus = ShareStatus.processing
    start_time: datetime.datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime.datetime] = None
    error: Optional[str] = None
    # never serialized: not returned by the API and not written to snapshots
    token: Optional[str] = Field(default=None, exclude=True, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def progress(self) -> int:
        if self.requested <= 0:
            return 0
        return round(self.success / self.requested * 100)

    def summary(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        data["progress"] = self.progress
        return data

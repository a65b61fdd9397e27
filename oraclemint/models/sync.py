"""Bulk sync run models and the run state machine."""
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel

from .errors import InvalidSyncTransition


class SyncType(str, Enum):
    ORACLE_CARDS = "oracle_cards"
    RULINGS = "rulings"


class SyncStatus(str, Enum):
    DOWNLOADING = "DOWNLOADING"
    PROCESSING = "PROCESSING"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    def can_transition_to(self, target: "SyncStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: Dict[SyncStatus, FrozenSet[SyncStatus]] = {
    SyncStatus.DOWNLOADING: frozenset({SyncStatus.PROCESSING, SyncStatus.FAILED}),
    SyncStatus.PROCESSING: frozenset({SyncStatus.PAUSED, SyncStatus.COMPLETED, SyncStatus.FAILED}),
    SyncStatus.PAUSED: frozenset({SyncStatus.PROCESSING}),
    SyncStatus.COMPLETED: frozenset(),
    SyncStatus.FAILED: frozenset(),
}


def ensure_transition(current: SyncStatus, target: SyncStatus) -> None:
    """Raise if ``current -> target`` is not a legal run transition."""
    if not current.can_transition_to(target):
        raise InvalidSyncTransition(current.value, target.value)


class SyncRun(BaseModel):
    id: str
    type: SyncType
    status: SyncStatus
    processed: int = 0
    failed: int = 0
    total_records: Optional[int] = None
    last_oracle_id: Optional[str] = None
    blob_url: Optional[str] = None
    blob_size: Optional[int] = None
    error_message: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None

    def to_progress(self) -> "SyncProgress":
        return SyncProgress(
            sync_run_id=self.id,
            status=self.status,
            processed=self.processed,
            failed=self.failed,
            total_records=self.total_records,
            last_oracle_id=self.last_oracle_id,
        )


class SyncProgress(BaseModel):
    """Checkpoint view of a run exposed to operators."""

    sync_run_id: str
    status: SyncStatus
    processed: int
    failed: int = 0
    total_records: Optional[int] = None
    last_oracle_id: Optional[str] = None

"""Request models for API endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field

from oraclemint.constants import RESOLVE_MAX_NAMES
from .sync import SyncType


class ResolveRequest(BaseModel):
    """Request model for resolving card names."""
    names: List[str] = Field(
        ...,
        min_length=1,
        max_length=RESOLVE_MAX_NAMES,
        description="Card names to resolve, in order",
    )


class SyncRequest(BaseModel):
    """Request model for starting or resuming a bulk sync."""
    type: SyncType = Field(SyncType.ORACLE_CARDS, description="Bulk dataset to sync")
    force: bool = Field(False, description="Sync even if the local cache is current")
    resume_id: Optional[str] = Field(None, description="Paused sync run to resume")

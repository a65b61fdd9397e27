"""Response models for API endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field

from .cards import Card, CardCandidate
from .resolution import ResolveStatus
from .sync import SyncStatus


class ResolvedCard(BaseModel):
    """One resolved input name."""
    input: str = Field(..., description="Name as submitted")
    status: ResolveStatus = Field(..., description="How the name was matched")
    card: Optional[Card] = Field(None, description="Matched card with faces and rulings")
    matched_face: Optional[int] = Field(None, description="Face index for face matches")
    candidates: List[CardCandidate] = Field(default_factory=list, description="Candidates for ambiguous names")


class ResolveResponse(BaseModel):
    """Response model for card resolution endpoint."""
    resolved: List[ResolvedCard] = Field(..., description="Results in input order")


class AutocompleteResponse(BaseModel):
    """Response model for local autocomplete endpoint."""
    results: List[CardCandidate] = Field(default_factory=list, description="Matching cards")


class SuggestionResponse(BaseModel):
    """Response model for Scryfall autocomplete endpoint."""
    object: str = Field("list", description="Response object type")
    data: List[str] = Field(..., description="List of card name suggestions")


class SyncResponse(BaseModel):
    """Response model for sync trigger endpoint."""
    sync_run_id: str = Field(..., description="Sync run identifier")
    status: SyncStatus = Field(..., description="Run status after this invocation")
    processed: int = Field(..., description="Records committed so far")
    failed: int = Field(0, description="Records that failed to parse or upsert")
    total_records: Optional[int] = Field(None, description="Total records, known once complete")
    last_oracle_id: Optional[str] = Field(None, description="Resume checkpoint")
    message: str = Field(..., description="Human readable summary")

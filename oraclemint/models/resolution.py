"""Resolution result models."""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .cards import Card, CardCandidate


class ResolveStatus(str, Enum):
    EXACT = "exact"
    NORMALIZED = "normalized"
    FACE_MATCH = "face_match"
    REMOTE_MATCH = "remote_match"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"


class ResolveResult(BaseModel):
    """Outcome of resolving one input name.

    ``status`` is the tag callers branch on. ``card`` is set for exact,
    normalized, face_match and remote_match; ``matched_face`` only for
    face_match; ``candidates`` only for ambiguous.
    """

    status: ResolveStatus
    input: str
    card: Optional[Card] = None
    matched_face: Optional[int] = None
    candidates: List[CardCandidate] = Field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return self.card is not None

    @classmethod
    def exact(cls, input: str, card: Card) -> "ResolveResult":
        return cls(status=ResolveStatus.EXACT, input=input, card=card)

    @classmethod
    def normalized(cls, input: str, card: Card) -> "ResolveResult":
        return cls(status=ResolveStatus.NORMALIZED, input=input, card=card)

    @classmethod
    def face_match(cls, input: str, card: Card, face_index: int) -> "ResolveResult":
        return cls(status=ResolveStatus.FACE_MATCH, input=input, card=card, matched_face=face_index)

    @classmethod
    def remote_match(cls, input: str, card: Card) -> "ResolveResult":
        return cls(status=ResolveStatus.REMOTE_MATCH, input=input, card=card)

    @classmethod
    def ambiguous(cls, input: str, candidates: List[CardCandidate]) -> "ResolveResult":
        return cls(status=ResolveStatus.AMBIGUOUS, input=input, candidates=candidates)

    @classmethod
    def not_found(cls, input: str) -> "ResolveResult":
        return cls(status=ResolveStatus.NOT_FOUND, input=input)

"""Game-state card reference models.

A hidden hand is either fully known (your own hand, or a paper game with
everything revealed) or only partially known (a count plus whatever was
revealed). Callers branch on ``kind`` instead of guessing the shape.
"""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class CardReference(BaseModel):
    name: str = Field(..., min_length=1, description="Card name as entered")
    oracle_id: Optional[str] = None
    face_index: Optional[int] = Field(None, ge=0, le=1)


class FullyKnownHand(BaseModel):
    kind: Literal["fully_known"] = "fully_known"
    cards: List[CardReference] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.cards)

    @property
    def known(self) -> List[CardReference]:
        return self.cards


class PartiallyKnownHand(BaseModel):
    kind: Literal["partially_known"] = "partially_known"
    count: int = Field(..., ge=0)
    known: List[CardReference] = Field(default_factory=list)


Hand = Annotated[Union[FullyKnownHand, PartiallyKnownHand], Field(discriminator="kind")]


class PlayerZones(BaseModel):
    battlefield: List[CardReference] = Field(default_factory=list)
    hand: Hand = Field(default_factory=FullyKnownHand)
    graveyard: List[CardReference] = Field(default_factory=list)
    exile: List[CardReference] = Field(default_factory=list)
    command_zone: List[CardReference] = Field(default_factory=list)

    def card_names(self) -> List[str]:
        """All referenced card names in zone order, without duplicates."""
        refs = [*self.battlefield, *self.hand.known, *self.graveyard, *self.exile, *self.command_zone]
        return list(dict.fromkeys(ref.name for ref in refs))

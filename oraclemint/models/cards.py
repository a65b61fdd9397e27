"""Card-related Pydantic models."""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field

from oraclemint.utils.card_names import normalize_name


# ============ Scryfall payloads ============

class ScryfallCardFace(BaseModel):
    name: str
    mana_cost: Optional[str] = None
    type_line: Optional[str] = None
    oracle_text: Optional[str] = None
    power: Optional[str] = None
    toughness: Optional[str] = None
    loyalty: Optional[str] = None
    defense: Optional[str] = None


class ScryfallCard(BaseModel):
    id: str
    oracle_id: str
    name: str
    layout: Optional[str] = None
    mana_cost: Optional[str] = None
    cmc: Optional[float] = None
    type_line: Optional[str] = None
    oracle_text: Optional[str] = None
    colors: Optional[List[str]] = None
    color_identity: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    released_at: Optional[date] = None
    rulings_uri: Optional[str] = None
    card_faces: Optional[List[ScryfallCardFace]] = None


class ScryfallRuling(BaseModel):
    oracle_id: str
    source: str
    published_at: date
    comment: str


class BulkDataInfo(BaseModel):
    id: Optional[str] = None
    type: str
    updated_at: datetime
    name: Optional[str] = None
    description: Optional[str] = None
    size: Optional[int] = None
    download_uri: str
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None


class BulkDataManifest(BaseModel):
    object: str = "list"
    has_more: bool = False
    data: List[BulkDataInfo] = Field(default_factory=list)


# ============ Stored cards ============

class CardFace(BaseModel):
    face_index: int
    name: str
    mana_cost: Optional[str] = None
    type_line: Optional[str] = None
    oracle_text: Optional[str] = None
    power: Optional[str] = None
    toughness: Optional[str] = None
    loyalty: Optional[str] = None
    defense: Optional[str] = None

    @computed_field
    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)


class Ruling(BaseModel):
    oracle_id: str
    source: str
    published_at: date
    comment: str


class Card(BaseModel):
    """A canonical card keyed by its oracle id."""

    oracle_id: str
    scryfall_id: Optional[str] = None
    name: str
    layout: Optional[str] = None
    mana_cost: Optional[str] = None
    cmc: Optional[float] = None
    type_line: Optional[str] = None
    oracle_text: Optional[str] = None
    colors: List[str] = Field(default_factory=list)
    color_identity: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    released_at: Optional[date] = None
    faces: List[CardFace] = Field(default_factory=list)
    rulings: List[Ruling] = Field(default_factory=list)

    @computed_field
    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)

    @classmethod
    def from_scryfall(cls, card: ScryfallCard) -> "Card":
        """Map a Scryfall payload onto the stored card shape."""
        faces = [
            CardFace(face_index=index, **face.model_dump())
            for index, face in enumerate(card.card_faces or [])
        ]
        return cls(
            oracle_id=card.oracle_id,
            scryfall_id=card.id,
            name=card.name,
            layout=card.layout,
            mana_cost=card.mana_cost,
            cmc=card.cmc,
            type_line=card.type_line,
            oracle_text=card.oracle_text,
            colors=card.colors or [],
            color_identity=card.color_identity,
            keywords=card.keywords,
            released_at=card.released_at,
            faces=faces,
        )


class CardCandidate(BaseModel):
    """Lightweight match used for disambiguation and autocomplete."""

    name: str
    oracle_id: str
    type_line: Optional[str] = None

"""Aggregate exports for API models."""
from .cards import (
    BulkDataInfo,
    BulkDataManifest,
    Card,
    CardCandidate,
    CardFace,
    Ruling,
    ScryfallCard,
    ScryfallCardFace,
    ScryfallRuling,
)
from .errors import (
    BulkLineParseError,
    InvalidResumeState,
    InvalidSyncTransition,
    OracleMintError,
    RequestTimeout,
    ResolutionFailed,
    ScryfallError,
    SyncFailed,
    SyncRunNotFound,
)
from .game_state import CardReference, FullyKnownHand, Hand, PartiallyKnownHand, PlayerZones
from .resolution import ResolveResult, ResolveStatus
from .sync import SyncProgress, SyncRun, SyncStatus, SyncType
from .requests import ResolveRequest, SyncRequest
from .responses import (
    AutocompleteResponse,
    ResolvedCard,
    ResolveResponse,
    SuggestionResponse,
    SyncResponse,
)

__all__ = [
    "BulkDataInfo",
    "BulkDataManifest",
    "Card",
    "CardCandidate",
    "CardFace",
    "Ruling",
    "ScryfallCard",
    "ScryfallCardFace",
    "ScryfallRuling",
    "BulkLineParseError",
    "InvalidResumeState",
    "InvalidSyncTransition",
    "OracleMintError",
    "RequestTimeout",
    "ResolutionFailed",
    "ScryfallError",
    "SyncFailed",
    "SyncRunNotFound",
    "CardReference",
    "FullyKnownHand",
    "Hand",
    "PartiallyKnownHand",
    "PlayerZones",
    "ResolveResult",
    "ResolveStatus",
    "SyncProgress",
    "SyncRun",
    "SyncStatus",
    "SyncType",
    "ResolveRequest",
    "SyncRequest",
    "AutocompleteResponse",
    "ResolvedCard",
    "ResolveResponse",
    "SuggestionResponse",
    "SyncResponse",
]

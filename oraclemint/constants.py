"""Shared constants for the OracleMint card cache."""
from __future__ import annotations

from cachetools import TTLCache

from config import settings

API_VERSION = "1.0.0"

SCRYFALL_HEADERS = {
    "User-Agent": settings.scryfall_user_agent,
    "Accept": "application/json",
}

# Resolver cascade
PREFIX_MIN_LENGTH = 3
PREFIX_CANDIDATE_LIMIT = 10
AUTOCOMPLETE_MIN_QUERY_LENGTH = 2
AUTOCOMPLETE_DEFAULT_LIMIT = 10
AUTOCOMPLETE_MAX_LIMIT = 20
RESOLVE_MAX_NAMES = 100

FACE_SEPARATOR = "//"

suggestion_cache = TTLCache(maxsize=500, ttl=settings.cache_ttl)

__all__ = [
    "API_VERSION",
    "SCRYFALL_HEADERS",
    "PREFIX_MIN_LENGTH",
    "PREFIX_CANDIDATE_LIMIT",
    "AUTOCOMPLETE_MIN_QUERY_LENGTH",
    "AUTOCOMPLETE_DEFAULT_LIMIT",
    "AUTOCOMPLETE_MAX_LIMIT",
    "RESOLVE_MAX_NAMES",
    "FACE_SEPARATOR",
    "suggestion_cache",
]

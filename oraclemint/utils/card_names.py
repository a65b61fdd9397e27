"""Card name normalization utilities for consistent matching."""
import re
import unicodedata
from typing import List

from oraclemint.constants import FACE_SEPARATOR

_CURLY_APOSTROPHES_RE = re.compile(r"[‘’ʼ]")
_DISALLOWED_CHARS_RE = re.compile(r"[^\w\s'/-]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Normalize a card name for consistent database lookups.

    Handles accents, apostrophes, special characters, and whitespace:
    - Lowercase
    - Decompose accents (é -> e + combining mark) and drop the marks
    - Fold curly apostrophes to a straight apostrophe
    - Remove everything except letters, digits, whitespace, ' / and -
    - Collapse whitespace and trim

    The result is stable under re-application.
    """
    if not name:
        return ""

    decomposed = unicodedata.normalize("NFD", name.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _CURLY_APOSTROPHES_RE.sub("'", stripped)
    stripped = _DISALLOWED_CHARS_RE.sub("", stripped)
    return _WHITESPACE_RE.sub(" ", stripped).strip()


def parse_card_name_variants(name: str) -> List[str]:
    """Parse a card name into all possible matching variants.

    Handles split cards, DFCs and adventures:
    "Fire // Ice" -> ["fire // ice", "fire", "ice"]
    """
    normalized = normalize_name(name)
    variants = [normalized]

    if FACE_SEPARATOR in normalized:
        parts = (part.strip() for part in normalized.split(FACE_SEPARATOR))
        variants.extend(part for part in parts if part)

    # dict keeps first-seen order
    return list(dict.fromkeys(variants))


def extract_face_names(full_name: str) -> List[str]:
    """Extract individual face names from a full DFC/split card name."""
    if FACE_SEPARATOR not in full_name:
        return [full_name]
    return [part.strip() for part in full_name.split(FACE_SEPARATOR)]


def is_multi_face_card_name(name: str) -> bool:
    """Check if a name looks like a DFC/split card (contains //)."""
    return FACE_SEPARATOR in name


def combine_face_names(front_face: str, back_face: str) -> str:
    """Combine two face names into the standard DFC/split format."""
    return f"{front_face} {FACE_SEPARATOR} {back_face}"

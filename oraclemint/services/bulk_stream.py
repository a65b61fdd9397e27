"""Incremental parsing of Scryfall bulk files.

Bulk files are a JSON array written one element per line::

    [
    {"object":"card", ...},
    {"object":"card", ...}
    ]

They are far too large to hold in memory, so bytes are decoded as they
arrive and split into lines, keeping at most one unterminated line
between chunks.
"""
from __future__ import annotations

import codecs
import json
from typing import Any, Dict, Iterator, List, Optional

from oraclemint.models.errors import BulkLineParseError

ARRAY_BRACKETS = ("[", "]")


class BulkLineTokenizer:
    """Turn a stream of byte chunks into complete text lines."""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        """The trailing partial line carried into the next chunk."""
        return self._pending

    def feed(self, chunk: bytes) -> List[str]:
        """Decode ``chunk`` and return every line it completes."""
        text = self._decoder.decode(chunk)
        if "\n" not in text:
            self._pending += text
            return []

        lines = (self._pending + text).split("\n")
        self._pending = lines.pop()
        return lines

    def close(self) -> Iterator[str]:
        """Flush the decoder and yield the final unterminated line, if any."""
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        if tail:
            yield tail


def parse_bulk_line(line: str) -> Optional[Dict[str, Any]]:
    """Parse one line of a bulk file into a record.

    Returns ``None`` for blank lines and the array brackets. Raises
    ``BulkLineParseError`` when the line is not a JSON object.
    """
    clean = line.strip()
    if not clean or clean in ARRAY_BRACKETS:
        return None

    if clean.endswith(","):
        clean = clean[:-1]

    try:
        record = json.loads(clean)
    except json.JSONDecodeError as exc:
        raise BulkLineParseError(f"Malformed bulk line: {exc}", {"line": clean[:120]}) from exc

    if not isinstance(record, dict):
        raise BulkLineParseError("Bulk line is not a JSON object", {"line": clean[:120]})
    return record

"""Persistent card store shared by the resolver and the bulk sync.

``CardStore`` lists the operations the rest of the service relies on;
``SQLiteCardStore`` implements them on a single SQLite file. A card upsert
(card row plus its full face set) and a rulings replacement each commit
in one transaction.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from oraclemint.models.cards import Card, CardCandidate, CardFace, Ruling
from oraclemint.models.sync import SyncRun, SyncStatus, SyncType

logger = logging.getLogger(__name__)


class CardStore(ABC):
    """Lookup, scan, upsert and delete-by-parent over cards and sync runs."""

    # ============ Cards ============

    @abstractmethod
    async def get_card(self, oracle_id: str) -> Optional[Card]:
        """Card with faces and rulings, by oracle id."""

    @abstractmethod
    async def get_cards(self, oracle_ids: Sequence[str]) -> List[Card]:
        ...

    @abstractmethod
    async def get_card_by_normalized_name(self, normalized_name: str) -> Optional[Card]:
        ...

    @abstractmethod
    async def find_face(self, normalized_name: str) -> Optional[Tuple[str, int]]:
        """``(oracle_id, face_index)`` of a face with this normalized name."""

    @abstractmethod
    async def find_candidates_by_prefix(self, prefix: str, limit: int) -> List[CardCandidate]:
        ...

    @abstractmethod
    async def find_candidates_containing(
        self, text: str, limit: int, exclude_prefix: Optional[str] = None
    ) -> List[CardCandidate]:
        ...

    @abstractmethod
    async def card_exists(self, oracle_id: str) -> bool:
        ...

    @abstractmethod
    async def upsert_card(self, card: Card) -> None:
        """Create or overwrite a card and replace its whole face set."""

    @abstractmethod
    async def replace_rulings(self, oracle_id: str, rulings: Iterable[Ruling]) -> None:
        """Replace every ruling of one card as a single set."""

    @abstractmethod
    async def count_cards(self) -> int:
        ...

    # ============ Sync runs ============

    @abstractmethod
    async def create_sync_run(self, run: SyncRun) -> SyncRun:
        ...

    @abstractmethod
    async def get_sync_run(self, sync_run_id: str) -> Optional[SyncRun]:
        ...

    @abstractmethod
    async def save_sync_run(self, run: SyncRun) -> None:
        """Persist every mutable field of ``run``."""

    @abstractmethod
    async def get_latest_sync_run(
        self, sync_type: SyncType, status: Optional[SyncStatus] = None
    ) -> Optional[SyncRun]:
        """Most recent run of a type; completed runs order by completion time."""


_SCHEMA = """
CREATE TABLE IF NOT EXISTS cards (
    oracle_id TEXT PRIMARY KEY,
    scryfall_id TEXT,
    name TEXT NOT NULL,
    normalized_name TEXT NOT NULL,
    layout TEXT,
    mana_cost TEXT,
    cmc REAL,
    type_line TEXT,
    oracle_text TEXT,
    colors TEXT NOT NULL DEFAULT '[]',
    color_identity TEXT NOT NULL DEFAULT '[]',
    keywords TEXT NOT NULL DEFAULT '[]',
    released_at TEXT,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_cards_normalized_name ON cards(normalized_name);

CREATE TABLE IF NOT EXISTS card_faces (
    oracle_id TEXT NOT NULL REFERENCES cards(oracle_id) ON DELETE CASCADE,
    face_index INTEGER NOT NULL,
    name TEXT NOT NULL,
    normalized_name TEXT NOT NULL,
    mana_cost TEXT,
    type_line TEXT,
    oracle_text TEXT,
    power TEXT,
    toughness TEXT,
    loyalty TEXT,
    defense TEXT,
    PRIMARY KEY (oracle_id, face_index)
);
CREATE INDEX IF NOT EXISTS idx_card_faces_normalized_name ON card_faces(normalized_name);

CREATE TABLE IF NOT EXISTS rulings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    oracle_id TEXT NOT NULL,
    source TEXT NOT NULL,
    published_at TEXT NOT NULL,
    comment TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_rulings_oracle_id ON rulings(oracle_id);

CREATE TABLE IF NOT EXISTS sync_runs (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    status TEXT NOT NULL,
    processed INTEGER NOT NULL DEFAULT 0,
    failed INTEGER NOT NULL DEFAULT 0,
    total_records INTEGER,
    last_oracle_id TEXT,
    blob_url TEXT,
    blob_size INTEGER,
    error_message TEXT,
    started_at TEXT NOT NULL,
    completed_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_sync_runs_type_status ON sync_runs(type, status);
"""

_CANDIDATE_COLUMNS = "name, oracle_id, type_line"


class SQLiteCardStore(CardStore):
    """``CardStore`` backed by SQLite. Use ``":memory:"`` for a throwaway store.

    The ``async`` methods call ``sqlite3`` directly, so every statement runs
    on the event loop and blocks it while it executes. Statements are short
    indexed lookups and single-card transactions against a local file.
    """

    def __init__(self, database_path: str = ":memory:"):
        self.database_path = database_path
        if database_path != ":memory:":
            Path(database_path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(database_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(_SCHEMA)
        logger.info(f"Card store ready at {database_path}")

    def close(self) -> None:
        self._conn.close()

    # ============ Row mapping ============

    @staticmethod
    def _candidate(row: sqlite3.Row) -> CardCandidate:
        return CardCandidate(name=row["name"], oracle_id=row["oracle_id"], type_line=row["type_line"])

    def _load_card(self, row: sqlite3.Row) -> Card:
        oracle_id = row["oracle_id"]
        faces = self._conn.execute(
            "SELECT * FROM card_faces WHERE oracle_id = ? ORDER BY face_index", (oracle_id,)
        ).fetchall()
        rulings = self._conn.execute(
            "SELECT * FROM rulings WHERE oracle_id = ? ORDER BY published_at, id", (oracle_id,)
        ).fetchall()

        return Card(
            oracle_id=oracle_id,
            scryfall_id=row["scryfall_id"],
            name=row["name"],
            layout=row["layout"],
            mana_cost=row["mana_cost"],
            cmc=row["cmc"],
            type_line=row["type_line"],
            oracle_text=row["oracle_text"],
            colors=json.loads(row["colors"]),
            color_identity=json.loads(row["color_identity"]),
            keywords=json.loads(row["keywords"]),
            released_at=row["released_at"],
            faces=[
                CardFace(
                    face_index=face["face_index"],
                    name=face["name"],
                    mana_cost=face["mana_cost"],
                    type_line=face["type_line"],
                    oracle_text=face["oracle_text"],
                    power=face["power"],
                    toughness=face["toughness"],
                    loyalty=face["loyalty"],
                    defense=face["defense"],
                )
                for face in faces
            ],
            rulings=[
                Ruling(
                    oracle_id=oracle_id,
                    source=ruling["source"],
                    published_at=ruling["published_at"],
                    comment=ruling["comment"],
                )
                for ruling in rulings
            ],
        )

    @staticmethod
    def _sync_run(row: sqlite3.Row) -> SyncRun:
        return SyncRun(**dict(row))

    # ============ Cards ============

    async def get_card(self, oracle_id: str) -> Optional[Card]:
        row = self._conn.execute("SELECT * FROM cards WHERE oracle_id = ?", (oracle_id,)).fetchone()
        return self._load_card(row) if row else None

    async def get_cards(self, oracle_ids: Sequence[str]) -> List[Card]:
        if not oracle_ids:
            return []
        placeholders = ", ".join("?" for _ in oracle_ids)
        rows = self._conn.execute(
            f"SELECT * FROM cards WHERE oracle_id IN ({placeholders}) ORDER BY name", tuple(oracle_ids)
        ).fetchall()
        return [self._load_card(row) for row in rows]

    async def get_card_by_normalized_name(self, normalized_name: str) -> Optional[Card]:
        row = self._conn.execute(
            "SELECT * FROM cards WHERE normalized_name = ? ORDER BY name LIMIT 1", (normalized_name,)
        ).fetchone()
        return self._load_card(row) if row else None

    async def find_face(self, normalized_name: str) -> Optional[Tuple[str, int]]:
        row = self._conn.execute(
            "SELECT oracle_id, face_index FROM card_faces WHERE normalized_name = ? "
            "ORDER BY oracle_id, face_index LIMIT 1",
            (normalized_name,),
        ).fetchone()
        return (row["oracle_id"], row["face_index"]) if row else None

    async def find_candidates_by_prefix(self, prefix: str, limit: int) -> List[CardCandidate]:
        # substr comparison avoids LIKE wildcard escaping ('_' survives normalization)
        rows = self._conn.execute(
            f"SELECT {_CANDIDATE_COLUMNS} FROM cards "
            "WHERE substr(normalized_name, 1, ?) = ? ORDER BY name LIMIT ?",
            (len(prefix), prefix, limit),
        ).fetchall()
        return [self._candidate(row) for row in rows]

    async def find_candidates_containing(
        self, text: str, limit: int, exclude_prefix: Optional[str] = None
    ) -> List[CardCandidate]:
        sql = f"SELECT {_CANDIDATE_COLUMNS} FROM cards WHERE instr(normalized_name, ?) > 0"
        params: List[Any] = [text]
        if exclude_prefix:
            sql += " AND substr(normalized_name, 1, ?) != ?"
            params.extend([len(exclude_prefix), exclude_prefix])
        sql += " ORDER BY name LIMIT ?"
        params.append(limit)
        rows = self._conn.execute(sql, params).fetchall()
        return [self._candidate(row) for row in rows]

    async def card_exists(self, oracle_id: str) -> bool:
        row = self._conn.execute("SELECT 1 FROM cards WHERE oracle_id = ?", (oracle_id,)).fetchone()
        return row is not None

    async def upsert_card(self, card: Card) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO cards (
                    oracle_id, scryfall_id, name, normalized_name, layout, mana_cost, cmc,
                    type_line, oracle_text, colors, color_identity, keywords, released_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(oracle_id) DO UPDATE SET
                    scryfall_id = excluded.scryfall_id,
                    name = excluded.name,
                    normalized_name = excluded.normalized_name,
                    layout = excluded.layout,
                    mana_cost = excluded.mana_cost,
                    cmc = excluded.cmc,
                    type_line = excluded.type_line,
                    oracle_text = excluded.oracle_text,
                    colors = excluded.colors,
                    color_identity = excluded.color_identity,
                    keywords = excluded.keywords,
                    released_at = excluded.released_at,
                    updated_at = excluded.updated_at
                """,
                (
                    card.oracle_id,
                    card.scryfall_id,
                    card.name,
                    card.normalized_name,
                    card.layout,
                    card.mana_cost,
                    card.cmc,
                    card.type_line,
                    card.oracle_text,
                    json.dumps(card.colors),
                    json.dumps(card.color_identity),
                    json.dumps(card.keywords),
                    card.released_at.isoformat() if card.released_at else None,
                    now,
                ),
            )
            self._conn.execute("DELETE FROM card_faces WHERE oracle_id = ?", (card.oracle_id,))
            self._conn.executemany(
                """
                INSERT INTO card_faces (
                    oracle_id, face_index, name, normalized_name, mana_cost, type_line,
                    oracle_text, power, toughness, loyalty, defense
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        card.oracle_id,
                        index,
                        face.name,
                        face.normalized_name,
                        face.mana_cost,
                        face.type_line,
                        face.oracle_text,
                        face.power,
                        face.toughness,
                        face.loyalty,
                        face.defense,
                    )
                    # stored indexes are always 0..n-1 in payload order
                    for index, face in enumerate(sorted(card.faces, key=lambda f: f.face_index))
                ],
            )

    async def replace_rulings(self, oracle_id: str, rulings: Iterable[Ruling]) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM rulings WHERE oracle_id = ?", (oracle_id,))
            self._conn.executemany(
                "INSERT INTO rulings (oracle_id, source, published_at, comment) VALUES (?, ?, ?, ?)",
                [
                    (oracle_id, ruling.source, ruling.published_at.isoformat(), ruling.comment)
                    for ruling in rulings
                ],
            )

    async def count_cards(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM cards").fetchone()[0]

    # ============ Sync runs ============

    async def create_sync_run(self, run: SyncRun) -> SyncRun:
        with self._conn:
            self._conn.execute(
                "INSERT INTO sync_runs (id, type, status, processed, failed, started_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (run.id, run.type.value, run.status.value, run.processed, run.failed, run.started_at.isoformat()),
            )
        return run

    async def get_sync_run(self, sync_run_id: str) -> Optional[SyncRun]:
        row = self._conn.execute("SELECT * FROM sync_runs WHERE id = ?", (sync_run_id,)).fetchone()
        return self._sync_run(row) if row else None

    async def save_sync_run(self, run: SyncRun) -> None:
        with self._conn:
            self._conn.execute(
                """
                UPDATE sync_runs SET
                    status = ?, processed = ?, failed = ?, total_records = ?, last_oracle_id = ?,
                    blob_url = ?, blob_size = ?, error_message = ?, completed_at = ?
                WHERE id = ?
                """,
                (
                    run.status.value,
                    run.processed,
                    run.failed,
                    run.total_records,
                    run.last_oracle_id,
                    run.blob_url,
                    run.blob_size,
                    run.error_message,
                    run.completed_at.isoformat() if run.completed_at else None,
                    run.id,
                ),
            )

    async def get_latest_sync_run(
        self, sync_type: SyncType, status: Optional[SyncStatus] = None
    ) -> Optional[SyncRun]:
        if status is SyncStatus.COMPLETED:
            row = self._conn.execute(
                "SELECT * FROM sync_runs WHERE type = ? AND status = ? "
                "ORDER BY completed_at DESC, rowid DESC LIMIT 1",
                (sync_type.value, status.value),
            ).fetchone()
        elif status is not None:
            row = self._conn.execute(
                "SELECT * FROM sync_runs WHERE type = ? AND status = ? "
                "ORDER BY started_at DESC, rowid DESC LIMIT 1",
                (sync_type.value, status.value),
            ).fetchone()
        else:
            row = self._conn.execute(
                "SELECT * FROM sync_runs WHERE type = ? ORDER BY started_at DESC, rowid DESC LIMIT 1",
                (sync_type.value,),
            ).fetchone()
        return self._sync_run(row) if row else None


# Global singleton instance
_card_store: Optional[CardStore] = None


def get_card_store() -> CardStore:
    """Get the global card store, opening the configured database on first use."""
    global _card_store
    if _card_store is None:
        from config import settings

        _card_store = SQLiteCardStore(settings.database_path)
    return _card_store

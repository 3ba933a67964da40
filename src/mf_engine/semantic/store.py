"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from mf_engine.semantic.core import COMBINED_FIELD, EMBEDDING_FIELDS


@dataclass(frozen=True)
class EmbeddingRecord:
    """All stored vectors for one profile, written together."""

    profile_id: str
    vectors: Dict[str, Optional[List[float]]]
    hashes: Dict[str, str] = field(default_factory=dict)
    model: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def combined(self) -> Optional[List[float]]:
        return self.vectors.get(COMBINED_FIELD)

    def present_fields(self) -> List[str]:
        return [name for name in (*EMBEDDING_FIELDS, COMBINED_FIELD) if self.vectors.get(name) is not None]

    def to_status(self) -> Dict[str, object]:
        return {
            "profileId": self.profile_id,
            "fields": {name: self.vectors.get(name) is not None for name in (*EMBEDDING_FIELDS, COMBINED_FIELD)},
            "model": self.model,
            "updatedAt": self.updated_at,
        }


class EmbeddingStore(Protocol):
    async def upsert(self, record: EmbeddingRecord) -> None: ...

    async def get(self, profile_id: str) -> Optional[EmbeddingRecord]: ...

    async def get_combined_many(self, profile_ids: Iterable[str]) -> Dict[str, List[float]]: ...


class InMemoryEmbeddingStore:
    def __init__(self) -> None:
        self._records: Dict[str, EmbeddingRecord] = {}

    async def upsert(self, record: EmbeddingRecord) -> None:
        self._records[record.profile_id] = record

    async def get(self, profile_id: str) -> Optional[EmbeddingRecord]:
        return self._records.get(profile_id)

    async def get_combined_many(self, profile_ids: Iterable[str]) -> Dict[str, List[float]]:
        out: Dict[str, List[float]] = {}
        for profile_id in profile_ids:
            record = self._records.get(profile_id)
            if record is not None and record.combined is not None:
                out[profile_id] = record.combined
        return out

    def __len__(self) -> int:
        return len(self._records)


class SqliteEmbeddingStore:
    """One row per profile; vectors and hashes stored as JSON text."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        self._ensure_schema(conn)
        return conn

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            PRAGMA journal_mode=WAL;
            CREATE TABLE IF NOT EXISTS profile_embeddings (
                profile_id TEXT PRIMARY KEY,
                bio_json TEXT,
                turn_ons_json TEXT,
                turn_offs_json TEXT,
                combined_json TEXT,
                hashes_json TEXT NOT NULL,
                model TEXT,
                updated_at TEXT
            );
            """
        )

    def _upsert_sync(self, record: EmbeddingRecord) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO profile_embeddings(
                    profile_id, bio_json, turn_ons_json, turn_offs_json, combined_json,
                    hashes_json, model, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.profile_id,
                    _dump_vector(record.vectors.get("bio")),
                    _dump_vector(record.vectors.get("turn_ons")),
                    _dump_vector(record.vectors.get("turn_offs")),
                    _dump_vector(record.vectors.get(COMBINED_FIELD)),
                    json.dumps(record.hashes, sort_keys=True, separators=(",", ":")),
                    record.model,
                    record.updated_at,
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def _get_sync(self, profile_id: str) -> Optional[EmbeddingRecord]:
        conn = self._connect()
        try:
            row = conn.execute(
                """
                SELECT profile_id, bio_json, turn_ons_json, turn_offs_json, combined_json,
                       hashes_json, model, updated_at
                FROM profile_embeddings
                WHERE profile_id = ?
                LIMIT 1
                """,
                (profile_id,),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            return None
        return EmbeddingRecord(
            profile_id=row[0],
            vectors={
                "bio": _load_vector(row[1]),
                "turn_ons": _load_vector(row[2]),
                "turn_offs": _load_vector(row[3]),
                COMBINED_FIELD: _load_vector(row[4]),
            },
            hashes=json.loads(row[5]) if row[5] else {},
            model=row[6],
            updated_at=row[7],
        )

    def _get_combined_many_sync(self, profile_ids: List[str]) -> Dict[str, List[float]]:
        if not profile_ids:
            return {}
        conn = self._connect()
        out: Dict[str, List[float]] = {}
        try:
            # Chunked to stay under the SQLite host-parameter limit.
            for start in range(0, len(profile_ids), 500):
                chunk = profile_ids[start : start + 500]
                placeholders = ",".join("?" for _ in chunk)
                rows = conn.execute(
                    f"SELECT profile_id, combined_json FROM profile_embeddings WHERE profile_id IN ({placeholders})",
                    chunk,
                ).fetchall()
                for profile_id, combined_json in rows:
                    vector = _load_vector(combined_json)
                    if vector is not None:
                        out[profile_id] = vector
        finally:
            conn.close()
        return out

    async def upsert(self, record: EmbeddingRecord) -> None:
        await asyncio.to_thread(self._upsert_sync, record)

    async def get(self, profile_id: str) -> Optional[EmbeddingRecord]:
        return await asyncio.to_thread(self._get_sync, profile_id)

    async def get_combined_many(self, profile_ids: Iterable[str]) -> Dict[str, List[float]]:
        return await asyncio.to_thread(self._get_combined_many_sync, list(profile_ids))


def _dump_vector(vector: Optional[List[float]]) -> Optional[str]:
    if vector is None:
        return None
    return json.dumps(vector, separators=(",", ":"))


def _load_vector(raw: Optional[str]) -> Optional[List[float]]:
    if not raw:
        return None
    return [float(v) for v in json.loads(raw)]

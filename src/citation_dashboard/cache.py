"""Citation table cache: an injected key-value store, in memory or SQLite."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator, Protocol


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def cache_key(paper_doi: str, mode: str = "dual") -> str:
    """Key for one paper's table; each source mode keeps its own entry."""
    return f"citations_{mode}_{paper_doi}"


class CacheStore(Protocol):
    def get(self, key: str) -> dict[str, Any] | None: ...

    def set(self, key: str, value: dict[str, Any]) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryCache:
    """Process-local cache; entries live as long as the object."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def get(self, key: str) -> dict[str, Any] | None:
        raw = self._entries.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        self._entries[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)


# ── sqlite ─────────────────────────────────────────────────────────────────


def init_db(db_path: Path) -> None:
    """Initialise the cache database, creating the table if it doesn't exist."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.executescript(
            """
            PRAGMA journal_mode=WAL;

            CREATE TABLE IF NOT EXISTS cache_entries (
                key         TEXT PRIMARY KEY,
                value       TEXT NOT NULL,
                stored_at   TEXT NOT NULL
            );
            """
        )


@contextmanager
def get_conn(db_path: Path) -> Generator[sqlite3.Connection, None, None]:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


class SqliteCache:
    """Persistent cache; one row per key, no expiry."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        init_db(db_path)

    def get(self, key: str) -> dict[str, Any] | None:
        with get_conn(self.db_path) as conn:
            row = conn.execute(
                "SELECT value FROM cache_entries WHERE key=?", (key,)
            ).fetchone()
        return json.loads(row["value"]) if row else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        with get_conn(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO cache_entries (key, value, stored_at)
                VALUES (:key, :value, :stored_at)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value, stored_at=excluded.stored_at
                """,
                {"key": key, "value": json.dumps(value), "stored_at": _now()},
            )

    def delete(self, key: str) -> None:
        with get_conn(self.db_path) as conn:
            conn.execute("DELETE FROM cache_entries WHERE key=?", (key,))

    def stored_at(self, key: str) -> str | None:
        with get_conn(self.db_path) as conn:
            row = conn.execute(
                "SELECT stored_at FROM cache_entries WHERE key=?", (key,)
            ).fetchone()
        return row["stored_at"] if row else None

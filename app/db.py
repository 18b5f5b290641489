"""Async SQLite database layer.

Uses aiosqlite for non-blocking access.  Tables are created on first
startup via ``init_db()``.  ``SqliteKeyValueStore`` backs the token store.
"""

from __future__ import annotations

from typing import Optional

import aiosqlite

from app.config import get_settings
from core.errors import TokenPersistenceError

# Module-level connection (set during lifespan startup).
_db: aiosqlite.Connection | None = None

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv (
    key         TEXT    PRIMARY KEY,
    value       TEXT    NOT NULL,
    updated_at  TEXT    NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS notes (
    folder      TEXT    NOT NULL,
    note_id     TEXT    NOT NULL,
    content     TEXT    NOT NULL DEFAULT '',
    frontmatter TEXT    NOT NULL DEFAULT '{}',   -- JSON object
    created_at  TEXT    NOT NULL DEFAULT (datetime('now')),
    updated_at  TEXT    NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (folder, note_id)
);
"""


# ---------------------------------------------------------------------------
# Lifecycle helpers
# ---------------------------------------------------------------------------

async def init_db() -> aiosqlite.Connection:
    """Open (or create) the SQLite database and ensure schema exists."""
    global _db  # noqa: PLW0603
    settings = get_settings()
    db_path = settings.db_abs_path

    _db = await aiosqlite.connect(str(db_path))
    _db.row_factory = aiosqlite.Row  # type: ignore[assignment]
    await _db.executescript(_SCHEMA_SQL)
    await _db.commit()
    return _db


async def close_db() -> None:
    """Close the database connection."""
    global _db  # noqa: PLW0603
    if _db is not None:
        await _db.close()
        _db = None


def get_db() -> aiosqlite.Connection:
    """Return the current database connection (call after init)."""
    if _db is None:
        raise RuntimeError("Database not initialised — call init_db() first.")
    return _db


# ---------------------------------------------------------------------------
# Key-value store
# ---------------------------------------------------------------------------

class SqliteKeyValueStore:
    """String key-value pairs in the ``kv`` table."""

    async def get(self, key: str) -> Optional[str]:
        try:
            cursor = await get_db().execute("SELECT value FROM kv WHERE key = ?", (key,))
            row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise TokenPersistenceError(f"Could not read {key}: {exc}") from exc
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        db = get_db()
        try:
            await db.execute(
                """
                INSERT INTO kv (key, value) VALUES (?, ?)
                ON CONFLICT(key)
                DO UPDATE SET value      = excluded.value,
                              updated_at = datetime('now')
                """,
                (key, value),
            )
            await db.commit()
        except aiosqlite.Error as exc:
            raise TokenPersistenceError(f"Could not store {key}: {exc}") from exc

    async def delete(self, key: str) -> None:
        db = get_db()
        try:
            await db.execute("DELETE FROM kv WHERE key = ?", (key,))
            await db.commit()
        except aiosqlite.Error as exc:
            raise TokenPersistenceError(f"Could not delete {key}: {exc}") from exc

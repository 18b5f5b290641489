"""SQLite-backed note store for logged tracks and albums.

Notes are keyed by ``(folder, note_id)`` where ``note_id`` is the Spotify
track/album id.  Frontmatter is kept as a JSON object.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from app.db import get_db
from core.linker import as_wikilink
from core.models import FormattedAlbum, Note

logger = logging.getLogger(__name__)


class SqliteNoteStore:
    """Note collaborator used by the link resolver and the song logger."""

    async def note_exists(self, folder: str, note_id: str) -> bool:
        cursor = await get_db().execute(
            "SELECT 1 FROM notes WHERE folder = ? AND note_id = ?",
            (folder, note_id),
        )
        return await cursor.fetchone() is not None

    async def read_note(self, folder: str, note_id: str) -> Optional[Note]:
        cursor = await get_db().execute(
            "SELECT content, frontmatter FROM notes WHERE folder = ? AND note_id = ?",
            (folder, note_id),
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return Note(
            folder=folder,
            note_id=note_id,
            content=row[0],
            frontmatter=json.loads(row[1]),
        )

    async def write_note(
        self,
        folder: str,
        note_id: str,
        content: str,
        frontmatter: Dict[str, Any],
    ) -> Note:
        """Create or overwrite a note."""
        db = get_db()
        await db.execute(
            """
            INSERT INTO notes (folder, note_id, content, frontmatter)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(folder, note_id)
            DO UPDATE SET content     = excluded.content,
                          frontmatter = excluded.frontmatter,
                          updated_at  = datetime('now')
            """,
            (folder, note_id, content, json.dumps(frontmatter)),
        )
        await db.commit()
        logger.info("Wrote note %s%s", folder, note_id)
        return Note(folder=folder, note_id=note_id, content=content, frontmatter=frontmatter)

    async def append_album_reference(
        self, folder: str, track_id: str, album: FormattedAlbum
    ) -> None:
        """Add *album* to the track note's ``albums`` list (once)."""
        note = await self.read_note(folder, track_id)
        if note is None:
            return

        link = as_wikilink(album)
        albums = list(note.frontmatter.get("albums") or [])
        if link in albums:
            return
        albums.append(link)
        await self.write_note(
            folder,
            track_id,
            note.content,
            {**note.frontmatter, "albums": albums},
        )

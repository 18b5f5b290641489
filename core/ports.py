"""Collaborator interfaces consumed by the core.

The core never touches storage or the user directly; it talks to these.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from core.models import FormattedAlbum, FormattedTrack, Note


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class NoteStore(Protocol):
    async def note_exists(self, folder: str, note_id: str) -> bool: ...

    async def read_note(self, folder: str, note_id: str) -> Optional[Note]: ...

    async def write_note(
        self,
        folder: str,
        note_id: str,
        content: str,
        frontmatter: Dict[str, Any],
    ) -> Note: ...

    async def append_album_reference(
        self, folder: str, track_id: str, album: FormattedAlbum
    ) -> None: ...


class Prompt(Protocol):
    async def prompt_for_text(
        self, title: str, initial: FormattedTrack | FormattedAlbum
    ) -> Optional[str]:
        """Return the user's free text, or ``None`` if they cancelled."""
        ...

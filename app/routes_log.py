"""Logging routes: preview, history, search and note writes."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.song_log import FixedPrompt, SongLogger
from core.models import PlayingKind

router = APIRouter(tags=["log"])


class LogRequest(BaseModel):
    kind: PlayingKind = PlayingKind.TRACK
    thoughts: str | None = None


def _get_logger(request: Request) -> SongLogger:
    return request.app.state.song_logger


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@router.get("/now-playing")
async def now_playing(request: Request, kind: PlayingKind = PlayingKind.TRACK):
    """Formatted record of what is playing right now."""
    record = await _get_logger(request).preview_current(kind)
    return JSONResponse(record.model_dump())


@router.get("/recently-played")
async def recently_played(request: Request, limit: int | None = None):
    tracks = await _get_logger(request).recently_played(limit)
    return JSONResponse([t.model_dump() for t in tracks])


@router.get("/search")
async def search(request: Request, q: str = "", kind: PlayingKind = PlayingKind.TRACK):
    results = await _get_logger(request).search(q, kind)
    return JSONResponse([r.model_dump() for r in results])


@router.get("/notes/{note_id}")
async def read_note(request: Request, note_id: str):
    note = await _get_logger(request).read_note(note_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return JSONResponse(note.model_dump())


# ---------------------------------------------------------------------------
# POST /log — log the currently playing track or album
# ---------------------------------------------------------------------------

@router.post("/log")
async def log_current(request: Request, body: LogRequest):
    """Write the note; a missing ``thoughts`` field counts as a cancelled prompt."""
    note = await _get_logger(request).log_current(body.kind, FixedPrompt(body.thoughts))
    if note is None:
        return JSONResponse({"status": "cancelled"})
    return JSONResponse({"status": "logged", "note": note.model_dump()})

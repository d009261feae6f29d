"""Soundtrack routes."""
from __future__ import annotations

from litestar import post

from filmcore.musicgen import MusicRequest
from webui.backend.models import MusicGenerateRequest, MusicSuggestRequest, TaskAccepted
from webui.backend.session_manager import session_manager


@post("/api/projects/{session_id:str}/music/suggest")
async def suggest_music(session_id: str, data: MusicSuggestRequest) -> dict:
    studio = session_manager.require(session_id).studio
    request = await studio.suggest_music(data.lyric_language)
    return {"title": request.title, "tags": request.tags, "lyrics": request.lyrics}


@post("/api/projects/{session_id:str}/music")
async def generate_music(session_id: str, data: MusicGenerateRequest) -> TaskAccepted:
    session = session_manager.require(session_id)
    request = MusicRequest(title=data.title, tags=data.tags, lyrics=data.lyrics, instrumental=data.instrumental)
    task = session_manager.start(
        session, "music",
        lambda: session.studio.generate_music(request, api_key=data.api_key, base_url=data.base_url),
    )
    return TaskAccepted(session_id=session_id, task=task)

"""Shot routes: edit, image, end frame, video, insert/delete."""
from __future__ import annotations

from litestar import Response, delete, get, patch, post

from webui.backend.models import ShotPatch, TaskAccepted
from webui.backend.session_manager import session_manager

SHOT = "/api/projects/{session_id:str}/scenes/{scene_id:str}/shots/{shot_id:str}"


def _start(session_id: str, scene_id: str, shot_id: str, action: str, factory_of) -> TaskAccepted:
    session = session_manager.require(session_id)
    session.studio.require_shot(scene_id, shot_id)
    name = f"{action}:{shot_id}"
    session_manager.start(session, name, lambda: factory_of(session.studio)(scene_id, shot_id))
    return TaskAccepted(session_id=session_id, task=name)


@patch(SHOT)
async def patch_shot(session_id: str, scene_id: str, shot_id: str, data: ShotPatch) -> dict:
    studio = session_manager.require(session_id).studio
    shot = studio.update_shot(scene_id, shot_id, **data.model_dump(exclude_none=True))
    return shot.model_dump(mode="json")


@delete(SHOT)
async def delete_shot(session_id: str, scene_id: str, shot_id: str) -> None:
    session_manager.require(session_id).studio.remove_shot(scene_id, shot_id)


@post(f"{SHOT}/image")
async def shot_image(session_id: str, scene_id: str, shot_id: str) -> TaskAccepted:
    return _start(session_id, scene_id, shot_id, "image", lambda s: s.generate_shot_image)


@delete(f"{SHOT}/image/{{which:str}}")
async def clear_image(session_id: str, scene_id: str, shot_id: str, which: str) -> None:
    session_manager.require(session_id).studio.clear_shot_image(scene_id, shot_id, which)


@post(f"{SHOT}/last-frame")
async def last_frame(session_id: str, scene_id: str, shot_id: str) -> TaskAccepted:
    return _start(session_id, scene_id, shot_id, "last-frame", lambda s: s.generate_last_frame)


@post(f"{SHOT}/insert-after")
async def insert_shot(session_id: str, scene_id: str, shot_id: str) -> TaskAccepted:
    return _start(session_id, scene_id, shot_id, "insert-shot", lambda s: s.insert_shot)


@post(f"{SHOT}/video")
async def shot_video(session_id: str, scene_id: str, shot_id: str) -> TaskAccepted:
    return _start(session_id, scene_id, shot_id, "video", lambda s: s.generate_shot_video)


@get(f"{SHOT}/video")
async def download_video(session_id: str, scene_id: str, shot_id: str) -> Response:
    studio = session_manager.require(session_id).studio
    return Response(content=studio.shot_video_bytes(scene_id, shot_id), media_type="video/mp4")


@post(f"{SHOT}/video/cancel")
async def cancel_video(session_id: str, scene_id: str, shot_id: str) -> dict:
    studio = session_manager.require(session_id).studio
    return {"ok": True, "cancelled": studio.cancel_shot_video(shot_id)}


@post(f"{SHOT}/audio")
async def toggle_audio(session_id: str, scene_id: str, shot_id: str) -> dict:
    studio = session_manager.require(session_id).studio
    return {"audio_enabled": studio.toggle_shot_audio(scene_id, shot_id)}

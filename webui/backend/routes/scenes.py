"""Scene routes: visualize, reshoot, rewrite, insert/delete, anchors, metadata."""
from __future__ import annotations

from litestar import delete, patch, post, put

from filmcore.models import from_data_url
from webui.backend.models import ImageUpload, MetadataPatch, TaskAccepted
from webui.backend.session_manager import session_manager

SCENE = "/api/projects/{session_id:str}/scenes/{scene_id:str}"


def _start(session_id: str, scene_id: str, action: str, factory_of) -> TaskAccepted:
    session = session_manager.require(session_id)
    session.studio.require_scene(scene_id)
    name = f"{action}:{scene_id}"
    session_manager.start(session, name, lambda: factory_of(session.studio)(scene_id))
    return TaskAccepted(session_id=session_id, task=name)


@post(f"{SCENE}/visualize")
async def visualize_scene(session_id: str, scene_id: str) -> TaskAccepted:
    return _start(session_id, scene_id, "visualize", lambda s: s.visualize_scene)


@post(f"{SCENE}/reshoot")
async def reshoot_scene(session_id: str, scene_id: str) -> TaskAccepted:
    return _start(session_id, scene_id, "reshoot", lambda s: s.reshoot_scene)


@post(f"{SCENE}/rewrite")
async def rewrite_scene(session_id: str, scene_id: str) -> TaskAccepted:
    return _start(session_id, scene_id, "rewrite", lambda s: s.rewrite_scene)


@post(f"{SCENE}/insert-after")
async def insert_scene(session_id: str, scene_id: str) -> TaskAccepted:
    return _start(session_id, scene_id, "insert-scene", lambda s: s.insert_scene)


@delete(SCENE)
async def delete_scene(session_id: str, scene_id: str) -> None:
    session_manager.require(session_id).studio.delete_scene(scene_id)


@patch(f"{SCENE}/metadata")
async def patch_metadata(session_id: str, scene_id: str, data: MetadataPatch) -> dict:
    studio = session_manager.require(session_id).studio
    meta = studio.update_scene_metadata(scene_id, **data.model_dump(exclude_none=True))
    return meta.model_dump(mode="json")


# -- anchors ------------------------------------------------------------------


@post(f"{SCENE}/anchors/{{kind:str}}/regenerate")
async def regenerate_anchor(session_id: str, scene_id: str, kind: str) -> dict:
    studio = session_manager.require(session_id).studio
    url = await studio.regenerate_anchor(scene_id, kind)
    return {"kind": kind, "image": url}


@put(f"{SCENE}/anchors/{{kind:str}}")
async def upload_anchor(session_id: str, scene_id: str, kind: str, data: ImageUpload) -> dict:
    studio = session_manager.require(session_id).studio
    image, mime = from_data_url(data.image)
    studio.set_anchor_image(scene_id, kind, image, mime)
    return {"ok": True}


@delete(f"{SCENE}/anchors/{{kind:str}}")
async def clear_anchor(session_id: str, scene_id: str, kind: str) -> None:
    session_manager.require(session_id).studio.clear_anchor_image(scene_id, kind)


@post(f"{SCENE}/extra-anchors")
async def add_extra_anchor(session_id: str, scene_id: str, data: ImageUpload) -> dict:
    studio = session_manager.require(session_id).studio
    image, mime = from_data_url(data.image)
    return {"count": studio.add_extra_anchor(scene_id, image, mime)}


@delete(f"{SCENE}/extra-anchors/{{index:int}}")
async def remove_extra_anchor(session_id: str, scene_id: str, index: int) -> None:
    session_manager.require(session_id).studio.remove_extra_anchor(scene_id, index)

"""Project session routes: create, inspect, launch, import/export, settings."""
from __future__ import annotations

from typing import Any

from litestar import Response, delete, get, patch, post

from filmcore.models import Item, Location, Persona, ProjectAssets, from_data_url
from filmcore.project_io import SNAPSHOT_SUFFIX, loads
from webui.backend.models import (
    AssetUpload,
    CreateProjectRequest,
    RenameRequest,
    SessionInfo,
    SettingsPatch,
    TaskAccepted,
)
from webui.backend.session_manager import session_manager


def _asset(cls, upload: AssetUpload):
    data, mime = from_data_url(upload.image)
    return cls.from_bytes(upload.name, data, mime)


@post("/api/projects")
async def create_project(data: CreateProjectRequest) -> SessionInfo:
    session = session_manager.create()
    assets = ProjectAssets(
        heroes=[_asset(Persona, a) for a in data.heroes],
        supports=[_asset(Persona, a) for a in data.supports],
        items=[_asset(Item, a) for a in data.items],
        locations=[_asset(Location, a) for a in data.locations],
    )
    session.studio.new_project(data.settings, assets)
    return SessionInfo(session_id=session.session_id, created_at=session.created_at)


@post("/api/projects/import")
async def import_project(data: dict[str, Any]) -> SessionInfo:
    project = loads(data)
    session = session_manager.create(project)
    return SessionInfo(session_id=session.session_id, created_at=session.created_at)


@get("/api/projects/{session_id:str}")
async def get_project(session_id: str) -> dict:
    session = session_manager.require(session_id)
    return session.studio.project.model_dump(mode="json")


@get("/api/projects/{session_id:str}/status")
async def get_status(session_id: str) -> SessionInfo:
    session = session_manager.require(session_id)
    return SessionInfo(
        session_id=session_id,
        created_at=session.created_at,
        running=session_manager.running(session),
    )


@delete("/api/projects/{session_id:str}")
async def close_project(session_id: str) -> None:
    session_manager.require(session_id)
    await session_manager.close(session_id)


@get("/api/projects/{session_id:str}/export")
async def export_project(session_id: str) -> Response:
    session = session_manager.require(session_id)
    return Response(
        content=session.studio.export_snapshot(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="project{SNAPSHOT_SUFFIX}"'},
    )


@post("/api/projects/{session_id:str}/launch")
async def launch_project(session_id: str) -> TaskAccepted:
    session = session_manager.require(session_id)
    task = session_manager.start(session, "launch", session.studio.launch)
    return TaskAccepted(session_id=session_id, task=task)


@patch("/api/projects/{session_id:str}/settings")
async def patch_settings(session_id: str, data: SettingsPatch) -> dict:
    session = session_manager.require(session_id)
    settings = session.studio.update_settings(**data.model_dump(exclude_none=True))
    return settings.model_dump(mode="json")


@patch("/api/projects/{session_id:str}/assets/{group:str}/{asset_id:str}")
async def rename_asset(session_id: str, group: str, asset_id: str, data: RenameRequest) -> dict:
    session = session_manager.require(session_id)
    session.studio.rename_asset(group, asset_id, data.name)
    return {"ok": True}


# -- assistants ---------------------------------------------------------------


@post("/api/projects/{session_id:str}/recommend")
async def recommend(session_id: str) -> dict:
    session = session_manager.require(session_id)
    settings = await session.studio.recommend_config()
    return settings.model_dump(mode="json")


@post("/api/projects/{session_id:str}/inspire/{kind:str}")
async def inspire(session_id: str, kind: str) -> dict:
    session = session_manager.require(session_id)
    return {"kind": kind, "options": await session.studio.inspire_options(kind)}


@post("/api/projects/{session_id:str}/premise")
async def premise(session_id: str) -> dict:
    session = session_manager.require(session_id)
    return {"premise": await session.studio.inspire_premise()}

"""Versioned project snapshots."""
from __future__ import annotations

import json
import logging
import time
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .continuity import ContinuityState
from .models import AudioTrack, Project, ProjectAssets, ProjectSettings, Scene

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
SNAPSHOT_SUFFIX = ".infinite"


class SnapshotContent(BaseModel):
    scenes: list[Scene] = Field(default_factory=list)
    audio: AudioTrack | None = None


class ProjectFile(BaseModel):
    version: int
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    assets: ProjectAssets = Field(default_factory=ProjectAssets)
    content: SnapshotContent = Field(default_factory=SnapshotContent)
    continuity: ContinuityState = Field(default_factory=ContinuityState)


class InvalidProjectFile(ValueError):
    pass


def to_snapshot(project: Project) -> ProjectFile:
    return ProjectFile(
        version=SNAPSHOT_VERSION,
        settings=project.settings,
        assets=project.assets,
        content=SnapshotContent(scenes=project.scenes, audio=project.audio_track),
        continuity=project.continuity,
    )


def from_snapshot(snapshot: ProjectFile) -> Project:
    return Project(
        settings=snapshot.settings,
        assets=snapshot.assets,
        scenes=snapshot.content.scenes,
        continuity=snapshot.continuity,
        audio_track=snapshot.content.audio,
    )


def dumps(project: Project) -> str:
    return to_snapshot(project).model_dump_json(indent=2)


def loads(text: str | bytes | dict) -> Project:
    """Rebuild a project from snapshot JSON (or an already-decoded dict)."""
    try:
        data = json.loads(text) if isinstance(text, (str, bytes)) else text
    except json.JSONDecodeError as e:
        raise InvalidProjectFile(f"Invalid Project File: {e}") from e
    version = data.get("version") if isinstance(data, dict) else None
    if not isinstance(version, int) or version < 1:
        raise InvalidProjectFile("Invalid Project File: missing version")
    if version > SNAPSHOT_VERSION:
        raise InvalidProjectFile(f"Unsupported project version {version}")
    try:
        return from_snapshot(ProjectFile.model_validate(data))
    except ValidationError as e:
        raise InvalidProjectFile(f"Invalid Project File: {e}") from e


def save_project(project: Project, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(project), encoding="utf-8")
    log.info("Saved project snapshot to %s", path)
    return path


def load_project(path: Path) -> Project:
    return loads(Path(path).read_text(encoding="utf-8"))

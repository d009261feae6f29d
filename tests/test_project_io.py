import json

import pytest

from filmcore.continuity import ContinuityState, StyleCategory
from filmcore.models import AudioTrack, Project, Scene, SceneMetadata, Shot, VideoStatus
from filmcore.project_io import (
    SNAPSHOT_VERSION,
    InvalidProjectFile,
    dumps,
    load_project,
    loads,
    save_project,
)


@pytest.fixture
def project(settings, assets):
    scene = Scene(
        scene_index=1,
        metadata=SceneMetadata(setting="Dock", extra_anchor_images=["data:image/png;base64,AA=="]),
        shots=[Shot(visual_description="x", video_status=VideoStatus.DONE, video_url="file:///tmp/a.mp4")],
        visualized=True,
    )
    return Project(
        settings=settings,
        assets=assets,
        scenes=[scene],
        continuity=ContinuityState(category=StyleCategory.THREE_D, keywords="pixar"),
        audio_track=AudioTrack(title="Tide", url="https://cdn/a.mp3"),
    )


def test_snapshot_is_lossless(project):
    restored = loads(dumps(project))
    assert restored == project


def test_snapshot_shape(project):
    data = json.loads(dumps(project))
    assert data["version"] == SNAPSHOT_VERSION
    assert isinstance(data["timestamp"], int)
    assert set(data) >= {"settings", "assets", "content", "continuity"}
    assert data["content"]["audio"]["title"] == "Tide"


def test_save_and_load(tmp_path, project):
    path = save_project(project, tmp_path / "nested" / "film.infinite")
    assert load_project(path) == project


@pytest.mark.parametrize("payload", [
    "not json",
    "[]",
    json.dumps({"settings": {}}),
    json.dumps({"version": 0}),
    json.dumps({"version": "1"}),
    json.dumps({"version": SNAPSHOT_VERSION + 1}),
    json.dumps({"version": 1, "content": {"scenes": "nope"}}),
])
def test_invalid_files(payload):
    with pytest.raises(InvalidProjectFile):
        loads(payload)


def test_minimal_file_loads():
    project = loads({"version": 1})
    assert project.scenes == []
    assert project.audio_track is None

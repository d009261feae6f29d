"""Pure updates on the scene graph.

Every function takes the current scene list and returns a new one. Scenes
and shots are addressed by id, never by position, so updates from
concurrently finishing generation calls never overwrite each other.
"""
from __future__ import annotations

from typing import Any, Callable

from .models import Scene, SceneKind, Shot, VideoStatus


def reindex(shots: list[Shot]) -> list[Shot]:
    """Renumber shots 0..n-1 in list order."""
    return [s if s.index == i else s.model_copy(update={"index": i}) for i, s in enumerate(shots)]


def update_scene(scenes: list[Scene], scene_id: str, fn: Callable[[Scene], Scene]) -> list[Scene]:
    return [fn(s) if s.id == scene_id else s for s in scenes]


def patch_scene(scenes: list[Scene], scene_id: str, **changes: Any) -> list[Scene]:
    return update_scene(scenes, scene_id, lambda s: s.model_copy(update=changes))


def update_shot(
    scenes: list[Scene], scene_id: str, shot_id: str, fn: Callable[[Shot], Shot]
) -> list[Scene]:
    def _apply(scene: Scene) -> Scene:
        return scene.model_copy(update={"shots": [fn(s) if s.id == shot_id else s for s in scene.shots]})

    return update_scene(scenes, scene_id, _apply)


def patch_shot(scenes: list[Scene], scene_id: str, shot_id: str, **changes: Any) -> list[Scene]:
    return update_shot(scenes, scene_id, shot_id, lambda s: s.model_copy(update=changes))


def insert_shot_after(scenes: list[Scene], scene_id: str, after_shot_id: str, shot: Shot) -> list[Scene]:
    def _apply(scene: Scene) -> Scene:
        pos = next((i for i, s in enumerate(scene.shots) if s.id == after_shot_id), None)
        if pos is None:
            raise KeyError(f"Shot {after_shot_id!r} not in scene {scene_id!r}")
        shots = scene.shots[: pos + 1] + [shot] + scene.shots[pos + 1:]
        return scene.model_copy(update={"shots": reindex(shots)})

    return update_scene(scenes, scene_id, _apply)


def remove_shot(scenes: list[Scene], scene_id: str, shot_id: str) -> list[Scene]:
    def _apply(scene: Scene) -> Scene:
        return scene.model_copy(update={"shots": reindex([s for s in scene.shots if s.id != shot_id])})

    return update_scene(scenes, scene_id, _apply)


def insert_scene_after(scenes: list[Scene], after_scene_id: str, scene: Scene) -> list[Scene]:
    pos = next((i for i, s in enumerate(scenes) if s.id == after_scene_id), None)
    if pos is None:
        raise KeyError(f"Scene {after_scene_id!r} not found")
    return scenes[: pos + 1] + [scene] + scenes[pos + 1:]


def remove_scene(scenes: list[Scene], scene_id: str) -> list[Scene]:
    return [s for s in scenes if s.id != scene_id]


def clear_for_reshoot(scene: Scene) -> Scene:
    """Drop generated media so the scene can be visualized again."""
    shots = [
        s.model_copy(update={
            "image_url": None,
            "video_url": None,
            "video_status": VideoStatus.IDLE,
            "loading": True,
            "error": None,
        })
        for s in scene.shots
    ]
    return scene.model_copy(update={"shots": shots, "visualized": False, "loading": True, "error": None})


def clear_shot_image(shot: Shot, which: str) -> Shot:
    """Remove the start frame (with its video) or the end frame."""
    if which == "start":
        return shot.model_copy(update={"image_url": None, "video_url": None, "video_status": VideoStatus.IDLE})
    if which == "end":
        return shot.model_copy(update={"last_frame_url": None})
    raise ValueError(f"Unknown frame {which!r}; expected 'start' or 'end'")


def renumber_scenes(scenes: list[Scene]) -> list[Scene]:
    """Give story scenes consecutive 1-based numbers in list order."""
    out: list[Scene] = []
    n = 0
    for s in scenes:
        if s.kind is SceneKind.STORY:
            n += 1
            if s.scene_index != n:
                s = s.model_copy(update={"scene_index": n})
        out.append(s)
    return out

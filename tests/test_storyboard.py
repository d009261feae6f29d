import pytest

from filmcore import storyboard
from filmcore.models import Scene, SceneKind, Shot, VideoStatus


def make_scene(n: int = 3) -> Scene:
    return Scene(shots=[Shot(index=i, visual_description=f"s{i}") for i in range(n)])


def test_insert_and_remove_keep_indices_contiguous():
    scene = make_scene(3)
    new = Shot(index=99, visual_description="bridge")
    scenes = storyboard.insert_shot_after([scene], scene.id, scene.shots[0].id, new)
    shots = scenes[0].shots
    assert [s.visual_description for s in shots] == ["s0", "bridge", "s1", "s2"]
    assert [s.index for s in shots] == [0, 1, 2, 3]

    scenes = storyboard.remove_shot(scenes, scene.id, scene.shots[1].id)
    assert [s.index for s in scenes[0].shots] == [0, 1, 2]
    assert [s.visual_description for s in scenes[0].shots] == ["s0", "bridge", "s2"]


def test_insert_after_unknown_shot():
    scene = make_scene(1)
    with pytest.raises(KeyError):
        storyboard.insert_shot_after([scene], scene.id, "missing", Shot())


def test_updates_are_by_id_and_do_not_mutate():
    a, b = make_scene(2), make_scene(2)
    scenes = [a, b]
    updated = storyboard.patch_shot(scenes, b.id, b.shots[1].id, image_url="data:x")
    assert updated[1].shots[1].image_url == "data:x"
    assert updated[0] is a
    assert b.shots[1].image_url is None


def test_concurrent_patches_on_latest_list_both_survive():
    scene = make_scene(2)
    scenes = [scene]
    first, second = scene.shots
    scenes = storyboard.patch_shot(scenes, scene.id, second.id, image_url="two")
    scenes = storyboard.patch_shot(scenes, scene.id, first.id, image_url="one")
    assert [s.image_url for s in scenes[0].shots] == ["one", "two"]


def test_clear_for_reshoot():
    scene = make_scene(2).model_copy(update={"visualized": True})
    scene = scene.model_copy(update={"shots": [
        s.model_copy(update={"image_url": "i", "video_url": "v", "video_status": VideoStatus.DONE})
        for s in scene.shots
    ]})
    cleared = storyboard.clear_for_reshoot(scene)
    assert not cleared.visualized
    assert all(s.image_url is None and s.video_url is None for s in cleared.shots)
    assert all(s.video_status is VideoStatus.IDLE for s in cleared.shots)


def test_clear_shot_image():
    shot = Shot(image_url="a", last_frame_url="b", video_url="c", video_status=VideoStatus.DONE)
    start = storyboard.clear_shot_image(shot, "start")
    assert start.image_url is None and start.video_url is None and start.last_frame_url == "b"
    assert storyboard.clear_shot_image(shot, "end").last_frame_url is None
    with pytest.raises(ValueError):
        storyboard.clear_shot_image(shot, "middle")


def test_scene_insert_remove_and_renumber():
    cover = Scene(kind=SceneKind.COVER)
    s1, s2 = Scene(scene_index=1), Scene(scene_index=2)
    new = Scene()
    scenes = storyboard.insert_scene_after([cover, s1, s2], s1.id, new)
    scenes = storyboard.renumber_scenes(scenes)
    assert [s.scene_index for s in scenes] == [None, 1, 2, 3]
    assert scenes[2].id == new.id

    scenes = storyboard.renumber_scenes(storyboard.remove_scene(scenes, s1.id))
    assert [s.scene_index for s in scenes] == [None, 1, 2]
    with pytest.raises(KeyError):
        storyboard.insert_scene_after(scenes, "missing", Scene())

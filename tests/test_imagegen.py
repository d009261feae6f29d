import pytest

from conftest import PNG
from filmcore.continuity import ContinuityState, StyleCategory, NEGATIVE_TERMS, STYLE_LOCK
from filmcore.imagegen import (
    build_costume_anchor_request,
    build_environment_anchor_request,
    build_last_frame_request,
    build_shot_request,
    generate_scene_anchors,
    generate_shot_image,
    hero_indices,
)
from filmcore.models import SceneMetadata, Shot, to_data_url
from filmcore.provider import InlineImage
from filmcore.retry import retry_operation

ANCHOR = to_data_url(b"anchor", "image/png")


def labels(contents):
    return [p for p in contents if isinstance(p, str) and p.endswith(":")]


def test_shot_request_reference_order(settings, assets):
    meta = SceneMetadata(
        setting="Dock",
        anchor_costume_image=ANCHOR,
        anchor_environment_image=ANCHOR,
        extra_anchor_images=[ANCHOR, ANCHOR],
    )
    shot = Shot(visual_description="She runs", focus_character_ref="hero-1", camera="Tracking")
    contents, prompt = build_shot_request(shot, meta, assets, settings, ContinuityState())

    assert labels(contents) == ["COSTUME REF:", "IDENTITY REF:", "LOCATION REF:", "PROP REF 0:", "PROP REF 1:"]
    assert contents[-1] == prompt
    assert "IDENTITY: Kai." in prompt
    assert "Include props." in prompt
    assert "CAMERA: Tracking." in prompt


def test_support_characters_skip_costume_anchor(settings, assets):
    meta = SceneMetadata(anchor_costume_image=ANCHOR)
    shot = Shot(focus_character_ref="support-0")
    contents, _ = build_shot_request(shot, meta, assets, settings, ContinuityState())
    assert labels(contents) == ["IDENTITY REF:"]


def test_unresolved_reference_means_no_character(settings, assets):
    shot = Shot(focus_character_ref="hero-7")
    contents, prompt = build_shot_request(shot, None, assets, settings, ContinuityState())
    assert labels(contents) == []
    assert "IDENTITY:" not in prompt


def test_2d_style_lock_reaches_every_prompt(settings, assets):
    state = ContinuityState(category=StyleCategory.TWO_D)
    for ref in ("hero-0", "none", "loc-0"):
        _, prompt = build_shot_request(Shot(focus_character_ref=ref), SceneMetadata(), assets, settings, state)
        assert prompt.startswith(f"[VISUAL BASE]: {STYLE_LOCK[StyleCategory.TWO_D]}")
        assert NEGATIVE_TERMS[StyleCategory.TWO_D] in prompt
        assert NEGATIVE_TERMS[StyleCategory.REAL] not in prompt


def test_hero_indices_first_seen_and_resolvable(assets):
    shots = [Shot(focus_character_ref=r) for r in ("hero-1", "none", "hero-0", "hero-1", "hero-4")]
    assert hero_indices(shots, assets) == [1, 0]


def test_costume_anchor_single_and_group(settings, assets):
    meta = SceneMetadata(costume_rule="Raincoat")
    single = build_costume_anchor_request(meta, [0], assets, settings, ContinuityState(category=StyleCategory.REAL))
    assert labels(single) == ["Keep Identity:"]
    assert single[-1].startswith("Real photo, photorealistic, 8k. Full body Character Sheet. Identity: Lin.")

    group = build_costume_anchor_request(meta, [0, 1], assets, settings, ContinuityState())
    assert labels(group) == ["HERO-0 Ref:", "HERO-1 Ref:"]
    assert "Characters: Lin, Kai" in group[-1]

    assert build_costume_anchor_request(meta, [], assets, settings, ContinuityState()) is None
    assert build_costume_anchor_request(SceneMetadata(), [0], assets, settings, ContinuityState()) is None


def test_environment_anchor_needs_setting(settings):
    assert build_environment_anchor_request(SceneMetadata(setting="None"), settings, ContinuityState()) is None
    contents = build_environment_anchor_request(SceneMetadata(setting="Dock"), settings, ContinuityState())
    assert "Empty Set" in contents[0]
    assert "No people." in contents[0]


async def test_generate_shot_image(adapter, sleeper, settings, assets):
    retry = lambda op: retry_operation(op, sleep=sleeper)
    result = await generate_shot_image(
        adapter, Shot(visual_description="x"), None, assets, settings, ContinuityState(), retry
    )
    assert result.url.startswith("data:image/png;base64,")
    assert adapter.image_calls[0][1] == "16:9"

    adapter.image_result = None
    empty = await generate_shot_image(adapter, Shot(), None, assets, settings, ContinuityState(), retry)
    assert empty.url is None
    assert empty.prompt.startswith("[VISUAL BASE]")


async def test_anchor_failures_keep_previous_value(adapter, sleeper, settings, assets):
    adapter.image_errors["Empty Set"] = ValueError("content filter")
    retry = lambda op: retry_operation(op, sleep=sleeper)
    meta = SceneMetadata(setting="Dock", costume_rule="Raincoat", anchor_environment_image="old")
    shots = [Shot(focus_character_ref="hero-0")]

    updated = await generate_scene_anchors(
        adapter, meta, shots, assets, settings, ContinuityState(), retry, force=True
    )

    assert updated.anchor_costume_image.startswith("data:image/png")
    assert updated.anchor_environment_image == "old"


async def test_anchors_render_only_when_missing(adapter, sleeper, settings, assets):
    retry = lambda op: retry_operation(op, sleep=sleeper)
    meta = SceneMetadata(setting="Dock", costume_rule="Raincoat", anchor_costume_image="kept")

    updated = await generate_scene_anchors(
        adapter, meta, [Shot(focus_character_ref="hero-0")], assets, settings, ContinuityState(), retry
    )

    assert updated.anchor_costume_image == "kept"
    assert updated.anchor_environment_image.startswith("data:image/png")
    assert len(adapter.image_calls) == 1


async def test_anchor_credential_failures_propagate(adapter, sleeper, settings, assets):
    adapter.image_errors["Character Sheet"] = RuntimeError("API_KEY_INVALID")
    retry = lambda op: retry_operation(op, sleep=sleeper)
    meta = SceneMetadata(setting="Dock", costume_rule="Raincoat")
    with pytest.raises(RuntimeError):
        await generate_scene_anchors(
            adapter, meta, [Shot(focus_character_ref="hero-0")], assets, settings, ContinuityState(), retry
        )


def test_last_frame_request(settings):
    shot = Shot(visual_description="She jumps", image_url=to_data_url(PNG))
    contents, prompt = build_last_frame_request(shot, "She lands", settings)
    assert isinstance(contents[0], InlineImage)
    assert "ACTION END STATE: She lands." in prompt
    with pytest.raises(ValueError):
        build_last_frame_request(Shot(), "x", settings)

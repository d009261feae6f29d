"""Shot images, scene anchors and end frames.

Shot prompts are assembled from the continuity state (style lock and
negative list) and the scene's anchor images, which ride along as extra
image inputs so every shot in a scene sees the same costume and set.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from .continuity import ContinuityState
from .errors import is_critical
from .models import ProjectAssets, ProjectSettings, SceneMetadata, Shot
from .provider import GeneratedImage, InlineImage, Part, ProviderAdapter
from .references import RefKind, parse_ref, resolve_ref

log = logging.getLogger(__name__)

ANCHOR_ASPECT_RATIO = "16:9"

ImageRetry = Callable[[Callable[[], Awaitable[GeneratedImage | None]]], Awaitable[GeneratedImage | None]]


@dataclass
class ShotImage:
    url: str | None
    prompt: str


def _asset_image(asset) -> InlineImage:
    return InlineImage(asset.image_bytes, asset.mime_type)


# ---------------------------------------------------------------------------
# Shot image
# ---------------------------------------------------------------------------


def build_shot_request(
    shot: Shot,
    meta: SceneMetadata | None,
    assets: ProjectAssets,
    settings: ProjectSettings,
    continuity: ContinuityState,
) -> tuple[list[Part], str]:
    """Return ``(contents, prompt_text)`` for one shot image.

    Reference order: costume anchor (heroes only), identity, location
    anchor, then extra prop anchors.
    """
    contents: list[Part] = []
    char_prompt = ""

    ref = parse_ref(shot.focus_character_ref)
    persona = None
    if ref is not None and ref.kind in (RefKind.HERO, RefKind.SUPPORT):
        persona = resolve_ref(ref, assets)
    if persona is not None:
        if meta and meta.anchor_costume_image and ref.kind is RefKind.HERO:
            contents += ["COSTUME REF:", InlineImage.from_data_url(meta.anchor_costume_image)]
        contents += ["IDENTITY REF:", _asset_image(persona)]
        char_prompt = f"IDENTITY: {persona.name}. "

    if meta and meta.anchor_environment_image:
        contents += ["LOCATION REF:", InlineImage.from_data_url(meta.anchor_environment_image)]
    if meta and meta.extra_anchor_images:
        for i, url in enumerate(meta.extra_anchor_images):
            contents += [f"PROP REF {i}:", InlineImage.from_data_url(url)]
        char_prompt += " Include props."

    setting = meta.setting if meta else ""
    prompt = (
        f"[VISUAL BASE]: {continuity.style_lock} {continuity.visual_base(settings.genre)} "
        f"[CONTENT]: SETTING: {setting}. ACTION: {shot.visual_description}. CHARACTERS: {char_prompt}. "
        f"[STYLE]: CAMERA: {shot.camera or ''}. LIGHTING: {shot.lighting or ''}. "
        f"ART DIRECTION: {settings.style_line} {settings.custom_style}. "
        f"NEGATIVE: {continuity.negative_prompt}."
    )
    contents.append(prompt)
    return contents, prompt


async def generate_shot_image(
    adapter: ProviderAdapter,
    shot: Shot,
    meta: SceneMetadata | None,
    assets: ProjectAssets,
    settings: ProjectSettings,
    continuity: ContinuityState,
    retry: ImageRetry,
) -> ShotImage:
    contents, prompt = build_shot_request(shot, meta, assets, settings, continuity)
    image = await retry(lambda: adapter.generate_image(contents, aspect_ratio=settings.aspect_ratio))
    if image is None:
        log.warning("No image data returned for shot %s", shot.id)
    return ShotImage(url=image.data_url if image else None, prompt=prompt)


# ---------------------------------------------------------------------------
# Scene anchors
# ---------------------------------------------------------------------------


def hero_indices(shots: list[Shot], assets: ProjectAssets) -> list[int]:
    """Heroes featured in the scene, in first-seen order, that still resolve."""
    seen: list[int] = []
    for shot in shots:
        ref = parse_ref(shot.focus_character_ref)
        if ref and ref.kind is RefKind.HERO and ref.index not in seen and resolve_ref(ref, assets):
            seen.append(ref.index)
    return seen


def build_costume_anchor_request(
    meta: SceneMetadata,
    heroes: list[int],
    assets: ProjectAssets,
    settings: ProjectSettings,
    continuity: ContinuityState,
) -> list[Part] | None:
    if not heroes or not meta.costume_rule:
        return None
    prefix = continuity.anchor_prefix
    contents: list[Part] = []
    if len(heroes) == 1:
        hero = assets.heroes[heroes[0]]
        contents += ["Keep Identity:", _asset_image(hero)]
        prompt = (
            f"{prefix} Full body Character Sheet. Identity: {hero.name}. Costume: {meta.costume_rule}. "
            f"Style: {settings.art_style}. Flat background."
        )
    else:
        for i in heroes:
            contents += [f"HERO-{i} Ref:", _asset_image(assets.heroes[i])]
        names = ", ".join(assets.heroes[i].name for i in heroes)
        prompt = (
            f"{prefix} Group Shot. Characters: {names}. Costume: {meta.costume_rule}. "
            f"Style: {settings.art_style}."
        )
    contents.append(prompt.strip())
    return contents


def build_environment_anchor_request(
    meta: SceneMetadata,
    settings: ProjectSettings,
    continuity: ContinuityState,
) -> list[Part] | None:
    if not meta.setting or meta.setting == "None":
        return None
    prompt = (
        f"{continuity.anchor_prefix} Empty Set, Location Concept Art. {meta.setting}. "
        f"Lighting: {meta.lighting}. Style: {settings.art_style}. No people."
    )
    return [prompt.strip()]


async def _anchor(adapter: ProviderAdapter, contents: list[Part], retry: ImageRetry, label: str) -> str | None:
    try:
        image = await retry(lambda: adapter.generate_image(contents, aspect_ratio=ANCHOR_ASPECT_RATIO))
    except Exception as e:
        if is_critical(e):
            raise
        # Shots still render from text and identity refs without the anchor
        log.warning("%s anchor generation failed: %s", label, e)
        return None
    return image.data_url if image else None


async def generate_costume_anchor(
    adapter: ProviderAdapter,
    meta: SceneMetadata,
    shots: list[Shot],
    assets: ProjectAssets,
    settings: ProjectSettings,
    continuity: ContinuityState,
    retry: ImageRetry,
) -> str | None:
    contents = build_costume_anchor_request(meta, hero_indices(shots, assets), assets, settings, continuity)
    if contents is None:
        return None
    return await _anchor(adapter, contents, retry, "Costume")


async def generate_environment_anchor(
    adapter: ProviderAdapter,
    meta: SceneMetadata,
    settings: ProjectSettings,
    continuity: ContinuityState,
    retry: ImageRetry,
) -> str | None:
    contents = build_environment_anchor_request(meta, settings, continuity)
    if contents is None:
        return None
    return await _anchor(adapter, contents, retry, "Environment")


async def generate_scene_anchors(
    adapter: ProviderAdapter,
    meta: SceneMetadata,
    shots: list[Shot],
    assets: ProjectAssets,
    settings: ProjectSettings,
    continuity: ContinuityState,
    retry: ImageRetry,
    *,
    force: bool = False,
) -> SceneMetadata:
    """Render missing costume and environment anchors (both when *force*).

    An anchor that fails to render keeps its previous value.
    """
    changes = {}
    if force or not meta.anchor_costume_image:
        costume = await generate_costume_anchor(adapter, meta, shots, assets, settings, continuity, retry)
        if costume:
            changes["anchor_costume_image"] = costume
    if force or not meta.anchor_environment_image:
        environment = await generate_environment_anchor(adapter, meta, settings, continuity, retry)
        if environment:
            changes["anchor_environment_image"] = environment
    return meta.model_copy(update=changes)


# ---------------------------------------------------------------------------
# End frame
# ---------------------------------------------------------------------------


def build_last_frame_request(shot: Shot, end_state: str, settings: ProjectSettings) -> tuple[list[Part], str]:
    if not shot.image_url:
        raise ValueError(f"Shot {shot.id} has no start frame to extend")
    style = f"{settings.director_style} | {settings.art_style}"
    prompt = (
        f"Final frame of the shot. ACTION END STATE: {end_state or shot.visual_description}. "
        f"STYLE: {style}. Maintain same characters and environment."
    )
    return [InlineImage.from_data_url(shot.image_url), prompt], prompt


async def generate_last_frame(
    adapter: ProviderAdapter,
    shot: Shot,
    end_state: str,
    settings: ProjectSettings,
    retry: ImageRetry,
) -> ShotImage:
    contents, prompt = build_last_frame_request(shot, end_state, settings)
    image = await retry(lambda: adapter.generate_image(contents, aspect_ratio=settings.aspect_ratio))
    return ShotImage(url=image.data_url if image else None, prompt=prompt)

"""Script planning and structured prompts for scene/shot generation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from .catalog import agent_persona_for, lyric_language_name, target_language_name
from .continuity import ContinuityState
from .errors import ResponseParseError
from .jsonparse import parse_ai_json
from .models import (
    ProjectAssets,
    ProjectSettings,
    Scene,
    SceneKind,
    SceneMetadata,
    Shot,
    new_id,
)
from .provider import Part, ProviderAdapter
from .references import cast_lines, normalize_ref

log = logging.getLogger(__name__)

DEFAULT_SCENE_COUNT = 6
MIN_SHOTS = 3
MAX_SHOTS = 8

TextRetry = Callable[[Callable[[], Awaitable[str]]], Awaitable[str]]

# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_PLAN_TEMPLATE = """ROLE: {role}
TASK: {task}
FOCUS: {focus}
PROJECT: {genre}. PREMISE: {premise}.
ARTISTIC DIRECTION: {style} {custom_style}.
VISUAL STYLE ENFORCEMENT: {keywords}
STYLE CATEGORY: {category}
{style_constraint}
{output_advice}
*** IMPORTANT: OUTPUT EVERYTHING IN {language}.
ASSETS: CAST: {heroes}, {supports}. PROPS: {items}. LOCATIONS: {locations}.
Refer to cast, props and locations ONLY by their ids (hero-0, support-1, item-0, loc-2) in "focus_char".
WORKFLOW (Copy & Transcend):
1. [REFERENCE] Identify 3 masterpieces (2015-2025).
2. [TRANSCEND] Avoid cliches. Propose a unique twist.
3. [SCENES] Create EXACTLY {scene_count} Scenes following: {structure}
   - **DYNAMIC VIDEO PROMPTS**: For 'scene' description, describe movement: "Start frame shows [X], then camera moves [Y], action evolves to [Z]."
   - SHOT COUNT: {min_shots}-{max_shots} shots per scene.
OUTPUT JSON: {{
  "bible": {{ "references": [], "strategy": "..." }},
  "scenes": [ {{ "sceneIndex": 1, "metadata": {{ "setting": "...", "lighting": "...", "costume_rule": "...", "mood": "..." }},
  "shots": [ {{ "scene": "Start frame: Hero walks in... then looks up...", "caption": "...", "dialogue": "...", "focus_char": "hero-0", "camera": "...", "lighting": "...", "sound_fx": "..." }} ] }} ]
}}
"""

_REWRITE_TEMPLATE = """ROLE: Script Editor.
TASK: Rewrite the scene description and dialogue for Scene {scene_index}.
CONTEXT: Premise: {premise}. Genre: {genre}.
CHARACTERS: {characters}.
CURRENT SHOTS: {current}
{style_constraint}
REQUIREMENT: Make it more dramatic/creative. Keep same character count.
OUTPUT LANGUAGE: {language} (STRICTLY - DO NOT USE ENGLISH unless requested).
OUTPUT JSON: {{ "metadata": {{ "setting": "...", "mood": "..." }}, "shots": [ {{ "scene": "...", "dialogue": "...", "camera": "..." }} ] }}
"""

_INSERT_SHOT_TEMPLATE = """ROLE: Director. TASK: Insert a bridging shot between two shots.
CONTEXT:
- Prev Shot: "{prev_scene}" (Focus: {prev_focus}).
- Next Context: {next_context}.
CONSTRAINTS (MUST FOLLOW):
- Setting: {setting}
- Costume: {costume}
- Lighting: {lighting}
- STYLE: {style_constraint}
VISUAL STYLE: {visual_style}.
CHARACTERS: {characters}.
REQUIREMENTS:
1. STRICT CONTINUITY with environment and costume.
2. Identify the focus character ID (e.g. "hero-0", "hero-1") or "none".
3. OUTPUT LANGUAGE: {language} (STRICTLY).
OUTPUT JSON: {{
  "scene": "Visual description...",
  "dialogue": "...",
  "focus_char": "hero-0",
  "camera": "...",
  "lighting": "...",
  "sound_fx": "..."
}}
"""

_INSERT_SCENE_TEMPLATE = """ROLE: Screenwriter. TASK: Create a bridging scene that logically connects the previous scene to the next one.
PREVIOUS SCENE ENDING: "{prev_context}".
NEXT SCENE STARTING: "{next_context}".
PREMISE: {premise}.
VISUAL STYLE: {visual_style}.
STYLE CONSTRAINT: {style_constraint}.
CHARACTERS: {characters}.
REQUIREMENT:
1. STRICTLY CONTINUE the plot from the Previous Scene.
2. Bridge the gap to the Next Scene.
3. Maintain character consistency.
4. OUTPUT LANGUAGE: {language} (STRICTLY).
OUTPUT JSON: {{
   "metadata": {{ "setting": "...", "lighting": "...", "costume_rule": "...", "mood": "..." }},
   "shots": [
       {{ "scene": "...", "dialogue": "...", "focus_char": "hero-0", "camera": "...", "lighting": "...", "sound_fx": "..." }},
       {{ "scene": "...", "dialogue": "...", "focus_char": "hero-0", "camera": "...", "lighting": "...", "sound_fx": "..." }}
   ]
}}
"""

PREV_SCENE_IMAGE_NOTE = (
    "VISUAL CONTEXT (PREVIOUS SCENE END): Use this visual to ensure continuity in lighting and style for the NEW SCENE."
)

_END_FRAME_TEMPLATE = """ROLE: Director / Cinematographer.
TASK: Describe the END FRAME of a video shot, given the START FRAME description.
START FRAME: "{scene}"
CONTEXT: The shot lasts about 3-5 seconds. Describe how the action/camera movement resolves.
OUTPUT: A concise visual description of the final frame, in {language}.
"""

_RECOMMEND_PROMPT = """Act as a Creative Director. Recommend a unique, high-quality configuration for a new film project.
Select from varied genres (Sci-Fi, Fantasy, Noir, etc.).
Pick a famous director and art style that matches.
Create a catchy premise.
Output JSON:
{
    "genre": "string (one from common film genres)",
    "director": "string",
    "artStyle": "string",
    "refWork": "string",
    "premise": "string",
    "language": "en-US",
    "pageCount": 5,
    "aspectRatio": "16:9"
}
"""

_INSPIRE_TEMPLATE = """Generate 10 creative and distinct options for: {kind}.
Context: Film creation. Genre context: {genre}.
Return JSON: {{ "options": ["opt1", "opt2", ...] }}
"""

_PREMISE_TEMPLATE = """Generate a compelling, unique movie premise (logline).
Genre: {genre}. Director Style: {director}.
Output language: {language}.
Output JSON: {{ "premise": "string" }}
"""

_MUSIC_TEMPLATE = """Act as a Professional Songwriter and Composer.
Project: {genre} Film. Premise: {premise}.
Task: Create a song concept.
1. Title (Creative)
2. Style Tags (Genre, Mood, Instruments, Tempo - e.g. "Cinematic, Epic, Orchestral, Female Vocals")
3. Lyrics (Verse 1, Chorus) in {language}.
Output JSON: {{ "title": "...", "tags": "...", "lyrics": "..." }}
"""

INSPIRE_KINDS = ("genre", "director", "art", "work")


# ---------------------------------------------------------------------------
# Prompt builders
# ---------------------------------------------------------------------------


def resolve_scene_count(page_count: int) -> int:
    return page_count if page_count > 0 else DEFAULT_SCENE_COUNT


def _hero_names(assets: ProjectAssets) -> str:
    return ", ".join(h.name for h in assets.heroes)


def _hero_ids(assets: ProjectAssets) -> str:
    return ", ".join(f"hero-{i} ({h.name})" for i, h in enumerate(assets.heroes))


def build_plan_prompt(
    settings: ProjectSettings,
    assets: ProjectAssets,
    continuity: ContinuityState,
    scene_count: int,
) -> str:
    agent = agent_persona_for(settings.genre)
    cast = cast_lines(assets)
    return _PLAN_TEMPLATE.format(
        role=agent.role,
        task=agent.task_desc,
        focus=agent.focus,
        genre=settings.genre,
        premise=settings.premise,
        style=settings.style_line,
        custom_style=settings.custom_style,
        keywords=continuity.keywords,
        category=continuity.category.value,
        style_constraint=continuity.script_constraint,
        output_advice=agent.output_advice,
        language=target_language_name(settings.language),
        heroes=cast["heroes"],
        supports=cast["supports"],
        items=cast["items"],
        locations=cast["locations"],
        scene_count=scene_count,
        structure=agent.structure_guide,
        min_shots=MIN_SHOTS,
        max_shots=MAX_SHOTS,
    )


def build_rewrite_prompt(
    scene: Scene,
    settings: ProjectSettings,
    assets: ProjectAssets,
    continuity: ContinuityState,
) -> str:
    current = "; ".join(f"[{s.index}] {s.visual_description}" for s in scene.shots) or "(none)"
    return _REWRITE_TEMPLATE.format(
        scene_index=scene.scene_index or "",
        premise=settings.premise,
        genre=settings.genre,
        characters=_hero_names(assets),
        current=current,
        style_constraint=continuity.bridge_constraint,
        language=target_language_name(settings.language),
    )


def build_insert_shot_prompt(
    scene: Scene,
    prev_shot: Shot,
    next_shot: Shot | None,
    settings: ProjectSettings,
    assets: ProjectAssets,
    continuity: ContinuityState,
) -> str:
    meta = scene.metadata or SceneMetadata()
    next_context = f"Next Shot Action: {next_shot.visual_description}" if next_shot else "End of scene."
    return _INSERT_SHOT_TEMPLATE.format(
        prev_scene=prev_shot.visual_description,
        prev_focus=prev_shot.focus_character_ref,
        next_context=next_context,
        setting=meta.setting,
        costume=meta.costume_rule,
        lighting=meta.lighting,
        style_constraint=continuity.bridge_constraint,
        visual_style=continuity.keywords or settings.genre,
        characters=_hero_ids(assets),
        language=target_language_name(settings.language),
    )


def build_insert_scene_prompt(
    prev_scene: Scene,
    next_scene: Scene | None,
    settings: ProjectSettings,
    assets: ProjectAssets,
    continuity: ContinuityState,
) -> str:
    prev_context = prev_scene.shots[-1].visual_description if prev_scene.shots else "Unknown"
    next_context = next_scene.shots[0].visual_description if next_scene and next_scene.shots else "End of story"
    return _INSERT_SCENE_TEMPLATE.format(
        prev_context=prev_context,
        next_context=next_context,
        premise=settings.premise,
        visual_style=continuity.keywords or settings.genre,
        style_constraint=continuity.bridge_constraint,
        characters=_hero_ids(assets),
        language=target_language_name(settings.language),
    )


def build_end_frame_prompt(shot: Shot, settings: ProjectSettings) -> str:
    return _END_FRAME_TEMPLATE.format(
        scene=shot.visual_description, language=target_language_name(settings.language)
    )


def build_recommend_prompt() -> str:
    return _RECOMMEND_PROMPT


def build_inspire_prompt(kind: str, genre: str) -> str:
    if kind not in INSPIRE_KINDS:
        raise ValueError(f"Unknown option kind {kind!r}")
    return _INSPIRE_TEMPLATE.format(kind=kind.upper(), genre=genre)


def build_premise_prompt(settings: ProjectSettings) -> str:
    return _PREMISE_TEMPLATE.format(
        genre=settings.genre,
        director=settings.director_style,
        language=target_language_name(settings.language),
    )


def build_music_prompt(settings: ProjectSettings, lyric_language: str) -> str:
    return _MUSIC_TEMPLATE.format(
        genre=settings.genre, premise=settings.premise, language=lyric_language_name(lyric_language)
    )


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def shot_from_payload(payload: dict, index: int, fallback: Shot | None = None) -> Shot:
    """Build a shot from one JSON entry; missing tags fall back to *fallback*."""
    fb = fallback or Shot()
    focus = payload.get("focus_char")
    return Shot(
        index=index,
        visual_description=_text(payload.get("scene")) or fb.visual_description,
        caption=_text(payload.get("caption")) or fb.caption,
        dialogue=_text(payload.get("dialogue")),
        focus_character_ref=normalize_ref(focus) if focus else fb.focus_character_ref,
        camera=_text(payload.get("camera")) or fb.camera,
        lighting=_text(payload.get("lighting")) or fb.lighting,
        sound_fx=_text(payload.get("sound_fx")) or fb.sound_fx,
    )


def metadata_from_payload(payload: Any, base: SceneMetadata | None = None) -> SceneMetadata:
    base = base or SceneMetadata()
    if not isinstance(payload, dict):
        return base
    changes = {
        key: str(payload[key])
        for key in ("setting", "lighting", "costume_rule", "mood")
        if payload.get(key)
    }
    return base.model_copy(update=changes)


def shot_payloads(raw: Any) -> list[dict]:
    if not isinstance(raw, list):
        return []
    return [s for s in raw if isinstance(s, dict)]


@dataclass
class ScriptPlan:
    scenes: list[Scene]
    masterpiece_ref: str = ""


def scenes_from_plan(data: dict, scene_count: int) -> ScriptPlan:
    raw_scenes = data.get("scenes")
    if not isinstance(raw_scenes, list) or not raw_scenes:
        raise ResponseParseError("Failed to parse AI response: no scenes in script plan")
    if len(raw_scenes) > scene_count:
        log.warning("Model returned %d scenes, keeping %d", len(raw_scenes), scene_count)
        raw_scenes = raw_scenes[:scene_count]
    elif len(raw_scenes) < scene_count:
        log.warning("Model returned %d of %d requested scenes", len(raw_scenes), scene_count)

    scenes: list[Scene] = []
    for i, raw in enumerate(raw_scenes):
        if not isinstance(raw, dict):
            continue
        payloads = shot_payloads(raw.get("shots"))[:MAX_SHOTS]
        if len(payloads) < MIN_SHOTS:
            log.warning("Scene %d has only %d shots", i + 1, len(payloads))
        scenes.append(Scene(
            kind=SceneKind.STORY,
            scene_index=i + 1,
            metadata=metadata_from_payload(raw.get("metadata")),
            shots=[shot_from_payload(p, idx) for idx, p in enumerate(payloads)],
            choices=[str(c) for c in raw.get("choices") or []],
        ))

    masterpiece = ""
    refs = (data.get("bible") or {}).get("references") if isinstance(data.get("bible"), dict) else None
    if isinstance(refs, list) and refs:
        masterpiece = f"{refs[0]} (Inspired)"
    return ScriptPlan(scenes=scenes, masterpiece_ref=masterpiece)


def rewritten_scene(scene: Scene, data: dict) -> Scene:
    """Apply a rewrite response. Focus, lighting and sound tags carry over by position."""
    payloads = shot_payloads(data.get("shots"))
    if not payloads:
        raise ResponseParseError("Failed to parse AI response: rewrite returned no shots")
    shots = []
    for idx, payload in enumerate(payloads):
        old = scene.shots[idx] if idx < len(scene.shots) else None
        shots.append(Shot(
            index=idx,
            visual_description=_text(payload.get("scene")) or (old.visual_description if old else ""),
            dialogue=_text(payload.get("dialogue")),
            camera=_text(payload.get("camera")),
            focus_character_ref=old.focus_character_ref if old else "none",
            lighting=old.lighting if old else None,
            sound_fx=old.sound_fx if old else None,
        ))
    return scene.model_copy(update={
        "metadata": metadata_from_payload(data.get("metadata"), scene.metadata),
        "shots": shots,
        "visualized": False,
        "loading": False,
        "error": None,
    })


# ---------------------------------------------------------------------------
# Cover pages
# ---------------------------------------------------------------------------

COVER_METADATA = SceneMetadata(
    setting="Key Visual / Poster Background",
    lighting="Dramatic Studio Lighting",
    costume_rule="Signature Outfit",
    mood="Epic, Cinematic",
)


def make_cover(settings: ProjectSettings, assets: ProjectAssets) -> Scene:
    title = settings.premise[:20]
    return Scene(
        id=new_id("cover-"),
        kind=SceneKind.COVER,
        metadata=COVER_METADATA,
        shots=[Shot(
            index=0,
            visual_description=(
                f"Movie Poster for {settings.genre} movie. Title: {title}... . "
                "High quality, main character featured."
            ),
            focus_character_ref="hero-0" if assets.heroes else "none",
        )],
    )


def make_back_cover() -> Scene:
    return Scene(
        id=new_id("back-cover-"),
        kind=SceneKind.BACK_COVER,
        metadata=COVER_METADATA.model_copy(update={
            "setting": "Black screen or abstract background",
            "mood": "Quiet, Final",
        }),
        shots=[Shot(
            index=0,
            visual_description="End Title Card. Cinematic Typography. Credits. Consistent Art Style.",
        )],
    )


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


async def request_json(
    adapter: ProviderAdapter,
    contents: str | list[Part],
    retry: TextRetry,
) -> dict:
    """Structured-output call. Parse errors propagate without a retry."""
    text = await retry(lambda: adapter.generate_text(contents, json_mode=True))
    return parse_ai_json(text)


async def plan_script(
    adapter: ProviderAdapter,
    settings: ProjectSettings,
    assets: ProjectAssets,
    continuity: ContinuityState,
    retry: TextRetry,
) -> ScriptPlan:
    """Plan every story scene of the project in one structured request."""
    if not assets.heroes:
        raise ValueError("At least one hero reference image is required to plan a script.")
    scene_count = resolve_scene_count(settings.page_count)
    prompt = build_plan_prompt(settings, assets, continuity, scene_count)
    log.info("Planning %d scenes (genre=%s)", scene_count, settings.genre)
    data = await request_json(adapter, prompt, retry)
    return scenes_from_plan(data, scene_count)

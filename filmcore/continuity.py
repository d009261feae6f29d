"""Project-wide visual continuity: detected style category and style locks.

The state is an explicit value passed into every prompt builder. It is set
once per launch from the first hero image and reset with a new project.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable

from pydantic import BaseModel, ConfigDict

from .catalog import visual_base_instruction
from .errors import ResponseParseError, is_critical
from .jsonparse import parse_ai_json
from .provider import InlineImage, ProviderAdapter

log = logging.getLogger(__name__)


class StyleCategory(str, Enum):
    REAL = "REAL"
    TWO_D = "2D"
    THREE_D = "3D"
    UNKNOWN = "UNKNOWN"


# Prefixed to every shot image prompt
STYLE_LOCK = {
    StyleCategory.REAL: "PHOTOREALISTIC, 8k, RAW photo, real life, cinematic lighting.",
    StyleCategory.TWO_D: "2D ANIME STYLE, flat illustration, cel shaded, hand drawn, 2d animation.",
    StyleCategory.THREE_D: "3D RENDER, Unreal Engine 5, Octane Render, CGI, 3d character.",
}

BASE_NEGATIVE = "text, watermark, bad anatomy, blur"
NEGATIVE_TERMS = {
    StyleCategory.REAL: "anime, cartoon, illustration, drawing, 3d render, cgi, sketch, painting",
    StyleCategory.TWO_D: "photorealistic, real photo, 3d render, cgi, unity, unreal engine, photograph",
    StyleCategory.THREE_D: "2d, flat illustration, sketch, drawing, anime, japanese anime, photograph, real person",
}

# Prefixed to costume / environment anchor prompts
ANCHOR_PREFIX = {
    StyleCategory.REAL: "Real photo, photorealistic, 8k.",
    StyleCategory.TWO_D: "2D Anime character sheet, flat color, cel shaded.",
    StyleCategory.THREE_D: "3D Render character sheet, cgi, unreal engine 5.",
}

SCRIPT_CONSTRAINT = {
    StyleCategory.REAL: (
        "CONSTRAINT: The film features REAL ACTORS. All scene descriptions, costumes, and settings MUST be "
        "described as 'Real World', 'Photorealistic', 'Cinematic Photography'. Avoid cartoon/anime terms."
    ),
    StyleCategory.TWO_D: (
        "CONSTRAINT: The film is a 2D ANIME/ANIMATION. All scene descriptions MUST emphasize '2D Anime Style', "
        "'Flat Illustration', 'Cel Shading', 'Hand Drawn'. Avoid realistic terms."
    ),
    StyleCategory.THREE_D: (
        "CONSTRAINT: The film is a 3D CGI/GAME ANIMATION. All scene descriptions MUST emphasize '3D Render', "
        "'Unreal Engine 5', 'Volumetric Lighting', 'CGI'."
    ),
}

BRIDGE_CONSTRAINT = {
    StyleCategory.REAL: "Ensure visual descriptions imply Real World photography.",
    StyleCategory.TWO_D: "Ensure visual descriptions imply 2D Anime/Animation.",
    StyleCategory.THREE_D: "Ensure visual descriptions imply 3D CGI/Game graphics.",
}

STYLE_ANALYSIS_PROMPT = """Analyze the ART STYLE of this character image.

STEP 1: Classify into one of these 3 STRICT CATEGORIES:
- "REAL" (if it looks like a real human photo, photorealistic, cinematic)
- "2D" (if it looks like 2D anime, cartoon, flat illustration, drawing)
- "3D" (if it looks like 3D CGI, Pixar, Game Render, Clay, 3D model)

STEP 2: Generate 5-10 precise keywords describing the style.

Return JSON ONLY: { "category": "REAL" | "2D" | "3D", "keywords": "string" }
"""


class ContinuityState(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: StyleCategory = StyleCategory.UNKNOWN
    keywords: str = ""

    @property
    def style_lock(self) -> str:
        return STYLE_LOCK.get(self.category, "")

    @property
    def negative_prompt(self) -> str:
        extra = NEGATIVE_TERMS.get(self.category)
        return f"{BASE_NEGATIVE}, {extra}" if extra else BASE_NEGATIVE

    @property
    def anchor_prefix(self) -> str:
        return ANCHOR_PREFIX.get(self.category, "")

    @property
    def script_constraint(self) -> str:
        return SCRIPT_CONSTRAINT.get(self.category, "")

    @property
    def bridge_constraint(self) -> str:
        return BRIDGE_CONSTRAINT.get(self.category, "")

    def visual_base(self, genre: str) -> str:
        """Look description used after the style lock in shot prompts."""
        if self.keywords:
            return f"STRICT STYLE ENFORCEMENT: {self.keywords}. {self.keywords}"
        if self.category is StyleCategory.UNKNOWN:
            return visual_base_instruction(genre)
        # A genre default could contradict the detected category
        return ""


def parse_style_analysis(text: str) -> ContinuityState:
    """Read the classifier's answer. Anything unusable means REAL."""
    try:
        data = parse_ai_json(text)
    except ResponseParseError:
        log.warning("Style analysis returned no JSON, defaulting to REAL")
        return ContinuityState(category=StyleCategory.REAL)

    raw = str(data.get("category") or "").strip().upper()
    try:
        category = StyleCategory(raw)
    except ValueError:
        category = StyleCategory.UNKNOWN
    if category is StyleCategory.UNKNOWN:
        category = StyleCategory.REAL

    keywords = data.get("keywords") or ""
    if isinstance(keywords, list):
        keywords = ", ".join(str(k) for k in keywords)
    return ContinuityState(category=category, keywords=str(keywords).strip())


async def analyze_style(
    adapter: ProviderAdapter,
    hero_image: InlineImage,
    retry: Callable[[Callable[[], Awaitable[str]]], Awaitable[str]],
) -> ContinuityState:
    """Classify the hero reference image as REAL / 2D / 3D.

    Failures other than credential problems fall back to REAL so a launch
    can continue.
    """
    try:
        text = await retry(
            lambda: adapter.generate_text([hero_image, STYLE_ANALYSIS_PROMPT], json_mode=True)
        )
    except Exception as e:
        if is_critical(e):
            raise
        log.warning("Style analysis failed: %s", e)
        return ContinuityState(category=StyleCategory.REAL)

    state = parse_style_analysis(text)
    log.info("Detected style %s (%s)", state.category.value, state.keywords[:80])
    return state

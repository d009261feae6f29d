"""Project data model: reference assets, scenes, shots and settings."""
from __future__ import annotations

import base64
import uuid
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .catalog import DEFAULT_CATEGORY
from .config import DEFAULT_ASPECT_RATIO, DEFAULT_VIDEO_MODEL, MAX_EXTRA_ANCHORS
from .continuity import ContinuityState


def new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def from_data_url(url: str) -> tuple[bytes, str]:
    """Decode a ``data:`` URL into ``(bytes, mime_type)``."""
    header, _, payload = url.partition(",")
    mime = header[5:].split(";")[0] if header.startswith("data:") else "image/png"
    return base64.b64decode(payload), mime or "image/png"


class ReferenceAsset(BaseModel):
    """An uploaded reference image. Only the name may change after creation."""

    id: str = Field(default_factory=new_id)
    name: str
    image_base64: str
    mime_type: str = "image/jpeg"

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: str = "image/jpeg") -> "ReferenceAsset":
        return cls(name=name, image_base64=base64.b64encode(data).decode("ascii"), mime_type=mime_type)

    @property
    def image_bytes(self) -> bytes:
        return base64.b64decode(self.image_base64)


class Persona(ReferenceAsset):
    pass


class Item(ReferenceAsset):
    pass


class Location(ReferenceAsset):
    pass


class ProjectAssets(BaseModel):
    heroes: list[Persona] = Field(default_factory=list)
    supports: list[Persona] = Field(default_factory=list)
    items: list[Item] = Field(default_factory=list)
    locations: list[Location] = Field(default_factory=list)


class SceneKind(str, Enum):
    COVER = "cover"
    STORY = "story"
    BACK_COVER = "back_cover"


class VideoStatus(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    DONE = "done"
    ERROR = "error"


class SceneMetadata(BaseModel):
    setting: str = ""
    lighting: str = ""
    costume_rule: str = ""
    mood: str = ""
    # data URLs
    anchor_costume_image: str | None = None
    anchor_environment_image: str | None = None
    extra_anchor_images: list[str] = Field(default_factory=list)

    @field_validator("extra_anchor_images")
    @classmethod
    def _limit_extra_anchors(cls, v: list[str]) -> list[str]:
        if len(v) > MAX_EXTRA_ANCHORS:
            raise ValueError(f"At most {MAX_EXTRA_ANCHORS} extra anchor images are allowed")
        return v


class Shot(BaseModel):
    id: str = Field(default_factory=lambda: new_id("shot-"))
    index: int = 0
    visual_description: str = ""
    caption: str | None = None
    dialogue: str | None = None
    focus_character_ref: str = "none"
    camera: str | None = None
    lighting: str | None = None
    sound_fx: str | None = None
    image_url: str | None = None
    last_frame_url: str | None = None
    video_url: str | None = None
    video_status: VideoStatus = VideoStatus.IDLE
    audio_enabled: bool = False
    generation_prompt: str | None = None
    loading: bool = False
    error: str | None = None


class Scene(BaseModel):
    id: str = Field(default_factory=lambda: new_id("scene-"))
    kind: SceneKind = SceneKind.STORY
    scene_index: int | None = None
    metadata: SceneMetadata | None = None
    shots: list[Shot] = Field(default_factory=list)
    choices: list[str] = Field(default_factory=list)
    visualized: bool = False
    loading: bool = False
    error: str | None = None


class AudioTrack(BaseModel):
    title: str = ""
    style_tags: str = ""
    lyrics: str = ""
    url: str | None = None
    loading: bool = False
    error: str | None = None


class ProjectSettings(BaseModel):
    genre: str = DEFAULT_CATEGORY
    director_style: str = ""
    art_style: str = ""
    work_style: str = ""
    custom_style: str = ""
    language: str = "zh-CN"
    page_count: int = Field(default=0, ge=0)
    aspect_ratio: Literal["1:1", "16:9", "9:16"] = DEFAULT_ASPECT_RATIO
    premise: str = ""
    video_model: str = DEFAULT_VIDEO_MODEL
    masterpiece_ref: str = ""

    @property
    def style_line(self) -> str:
        return " | ".join([self.director_style, self.art_style, self.work_style])

    @property
    def video_aspect_ratio(self) -> str:
        # Video models render landscape or portrait only
        return "9:16" if self.aspect_ratio == "9:16" else "16:9"


class Project(BaseModel):
    """Root aggregate owned by one editing session."""

    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    assets: ProjectAssets = Field(default_factory=ProjectAssets)
    scenes: list[Scene] = Field(default_factory=list)
    continuity: ContinuityState = Field(default_factory=ContinuityState)
    audio_track: AudioTrack | None = None

    def scene(self, scene_id: str) -> Scene | None:
        return next((s for s in self.scenes if s.id == scene_id), None)

    def shot(self, scene_id: str, shot_id: str) -> Shot | None:
        scene = self.scene(scene_id)
        if scene is None:
            return None
        return next((s for s in scene.shots if s.id == shot_id), None)

"""Pydantic request/response models for the FilmCore Web API."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from filmcore.models import ProjectSettings


class AssetUpload(BaseModel):
    name: str
    image: str                  # data URL


class CreateProjectRequest(BaseModel):
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    heroes: list[AssetUpload] = Field(default_factory=list)
    supports: list[AssetUpload] = Field(default_factory=list)
    items: list[AssetUpload] = Field(default_factory=list)
    locations: list[AssetUpload] = Field(default_factory=list)


class SessionInfo(BaseModel):
    session_id: str
    created_at: float
    running: list[str] = Field(default_factory=list)


class TaskAccepted(BaseModel):
    session_id: str
    task: str


class SettingsPatch(BaseModel):
    genre: str | None = None
    director_style: str | None = None
    art_style: str | None = None
    work_style: str | None = None
    custom_style: str | None = None
    language: str | None = None
    page_count: int | None = Field(default=None, ge=0)
    aspect_ratio: Literal["1:1", "16:9", "9:16"] | None = None
    premise: str | None = None
    video_model: str | None = None


class ShotPatch(BaseModel):
    visual_description: str | None = None
    generation_prompt: str | None = None
    caption: str | None = None
    dialogue: str | None = None
    focus_character_ref: str | None = None
    camera: str | None = None
    lighting: str | None = None
    sound_fx: str | None = None


class MetadataPatch(BaseModel):
    setting: str | None = None
    lighting: str | None = None
    costume_rule: str | None = None
    mood: str | None = None


class ImageUpload(BaseModel):
    image: str                  # data URL


class RenameRequest(BaseModel):
    name: str


class MusicSuggestRequest(BaseModel):
    lyric_language: str = "zh"


class MusicGenerateRequest(BaseModel):
    title: str = ""
    tags: str = ""
    lyrics: str = ""
    instrumental: bool = False
    # Per-request overrides (applied on top of ~/.filmcore/config.json)
    api_key: str | None = None
    base_url: str | None = None


class ConfigPayload(BaseModel):
    text_api_key: str = ""
    image_api_key: str = ""
    video_api_key: str = ""
    music_api_key: str = ""
    gateway_url: str = ""
    music_base_url: str = ""
    text_model: str = ""
    image_model: str = ""
    video_model: str = ""
    output_dir: str = "output"

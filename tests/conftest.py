"""Shared fixtures: an in-memory provider, a no-wait sleep and a sample cast."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from filmcore.config import Config
from filmcore.media import LocalBlobStore
from filmcore.models import Item, Location, Persona, ProjectAssets, ProjectSettings
from filmcore.provider import GeneratedImage, JobStatus, VideoJob
from filmcore.studio import Studio

PNG = b"\x89PNG\r\n\x1a\nfake"


class FakeAdapter:
    """Stands in for ProviderAdapter. Text replies are consumed in order."""

    def __init__(self) -> None:
        self.text_replies: list = []
        self.text_calls: list = []
        self.image_calls: list = []
        self.image_errors: dict[str, Exception] = {}
        self.image_result: GeneratedImage | None = GeneratedImage(PNG, "image/png")
        self.video_calls: list = []
        self.poll_statuses: list[JobStatus] = []
        self.poll_count = 0
        self.closed = False

    def reply(self, *replies) -> None:
        for r in replies:
            self.text_replies.append(r if isinstance(r, (str, Exception)) else json.dumps(r))

    async def generate_text(self, contents, *, json_mode=False, model=None):
        self.text_calls.append(contents)
        if not self.text_replies:
            raise AssertionError("unexpected text call")
        reply = self.text_replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def generate_image(self, contents, *, aspect_ratio="1:1"):
        parts = [contents] if isinstance(contents, str) else list(contents)
        self.image_calls.append((parts, aspect_ratio))
        prompt = " ".join(p for p in parts if isinstance(p, str))
        for marker, exc in self.image_errors.items():
            if marker in prompt:
                raise exc
        return self.image_result

    async def generate_video(self, prompt, start_image=None, end_image=None, *, aspect_ratio="16:9", model=None):
        self.video_calls.append({
            "prompt": prompt, "start": start_image, "end": end_image,
            "aspect_ratio": aspect_ratio, "model": model,
        })
        return VideoJob(job_id="job-1")

    async def poll_video_job(self, job):
        self.poll_count += 1
        status = self.poll_statuses.pop(0) if self.poll_statuses else JobStatus.PENDING
        if status is JobStatus.SUCCEEDED:
            return VideoJob(job.job_id, status, result_url="https://cdn.example/clip.mp4")
        if status is JobStatus.FAILED:
            return VideoJob(job.job_id, status, failure_reason="content policy")
        return VideoJob(job.job_id, status)

    async def fetch_bytes(self, url, capability="video"):
        return b"mp4-bytes"

    async def aclose(self):
        self.closed = True


class Sleeper:
    """Records requested waits instead of sleeping."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        text_api_key="text-key",
        image_api_key="image-key",
        video_api_key="video-key",
        music_api_key="music-key",
        gateway_url="https://gateway.test",
        music_base_url="https://music.test",
        output_dir=tmp_path / "output",
    )


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def sleeper() -> Sleeper:
    return Sleeper()


@pytest.fixture
def assets() -> ProjectAssets:
    return ProjectAssets(
        heroes=[Persona.from_bytes("Lin", PNG, "image/png"), Persona.from_bytes("Kai", PNG, "image/png")],
        supports=[Persona.from_bytes("Mentor", PNG, "image/png")],
        items=[Item.from_bytes("Lantern", PNG, "image/png")],
        locations=[Location.from_bytes("Harbor", PNG, "image/png")],
    )


@pytest.fixture
def settings() -> ProjectSettings:
    return ProjectSettings(
        genre="Sci-Fi",
        director_style="Denis Villeneuve",
        art_style="Concept art",
        work_style="Dune",
        premise="A courier crosses a drowned city",
        aspect_ratio="16:9",
    )


@pytest.fixture
def events() -> dict:
    return {"progress": [], "alerts": [], "credentials": []}


@pytest.fixture
def studio(config, adapter, sleeper, tmp_path, settings, assets, events) -> Studio:
    s = Studio(
        config,
        adapter=adapter,
        blob_store=LocalBlobStore(tmp_path / "media"),
        progress_cb=events["progress"].append,
        on_alert=events["alerts"].append,
        on_credential_needed=lambda kind, msg: events["credentials"].append((kind, msg)),
        sleep=sleeper,
    )
    s.new_project(settings, assets)
    return s


def shot_payload(n: int, focus: str = "hero-0") -> dict:
    return {
        "scene": f"Start frame: shot {n}, then the camera pushes in",
        "caption": f"caption {n}",
        "dialogue": f"line {n}",
        "focus_char": focus,
        "camera": "Dolly in",
        "lighting": "Neon",
        "sound_fx": "Rain",
    }


def scene_payload(i: int, shots: int = 4) -> dict:
    return {
        "sceneIndex": i,
        "metadata": {"setting": f"Dock {i}", "lighting": "Night", "costume_rule": "Raincoat", "mood": "Tense"},
        "shots": [shot_payload(n) for n in range(shots)],
    }


def plan_payload(scenes: int, shots: int = 4) -> dict:
    return {
        "bible": {"references": ["Blade Runner 2049", "Arrival"], "strategy": "..."},
        "scenes": [scene_payload(i + 1, shots) for i in range(scenes)],
    }

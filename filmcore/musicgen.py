"""Soundtrack generation through a Suno-compatible gateway."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from .config import HTTP_TIMEOUT, MUSIC_MAX_POLLS, MUSIC_POLL_INTERVAL, SUNO_MODEL
from .errors import MusicGenerationError
from .models import AudioTrack
from .retry import raise_for_gateway_status
from .videogen import CancelToken

log = logging.getLogger(__name__)


@dataclass
class MusicRequest:
    title: str
    tags: str
    lyrics: str = ""
    instrumental: bool = False

    def payload(self) -> dict[str, Any]:
        prompt = self.lyrics if self.lyrics and not self.instrumental else f"{self.tags}. {self.title}"
        return {"prompt": prompt, "mv": SUNO_MODEL, "title": self.title, "tags": self.tags}


class SunoClient:
    def __init__(self, api_key: str, base_url: str, client: httpx.AsyncClient | None = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=HTTP_TIMEOUT)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SunoClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}", "accept": "*/*"}

    async def submit(self, request: MusicRequest) -> str:
        """Start a generation and return the first clip id."""
        resp = await self._client.post(
            f"{self.base_url}/suno/submit/music", headers=self._headers, json=request.payload()
        )
        raise_for_gateway_status(resp)
        data = resp.json()
        clips = data if isinstance(data, list) else [data]
        first = clips[0] if clips and isinstance(clips[0], dict) else {}
        # Some gateways wrap the task id as {"code": ..., "data": "<id>"}
        clip_id = first.get("id") or (first.get("data") if isinstance(first.get("data"), str) else None)
        if not clip_id:
            raise MusicGenerationError("No clips started.")
        log.info("Submitted music clip %s", clip_id)
        return str(clip_id)

    async def fetch_clip(self, clip_id: str) -> dict:
        resp = await self._client.get(
            f"{self.base_url}/suno/get/music", headers=self._headers, params={"ids": clip_id}
        )
        if not resp.is_success:
            resp = await self._client.get(f"{self.base_url}/api/get", params={"ids": clip_id})
        raise_for_gateway_status(resp)
        data = resp.json()
        clip = data[0] if isinstance(data, list) and data else data
        return clip if isinstance(clip, dict) else {}


async def generate_soundtrack(
    client: SunoClient,
    request: MusicRequest,
    on_update: Callable[[AudioTrack], None],
    *,
    cancel: CancelToken | None = None,
    interval: float = MUSIC_POLL_INTERVAL,
    max_polls: int = MUSIC_MAX_POLLS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AudioTrack:
    """Submit a song and poll until it completes.

    *on_update* receives the track whenever it changes, including once the
    audio is already streamable but not yet complete.
    """
    track = AudioTrack(title=request.title, style_tags=request.tags, lyrics=request.lyrics, loading=True)
    on_update(track)

    clip_id = await client.submit(request)
    for _ in range(max_polls):
        await sleep(interval)
        if cancel is not None:
            cancel.raise_if_cancelled()
        clip = await client.fetch_clip(clip_id)
        status = clip.get("status")

        if status == "error":
            raise MusicGenerationError("Music Generation Failed")
        if status in ("complete", "streaming") and clip.get("audio_url"):
            metadata = clip.get("metadata") if isinstance(clip.get("metadata"), dict) else {}
            track = track.model_copy(update={
                "url": clip["audio_url"],
                "title": request.title or clip.get("title", ""),
                "lyrics": request.lyrics or metadata.get("prompt", ""),
                "loading": False,
            })
            on_update(track)
            if status == "complete":
                return track

    if track.url:
        # Streamable audio is usable even if the final status never arrived
        return track
    raise MusicGenerationError(f"Music generation did not finish after {max_polls} polls")

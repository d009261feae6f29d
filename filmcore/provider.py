"""Uniform text / image / video calls over the HTTP AI gateway.

The gateway speaks OpenAI-style chat completions and image endpoints plus a
Veo-style video job API. Response shapes vary by model and gateway version,
so every field lookup goes through an ordered rule list and nothing outside
this module inspects raw payloads.
"""
from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence, Union

import httpx

from .config import (
    DEFAULT_ASPECT_RATIO,
    HTTP_TIMEOUT,
    RATIO_TO_SIZE,
    SINGLE_REFERENCE_VIDEO_MODELS,
    Config,
)
from .errors import ProviderHTTPError, ResponseParseError
from .retry import raise_for_gateway_status

log = logging.getLogger(__name__)


@dataclass
class InlineImage:
    data: bytes
    mime_type: str = "image/png"

    @classmethod
    def from_data_url(cls, url: str) -> "InlineImage":
        header, _, payload = url.partition(",")
        mime = header[5:].split(";")[0] if header.startswith("data:") else ""
        return cls(base64.b64decode(payload), mime or "image/png")

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"


# A prompt part is either text or an inline image
Part = Union[str, InlineImage]


@dataclass
class GeneratedImage:
    data: bytes
    mime_type: str = "image/png"

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"


class JobStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class VideoJob:
    """Handle for a submitted video generation job."""

    job_id: str
    status: JobStatus = JobStatus.PENDING
    result_url: str | None = None
    failure_reason: str | None = None

    @property
    def done(self) -> bool:
        return self.status is not JobStatus.PENDING


# ---------------------------------------------------------------------------
# Response extraction rules (first non-empty match wins)
# ---------------------------------------------------------------------------

Rule = tuple[Union[str, int], ...]

JOB_ID_RULES: tuple[Rule, ...] = (
    ("task_id",),
    ("taskId",),
    ("job_id",),
    ("operation_id",),
    ("id",),
    ("request_id",),
    ("uuid",),
    ("result", "id"),
    ("data", "id"),
    ("data", "task_id"),
    ("ids", 0),
    ("task", "id"),
    ("operation", "id"),
)
SUBMIT_RESULT_URL_RULES: tuple[Rule, ...] = (
    ("result_url",),
    ("video_url",),
    ("uri",),
    ("result", "url"),
    ("output_url",),
)
POLL_RESULT_URL_RULES: tuple[Rule, ...] = (
    ("data", "output"),
    ("result_url",),
    ("video_url",),
    ("uri",),
)
IMAGE_B64_RULES: tuple[Rule, ...] = (
    ("data", 0, "b64_json"),
    ("data", 0, "b64"),
)
TEXT_RULES: tuple[Rule, ...] = (
    ("choices", 0, "message", "content"),
)
_LOCATION_ID = re.compile(r"generations/?([A-Za-z0-9_-]+)")

_STATUS_MAP = {
    "SUCCESS": JobStatus.SUCCEEDED,
    "SUCCEEDED": JobStatus.SUCCEEDED,
    "COMPLETED": JobStatus.SUCCEEDED,
    "FAILURE": JobStatus.FAILED,
    "FAILED": JobStatus.FAILED,
}
DEFAULT_FAILURE_REASON = "Veo Generation Failed"


def _dig(payload: Any, path: Rule) -> Any:
    node = payload
    for key in path:
        if isinstance(key, int):
            if not isinstance(node, list) or len(node) <= key:
                return None
        elif not isinstance(node, dict):
            return None
        node = node[key] if isinstance(key, int) else node.get(key)
    return node


def first_match(payload: Any, rules: Sequence[Rule]) -> str | None:
    """Apply *rules* in order and return the first non-empty string found."""
    for rule in rules:
        value = _dig(payload, rule)
        if isinstance(value, str) and value:
            return value
    return None


def extract_job_id(payload: Any) -> str:
    job_id = first_match(payload, JOB_ID_RULES)
    if job_id:
        return job_id
    location = _dig(payload, ("location",))
    if isinstance(location, str):
        m = _LOCATION_ID.search(location)
        if m:
            return m.group(1)
    return ""


def map_job_status(raw: Any) -> JobStatus:
    if not isinstance(raw, str):
        return JobStatus.PENDING
    return _STATUS_MAP.get(raw.upper(), JobStatus.PENDING)


def size_for_ratio(aspect_ratio: str | None) -> str:
    return RATIO_TO_SIZE.get(aspect_ratio or DEFAULT_ASPECT_RATIO, RATIO_TO_SIZE[DEFAULT_ASPECT_RATIO])


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise ResponseParseError(f"Gateway returned non-JSON body: {response.text[:200]}") from e


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class ProviderAdapter:
    """One call surface for the gateway's text, image and video endpoints.

    No retry happens here; callers wrap calls with ``retry_operation``.
    """

    def __init__(self, config: Config, client: httpx.AsyncClient | None = None):
        self.config = config
        self._client = client or httpx.AsyncClient(timeout=HTTP_TIMEOUT)
        self._owns_client = client is None

    @property
    def base_url(self) -> str:
        return self.config.gateway_url.rstrip("/")

    def _auth(self, capability: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.require(capability)}"}

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ProviderAdapter":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # -- text ---------------------------------------------------------------

    async def generate_text(
        self,
        contents: str | Sequence[Part],
        *,
        json_mode: bool = False,
        model: str | None = None,
    ) -> str:
        """Chat-completion call; returns the assistant message text."""
        parts = [contents] if isinstance(contents, str) else list(contents)
        content: list[dict] = []
        for part in parts:
            if isinstance(part, InlineImage):
                content.append({"type": "image_url", "image_url": {"url": part.data_url}})
            elif part:
                content.append({"type": "text", "text": str(part)})
        if not content:
            content = [{"type": "text", "text": ""}]

        body: dict[str, Any] = {
            "model": model or self.config.text_model,
            "messages": [{"role": "user", "content": content}],
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        resp = await self._client.post(
            f"{self.base_url}/v1/chat/completions", headers=self._auth("text"), json=body
        )
        raise_for_gateway_status(resp)
        return first_match(_json(resp), TEXT_RULES) or ""

    # -- image --------------------------------------------------------------

    async def generate_image(
        self,
        contents: str | Sequence[Part],
        *,
        aspect_ratio: str = DEFAULT_ASPECT_RATIO,
    ) -> GeneratedImage | None:
        """Text-to-image, or image edit when any part is an image.

        Returns ``None`` when the gateway answers without image data.
        """
        parts = [contents] if isinstance(contents, str) else list(contents)
        prompt = "\n".join(str(p) for p in parts if isinstance(p, str) and p)
        images = [p for p in parts if isinstance(p, InlineImage)]
        size = size_for_ratio(aspect_ratio)

        if images:
            b64 = await self._edit_image(prompt, images, size)
        else:
            b64 = await self._text_to_image(prompt, size)
            if not b64 and size != RATIO_TO_SIZE[DEFAULT_ASPECT_RATIO]:
                log.warning("Empty image for size %s, retrying square", size)
                b64 = await self._text_to_image(prompt, RATIO_TO_SIZE[DEFAULT_ASPECT_RATIO])

        if not b64:
            return None
        return GeneratedImage(base64.b64decode(b64), "image/png")

    async def _text_to_image(self, prompt: str, size: str) -> str:
        body = {
            "model": self.config.image_model,
            "prompt": prompt,
            "size": size,
            "response_format": "b64_json",
            "n": 1,
        }
        resp = await self._client.post(
            f"{self.base_url}/v1/images/generations", headers=self._auth("image"), json=body
        )
        raise_for_gateway_status(resp)
        return first_match(_json(resp), IMAGE_B64_RULES) or ""

    async def _edit_image(self, prompt: str, images: Sequence[InlineImage], size: str) -> str:
        # One multipart "image" entry per reference, in prompt order
        files = [("image", (f"ref{i}", img.data, img.mime_type)) for i, img in enumerate(images)]
        data = {
            "model": self.config.image_model,
            "size": size,
            "response_format": "b64_json",
            "n": "1",
        }
        if prompt:
            data["prompt"] = prompt
        resp = await self._client.post(
            f"{self.base_url}/v1/images/edits", headers=self._auth("image"), data=data, files=files
        )
        raise_for_gateway_status(resp)
        return first_match(_json(resp), IMAGE_B64_RULES) or ""

    # -- video --------------------------------------------------------------

    async def generate_video(
        self,
        prompt: str,
        start_image: InlineImage | None = None,
        end_image: InlineImage | None = None,
        *,
        aspect_ratio: str = "16:9",
        model: str | None = None,
    ) -> VideoJob:
        """Submit a video job. The handle may already be done."""
        model = model or self.config.video_model
        images = [img.data_url for img in (start_image, end_image) if img is not None]
        if model in SINGLE_REFERENCE_VIDEO_MODELS and len(images) > 1:
            log.info("Model %s takes one reference image; dropping end frame", model)
            images = images[:1]

        payload: dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "aspect_ratio": aspect_ratio,
            "enhance_prompt": False,
        }
        if images:
            payload["images"] = images

        resp = await self._client.post(
            f"{self.base_url}/v2/videos/generations", headers=self._auth("video"), json=payload
        )
        raise_for_gateway_status(resp)
        data = _json(resp)
        job_id = extract_job_id(data)
        result_url = first_match(data, SUBMIT_RESULT_URL_RULES)
        if not job_id and not result_url:
            raise ProviderHTTPError(resp.status_code, resp.text[:300], message="Video submission returned no job id")
        log.info("Submitted video job %s (model=%s)", job_id or "<sync>", model)
        return VideoJob(
            job_id=job_id,
            status=JobStatus.SUCCEEDED if result_url else JobStatus.PENDING,
            result_url=result_url,
        )

    async def poll_video_job(self, job: VideoJob) -> VideoJob:
        """Fetch current status. Returns a new handle with the same id."""
        if not job.job_id:
            return job
        headers = self._auth("video")
        resp = await self._client.get(f"{self.base_url}/v2/videos/generations/{job.job_id}", headers=headers)
        if resp.status_code == 404:
            resp = await self._client.get(
                f"{self.base_url}/v2/videos/generations", headers=headers, params={"id": job.job_id}
            )
        raise_for_gateway_status(resp)
        data = _json(resp)

        status = map_job_status(_dig(data, ("status",)))
        reason = None
        if status is JobStatus.FAILED:
            reason = first_match(data, (("fail_reason",),)) or DEFAULT_FAILURE_REASON
        return VideoJob(
            job_id=job.job_id,
            status=status,
            result_url=first_match(data, POLL_RESULT_URL_RULES),
            failure_reason=reason,
        )

    async def fetch_bytes(self, url: str, capability: str = "video") -> bytes:
        """Download a result URL into memory."""
        headers = {}
        if url.startswith(self.base_url):
            headers = self._auth(capability)
        elif "generativelanguage.googleapis.com" in url and "key=" not in url:
            sep = "&" if "?" in url else "?"
            url = f"{url}{sep}key={self.config.require(capability)}"
        resp = await self._client.get(url, headers=headers, follow_redirects=True)
        raise_for_gateway_status(resp)
        return resp.content

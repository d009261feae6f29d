"""Video clip generation: submit, poll until terminal, materialize bytes."""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

from .config import MAX_POLLS, POLL_INTERVAL
from .errors import GenerationCancelled, VideoGenerationError, VideoTimeoutError
from .media import BlobStore
from .provider import InlineImage, JobStatus, ProviderAdapter, VideoJob

log = logging.getLogger(__name__)


class CancelToken:
    """Cooperative cancellation flag shared between a caller and a poll loop.

    Cancelling stops further polling and state updates locally; the remote
    job is left to finish on its own.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise GenerationCancelled("Generation cancelled by user.")

    async def sleep(self, seconds: float) -> None:
        """Sleep for *seconds*, waking early if cancelled."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass


class PollState(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    DONE = "done"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


StateCallback = Callable[[PollState, VideoJob | None], None]
Sleep = Callable[[float], Awaitable[None]]
SubmitRetry = Callable[[Callable[[], Awaitable[VideoJob]]], Awaitable[VideoJob]]


class VideoJobPoller:
    """Drive one video job from submission to a stored clip.

    The submission goes through *retry*; status checks do not, the poll
    loop has its own bound of *max_polls* ticks.
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        blob_store: BlobStore,
        retry: SubmitRetry,
        *,
        interval: float = POLL_INTERVAL,
        max_polls: int = MAX_POLLS,
        sleep: Sleep | None = None,
    ):
        self.adapter = adapter
        self.blob_store = blob_store
        self.retry = retry
        self.interval = interval
        self.max_polls = max_polls
        self._sleep = sleep

    async def _pause(self, cancel: CancelToken | None) -> None:
        if cancel is not None and self._sleep is None:
            await cancel.sleep(self.interval)
        else:
            await (self._sleep or asyncio.sleep)(self.interval)

    async def wait(
        self,
        job: VideoJob,
        cancel: CancelToken | None = None,
        on_state: StateCallback | None = None,
    ) -> VideoJob:
        """Poll until *job* reaches a terminal status."""
        notify = on_state or (lambda state, job: None)
        if job.done:
            return job

        for tick in range(1, self.max_polls + 1):
            await self._pause(cancel)
            if cancel is not None:
                cancel.raise_if_cancelled()
            job = await self.adapter.poll_video_job(job)
            if cancel is not None:
                cancel.raise_if_cancelled()
            notify(PollState.POLLING, job)
            if job.done:
                log.info("Video job %s finished after %d polls: %s", job.job_id, tick, job.status.value)
                return job

        notify(PollState.TIMED_OUT, job)
        raise VideoTimeoutError(
            f"Video generation timed out after {self.max_polls} polls ({self.max_polls * self.interval:.0f}s)"
        )

    async def run(
        self,
        prompt: str,
        start_image: InlineImage,
        end_image: InlineImage | None = None,
        *,
        aspect_ratio: str = "16:9",
        model: str | None = None,
        blob_key: str = "clip",
        cancel: CancelToken | None = None,
        on_state: StateCallback | None = None,
    ) -> str:
        """Generate a clip and return the local URL of its stored bytes."""
        notify = on_state or (lambda state, job: None)
        try:
            job = await self.retry(lambda: self.adapter.generate_video(
                prompt, start_image, end_image, aspect_ratio=aspect_ratio, model=model,
            ))
            notify(PollState.SUBMITTED, job)

            job = await self.wait(job, cancel, on_state)
            if job.status is JobStatus.FAILED:
                notify(PollState.FAILED, job)
                raise VideoGenerationError(f"Veo Generation Error: {job.failure_reason}")
            if not job.result_url:
                notify(PollState.FAILED, job)
                raise VideoGenerationError("No video returned")

            data = await self.adapter.fetch_bytes(job.result_url, "video")
            if cancel is not None:
                cancel.raise_if_cancelled()
        except GenerationCancelled:
            notify(PollState.CANCELLED, None)
            raise

        url = self.blob_store.put(blob_key, data, "video/mp4")
        notify(PollState.DONE, job)
        return url

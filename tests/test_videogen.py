import asyncio

import pytest

from filmcore.errors import GenerationCancelled, VideoGenerationError, VideoTimeoutError
from filmcore.media import LocalBlobStore
from filmcore.provider import InlineImage, JobStatus, VideoJob
from filmcore.retry import retry_operation
from filmcore.videogen import CancelToken, PollState, VideoJobPoller


@pytest.fixture
def poller(adapter, sleeper, tmp_path):
    retry = lambda op: retry_operation(op, sleep=sleeper)
    return VideoJobPoller(adapter, LocalBlobStore(tmp_path / "media"), retry, sleep=sleeper)


async def test_run_stores_clip(poller, adapter, sleeper, tmp_path):
    adapter.poll_statuses = [JobStatus.PENDING, JobStatus.PENDING, JobStatus.SUCCEEDED]
    states = []
    url = await poller.run(
        "pan", InlineImage(b"a"), aspect_ratio="9:16", blob_key="scene/1", on_state=lambda s, j: states.append(s)
    )

    assert url.startswith("file://")
    assert (tmp_path / "media" / "scene_1.mp4").read_bytes() == b"mp4-bytes"
    assert adapter.poll_count == 3
    assert sleeper.calls == [5.0, 5.0, 5.0]
    assert states[0] is PollState.SUBMITTED
    assert states[-1] is PollState.DONE
    assert adapter.video_calls[0]["aspect_ratio"] == "9:16"


async def test_timeout_after_max_polls(poller, adapter):
    with pytest.raises(VideoTimeoutError):
        await poller.run("pan", InlineImage(b"a"))
    assert adapter.poll_count == 60


async def test_no_polling_after_timeout(adapter, sleeper, tmp_path):
    poller = VideoJobPoller(adapter, LocalBlobStore(tmp_path), lambda op: op(), max_polls=3, sleep=sleeper)
    with pytest.raises(VideoTimeoutError):
        await poller.wait(VideoJob("j"))
    assert adapter.poll_count == 3
    assert len(sleeper.calls) == 3


async def test_failed_job(poller, adapter):
    adapter.poll_statuses = [JobStatus.FAILED]
    with pytest.raises(VideoGenerationError, match="Veo Generation Error: content policy"):
        await poller.run("pan", InlineImage(b"a"))


async def test_already_done_job_skips_polling(poller, adapter):
    job = VideoJob("j", JobStatus.SUCCEEDED, result_url="https://cdn/x.mp4")
    assert await poller.wait(job) is job
    assert adapter.poll_count == 0


async def test_cancel_stops_polling(adapter, tmp_path):
    token = CancelToken()
    poller = VideoJobPoller(adapter, LocalBlobStore(tmp_path), lambda op: op(), interval=0.01)

    async def cancel_soon():
        await asyncio.sleep(0.03)
        token.cancel()

    states = []
    canceller = asyncio.create_task(cancel_soon())
    with pytest.raises(GenerationCancelled):
        await poller.run("pan", InlineImage(b"a"), cancel=token, on_state=lambda s, j: states.append(s))
    await canceller
    polls = adapter.poll_count
    await asyncio.sleep(0.05)
    assert adapter.poll_count == polls
    assert states[-1] is PollState.CANCELLED


async def test_cancel_token_wakes_sleep_early():
    token = CancelToken()
    token.cancel()
    await asyncio.wait_for(token.sleep(30), timeout=1)
    with pytest.raises(GenerationCancelled):
        token.raise_if_cancelled()

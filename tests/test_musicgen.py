import json

import httpx
import pytest

from filmcore.errors import GenerationCancelled, MusicGenerationError
from filmcore.musicgen import MusicRequest, SunoClient, generate_soundtrack
from filmcore.videogen import CancelToken


def suno(handler) -> SunoClient:
    return SunoClient("music-key", "https://music.test/", httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_payload_prefers_lyrics():
    assert MusicRequest("Tide", "Epic", "la la").payload()["prompt"] == "la la"
    instrumental = MusicRequest("Tide", "Epic", "la la", instrumental=True).payload()
    assert instrumental["prompt"] == "Epic. Tide"
    assert instrumental["mv"] == "chirp-v4"


async def test_submit_and_poll_until_complete(sleeper):
    polls = iter([
        {"status": "queued"},
        {"status": "streaming", "audio_url": "https://cdn/a.mp3"},
        {"status": "complete", "audio_url": "https://cdn/final.mp3", "metadata": {"prompt": "generated lyrics"}},
    ])
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.path == "/suno/submit/music":
            return httpx.Response(200, json={"code": "success", "data": "clip-1"})
        return httpx.Response(200, json=[next(polls)])

    updates = []
    track = await generate_soundtrack(
        suno(handler), MusicRequest("Tide", "Epic"), updates.append, sleep=sleeper
    )

    assert track.url == "https://cdn/final.mp3"
    assert track.lyrics == "generated lyrics"
    assert not track.loading
    assert updates[0].loading
    assert [u.url for u in updates] == [None, "https://cdn/a.mp3", "https://cdn/final.mp3"]
    assert seen[0].headers["authorization"] == "Bearer music-key"
    assert json.loads(seen[0].content)["title"] == "Tide"
    assert seen[1].url.params["ids"] == "clip-1"


async def test_fetch_falls_back_to_api_get(sleeper):
    paths = []

    def handler(request):
        paths.append(request.url.path)
        if request.url.path == "/suno/submit/music":
            return httpx.Response(200, json=[{"id": "c9"}])
        if request.url.path == "/suno/get/music":
            return httpx.Response(404)
        return httpx.Response(200, json=[{"status": "complete", "audio_url": "https://cdn/x.mp3"}])

    track = await generate_soundtrack(suno(handler), MusicRequest("T", "x"), lambda t: None, sleep=sleeper)
    assert track.url == "https://cdn/x.mp3"
    assert paths == ["/suno/submit/music", "/suno/get/music", "/api/get"]


async def test_no_clip_started(sleeper):
    client = suno(lambda r: httpx.Response(200, json={"code": "error"}))
    with pytest.raises(MusicGenerationError, match="No clips started"):
        await generate_soundtrack(client, MusicRequest("T", "x"), lambda t: None, sleep=sleeper)


async def test_error_status_fails(sleeper):
    def handler(request):
        if request.url.path.endswith("submit/music"):
            return httpx.Response(200, json={"id": "c1"})
        return httpx.Response(200, json={"status": "error"})

    with pytest.raises(MusicGenerationError):
        await generate_soundtrack(suno(handler), MusicRequest("T", "x"), lambda t: None, sleep=sleeper)


async def test_polling_is_bounded(sleeper):
    def handler(request):
        if request.url.path.endswith("submit/music"):
            return httpx.Response(200, json={"id": "c1"})
        return httpx.Response(200, json={"status": "queued"})

    with pytest.raises(MusicGenerationError, match="did not finish"):
        await generate_soundtrack(
            suno(handler), MusicRequest("T", "x"), lambda t: None, max_polls=4, sleep=sleeper
        )
    assert len(sleeper.calls) == 4


async def test_cancelled_generation(sleeper):
    token = CancelToken()
    token.cancel()
    client = suno(lambda r: httpx.Response(200, json={"id": "c1"}))
    with pytest.raises(GenerationCancelled):
        await generate_soundtrack(client, MusicRequest("T", "x"), lambda t: None, cancel=token, sleep=sleeper)


async def test_client_closes_only_what_it_created():
    async with SunoClient("music-key", "https://music.test") as owned:
        pass
    assert owned._client.is_closed

    shared = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    async with SunoClient("music-key", "https://music.test", shared):
        pass
    assert not shared.is_closed
    await shared.aclose()

import base64
import json

import httpx
import pytest

from filmcore.errors import CredentialMissingError, ProviderHTTPError, ProxyAuthError, ServerBusyError
from filmcore.provider import (
    InlineImage,
    JobStatus,
    ProviderAdapter,
    VideoJob,
    extract_job_id,
    first_match,
    map_job_status,
    size_for_ratio,
    JOB_ID_RULES,
)

B64 = base64.b64encode(b"image-bytes").decode()


def make_adapter(config, handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ProviderAdapter(config, client=client)


async def test_generate_text_sends_chat_completion(config):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "hello"}}]})

    adapter = make_adapter(config, handler)
    text = await adapter.generate_text([InlineImage(b"x", "image/jpeg"), "describe"], json_mode=True)

    assert text == "hello"
    assert seen["url"] == "https://gateway.test/v1/chat/completions"
    assert seen["auth"] == "Bearer text-key"
    body = seen["body"]
    assert body["response_format"] == {"type": "json_object"}
    content = body["messages"][0]["content"]
    assert content[0]["type"] == "image_url"
    assert content[0]["image_url"]["url"].startswith("data:image/jpeg;base64,")
    assert content[1] == {"type": "text", "text": "describe"}


async def test_generate_text_missing_content_is_empty(config):
    adapter = make_adapter(config, lambda r: httpx.Response(200, json={"choices": []}))
    assert await adapter.generate_text("hi") == ""


async def test_missing_credential_fails_before_request(config):
    config.text_api_key = ""
    calls = []
    adapter = make_adapter(config, lambda r: calls.append(r) or httpx.Response(200, json={}))
    with pytest.raises(CredentialMissingError):
        await adapter.generate_text("hi")
    assert calls == []


async def test_status_errors_are_typed(config):
    adapter = make_adapter(config, lambda r: httpx.Response(401, text="denied"))
    with pytest.raises(ProxyAuthError):
        await adapter.generate_text("hi")
    adapter = make_adapter(config, lambda r: httpx.Response(503, text="busy"))
    with pytest.raises(ServerBusyError):
        await adapter.generate_text("hi")


async def test_text_to_image_uses_ratio_size(config):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [{"b64_json": B64}]})

    adapter = make_adapter(config, handler)
    image = await adapter.generate_image("a harbor at night", aspect_ratio="16:9")

    assert image.data == b"image-bytes"
    assert seen["path"] == "/v1/images/generations"
    assert seen["body"]["size"] == "1024x576"
    assert seen["body"]["response_format"] == "b64_json"


async def test_empty_image_retries_square(config):
    sizes = []

    def handler(request):
        size = json.loads(request.content)["size"]
        sizes.append(size)
        if size == "1024x1024":
            return httpx.Response(200, json={"data": [{"b64": B64}]})
        return httpx.Response(200, json={"data": []})

    adapter = make_adapter(config, handler)
    image = await adapter.generate_image("poster", aspect_ratio="9:16")
    assert image is not None
    assert sizes == ["576x1024", "1024x1024"]


async def test_image_without_data_returns_none(config):
    adapter = make_adapter(config, lambda r: httpx.Response(200, json={"data": []}))
    assert await adapter.generate_image("poster", aspect_ratio="1:1") is None


async def test_image_with_reference_uses_edit_endpoint(config):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["type"] = request.headers["content-type"]
        seen["body"] = request.content
        return httpx.Response(200, json={"data": [{"b64_json": B64}]})

    adapter = make_adapter(config, handler)
    image = await adapter.generate_image(
        ["IDENTITY REF:", InlineImage(b"ref-bytes", "image/png"), "hero on a roof"], aspect_ratio="1:1"
    )
    assert image is not None
    assert seen["path"] == "/v1/images/edits"
    assert seen["type"].startswith("multipart/form-data")
    assert b"ref-bytes" in seen["body"]
    assert b"hero on a roof" in seen["body"]


async def test_image_edit_sends_every_reference(config):
    seen = {}

    def handler(request):
        seen["body"] = request.content
        return httpx.Response(200, json={"data": [{"b64_json": B64}]})

    adapter = make_adapter(config, handler)
    await adapter.generate_image([
        "COSTUME REF:", InlineImage(b"COSTUME-BYTES", "image/png"),
        "IDENTITY REF:", InlineImage(b"IDENTITY-BYTES", "image/jpeg"),
        "LOCATION REF:", InlineImage(b"LOCATION-BYTES", "image/png"),
        "shot prompt",
    ])

    body = seen["body"]
    assert body.count(b'name="image"') == 3
    positions = [body.index(b) for b in (b"COSTUME-BYTES", b"IDENTITY-BYTES", b"LOCATION-BYTES")]
    assert positions == sorted(positions)
    assert b"shot prompt" in body


async def test_generate_video_submission(config):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"task_id": "abc123"})

    adapter = make_adapter(config, handler)
    job = await adapter.generate_video(
        "pan left", InlineImage(b"a"), InlineImage(b"b"), aspect_ratio="9:16", model="veo3.1-pro"
    )

    assert job == VideoJob(job_id="abc123", status=JobStatus.PENDING)
    assert seen["auth"] == "Bearer video-key"
    body = seen["body"]
    assert body["aspect_ratio"] == "9:16"
    assert body["enhance_prompt"] is False
    assert len(body["images"]) == 2


async def test_single_reference_model_drops_end_frame(config):
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "j1"})

    adapter = make_adapter(config, handler)
    await adapter.generate_video("x", InlineImage(b"a"), InlineImage(b"b"), model="veo3-pro-frames")
    assert len(seen["body"]["images"]) == 1


async def test_synchronous_video_result(config):
    adapter = make_adapter(config, lambda r: httpx.Response(200, json={"video_url": "https://cdn/v.mp4"}))
    job = await adapter.generate_video("x", InlineImage(b"a"))
    assert job.done
    assert job.result_url == "https://cdn/v.mp4"


async def test_video_submission_without_handle_fails(config):
    adapter = make_adapter(config, lambda r: httpx.Response(200, json={"message": "queued"}))
    with pytest.raises(ProviderHTTPError):
        await adapter.generate_video("x", InlineImage(b"a"))


async def test_poll_falls_back_to_query_form(config):
    urls = []

    def handler(request):
        urls.append(str(request.url))
        if request.url.path.endswith("/job-9"):
            return httpx.Response(404)
        return httpx.Response(200, json={"status": "SUCCESS", "data": {"output": "https://cdn/out.mp4"}})

    adapter = make_adapter(config, handler)
    job = await adapter.poll_video_job(VideoJob("job-9"))

    assert job.status is JobStatus.SUCCEEDED
    assert job.result_url == "https://cdn/out.mp4"
    assert urls[1] == "https://gateway.test/v2/videos/generations?id=job-9"


async def test_poll_failure_reason(config):
    adapter = make_adapter(config, lambda r: httpx.Response(200, json={"status": "FAILURE"}))
    job = await adapter.poll_video_job(VideoJob("j"))
    assert job.status is JobStatus.FAILED
    assert job.failure_reason == "Veo Generation Failed"

    adapter = make_adapter(
        config, lambda r: httpx.Response(200, json={"status": "failure", "fail_reason": "nsfw"})
    )
    job = await adapter.poll_video_job(VideoJob("j"))
    assert job.failure_reason == "nsfw"


async def test_fetch_bytes_authorizes_gateway_urls(config):
    seen = []

    def handler(request):
        seen.append((str(request.url), request.headers.get("authorization")))
        return httpx.Response(200, content=b"video")

    adapter = make_adapter(config, handler)
    assert await adapter.fetch_bytes("https://gateway.test/files/1.mp4") == b"video"
    await adapter.fetch_bytes("https://generativelanguage.googleapis.com/v1/files/x?alt=media")
    await adapter.fetch_bytes("https://cdn.example/clip.mp4")

    assert seen[0][1] == "Bearer video-key"
    assert seen[1][0].endswith("alt=media&key=video-key")
    assert seen[1][1] is None
    assert seen[2] == ("https://cdn.example/clip.mp4", None)


def test_job_id_rules():
    assert extract_job_id({"data": {"task_id": "t-1"}}) == "t-1"
    assert extract_job_id({"ids": ["first", "second"]}) == "first"
    assert extract_job_id({"id": "", "uuid": "u-1"}) == "u-1"
    assert extract_job_id({"location": "/v2/videos/generations/xyz_9"}) == "xyz_9"
    assert extract_job_id({"nothing": True}) == ""
    assert first_match([], JOB_ID_RULES) is None


def test_status_mapping():
    assert map_job_status("success") is JobStatus.SUCCEEDED
    assert map_job_status("COMPLETED") is JobStatus.SUCCEEDED
    assert map_job_status("Failed") is JobStatus.FAILED
    assert map_job_status("IN_PROGRESS") is JobStatus.PENDING
    assert map_job_status(None) is JobStatus.PENDING


def test_size_for_ratio():
    assert size_for_ratio("9:16") == "576x1024"
    assert size_for_ratio("4:3") == "1024x1024"
    assert size_for_ratio(None) == "1024x1024"


def test_inline_image_data_url_round_trip():
    image = InlineImage.from_data_url("data:image/webp;base64," + B64)
    assert image.mime_type == "image/webp"
    assert image.data == b"image-bytes"

"""Tests for the Google Veo provider against a mocked HTTP transport."""

import asyncio
import json

import httpx
import pytest

from storyboard_producer.api import base as api_base
from storyboard_producer.api import get_provider, list_providers
from storyboard_producer.api.base import GenerationRequest, GenerationStatus, ReferenceImage
from storyboard_producer.api.google import GoogleVeoProvider
from storyboard_producer.core.exceptions import ConfigurationError, ProviderError, ValidationError

OPERATION = "models/veo-3.0-generate-001/operations/op-123"
VIDEO_URI = "https://files.example.test/v1beta/files/abc:download?alt=media"


class VeoService:
    """Scripted stand-in for the Gemini video endpoints."""

    def __init__(self, polls_until_done=2, error=None, submit_statuses=(), samples=True):
        self.polls_until_done = polls_until_done
        self.error = error
        self.submit_statuses = list(submit_statuses)
        self.samples = samples
        self.submissions = []
        self.polls = 0
        self.downloads = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and request.url.path.endswith(":predictLongRunning"):
            self.submissions.append(request)
            if self.submit_statuses:
                return httpx.Response(self.submit_statuses.pop(0), json={"error": {"message": "busy"}})
            return httpx.Response(200, json={"name": OPERATION})

        if request.method == "GET" and request.url.path.endswith("/operations/op-123"):
            self.polls += 1
            if self.polls < self.polls_until_done:
                return httpx.Response(200, json={"name": OPERATION})
            if self.error:
                return httpx.Response(200, json={"name": OPERATION, "done": True, "error": {"message": self.error}})
            samples = [{"video": {"uri": VIDEO_URI}}] if self.samples else []
            return httpx.Response(
                200,
                json={
                    "name": OPERATION,
                    "done": True,
                    "response": {"generateVideoResponse": {"generatedSamples": samples}},
                },
            )

        if request.url.host == "files.example.test":
            self.downloads += 1
            return httpx.Response(200, content=b"mp4-bytes")

        return httpx.Response(404)


def make_provider(service, **kwargs):
    kwargs.setdefault("poll_interval", 0)
    return GoogleVeoProvider(api_key="test-key", transport=httpx.MockTransport(service), **kwargs)


def generate(provider, request, references=None):
    async def go():
        async with provider:
            if references:
                return await provider.generate_video_with_references(request, references)
            return await provider.generate_video(request)

    return asyncio.run(go())


def png_reference(number):
    return ReferenceImage(data=b"\x89PNG fake", mime_type="image/png", description=f"Reference image {number}")


def test_submit_poll_complete():
    service = VeoService()
    provider = make_provider(service)

    result = generate(provider, GenerationRequest(prompt="A fox runs", aspect_ratio="9:16", with_audio=False))

    assert result.status == GenerationStatus.COMPLETED
    assert result.video_url == VIDEO_URI
    assert result.job_id == OPERATION
    assert service.polls == 2

    submission = service.submissions[0]
    assert submission.url.path == "/v1beta/models/veo-3.0-generate-001:predictLongRunning"
    assert submission.headers["x-goog-api-key"] == "test-key"
    body = json.loads(submission.content)
    assert body["instances"] == [{"prompt": "A fox runs"}]
    assert body["parameters"] == {
        "aspectRatio": "9:16",
        "resolution": "720p",
        "durationSeconds": 8,
        "sampleCount": 1,
        "generateAudio": False,
    }


def test_references_use_reference_model():
    service = VeoService(polls_until_done=1)
    provider = make_provider(service)

    result = generate(provider, GenerationRequest(prompt="A fox runs"), [png_reference(1), png_reference(2)])

    assert result.is_complete()
    assert result.reference_count == 2
    submission = service.submissions[0]
    assert "veo-3.1-generate-preview:predictLongRunning" in submission.url.path
    references = json.loads(submission.content)["instances"][0]["referenceImages"]
    assert len(references) == 2
    assert references[0]["referenceType"] == "asset"
    assert references[0]["image"]["mimeType"] == "image/png"


def test_reference_count_bounds():
    provider = make_provider(VeoService())

    with pytest.raises(ValidationError):
        generate(provider, GenerationRequest(prompt="x"), [png_reference(n) for n in range(1, 5)])


def test_failed_operation_is_a_result():
    provider = make_provider(VeoService(error="Quota exceeded"))

    result = generate(provider, GenerationRequest(prompt="A fox runs"))

    assert result.status == GenerationStatus.FAILED
    assert result.error_message == "Quota exceeded"


def test_filtered_output_is_a_failure():
    provider = make_provider(VeoService(samples=False))

    result = generate(provider, GenerationRequest(prompt="A fox runs"))

    assert result.is_failed()
    assert "No video was generated" in result.error_message


def test_poll_timeout_is_a_failure():
    service = VeoService(polls_until_done=10_000)
    provider = make_provider(service, poll_interval=0.01, max_wait=0.03)

    result = generate(provider, GenerationRequest(prompt="A fox runs"))

    assert result.is_failed()
    assert "did not finish" in result.error_message
    assert service.polls >= 1


def test_recoverable_submit_error_is_retried(monkeypatch):
    monkeypatch.setattr(api_base, "DEFAULT_RETRY_DELAY", 0)
    service = VeoService(polls_until_done=1, submit_statuses=[503])
    provider = make_provider(service, max_retries=2)

    result = generate(provider, GenerationRequest(prompt="A fox runs"))

    assert result.is_complete()
    assert len(service.submissions) == 2


def test_client_error_is_not_retried():
    service = VeoService(submit_statuses=[400])
    provider = make_provider(service, max_retries=3)

    result = generate(provider, GenerationRequest(prompt="A fox runs"))

    assert result.is_failed()
    assert "400" in result.error_message
    assert len(service.submissions) == 1


def test_download(tmp_path):
    service = VeoService(polls_until_done=1)
    provider = make_provider(service)
    target = tmp_path / "clips" / "scene-0.mp4"

    async def go():
        async with provider:
            result = await provider.generate_video(GenerationRequest(prompt="A fox runs"))
            return await provider.download_video(result, target)

    assert asyncio.run(go()) == str(target)
    assert target.read_bytes() == b"mp4-bytes"


def test_download_error(tmp_path):
    provider = make_provider(VeoService())
    result = api_base.VideoGenerationResult(video_url="https://elsewhere.example.test/missing.mp4")

    async def go():
        async with provider:
            await provider.download_video(result, tmp_path / "x.mp4")

    with pytest.raises(ProviderError, match="404"):
        asyncio.run(go())


def test_missing_api_key():
    with pytest.raises(ConfigurationError):
        GoogleVeoProvider(api_key=None)


def test_factory():
    provider = get_provider("google", api_key="test-key", model="veo-3.0-fast-generate-001")

    assert isinstance(provider, GoogleVeoProvider)
    assert provider.default_model == "veo-3.0-fast-generate-001"
    assert "google" in list_providers()

    with pytest.raises(ValueError, match="Unknown provider"):
        get_provider("runway", api_key="test-key")

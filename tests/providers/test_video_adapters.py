"""Tests for video provider adapters against mocked HTTP transports."""

from __future__ import annotations

import json

import httpx
import pytest

from dramaforge.exceptions import ProviderError
from dramaforge.models.jobs import ReferenceMode
from dramaforge.providers.models import GenerationRequest
from dramaforge.providers.video import (
    ChatfireVideoProvider,
    MinimaxVideoProvider,
    OpenAISoraProvider,
    PikaVideoProvider,
    RunwayVideoProvider,
    VolcesArkVideoProvider,
    sora_size,
)

BASE_URL = "https://api.example.test/v1/"


class Recorder:
    """MockTransport handler that records requests and replays JSON bodies."""

    def __init__(self, *responses: tuple[int, object]) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses.pop(0)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def json_body(self, index: int = 0) -> dict:
        return json.loads(self.requests[index].content)


def _provider(cls, recorder: Recorder, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return cls(base_url=BASE_URL, api_key="sk-test", client=client, **kwargs)


class TestChatfire:
    """Test the Chatfire aggregation adapter."""

    @pytest.mark.asyncio
    async def test_doubao_model_uses_content_array(self):
        """Test doubao models get text plus role-tagged frame images."""
        recorder = Recorder((200, {"data": {"id": "task-1", "status": "queued"}}))
        provider = _provider(ChatfireVideoProvider, recorder, model="doubao-seedance-pro")

        result = await provider.generate(
            GenerationRequest(
                prompt="Lin walks",
                first_frame_url="https://img/first.png",
                last_frame_url="https://img/last.png",
                aspect_ratio="9:16",
                duration=5,
            )
        )

        request = recorder.requests[0]
        assert str(request.url) == "https://api.example.test/v1/video/generations"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = recorder.json_body()
        assert body["model"] == "doubao-seedance-pro"
        assert body["content"][0] == {"type": "text", "text": "Lin walks  --ratio 9:16  --dur 5"}
        assert [item.get("role") for item in body["content"][1:]] == ["first_frame", "last_frame"]
        assert result.task_id == "task-1"
        assert result.needs_polling

    @pytest.mark.asyncio
    async def test_sora_model_uses_seconds_and_size(self):
        """Test sora models are sent the Sora field names."""
        recorder = Recorder((200, {"id": "t", "status": "queued"}))
        provider = _provider(ChatfireVideoProvider, recorder, model="sora-2")

        await provider.generate(GenerationRequest(prompt="p", aspect_ratio="9:16"))

        assert recorder.json_body() == {
            "model": "sora-2",
            "prompt": "p",
            "seconds": "5",
            "size": "720x1280",
            "input_reference": "",
        }

    @pytest.mark.asyncio
    async def test_other_models_get_flat_body(self):
        """Test unknown model families use the flat default body."""
        recorder = Recorder((200, {"video_url": "https://v/1.mp4"}))
        provider = _provider(ChatfireVideoProvider, recorder, model="kling")

        result = await provider.generate(GenerationRequest(prompt="p", image_url="https://i"))

        assert recorder.json_body() == {
            "model": "kling",
            "prompt": "p",
            "image_url": "https://i",
            "duration": 5,
            "size": "16:9",
        }
        assert result.is_complete
        assert result.video_url == "https://v/1.mp4"

    @pytest.mark.asyncio
    async def test_reference_images_take_precedence(self):
        """Test multiple references are sent as reference_image items."""
        recorder = Recorder((200, {"id": "t"}))
        provider = _provider(ChatfireVideoProvider, recorder, model="seedance")

        await provider.generate(
            GenerationRequest(
                prompt="p",
                reference_mode=ReferenceMode.MULTIPLE,
                reference_image_urls=["https://a", "https://b"],
                image_url="https://ignored",
            )
        )

        items = recorder.json_body()["content"][1:]
        assert [i["image_url"]["url"] for i in items] == ["https://a", "https://b"]
        assert {i["role"] for i in items} == {"reference_image"}

    @pytest.mark.asyncio
    async def test_poll_reads_nested_content_url(self):
        """Test polling finds the URL under data.content and keeps the task id."""
        recorder = Recorder(
            (200, {"status": "succeeded", "data": {"content": {"video_url": "https://v.mp4"}}})
        )
        provider = _provider(ChatfireVideoProvider, recorder, model="doubao")

        result = await provider.poll_task_status("task-9")

        assert str(recorder.requests[0].url) == "https://api.example.test/v1/video/task/task-9"
        assert recorder.requests[0].method == "GET"
        assert result.video_url == "https://v.mp4"
        assert result.task_id == "task-9"

    @pytest.mark.asyncio
    async def test_error_status_raises_with_body(self):
        """Test non-2xx answers raise ProviderError with the label and body."""
        recorder = Recorder((429, "slow down"))
        provider = _provider(ChatfireVideoProvider, recorder, model="doubao")

        with pytest.raises(ProviderError) as exc_info:
            await provider.generate(GenerationRequest(prompt="p"))

        assert exc_info.value.message == "Chatfire video API error: 429 - slow down"
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_poll_error_is_marked_as_failed_query(self):
        """Test poll errors carry the status-query prefix."""
        recorder = Recorder((404, "task not found"))
        provider = _provider(ChatfireVideoProvider, recorder)

        with pytest.raises(ProviderError, match="Task status query failed: 404 - task not found"):
            await provider.poll_task_status("gone")


class TestVolces:
    """Test the Volcengine Ark adapter."""

    @pytest.mark.asyncio
    async def test_image_goes_first_in_content(self):
        """Test the reference image precedes the text item."""
        recorder = Recorder((200, {"id": "cgt-1"}))
        provider = _provider(VolcesArkVideoProvider, recorder, model="doubao-seedance-1")

        result = await provider.generate(
            GenerationRequest(prompt="p", image_url="https://i", duration=5, seed=7)
        )

        assert str(recorder.requests[0].url).endswith("/v1/contents/generations/tasks")
        body = recorder.json_body()
        assert body["content"][0]["type"] == "image_url"
        assert body["content"][1] == {"type": "text", "text": "p"}
        assert (body["duration"], body["seed"]) == (5, 7)
        assert result.task_id == "cgt-1"

    @pytest.mark.asyncio
    async def test_poll_reads_content_video_url(self):
        """Test the documented content.video_url location is read."""
        recorder = Recorder(
            (200, {"id": "cgt-1", "status": "succeeded", "content": {"video_url": "https://v"}})
        )
        provider = _provider(VolcesArkVideoProvider, recorder)

        result = await provider.poll_task_status("cgt-1")

        assert str(recorder.requests[0].url).endswith("/contents/generations/tasks/cgt-1")
        assert result.video_url == "https://v"
        assert result.status == "succeeded"

    @pytest.mark.asyncio
    async def test_poll_reports_failure_status(self):
        """Test a failed task surfaces as a provider failure status."""
        recorder = Recorder((200, {"data": {"status": "failed"}}))
        provider = _provider(VolcesArkVideoProvider, recorder)

        result = await provider.poll_task_status("cgt-2")

        assert result.provider_failed
        assert result.task_id == "cgt-2"


class TestOtherVideoAdapters:
    """Test Sora, Runway, Pika and MiniMax wire formats."""

    def test_sora_size_mapping(self):
        """Test known ratios map to sizes and others pass through."""
        assert sora_size(None) == "1280x720"
        assert sora_size("9:16") == "720x1280"
        assert sora_size("1:1") == "1:1"

    @pytest.mark.asyncio
    async def test_sora_sends_multipart_fields(self):
        """Test Sora requests are multipart form posts."""
        recorder = Recorder((200, {"id": "video_1", "status": "queued"}))
        provider = _provider(OpenAISoraProvider, recorder, model="sora-2")

        result = await provider.generate(
            GenerationRequest(prompt="p", duration=8, aspect_ratio="16:9")
        )

        request = recorder.requests[0]
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        content = request.content.decode()
        assert 'name="seconds"' in content
        assert "1280x720" in content
        assert result.task_id == "video_1"

    @pytest.mark.asyncio
    async def test_sora_error_body_raises(self):
        """Test an error object in a 200 body is raised."""
        recorder = Recorder((200, {"error": {"message": "bad prompt"}}))
        provider = _provider(OpenAISoraProvider, recorder)

        with pytest.raises(ProviderError, match="OpenAI error: bad prompt"):
            await provider.generate(GenerationRequest(prompt="p"))

    @pytest.mark.asyncio
    async def test_runway_reads_first_output(self):
        """Test Runway results take the first output URL."""
        recorder = Recorder(
            (200, {"id": "r1", "status": "SUCCEEDED", "output": ["https://r/1.mp4", "x"]})
        )
        provider = _provider(RunwayVideoProvider, recorder)

        result = await provider.poll_task_status("r1")

        assert str(recorder.requests[0].url).endswith("/generations/r1")
        assert result.video_url == "https://r/1.mp4"

    @pytest.mark.asyncio
    async def test_pika_payload_and_nested_url(self):
        """Test Pika field names and its nested video URL."""
        recorder = Recorder((200, {"id": "p1", "video": {"url": "https://p.mp4"}}))
        provider = _provider(PikaVideoProvider, recorder, model="pika-2")

        result = await provider.generate(
            GenerationRequest(prompt="p", style="anime", motion_level=2, aspect_ratio="1:1")
        )

        assert recorder.json_body() == {
            "model": "pika-2",
            "promptText": "p",
            "style": "anime",
            "motion": 2,
            "aspectRatio": "1:1",
        }
        assert result.video_url == "https://p.mp4"

    @pytest.mark.asyncio
    async def test_minimax_derives_download_url(self):
        """Test a finished MiniMax task yields a file retrieval URL."""
        recorder = Recorder((200, {"status": "Success", "file_id": "f-42"}))
        provider = _provider(MinimaxVideoProvider, recorder)

        result = await provider.poll_task_status("m1")

        assert str(recorder.requests[0].url) == (
            "https://api.example.test/v1/query/video_generation?task_id=m1"
        )
        assert result.video_url == "https://api.example.test/v1/files/retrieve?file_id=f-42"
        assert result.task_id == "m1"

    @pytest.mark.asyncio
    async def test_custom_query_endpoint_without_placeholder(self):
        """Test the task id is appended when the template has no placeholder."""
        recorder = Recorder((200, {"id": "r2"}))
        provider = _provider(RunwayVideoProvider, recorder, query_endpoint="/tasks/")

        await provider.poll_task_status("r2")

        assert str(recorder.requests[0].url).endswith("/v1/tasks/r2")

"""Tests for AI service configurations and the provider facade."""

from __future__ import annotations

import json

import httpx
import pytest

from dramaforge.exceptions import ConfigurationMissingError, NotFoundError, ParseError
from dramaforge.main import DramaForge
from dramaforge.models.ai_config import AIConfigCreate, ServiceType


def _create(engine, **fields):
    data = {
        "name": fields.pop("name", "config"),
        "service_type": fields.pop("service_type", ServiceType.VIDEO),
        "provider": fields.pop("provider", "doubao"),
        "base_url": fields.pop("base_url", "https://provider.test"),
        **fields,
    }
    return engine.configs.create_config(data)


class TestConfigCreation:
    """Test default endpoint filling on creation."""

    def test_defaults_fill_empty_endpoints(self, engine):
        """Test a doubao video config gets both default paths."""
        config = _create(engine)
        assert config.endpoint == "/contents/generations/tasks"
        assert config.query_endpoint == "/contents/generations/tasks/{taskId}"
        assert config.id >= 1

    def test_explicit_endpoint_keeps_empty_query(self, engine):
        """Test defaults are skipped when a submission endpoint is given."""
        config = _create(engine, provider="runway", endpoint="/v2/generate")
        assert (config.endpoint, config.query_endpoint) == ("/v2/generate", "")

    def test_given_query_endpoint_is_kept(self, engine):
        """Test a caller's query endpoint survives default filling."""
        config = _create(engine, provider="pika", query_endpoint="/status/{task_id}")
        assert (config.endpoint, config.query_endpoint) == ("/generate", "/status/{task_id}")

    def test_accepts_typed_input_and_normalizes_provider(self, engine):
        """Test typed input works and provider ids are lowercased."""
        config = engine.configs.create_config(
            AIConfigCreate(
                name="text",
                service_type=ServiceType.TEXT,
                provider=" OpenAI ",
                base_url="https://llm.test",
            )
        )
        assert config.provider == "openai"
        assert config.endpoint == "/chat/completions"


class TestSelection:
    """Test choosing the active configuration for a capability."""

    def test_highest_priority_active_config_wins(self, engine):
        """Test inactive configs are ignored and priority decides."""
        _create(engine, name="low", priority=1)
        high = _create(engine, name="high", priority=5)
        _create(engine, name="off", priority=9, is_active=False)
        _create(engine, name="image", service_type=ServiceType.IMAGE, provider="openai", priority=50)

        assert engine.configs.select(ServiceType.VIDEO).id == high.id

    def test_model_support_beats_priority(self, engine):
        """Test a config listing the wanted model is preferred."""
        _create(engine, name="top", priority=5, model="seedance-1")
        supporting = _create(engine, name="pro", priority=1, model=["seedance-pro", "seedance-2"])

        assert engine.configs.select("video", model="seedance-2").id == supporting.id
        assert engine.configs.select("video", model="unknown").name == "top"

    def test_no_active_config(self, engine):
        """Test selection without configs raises ConfigurationMissingError."""
        _create(engine, is_active=False)
        with pytest.raises(ConfigurationMissingError) as exc_info:
            engine.configs.select(ServiceType.VIDEO)
        assert exc_info.value.message == "No active video service configuration"

    def test_list_filter_get_and_delete(self, engine):
        """Test listing by type, lookup and deletion."""
        video = _create(engine)
        _create(engine, service_type=ServiceType.TEXT, provider="chatfire")

        assert [c.id for c in engine.configs.list_configs("video")] == [video.id]
        assert len(engine.configs.list_configs()) == 2
        assert engine.configs.delete_config(video.id) is True
        assert engine.configs.delete_config(video.id) is False
        with pytest.raises(NotFoundError):
            engine.configs.get_config(video.id)


class TestProviderResolution:
    """Test adapter reuse and cache invalidation."""

    def test_adapter_is_reused_until_config_changes(self, engine):
        """Test updates drop cached adapters for that configuration."""
        config = _create(engine, provider="runway", api_key="a")
        _, first = engine.ai.video_provider()
        _, again = engine.ai.video_provider()
        assert again is first

        updated = engine.configs.update_config(config.id, {"api_key": "b", "id": 999})
        assert updated.id == config.id
        assert len(engine.configs.cache) == 0

        _, rebuilt = engine.ai.video_provider()
        assert rebuilt is not first
        assert rebuilt.api_key == "b"

    def test_update_unknown_config(self, engine):
        """Test updating a missing configuration raises NotFoundError."""
        with pytest.raises(NotFoundError):
            engine.configs.update_config(404, {"priority": 1})


class TestTextOverHttp:
    """Run text generation through a mocked chat completions endpoint."""

    @pytest.mark.asyncio
    async def test_generate_json_parses_fenced_output(self, settings, store):
        """Test the facade sends settings defaults and extracts the JSON object."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            content = 'Sure!\n```json\n{"backgrounds": [{"location": "Pier"}]}\n```'
            return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        engine = DramaForge(settings, store=store, http_client=client)
        _create(
            engine,
            service_type=ServiceType.TEXT,
            provider="chatfire",
            base_url="https://llm.test/v1",
            model="story-model",
        )

        data = await engine.ai.generate_json("Extract", "backgrounds", system_prompt="sys")
        with pytest.raises(ParseError):
            await engine.ai.generate_json("Extract", "characters")
        await engine.aclose()
        await client.aclose()

        assert data == {"backgrounds": [{"location": "Pier"}]}
        body = json.loads(seen[0].content)
        assert str(seen[0].url) == "https://llm.test/v1/chat/completions"
        assert body["model"] == "story-model"
        assert body["temperature"] == settings.text_temperature
        assert body["max_tokens"] == settings.text_max_tokens
        assert body["messages"][0] == {"role": "system", "content": "sys"}

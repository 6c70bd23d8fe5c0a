"""Facade over the configured text, image and video providers."""

from __future__ import annotations

from typing import Any

import httpx

from dramaforge.config import DramaForgeSettings, get_logger
from dramaforge.engine.ai_config import AIConfigService
from dramaforge.models.ai_config import AIServiceConfig, ServiceType
from dramaforge.prompts.extraction import extract_json_object
from dramaforge.providers.base import GenerationProvider
from dramaforge.providers.factory import (
    create_image_provider,
    create_text_provider,
    create_video_provider,
)
from dramaforge.providers.models import TextRequest
from dramaforge.providers.text import TextProvider

logger = get_logger(__name__)


class AIClient:
    """Resolves the active configuration per call and reuses cached adapters."""

    def __init__(
        self,
        configs: AIConfigService,
        settings: DramaForgeSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            configs: Configuration service used for selection
            settings: Supplies timeouts and text defaults
            http_client: Shared HTTP client handed to every adapter
        """
        self.configs = configs
        self.settings = settings
        self.cache = configs.cache
        self.http_client = http_client

    def resolve(self, service_type: ServiceType, model: str | None = None) -> AIServiceConfig:
        return self.configs.select(service_type, model)

    def text_provider(self, model: str | None = None) -> TextProvider:
        config = self.resolve(ServiceType.TEXT, model)
        return self.cache.get_or_create(
            "text",
            config,
            model,
            lambda: create_text_provider(
                config, model, self.settings.provider_timeout, self.http_client
            ),
        )

    def image_provider(
        self, model: str | None = None
    ) -> tuple[AIServiceConfig, GenerationProvider]:
        config = self.resolve(ServiceType.IMAGE, model)
        provider = self.cache.get_or_create(
            "image",
            config,
            model,
            lambda: create_image_provider(
                config, model, self.settings.provider_timeout, self.http_client
            ),
        )
        return config, provider

    def video_provider(
        self, model: str | None = None
    ) -> tuple[AIServiceConfig, GenerationProvider]:
        config = self.resolve(ServiceType.VIDEO, model)
        provider = self.cache.get_or_create(
            "video",
            config,
            model,
            lambda: create_video_provider(
                config, model, self.settings.provider_timeout, self.http_client
            ),
        )
        return config, provider

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        model: str | None = None,
    ) -> str:
        """Run a chat completion against the active text configuration.

        Raises:
            ConfigurationMissingError: No active text configuration.
            ProviderError: The provider call failed.
        """
        provider = self.text_provider(model)
        request = TextRequest(
            prompt=prompt,
            system_prompt=system_prompt,
            model=model,
            temperature=(
                temperature if temperature is not None else self.settings.text_temperature
            ),
            max_tokens=max_tokens or self.settings.text_max_tokens,
        )
        return await provider.complete(request)

    async def generate_json(
        self,
        prompt: str,
        required_key: str | None = None,
        **options: Any,
    ) -> dict[str, Any]:
        """Generate text and parse the JSON object inside it.

        Raises:
            ParseError: The output held no usable JSON object.
        """
        text = await self.generate_text(prompt, **options)
        logger.debug("Parsing model output", length=len(text), required_key=required_key)
        return extract_json_object(text, required_key)

    async def aclose(self) -> None:
        await self.cache.aclose()

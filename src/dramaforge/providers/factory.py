"""Adapter selection from service configurations."""

from __future__ import annotations

from typing import TypeVar

import httpx

from dramaforge.config import get_logger
from dramaforge.models.ai_config import AIServiceConfig
from dramaforge.providers.base import DEFAULT_HTTP_TIMEOUT, GenerationProvider, HTTPProvider
from dramaforge.providers.gemini import GeminiImageProvider, GeminiTextProvider
from dramaforge.providers.image import OpenAIImageProvider
from dramaforge.providers.models import ProviderType
from dramaforge.providers.text import OpenAICompatibleTextProvider, TextProvider
from dramaforge.providers.video import (
    ChatfireVideoProvider,
    MinimaxVideoProvider,
    OpenAISoraProvider,
    PikaVideoProvider,
    RunwayVideoProvider,
    VolcesArkVideoProvider,
)

logger = get_logger(__name__)

P = TypeVar("P", bound=HTTPProvider)

VIDEO_PROVIDERS: dict[str, type[GenerationProvider]] = {
    ProviderType.CHATFIRE.value: ChatfireVideoProvider,
    ProviderType.DOUBAO.value: VolcesArkVideoProvider,
    ProviderType.VOLCENGINE.value: VolcesArkVideoProvider,
    ProviderType.VOLCES.value: VolcesArkVideoProvider,
    ProviderType.OPENAI.value: OpenAISoraProvider,
    ProviderType.RUNWAY.value: RunwayVideoProvider,
    ProviderType.PIKA.value: PikaVideoProvider,
    ProviderType.MINIMAX.value: MinimaxVideoProvider,
}

IMAGE_PROVIDERS: dict[str, type[GenerationProvider]] = {
    ProviderType.GEMINI.value: GeminiImageProvider,
    ProviderType.GOOGLE.value: GeminiImageProvider,
}

TEXT_PROVIDERS: dict[str, type[TextProvider]] = {
    ProviderType.GEMINI.value: GeminiTextProvider,
    ProviderType.GOOGLE.value: GeminiTextProvider,
}


KNOWN_PROVIDERS = frozenset(p.value for p in ProviderType)


def _warn_if_unknown(config: AIServiceConfig, fallback: str) -> None:
    if config.provider not in KNOWN_PROVIDERS:
        logger.warning(
            f"Unknown provider, falling back to {fallback}",
            provider=config.provider,
            service_type=config.service_type.value,
            config_id=config.id,
        )


def _build(
    provider_class: type[P],
    config: AIServiceConfig,
    model: str | None,
    timeout: float,
    client: httpx.AsyncClient | None,
) -> P:
    # Empty endpoints fall back to the adapter class defaults
    return provider_class(
        base_url=config.base_url,
        api_key=config.api_key,
        model=model or config.primary_model or "",
        endpoint=config.endpoint or None,
        query_endpoint=config.query_endpoint or None,
        timeout=timeout,
        client=client,
    )


def create_video_provider(
    config: AIServiceConfig,
    model: str | None = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
    client: httpx.AsyncClient | None = None,
) -> GenerationProvider:
    """Create the video adapter for a configuration.

    Unknown providers fall back to Chatfire; configured endpoints still win
    over its defaults.
    """
    provider_class = VIDEO_PROVIDERS.get(config.provider)
    if provider_class is None:
        logger.warning(
            "Unknown video provider, falling back to chatfire",
            provider=config.provider,
            config_id=config.id,
        )
        provider_class = ChatfireVideoProvider
    return _build(provider_class, config, model, timeout, client)


def create_image_provider(
    config: AIServiceConfig,
    model: str | None = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
    client: httpx.AsyncClient | None = None,
) -> GenerationProvider:
    """Create the image adapter; anything not Gemini speaks the OpenAI images API."""
    _warn_if_unknown(config, "openai")
    provider_class = IMAGE_PROVIDERS.get(config.provider, OpenAIImageProvider)
    return _build(provider_class, config, model, timeout, client)


def create_text_provider(
    config: AIServiceConfig,
    model: str | None = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
    client: httpx.AsyncClient | None = None,
) -> TextProvider:
    _warn_if_unknown(config, "openai")
    provider_class = TEXT_PROVIDERS.get(config.provider, OpenAICompatibleTextProvider)
    return _build(provider_class, config, model, timeout, client)

"""Text completion adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from dramaforge.config import get_logger
from dramaforge.exceptions import ProviderError
from dramaforge.providers.base import HTTPProvider, nested
from dramaforge.providers.models import TextRequest

logger = get_logger(__name__)


class TextProvider(HTTPProvider, ABC):
    """Contract for chat-style completion providers."""

    @abstractmethod
    async def complete(self, request: TextRequest) -> str:
        """Return the generated text, or an empty string when the model said nothing."""


class OpenAICompatibleTextProvider(TextProvider):
    """Chat completions against any OpenAI-compatible endpoint."""

    provider_name = "openai"
    label = "AI API"
    default_endpoint = "chat/completions"

    async def complete(self, request: TextRequest) -> str:
        model = request.model or self.model
        payload: dict[str, Any] = {
            "model": model,
            "messages": request.messages(),
            "temperature": request.temperature,
        }
        if request.max_tokens:
            payload["max_tokens"] = request.max_tokens

        logger.info(
            "Sending text completion request",
            endpoint=self._build_url(self.endpoint),
            model=model,
            temperature=request.temperature,
            max_tokens=request.max_tokens,
        )
        try:
            data = await self._post_json(self.endpoint, payload)
        except httpx.HTTPError as e:
            logger.error(
                "Text completion failed",
                error=str(e),
                error_type=type(e).__name__,
                model=model,
            )
            raise ProviderError(
                f"AI request failed: {e}", provider=self.provider_name
            ) from e

        choices = data.get("choices") or []
        content = ""
        if choices and isinstance(choices[0], dict):
            content = nested(choices[0], "message", "content") or ""

        logger.info(
            "Text completion successful",
            model=data.get("model", model),
            response_length=len(content),
            usage=data.get("usage", {}),
        )
        return content

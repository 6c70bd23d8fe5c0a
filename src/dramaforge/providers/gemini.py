"""Gemini ``generateContent`` adapters for text and images."""

from __future__ import annotations

from typing import Any

from dramaforge.exceptions import ProviderError
from dramaforge.providers.base import GenerationProvider, nested, to_result
from dramaforge.providers.models import GenerationRequest, GenerationResult, TextRequest
from dramaforge.providers.text import TextProvider

GENERATE_CONTENT_ENDPOINT = "/v1beta/models/{model}:generateContent"


def _candidate_parts(data: dict[str, Any]) -> list[dict[str, Any]]:
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return []
    parts = nested(candidates[0], "content", "parts") or []
    return [part for part in parts if isinstance(part, dict)]


class GeminiMixin:
    """Key header and per-model endpoint shared by both Gemini adapters."""

    api_key: str
    endpoint: str

    def _get_auth_headers(self, content_type: str | None = "application/json") -> dict[str, str]:
        headers = super()._get_auth_headers(content_type)  # type: ignore[misc]
        headers.pop("Authorization", None)
        if self.api_key:
            headers["x-goog-api-key"] = self.api_key
        return headers

    def _model_endpoint(self, model: str) -> str:
        return self.endpoint.replace("{model}", model)


class GeminiTextProvider(GeminiMixin, TextProvider):
    provider_name = "gemini"
    label = "Gemini API"
    default_endpoint = GENERATE_CONTENT_ENDPOINT

    async def complete(self, request: TextRequest) -> str:
        model = request.model or self.model
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": {"temperature": request.temperature},
        }
        if request.max_tokens:
            payload["generationConfig"]["maxOutputTokens"] = request.max_tokens
        if request.system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": request.system_prompt}]}

        data = await self._post_json(self._model_endpoint(model), payload)
        return "".join(part.get("text", "") for part in _candidate_parts(data))


class GeminiImageProvider(GeminiMixin, GenerationProvider):
    """Image output arrives inline as base64; it is returned as a data URL."""

    provider_name = "gemini"
    label = "Gemini API"
    default_endpoint = GENERATE_CONTENT_ENDPOINT

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }
        data = await self._post_json(self._model_endpoint(self._model_for(request)), payload)

        image_url = ""
        revised_prompt = None
        for part in _candidate_parts(data):
            inline = part.get("inlineData") or part.get("inline_data")
            if isinstance(inline, dict) and inline.get("data") and not image_url:
                mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                image_url = f"data:{mime_type};base64,{inline['data']}"
            elif part.get("text") and revised_prompt is None:
                revised_prompt = part["text"]

        if not image_url:
            raise ProviderError("Gemini API returned no image data", provider=self.provider_name)
        return to_result(image_url=image_url, revised_prompt=revised_prompt)

    async def poll_task_status(self, task_id: str) -> GenerationResult:
        raise ProviderError(
            f"Task status query failed: Gemini image generation has no task {task_id}",
            provider=self.provider_name,
        )

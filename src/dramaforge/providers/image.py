"""OpenAI-compatible image adapter."""

from __future__ import annotations

from typing import Any

from dramaforge.config import get_logger
from dramaforge.exceptions import ProviderError
from dramaforge.providers.base import GenerationProvider, first_present, to_result
from dramaforge.providers.models import GenerationRequest, GenerationResult

logger = get_logger(__name__)

DEFAULT_IMAGE_SIZE = "2048x2048"
DEFAULT_IMAGE_QUALITY = "standard"


class OpenAIImageProvider(GenerationProvider):
    """``images/generations`` returning either a URL or base64 payload."""

    provider_name = "openai"
    label = "Image API"
    default_endpoint = "images/generations"

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        payload = {
            "model": self._model_for(request),
            "prompt": request.prompt,
            "size": request.size or DEFAULT_IMAGE_SIZE,
            "quality": request.quality or DEFAULT_IMAGE_QUALITY,
            "n": request.n or 1,
        }
        data = await self._post_json(self.endpoint, payload)
        result = self._parse(data)
        logger.info(
            "Image generated",
            has_url=bool(result.image_url),
            has_task_id=bool(result.task_id),
            provider=self.provider_name,
        )
        return result

    async def poll_task_status(self, task_id: str) -> GenerationResult:
        if not self.query_endpoint:
            raise ProviderError(
                f"Task status query failed: no query endpoint configured for task {task_id}",
                provider=self.provider_name,
            )
        data = await self._get_status(self._query_path(task_id))
        result = self._parse(data)
        if not result.task_id:
            result.task_id = task_id
        return result

    @staticmethod
    def _parse(data: dict[str, Any]) -> GenerationResult:
        items = data.get("data")
        first: dict[str, Any] = items[0] if isinstance(items, list) and items else {}
        if not isinstance(first, dict):
            first = {}
        return to_result(
            image_url=first_present(first.get("url"), first.get("b64_json"), data.get("image_url")),
            task_id=first_present(data.get("task_id"), data.get("id")),
            status=data.get("status"),
            revised_prompt=first.get("revised_prompt"),
        )

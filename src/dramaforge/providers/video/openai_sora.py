"""OpenAI Sora video adapter."""

from __future__ import annotations

from dramaforge.exceptions import ProviderError
from dramaforge.providers.base import GenerationProvider, nested, to_result
from dramaforge.providers.models import GenerationRequest, GenerationResult

SORA_SIZES = {"16:9": "1280x720", "9:16": "720x1280"}


def sora_size(aspect_ratio: str | None) -> str:
    """Map an aspect ratio onto a Sora frame size; unknown ratios pass through."""
    ratio = aspect_ratio or "16:9"
    return SORA_SIZES.get(ratio, ratio)


class OpenAISoraProvider(GenerationProvider):
    """Submits multipart requests to ``/videos``."""

    provider_name = "openai"
    label = "OpenAI Sora API"
    default_endpoint = "/videos"
    default_query_endpoint = "/videos/{taskId}"

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        fields = {"model": self._model_for(request), "prompt": request.prompt}
        if request.image_url:
            fields["input_reference"] = request.image_url
        if request.duration:
            fields["seconds"] = str(request.duration)
        if request.aspect_ratio:
            fields["size"] = sora_size(request.aspect_ratio)

        data = await self._post_multipart(self.endpoint, fields)
        return self._parse(data)

    async def poll_task_status(self, task_id: str) -> GenerationResult:
        data = await self._get_status(self._query_path(task_id))
        result = self._parse(data)
        if not result.task_id:
            result.task_id = task_id
        return result

    def _parse(self, data: dict) -> GenerationResult:
        error_message = nested(data, "error", "message")
        if error_message:
            raise ProviderError(f"OpenAI error: {error_message}", provider=self.provider_name)
        return to_result(
            video_url=data.get("video_url") or nested(data, "video", "url"),
            task_id=data.get("id"),
            status=data.get("status"),
            duration=data.get("duration"),
            width=data.get("width"),
            height=data.get("height"),
        )

"""Pika video adapter."""

from __future__ import annotations

from typing import Any

from dramaforge.providers.base import GenerationProvider, first_present, nested, to_result
from dramaforge.providers.models import GenerationRequest, GenerationResult


class PikaVideoProvider(GenerationProvider):
    provider_name = "pika"
    label = "Pika API"
    default_endpoint = "/generate"
    default_query_endpoint = "/job/{taskId}"

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        payload: dict[str, Any] = {
            "model": self._model_for(request),
            "promptText": request.prompt,
        }
        if request.image_url:
            payload["image"] = request.image_url
        if request.style:
            payload["style"] = request.style
        if request.motion_level is not None:
            payload["motion"] = request.motion_level
        if request.aspect_ratio:
            payload["aspectRatio"] = request.aspect_ratio

        data = await self._post_json(self.endpoint, payload)
        return self._parse(data)

    async def poll_task_status(self, task_id: str) -> GenerationResult:
        data = await self._get_status(self._query_path(task_id))
        result = self._parse(data)
        if not result.task_id:
            result.task_id = task_id
        return result

    @staticmethod
    def _parse(data: dict[str, Any]) -> GenerationResult:
        return to_result(
            video_url=first_present(nested(data, "video", "url"), data.get("video_url")),
            task_id=first_present(data.get("id"), data.get("task_id")),
            status=data.get("status"),
        )

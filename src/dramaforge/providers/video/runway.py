"""Runway video adapter."""

from __future__ import annotations

from typing import Any

from dramaforge.providers.base import GenerationProvider, first_present, to_result
from dramaforge.providers.models import GenerationRequest, GenerationResult


class RunwayVideoProvider(GenerationProvider):
    provider_name = "runway"
    label = "Runway API"
    default_endpoint = "/generations"
    default_query_endpoint = "/generations/{taskId}"

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        payload: dict[str, Any] = {
            "model": self._model_for(request),
            "text_prompt": request.prompt,
        }
        if request.image_url:
            payload["init_image"] = request.image_url
        if request.duration:
            payload["seconds"] = request.duration
        if request.seed is not None:
            payload["seed"] = request.seed

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
        output = data.get("output")
        first_output = output[0] if isinstance(output, list) and output else None
        return to_result(
            video_url=first_present(first_output, data.get("video_url")),
            task_id=data.get("id"),
            status=data.get("status"),
        )

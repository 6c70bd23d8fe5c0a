"""MiniMax video adapter."""

from __future__ import annotations

from typing import Any

from dramaforge.providers.base import GenerationProvider, to_result
from dramaforge.providers.models import GenerationRequest, GenerationResult


class MinimaxVideoProvider(GenerationProvider):
    """MiniMax returns a file id once done; the download URL is derived from it."""

    provider_name = "minimax"
    label = "Minimax API"
    default_endpoint = "/video_generation"
    default_query_endpoint = "/query/video_generation?task_id={taskId}"

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        payload: dict[str, Any] = {"model": self._model_for(request), "prompt": request.prompt}
        if request.image_url:
            payload["first_frame_image"] = request.image_url

        data = await self._post_json(self.endpoint, payload)
        return to_result(
            video_url=data.get("video_url"),
            task_id=data.get("task_id"),
            status=data.get("status"),
        )

    async def poll_task_status(self, task_id: str) -> GenerationResult:
        data = await self._get_status(self._query_path(task_id))
        file_id = data.get("file_id")
        video_url = (
            self._build_url(f"/files/retrieve?file_id={file_id}")
            if file_id
            else data.get("video_url")
        )
        return to_result(
            video_url=video_url,
            task_id=data.get("task_id") or task_id,
            status=data.get("status"),
        )

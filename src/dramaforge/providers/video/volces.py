"""Volcengine Ark (doubao) video adapter."""

from __future__ import annotations

from typing import Any

from dramaforge.providers.base import GenerationProvider, first_present, nested, to_result
from dramaforge.providers.models import GenerationRequest, GenerationResult


class VolcesArkVideoProvider(GenerationProvider):
    """Content-array task API used by doubao, volcengine and volces configs."""

    provider_name = "doubao"
    label = "Volcengine video API"
    default_endpoint = "/contents/generations/tasks"
    default_query_endpoint = "/contents/generations/tasks/{taskId}"

    def build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        content: list[dict[str, Any]] = [{"type": "text", "text": request.prompt}]
        image = request.image_url or request.first_frame_url
        if image:
            content.insert(0, {"type": "image_url", "image_url": {"url": image}})

        payload: dict[str, Any] = {"model": self._model_for(request), "content": content}
        if request.duration:
            payload["duration"] = request.duration
        if request.aspect_ratio:
            payload["aspect_ratio"] = request.aspect_ratio
        if request.seed is not None:
            payload["seed"] = request.seed
        return payload

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        data = await self._post_json(self.endpoint, self.build_payload(request))
        inner = data.get("data") if isinstance(data.get("data"), dict) else {}
        return to_result(
            video_url=first_present(inner.get("video_url"), data.get("video_url")),
            task_id=first_present(inner.get("task_id"), data.get("task_id"), data.get("id")),
            status=first_present(inner.get("status"), data.get("status")),
            duration=first_present(inner.get("duration"), data.get("duration")),
            width=first_present(inner.get("width"), data.get("width")),
            height=first_present(inner.get("height"), data.get("height")),
        )

    async def poll_task_status(self, task_id: str) -> GenerationResult:
        data = await self._get_status(self._query_path(task_id))
        view = data.get("data") if isinstance(data.get("data"), dict) else data
        return to_result(
            video_url=first_present(
                view.get("video_url"),
                nested(view, "output", "video_url"),
                nested(view, "content", "video_url"),
            ),
            task_id=first_present(view.get("id"), view.get("task_id"), task_id),
            status=first_present(view.get("status"), view.get("task_status")),
            duration=first_present(view.get("duration"), nested(view, "output", "duration")),
            width=first_present(view.get("width"), nested(view, "output", "width")),
            height=first_present(view.get("height"), nested(view, "output", "height")),
        )

"""Chatfire video adapter.

Chatfire proxies several upstream models, so the request body follows the
model family: doubao/seedance content arrays, sora form-style fields, or a
flat default body.
"""

from __future__ import annotations

from typing import Any

from dramaforge.providers.base import GenerationProvider, first_present, nested, to_result
from dramaforge.providers.models import GenerationRequest, GenerationResult
from dramaforge.providers.video.openai_sora import sora_size


def _image_item(url: str, role: str | None = None) -> dict[str, Any]:
    item: dict[str, Any] = {"type": "image_url", "image_url": {"url": url}}
    if role:
        item["role"] = role
    return item


class ChatfireVideoProvider(GenerationProvider):
    """Video generation through the Chatfire aggregation API."""

    provider_name = "chatfire"
    label = "Chatfire video API"
    default_endpoint = "/video/generations"
    default_query_endpoint = "/video/task/{taskId}"

    def build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        model = self._model_for(request)
        lowered = model.lower()
        if "doubao" in lowered or "seedance" in lowered:
            return self._content_payload(model, request)
        if "sora" in lowered:
            return {
                "model": model,
                "prompt": request.prompt,
                "seconds": str(request.duration) if request.duration else "5",
                "size": sora_size(request.aspect_ratio),
                "input_reference": request.image_url or "",
            }
        return {
            "model": model,
            "prompt": request.prompt,
            "image_url": request.image_url or "",
            "duration": request.duration or 5,
            "size": request.aspect_ratio or "16:9",
        }

    def _content_payload(self, model: str, request: GenerationRequest) -> dict[str, Any]:
        text = request.prompt
        if request.aspect_ratio:
            text += f"  --ratio {request.aspect_ratio}"
        if request.duration:
            text += f"  --dur {request.duration}"
        content: list[dict[str, Any]] = [{"type": "text", "text": text}]

        if request.reference_image_urls:
            content.extend(
                _image_item(url, "reference_image") for url in request.reference_image_urls
            )
        elif request.first_frame_url and request.last_frame_url:
            content.append(_image_item(request.first_frame_url, "first_frame"))
            content.append(_image_item(request.last_frame_url, "last_frame"))
        elif request.image_url:
            content.append(_image_item(request.image_url))
        elif request.first_frame_url:
            content.append(_image_item(request.first_frame_url, "first_frame"))

        return {"model": model, "content": content}

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        data = await self._post_json(self.endpoint, self.build_payload(request))
        return self._parse(data)

    async def poll_task_status(self, task_id: str) -> GenerationResult:
        data = await self._get_status(self._query_path(task_id))
        result = self._parse(data, include_content=True)
        if not result.task_id:
            result.task_id = task_id
        return result

    def _parse(self, data: dict[str, Any], include_content: bool = False) -> GenerationResult:
        inner = data.get("data") if isinstance(data.get("data"), dict) else {}
        video_url = first_present(data.get("video_url"), inner.get("video_url"))
        if include_content and not video_url:
            video_url = nested(inner, "content", "video_url") or nested(
                data, "content", "video_url"
            )
        return to_result(
            video_url=video_url,
            task_id=first_present(inner.get("id"), data.get("id"), data.get("task_id")),
            status=first_present(data.get("status"), inner.get("status")),
            duration=first_present(data.get("duration"), inner.get("duration")),
            width=first_present(data.get("width"), inner.get("width")),
            height=first_present(data.get("height"), inner.get("height")),
        )

"""Default endpoint paths per provider and service type."""

from __future__ import annotations

from typing import NamedTuple

from dramaforge.models.ai_config import ServiceType

GEMINI_GENERATE = "/v1beta/models/{model}:generateContent"


class Endpoints(NamedTuple):
    endpoint: str = ""
    query_endpoint: str = ""


_OPENAI_STYLE = {
    ServiceType.TEXT: Endpoints("/chat/completions"),
    ServiceType.IMAGE: Endpoints("/images/generations"),
}

_VOLCES_VIDEO = Endpoints("/contents/generations/tasks", "/contents/generations/tasks/{taskId}")

DEFAULT_ENDPOINTS: dict[str, dict[ServiceType, Endpoints]] = {
    "gemini": {
        ServiceType.TEXT: Endpoints(GEMINI_GENERATE),
        ServiceType.IMAGE: Endpoints(GEMINI_GENERATE),
    },
    "openai": {
        **_OPENAI_STYLE,
        ServiceType.VIDEO: Endpoints("/videos", "/videos/{taskId}"),
    },
    "chatfire": {
        **_OPENAI_STYLE,
        ServiceType.VIDEO: Endpoints("/video/generations", "/video/task/{taskId}"),
    },
    "doubao": {ServiceType.VIDEO: _VOLCES_VIDEO},
    "runway": {ServiceType.VIDEO: Endpoints("/generations", "/generations/{taskId}")},
    "pika": {ServiceType.VIDEO: Endpoints("/generate", "/job/{taskId}")},
    "minimax": {
        ServiceType.VIDEO: Endpoints(
            "/video_generation", "/query/video_generation?task_id={taskId}"
        )
    },
}
DEFAULT_ENDPOINTS["google"] = DEFAULT_ENDPOINTS["gemini"]
DEFAULT_ENDPOINTS["volcengine"] = DEFAULT_ENDPOINTS["doubao"]
DEFAULT_ENDPOINTS["volces"] = DEFAULT_ENDPOINTS["doubao"]


def default_endpoints(provider: str, service_type: ServiceType | str) -> Endpoints:
    """Return the endpoint pair a new configuration should start with.

    Unknown providers get OpenAI-style text/image paths and no video paths.
    """
    service = ServiceType(service_type)
    table = DEFAULT_ENDPOINTS.get(provider.strip().lower())
    if table is None:
        return _OPENAI_STYLE.get(service, Endpoints())
    return table.get(service, Endpoints())

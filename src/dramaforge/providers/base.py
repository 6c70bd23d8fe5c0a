"""Base classes for provider adapters."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

import httpx

from dramaforge.config import get_logger
from dramaforge.exceptions import ProviderError
from dramaforge.providers.models import GenerationRequest, GenerationResult

logger = get_logger(__name__)

DEFAULT_HTTP_TIMEOUT = 120.0  # seconds
ERROR_TEXT_LIMIT = 500


class SecureHeaders(dict[str, str]):
    """Header dict that masks the bearer token when printed or logged."""

    def __str__(self) -> str:
        return str(
            {
                k: "Bearer [REDACTED]" if k == "Authorization" else v
                for k, v in self.items()
            }
        )

    def __repr__(self) -> str:
        return self.__str__()


def first_present(*values: Any) -> Any:
    """Return the first truthy value, or None."""
    for value in values:
        if value:
            return value
    return None


def nested(data: Any, *path: str) -> Any:
    """Walk dict keys, returning None as soon as a level is missing."""
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def to_result(
    *,
    video_url: Any = None,
    image_url: Any = None,
    task_id: Any = None,
    status: Any = None,
    duration: Any = None,
    width: Any = None,
    height: Any = None,
    revised_prompt: Any = None,
) -> GenerationResult:
    """Build a canonical result from loosely typed provider fields."""
    return GenerationResult(
        video_url=str(video_url or ""),
        image_url=str(image_url or ""),
        task_id=str(task_id or ""),
        status=str(status or ""),
        duration=duration or None,
        width=width or None,
        height=height or None,
        revised_prompt=revised_prompt or None,
    )


class HTTPProvider:
    """HTTP plumbing shared by every adapter.

    Owns an ``httpx.AsyncClient`` (created lazily unless one is injected),
    bearer authentication and URL joining.
    """

    provider_name = "generic"
    label = "Provider API"
    default_endpoint = ""
    default_query_endpoint = ""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        model: str = "",
        endpoint: str | None = None,
        query_endpoint: str | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            base_url: Provider base URL
            api_key: Bearer token
            model: Default model when a request names none
            endpoint: Submission path; adapter default when empty
            query_endpoint: Status path, may contain {taskId} or {task_id}
            timeout: HTTP timeout in seconds
            client: Optional pre-built HTTP client (tests inject mock transports)
        """
        self.base_url = base_url
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint or self.default_endpoint
        self.query_endpoint = query_endpoint or self.default_query_endpoint
        self.timeout = timeout
        self.client = client
        self._owns_client = client is None

    def _init_http_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self.client

    async def __aenter__(self) -> HTTPProvider:
        self._init_http_client()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self.client is not None and self._owns_client:
            await self.client.aclose()
            self.client = None

    def _get_auth_headers(self, content_type: str | None = "application/json") -> dict[str, str]:
        headers = SecureHeaders()
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _build_url(self, path: str) -> str:
        """Join base URL and path with exactly one slash between them."""
        base = self.base_url.rstrip("/")
        if not path:
            return base
        return f"{base}/{path.lstrip('/')}"

    def _query_path(self, task_id: str) -> str:
        """Substitute the task id into the query endpoint template."""
        template = self.query_endpoint
        if "{taskId}" in template:
            return template.replace("{taskId}", task_id)
        if "{task_id}" in template:
            return template.replace("{task_id}", task_id)
        return f"{template.rstrip('/')}/{task_id}"

    def _decode(self, response: httpx.Response, error_label: str) -> dict[str, Any]:
        if not response.is_success:
            error_text = response.text
            logger.error(
                f"{self.label} error",
                status_code=response.status_code,
                error_text=error_text[:ERROR_TEXT_LIMIT],
                url=str(response.request.url),
                provider=self.provider_name,
            )
            raise ProviderError(
                f"{error_label}: {response.status_code} - {error_text}",
                status_code=response.status_code,
                body=error_text,
                provider=self.provider_name,
            )
        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise ProviderError(
                f"{self.label} returned invalid JSON: {e.msg}",
                status_code=response.status_code,
                body=response.text,
                provider=self.provider_name,
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(
                f"{self.label} returned {type(data).__name__}, expected an object",
                status_code=response.status_code,
                body=response.text,
                provider=self.provider_name,
            )
        return data

    async def _post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        client = self._init_http_client()
        url = self._build_url(path)
        logger.debug("Provider POST", url=url, provider=self.provider_name)
        response = await client.post(url, headers=self._get_auth_headers(), json=payload)
        return self._decode(response, f"{self.label} error")

    async def _post_multipart(self, path: str, fields: dict[str, str]) -> dict[str, Any]:
        client = self._init_http_client()
        url = self._build_url(path)
        logger.debug("Provider multipart POST", url=url, provider=self.provider_name)
        # (None, value) tuples make httpx send plain form fields as multipart parts
        files = {name: (None, value) for name, value in fields.items()}
        response = await client.post(
            url, headers=self._get_auth_headers(content_type=None), files=files
        )
        return self._decode(response, f"{self.label} error")

    async def _get_status(self, path: str) -> dict[str, Any]:
        client = self._init_http_client()
        url = self._build_url(path)
        response = await client.get(url, headers=self._get_auth_headers(content_type=None))
        return self._decode(response, "Task status query failed")


class GenerationProvider(HTTPProvider, ABC):
    """Adapter contract for image and video generation."""

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Submit a generation request.

        Returns a result carrying either the media URL or a provider task id.

        Raises:
            ProviderError: On a non-success status or unusable response.
        """

    @abstractmethod
    async def poll_task_status(self, task_id: str) -> GenerationResult:
        """Query the provider for the state of a submitted task."""

    def _model_for(self, request: GenerationRequest) -> str:
        return request.model or self.model

"""Canonical request and result models shared by every provider adapter."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from dramaforge.models.jobs import ReferenceMode

FAILED_PROVIDER_STATUSES = frozenset({"failed", "failure", "error", "cancelled", "canceled"})


class ProviderType(str, Enum):
    """Provider identifiers recognised on service configurations."""

    CHATFIRE = "chatfire"
    DOUBAO = "doubao"
    VOLCENGINE = "volcengine"
    VOLCES = "volces"
    OPENAI = "openai"
    RUNWAY = "runway"
    PIKA = "pika"
    MINIMAX = "minimax"
    GEMINI = "gemini"
    GOOGLE = "google"


class GenerationRequest(BaseModel):
    """Canonical media generation request handed to an adapter."""

    prompt: str
    model: str | None = None
    reference_mode: ReferenceMode | None = None
    image_url: str | None = None
    first_frame_url: str | None = None
    last_frame_url: str | None = None
    reference_image_urls: list[str] | None = None
    duration: int | None = None
    fps: int | None = None
    aspect_ratio: str | None = None
    style: str | None = None
    motion_level: int | None = None
    camera_motion: str | None = None
    seed: int | None = None
    # Image-only knobs
    size: str | None = None
    quality: str | None = None
    n: int = 1


class GenerationResult(BaseModel):
    """Canonical adapter result.

    A media URL means the job is done; a task id without one means the
    provider accepted the job and must be polled.
    """

    video_url: str = ""
    image_url: str = ""
    task_id: str = ""
    status: str = ""
    duration: float | None = None
    width: int | None = None
    height: int | None = None
    revised_prompt: str | None = None

    @property
    def media_url(self) -> str:
        return self.video_url or self.image_url

    @property
    def is_complete(self) -> bool:
        return bool(self.media_url)

    @property
    def needs_polling(self) -> bool:
        return bool(self.task_id) and not self.is_complete

    @property
    def provider_failed(self) -> bool:
        return self.status.lower() in FAILED_PROVIDER_STATUSES


class TextRequest(BaseModel):
    """Request for a chat-style text completion."""

    prompt: str
    system_prompt: str | None = None
    model: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int | None = 4000

    def messages(self) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": self.prompt})
        return messages

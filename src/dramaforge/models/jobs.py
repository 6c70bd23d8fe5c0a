"""Generation job records tracked by the task engine."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dramaforge.models.graph import RecordId
from dramaforge.storage.ids import utc_now


class JobStatus(str, Enum):
    """State of a task or generation record."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class TaskType(str, Enum):
    """Kind of work a task record tracks."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    STORYBOARD = "storyboard"
    BACKGROUND_EXTRACTION = "background_extraction"


class ReferenceMode(str, Enum):
    """How reference images are attached to a video request."""

    SINGLE = "single"
    FIRST_LAST = "first_last"
    MULTIPLE = "multiple"
    NONE = "none"


class FrameType(str, Enum):
    """Frame prompt flavors derived from a storyboard."""

    FIRST = "first"
    KEY = "key"
    LAST = "last"
    PANEL = "panel"
    ACTION = "action"


class JobRecord(BaseModel):
    """Fields shared by every record driven through the job state machine."""

    model_config = ConfigDict(extra="allow")

    id: RecordId
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None


class Task(JobRecord):
    """A text-side generation job (characters, storyboards, backgrounds)."""

    id: str
    type: TaskType
    resource_id: str | None = None
    progress: int = Field(default=0, ge=0, le=100)
    message: str = ""
    error: str | None = None
    result: str | None = Field(
        default=None, description="JSON-serialized result payload"
    )


class GenerationTarget(BaseModel):
    """Which graph node a generation writes its media into."""

    storyboard_id: RecordId | None = None
    scene_id: RecordId | None = None
    character_id: RecordId | None = None

    def populated(self) -> list[str]:
        """Names of the foreign keys that are set, in fan-out order."""
        return [
            name
            for name in ("storyboard_id", "scene_id", "character_id")
            if getattr(self, name) is not None
        ]


class ImageGeneration(JobRecord):
    """An image generation job and its result."""

    id: int
    drama_id: str
    storyboard_id: RecordId | None = None
    scene_id: RecordId | None = None
    character_id: RecordId | None = None
    image_type: str = "storyboard"
    frame_type: str | None = None
    provider: str = "openai"
    model: str | None = None
    prompt: str
    negative_prompt: str | None = None
    size: str | None = None
    quality: str | None = None
    style: str | None = None
    steps: int | None = None
    cfg_scale: float | None = None
    seed: int | None = None
    width: int | None = None
    height: int | None = None
    reference_images: list[str] = Field(default_factory=list)
    task_id: str | None = None
    image_url: str | None = None
    error_msg: str | None = None


class VideoGeneration(JobRecord):
    """A video generation job and its result."""

    id: int
    drama_id: str
    storyboard_id: RecordId | None = None
    scene_id: RecordId | None = None
    image_gen_id: int | None = None
    provider: str = "doubao"
    model: str | None = None
    prompt: str
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
    task_id: str | None = None
    video_url: str | None = None
    width: int | None = None
    height: int | None = None
    error_msg: str | None = None


class FramePromptRecord(BaseModel):
    """A saved frame prompt for one (storyboard, frame type) pair."""

    id: int
    storyboard_id: str
    frame_type: FrameType
    prompt: str
    description: str | None = None
    layout: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class FramePromptResult(BaseModel):
    """Result of generating frame prompts for a storyboard."""

    frame_type: FrameType
    single_frame: dict[str, Any] | None = None
    multi_frame: dict[str, Any] | None = None


class GenerateImageRequest(BaseModel):
    """Caller input for an image generation job."""

    drama_id: str
    prompt: str
    storyboard_id: RecordId | None = None
    scene_id: RecordId | None = None
    character_id: RecordId | None = None
    image_type: str | None = None
    frame_type: str | None = None
    provider: str | None = None
    model: str | None = None
    negative_prompt: str | None = None
    size: str | None = None
    quality: str | None = None
    style: str | None = None
    steps: int | None = None
    cfg_scale: float | None = None
    seed: int | None = None
    width: int | None = None
    height: int | None = None
    reference_images: list[str] = Field(default_factory=list)

    def target(self) -> GenerationTarget:
        return GenerationTarget(
            storyboard_id=self.storyboard_id,
            scene_id=self.scene_id,
            character_id=self.character_id,
        )


class GenerateVideoRequest(BaseModel):
    """Caller input for a video generation job."""

    drama_id: str
    prompt: str
    storyboard_id: RecordId | None = None
    scene_id: RecordId | None = None
    image_gen_id: int | None = None
    provider: str | None = None
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

    def target(self) -> GenerationTarget:
        return GenerationTarget(storyboard_id=self.storyboard_id, scene_id=self.scene_id)

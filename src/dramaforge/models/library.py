"""Reusable media: the character library, assets and video merges."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from dramaforge.models.graph import RecordId
from dramaforge.models.jobs import JobStatus
from dramaforge.storage.ids import utc_now


class CharacterLibraryItem(BaseModel):
    """A character portrait kept for reuse across dramas."""

    id: str
    name: str
    category: str | None = None
    image_url: str = ""
    description: str | None = None
    tags: str | None = None
    source_type: str = "manual"
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class AssetType(str, Enum):
    """Kind of media an asset points at."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class Asset(BaseModel):
    """A finished piece of media filed under a drama."""

    id: int
    name: str
    type: AssetType
    url: str
    drama_id: str | None = None
    episode_id: str | None = None
    storyboard_id: RecordId | None = None
    storyboard_num: int | None = None
    description: str | None = None
    category: str | None = None
    thumbnail_url: str | None = None
    local_path: str | None = None
    file_size: int | None = None
    mime_type: str | None = None
    width: int | None = None
    height: int | None = None
    duration: int | None = None
    format: str | None = None
    image_gen_id: int | None = None
    video_gen_id: int | None = None
    is_favorite: bool = False
    view_count: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class SceneClip(BaseModel):
    """One video segment in a merge, trimmed to ``start_time``..``end_time``."""

    scene_id: str
    video_url: str
    start_time: float = 0
    end_time: float = 0
    duration: float = 0
    order: int = 0


class VideoMerge(BaseModel):
    """Request to stitch an episode's clips into one video."""

    id: int
    episode_id: str
    drama_id: str
    title: str
    provider: str = "local"
    model: str | None = None
    status: JobStatus = JobStatus.PENDING
    scenes: list[SceneClip] = Field(default_factory=list)
    merged_url: str | None = None
    duration: float | None = None
    task_id: str | None = None
    error_msg: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None

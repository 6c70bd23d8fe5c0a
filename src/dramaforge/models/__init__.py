"""Data models for DramaForge."""

from dramaforge.models.ai_config import AIConfigCreate, AIServiceConfig, ServiceType
from dramaforge.models.graph import (
    BackgroundRef,
    Character,
    CharacterRef,
    Drama,
    DramaStats,
    DramaStatus,
    Episode,
    GraphRecord,
    RecordId,
    Scene,
    SceneStatus,
    Storyboard,
    StoryboardView,
)
from dramaforge.models.jobs import (
    FramePromptRecord,
    FramePromptResult,
    FrameType,
    GenerateImageRequest,
    GenerateVideoRequest,
    GenerationTarget,
    ImageGeneration,
    JobRecord,
    JobStatus,
    ReferenceMode,
    Task,
    TaskType,
    VideoGeneration,
)
from dramaforge.models.library import (
    Asset,
    AssetType,
    CharacterLibraryItem,
    SceneClip,
    VideoMerge,
)

__all__ = [
    "AIConfigCreate",
    "AIServiceConfig",
    "Asset",
    "AssetType",
    "BackgroundRef",
    "Character",
    "CharacterLibraryItem",
    "CharacterRef",
    "Drama",
    "DramaStats",
    "DramaStatus",
    "Episode",
    "FramePromptRecord",
    "FramePromptResult",
    "FrameType",
    "GenerateImageRequest",
    "GenerateVideoRequest",
    "GenerationTarget",
    "GraphRecord",
    "ImageGeneration",
    "JobRecord",
    "JobStatus",
    "RecordId",
    "ReferenceMode",
    "Scene",
    "SceneClip",
    "SceneStatus",
    "ServiceType",
    "Storyboard",
    "StoryboardView",
    "Task",
    "TaskType",
    "VideoGeneration",
    "VideoMerge",
]

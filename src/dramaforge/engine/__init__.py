"""Generation task engine: job records, polling and generation services."""

from dramaforge.engine.ai_client import AIClient
from dramaforge.engine.ai_config import AIConfigService
from dramaforge.engine.assets import AssetService
from dramaforge.engine.frames import FramePromptService
from dramaforge.engine.generation import StoryGenerationService
from dramaforge.engine.image import ImageGenerationService
from dramaforge.engine.merges import VideoMergeService
from dramaforge.engine.polling import PollPolicy
from dramaforge.engine.records import JobRecordStore
from dramaforge.engine.runner import BackgroundRunner
from dramaforge.engine.tasks import TaskStore
from dramaforge.engine.video import VideoGenerationService

__all__ = [
    "AIClient",
    "AIConfigService",
    "AssetService",
    "BackgroundRunner",
    "FramePromptService",
    "ImageGenerationService",
    "JobRecordStore",
    "PollPolicy",
    "StoryGenerationService",
    "TaskStore",
    "VideoGenerationService",
    "VideoMergeService",
]

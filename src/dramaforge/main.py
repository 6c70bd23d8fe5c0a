"""DramaForge main entry point."""

from __future__ import annotations

import httpx

from dramaforge.config import DramaForgeSettings, get_logger, get_settings
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
from dramaforge.graph import CharacterLibrary, ContentGraphRepository
from dramaforge.models.jobs import ImageGeneration, VideoGeneration
from dramaforge.providers.cache import ProviderClientCache
from dramaforge.storage import KeyValueStore, StorageKeys, create_store

logger = get_logger(__name__)


class DramaForge:
    """The local engine: store, content graph and every generation service.

    Generation services schedule work on the running event loop, so their
    submit operations must be called from inside one.
    """

    def __init__(
        self,
        settings: DramaForgeSettings | None = None,
        store: KeyValueStore | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize DramaForge instance.

        Args:
            settings: Configuration settings (uses the global settings if omitted)
            store: Key-value substrate (built from settings if omitted)
            http_client: Shared HTTP client for provider adapters
        """
        self.settings = settings or get_settings()
        self.store = store or create_store(self.settings)
        self.repository = ContentGraphRepository(self.store)
        self.runner = BackgroundRunner()
        self.configs = AIConfigService(self.store, ProviderClientCache(self.runner))
        self.ai = AIClient(self.configs, self.settings, http_client)
        self.policy = PollPolicy(
            interval=self.settings.poll_interval,
            max_attempts=self.settings.poll_max_attempts,
        )

        self.tasks = TaskStore(self.store)
        image_records = JobRecordStore(
            self.store, StorageKeys.IMAGES, ImageGeneration, "Image generation"
        )
        video_records = JobRecordStore(
            self.store, StorageKeys.VIDEOS, VideoGeneration, "Video generation"
        )
        self.images = ImageGenerationService(
            self.repository, image_records, self.ai, self.runner, self.policy
        )
        self.videos = VideoGenerationService(
            self.repository, video_records, image_records, self.ai, self.runner, self.policy
        )
        self.story = StoryGenerationService(self.repository, self.tasks, self.ai, self.runner)
        self.frames = FramePromptService(self.store, self.repository, self.ai)
        self.library = CharacterLibrary(self.store, self.repository)
        self.assets = AssetService(self.store, self.repository, image_records, video_records)
        self.merges = VideoMergeService(self.store)

        logger.debug(
            "DramaForge engine ready",
            store_backend=self.settings.store_backend,
            poll_interval=self.policy.interval,
            poll_max_attempts=self.policy.max_attempts,
        )

    async def join(self) -> None:
        """Wait for every background job submitted so far."""
        await self.runner.join()

    async def aclose(self) -> None:
        """Finish outstanding background jobs, then release provider clients."""
        await self.runner.join()
        await self.ai.aclose()

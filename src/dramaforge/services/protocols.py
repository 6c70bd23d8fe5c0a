"""Protocol shared by the local engine and the remote backend client."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from dramaforge.models.ai_config import AIConfigCreate, AIServiceConfig
from dramaforge.models.graph import (
    Character,
    Drama,
    DramaStats,
    Episode,
    RecordId,
    Scene,
    Storyboard,
    StoryboardView,
)
from dramaforge.models.jobs import (
    FramePromptRecord,
    FramePromptResult,
    GenerateImageRequest,
    GenerateVideoRequest,
    ImageGeneration,
    Task,
    VideoGeneration,
)
from dramaforge.models.library import Asset, CharacterLibraryItem, VideoMerge
from dramaforge.storage import Page


@runtime_checkable
class DramaBackend(Protocol):
    """Every public content-graph and generation operation.

    Callers pick an implementation once, from settings, and never branch on
    which one is active. Generation calls return as soon as the job record
    exists; ``join`` waits for local background work and is a no-op
    remotely.
    """

    # Dramas
    async def list_dramas(
        self,
        status: str | None = None,
        genre: str | None = None,
        keyword: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[Drama]: ...

    async def create_drama(
        self,
        title: str,
        description: str | None = None,
        genre: str | None = None,
        tags: str | list[str] | None = None,
        style: str | None = None,
    ) -> Drama: ...

    async def get_drama(self, drama_id: str) -> Drama: ...

    async def update_drama(self, drama_id: str, fields: dict[str, Any]) -> Drama: ...

    async def delete_drama(self, drama_id: str) -> bool: ...

    async def get_stats(self) -> DramaStats: ...

    async def save_outline(
        self,
        drama_id: str,
        title: str,
        summary: str,
        genre: str | None = None,
        tags: str | list[str] | None = None,
    ) -> Drama: ...

    async def save_progress(
        self, drama_id: str, current_step: str, step_data: Any = None
    ) -> Drama: ...

    # Characters
    async def get_characters(self, drama_id: str) -> list[Character]: ...

    async def save_characters(
        self, drama_id: str, characters: list[dict[str, Any]]
    ) -> list[Character]: ...

    async def add_character(self, drama_id: str, data: dict[str, Any]) -> Character: ...

    async def update_character(
        self, character_id: RecordId, fields: dict[str, Any]
    ) -> Character: ...

    async def delete_character(self, character_id: RecordId) -> bool: ...

    # Episodes
    async def save_episodes(
        self, drama_id: str, episodes: list[dict[str, Any]]
    ) -> list[Episode]: ...

    async def update_episode(self, episode_id: str, fields: dict[str, Any]) -> Episode: ...

    async def finalize_episode(self, episode_id: str) -> Episode: ...

    # Storyboards
    async def list_storyboards(self, episode_id: str) -> list[StoryboardView]: ...

    async def create_storyboard(self, episode_id: str, data: dict[str, Any]) -> Storyboard: ...

    async def update_storyboard(
        self, storyboard_id: str, fields: dict[str, Any]
    ) -> Storyboard: ...

    async def delete_storyboard(self, storyboard_id: str) -> bool: ...

    # Scenes
    async def create_scene(self, drama_id: str, data: dict[str, Any]) -> Scene: ...

    async def list_scenes(self, drama_id: str, episode_id: str | None = None) -> list[Scene]: ...

    async def update_scene(self, scene_id: str, fields: dict[str, Any]) -> Scene: ...

    async def delete_scene(self, scene_id: str) -> bool: ...

    # AI service configurations
    async def list_configs(self, service_type: str | None = None) -> list[AIServiceConfig]: ...

    async def create_config(self, data: AIConfigCreate) -> AIServiceConfig: ...

    async def update_config(self, config_id: int, fields: dict[str, Any]) -> AIServiceConfig: ...

    async def delete_config(self, config_id: int) -> bool: ...

    # Text generation tasks
    async def generate_characters(
        self,
        drama_id: str,
        outline: str | None = None,
        count: int | None = None,
        temperature: float | None = None,
    ) -> Task: ...

    async def generate_storyboard(self, episode_id: str) -> Task: ...

    async def extract_backgrounds(self, episode_id: str) -> Task: ...

    async def generate_episodes(self, drama_id: str, count: int) -> list[Episode]: ...

    async def get_task_status(self, task_id: str) -> Task: ...

    # Images
    async def generate_image(self, request: GenerateImageRequest) -> ImageGeneration: ...

    async def generate_scene_image(
        self, scene_id: str, prompt: str | None = None
    ) -> list[ImageGeneration]: ...

    async def generate_character_image(
        self, character_id: RecordId, drama_id: str, prompt: str
    ) -> ImageGeneration: ...

    async def batch_generate_images(self, episode_id: str) -> list[ImageGeneration]: ...

    async def get_image(self, image_id: int) -> ImageGeneration: ...

    async def list_images(
        self,
        drama_id: str | None = None,
        scene_id: str | None = None,
        storyboard_id: str | None = None,
        frame_type: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[ImageGeneration]: ...

    async def delete_image(self, image_id: int) -> None: ...

    # Videos
    async def generate_video(self, request: GenerateVideoRequest) -> VideoGeneration: ...

    async def generate_video_from_image(
        self, image_gen_id: int, drama_id: str, prompt: str
    ) -> VideoGeneration: ...

    async def batch_generate_videos(self, episode_id: str) -> list[VideoGeneration]: ...

    async def get_video(self, video_id: int) -> VideoGeneration: ...

    async def list_videos(
        self,
        drama_id: str | None = None,
        storyboard_id: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[VideoGeneration]: ...

    async def delete_video(self, video_id: int) -> None: ...

    # Frame prompts
    async def generate_frame_prompt(
        self, storyboard_id: str, frame_type: str, panel_count: int | None = None
    ) -> FramePromptResult: ...

    async def get_frame_prompts(self, storyboard_id: str) -> list[FramePromptRecord]: ...

    # Character library
    async def list_library_items(
        self,
        category: str | None = None,
        source_type: str | None = None,
        keyword: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[CharacterLibraryItem]: ...

    async def create_library_item(self, data: dict[str, Any]) -> CharacterLibraryItem: ...

    async def get_library_item(self, item_id: str) -> CharacterLibraryItem: ...

    async def delete_library_item(self, item_id: str) -> bool: ...

    async def upload_character_image(self, character_id: RecordId, image_url: str) -> Character: ...

    async def apply_library_item(self, character_id: RecordId, item_id: str) -> Character: ...

    async def add_character_to_library(
        self, character_id: RecordId, category: str | None = None
    ) -> CharacterLibraryItem: ...

    async def generate_character_portrait(
        self, character_id: RecordId, model: str | None = None
    ) -> ImageGeneration: ...

    async def batch_generate_character_portraits(
        self, character_ids: list[RecordId], model: str | None = None
    ) -> list[ImageGeneration]: ...

    # Assets
    async def create_asset(self, data: dict[str, Any]) -> Asset: ...

    async def update_asset(self, asset_id: int, fields: dict[str, Any]) -> Asset: ...

    async def get_asset(self, asset_id: int) -> Asset: ...

    async def list_assets(
        self,
        drama_id: str | None = None,
        episode_id: str | None = None,
        storyboard_id: str | None = None,
        asset_type: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[Asset]: ...

    async def delete_asset(self, asset_id: int) -> bool: ...

    async def import_asset_from_image(self, image_gen_id: int) -> Asset: ...

    async def import_asset_from_video(self, video_gen_id: int) -> Asset: ...

    # Video merges
    async def merge_videos(
        self,
        episode_id: str,
        drama_id: str,
        title: str,
        scenes: list[dict[str, Any]],
        provider: str | None = None,
        model: str | None = None,
    ) -> VideoMerge: ...

    async def get_merge(self, merge_id: int) -> VideoMerge: ...

    async def list_merges(
        self,
        episode_id: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[VideoMerge]: ...

    async def delete_merge(self, merge_id: int) -> bool: ...

    # Lifecycle
    async def join(self) -> None: ...

    async def aclose(self) -> None: ...

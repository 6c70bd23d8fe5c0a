"""Backend running the engine in-process."""

from __future__ import annotations

from typing import Any

from dramaforge.main import DramaForge
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


class LocalBackend:
    """Async facade over a :class:`DramaForge` engine.

    The engine's operations are synchronous apart from background jobs;
    they are exposed as coroutines so callers see the same surface as
    :class:`RemoteBackend`.
    """

    def __init__(self, engine: DramaForge) -> None:
        self.engine = engine
        self.repository = engine.repository

    # Dramas

    async def list_dramas(
        self,
        status: str | None = None,
        genre: str | None = None,
        keyword: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[Drama]:
        return self.repository.list_dramas(status, genre, keyword, page, page_size)

    async def create_drama(
        self,
        title: str,
        description: str | None = None,
        genre: str | None = None,
        tags: str | list[str] | None = None,
        style: str | None = None,
    ) -> Drama:
        return self.repository.create_drama(title, description, genre, tags, style)

    async def get_drama(self, drama_id: str) -> Drama:
        return self.repository.get_drama(drama_id)

    async def update_drama(self, drama_id: str, fields: dict[str, Any]) -> Drama:
        return self.repository.update_drama(drama_id, fields)

    async def delete_drama(self, drama_id: str) -> bool:
        return self.repository.delete_drama(drama_id)

    async def get_stats(self) -> DramaStats:
        return self.repository.get_stats()

    async def save_outline(
        self,
        drama_id: str,
        title: str,
        summary: str,
        genre: str | None = None,
        tags: str | list[str] | None = None,
    ) -> Drama:
        return self.repository.save_outline(drama_id, title, summary, genre, tags)

    async def save_progress(
        self, drama_id: str, current_step: str, step_data: Any = None
    ) -> Drama:
        return self.repository.save_progress(drama_id, current_step, step_data)

    # Characters

    async def get_characters(self, drama_id: str) -> list[Character]:
        return self.repository.get_characters(drama_id)

    async def save_characters(
        self, drama_id: str, characters: list[dict[str, Any]]
    ) -> list[Character]:
        return self.repository.save_characters(drama_id, characters)

    async def add_character(self, drama_id: str, data: dict[str, Any]) -> Character:
        return self.repository.add_character(drama_id, data)

    async def update_character(
        self, character_id: RecordId, fields: dict[str, Any]
    ) -> Character:
        return self.repository.update_character(character_id, fields)

    async def delete_character(self, character_id: RecordId) -> bool:
        return self.repository.delete_character(character_id)

    # Episodes

    async def save_episodes(
        self, drama_id: str, episodes: list[dict[str, Any]]
    ) -> list[Episode]:
        return self.repository.save_episodes(drama_id, episodes)

    async def update_episode(self, episode_id: str, fields: dict[str, Any]) -> Episode:
        return self.repository.update_episode(episode_id, fields)

    async def finalize_episode(self, episode_id: str) -> Episode:
        return self.repository.finalize_episode(episode_id)

    # Storyboards

    async def list_storyboards(self, episode_id: str) -> list[StoryboardView]:
        return self.repository.list_storyboards(episode_id)

    async def create_storyboard(self, episode_id: str, data: dict[str, Any]) -> Storyboard:
        return self.repository.create_storyboard(episode_id, data)

    async def update_storyboard(
        self, storyboard_id: str, fields: dict[str, Any]
    ) -> Storyboard:
        return self.repository.update_storyboard(storyboard_id, fields)

    async def delete_storyboard(self, storyboard_id: str) -> bool:
        return self.repository.delete_storyboard(storyboard_id)

    # Scenes

    async def create_scene(self, drama_id: str, data: dict[str, Any]) -> Scene:
        return self.repository.create_scene(drama_id, data)

    async def list_scenes(self, drama_id: str, episode_id: str | None = None) -> list[Scene]:
        return self.repository.list_scenes(drama_id, episode_id)

    async def update_scene(self, scene_id: str, fields: dict[str, Any]) -> Scene:
        return self.repository.update_scene(scene_id, fields)

    async def delete_scene(self, scene_id: str) -> bool:
        return self.repository.delete_scene(scene_id)

    # AI service configurations

    async def list_configs(self, service_type: str | None = None) -> list[AIServiceConfig]:
        return self.engine.configs.list_configs(service_type)

    async def create_config(self, data: AIConfigCreate) -> AIServiceConfig:
        return self.engine.configs.create_config(data)

    async def update_config(self, config_id: int, fields: dict[str, Any]) -> AIServiceConfig:
        return self.engine.configs.update_config(config_id, fields)

    async def delete_config(self, config_id: int) -> bool:
        return self.engine.configs.delete_config(config_id)

    # Text generation tasks

    async def generate_characters(
        self,
        drama_id: str,
        outline: str | None = None,
        count: int | None = None,
        temperature: float | None = None,
    ) -> Task:
        return self.engine.story.generate_characters(drama_id, outline, count, temperature)

    async def generate_storyboard(self, episode_id: str) -> Task:
        return self.engine.story.generate_storyboard(episode_id)

    async def extract_backgrounds(self, episode_id: str) -> Task:
        return self.engine.story.extract_backgrounds(episode_id)

    async def generate_episodes(self, drama_id: str, count: int) -> list[Episode]:
        return self.engine.story.generate_episodes(drama_id, count)

    async def get_task_status(self, task_id: str) -> Task:
        return self.engine.story.get_task_status(task_id)

    # Images

    async def generate_image(self, request: GenerateImageRequest) -> ImageGeneration:
        return self.engine.images.generate_image(request)

    async def generate_scene_image(
        self, scene_id: str, prompt: str | None = None
    ) -> list[ImageGeneration]:
        return self.engine.images.generate_for_scene(scene_id, prompt)

    async def generate_character_image(
        self, character_id: RecordId, drama_id: str, prompt: str
    ) -> ImageGeneration:
        return self.engine.images.generate_for_character(character_id, drama_id, prompt)

    async def batch_generate_images(self, episode_id: str) -> list[ImageGeneration]:
        return self.engine.images.batch_generate_for_episode(episode_id)

    async def get_image(self, image_id: int) -> ImageGeneration:
        return self.engine.images.get_image(image_id)

    async def list_images(
        self,
        drama_id: str | None = None,
        scene_id: str | None = None,
        storyboard_id: str | None = None,
        frame_type: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[ImageGeneration]:
        return self.engine.images.list_images(
            drama_id, scene_id, storyboard_id, frame_type, status, page, page_size
        )

    async def delete_image(self, image_id: int) -> None:
        self.engine.images.delete_image(image_id)

    # Videos

    async def generate_video(self, request: GenerateVideoRequest) -> VideoGeneration:
        return self.engine.videos.generate_video(request)

    async def generate_video_from_image(
        self, image_gen_id: int, drama_id: str, prompt: str
    ) -> VideoGeneration:
        return self.engine.videos.generate_from_image(image_gen_id, drama_id, prompt)

    async def batch_generate_videos(self, episode_id: str) -> list[VideoGeneration]:
        return self.engine.videos.batch_generate_for_episode(episode_id)

    async def get_video(self, video_id: int) -> VideoGeneration:
        return self.engine.videos.get_video(video_id)

    async def list_videos(
        self,
        drama_id: str | None = None,
        storyboard_id: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[VideoGeneration]:
        return self.engine.videos.list_videos(drama_id, storyboard_id, status, page, page_size)

    async def delete_video(self, video_id: int) -> None:
        self.engine.videos.delete_video(video_id)

    # Frame prompts

    async def generate_frame_prompt(
        self, storyboard_id: str, frame_type: str, panel_count: int | None = None
    ) -> FramePromptResult:
        return await self.engine.frames.generate_frame_prompt(
            storyboard_id, frame_type, panel_count
        )

    async def get_frame_prompts(self, storyboard_id: str) -> list[FramePromptRecord]:
        return self.engine.frames.get_storyboard_frame_prompts(storyboard_id)

    # Character library

    async def list_library_items(
        self,
        category: str | None = None,
        source_type: str | None = None,
        keyword: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[CharacterLibraryItem]:
        return self.engine.library.list_items(category, source_type, keyword, page, page_size)

    async def create_library_item(self, data: dict[str, Any]) -> CharacterLibraryItem:
        return self.engine.library.create_item(**data)

    async def get_library_item(self, item_id: str) -> CharacterLibraryItem:
        return self.engine.library.get_item(item_id)

    async def delete_library_item(self, item_id: str) -> bool:
        return self.engine.library.delete_item(item_id)

    async def upload_character_image(self, character_id: RecordId, image_url: str) -> Character:
        return self.engine.library.set_character_image(character_id, image_url)

    async def apply_library_item(self, character_id: RecordId, item_id: str) -> Character:
        return self.engine.library.apply_to_character(character_id, item_id)

    async def add_character_to_library(
        self, character_id: RecordId, category: str | None = None
    ) -> CharacterLibraryItem:
        return self.engine.library.add_from_character(character_id, category)

    async def generate_character_portrait(
        self, character_id: RecordId, model: str | None = None
    ) -> ImageGeneration:
        return self.engine.images.generate_character_portrait(character_id, model)

    async def batch_generate_character_portraits(
        self, character_ids: list[RecordId], model: str | None = None
    ) -> list[ImageGeneration]:
        return self.engine.images.batch_generate_for_characters(character_ids, model)

    # Assets

    async def create_asset(self, data: dict[str, Any]) -> Asset:
        return self.engine.assets.create_asset(data)

    async def update_asset(self, asset_id: int, fields: dict[str, Any]) -> Asset:
        return self.engine.assets.update_asset(asset_id, fields)

    async def get_asset(self, asset_id: int) -> Asset:
        return self.engine.assets.get_asset(asset_id)

    async def list_assets(
        self,
        drama_id: str | None = None,
        episode_id: str | None = None,
        storyboard_id: str | None = None,
        asset_type: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[Asset]:
        return self.engine.assets.list_assets(
            drama_id, episode_id, storyboard_id, asset_type, page, page_size
        )

    async def delete_asset(self, asset_id: int) -> bool:
        return self.engine.assets.delete_asset(asset_id)

    async def import_asset_from_image(self, image_gen_id: int) -> Asset:
        return self.engine.assets.import_from_image(image_gen_id)

    async def import_asset_from_video(self, video_gen_id: int) -> Asset:
        return self.engine.assets.import_from_video(video_gen_id)

    # Video merges

    async def merge_videos(
        self,
        episode_id: str,
        drama_id: str,
        title: str,
        scenes: list[dict[str, Any]],
        provider: str | None = None,
        model: str | None = None,
    ) -> VideoMerge:
        return self.engine.merges.merge_videos(
            episode_id, drama_id, title, list(scenes), provider, model
        )

    async def get_merge(self, merge_id: int) -> VideoMerge:
        return self.engine.merges.get_merge(merge_id)

    async def list_merges(
        self,
        episode_id: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[VideoMerge]:
        return self.engine.merges.list_merges(episode_id, status, page, page_size)

    async def delete_merge(self, merge_id: int) -> bool:
        return self.engine.merges.delete_merge(merge_id)

    # Lifecycle

    async def join(self) -> None:
        await self.engine.join()

    async def aclose(self) -> None:
        await self.engine.aclose()

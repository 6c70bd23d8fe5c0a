"""Backend talking to a remote DramaForge REST API."""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter
from pydantic_core import to_jsonable_python

from dramaforge.config import get_logger
from dramaforge.exceptions import NotFoundError, RemoteBackendError
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

logger = get_logger(__name__)

T = TypeVar("T")


def unwrap(payload: Any) -> Any:
    """Strip a ``{"data": ...}`` envelope when present."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _params(**values: Any) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


class RemoteBackend:
    """Same surface as :class:`LocalBackend`, served over HTTP.

    A 404 is raised as :class:`NotFoundError` (or reported as False by
    delete operations); any other non-2xx answer raises
    :class:`RemoteBackendError`.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the backend client.

        Args:
            base_url: API root, e.g. ``http://localhost:5678/api/v1``
            timeout: Request timeout in seconds
            client: Preconfigured client; its base URL must already be set
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def __aenter__(self) -> RemoteBackend:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        response = await self.client.request(
            method,
            path,
            params=params or None,
            json=to_jsonable_python(body) if body is not None else None,
        )
        if response.status_code == 404:
            raise NotFoundError("Resource", path)
        if not response.is_success:
            logger.error(
                "Remote backend request failed",
                method=method,
                path=path,
                status=response.status_code,
            )
            raise RemoteBackendError(method, path, response.status_code, response.text)
        if not response.content:
            return None
        return unwrap(response.json())

    async def _get(self, path: str, into: Any, **params: Any) -> Any:
        data = await self._request("GET", path, params=_params(**params))
        return TypeAdapter(into).validate_python(data)

    async def _send(self, method: str, path: str, into: Any, body: Any = None) -> Any:
        data = await self._request(method, path, body=body)
        return TypeAdapter(into).validate_python(data)

    async def _delete(self, path: str) -> bool:
        try:
            await self._request("DELETE", path)
        except NotFoundError:
            return False
        return True

    # Dramas

    async def list_dramas(
        self,
        status: str | None = None,
        genre: str | None = None,
        keyword: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[Drama]:
        return await self._get(
            "/dramas",
            Page[Drama],
            status=status,
            genre=genre,
            keyword=keyword,
            page=page,
            page_size=page_size,
        )

    async def create_drama(
        self,
        title: str,
        description: str | None = None,
        genre: str | None = None,
        tags: str | list[str] | None = None,
        style: str | None = None,
    ) -> Drama:
        body = _params(title=title, description=description, genre=genre, tags=tags, style=style)
        return await self._send("POST", "/dramas", Drama, body)

    async def get_drama(self, drama_id: str) -> Drama:
        return await self._get(f"/dramas/{drama_id}", Drama)

    async def update_drama(self, drama_id: str, fields: dict[str, Any]) -> Drama:
        return await self._send("PUT", f"/dramas/{drama_id}", Drama, fields)

    async def delete_drama(self, drama_id: str) -> bool:
        return await self._delete(f"/dramas/{drama_id}")

    async def get_stats(self) -> DramaStats:
        return await self._get("/dramas/stats", DramaStats)

    async def save_outline(
        self,
        drama_id: str,
        title: str,
        summary: str,
        genre: str | None = None,
        tags: str | list[str] | None = None,
    ) -> Drama:
        body = _params(title=title, summary=summary, genre=genre, tags=tags)
        return await self._send("PUT", f"/dramas/{drama_id}/outline", Drama, body)

    async def save_progress(
        self, drama_id: str, current_step: str, step_data: Any = None
    ) -> Drama:
        body = {"current_step": current_step, "step_data": step_data}
        return await self._send("PUT", f"/dramas/{drama_id}/progress", Drama, body)

    # Characters

    async def get_characters(self, drama_id: str) -> list[Character]:
        return await self._get(f"/dramas/{drama_id}/characters", list[Character])

    async def save_characters(
        self, drama_id: str, characters: list[dict[str, Any]]
    ) -> list[Character]:
        return await self._send(
            "PUT", f"/dramas/{drama_id}/characters", list[Character], {"characters": characters}
        )

    async def add_character(self, drama_id: str, data: dict[str, Any]) -> Character:
        return await self._send("POST", f"/dramas/{drama_id}/characters", Character, data)

    async def update_character(
        self, character_id: RecordId, fields: dict[str, Any]
    ) -> Character:
        return await self._send("PUT", f"/characters/{character_id}", Character, fields)

    async def delete_character(self, character_id: RecordId) -> bool:
        return await self._delete(f"/characters/{character_id}")

    # Episodes

    async def save_episodes(
        self, drama_id: str, episodes: list[dict[str, Any]]
    ) -> list[Episode]:
        return await self._send(
            "PUT", f"/dramas/{drama_id}/episodes", list[Episode], {"episodes": episodes}
        )

    async def update_episode(self, episode_id: str, fields: dict[str, Any]) -> Episode:
        return await self._send("PUT", f"/episodes/{episode_id}", Episode, fields)

    async def finalize_episode(self, episode_id: str) -> Episode:
        return await self._send("POST", f"/episodes/{episode_id}/finalize", Episode)

    # Storyboards

    async def list_storyboards(self, episode_id: str) -> list[StoryboardView]:
        return await self._get(f"/episodes/{episode_id}/storyboards", list[StoryboardView])

    async def create_storyboard(self, episode_id: str, data: dict[str, Any]) -> Storyboard:
        return await self._send("POST", f"/episodes/{episode_id}/storyboards", Storyboard, data)

    async def update_storyboard(
        self, storyboard_id: str, fields: dict[str, Any]
    ) -> Storyboard:
        return await self._send("PUT", f"/storyboards/{storyboard_id}", Storyboard, fields)

    async def delete_storyboard(self, storyboard_id: str) -> bool:
        return await self._delete(f"/storyboards/{storyboard_id}")

    # Scenes

    async def create_scene(self, drama_id: str, data: dict[str, Any]) -> Scene:
        return await self._send("POST", f"/dramas/{drama_id}/scenes", Scene, data)

    async def list_scenes(self, drama_id: str, episode_id: str | None = None) -> list[Scene]:
        return await self._get(f"/dramas/{drama_id}/scenes", list[Scene], episode_id=episode_id)

    async def update_scene(self, scene_id: str, fields: dict[str, Any]) -> Scene:
        return await self._send("PUT", f"/scenes/{scene_id}", Scene, fields)

    async def delete_scene(self, scene_id: str) -> bool:
        return await self._delete(f"/scenes/{scene_id}")

    # AI service configurations

    async def list_configs(self, service_type: str | None = None) -> list[AIServiceConfig]:
        return await self._get("/ai-configs", list[AIServiceConfig], service_type=service_type)

    async def create_config(self, data: AIConfigCreate) -> AIServiceConfig:
        return await self._send("POST", "/ai-configs", AIServiceConfig, data)

    async def update_config(self, config_id: int, fields: dict[str, Any]) -> AIServiceConfig:
        return await self._send("PUT", f"/ai-configs/{config_id}", AIServiceConfig, fields)

    async def delete_config(self, config_id: int) -> bool:
        return await self._delete(f"/ai-configs/{config_id}")

    # Text generation tasks

    async def generate_characters(
        self,
        drama_id: str,
        outline: str | None = None,
        count: int | None = None,
        temperature: float | None = None,
    ) -> Task:
        body = _params(drama_id=drama_id, outline=outline, count=count, temperature=temperature)
        return await self._send("POST", "/generation/characters", Task, body)

    async def generate_storyboard(self, episode_id: str) -> Task:
        return await self._send("POST", f"/episodes/{episode_id}/storyboards/generate", Task)

    async def extract_backgrounds(self, episode_id: str) -> Task:
        return await self._send("POST", f"/episodes/{episode_id}/backgrounds/extract", Task)

    async def generate_episodes(self, drama_id: str, count: int) -> list[Episode]:
        body = {"drama_id": drama_id, "episode_count": count}
        return await self._send("POST", "/generation/episodes", list[Episode], body)

    async def get_task_status(self, task_id: str) -> Task:
        return await self._get(f"/tasks/{task_id}", Task)

    # Images

    async def generate_image(self, request: GenerateImageRequest) -> ImageGeneration:
        body = request.model_dump(mode="json", exclude_none=True)
        return await self._send("POST", "/images", ImageGeneration, body)

    async def generate_scene_image(
        self, scene_id: str, prompt: str | None = None
    ) -> list[ImageGeneration]:
        return await self._send(
            "POST", f"/scenes/{scene_id}/generate-image", list[ImageGeneration], _params(prompt=prompt)
        )

    async def generate_character_image(
        self, character_id: RecordId, drama_id: str, prompt: str
    ) -> ImageGeneration:
        body = {"drama_id": drama_id, "prompt": prompt}
        return await self._send(
            "POST", f"/characters/{character_id}/generate-image", ImageGeneration, body
        )

    async def batch_generate_images(self, episode_id: str) -> list[ImageGeneration]:
        return await self._send(
            "POST", f"/images/episode/{episode_id}/batch", list[ImageGeneration]
        )

    async def get_image(self, image_id: int) -> ImageGeneration:
        return await self._get(f"/images/{image_id}", ImageGeneration)

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
        return await self._get(
            "/images",
            Page[ImageGeneration],
            drama_id=drama_id,
            scene_id=scene_id,
            storyboard_id=storyboard_id,
            frame_type=frame_type,
            status=status,
            page=page,
            page_size=page_size,
        )

    async def delete_image(self, image_id: int) -> None:
        await self._request("DELETE", f"/images/{image_id}")

    # Videos

    async def generate_video(self, request: GenerateVideoRequest) -> VideoGeneration:
        body = request.model_dump(mode="json", exclude_none=True)
        return await self._send("POST", "/videos", VideoGeneration, body)

    async def generate_video_from_image(
        self, image_gen_id: int, drama_id: str, prompt: str
    ) -> VideoGeneration:
        body = {"drama_id": drama_id, "prompt": prompt}
        return await self._send("POST", f"/videos/image/{image_gen_id}", VideoGeneration, body)

    async def batch_generate_videos(self, episode_id: str) -> list[VideoGeneration]:
        return await self._send(
            "POST", f"/videos/episode/{episode_id}/batch", list[VideoGeneration]
        )

    async def get_video(self, video_id: int) -> VideoGeneration:
        return await self._get(f"/videos/{video_id}", VideoGeneration)

    async def list_videos(
        self,
        drama_id: str | None = None,
        storyboard_id: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[VideoGeneration]:
        return await self._get(
            "/videos",
            Page[VideoGeneration],
            drama_id=drama_id,
            storyboard_id=storyboard_id,
            status=status,
            page=page,
            page_size=page_size,
        )

    async def delete_video(self, video_id: int) -> None:
        await self._request("DELETE", f"/videos/{video_id}")

    # Frame prompts

    async def generate_frame_prompt(
        self, storyboard_id: str, frame_type: str, panel_count: int | None = None
    ) -> FramePromptResult:
        body = _params(frame_type=frame_type, panel_count=panel_count)
        return await self._send(
            "POST", f"/storyboards/{storyboard_id}/frame-prompt", FramePromptResult, body
        )

    async def get_frame_prompts(self, storyboard_id: str) -> list[FramePromptRecord]:
        return await self._get(
            f"/storyboards/{storyboard_id}/frame-prompts", list[FramePromptRecord]
        )

    # Character library

    async def list_library_items(
        self,
        category: str | None = None,
        source_type: str | None = None,
        keyword: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[CharacterLibraryItem]:
        return await self._get(
            "/character-library",
            Page[CharacterLibraryItem],
            category=category,
            source_type=source_type,
            keyword=keyword,
            page=page,
            page_size=page_size,
        )

    async def create_library_item(self, data: dict[str, Any]) -> CharacterLibraryItem:
        return await self._send("POST", "/character-library", CharacterLibraryItem, data)

    async def get_library_item(self, item_id: str) -> CharacterLibraryItem:
        return await self._get(f"/character-library/{item_id}", CharacterLibraryItem)

    async def delete_library_item(self, item_id: str) -> bool:
        return await self._delete(f"/character-library/{item_id}")

    async def upload_character_image(self, character_id: RecordId, image_url: str) -> Character:
        return await self._send(
            "PUT", f"/characters/{character_id}/image", Character, {"image_url": image_url}
        )

    async def apply_library_item(self, character_id: RecordId, item_id: str) -> Character:
        return await self._send(
            "PUT",
            f"/characters/{character_id}/image-from-library",
            Character,
            {"library_item_id": item_id},
        )

    async def add_character_to_library(
        self, character_id: RecordId, category: str | None = None
    ) -> CharacterLibraryItem:
        return await self._send(
            "POST",
            f"/characters/{character_id}/add-to-library",
            CharacterLibraryItem,
            _params(category=category),
        )

    async def generate_character_portrait(
        self, character_id: RecordId, model: str | None = None
    ) -> ImageGeneration:
        return await self._send(
            "POST", f"/characters/{character_id}/portrait", ImageGeneration, _params(model=model)
        )

    async def batch_generate_character_portraits(
        self, character_ids: list[RecordId], model: str | None = None
    ) -> list[ImageGeneration]:
        body = _params(character_ids=character_ids, model=model)
        return await self._send(
            "POST", "/characters/batch-portraits", list[ImageGeneration], body
        )

    # Assets

    async def create_asset(self, data: dict[str, Any]) -> Asset:
        return await self._send("POST", "/assets", Asset, data)

    async def update_asset(self, asset_id: int, fields: dict[str, Any]) -> Asset:
        return await self._send("PUT", f"/assets/{asset_id}", Asset, fields)

    async def get_asset(self, asset_id: int) -> Asset:
        return await self._get(f"/assets/{asset_id}", Asset)

    async def list_assets(
        self,
        drama_id: str | None = None,
        episode_id: str | None = None,
        storyboard_id: str | None = None,
        asset_type: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[Asset]:
        return await self._get(
            "/assets",
            Page[Asset],
            drama_id=drama_id,
            episode_id=episode_id,
            storyboard_id=storyboard_id,
            type=asset_type,
            page=page,
            page_size=page_size,
        )

    async def delete_asset(self, asset_id: int) -> bool:
        return await self._delete(f"/assets/{asset_id}")

    async def import_asset_from_image(self, image_gen_id: int) -> Asset:
        return await self._send("POST", f"/assets/import/image/{image_gen_id}", Asset)

    async def import_asset_from_video(self, video_gen_id: int) -> Asset:
        return await self._send("POST", f"/assets/import/video/{video_gen_id}", Asset)

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
        body = _params(
            episode_id=episode_id,
            drama_id=drama_id,
            title=title,
            scenes=scenes,
            provider=provider,
            model=model,
        )
        return await self._send("POST", "/video-merges", VideoMerge, body)

    async def get_merge(self, merge_id: int) -> VideoMerge:
        return await self._get(f"/video-merges/{merge_id}", VideoMerge)

    async def list_merges(
        self,
        episode_id: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[VideoMerge]:
        return await self._get(
            "/video-merges",
            Page[VideoMerge],
            episode_id=episode_id,
            status=status,
            page=page,
            page_size=page_size,
        )

    async def delete_merge(self, merge_id: int) -> bool:
        return await self._delete(f"/video-merges/{merge_id}")

    # Lifecycle

    async def join(self) -> None:
        """Remote jobs run server-side; there is nothing to wait for."""

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

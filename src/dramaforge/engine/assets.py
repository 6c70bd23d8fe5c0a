"""Asset library: finished media filed under dramas."""

from __future__ import annotations

from typing import Any

from dramaforge.config import get_logger
from dramaforge.engine.records import JobRecordStore
from dramaforge.exceptions import NotFoundError, ValidationError
from dramaforge.graph import ContentGraphRepository
from dramaforge.models.jobs import ImageGeneration, JobStatus, VideoGeneration
from dramaforge.models.library import Asset
from dramaforge.storage import (
    KeyValueStore,
    Page,
    StorageCollection,
    StorageKeys,
    generate_numeric_id,
    paginate,
    same_id,
)

logger = get_logger(__name__)

# Fields a caller may not overwrite through update_asset
_PROTECTED_FIELDS = frozenset({"id", "created_at", "image_gen_id", "video_gen_id"})


class AssetService:
    """CRUD over assets and import from finished generation jobs."""

    def __init__(
        self,
        store: KeyValueStore,
        repository: ContentGraphRepository,
        images: JobRecordStore[ImageGeneration],
        videos: JobRecordStore[VideoGeneration],
    ) -> None:
        self.store = store
        self.assets = StorageCollection(store, StorageKeys.ASSETS, Asset)
        self.repository = repository
        self.images = images
        self.videos = videos

    def create_asset(self, data: dict[str, Any]) -> Asset:
        payload = {k: v for k, v in data.items() if k not in _PROTECTED_FIELDS}
        asset = Asset.model_validate(
            {
                **payload,
                "id": generate_numeric_id(self.store, "asset"),
                "image_gen_id": data.get("image_gen_id"),
                "video_gen_id": data.get("video_gen_id"),
            }
        )
        self.assets.add(asset)
        logger.info("Created asset", asset_id=asset.id, type=asset.type.value)
        return asset

    def update_asset(self, asset_id: int, fields: dict[str, Any]) -> Asset:
        fields = {k: v for k, v in fields.items() if k not in _PROTECTED_FIELDS}
        updated = self.assets.update(asset_id, fields)
        if updated is None:
            raise NotFoundError("Asset", asset_id)
        return updated

    def get_asset(self, asset_id: int) -> Asset:
        asset = self.assets.get_by_id(asset_id)
        if asset is None:
            raise NotFoundError("Asset", asset_id)
        return asset

    def list_assets(
        self,
        drama_id: str | None = None,
        episode_id: str | None = None,
        storyboard_id: Any = None,
        asset_type: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[Asset]:
        """Filter assets, newest first, and return one page."""
        items = self.assets.get_all()
        if drama_id:
            items = [a for a in items if same_id(a.drama_id, drama_id)]
        if episode_id:
            items = [a for a in items if same_id(a.episode_id, episode_id)]
        if storyboard_id is not None:
            items = [a for a in items if same_id(a.storyboard_id, storyboard_id)]
        if asset_type:
            items = [a for a in items if a.type == asset_type]
        items.sort(key=lambda a: a.created_at, reverse=True)
        return paginate(items, page, page_size)

    def delete_asset(self, asset_id: int) -> bool:
        return self.assets.delete(asset_id)

    def import_from_image(self, image_gen_id: int) -> Asset:
        """File a generated image as an asset.

        Raises:
            NotFoundError: No image job has ``image_gen_id``.
        """
        image = self.images.get(image_gen_id)
        return self.create_asset(
            {
                "name": f"Image_{image_gen_id}",
                "type": "image",
                "url": image.image_url or "",
                "thumbnail_url": image.image_url,
                "drama_id": image.drama_id,
                "storyboard_id": image.storyboard_id,
                "width": image.width,
                "height": image.height,
                "image_gen_id": image_gen_id,
            }
        )

    def import_from_video(self, video_gen_id: int) -> Asset:
        """File a finished video as an asset, placed by its storyboard.

        Raises:
            NotFoundError: No video job has ``video_gen_id``.
            ValidationError: The job has not completed with a video URL.
        """
        video = self.videos.get(video_gen_id)
        if video.status != JobStatus.COMPLETED or not video.video_url:
            raise ValidationError(
                f"Video generation {video_gen_id} is not ready",
                hint="Only completed video jobs can be imported",
            )
        episode_id = None
        storyboard_num = None
        drama_id = video.drama_id
        if video.storyboard_id is not None:
            context = self.repository.find_storyboard_context(video.storyboard_id)
            if context is not None:
                drama_id = drama_id or context.drama.id
                episode_id = context.episode.id
                storyboard_num = context.storyboard.storyboard_number
        return self.create_asset(
            {
                "name": f"Video_{video_gen_id}",
                "type": "video",
                "url": video.video_url,
                "drama_id": drama_id,
                "episode_id": episode_id,
                "storyboard_id": video.storyboard_id,
                "storyboard_num": storyboard_num,
                "duration": video.duration,
                "width": video.width,
                "height": video.height,
                "thumbnail_url": video.first_frame_url or video.image_url,
                "video_gen_id": video_gen_id,
            }
        )

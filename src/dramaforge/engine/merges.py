"""Video merge requests for stitching an episode's clips together.

The merge itself runs outside DramaForge; these records track what was
requested and what came back.
"""

from __future__ import annotations

from typing import Any

from dramaforge.config import get_logger
from dramaforge.exceptions import NotFoundError, ValidationError
from dramaforge.models.jobs import JobStatus
from dramaforge.models.library import SceneClip, VideoMerge
from dramaforge.storage import (
    KeyValueStore,
    Page,
    StorageCollection,
    StorageKeys,
    generate_numeric_id,
    paginate,
    same_id,
    utc_now,
)

logger = get_logger(__name__)


class VideoMergeService:
    """Create, list and settle video merge records."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self.merges = StorageCollection(store, StorageKeys.VIDEO_MERGES, VideoMerge)

    def merge_videos(
        self,
        episode_id: str,
        drama_id: str,
        title: str,
        scenes: list[SceneClip | dict[str, Any]],
        provider: str | None = None,
        model: str | None = None,
    ) -> VideoMerge:
        """Record a pending merge; its duration is the sum of clip durations."""
        clips = [SceneClip.model_validate(s) for s in scenes]
        if not clips:
            raise ValidationError("A video merge needs at least one clip")
        merge = VideoMerge(
            id=generate_numeric_id(self.store, "merge"),
            episode_id=episode_id,
            drama_id=drama_id,
            title=title,
            provider=provider or "local",
            model=model,
            scenes=sorted(clips, key=lambda c: c.order),
            duration=sum(c.duration for c in clips),
        )
        self.merges.add(merge)
        logger.info("Created video merge", merge_id=merge.id, clip_count=len(clips))
        return merge

    def get_merge(self, merge_id: int) -> VideoMerge:
        merge = self.merges.get_by_id(merge_id)
        if merge is None:
            raise NotFoundError("Video merge", merge_id)
        return merge

    def list_merges(
        self,
        episode_id: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[VideoMerge]:
        items = self.merges.get_all()
        if episode_id:
            items = [m for m in items if same_id(m.episode_id, episode_id)]
        if status:
            items = [m for m in items if m.status == status]
        items.sort(key=lambda m: m.created_at, reverse=True)
        return paginate(items, page, page_size)

    def delete_merge(self, merge_id: int) -> bool:
        return self.merges.delete(merge_id)

    def update_merge_status(
        self,
        merge_id: int,
        status: JobStatus | str,
        merged_url: str | None = None,
        error_msg: str | None = None,
    ) -> VideoMerge:
        """Move a merge forward; completed and failed merges are left as they are."""
        merge = self.get_merge(merge_id)
        if merge.status.is_terminal:
            logger.debug("Merge already terminal", merge_id=merge_id, status=merge.status.value)
            return merge
        status = JobStatus(status)
        fields: dict[str, Any] = {"status": status}
        if merged_url is not None:
            fields["merged_url"] = merged_url
        if error_msg is not None:
            fields["error_msg"] = error_msg
        if status.is_terminal:
            fields["completed_at"] = utc_now()
        updated = self.merges.update(merge_id, fields)
        if updated is None:
            raise NotFoundError("Video merge", merge_id)
        logger.info("Video merge status changed", merge_id=merge_id, status=status.value)
        return updated

"""Video generation jobs."""

from __future__ import annotations

from typing import Any

from dramaforge.config import get_logger
from dramaforge.engine.ai_client import AIClient
from dramaforge.engine.media import MediaGenerationService
from dramaforge.engine.polling import PollPolicy
from dramaforge.engine.records import JobRecordStore
from dramaforge.engine.runner import BackgroundRunner
from dramaforge.exceptions import DramaForgeError, NotFoundError
from dramaforge.graph import ContentGraphRepository
from dramaforge.models.graph import RecordId
from dramaforge.models.jobs import (
    GenerateVideoRequest,
    ImageGeneration,
    ReferenceMode,
    VideoGeneration,
)
from dramaforge.providers.base import GenerationProvider
from dramaforge.providers.models import GenerationRequest, GenerationResult
from dramaforge.storage import Page, generate_numeric_id, paginate, same_id

logger = get_logger(__name__)

_REFERENCE_FIELDS = ("image_url", "first_frame_url", "last_frame_url", "reference_image_urls")


def normalize_references(request: GenerateVideoRequest) -> dict[str, Any]:
    """Keep only the reference fields that belong to the request's mode.

    Without an explicit mode, the mode is inferred from the first kind of
    reference present: a single image, then a first/last frame pair, then a
    list of reference images.
    """
    fields: dict[str, Any] = dict.fromkeys(_REFERENCE_FIELDS)
    mode = request.reference_mode
    if mode is ReferenceMode.SINGLE:
        fields["image_url"] = request.image_url
    elif mode is ReferenceMode.FIRST_LAST:
        fields["first_frame_url"] = request.first_frame_url
        fields["last_frame_url"] = request.last_frame_url
    elif mode is ReferenceMode.MULTIPLE:
        fields["reference_image_urls"] = request.reference_image_urls or None
    elif mode is None:
        if request.image_url:
            fields["image_url"] = request.image_url
            mode = ReferenceMode.SINGLE
        elif request.first_frame_url or request.last_frame_url:
            fields["first_frame_url"] = request.first_frame_url
            fields["last_frame_url"] = request.last_frame_url
            mode = ReferenceMode.FIRST_LAST
        elif request.reference_image_urls:
            fields["reference_image_urls"] = request.reference_image_urls
            mode = ReferenceMode.MULTIPLE
    fields["reference_mode"] = mode
    return fields


class VideoGenerationService(MediaGenerationService[VideoGeneration]):
    """Video jobs; completed videos are written onto their storyboard."""

    kind = "video"

    def __init__(
        self,
        repository: ContentGraphRepository,
        records: JobRecordStore[VideoGeneration],
        images: JobRecordStore[ImageGeneration],
        ai: AIClient,
        runner: BackgroundRunner,
        policy: PollPolicy,
    ) -> None:
        super().__init__(repository, records, ai, runner, policy)
        self.images = images

    def _resolve_provider(self, record: VideoGeneration) -> GenerationProvider:
        _, provider = self.ai.video_provider(record.model)
        return provider

    def _build_request(self, record: VideoGeneration) -> GenerationRequest:
        return GenerationRequest(
            prompt=record.prompt,
            model=record.model,
            reference_mode=record.reference_mode,
            image_url=record.image_url,
            first_frame_url=record.first_frame_url,
            last_frame_url=record.last_frame_url,
            reference_image_urls=record.reference_image_urls,
            duration=record.duration,
            fps=record.fps,
            aspect_ratio=record.aspect_ratio,
            style=record.style,
            motion_level=record.motion_level,
            camera_motion=record.camera_motion,
            seed=record.seed,
        )

    def _completion_fields(self, result: GenerationResult) -> dict[str, Any]:
        fields: dict[str, Any] = {"video_url": result.video_url or result.media_url}
        if result.duration:
            fields["duration"] = int(result.duration)
        if result.width:
            fields["width"] = result.width
        if result.height:
            fields["height"] = result.height
        return fields

    def _fan_out_completed(self, record: VideoGeneration, media_url: str) -> None:
        if record.storyboard_id is not None:
            logger.info("Fan-out to storyboard", storyboard_id=record.storyboard_id)
            self.repository.set_storyboard_media(record.storyboard_id, video_url=media_url)

    def _fan_out_failed(self, record: VideoGeneration) -> None:
        """Failed videos leave the storyboard untouched."""

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def generate_video(self, request: GenerateVideoRequest) -> VideoGeneration:
        """Create a video job and start it in the background.

        Raises:
            NotFoundError: The drama or storyboard does not exist.
            ValidationError: More than one target was given.
            ConfigurationMissingError: No active video configuration; the
                created record is marked failed first.
        """
        self._validate_target(request.drama_id, request.target())
        base = request.model_dump(exclude={"provider", "reference_mode", *_REFERENCE_FIELDS})
        record = VideoGeneration(
            id=generate_numeric_id(self.records.store, "video"),
            **base,
            **normalize_references(request),
            provider=request.provider or "doubao",
        )
        return self._submit(record)

    def generate_from_image(
        self, image_gen_id: int, drama_id: str, prompt: str
    ) -> VideoGeneration:
        """Animate a finished image job, reusing its storyboard target."""
        image = self.images.get(image_gen_id)
        return self.generate_video(
            GenerateVideoRequest(
                drama_id=drama_id,
                image_gen_id=image_gen_id,
                prompt=prompt,
                reference_mode=ReferenceMode.SINGLE,
                image_url=image.image_url,
                storyboard_id=image.storyboard_id,
            )
        )

    def batch_generate_for_episode(self, episode_id: RecordId) -> list[VideoGeneration]:
        """One video job per storyboard that has a video prompt or image.

        Per-storyboard submission errors are logged and skipped.
        """
        found = self.repository.find_episode(episode_id)
        if found is None:
            raise NotFoundError("Episode", episode_id)
        drama, episode = found
        logger.info(
            "Batch generating videos",
            episode_id=episode_id,
            storyboard_count=len(episode.storyboards),
        )
        results = []
        for storyboard in sorted(episode.storyboards, key=lambda sb: sb.storyboard_number):
            if not storyboard.video_prompt and not storyboard.composed_image:
                logger.warning(
                    "Storyboard has no video prompt or image, skipping",
                    storyboard_id=storyboard.id,
                )
                continue
            try:
                results.append(
                    self.generate_video(
                        GenerateVideoRequest(
                            drama_id=drama.id,
                            storyboard_id=storyboard.id,
                            prompt=storyboard.video_prompt or "",
                            image_url=storyboard.composed_image,
                        )
                    )
                )
            except DramaForgeError as e:
                logger.warning(
                    "Video submission failed, skipping storyboard",
                    storyboard_id=storyboard.id,
                    error=e.message,
                )
        return results

    def get_video(self, video_id: int) -> VideoGeneration:
        return self._get(video_id)

    def list_videos(
        self,
        drama_id: str | None = None,
        storyboard_id: RecordId | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[VideoGeneration]:
        """Filter video jobs, newest first; ``status`` may be comma-separated."""
        items = self.records.all()
        if drama_id:
            items = [i for i in items if same_id(i.drama_id, drama_id)]
        if storyboard_id is not None:
            items = [i for i in items if same_id(i.storyboard_id, storyboard_id)]
        if status:
            wanted = {s.strip() for s in status.split(",") if s.strip()}
            items = [i for i in items if i.status.value in wanted]
        items.sort(key=lambda i: i.created_at, reverse=True)
        return paginate(items, page, page_size)

    def delete_video(self, video_id: int) -> None:
        self._delete(video_id)

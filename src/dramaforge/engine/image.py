"""Image generation jobs."""

from __future__ import annotations

from typing import Any

from dramaforge.config import get_logger
from dramaforge.engine.media import MediaGenerationService
from dramaforge.exceptions import DramaForgeError, NotFoundError, ValidationError
from dramaforge.models.graph import RecordId, SceneStatus
from dramaforge.models.jobs import GenerateImageRequest, ImageGeneration
from dramaforge.prompts.builders import build_character_portrait_prompt, build_scene_image_prompt
from dramaforge.providers.base import GenerationProvider
from dramaforge.providers.models import GenerationRequest, GenerationResult
from dramaforge.storage import Page, generate_numeric_id, paginate, same_id

logger = get_logger(__name__)

SCENE_IMAGE_SIZE = "2560x1440"
CHARACTER_PORTRAIT_SIZE = "2048x2048"
MAX_CHARACTER_BATCH = 10


class ImageGenerationService(MediaGenerationService[ImageGeneration]):
    """Image jobs for storyboards, scene backgrounds and characters."""

    kind = "image"

    def _resolve_provider(self, record: ImageGeneration) -> GenerationProvider:
        _, provider = self.ai.image_provider(record.model or None)
        return provider

    def _build_request(self, record: ImageGeneration) -> GenerationRequest:
        return GenerationRequest(
            prompt=record.prompt,
            model=record.model or None,
            size=record.size,
            quality=record.quality,
            style=record.style,
            seed=record.seed,
        )

    def _completion_fields(self, result: GenerationResult) -> dict[str, Any]:
        fields: dict[str, Any] = {"image_url": result.image_url or result.media_url}
        if result.width:
            fields["width"] = result.width
        if result.height:
            fields["height"] = result.height
        return fields

    def _fan_out_completed(self, record: ImageGeneration, media_url: str) -> None:
        if record.storyboard_id is not None:
            logger.info("Fan-out to storyboard", storyboard_id=record.storyboard_id)
            self.repository.set_storyboard_media(record.storyboard_id, composed_image=media_url)
        elif record.scene_id is not None:
            logger.info("Fan-out to scene", scene_id=record.scene_id)
            self.repository.set_scene_image(record.scene_id, SceneStatus.GENERATED, media_url)
        elif record.character_id is not None:
            logger.info("Fan-out to character", character_id=record.character_id)
            self.repository.set_character_image(record.character_id, "completed", media_url)

    def _fan_out_failed(self, record: ImageGeneration) -> None:
        # Existing media stays in place; only status flags change
        if record.scene_id is not None:
            self.repository.set_scene_image(record.scene_id, SceneStatus.FAILED)
        elif record.character_id is not None:
            self.repository.set_character_image(record.character_id, "failed")

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def generate_image(self, request: GenerateImageRequest) -> ImageGeneration:
        """Create an image job and start it in the background.

        Raises:
            NotFoundError: The drama or storyboard does not exist.
            ValidationError: More than one target was given.
            ConfigurationMissingError: No active image configuration; the
                created record is marked failed first.
        """
        self._validate_target(request.drama_id, request.target())
        record = ImageGeneration(
            id=generate_numeric_id(self.records.store, "image"),
            **request.model_dump(exclude={"provider", "image_type", "model"}),
            provider=request.provider or "openai",
            image_type=request.image_type or "storyboard",
            model=request.model or "",
        )
        return self._submit(record)

    def generate_for_scene(self, scene_id: RecordId, prompt: str | None = None) -> list[ImageGeneration]:
        """Generate a background image for a scene and mark the scene pending."""
        found = self.repository.get_scene(scene_id)
        if found is None:
            raise NotFoundError("Scene", scene_id)
        drama, scene = found
        request = GenerateImageRequest(
            drama_id=drama.id,
            scene_id=scene.id,
            image_type="scene",
            prompt=build_scene_image_prompt(scene, prompt),
            size=SCENE_IMAGE_SIZE,
        )
        self.repository.set_scene_image(scene.id, SceneStatus.PENDING)
        return [self.generate_image(request)]

    def generate_for_character(
        self, character_id: RecordId, drama_id: str, prompt: str
    ) -> ImageGeneration:
        record = self.generate_image(
            GenerateImageRequest(
                drama_id=drama_id,
                character_id=character_id,
                image_type="character",
                prompt=prompt,
            )
        )
        self.repository.set_character_image(character_id, "pending")
        return record

    def generate_character_portrait(
        self, character_id: RecordId, model: str | None = None
    ) -> ImageGeneration:
        """Generate a clean-background portrait from the character's own description.

        Raises:
            NotFoundError: No drama has this character.
        """
        found = self.repository.find_character(character_id)
        if found is None:
            raise NotFoundError("Character", character_id)
        drama, character = found
        record = self.generate_image(
            GenerateImageRequest(
                drama_id=drama.id,
                character_id=character.id,
                image_type="character",
                prompt=build_character_portrait_prompt(character),
                model=model,
                size=CHARACTER_PORTRAIT_SIZE,
                quality="standard",
            )
        )
        self.repository.set_character_image(character.id, "pending")
        return record

    def batch_generate_for_characters(
        self, character_ids: list[RecordId], model: str | None = None
    ) -> list[ImageGeneration]:
        """One portrait job per character, all running concurrently.

        Per-character submission errors are logged and skipped.

        Raises:
            ValidationError: More than ``MAX_CHARACTER_BATCH`` ids were given.
        """
        if len(character_ids) > MAX_CHARACTER_BATCH:
            raise ValidationError(
                f"At most {MAX_CHARACTER_BATCH} characters can be generated at once",
                details={"requested": len(character_ids)},
            )
        logger.info("Batch generating character portraits", count=len(character_ids), model=model)
        results = []
        for character_id in character_ids:
            try:
                results.append(self.generate_character_portrait(character_id, model))
            except DramaForgeError as e:
                logger.warning(
                    "Portrait submission failed, skipping character",
                    character_id=character_id,
                    error=e.message,
                )
        return results

    def batch_generate_for_episode(self, episode_id: RecordId) -> list[ImageGeneration]:
        """One image job per storyboard with an image prompt.

        Per-storyboard submission errors are logged and skipped.
        """
        found = self.repository.find_episode(episode_id)
        if found is None:
            raise NotFoundError("Episode", episode_id)
        drama, episode = found
        logger.info(
            "Batch generating images",
            episode_id=episode_id,
            storyboard_count=len(episode.storyboards),
        )
        results = []
        for storyboard in sorted(episode.storyboards, key=lambda sb: sb.storyboard_number):
            if not storyboard.image_prompt:
                logger.warning("Storyboard has no image prompt, skipping", storyboard_id=storyboard.id)
                continue
            try:
                results.append(
                    self.generate_image(
                        GenerateImageRequest(
                            drama_id=drama.id,
                            storyboard_id=storyboard.id,
                            image_type="storyboard",
                            prompt=storyboard.image_prompt,
                        )
                    )
                )
            except DramaForgeError as e:
                logger.warning(
                    "Image submission failed, skipping storyboard",
                    storyboard_id=storyboard.id,
                    error=e.message,
                )
        return results

    def get_image(self, image_id: int) -> ImageGeneration:
        return self._get(image_id)

    def list_images(
        self,
        drama_id: str | None = None,
        scene_id: RecordId | None = None,
        storyboard_id: RecordId | None = None,
        frame_type: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[ImageGeneration]:
        """Filter image jobs, newest first, and return one page."""
        items = self.records.all()
        if drama_id:
            items = [i for i in items if same_id(i.drama_id, drama_id)]
        if scene_id is not None:
            items = [i for i in items if same_id(i.scene_id, scene_id)]
        if storyboard_id is not None:
            items = [i for i in items if same_id(i.storyboard_id, storyboard_id)]
        if frame_type:
            items = [i for i in items if i.frame_type == frame_type]
        if status:
            items = [i for i in items if i.status == status]
        items.sort(key=lambda i: i.created_at, reverse=True)
        return paginate(items, page, page_size)

    def delete_image(self, image_id: int) -> None:
        self._delete(image_id)

"""Shared dispatch-and-poll flow for image and video generation jobs."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from dramaforge.config import get_logger
from dramaforge.engine.ai_client import AIClient
from dramaforge.engine.polling import PollPolicy
from dramaforge.engine.records import JobRecordStore
from dramaforge.engine.runner import BackgroundRunner
from dramaforge.exceptions import (
    DramaForgeError,
    NotFoundError,
    ValidationError,
)
from dramaforge.graph import ContentGraphRepository
from dramaforge.models.graph import Drama
from dramaforge.models.jobs import GenerationTarget, ImageGeneration, VideoGeneration
from dramaforge.providers.base import GenerationProvider
from dramaforge.providers.models import GenerationRequest, GenerationResult

logger = get_logger(__name__)

G = TypeVar("G", ImageGeneration, VideoGeneration)


def error_message(error: BaseException) -> str:
    """Human-readable message stored on failed records."""
    if isinstance(error, DramaForgeError):
        return error.message
    return str(error) or type(error).__name__


class MediaGenerationService(ABC, Generic[G]):
    """Creates generation records and drives them to a terminal state.

    Creation and provider resolution happen on the caller's stack; the
    provider call and the poll loop run on the background runner. Errors in
    the background are recorded on the job, never raised.
    """

    kind = "media"

    def __init__(
        self,
        repository: ContentGraphRepository,
        records: JobRecordStore[G],
        ai: AIClient,
        runner: BackgroundRunner,
        policy: PollPolicy,
    ) -> None:
        self.repository = repository
        self.records = records
        self.ai = ai
        self.runner = runner
        self.policy = policy

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _resolve_provider(self, record: G) -> GenerationProvider:
        """Look up the adapter for a record; may raise ConfigurationMissingError."""

    @abstractmethod
    def _build_request(self, record: G) -> GenerationRequest: ...

    @abstractmethod
    def _completion_fields(self, result: GenerationResult) -> dict[str, Any]: ...

    @abstractmethod
    def _fan_out_completed(self, record: G, media_url: str) -> None: ...

    @abstractmethod
    def _fan_out_failed(self, record: G) -> None: ...

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _validate_target(self, drama_id: str, target: GenerationTarget) -> Drama:
        """Check the drama exists and the job names at most one target.

        Raises:
            ValidationError: More than one foreign key is set.
            NotFoundError: The drama, or the storyboard within it, is missing.
        """
        populated = target.populated()
        if len(populated) > 1:
            raise ValidationError(
                "A generation job may target only one graph node",
                hint="Set exactly one of storyboard_id, scene_id or character_id",
                details={"targets": ", ".join(populated)},
            )
        drama = self.repository.find_drama(drama_id)
        if drama is None:
            raise NotFoundError("Drama", drama_id)
        if target.storyboard_id is not None and drama.find_storyboard(target.storyboard_id) is None:
            raise NotFoundError("Storyboard", target.storyboard_id)
        return drama

    def _submit(self, record: G) -> G:
        """Persist a pending record and hand it to the runner.

        Any error before the job is scheduled, such as
        ConfigurationMissingError, marks the record failed and is re-raised.
        """
        self.records.add(record)
        logger.info(f"{self.kind.capitalize()} job created", job_id=record.id, drama_id=record.drama_id)
        try:
            provider = self._resolve_provider(record)
            self.runner.submit(self._process(record.id, provider), name=f"{self.kind}-{record.id}")
        except Exception as e:
            self._fail(record.id, error_message(e))
            raise
        return record

    # ------------------------------------------------------------------
    # Background processing
    # ------------------------------------------------------------------

    async def _process(self, record_id: int, provider: GenerationProvider) -> None:
        record = self.records.mark_processing(record_id)
        if record is None:
            return
        logger.info(
            f"Dispatching {self.kind} job",
            job_id=record_id,
            provider=provider.provider_name,
            model=record.model,
        )
        try:
            result = await provider.generate(self._build_request(record))
            if result.is_complete:
                self._complete(record_id, result)
                return
            if not result.task_id:
                self._fail(record_id, f"no task ID or {self.kind} URL returned")
                return

            self.records.update(record_id, {"task_id": result.task_id})
            task_id = result.task_id
            result = await self.policy.poll_until_complete(
                lambda: provider.poll_task_status(task_id),
                job=f"{self.kind}-{record_id}",
            )
            self._complete(record_id, result)
        except asyncio.CancelledError:
            logger.warning(f"{self.kind.capitalize()} job cancelled", job_id=record_id)
            self._fail(record_id, "Generation cancelled")
            raise
        except Exception as e:
            logger.error(
                f"{self.kind.capitalize()} generation failed",
                job_id=record_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._fail(record_id, error_message(e))

    def _complete(self, record_id: int, result: GenerationResult) -> None:
        record = self.records.mark_completed(record_id, **self._completion_fields(result))
        if record is None:
            return
        logger.info(f"{self.kind.capitalize()} job completed", job_id=record_id)
        self._fan_out_completed(record, result.media_url)

    def _fail(self, record_id: int, message: str) -> None:
        record = self.records.mark_failed(record_id, message)
        if record is None:
            return
        logger.error(f"{self.kind.capitalize()} job failed", job_id=record_id, error=message)
        self._fan_out_failed(record)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _get(self, record_id: int) -> G:
        return self.records.get(record_id)

    def _delete(self, record_id: int) -> None:
        self.records.get(record_id)
        self.records.delete(record_id)

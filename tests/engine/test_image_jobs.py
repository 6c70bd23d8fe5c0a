"""Tests for image generation jobs and their fan-out into the content graph."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from dramaforge.exceptions import (
    ConfigurationMissingError,
    NotFoundError,
    ProviderError,
    ValidationError,
)
from dramaforge.models.graph import SceneStatus
from dramaforge.models.jobs import GenerateImageRequest, JobStatus
from dramaforge.prompts.builders import SCENE_IMAGE_SUFFIX
from dramaforge.providers.models import GenerationResult

IMAGE_URL = "https://img.test/1.png"
RUNNING = GenerationResult(task_id="img-task", status="running")


def _scene(engine, scene_id):
    return engine.repository.get_scene(scene_id)[1]


def _character(engine, drama_id, character_id):
    return engine.repository.get_drama(drama_id).find_character(character_id)


class TestImageJobFlow:
    """Test submission, polling and terminal states."""

    @pytest.mark.asyncio
    async def test_synchronous_result_completes_and_sets_composed_image(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test an immediate URL completes the job and updates the storyboard."""
        provider = scripted_provider(GenerationResult(image_url=IMAGE_URL, width=1024))
        route_provider("image", provider)

        record = engine.images.generate_image(
            GenerateImageRequest(
                drama_id=seeded.drama.id, storyboard_id=seeded.storyboard.id, prompt="shutter"
            )
        )
        assert record.status is JobStatus.PENDING
        await engine.join()

        stored = engine.images.get_image(record.id)
        assert stored.status is JobStatus.COMPLETED
        assert stored.image_url == IMAGE_URL
        assert stored.width == 1024
        assert provider.polled == []
        ctx = engine.repository.find_storyboard_context(seeded.storyboard.id)
        assert ctx.storyboard.composed_image == IMAGE_URL

    @pytest.mark.asyncio
    async def test_task_is_polled_until_media_appears(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test an async task completes on the third poll with the task id stored."""
        provider = scripted_provider(
            RUNNING, polls=[RUNNING, RUNNING, GenerationResult(image_url=IMAGE_URL)]
        )
        route_provider("image", provider)

        record = engine.images.generate_image(
            GenerateImageRequest(drama_id=seeded.drama.id, prompt="lantern")
        )
        await engine.join()

        stored = engine.images.get_image(record.id)
        assert stored.status is JobStatus.COMPLETED
        assert stored.task_id == "img-task"
        assert provider.polled == ["img-task"] * 3

    @pytest.mark.asyncio
    async def test_missing_task_id_fails(self, engine, seeded, route_provider, scripted_provider):
        """Test a result with neither URL nor task id fails the job."""
        route_provider("image", scripted_provider(GenerationResult(status="accepted")))

        record = engine.images.generate_image(
            GenerateImageRequest(drama_id=seeded.drama.id, prompt="p")
        )
        await engine.join()

        stored = engine.images.get_image(record.id)
        assert stored.status is JobStatus.FAILED
        assert stored.error_msg == "no task ID or image URL returned"

    @pytest.mark.asyncio
    async def test_submission_error_is_recorded(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test provider errors during submission fail the job with their message."""
        route_provider(
            "image", scripted_provider(ProviderError("Image API error: 401 - bad key"))
        )

        record = engine.images.generate_image(
            GenerateImageRequest(drama_id=seeded.drama.id, prompt="p")
        )
        await engine.join()

        assert engine.images.get_image(record.id).error_msg == "Image API error: 401 - bad key"

    @pytest.mark.asyncio
    async def test_poll_ceiling_times_out(self, engine, seeded, route_provider, scripted_provider):
        """Test a task that never finishes fails after the configured attempts."""
        provider = scripted_provider(RUNNING)
        route_provider("image", provider)

        record = engine.images.generate_image(
            GenerateImageRequest(drama_id=seeded.drama.id, prompt="p")
        )
        await engine.join()

        stored = engine.images.get_image(record.id)
        assert stored.status is JobStatus.FAILED
        assert stored.error_msg == "Generation timed out after 5 poll attempts"
        assert len(provider.polled) == 5

    @pytest.mark.asyncio
    async def test_terminal_poll_error_stops_immediately(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test a not-found poll error fails the job on the first attempt."""
        provider = scripted_provider(
            RUNNING,
            polls=[ProviderError("Task status query failed: 404 - task not found")],
        )
        route_provider("image", provider)

        record = engine.images.generate_image(
            GenerateImageRequest(drama_id=seeded.drama.id, prompt="p")
        )
        await engine.join()

        assert len(provider.polled) == 1
        assert engine.images.get_image(record.id).error_msg.startswith("Task status query failed")


class TestImageSubmissionValidation:
    """Test errors raised to the caller before any background work."""

    def test_more_than_one_target_is_rejected(self, engine, seeded):
        """Test a job naming two graph nodes is refused without a record."""
        with pytest.raises(ValidationError, match="only one graph node"):
            engine.images.generate_image(
                GenerateImageRequest(
                    drama_id=seeded.drama.id,
                    prompt="p",
                    storyboard_id=seeded.storyboard.id,
                    scene_id=seeded.scene.id,
                )
            )
        assert engine.images.list_images().items == []

    def test_unknown_drama_or_storyboard(self, engine, seeded):
        """Test missing drama and storyboard references raise NotFoundError."""
        with pytest.raises(NotFoundError, match="Drama not found"):
            engine.images.generate_image(GenerateImageRequest(drama_id="drama_x", prompt="p"))
        with pytest.raises(NotFoundError, match="Storyboard not found"):
            engine.images.generate_image(
                GenerateImageRequest(drama_id=seeded.drama.id, prompt="p", storyboard_id="sb_x")
            )

    def test_missing_configuration_fails_created_record(self, engine, seeded):
        """Test the record exists and is failed when no image config is active."""
        with pytest.raises(ConfigurationMissingError):
            engine.images.generate_image(
                GenerateImageRequest(drama_id=seeded.drama.id, prompt="p", scene_id=seeded.scene.id)
            )

        [record] = engine.images.list_images(drama_id=seeded.drama.id).items
        assert record.status is JobStatus.FAILED
        assert record.error_msg == "No active image service configuration"
        assert _scene(engine, seeded.scene.id).status is SceneStatus.FAILED


class TestImageFanOut:
    """Test how finished and failed jobs touch the content graph."""

    @pytest.mark.asyncio
    async def test_scene_generation_marks_pending_then_generated(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test scene jobs use the wide prompt and finish as generated."""
        provider = scripted_provider(GenerationResult(image_url=IMAGE_URL))
        route_provider("image", provider)

        [record] = engine.images.generate_for_scene(seeded.scene.id)
        assert _scene(engine, seeded.scene.id).status is SceneStatus.PENDING
        await engine.join()

        request = provider.requests[0]
        assert request.size == "2560x1440"
        assert request.prompt == "Night market scene, dusk" + SCENE_IMAGE_SUFFIX
        assert record.image_type == "scene"
        scene = _scene(engine, seeded.scene.id)
        assert (scene.status, scene.image_url) == (SceneStatus.GENERATED, IMAGE_URL)

    @pytest.mark.asyncio
    async def test_scene_failure_keeps_existing_image(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test a failed regeneration only flips the status."""
        engine.repository.set_scene_image(seeded.scene.id, SceneStatus.GENERATED, "https://old")
        route_provider(
            "image",
            scripted_provider(RUNNING, polls=[GenerationResult(task_id="x", status="failed")]),
        )

        engine.images.generate_for_scene(seeded.scene.id, prompt="rainy market")
        await engine.join()

        scene = _scene(engine, seeded.scene.id)
        assert (scene.status, scene.image_url) == (SceneStatus.FAILED, "https://old")

    @pytest.mark.asyncio
    async def test_character_generation(self, engine, seeded, route_provider, scripted_provider):
        """Test character jobs go pending, then completed with the image."""
        route_provider("image", scripted_provider(GenerationResult(image_url=IMAGE_URL)))

        engine.images.generate_for_character(seeded.character.id, seeded.drama.id, "portrait")
        character = _character(engine, seeded.drama.id, seeded.character.id)
        assert character.image_generation_status == "pending"
        await engine.join()

        character = _character(engine, seeded.drama.id, seeded.character.id)
        assert character.image_generation_status == "completed"
        assert character.image_url == IMAGE_URL

    @pytest.mark.asyncio
    async def test_character_failure(self, engine, seeded, route_provider, scripted_provider):
        """Test a failed character job marks the character failed."""
        route_provider("image", scripted_provider(ProviderError("Image API error: 500 - x")))

        engine.images.generate_for_character(seeded.character.id, seeded.drama.id, "portrait")
        await engine.join()

        character = _character(engine, seeded.drama.id, seeded.character.id)
        assert character.image_generation_status == "failed"
        assert character.image_url is None

    @pytest.mark.asyncio
    async def test_terminal_records_do_not_fan_out_again(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test a late failure after completion changes neither record nor scene."""
        route_provider("image", scripted_provider(GenerationResult(image_url=IMAGE_URL)))
        [record] = engine.images.generate_for_scene(seeded.scene.id)
        await engine.join()

        engine.images._fail(record.id, "late error")

        assert engine.images.get_image(record.id).status is JobStatus.COMPLETED
        assert _scene(engine, seeded.scene.id).status is SceneStatus.GENERATED

    @pytest.mark.asyncio
    async def test_fan_out_tolerates_deleted_target(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test a storyboard deleted mid-job does not break completion."""
        route_provider(
            "image", scripted_provider(RUNNING, polls=[GenerationResult(image_url=IMAGE_URL)])
        )
        record = engine.images.generate_image(
            GenerateImageRequest(
                drama_id=seeded.drama.id, storyboard_id=seeded.storyboard.id, prompt="p"
            )
        )
        engine.repository.delete_storyboard(seeded.storyboard.id)
        await engine.join()

        assert engine.images.get_image(record.id).status is JobStatus.COMPLETED


class TestImageBatchAndQueries:
    """Test batch submission and record queries."""

    @pytest.mark.asyncio
    async def test_batch_skips_storyboards_without_prompt(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test only storyboards with an image prompt get a job."""
        engine.repository.create_storyboard(seeded.episode.id, {"action": "no prompt"})
        route_provider("image", scripted_provider(GenerationResult(image_url=IMAGE_URL)))

        results = engine.images.batch_generate_for_episode(seeded.episode.id)
        await engine.join()

        assert [r.storyboard_id for r in results] == [seeded.storyboard.id]

    def test_batch_for_unknown_episode(self, engine):
        """Test batch submission needs an existing episode."""
        with pytest.raises(NotFoundError):
            engine.images.batch_generate_for_episode("ep_missing")

    def test_batch_skips_failed_submissions(self, engine, seeded):
        """Test per-storyboard submission errors are skipped."""
        assert engine.images.batch_generate_for_episode(seeded.episode.id) == []
        [record] = engine.images.list_images().items
        assert record.status is JobStatus.FAILED

    @pytest.mark.asyncio
    async def test_list_filter_page_and_delete(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test filters, pagination and deletion."""
        route_provider("image", scripted_provider(GenerationResult(image_url=IMAGE_URL)))
        first = engine.images.generate_image(
            GenerateImageRequest(drama_id=seeded.drama.id, prompt="a", frame_type="first")
        )
        second = engine.images.generate_image(
            GenerateImageRequest(
                drama_id=seeded.drama.id, prompt="b", storyboard_id=seeded.storyboard.id
            )
        )
        await engine.join()

        everything = engine.images.list_images(drama_id=seeded.drama.id)
        assert {i.id for i in everything.items} == {first.id, second.id}
        assert [i.id for i in engine.images.list_images(frame_type="first").items] == [first.id]
        assert [
            i.id for i in engine.images.list_images(storyboard_id=seeded.storyboard.id).items
        ] == [second.id]
        assert engine.images.list_images(status="failed").items == []
        paged = engine.images.list_images(page=2, page_size=1)
        assert len(paged.items) == 1
        assert (paged.pagination.total, paged.pagination.total_pages) == (2, 2)

        engine.images.delete_image(first.id)
        with pytest.raises(NotFoundError):
            engine.images.get_image(first.id)
        with pytest.raises(NotFoundError):
            engine.images.delete_image(first.id)


class TestImageJobShutdown:
    """Test records always reach a final state around shutdown and scheduling."""

    @pytest.mark.asyncio
    async def test_aclose_finishes_outstanding_jobs(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test closing the engine waits for jobs instead of abandoning them."""
        route_provider(
            "image",
            scripted_provider(RUNNING, polls=[GenerationResult(image_url=IMAGE_URL)]),
        )

        record = engine.images.generate_image(
            GenerateImageRequest(drama_id=seeded.drama.id, prompt="p")
        )
        await engine.aclose()

        assert engine.images.get_image(record.id).status is JobStatus.COMPLETED
        assert engine.runner.pending == 0

    @pytest.mark.asyncio
    async def test_cancelled_job_is_marked_failed(self, engine, seeded, route_provider):
        """Test cancelling a running job records a failure and keeps the target intact."""
        async def stall(request):
            await asyncio.Event().wait()

        stalled = MagicMock(provider_name="stalled", generate=stall)
        route_provider("image", stalled)

        record = engine.images.generate_image(
            GenerateImageRequest(
                drama_id=seeded.drama.id, storyboard_id=seeded.storyboard.id, prompt="p"
            )
        )
        [job] = engine.runner.snapshot()
        await asyncio.sleep(0)
        assert engine.images.get_image(record.id).status is JobStatus.PROCESSING

        job.cancel()
        await asyncio.gather(job, return_exceptions=True)

        stored = engine.images.get_image(record.id)
        assert stored.status is JobStatus.FAILED
        assert stored.error_msg == "Generation cancelled"
        ctx = engine.repository.find_storyboard_context(seeded.storyboard.id)
        assert ctx.storyboard.composed_image is None

    def test_submission_without_event_loop_fails_record(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test a job that cannot be scheduled is failed rather than left pending."""
        route_provider("image", scripted_provider(GenerationResult(image_url=IMAGE_URL)))

        with pytest.raises(RuntimeError):
            engine.images.generate_image(
                GenerateImageRequest(drama_id=seeded.drama.id, prompt="p")
            )

        [record] = engine.images.list_images().items
        assert record.status is JobStatus.FAILED
        assert record.error_msg
        assert engine.runner.pending == 0

    @pytest.mark.asyncio
    async def test_unexpected_lookup_error_fails_record(self, engine, seeded):
        """Test any provider lookup error fails the record before it propagates."""

        def broken_lookup(model=None):
            raise ValueError("bad provider table")

        engine.ai.image_provider = broken_lookup

        with pytest.raises(ValueError):
            engine.images.generate_image(
                GenerateImageRequest(
                    drama_id=seeded.drama.id, scene_id=seeded.scene.id, prompt="p"
                )
            )

        [record] = engine.images.list_images().items
        assert record.status is JobStatus.FAILED
        assert record.error_msg == "bad provider table"
        assert _scene(engine, seeded.scene.id).status is SceneStatus.FAILED

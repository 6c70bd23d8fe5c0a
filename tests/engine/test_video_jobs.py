"""Tests for video generation jobs."""

from __future__ import annotations

import json

import httpx
import pytest

from dramaforge.engine.video import normalize_references
from dramaforge.exceptions import NotFoundError, ProviderError
from dramaforge.main import DramaForge
from dramaforge.models.ai_config import ServiceType
from dramaforge.models.jobs import GenerateVideoRequest, JobStatus, ReferenceMode
from dramaforge.providers.models import GenerationResult

VIDEO_URL = "https://video.test/clip.mp4"


def _request(**fields) -> GenerateVideoRequest:
    return GenerateVideoRequest(drama_id="drama_1", prompt="walk", **fields)


class TestReferenceNormalization:
    """Test that only the fields of the chosen reference mode survive."""

    def test_explicit_mode_drops_other_fields(self):
        """Test an explicit first/last mode clears the single image."""
        fields = normalize_references(
            _request(
                reference_mode=ReferenceMode.FIRST_LAST,
                image_url="https://single",
                first_frame_url="https://first",
                last_frame_url="https://last",
                reference_image_urls=["https://ref"],
            )
        )
        assert fields == {
            "reference_mode": ReferenceMode.FIRST_LAST,
            "image_url": None,
            "first_frame_url": "https://first",
            "last_frame_url": "https://last",
            "reference_image_urls": None,
        }

    def test_single_wins_when_inferring(self):
        """Test a plain image URL is inferred as single mode."""
        fields = normalize_references(
            _request(image_url="https://single", reference_image_urls=["https://ref"])
        )
        assert fields["reference_mode"] is ReferenceMode.SINGLE
        assert fields["reference_image_urls"] is None

    def test_inferred_first_last_and_multiple(self):
        """Test frame pairs and reference lists infer their modes."""
        assert (
            normalize_references(_request(last_frame_url="https://last"))["reference_mode"]
            is ReferenceMode.FIRST_LAST
        )
        multiple = normalize_references(_request(reference_image_urls=["a", "b"]))
        assert multiple["reference_mode"] is ReferenceMode.MULTIPLE
        assert multiple["reference_image_urls"] == ["a", "b"]

    def test_no_references(self):
        """Test a request without references keeps no mode."""
        fields = normalize_references(_request())
        assert fields["reference_mode"] is None
        assert not any(v for k, v in fields.items() if k != "reference_mode")

    def test_empty_multiple_list_becomes_none(self):
        """Test an explicit multiple mode with no images stores None."""
        fields = normalize_references(
            _request(reference_mode=ReferenceMode.MULTIPLE, reference_image_urls=[])
        )
        assert fields["reference_image_urls"] is None


class TestVideoJobs:
    """Test video job lifecycles and storyboard fan-out."""

    @pytest.mark.asyncio
    async def test_completion_writes_video_url_only(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test a finished video lands on the storyboard without touching its image."""
        engine.repository.set_storyboard_media(seeded.storyboard.id, composed_image="https://img")
        provider = scripted_provider(
            GenerationResult(task_id="v-1", status="queued"),
            polls=[GenerationResult(task_id="v-1", status="succeeded", video_url=VIDEO_URL, duration=5.0)],
        )
        route_provider("video", provider)

        record = engine.videos.generate_video(
            GenerateVideoRequest(
                drama_id=seeded.drama.id,
                storyboard_id=seeded.storyboard.id,
                prompt="shutter rises",
                image_url="https://img",
                duration=5,
            )
        )
        assert record.reference_mode is ReferenceMode.SINGLE
        assert record.provider == "doubao"
        await engine.join()

        stored = engine.videos.get_video(record.id)
        assert (stored.status, stored.video_url, stored.duration) == (
            JobStatus.COMPLETED,
            VIDEO_URL,
            5,
        )
        assert provider.requests[0].image_url == "https://img"
        storyboard = engine.repository.find_storyboard_context(seeded.storyboard.id).storyboard
        assert (storyboard.video_url, storyboard.composed_image) == (VIDEO_URL, "https://img")

    @pytest.mark.asyncio
    async def test_failure_leaves_storyboard_untouched(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test a failed video records the error and changes no graph node."""
        route_provider(
            "video", scripted_provider(ProviderError("Volcengine video API error: 400 - bad"))
        )

        record = engine.videos.generate_video(
            GenerateVideoRequest(
                drama_id=seeded.drama.id, storyboard_id=seeded.storyboard.id, prompt="p"
            )
        )
        await engine.join()

        stored = engine.videos.get_video(record.id)
        assert stored.status is JobStatus.FAILED
        assert stored.error_msg == "Volcengine video API error: 400 - bad"
        storyboard = engine.repository.find_storyboard_context(seeded.storyboard.id).storyboard
        assert storyboard.video_url is None

    @pytest.mark.asyncio
    async def test_generate_from_image_reuses_image_target(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test animating an image job copies its URL and storyboard."""
        route_provider("image", scripted_provider(GenerationResult(image_url="https://frame.png")))
        route_provider("video", scripted_provider(GenerationResult(video_url=VIDEO_URL)))
        image = engine.images.batch_generate_for_episode(seeded.episode.id)[0]
        await engine.join()

        video = engine.videos.generate_from_image(image.id, seeded.drama.id, "slow pan")
        await engine.join()

        assert video.image_gen_id == image.id
        assert video.storyboard_id == seeded.storyboard.id
        assert (video.reference_mode, video.image_url) == (
            ReferenceMode.SINGLE,
            "https://frame.png",
        )
        assert engine.videos.get_video(video.id).status is JobStatus.COMPLETED

    def test_generate_from_unknown_image(self, engine, seeded):
        """Test a missing image job raises NotFoundError."""
        with pytest.raises(NotFoundError, match="Image generation not found"):
            engine.videos.generate_from_image(999, seeded.drama.id, "p")

    @pytest.mark.asyncio
    async def test_batch_uses_prompt_or_image(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test storyboards with neither video prompt nor image are skipped."""
        engine.repository.create_storyboard(seeded.episode.id, {"action": "bare"})
        imaged = engine.repository.create_storyboard(seeded.episode.id, {})
        engine.repository.set_storyboard_media(imaged.id, composed_image="https://img")
        provider = scripted_provider(GenerationResult(video_url=VIDEO_URL))
        route_provider("video", provider)

        results = engine.videos.batch_generate_for_episode(seeded.episode.id)
        await engine.join()

        assert [r.storyboard_id for r in results] == [seeded.storyboard.id, imaged.id]
        assert results[1].image_url == "https://img"

    @pytest.mark.asyncio
    async def test_list_with_comma_separated_status(
        self, engine, seeded, route_provider, scripted_provider
    ):
        """Test status filters accept several comma-separated values."""
        route_provider("video", scripted_provider(GenerationResult(video_url=VIDEO_URL)))
        done = engine.videos.generate_video(GenerateVideoRequest(drama_id=seeded.drama.id, prompt="a"))
        await engine.join()
        route_provider("video", scripted_provider(ProviderError("boom")))
        failed = engine.videos.generate_video(
            GenerateVideoRequest(drama_id=seeded.drama.id, prompt="b")
        )
        await engine.join()

        both = engine.videos.list_videos(status="completed, failed")
        assert {v.id for v in both.items} == {done.id, failed.id}
        assert [v.id for v in engine.videos.list_videos(status="failed").items] == [failed.id]
        assert engine.videos.list_videos(status="processing").items == []

        engine.videos.delete_video(done.id)
        assert [v.id for v in engine.videos.list_videos(drama_id=seeded.drama.id).items] == [
            failed.id
        ]


class TestVideoOverHttp:
    """Run a video job end to end against a mocked Volcengine endpoint."""

    @pytest.mark.asyncio
    async def test_doubao_task_is_polled_to_completion(self, settings, store):
        """Test submission, polling and fan-out through the real adapter."""
        seen: list[httpx.Request] = []
        statuses = iter(
            [
                {"id": "cgt-1", "status": "running"},
                {"id": "cgt-1", "status": "succeeded", "content": {"video_url": VIDEO_URL}},
            ]
        )

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.method == "POST":
                return httpx.Response(200, json={"id": "cgt-1"})
            return httpx.Response(200, json=next(statuses))

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        engine = DramaForge(settings, store=store, http_client=client)
        engine.configs.create_config(
            {
                "name": "ark",
                "service_type": ServiceType.VIDEO,
                "provider": "doubao",
                "base_url": "https://ark.test/api/v3",
                "api_key": "ark-key",
                "model": "seedance-1",
            }
        )
        drama = engine.repository.create_drama("Harbor")

        record = engine.videos.generate_video(
            GenerateVideoRequest(drama_id=drama.id, prompt="waves", image_url="https://frame")
        )
        await engine.join()
        await engine.aclose()
        await client.aclose()

        stored = engine.videos.get_video(record.id)
        assert stored.status is JobStatus.COMPLETED
        assert stored.task_id == "cgt-1"
        assert stored.video_url == VIDEO_URL

        submit = seen[0]
        assert str(submit.url) == "https://ark.test/api/v3/contents/generations/tasks"
        assert submit.headers["Authorization"] == "Bearer ark-key"
        assert json.loads(submit.content) == {
            "model": "seedance-1",
            "content": [
                {"type": "image_url", "image_url": {"url": "https://frame"}},
                {"type": "text", "text": "waves"},
            ],
        }
        assert [str(r.url) for r in seen[1:]] == [
            "https://ark.test/api/v3/contents/generations/tasks/cgt-1"
        ] * 2

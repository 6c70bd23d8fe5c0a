"""Tests for the HTTP backend client."""

from __future__ import annotations

import json

import httpx
import pytest

from dramaforge.exceptions import NotFoundError, RemoteBackendError
from dramaforge.models.jobs import GenerateImageRequest, JobStatus, TaskType
from dramaforge.services import RemoteBackend, unwrap

BASE_URL = "http://remote.test/api/v1"

DRAMA = {"id": "drama_1", "title": "Harbor", "genre": "noir", "status": "draft"}


class Recorder:
    """MockTransport handler that answers from a route table and records requests."""

    def __init__(self, routes: dict[tuple[str, str], httpx.Response]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.routes.get(
            (request.method, request.url.path), httpx.Response(404, json={"error": "nope"})
        )

    @property
    def last_body(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def make_backend():
    """Build a backend whose client answers from a route table."""

    def make(routes):
        recorder = Recorder(routes)
        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder), base_url=BASE_URL)
        return RemoteBackend(BASE_URL, client=client), recorder

    return make


class TestUnwrap:
    """Test response envelope handling."""

    def test_data_envelope_is_removed(self):
        """Test only a top-level data key is unwrapped."""
        assert unwrap({"data": [1, 2]}) == [1, 2]
        assert unwrap({"items": []}) == {"items": []}
        assert unwrap([{"data": 1}]) == [{"data": 1}]


class TestRequests:
    """Test paths, bodies and response decoding."""

    @pytest.mark.asyncio
    async def test_create_drama_posts_only_given_fields(self, make_backend):
        """Test unset optional fields are left out of the body."""
        backend, recorder = make_backend(
            {("POST", "/api/v1/dramas"): httpx.Response(201, json={"data": DRAMA})}
        )

        drama = await backend.create_drama("Harbor", genre="noir")

        assert drama.id == "drama_1"
        assert recorder.last_body == {"title": "Harbor", "genre": "noir"}

    @pytest.mark.asyncio
    async def test_list_sends_query_and_parses_page(self, make_backend):
        """Test filters become query parameters and pages are validated."""
        page = {
            "items": [DRAMA],
            "pagination": {"page": 2, "page_size": 5, "total": 6, "total_pages": 2},
        }
        backend, recorder = make_backend(
            {("GET", "/api/v1/dramas"): httpx.Response(200, json=page)}
        )

        result = await backend.list_dramas(genre="noir", page=2, page_size=5)

        assert [d.title for d in result.items] == ["Harbor"]
        assert result.pagination.total == 6
        assert dict(recorder.requests[0].url.params) == {
            "genre": "noir",
            "page": "2",
            "page_size": "5",
        }

    @pytest.mark.asyncio
    async def test_generation_routes(self, make_backend):
        """Test episode, task, image and frame prompt endpoints."""
        task = {"id": "task_1", "type": "storyboard", "status": "processing", "progress": 30}
        image = {"id": 7, "drama_id": "drama_1", "prompt": "p", "status": "pending"}
        backend, recorder = make_backend(
            {
                ("POST", "/api/v1/generation/episodes"): httpx.Response(200, json={"data": []}),
                ("GET", "/api/v1/tasks/task_1"): httpx.Response(200, json={"data": task}),
                ("POST", "/api/v1/images"): httpx.Response(200, json={"data": image}),
                ("POST", "/api/v1/storyboards/sb_1/frame-prompt"): httpx.Response(
                    200, json={"data": {"frame_type": "panel", "multi_frame": {"frames": []}}}
                ),
            }
        )

        assert await backend.generate_episodes("drama_1", 4) == []
        assert recorder.last_body == {"drama_id": "drama_1", "episode_count": 4}

        status = await backend.get_task_status("task_1")
        assert (status.type, status.status, status.progress) == (
            TaskType.STORYBOARD,
            JobStatus.PROCESSING,
            30,
        )

        record = await backend.generate_image(
            GenerateImageRequest(drama_id="drama_1", prompt="p", storyboard_id="sb_1")
        )
        assert record.id == 7
        assert recorder.last_body == {
            "drama_id": "drama_1",
            "prompt": "p",
            "storyboard_id": "sb_1",
            "reference_images": [],
        }

        result = await backend.generate_frame_prompt("sb_1", "panel", panel_count=4)
        assert result.multi_frame == {"frames": []}
        assert recorder.last_body == {"frame_type": "panel", "panel_count": 4}

    @pytest.mark.asyncio
    async def test_video_from_image_path(self, make_backend):
        """Test animating an image posts to the image-scoped route."""
        video = {"id": 3, "drama_id": "drama_1", "prompt": "pan", "image_gen_id": 7}
        backend, recorder = make_backend(
            {("POST", "/api/v1/videos/image/7"): httpx.Response(200, json=video)}
        )

        record = await backend.generate_video_from_image(7, "drama_1", "pan")

        assert record.image_gen_id == 7
        assert recorder.last_body == {"drama_id": "drama_1", "prompt": "pan"}

    @pytest.mark.asyncio
    async def test_library_and_asset_routes(self, make_backend):
        """Test character library, portrait, asset and merge endpoints."""
        item = {"id": "lib_1", "name": "Lin", "image_url": "https://img/lin"}
        image = {"id": 8, "drama_id": "drama_1", "prompt": "p", "character_id": 3}
        asset = {"id": 2, "name": "Video_5", "type": "video", "url": "https://vid/5"}
        empty_page = {
            "items": [],
            "pagination": {"page": 1, "page_size": 20, "total": 0, "total_pages": 0},
        }
        backend, recorder = make_backend(
            {
                ("PUT", "/api/v1/characters/3/image-from-library"): httpx.Response(
                    200, json={"data": {"id": 3, "drama_id": "drama_1", "name": "Lin"}}
                ),
                ("POST", "/api/v1/characters/batch-portraits"): httpx.Response(
                    200, json={"data": [image]}
                ),
                ("POST", "/api/v1/characters/3/add-to-library"): httpx.Response(
                    200, json={"data": item}
                ),
                ("POST", "/api/v1/assets/import/video/5"): httpx.Response(200, json=asset),
                ("GET", "/api/v1/assets"): httpx.Response(200, json=empty_page),
                ("DELETE", "/api/v1/video-merges/4"): httpx.Response(204),
            }
        )

        await backend.apply_library_item(3, "lib_1")
        assert recorder.last_body == {"library_item_id": "lib_1"}

        [record] = await backend.batch_generate_character_portraits([3], model="img-2")
        assert record.character_id == 3
        assert recorder.last_body == {"character_ids": [3], "model": "img-2"}

        assert (await backend.add_character_to_library(3)).id == "lib_1"
        assert recorder.last_body == {}

        assert (await backend.import_asset_from_video(5)).name == "Video_5"
        assert (await backend.list_assets(asset_type="video")).items == []
        assert dict(recorder.requests[-1].url.params) == {
            "type": "video",
            "page": "1",
            "page_size": "20",
        }
        assert await backend.delete_merge(4) is True


class TestErrors:
    """Test status code mapping."""

    @pytest.mark.asyncio
    async def test_not_found(self, make_backend):
        """Test a 404 raises NotFoundError."""
        backend, _ = make_backend({})
        with pytest.raises(NotFoundError):
            await backend.get_drama("drama_missing")

    @pytest.mark.asyncio
    async def test_delete_reports_existence(self, make_backend):
        """Test deletes return False on 404 and True on an empty success."""
        backend, _ = make_backend({("DELETE", "/api/v1/dramas/drama_1"): httpx.Response(204)})
        assert await backend.delete_drama("drama_1") is True
        assert await backend.delete_drama("drama_2") is False

    @pytest.mark.asyncio
    async def test_server_error(self, make_backend):
        """Test other failures raise RemoteBackendError with the status."""
        backend, _ = make_backend(
            {("GET", "/api/v1/dramas/stats"): httpx.Response(500, text="database down")}
        )
        with pytest.raises(RemoteBackendError) as exc_info:
            await backend.get_stats()
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Remote backend error: 500 - database down"


class TestLifecycle:
    """Test client ownership."""

    @pytest.mark.asyncio
    async def test_injected_client_stays_open(self, make_backend):
        """Test closing the backend leaves a caller's client open."""
        backend, _ = make_backend({})
        await backend.join()
        await backend.aclose()
        assert not backend.client.is_closed
        await backend.client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self):
        """Test a backend closes the client it created."""
        async with RemoteBackend(BASE_URL + "/") as backend:
            assert backend.base_url == BASE_URL
        assert backend.client.is_closed

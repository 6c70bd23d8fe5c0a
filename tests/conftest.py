"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import pytest

from dramaforge.config import DramaForgeSettings, reset_settings, set_settings
from dramaforge.graph import ContentGraphRepository
from dramaforge.main import DramaForge
from dramaforge.models.graph import Character, Drama, Episode, Scene, Storyboard
from dramaforge.providers.base import GenerationProvider
from dramaforge.providers.models import GenerationRequest, GenerationResult
from dramaforge.storage import MemoryStore


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers",
        "integration: tests touching the filesystem-backed store",
    )


class ScriptedProvider(GenerationProvider):
    """Generation adapter that replays canned outcomes instead of calling HTTP.

    Each outcome is either a :class:`GenerationResult` to return or an
    exception instance to raise. When the poll script runs out, the task
    keeps reporting ``running``.
    """

    provider_name = "scripted"
    label = "Scripted API"

    def __init__(
        self,
        submit: GenerationResult | Exception,
        polls: Iterable[GenerationResult | Exception] = (),
    ) -> None:
        super().__init__(base_url="http://scripted.test")
        self.submit_outcome = submit
        self.poll_outcomes = list(polls)
        self.requests: list[GenerationRequest] = []
        self.polled: list[str] = []

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        self.requests.append(request)
        if isinstance(self.submit_outcome, Exception):
            raise self.submit_outcome
        return self.submit_outcome

    async def poll_task_status(self, task_id: str) -> GenerationResult:
        self.polled.append(task_id)
        if not self.poll_outcomes:
            return GenerationResult(task_id=task_id, status="running")
        outcome = self.poll_outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@dataclass
class SeededGraph:
    drama: Drama
    episode: Episode
    character: Character
    scene: Scene
    storyboard: Storyboard


@pytest.fixture
def settings(tmp_path):
    """Memory-backed settings with instant, short polling."""
    settings = DramaForgeSettings(
        store_backend="memory",
        store_path=tmp_path / "store",
        poll_interval=0,
        poll_max_attempts=5,
    )
    set_settings(settings)
    yield settings
    reset_settings()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def engine(settings, store):
    return DramaForge(settings, store=store)


@pytest.fixture
def repository(engine) -> ContentGraphRepository:
    return engine.repository


@pytest.fixture
def seeded(repository) -> SeededGraph:
    """A drama with one episode, character, scene and storyboard."""
    drama = repository.create_drama(
        "Night Market", description="Two rivals run neighbouring stalls", genre="romance"
    )
    episode = repository.save_episodes(
        drama.id,
        [{"title": "Opening Night", "script_content": "Lin opens her stall at dusk."}],
    )[0]
    character = repository.add_character(
        drama.id, {"name": "Lin", "role": "lead", "appearance": "red coat"}
    )
    scene = repository.create_scene(
        drama.id, {"location": "Night market", "time": "dusk", "episode_id": episode.id}
    )
    storyboard = repository.create_storyboard(
        episode.id,
        {
            "action": "Lin lifts the shutter",
            "location": "Night market",
            "time": "dusk",
            "scene_id": scene.id,
            "characters": [character.id],
            "image_prompt": "Night market, dusk, anime style, first frame",
            "video_prompt": "Action: Lin lifts the shutter",
        },
    )
    return SeededGraph(
        drama=repository.get_drama(drama.id),
        episode=episode,
        character=character,
        scene=scene,
        storyboard=storyboard,
    )


@pytest.fixture
def route_provider(engine: DramaForge):
    """Route the engine's image or video provider lookup to a given adapter."""

    def route(kind: str, provider: GenerationProvider) -> None:
        def resolve(model: Any = None) -> tuple[None, GenerationProvider]:
            return None, provider

        setattr(engine.ai, f"{kind}_provider", resolve)

    return route


@pytest.fixture
def scripted_provider():
    """The :class:`ScriptedProvider` class, for building adapters per test."""
    return ScriptedProvider

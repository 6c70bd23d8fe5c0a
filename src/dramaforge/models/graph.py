"""Content graph records: dramas and everything they own."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dramaforge.storage.ids import utc_now

RecordId = int | str


class DramaStatus(str, Enum):
    """Lifecycle of a drama."""

    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SceneStatus(str, Enum):
    """Background image state of a scene."""

    DRAFT = "draft"
    PENDING = "pending"
    GENERATED = "generated"
    FAILED = "failed"


class GraphRecord(BaseModel):
    """Base for graph nodes.

    Unknown fields are kept so records written by newer clients or by the
    remote backend survive a read-modify-write cycle.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Character(GraphRecord):
    """A character in the drama's canonical cast."""

    id: int
    drama_id: str
    name: str
    role: str | None = None
    description: str | None = None
    appearance: str | None = None
    personality: str | None = None
    voice_style: str | None = None
    background: str | None = None
    reference_images: list[str] = Field(default_factory=list)
    seed_value: int | None = None
    sort_order: int = 0
    image_url: str | None = None
    image_generation_status: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Scene(GraphRecord):
    """A background location; canonical copies live on the drama."""

    id: str
    drama_id: str
    episode_id: str | None = None
    title: str | None = None
    description: str | None = None
    location: str = ""
    time: str = ""
    atmosphere: str | None = None
    prompt: str = ""
    status: SceneStatus = SceneStatus.DRAFT
    image_url: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Storyboard(GraphRecord):
    """One shot of an episode."""

    id: str
    episode_id: str
    storyboard_number: int
    title: str | None = None
    description: str | None = None
    shot_type: str | None = None
    angle: str | None = None
    movement: str | None = None
    location: str | None = None
    time: str | None = None
    action: str | None = None
    dialogue: str | None = None
    result: str | None = None
    atmosphere: str | None = None
    emotion: str | None = None
    bgm_prompt: str | None = None
    sound_effect: str | None = None
    duration: int = 5
    scene_id: RecordId | None = None
    characters: list[RecordId] = Field(default_factory=list)
    is_primary: bool = True
    image_prompt: str | None = None
    video_prompt: str | None = None
    composed_image: str | None = None
    video_url: str | None = None
    status: str = "draft"
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Episode(GraphRecord):
    """An episode; its scenes and characters are replicas of drama lists."""

    id: str
    drama_id: str
    episode_number: int
    title: str = ""
    description: str | None = None
    content: str | None = None
    script_content: str | None = None
    duration: int = 0
    status: str = "draft"
    storyboards: list[Storyboard] = Field(default_factory=list)
    scenes: list[Scene] = Field(default_factory=list)
    characters: list[Character] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def storyboard_count(self) -> int:
        return len(self.storyboards)


class Drama(GraphRecord):
    """Root aggregate of the content graph."""

    id: str
    title: str
    description: str | None = None
    genre: str | None = None
    style: str | None = None
    tags: list[str] = Field(default_factory=list)
    status: DramaStatus = DramaStatus.DRAFT
    characters: list[Character] = Field(default_factory=list)
    episodes: list[Episode] = Field(default_factory=list)
    scenes: list[Scene] = Field(default_factory=list)
    total_episodes: int = 0
    total_duration: int = 0
    total_scenes: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def find_episode(self, episode_id: RecordId) -> Episode | None:
        for episode in self.episodes:
            if str(episode.id) == str(episode_id):
                return episode
        return None

    def find_scene(self, scene_id: RecordId | None) -> Scene | None:
        if scene_id is None:
            return None
        for scene in self.scenes:
            if str(scene.id) == str(scene_id):
                return scene
        return None

    def find_character(self, character_id: RecordId | None) -> Character | None:
        if character_id is None:
            return None
        for character in self.characters:
            if str(character.id) == str(character_id):
                return character
        return None

    def find_storyboard(
        self, storyboard_id: RecordId
    ) -> tuple[Episode, Storyboard] | None:
        for episode in self.episodes:
            for storyboard in episode.storyboards:
                if str(storyboard.id) == str(storyboard_id):
                    return episode, storyboard
        return None


class BackgroundRef(BaseModel):
    """Scene summary attached to a storyboard listing."""

    id: str
    location: str = ""
    time: str = ""
    image_url: str | None = None
    status: SceneStatus = SceneStatus.PENDING


class CharacterRef(BaseModel):
    """Character summary attached to a storyboard listing."""

    id: int
    name: str
    image_url: str | None = None


class StoryboardView(Storyboard):
    """A storyboard with its weak references resolved.

    Dangling scene or character ids resolve to nothing rather than failing.
    """

    background: BackgroundRef | None = None
    character_refs: list[CharacterRef] = Field(default_factory=list)


class DramaStats(BaseModel):
    """Counts returned by the drama statistics operation."""

    total: int
    by_status: dict[str, int]

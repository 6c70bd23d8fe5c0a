"""Repository for the nested drama aggregate.

All writes go through :meth:`ContentGraphRepository.mutate_drama`, which
re-derives every episode's scene and character replicas from the drama's
canonical lists before persisting. Reads return sorted copies with derived
counters; storage order is never relied upon.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from dramaforge.config import get_logger
from dramaforge.exceptions import NotFoundError, ValidationError
from dramaforge.models.graph import (
    BackgroundRef,
    Character,
    CharacterRef,
    Drama,
    DramaStats,
    DramaStatus,
    Episode,
    RecordId,
    Scene,
    SceneStatus,
    Storyboard,
    StoryboardView,
)
from dramaforge.prompts.builders import build_video_prompt
from dramaforge.storage import (
    KeyValueStore,
    Page,
    StorageCollection,
    StorageKeys,
    generate_id,
    generate_numeric_id,
    paginate,
    same_id,
    utc_now,
)

logger = get_logger(__name__)

DramaMutation = Callable[[Drama], Drama | None]


@dataclass
class StoryboardContext:
    """A storyboard together with the graph nodes around it."""

    storyboard: Storyboard
    episode: Episode
    drama: Drama
    scene: Scene | None = None
    characters: list[Character] = field(default_factory=list)


def _merge(record: Any, fields: dict[str, Any]) -> Any:
    """Shallow-merge ``fields`` into a pydantic record and re-validate."""
    data = record.model_dump()
    data.update(fields)
    data["updated_at"] = utc_now()
    return type(record).model_validate(data)


def sync_replicas(drama: Drama) -> None:
    """Overwrite every episode replica from the drama's canonical lists.

    Episodes receive the full character list. Scenes bound to an episode
    replicate into that episode only; scenes without an episode replicate
    into every episode.
    """
    for episode in drama.episodes:
        episode.characters = [c.model_copy(deep=True) for c in drama.characters]
        episode.scenes = [
            s.model_copy(deep=True)
            for s in drama.scenes
            if s.episode_id is None or same_id(s.episode_id, episode.id)
        ]


def _parse_tags(tags: str | list[str] | None) -> list[str]:
    if tags is None:
        return []
    if isinstance(tags, str):
        return [t.strip() for t in tags.split(",") if t.strip()]
    return [t.strip() for t in tags if t and t.strip()]


class ContentGraphRepository:
    """CRUD and consistency maintenance for dramas and their contents."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self.dramas = StorageCollection(store, StorageKeys.DRAMAS, Drama)

    # ------------------------------------------------------------------
    # Core primitives
    # ------------------------------------------------------------------

    def mutate_drama(self, drama_id: RecordId, fn: DramaMutation) -> Drama:
        """Load all dramas, apply ``fn`` to one, fix replicas and persist.

        ``fn`` may return a new Drama or mutate its argument in place and
        return None.

        Raises:
            NotFoundError: If no drama has ``drama_id``.
        """
        dramas = self.dramas.get_all()
        for index, drama in enumerate(dramas):
            if not same_id(drama.id, drama_id):
                continue
            updated = fn(drama) or drama
            sync_replicas(updated)
            updated.total_episodes = len(updated.episodes)
            updated.total_scenes = len(updated.scenes)
            updated.updated_at = utc_now()
            dramas[index] = updated
            self.dramas.replace_all(dramas)
            return updated
        raise NotFoundError("Drama", drama_id)

    def find_drama(self, drama_id: RecordId) -> Drama | None:
        """Raw stored drama, unsorted, or None."""
        return self.dramas.get_by_id(drama_id)

    def _prepare(self, drama: Drama) -> Drama:
        view = drama.model_copy(deep=True)
        view.episodes.sort(key=lambda ep: ep.episode_number)
        for episode in view.episodes:
            episode.storyboards.sort(key=lambda sb: sb.storyboard_number)
        sync_replicas(view)
        view.total_episodes = len(view.episodes)
        view.total_scenes = len(view.scenes)
        return view

    def get_drama(self, drama_id: RecordId) -> Drama:
        """Return a drama with sorted children and derived counters.

        Raises:
            NotFoundError: If the drama does not exist.
        """
        drama = self.find_drama(drama_id)
        if drama is None:
            raise NotFoundError("Drama", drama_id)
        return self._prepare(drama)

    def _locate(self, predicate: Callable[[Drama], bool]) -> Drama | None:
        for drama in self.dramas.get_all():
            if predicate(drama):
                return drama
        return None

    def find_episode(self, episode_id: RecordId) -> tuple[Drama, Episode] | None:
        """Scan every drama for an episode."""
        for drama in self.dramas.get_all():
            episode = drama.find_episode(episode_id)
            if episode is not None:
                return drama, episode
        return None

    def find_character(self, character_id: RecordId) -> tuple[Drama, Character] | None:
        for drama in self.dramas.get_all():
            character = drama.find_character(character_id)
            if character is not None:
                return drama, character
        return None

    def find_storyboard_context(
        self, storyboard_id: RecordId
    ) -> StoryboardContext | None:
        """Find a storyboard and resolve its weak references.

        Scans every drama and episode; callers should not call this in a
        loop. Dangling scene or character ids are skipped.
        """
        for drama in self.dramas.get_all():
            found = drama.find_storyboard(storyboard_id)
            if found is None:
                continue
            episode, storyboard = found
            characters = [
                c
                for c in (drama.find_character(cid) for cid in storyboard.characters)
                if c is not None
            ]
            return StoryboardContext(
                storyboard=storyboard,
                episode=episode,
                drama=drama,
                scene=drama.find_scene(storyboard.scene_id),
                characters=characters,
            )
        return None

    def _drama_id_for_storyboard(self, storyboard_id: RecordId) -> str | None:
        drama = self._locate(lambda d: d.find_storyboard(storyboard_id) is not None)
        return drama.id if drama else None

    def _drama_id_for_scene(self, scene_id: RecordId) -> str | None:
        drama = self._locate(lambda d: d.find_scene(scene_id) is not None)
        return drama.id if drama else None

    def _drama_id_for_character(self, character_id: RecordId) -> str | None:
        drama = self._locate(lambda d: d.find_character(character_id) is not None)
        return drama.id if drama else None

    # ------------------------------------------------------------------
    # Dramas
    # ------------------------------------------------------------------

    def list_dramas(
        self,
        status: str | None = None,
        genre: str | None = None,
        keyword: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[Drama]:
        """Filter dramas and return one page, most recently updated first."""
        items = self.dramas.get_all()
        if status:
            items = [d for d in items if d.status == status]
        if genre:
            items = [d for d in items if d.genre == genre]
        if keyword:
            needle = keyword.lower()
            items = [
                d
                for d in items
                if needle in d.title.lower()
                or (d.description and needle in d.description.lower())
            ]
        items.sort(key=lambda d: d.updated_at, reverse=True)
        return paginate([self._prepare(d) for d in items], page, page_size)

    def create_drama(
        self,
        title: str,
        description: str | None = None,
        genre: str | None = None,
        tags: str | list[str] | None = None,
        style: str | None = None,
    ) -> Drama:
        if not title.strip():
            raise ValidationError("Drama title must not be empty")
        drama = Drama(
            id=generate_id("drama"),
            title=title.strip(),
            description=description,
            genre=genre,
            style=style,
            tags=_parse_tags(tags),
            status=DramaStatus.DRAFT,
        )
        self.dramas.add(drama)
        logger.info("Created drama", drama_id=drama.id, title=drama.title)
        return drama

    def update_drama(self, drama_id: RecordId, fields: dict[str, Any]) -> Drama:
        """Update top-level drama fields.

        Nested lists are owned by dedicated operations and cannot be
        replaced here.
        """
        blocked = {"id", "episodes", "characters", "scenes"} & set(fields)
        if blocked:
            raise ValidationError(
                "Nested drama content cannot be updated directly",
                hint="Use save_characters, save_episodes or the scene operations",
                details={"fields": sorted(blocked)},
            )
        if "tags" in fields:
            fields = {**fields, "tags": _parse_tags(fields["tags"])}
        return self.mutate_drama(drama_id, lambda d: _merge(d, fields))

    def delete_drama(self, drama_id: RecordId) -> bool:
        """Delete a drama and everything it owns."""
        deleted = self.dramas.delete(drama_id)
        if deleted:
            logger.info("Deleted drama", drama_id=drama_id)
        return deleted

    def get_stats(self) -> DramaStats:
        by_status: dict[str, int] = {}
        dramas = self.dramas.get_all()
        for drama in dramas:
            key = DramaStatus(drama.status).value
            by_status[key] = by_status.get(key, 0) + 1
        return DramaStats(total=len(dramas), by_status=by_status)

    def save_outline(
        self,
        drama_id: RecordId,
        title: str,
        summary: str,
        genre: str | None = None,
        tags: str | list[str] | None = None,
    ) -> Drama:
        fields: dict[str, Any] = {"title": title, "description": summary}
        if genre is not None:
            fields["genre"] = genre
        if tags is not None:
            fields["tags"] = tags
        return self.update_drama(drama_id, fields)

    def save_progress(
        self, drama_id: RecordId, current_step: str, step_data: Any = None
    ) -> Drama:
        """Record wizard progress in the drama metadata."""

        def apply(drama: Drama) -> None:
            drama.metadata = {
                **drama.metadata,
                "current_step": current_step,
                "step_data": step_data,
            }

        return self.mutate_drama(drama_id, apply)

    # ------------------------------------------------------------------
    # Characters
    # ------------------------------------------------------------------

    def get_characters(self, drama_id: RecordId) -> list[Character]:
        return self.get_drama(drama_id).characters

    def _new_character(
        self, drama_id: str, data: dict[str, Any], sort_order: int
    ) -> Character:
        payload = {
            k: v for k, v in data.items() if k not in {"drama_id", "sort_order"}
        }
        if not payload.get("id"):
            payload["id"] = generate_numeric_id(self.store, "character")
        payload.setdefault("created_at", utc_now())
        payload["updated_at"] = utc_now()
        return Character.model_validate(
            {**payload, "drama_id": drama_id, "sort_order": sort_order}
        )

    def save_characters(
        self, drama_id: RecordId, characters: list[dict[str, Any]]
    ) -> list[Character]:
        """Replace the drama's canonical character list.

        Characters without an id get a fresh numeric id. Every episode
        replica is overwritten in the same write.
        """
        drama = self.find_drama(drama_id)
        if drama is None:
            raise NotFoundError("Drama", drama_id)
        new_list = [
            self._new_character(drama.id, data, index)
            for index, data in enumerate(characters)
        ]

        def apply(d: Drama) -> None:
            d.characters = new_list

        self.mutate_drama(drama_id, apply)
        logger.info("Saved characters", drama_id=drama_id, count=len(new_list))
        return new_list

    def add_character(self, drama_id: RecordId, data: dict[str, Any]) -> Character:
        drama = self.find_drama(drama_id)
        if drama is None:
            raise NotFoundError("Drama", drama_id)
        character = self._new_character(drama.id, data, len(drama.characters))

        def apply(d: Drama) -> None:
            d.characters.append(character)

        self.mutate_drama(drama_id, apply)
        return character

    def merge_characters(
        self, drama_id: RecordId, incoming: list[dict[str, Any]]
    ) -> list[Character]:
        """Add characters by name, keeping existing entries with the same name.

        Returns the characters in ``incoming`` order, existing ones reused.
        """
        drama = self.find_drama(drama_id)
        if drama is None:
            raise NotFoundError("Drama", drama_id)
        existing = {c.name: c for c in drama.characters}
        result: list[Character] = []
        fresh: list[Character] = []
        for data in incoming:
            name = data.get("name")
            if not name:
                continue
            if name in existing:
                result.append(existing[name])
                continue
            if any(c.name == name for c in fresh):
                continue
            character = self._new_character(
                drama.id, data, len(drama.characters) + len(fresh)
            )
            fresh.append(character)
            result.append(character)

        def apply(d: Drama) -> None:
            d.characters.extend(fresh)

        self.mutate_drama(drama_id, apply)
        return result

    def update_character(
        self, character_id: RecordId, fields: dict[str, Any]
    ) -> Character:
        drama_id = self._drama_id_for_character(character_id)
        if drama_id is None:
            raise NotFoundError("Character", character_id)
        fields = {k: v for k, v in fields.items() if k not in {"id", "drama_id"}}
        updated: list[Character] = []

        def apply(d: Drama) -> None:
            for index, character in enumerate(d.characters):
                if same_id(character.id, character_id):
                    d.characters[index] = _merge(character, fields)
                    updated.append(d.characters[index])

        self.mutate_drama(drama_id, apply)
        return updated[0]

    def delete_character(self, character_id: RecordId) -> bool:
        """Remove a character; storyboards keep the now-dangling id."""
        drama_id = self._drama_id_for_character(character_id)
        if drama_id is None:
            return False

        def apply(d: Drama) -> None:
            d.characters = [
                c for c in d.characters if not same_id(c.id, character_id)
            ]

        self.mutate_drama(drama_id, apply)
        return True

    # ------------------------------------------------------------------
    # Episodes
    # ------------------------------------------------------------------

    def save_episodes(
        self, drama_id: RecordId, episodes: list[dict[str, Any]]
    ) -> list[Episode]:
        """Replace the drama's episode list."""
        drama = self.find_drama(drama_id)
        if drama is None:
            raise NotFoundError("Drama", drama_id)
        new_episodes = [
            Episode(
                id=data.get("id") or generate_id("ep"),
                drama_id=drama.id,
                episode_number=data.get("episode_number") or index + 1,
                title=data.get("title") or "",
                content=data.get("content") or data.get("description") or "",
                description=data.get("description"),
                script_content=data.get("script_content"),
                duration=data.get("duration") or 0,
            )
            for index, data in enumerate(episodes)
        ]

        def apply(d: Drama) -> None:
            d.episodes = new_episodes

        saved = self.mutate_drama(drama_id, apply)
        return saved.episodes

    def update_episode(self, episode_id: RecordId, fields: dict[str, Any]) -> Episode:
        found = self.find_episode(episode_id)
        if found is None:
            raise NotFoundError("Episode", episode_id)
        blocked = {"id", "drama_id", "storyboards", "scenes", "characters"}
        fields = {k: v for k, v in fields.items() if k not in blocked}
        updated: list[Episode] = []

        def apply(d: Drama) -> None:
            for index, episode in enumerate(d.episodes):
                if same_id(episode.id, episode_id):
                    d.episodes[index] = _merge(episode, fields)
                    updated.append(d.episodes[index])

        self.mutate_drama(found[0].id, apply)
        return updated[0]

    def finalize_episode(self, episode_id: RecordId) -> Episode:
        return self.update_episode(
            episode_id, {"status": "completed", "timeline_status": "completed"}
        )

    # ------------------------------------------------------------------
    # Storyboards
    # ------------------------------------------------------------------

    def list_storyboards(self, episode_id: RecordId) -> list[StoryboardView]:
        """Storyboards of an episode sorted by number, references resolved."""
        found = self.find_episode(episode_id)
        if found is None:
            return []
        drama, episode = found
        views = []
        for storyboard in sorted(
            episode.storyboards, key=lambda sb: sb.storyboard_number
        ):
            view = StoryboardView.model_validate(storyboard.model_dump())
            scene = drama.find_scene(storyboard.scene_id)
            if scene is not None:
                view.background = BackgroundRef(
                    id=scene.id,
                    location=scene.location,
                    time=scene.time,
                    image_url=scene.image_url,
                    status=scene.status,
                )
            view.character_refs = [
                CharacterRef(id=c.id, name=c.name, image_url=c.image_url)
                for c in (drama.find_character(cid) for cid in storyboard.characters)
                if c is not None
            ]
            views.append(view)
        return views

    def create_storyboard(
        self, episode_id: RecordId, data: dict[str, Any]
    ) -> Storyboard:
        """Append a storyboard numbered after the current maximum."""
        found = self.find_episode(episode_id)
        if found is None:
            raise NotFoundError("Episode", episode_id)
        drama, episode = found
        max_number = max((sb.storyboard_number for sb in episode.storyboards), default=0)
        payload = {
            k: v
            for k, v in data.items()
            if k not in {"id", "episode_id", "created_at", "updated_at"}
        }
        payload["storyboard_number"] = data.get("storyboard_number") or max_number + 1
        payload["duration"] = data.get("duration") or 5
        storyboard = Storyboard.model_validate(
            {**payload, "id": generate_id("sb"), "episode_id": episode.id}
        )

        def apply(d: Drama) -> None:
            target = d.find_episode(episode_id)
            if target is None:
                raise NotFoundError("Episode", episode_id)
            target.storyboards.append(storyboard)
            target.updated_at = utc_now()

        self.mutate_drama(drama.id, apply)
        return storyboard

    def replace_storyboards(
        self,
        episode_id: RecordId,
        storyboards: list[Storyboard],
        duration_minutes: int | None = None,
    ) -> Episode:
        """Swap an episode's storyboards wholesale (used by generation)."""
        found = self.find_episode(episode_id)
        if found is None:
            raise NotFoundError("Episode", episode_id)

        def apply(d: Drama) -> None:
            target = d.find_episode(episode_id)
            if target is None:
                raise NotFoundError("Episode", episode_id)
            target.storyboards = storyboards
            if duration_minutes is not None:
                target.duration = duration_minutes
            target.updated_at = utc_now()

        saved = self.mutate_drama(found[0].id, apply)
        episode = saved.find_episode(episode_id)
        if episode is None:
            raise NotFoundError("Episode", episode_id)
        return episode

    def update_storyboard(
        self, storyboard_id: RecordId, fields: dict[str, Any]
    ) -> Storyboard:
        """Merge fields into a storyboard and rebuild its video prompt."""
        drama_id = self._drama_id_for_storyboard(storyboard_id)
        if drama_id is None:
            raise NotFoundError("Storyboard", storyboard_id)
        fields = {k: v for k, v in fields.items() if k not in {"id", "episode_id"}}
        updated: list[Storyboard] = []

        def apply(d: Drama) -> None:
            found = d.find_storyboard(storyboard_id)
            if found is None:
                raise NotFoundError("Storyboard", storyboard_id)
            episode, storyboard = found
            merged = _merge(storyboard, fields)
            merged.video_prompt = build_video_prompt(merged)
            episode.storyboards = [
                merged if same_id(sb.id, storyboard_id) else sb
                for sb in episode.storyboards
            ]
            updated.append(merged)

        self.mutate_drama(drama_id, apply)
        return updated[0]

    def delete_storyboard(self, storyboard_id: RecordId) -> bool:
        drama_id = self._drama_id_for_storyboard(storyboard_id)
        if drama_id is None:
            return False

        def apply(d: Drama) -> None:
            for episode in d.episodes:
                episode.storyboards = [
                    sb for sb in episode.storyboards if not same_id(sb.id, storyboard_id)
                ]

        self.mutate_drama(drama_id, apply)
        return True

    # ------------------------------------------------------------------
    # Scenes
    # ------------------------------------------------------------------

    def create_scene(self, drama_id: RecordId, data: dict[str, Any]) -> Scene:
        drama = self.find_drama(drama_id)
        if drama is None:
            raise NotFoundError("Drama", drama_id)
        episode_id = data.get("episode_id")
        if episode_id is not None and drama.find_episode(episode_id) is None:
            raise NotFoundError("Episode", episode_id)
        payload = {
            k: v
            for k, v in data.items()
            if k not in {"id", "drama_id", "status", "created_at", "updated_at"}
        }
        scene = Scene.model_validate(
            {
                **payload,
                "id": generate_id("scene"),
                "drama_id": drama.id,
                "status": SceneStatus.DRAFT,
            }
        )

        def apply(d: Drama) -> None:
            d.scenes.append(scene)

        self.mutate_drama(drama_id, apply)
        return scene

    def list_scenes(
        self, drama_id: RecordId, episode_id: RecordId | None = None
    ) -> list[Scene]:
        drama = self.get_drama(drama_id)
        if episode_id is None:
            return drama.scenes
        return [s for s in drama.scenes if same_id(s.episode_id, episode_id)]

    def get_scene(self, scene_id: RecordId) -> tuple[Drama, Scene] | None:
        for drama in self.dramas.get_all():
            scene = drama.find_scene(scene_id)
            if scene is not None:
                return drama, scene
        return None

    def update_scene(self, scene_id: RecordId, fields: dict[str, Any]) -> Scene:
        drama_id = self._drama_id_for_scene(scene_id)
        if drama_id is None:
            raise NotFoundError("Scene", scene_id)
        fields = {k: v for k, v in fields.items() if k not in {"id", "drama_id"}}
        updated: list[Scene] = []

        def apply(d: Drama) -> None:
            for index, scene in enumerate(d.scenes):
                if same_id(scene.id, scene_id):
                    d.scenes[index] = _merge(scene, fields)
                    updated.append(d.scenes[index])

        self.mutate_drama(drama_id, apply)
        return updated[0]

    def delete_scene(self, scene_id: RecordId) -> bool:
        """Remove a scene; storyboards keep the now-dangling scene_id."""
        drama_id = self._drama_id_for_scene(scene_id)
        if drama_id is None:
            return False

        def apply(d: Drama) -> None:
            d.scenes = [s for s in d.scenes if not same_id(s.id, scene_id)]

        self.mutate_drama(drama_id, apply)
        return True

    def replace_episode_scenes(
        self, episode_id: RecordId, scenes: list[dict[str, Any]]
    ) -> list[Scene]:
        """Replace every scene bound to an episode with new ones."""
        found = self.find_episode(episode_id)
        if found is None:
            raise NotFoundError("Episode", episode_id)
        drama, episode = found
        new_scenes = [
            Scene.model_validate(
                {
                    **data,
                    "id": generate_id("scene"),
                    "drama_id": drama.id,
                    "episode_id": episode.id,
                    "status": SceneStatus.PENDING,
                }
            )
            for data in scenes
        ]

        def apply(d: Drama) -> None:
            d.scenes = [
                s for s in d.scenes if not same_id(s.episode_id, episode_id)
            ] + new_scenes

        self.mutate_drama(drama.id, apply)
        return new_scenes

    # ------------------------------------------------------------------
    # Media fan-out targets
    # ------------------------------------------------------------------

    def set_storyboard_media(
        self,
        storyboard_id: RecordId,
        composed_image: str | None = None,
        video_url: str | None = None,
    ) -> bool:
        """Write generated media onto a storyboard.

        Returns False, without raising, when the storyboard no longer
        exists.
        """
        drama_id = self._drama_id_for_storyboard(storyboard_id)
        if drama_id is None:
            logger.warning("Fan-out target missing", storyboard_id=storyboard_id)
            return False

        def apply(d: Drama) -> None:
            found = d.find_storyboard(storyboard_id)
            if found is None:
                return
            _, storyboard = found
            if composed_image is not None:
                storyboard.composed_image = composed_image
            if video_url is not None:
                storyboard.video_url = video_url
            storyboard.updated_at = utc_now()

        self.mutate_drama(drama_id, apply)
        return True

    def set_scene_image(
        self,
        scene_id: RecordId,
        status: SceneStatus,
        image_url: str | None = None,
    ) -> bool:
        """Set a scene's status and, when given, its image URL."""
        drama_id = self._drama_id_for_scene(scene_id)
        if drama_id is None:
            logger.warning("Fan-out target missing", scene_id=scene_id)
            return False

        def apply(d: Drama) -> None:
            scene = d.find_scene(scene_id)
            if scene is None:
                return
            scene.status = status
            if image_url is not None:
                scene.image_url = image_url
            scene.updated_at = utc_now()

        self.mutate_drama(drama_id, apply)
        return True

    def set_character_image(
        self,
        character_id: RecordId,
        status: str,
        image_url: str | None = None,
    ) -> bool:
        """Set a character's image generation status and, when given, URL."""
        drama_id = self._drama_id_for_character(character_id)
        if drama_id is None:
            logger.warning("Fan-out target missing", character_id=character_id)
            return False

        def apply(d: Drama) -> None:
            character = d.find_character(character_id)
            if character is None:
                return
            character.image_generation_status = status
            if image_url is not None:
                character.image_url = image_url
            character.updated_at = utc_now()

        self.mutate_drama(drama_id, apply)
        return True

"""Text generation jobs: characters, storyboards, backgrounds and episodes."""

from __future__ import annotations

import asyncio
import json
import math
from collections.abc import Awaitable, Callable
from typing import Any

from dramaforge.config import get_logger
from dramaforge.engine.ai_client import AIClient
from dramaforge.engine.media import error_message
from dramaforge.engine.runner import BackgroundRunner
from dramaforge.engine.tasks import TaskStore
from dramaforge.exceptions import NotFoundError, ParseError, ValidationError
from dramaforge.graph import ContentGraphRepository
from dramaforge.models.graph import Drama, Episode, RecordId, Storyboard
from dramaforge.models.jobs import Task, TaskType
from dramaforge.prompts.builders import build_image_prompt, build_video_prompt
from dramaforge.prompts.templates import (
    BACKGROUND_EXTRACTION_PROMPT,
    BACKGROUND_USER_TEMPLATE,
    CHARACTER_SYSTEM_PROMPT,
    CHARACTER_USER_TEMPLATE,
    STORYBOARD_PROMPT_TEMPLATE,
)
from dramaforge.storage import generate_id

logger = get_logger(__name__)

DEFAULT_CHARACTER_COUNT = 5
DEFAULT_SHOT_DURATION = 6
CHARACTER_MAX_TOKENS = 3000
BACKGROUND_MAX_TOKENS = 8000
DEFAULT_OUTLINE = "Create characters that fit the theme of the drama"

TaskWork = Callable[[str], Awaitable[Any]]


def episode_script(episode: Episode) -> str:
    """Script text of an episode: script, then content, then description."""
    return episode.script_content or episode.content or episode.description or ""


def _character_list(drama: Drama) -> str:
    if not drama.characters:
        return "no characters"
    return json.dumps(
        [{"id": c.id, "name": c.name} for c in drama.characters], ensure_ascii=False
    )


def _scene_list(drama: Drama) -> str:
    if not drama.scenes:
        return "no scenes"
    return json.dumps(
        [{"id": s.id, "location": s.location, "time": s.time} for s in drama.scenes],
        ensure_ascii=False,
    )


def _shot_description(shot: dict[str, Any]) -> str:
    return "\n".join(
        f"[{label}] {shot.get(key) or ''}"
        for label, key in (
            ("Shot type", "shot_type"),
            ("Movement", "movement"),
            ("Action", "action"),
            ("Dialogue", "dialogue"),
            ("Result", "result"),
            ("Emotion", "emotion"),
        )
    )


def build_storyboards(episode_id: str, shots: list[dict[str, Any]]) -> list[Storyboard]:
    """Turn parsed model shots into storyboard records.

    Numbers come from ``shot_number`` when present, otherwise the position.
    """
    storyboards = []
    for index, shot in enumerate(shots):
        storyboards.append(
            Storyboard(
                id=generate_id("sb"),
                episode_id=episode_id,
                storyboard_number=shot.get("shot_number") or index + 1,
                title=shot.get("title") or f"Shot {index + 1}",
                description=_shot_description(shot),
                shot_type=shot.get("shot_type"),
                angle=shot.get("angle"),
                time=shot.get("time"),
                location=shot.get("location"),
                scene_id=shot.get("scene_id"),
                movement=shot.get("movement"),
                action=shot.get("action"),
                dialogue=shot.get("dialogue"),
                result=shot.get("result"),
                atmosphere=shot.get("atmosphere"),
                emotion=shot.get("emotion"),
                duration=shot.get("duration") or DEFAULT_SHOT_DURATION,
                bgm_prompt=shot.get("bgm_prompt"),
                sound_effect=shot.get("sound_effect"),
                characters=shot.get("characters") or [],
                is_primary=shot.get("is_primary") is not False,
                image_prompt=build_image_prompt(shot),
                video_prompt=build_video_prompt(shot),
            )
        )
    return storyboards


class StoryGenerationService:
    """Runs text-model jobs as background tasks with progress reporting."""

    def __init__(
        self,
        repository: ContentGraphRepository,
        tasks: TaskStore,
        ai: AIClient,
        runner: BackgroundRunner,
    ) -> None:
        self.repository = repository
        self.tasks = tasks
        self.ai = ai
        self.runner = runner

    def _start_task(
        self,
        task_type: TaskType,
        resource_id: str,
        message: str,
        work: TaskWork,
    ) -> Task:
        task = self.tasks.create(task_type, resource_id=resource_id, message=message)
        try:
            self.runner.submit(self._run(task, work), name=f"{task_type.value}-{task.id}")
        except RuntimeError as e:
            self.tasks.fail(task.id, error_message(e))
            raise
        return task

    async def _run(self, task: Task, work: TaskWork) -> None:
        try:
            await work(task.id)
        except asyncio.CancelledError:
            logger.warning("Text generation task cancelled", task_id=task.id)
            self.tasks.fail(task.id, "Generation cancelled")
            raise
        except Exception as e:
            logger.error(
                "Text generation task failed",
                task_id=task.id,
                task_type=task.type.value,
                error=error_message(e),
            )
            self.tasks.fail(task.id, error_message(e))

    def _episode(self, episode_id: RecordId) -> tuple[Drama, Episode]:
        found = self.repository.find_episode(episode_id)
        if found is None:
            raise NotFoundError("Episode", episode_id)
        return found

    # ------------------------------------------------------------------
    # Characters
    # ------------------------------------------------------------------

    def generate_characters(
        self,
        drama_id: str,
        outline: str | None = None,
        count: int | None = None,
        temperature: float | None = None,
    ) -> Task:
        """Extract up to ``count`` characters and merge them into the drama.

        Characters whose name already exists are reused, not duplicated.
        """
        drama = self.repository.get_drama(drama_id)

        async def work(task_id: str) -> None:
            self.tasks.start(task_id, progress=20, message="Analyzing script")
            prompt = CHARACTER_USER_TEMPLATE.format(
                outline=outline or DEFAULT_OUTLINE,
                count=count or DEFAULT_CHARACTER_COUNT,
            )
            data = await self.ai.generate_json(
                prompt,
                "characters",
                system_prompt=CHARACTER_SYSTEM_PROMPT,
                temperature=temperature,
                max_tokens=CHARACTER_MAX_TOKENS,
            )
            incoming = [c for c in data["characters"] if isinstance(c, dict)]
            characters = self.repository.merge_characters(drama.id, incoming)
            logger.info("Characters generated", drama_id=drama.id, total=len(characters))
            self.tasks.complete(
                task_id,
                {"characters": characters, "total": len(characters)},
                message=f"Generated {len(characters)} characters",
            )

        return self._start_task(TaskType.TEXT, drama.id, "Character generation queued", work)

    # ------------------------------------------------------------------
    # Storyboards
    # ------------------------------------------------------------------

    def generate_storyboard(self, episode_id: RecordId) -> Task:
        """Split an episode's script into shots, replacing its storyboards."""
        _, episode = self._episode(episode_id)

        async def work(task_id: str) -> None:
            self.tasks.start(task_id, progress=10, message="Starting storyboard generation")
            drama, current = self._episode(episode.id)
            script = episode_script(current)
            if not script:
                raise ValidationError(
                    "Episode script is empty",
                    hint="Write or generate the episode content first",
                    details={"episode_id": current.id},
                )
            self.tasks.progress(task_id, 20, "Analyzing script")

            prompt = STORYBOARD_PROMPT_TEMPLATE.format(
                character_list=_character_list(drama),
                scene_list=_scene_list(drama),
                script_content=script,
            )
            logger.info(
                "Generating storyboard",
                episode_id=current.id,
                drama_id=drama.id,
                script_length=len(script),
                character_count=len(drama.characters),
                scene_count=len(drama.scenes),
            )
            self.tasks.progress(task_id, 30, "Calling text model")
            data = await self.ai.generate_json(prompt, "storyboards")

            self.tasks.progress(task_id, 70, "Parsing storyboard result")
            shots = data["storyboards"]
            if not isinstance(shots, list):
                raise ParseError("'storyboards' is not a list", raw_text=json.dumps(data))
            storyboards = build_storyboards(current.id, [s for s in shots if isinstance(s, dict)])
            total_seconds = sum(sb.duration for sb in storyboards)

            self.tasks.progress(task_id, 85, "Saving storyboards")
            self.repository.replace_storyboards(
                current.id, storyboards, duration_minutes=math.ceil(total_seconds / 60)
            )
            logger.info(
                "Storyboard generated",
                episode_id=current.id,
                count=len(storyboards),
                total_duration_seconds=total_seconds,
            )
            self.tasks.complete(
                task_id,
                {"storyboards": storyboards, "total": len(storyboards)},
                message=f"Generated {len(storyboards)} storyboards",
            )

        return self._start_task(
            TaskType.STORYBOARD, episode.id, "Storyboard generation queued", work
        )

    # ------------------------------------------------------------------
    # Backgrounds
    # ------------------------------------------------------------------

    def extract_backgrounds(self, episode_id: RecordId) -> Task:
        """Extract scene backgrounds and replace the episode's scenes with them."""
        _, episode = self._episode(episode_id)

        async def work(task_id: str) -> None:
            _, current = self._episode(episode.id)
            script = episode_script(current)
            if not script:
                raise ValidationError(
                    "Episode script is empty, cannot extract scenes",
                    details={"episode_id": current.id},
                )
            self.tasks.start(task_id, progress=10, message="Analyzing script")
            data = await self.ai.generate_json(
                BACKGROUND_USER_TEMPLATE.format(script_content=script),
                "backgrounds",
                system_prompt=BACKGROUND_EXTRACTION_PROMPT,
                max_tokens=BACKGROUND_MAX_TOKENS,
            )
            backgrounds = [
                {
                    "location": bg.get("location") or "",
                    "time": bg.get("time") or "",
                    "atmosphere": bg.get("atmosphere"),
                    "prompt": bg.get("prompt") or "",
                }
                for bg in data["backgrounds"]
                if isinstance(bg, dict)
            ]
            scenes = self.repository.replace_episode_scenes(current.id, backgrounds)
            logger.info("Backgrounds extracted", episode_id=current.id, total=len(scenes))
            self.tasks.complete(
                task_id,
                {"backgrounds": scenes, "total": len(scenes)},
                message=f"Extracted {len(scenes)} scenes",
            )

        return self._start_task(
            TaskType.BACKGROUND_EXTRACTION, episode.id, "Scene extraction queued", work
        )

    # ------------------------------------------------------------------
    # Episodes and tasks
    # ------------------------------------------------------------------

    def generate_episodes(self, drama_id: str, count: int) -> list[Episode]:
        """Replace the drama's episodes with ``count`` blank drafts."""
        if count < 1:
            raise ValidationError("Episode count must be positive", details={"count": count})
        return self.repository.save_episodes(
            drama_id,
            [
                {
                    "episode_number": number,
                    "title": f"Episode {number}",
                    "description": f"Content of episode {number}",
                    "content": "",
                }
                for number in range(1, count + 1)
            ],
        )

    def get_task_status(self, task_id: str) -> Task:
        return self.tasks.get_task_status(task_id)

"""Frame prompt generation for storyboards."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from dramaforge.config import get_logger
from dramaforge.engine.ai_client import AIClient
from dramaforge.exceptions import DramaForgeError, NotFoundError, ValidationError
from dramaforge.graph import ContentGraphRepository, StoryboardContext
from dramaforge.models.graph import RecordId
from dramaforge.models.jobs import FramePromptRecord, FramePromptResult, FrameType
from dramaforge.prompts.builders import build_fallback_frame_prompt, build_storyboard_context
from dramaforge.prompts.templates import (
    FIRST_FRAME_SYSTEM_PROMPT,
    FRAME_USER_TEMPLATE,
    KEY_FRAME_SYSTEM_PROMPT,
    LAST_FRAME_SYSTEM_PROMPT,
)
from dramaforge.storage import (
    KeyValueStore,
    StorageCollection,
    StorageKeys,
    generate_numeric_id,
    same_id,
    utc_now,
)

logger = get_logger(__name__)

FRAME_SEPARATOR = "\n---\n"


@dataclass(frozen=True)
class FrameStyle:
    label: str
    system_prompt: str
    fallback_suffix: str
    description: str


FRAME_STYLES = {
    FrameType.FIRST: FrameStyle(
        "first frame",
        FIRST_FRAME_SYSTEM_PROMPT,
        "first frame, static shot",
        "Opening still of the shot, showing the initial state",
    ),
    FrameType.KEY: FrameStyle(
        "key frame",
        KEY_FRAME_SYSTEM_PROMPT,
        "key frame, dynamic action",
        "Peak moment of the action",
    ),
    FrameType.LAST: FrameStyle(
        "last frame",
        LAST_FRAME_SYSTEM_PROMPT,
        "last frame, final state",
        "Closing still of the shot, showing the final state",
    ),
}


def panel_sequence(count: int) -> list[FrameType]:
    """First, then ``count - 2`` key frames, then last."""
    if count < 2:
        raise ValidationError("A panel needs at least two frames", details={"panel_count": count})
    return [FrameType.FIRST, *[FrameType.KEY] * (count - 2), FrameType.LAST]


class FramePromptService:
    """Builds first/key/last/panel/action frame prompts and stores one per type."""

    def __init__(self, store: KeyValueStore, repository: ContentGraphRepository, ai: AIClient) -> None:
        self.store = store
        self.repository = repository
        self.ai = ai
        self.prompts = StorageCollection(store, StorageKeys.FRAME_PROMPTS, FramePromptRecord)

    async def _single_frame(self, ctx: StoryboardContext, frame_type: FrameType) -> dict[str, str]:
        style = FRAME_STYLES[frame_type]
        context = build_storyboard_context(ctx.storyboard, ctx.scene, ctx.characters)
        user_prompt = FRAME_USER_TEMPLATE.format(context=context, frame_label=style.label)
        prompt = ""
        try:
            prompt = (await self.ai.generate_text(user_prompt, system_prompt=style.system_prompt)).strip()
        except DramaForgeError as e:
            logger.warning(
                "Frame prompt generation failed, using fallback",
                storyboard_id=ctx.storyboard.id,
                frame_type=frame_type.value,
                error=e.message,
            )
        if not prompt:
            prompt = build_fallback_frame_prompt(
                ctx.storyboard, ctx.scene, ctx.characters, style.fallback_suffix
            )
        return {"prompt": prompt, "description": style.description}

    async def _multi_frame(
        self, ctx: StoryboardContext, sequence: list[FrameType]
    ) -> dict[str, Any]:
        frames = []
        for index, frame_type in enumerate(sequence, start=1):
            frame = await self._single_frame(ctx, frame_type)
            frame["description"] = f"Panel {index}: {frame['description']}"
            frames.append(frame)
        return {"layout": f"horizontal_{len(sequence)}", "frames": frames}

    async def generate_frame_prompt(
        self,
        storyboard_id: RecordId,
        frame_type: FrameType | str,
        panel_count: int | None = None,
    ) -> FramePromptResult:
        """Generate and save the prompt(s) for one frame type.

        Model failures and empty answers fall back to a deterministic prompt.

        Raises:
            NotFoundError: The storyboard does not exist.
        """
        frame_type = FrameType(frame_type)
        ctx = self.repository.find_storyboard_context(storyboard_id)
        if ctx is None:
            raise NotFoundError("Storyboard", storyboard_id)

        if frame_type in FRAME_STYLES:
            single = await self._single_frame(ctx, frame_type)
            self.save_frame_prompt(
                ctx.storyboard.id, frame_type, single["prompt"], single["description"]
            )
            return FramePromptResult(frame_type=frame_type, single_frame=single)

        if frame_type is FrameType.PANEL:
            sequence = panel_sequence(panel_count or 3)
            description = "Combined storyboard panel prompts"
        else:
            sequence = [FrameType.FIRST, FrameType.KEY, FrameType.KEY, FrameType.KEY, FrameType.LAST]
            description = "Combined action sequence prompts"
        multi = await self._multi_frame(ctx, sequence)
        self.save_frame_prompt(
            ctx.storyboard.id,
            frame_type,
            FRAME_SEPARATOR.join(f["prompt"] for f in multi["frames"]),
            description,
            multi["layout"],
        )
        return FramePromptResult(frame_type=frame_type, multi_frame=multi)

    def get_storyboard_frame_prompts(self, storyboard_id: RecordId) -> list[FramePromptRecord]:
        return self.prompts.filter(lambda p: same_id(p.storyboard_id, storyboard_id))

    def save_frame_prompt(
        self,
        storyboard_id: RecordId,
        frame_type: FrameType | str,
        prompt: str,
        description: str | None = None,
        layout: str | None = None,
    ) -> FramePromptRecord:
        """Replace the stored prompt for a (storyboard, frame type) pair."""
        frame_type = FrameType(frame_type)
        for existing in self.prompts.filter(
            lambda p: same_id(p.storyboard_id, storyboard_id) and p.frame_type == frame_type
        ):
            self.prompts.delete(existing.id)
        record = FramePromptRecord(
            id=generate_numeric_id(self.store, "frame_prompt"),
            storyboard_id=str(storyboard_id),
            frame_type=frame_type,
            prompt=prompt,
            description=description or None,
            layout=layout or None,
            created_at=utc_now(),
            updated_at=utc_now(),
        )
        return self.prompts.add(record)

"""Deterministic prompt assembly from content graph records.

Every builder emits only the fields that are present; missing fields are
skipped rather than rendered as empty tokens.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from dramaforge.models.graph import Character, Scene, Storyboard

# Transition words that mark where a described action starts moving.
# Checked in this order; the first one found past position 0 wins.
TRANSITION_WORDS: tuple[str, ...] = (
    "然后",
    "接着",
    "接下来",
    "随后",
    "紧接着",
    "向下",
    "向上",
    "向前",
    "向后",
    "向左",
    "向右",
    "开始",
    "继续",
    "逐渐",
    "慢慢",
    "快速",
    "突然",
    "猛然",
)

IMAGE_STYLE_SUFFIX = "anime style, first frame"
IMAGE_FALLBACK_PROMPT = "anime scene"
VIDEO_STYLE_SUFFIX = (
    "Style: cinematic anime style, smooth camera motion, natural character movement"
)
SCENE_IMAGE_SUFFIX = (
    ", cinematic scene, wide shot, detailed environment"
    ", high quality, professional photography, film still"
)
CHARACTER_PORTRAIT_SUFFIX = (
    ", character portrait, full body or upper body shot"
    ", simple clean background, plain solid color background, white or light gray background"
    ", studio lighting, professional photography"
    ", high quality, detailed, anime style, character design"
    ", no complex background, no scenery, focus on character"
)

_TRAILING_PUNCTUATION = re.compile(r"[，。,.\s]+$")


def extract_initial_pose(action: str) -> str:
    """Keep the static opening of an action description.

    The text is cut at the first transition word (in list order) that
    appears after the first character, then trailing punctuation and
    whitespace are removed.
    """
    result = action
    for word in TRANSITION_WORDS:
        idx = result.find(word)
        if idx > 0:
            result = result[:idx]
            break
    return _TRAILING_PUNCTUATION.sub("", result).strip()


def _field(source: Storyboard | dict[str, Any], name: str) -> Any:
    if isinstance(source, dict):
        return source.get(name)
    return getattr(source, name, None)


def _location_text(source: Storyboard | dict[str, Any]) -> str | None:
    location = _field(source, "location")
    if not location:
        return None
    time = _field(source, "time")
    return f"{location}, {time}" if time else str(location)


def build_image_prompt(storyboard: Storyboard | dict[str, Any]) -> str:
    """First-frame still prompt joined with ``", "``."""
    parts: list[str] = []

    location = _location_text(storyboard)
    if location:
        parts.append(location)

    action = _field(storyboard, "action")
    if action:
        pose = extract_initial_pose(action)
        if pose:
            parts.append(pose)

    emotion = _field(storyboard, "emotion")
    if emotion:
        parts.append(emotion)

    parts.append(IMAGE_STYLE_SUFFIX)
    return ", ".join(parts) if parts else IMAGE_FALLBACK_PROMPT


_VIDEO_LABELS: tuple[tuple[str, str], ...] = (
    ("action", "Action"),
    ("dialogue", "Dialogue"),
    ("movement", "Camera movement"),
    ("shot_type", "Shot type"),
    ("angle", "Camera angle"),
)

_VIDEO_TRAILING_LABELS: tuple[tuple[str, str], ...] = (
    ("atmosphere", "Atmosphere"),
    ("emotion", "Mood"),
    ("result", "Result"),
    ("description", "Description"),
    ("bgm_prompt", "BGM"),
    ("sound_effect", "Sound effects"),
)


def build_video_prompt(storyboard: Storyboard | dict[str, Any]) -> str:
    """Motion prompt for a storyboard joined with ``". "``."""
    parts: list[str] = []
    for name, label in _VIDEO_LABELS:
        value = _field(storyboard, name)
        if value:
            parts.append(f"{label}: {value}")

    location = _location_text(storyboard)
    if location:
        parts.append(f"Scene: {location}")

    for name, label in _VIDEO_TRAILING_LABELS:
        value = _field(storyboard, name)
        if value:
            parts.append(f"{label}: {value}")

    parts.append(VIDEO_STYLE_SUFFIX)
    return ". ".join(parts)


def build_scene_image_prompt(scene: Scene, prompt: str | None = None) -> str:
    """Wide establishing-shot prompt for a scene background."""
    base = prompt or scene.prompt or f"{scene.location} scene, {scene.time}"
    return base + SCENE_IMAGE_SUFFIX


def build_character_portrait_prompt(character: Character) -> str:
    """Clean-background portrait prompt from the most detailed description available."""
    base = character.appearance or character.description or character.name
    return base + CHARACTER_PORTRAIT_SUFFIX


def build_storyboard_context(
    storyboard: Storyboard,
    scene: Scene | None,
    characters: Sequence[Character],
) -> str:
    """Multi-line shot summary fed to frame prompt generation."""
    lines: list[str] = []
    if storyboard.description:
        lines.append(f"Shot description: {storyboard.description}")
    if scene:
        lines.append(f"Scene: {scene.location}, {scene.time}")
    elif storyboard.location and storyboard.time:
        lines.append(f"Scene: {storyboard.location}, {storyboard.time}")
    if characters:
        lines.append("Characters: " + ", ".join(c.name for c in characters))
    for name, label in (
        ("action", "Action"),
        ("result", "Result"),
        ("dialogue", "Dialogue"),
        ("atmosphere", "Atmosphere"),
        ("shot_type", "Shot type"),
        ("angle", "Angle"),
        ("movement", "Camera movement"),
    ):
        value = getattr(storyboard, name, None)
        if value:
            lines.append(f"{label}: {value}")
    return "\n".join(lines)


def build_fallback_frame_prompt(
    storyboard: Storyboard,
    scene: Scene | None,
    characters: Sequence[Character],
    suffix: str,
) -> str:
    """Prompt used when the text model cannot produce a frame prompt."""
    parts: list[str] = []
    if scene:
        parts.append(f"{scene.location}, {scene.time}")
    parts.extend(c.name for c in characters)
    if storyboard.atmosphere:
        parts.append(storyboard.atmosphere)
    parts.extend(["anime style", suffix])
    return ", ".join(parts)

"""Prompt assembly and model-output parsing."""

from dramaforge.prompts.builders import (
    build_character_portrait_prompt,
    build_fallback_frame_prompt,
    build_image_prompt,
    build_scene_image_prompt,
    build_storyboard_context,
    build_video_prompt,
    extract_initial_pose,
)
from dramaforge.prompts.extraction import (
    extract_json,
    extract_json_object,
    strip_code_fence,
)

__all__ = [
    "build_character_portrait_prompt",
    "build_fallback_frame_prompt",
    "build_image_prompt",
    "build_scene_image_prompt",
    "build_storyboard_context",
    "build_video_prompt",
    "extract_initial_pose",
    "extract_json",
    "extract_json_object",
    "strip_code_fence",
]

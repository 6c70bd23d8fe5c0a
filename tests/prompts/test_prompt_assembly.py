"""Tests for prompt builders and model-output parsing."""

from __future__ import annotations

import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dramaforge.exceptions import ParseError
from dramaforge.models.graph import Character, Scene, Storyboard
from dramaforge.prompts import (
    build_fallback_frame_prompt,
    build_image_prompt,
    build_scene_image_prompt,
    build_storyboard_context,
    build_video_prompt,
    extract_initial_pose,
    extract_json,
    extract_json_object,
    strip_code_fence,
)
from dramaforge.prompts.builders import IMAGE_STYLE_SUFFIX, SCENE_IMAGE_SUFFIX, VIDEO_STYLE_SUFFIX


def _storyboard(**fields) -> Storyboard:
    return Storyboard(id="sb_1", episode_id="ep_1", storyboard_number=1, **fields)


class TestInitialPose:
    """Test extraction of the static opening of an action."""

    def test_cuts_at_first_transition_word(self):
        """Test the action is cut before the transition and punctuation trimmed."""
        assert extract_initial_pose("她站在门口，然后转身离开") == "她站在门口"

    def test_word_at_start_is_ignored(self):
        """Test a transition word at position zero does not empty the text."""
        assert extract_initial_pose("然后他走了") == "然后他走了"

    def test_list_order_wins_over_position(self):
        """Test earlier list entries win even when they appear later in the text."""
        # 突然 appears first in the text, but 然后 comes first in the word list
        assert extract_initial_pose("他突然停下，然后回头") == "他突然停下"

    def test_plain_text_is_only_trimmed(self):
        """Test text without transition words keeps its content."""
        assert extract_initial_pose("Lin stands still. ") == "Lin stands still"


class TestImagePrompt:
    """Test first-frame image prompts."""

    def test_includes_present_fields_in_order(self):
        """Test location, pose and emotion come before the style suffix."""
        prompt = build_image_prompt(
            {
                "location": "Night market",
                "time": "dusk",
                "action": "她站在门口，然后转身离开",
                "emotion": "tense",
            }
        )
        assert prompt == f"Night market, dusk, 她站在门口, tense, {IMAGE_STYLE_SUFFIX}"

    def test_empty_storyboard_still_has_style(self):
        """Test missing fields are skipped, not rendered empty."""
        assert build_image_prompt(_storyboard()) == IMAGE_STYLE_SUFFIX

    def test_location_without_time(self):
        """Test a lone location is used as-is."""
        assert build_image_prompt({"location": "Pier"}).startswith("Pier, anime")


class TestVideoPrompt:
    """Test motion prompts."""

    def test_labels_and_scene(self):
        """Test labelled parts are joined with periods."""
        prompt = build_video_prompt(
            _storyboard(action="runs", movement="pan left", location="Park", emotion="joy")
        )
        assert prompt == (
            f"Action: runs. Camera movement: pan left. Scene: Park. Mood: joy. {VIDEO_STYLE_SUFFIX}"
        )

    def test_empty_fields_are_skipped(self):
        """Test an empty storyboard yields only the style line."""
        assert build_video_prompt({}) == VIDEO_STYLE_SUFFIX


class TestSceneAndFramePrompts:
    """Test scene background and frame helpers."""

    @pytest.fixture
    def scene(self):
        return Scene(id="scene_1", drama_id="d", location="Rooftop", time="night")

    def test_scene_prompt_defaults_to_location_and_time(self, scene):
        """Test the default scene prompt when none is stored or given."""
        assert build_scene_image_prompt(scene) == "Rooftop scene, night" + SCENE_IMAGE_SUFFIX

    def test_explicit_prompt_wins(self, scene):
        """Test a caller prompt overrides the stored one."""
        scene.prompt = "stored"
        assert build_scene_image_prompt(scene, "given").startswith("given, cinematic")
        assert build_scene_image_prompt(scene).startswith("stored, cinematic")

    def test_storyboard_context_lines(self, scene):
        """Test the context lists scene, characters and labelled fields."""
        lin = Character(id=1, drama_id="d", name="Lin")
        context = build_storyboard_context(
            _storyboard(description="Opening", action="waves", shot_type="close-up"),
            scene,
            [lin],
        )
        assert context.splitlines() == [
            "Shot description: Opening",
            "Scene: Rooftop, night",
            "Characters: Lin",
            "Action: waves",
            "Shot type: close-up",
        ]

    def test_fallback_frame_prompt(self, scene):
        """Test the deterministic fallback names scene, cast and mood."""
        lin = Character(id=1, drama_id="d", name="Lin")
        prompt = build_fallback_frame_prompt(
            _storyboard(atmosphere="quiet"), scene, [lin], "key frame, dynamic action"
        )
        assert prompt == "Rooftop, night, Lin, quiet, anime style, key frame, dynamic action"


class TestJsonExtraction:
    """Test JSON extraction from free-form model output."""

    def test_strips_json_fence(self):
        """Test a fenced block is unwrapped."""
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_unterminated_fence_keeps_body(self):
        """Test a missing closing fence only drops the opening line."""
        assert strip_code_fence('```\n{"a": 1}') == '{"a": 1}'

    def test_text_without_fence_is_trimmed(self):
        """Test plain text passes through stripped."""
        assert strip_code_fence('  {"a": 1}\n') == '{"a": 1}'

    def test_object_inside_prose(self):
        """Test the first-to-last brace span is parsed."""
        assert extract_json('Sure! {"characters": []} Hope it helps.') == {"characters": []}

    def test_non_object_json_without_braces(self):
        """Test brace-free JSON is parsed whole."""
        assert extract_json("[1, 2]") == [1, 2]

    def test_invalid_json_attaches_raw_text(self):
        """Test parse failures carry the original output."""
        with pytest.raises(ParseError) as exc_info:
            extract_json("no json here")
        assert exc_info.value.raw_text == "no json here"

    def test_object_required(self):
        """Test extract_json_object refuses arrays."""
        with pytest.raises(ParseError, match="Expected a JSON object, got list"):
            extract_json_object("[1, 2]")

    def test_required_key(self):
        """Test a missing required key is a parse error."""
        assert extract_json_object('{"storyboards": []}', "storyboards") == {"storyboards": []}
        with pytest.raises(ParseError, match="missing the 'backgrounds' field"):
            extract_json_object('{"storyboards": []}', "backgrounds")

    @given(
        st.dictionaries(
            st.text(max_size=10),
            st.one_of(st.integers(), st.text(max_size=20), st.booleans(), st.none()),
            max_size=6,
        )
    )
    def test_fenced_objects_survive_surrounding_prose(self, payload):
        """Test any object wrapped in a fence and prose parses back unchanged."""
        text = f"Here is the result:\n```json\n{json.dumps(payload)}\n```\nDone."
        assert extract_json_object(text) == payload

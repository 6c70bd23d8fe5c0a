"""System prompts and user-prompt templates for text generation.

These strings are configuration: the engine passes them through to the
text model and only relies on the JSON shapes they ask for.
"""

from __future__ import annotations

CHARACTER_SYSTEM_PROMPT = """You are a character analyst for screen drama.
Read the script material and extract every character that appears in it.

Rules:
1. Base every character on the script; do not invent new ones.
2. Prefer leads and important supporting roles.
3. Appearance must be detailed enough to drive an image model: age, height,
   build, skin, hair, eyes, facial features, clothing, accessories and any
   signature traits.
4. Personality, background and voice style should be grounded in dialogue
   and behavior from the script.

Reply with JSON only, in exactly this shape:
{
  "characters": [
    {
      "name": "character name",
      "role": "lead / supporting / minor",
      "description": "background and function in the story",
      "personality": "traits, habits, values, temperament",
      "appearance": "very detailed physical description",
      "voice_style": "speech rhythm, tone, verbal habits"
    }
  ]
}"""

CHARACTER_USER_TEMPLATE = """Script material:
{outline}

Extract the detailed profiles of at most {count} main characters."""

STORYBOARD_PROMPT_TEMPLATE = """You are a senior storyboard artist.
Split the script below into shots, one independent action per shot.

Available characters (use only these numeric ids in "characters"):
{character_list}

Extracted scene backgrounds (use the best matching id in "scene_id",
or null when nothing fits):
{scene_list}

Script:
{script_content}

For every shot provide a short title, time of day with lighting, a full
location description, shot type, camera angle, camera movement, a detailed
action, the complete dialogue (empty string when silent), the visual
result, atmosphere, audience emotion, a music cue and key sound effects.
Each duration is between 4 and 12 seconds.

Reply with JSON only:
{{
  "storyboards": [
    {{
      "shot_number": 1,
      "title": "shot title",
      "shot_type": "wide / full / medium / close-up / extreme close-up",
      "angle": "eye level / low / high / side / back",
      "time": "time and lighting",
      "location": "location description",
      "scene_id": 1,
      "movement": "static / push / pull / pan / follow / track",
      "action": "detailed action",
      "dialogue": "dialogue",
      "result": "visual result",
      "atmosphere": "atmosphere",
      "emotion": "emotion",
      "duration": 6,
      "bgm_prompt": "music cue",
      "sound_effect": "sound effects",
      "characters": [1, 2],
      "is_primary": true
    }}
  ]
}}

Cover the whole script without skipping any plot."""

BACKGROUND_EXTRACTION_PROMPT = """Analyse the script and list every distinct
scene background it needs (each unique location and time combination).

Rules:
1. Describe pure backgrounds only: no people, characters, actions or
   dialogue.
2. Each prompt must be usable by an image model: environment, architecture,
   props, lighting and mood, in a cinematic, detailed, high quality anime
   style.
3. Include a short atmosphere description for each background.

Reply with JSON only:
{
  "backgrounds": [
    {
      "location": "location name",
      "time": "time of day",
      "atmosphere": "atmosphere",
      "prompt": "full background image prompt"
    }
  ]
}"""

BACKGROUND_USER_TEMPLATE = """Script:
{script_content}

Extract every scene background from the script above."""

FIRST_FRAME_SYSTEM_PROMPT = """You write prompts for image generation.
This is the FIRST frame of a shot: a completely still picture of the state
before the action begins. Describe only static visual elements: setting,
pose, expression, mood, lighting. Use no action verbs. Anime style.
Output the prompt only, as comma separated keywords."""

KEY_FRAME_SYSTEM_PROMPT = """You write prompts for image generation.
This is the KEY frame of a shot: the most intense moment of the action.
Describe body posture, motion, force, motion blur and speed lines, and the
peak of the characters' emotions. Anime style.
Output the prompt only, as comma separated keywords."""

LAST_FRAME_SYSTEM_PROMPT = """You write prompts for image generation.
This is the LAST frame of a shot: a still picture of the final state after
the action ends. Describe the resulting pose, expression and the settled
mood; do not describe the action itself. Anime style.
Output the prompt only, as comma separated keywords."""

FRAME_USER_TEMPLATE = """Shot details:
{context}

Write the {frame_label} image prompt now, with no explanation:"""

"""Instruction compilation for the yacht scene generator.

The instruction sent to the model is composed from up to three parts:

1. A fixed base instruction chosen by mode.
2. A fixed extra-instructions clause carrying the yacht style guidance.
3. The visitor's own free text.

Modes
-----
**Edit mode** is used when no user photo is supplied: the model is asked to
change the base scene according to the instructions while keeping it
photoreal.  **Composite mode** is used when a user photo is supplied: the
model is asked to place that person into the base scene with fixed
composition and aspect-ratio directives.

Template Structure::

    [Edit or Composite base] — [Extra instructions] — [User prompt]

Parts are joined with ``" — "``.  An empty user prompt is omitted (no
dangling separator).  The output depends only on the inputs.

Usage
-----
::

    instruction = build_prompt("smile more", has_user_image=True)
"""

from __future__ import annotations

from dataclasses import dataclass

SEPARATOR = " — "


@dataclass(frozen=True)
class PromptPreset:
    """A named scene with its style guidance."""

    scene: str
    guidance: str


YACHT_PRESET = PromptPreset(
    scene="yacht",
    guidance="golden-hour rim light, shallow DOF, teak deck, chrome rail, turquoise water bokeh",
)

# ---------------------------------------------------------------------------
# Fixed base instructions.
# ---------------------------------------------------------------------------

EDIT_BASE = (
    "Edit the provided yacht photo according to the instructions. "
    "Keep it photorealistic and preserve the original lighting, perspective, "
    "color grading and overall composition of the scene."
)

COMPOSITE_BASE = (
    "Insert the person from the second image into the yacht scene from the first image. "
    "Place them standing on the deck in the foreground, facing the camera, framed from the "
    "waist up and scaled to match the scene's perspective. Keep their face, hair and identity "
    "unchanged, match the scene's lighting, shadows and color grading, and make the result "
    "look like a single real photograph. Output a vertical 4:5 aspect ratio image."
)

EXTRA_INSTRUCTIONS = f"Style: {YACHT_PRESET.guidance}."


def default_style_prompt(preset: PromptPreset = YACHT_PRESET) -> str:
    """Return the text used to prefill the style prompt box."""
    return f"Photoreal portrait on a {preset.scene}, {preset.guidance}"


def build_prompt(user_prompt: str | None, has_user_image: bool) -> str:
    """Compile the model instruction.

    Args:
        user_prompt: Free text from the visitor.  Whitespace is trimmed; an
            empty or ``None`` value is omitted.
        has_user_image: ``True`` selects composite mode, ``False`` edit mode.

    Returns:
        The base instruction, the extra-instructions clause and the user
        prompt joined by :data:`SEPARATOR`.
    """
    parts: list[str] = [COMPOSITE_BASE if has_user_image else EDIT_BASE, EXTRA_INSTRUCTIONS]

    stripped = (user_prompt or "").strip()
    if stripped:
        parts.append(stripped)

    return SEPARATOR.join(p for p in parts if p)

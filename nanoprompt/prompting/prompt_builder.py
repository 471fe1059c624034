"""Instruction text used by the prompt synthesizer.

This module is intentionally narrow: it only builds instruction strings. Model
selection, payload assembly and invocation happen in `nanoprompt.llm`.

Design constraints:
    - Deterministic construction for identical inputs.
    - Fixed ordering of instruction components.
    - No hidden side effects (no I/O, no global state mutation).
"""

from typing import List


# =========================================================
# SYSTEM IDENTITY (GLOBAL)
# =========================================================
# Sent as `systemInstruction`, separate from the user turn.

SYSTEM_IDENTITY = (
    "You are an expert prompt engineer for state-of-the-art image generation models."
)


# =========================================================
# REVERSE-ENGINEERING INSTRUCTION
# =========================================================
# Component order:
#   1) Analysis request naming the target image model
#   2) Numbered focus areas
#   3) Output-format constraint (raw prompt only)

FOCUS_AREAS: List[str] = [
    "Subject description (appearance, clothing, pose, expression).",
    "Environment/Setting (background, lighting, atmosphere).",
    "Artistic Style (photorealistic, oil painting, 3D render, anime, etc.).",
    "Technical attributes (camera angles, depth of field, color palette, texture quality).",
]


def build_describe_instruction(target_model: str = "Gemini 3 Pro Image") -> str:
    """Build the instruction sent alongside the uploaded image.

    Args:
        target_model: Human-readable name of the image model the prompt is for.

    Returns:
        Instruction text asking for the raw prompt only, with no preamble.
    """
    focus_block = "\n".join(
        f"{index}. {area}" for index, area in enumerate(FOCUS_AREAS, start=1)
    )

    return (
        "Analyze this image in extreme detail.\n"
        "Your task is to write a high-quality text prompt that I can feed into the "
        f"'{target_model}' generative model to recreate an image very similar to this one.\n\n"
        "Focus on:\n"
        + focus_block +
        "\n\nOutput ONLY the prompt text. Do not include introductory or concluding "
        "phrases like \"Here is the prompt:\". Just the raw prompt.\n"
    )

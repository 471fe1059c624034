"""Prompt synthesizer: image in, regeneration-ready prompt text out.

Architectural role:
    Bridges the fixed instruction text (`nanoprompt.prompting`) and the Gemini
    transport (`nanoprompt.llm.client`) for the vision model.

Model call flow:
    base64 image + MIME type -> payload construction -> `client.send_request(...)`
    -> first-candidate text.

Soft failure:
    An empty or missing text field yields `FALLBACK_PROMPT` instead of an error so
    the workflow always advances.

Determinism:
    Payload construction is deterministic for fixed inputs and configuration.
    Generated output remains non-deterministic because inference runs remotely.
"""

import logging

from nanoprompt.llm.client import extract_text, send_request
from nanoprompt.llm.provider_config import PROMPT_MODEL
from nanoprompt.prompting.prompt_builder import (
    SYSTEM_IDENTITY,
    build_describe_instruction,
)


logger = logging.getLogger(__name__)

FALLBACK_PROMPT = "Failed to generate prompt."


def build_describe_payload(base64_data: str, mime_type: str) -> dict:
    """Assemble the single-turn request: image part first, instruction second."""
    return {
        "contents": [
            {
                "role": "user",
                "parts": [
                    {
                        "inlineData": {
                            "mimeType": mime_type,
                            "data": base64_data,
                        }
                    },
                    {"text": build_describe_instruction()},
                ],
            }
        ],
        "systemInstruction": {
            "parts": [{"text": SYSTEM_IDENTITY}],
        },
    }


def describe_image_for_prompt(base64_data: str, mime_type: str) -> str:
    """Ask the vision model for a prompt that would recreate the image.

    Args:
        base64_data: Bare base64 payload (no `data:` prefix).
        mime_type: Declared image MIME type; validated remotely, not here.

    Returns:
        Model text exactly as returned, or `FALLBACK_PROMPT` when empty.

    Failure scenarios:
        - Empty payload -> `ValueError`
        - Missing key -> `MissingCredentialError`
        - Transport/model failures -> `requests` exceptions, re-raised unmodified
    """
    if not base64_data:
        raise ValueError("Image payload is empty")

    payload = build_describe_payload(base64_data, mime_type)

    try:
        data = send_request(PROMPT_MODEL, payload)
    except Exception:
        logger.exception("Error generating prompt description")
        raise

    return extract_text(data) or FALLBACK_PROMPT

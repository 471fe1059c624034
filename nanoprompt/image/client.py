"""Gemini image-model request client.

Processing flow:
    1. Resolve the active image model from `nanoprompt.llm.provider_config`.
    2. Submit the JSON payload through the shared `generateContent` transport.
    3. Scan the first candidate's parts for inline image data.

Base64 handling:
    - Inline payloads are returned still base64-encoded; decoding happens on the
      `ImageArtifact` when a caller asks for bytes.

Error handling strategy:
    - Misconfiguration and HTTP failures raise for upstream handling.
    - Responses without inline image data are reported by `find_inline_image`
      returning `None`; the service decides which error to raise.
"""

from typing import Optional, Tuple

from nanoprompt.core.types import DEFAULT_IMAGE_MIME_TYPE
from nanoprompt.llm.client import send_request
from nanoprompt.llm.provider_config import IMAGE_MODEL


def send_image_request(payload: dict) -> dict:
    """Send an image-generation request to the configured image model.

    Args:
        payload: `generateContent` body (prompt parts plus `generationConfig`).

    Returns:
        Parsed JSON response from the model.

    Interaction with API/core:
        Called by `nanoprompt.image.service.generate_image_from_prompt`.
    """
    return send_request(IMAGE_MODEL, payload)


def find_inline_image(parts: list) -> Optional[Tuple[str, str]]:
    """Return `(base64_data, mime_type)` for the first part carrying inline data.

    Both REST spellings (`inlineData` / `inline_data`) are accepted. A missing
    MIME type falls back to `image/png`.
    """
    for part in parts:
        if not isinstance(part, dict):
            continue
        inline_data = part.get("inlineData") or part.get("inline_data")
        if inline_data and inline_data.get("data"):
            mime_type = (
                inline_data.get("mimeType")
                or inline_data.get("mime_type")
                or DEFAULT_IMAGE_MIME_TYPE
            )
            return inline_data["data"], mime_type
    return None

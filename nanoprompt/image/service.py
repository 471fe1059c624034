"""Image synthesizer used by the workflow orchestrator.

Role in pipeline:
    - Receives prompt text and generation parameters from the orchestrator.
    - Validates the parameters against the supported enumerations.
    - Issues one request to the image model and decodes the first inline image.

Size validation:
    - Aspect ratio and image size are checked here, at the library boundary,
      even though adapters only ever offer enumerated values.

Error handling strategy:
    - Invalid parameters -> `InvalidGenerationParameterError` (no network call).
    - No parts / no inline data -> `NoImageProducedError`.
    - Transport exceptions are logged and propagated unmodified.
"""

import logging

from nanoprompt.core.types import (
    AspectRatio,
    ImageArtifact,
    ImageSize,
    NoImageProducedError,
)
from nanoprompt.image.client import find_inline_image, send_image_request
from nanoprompt.llm.client import first_candidate_parts


logger = logging.getLogger(__name__)


def build_image_payload(prompt: str, aspect_ratio: AspectRatio, image_size: ImageSize) -> dict:
    return {
        "contents": [
            {
                "role": "user",
                "parts": [{"text": prompt}],
            }
        ],
        "generationConfig": {
            "imageConfig": {
                "aspectRatio": aspect_ratio.value,
                "imageSize": image_size.value,
            }
        },
    }


def generate_image_from_prompt(
    prompt: str,
    aspect_ratio=AspectRatio.SQUARE,
    image_size=ImageSize.ONE_K,
) -> ImageArtifact:
    """Generate one image for `prompt`.

    Args:
        prompt: Non-empty prompt text.
        aspect_ratio: `AspectRatio` member or its string value.
        image_size: `ImageSize` member or its string value.

    Returns:
        `ImageArtifact` carrying the base64 payload, MIME type and the inputs.
    """
    if not prompt:
        raise ValueError("Prompt text is empty")

    aspect_ratio = AspectRatio.coerce(aspect_ratio)
    image_size = ImageSize.coerce(image_size)

    payload = build_image_payload(prompt, aspect_ratio, image_size)

    try:
        data = send_image_request(payload)

        parts = first_candidate_parts(data)
        if not parts:
            raise NoImageProducedError("No content generated")

        found = find_inline_image(parts)
        if found is None:
            raise NoImageProducedError("No image data found in response")
    except Exception:
        logger.exception("Error generating image")
        raise

    base64_data, mime_type = found
    return ImageArtifact(
        base64_data=base64_data,
        mime_type=mime_type,
        prompt=prompt,
        aspect_ratio=aspect_ratio,
        image_size=image_size,
    )

"""Workflow orchestration: source image -> prompt text -> generated image.

Architectural role:
    Owns the session state shared by the CLI and HTTP adapters and sequences the
    two synthesizer calls in response to user actions.

Control-flow model:
    1. `select_image` stores a new source image and resets everything downstream.
    2. `request_prompt` sends the source image to the prompt synthesizer.
    3. `edit_prompt` lets the user rewrite the prompt text in place.
    4. `request_image` sends the prompt and generation parameters to the image
       synthesizer.
    5. `clear_generated_image` drops only the generated image.

Invalidation chain:
    Source image -> prompt text -> generated image. A new source image clears
    both downstream values. Editing the prompt keeps the shown image; the view
    flags it through `image_is_stale`.

Concurrency:
    Single-threaded asyncio. Blocking synthesizer calls run through
    `asyncio.to_thread`. Each request kind has a busy flag that is checked and
    set before the first `await`, so a second call while one is in flight is a
    no-op regardless of how it is issued. Calls have no cancellation; the
    transport timeout is whatever `REQUEST_TIMEOUT` configures.

Error handling strategy:
    Expected failures (`SynthesisError`, `ValueError`, `requests` exceptions) are
    recorded as a user notice and the busy flag is cleared. Anything else
    propagates after the busy flag is cleared.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from nanoprompt.core.types import (
    AspectRatio,
    ImageArtifact,
    ImageSize,
    SourceImage,
    SynthesisError,
    strip_data_url_prefix,
)
from nanoprompt.image.service import generate_image_from_prompt
from nanoprompt.llm.service import describe_image_for_prompt


logger = logging.getLogger(__name__)

PROMPT_FAILED_NOTICE = "Failed to analyze image. Please try again."
IMAGE_FAILED_NOTICE = (
    "Failed to generate image. Ensure you have a valid project with billing enabled."
)

EXPECTED_FAILURES = (SynthesisError, ValueError, requests.RequestException)


@dataclass
class WorkflowState:
    """Mutable session state; only `Workflow` writes to it."""

    source_image: Optional[SourceImage] = None
    prompt: str = ""
    generated_image: Optional[ImageArtifact] = None
    aspect_ratio: AspectRatio = AspectRatio.SQUARE
    image_size: ImageSize = ImageSize.ONE_K
    analyzing: bool = False
    generating: bool = False
    notice: Optional[str] = None
    last_error: Optional[BaseException] = None


@dataclass(frozen=True)
class WorkflowView:
    """Read-only snapshot handed to presentation layers."""

    source_image: Optional[SourceImage]
    prompt: str
    generated_image: Optional[ImageArtifact]
    aspect_ratio: AspectRatio
    image_size: ImageSize
    analyzing: bool
    generating: bool
    notice: Optional[str]
    error_detail: Optional[str]

    @property
    def has_source_image(self) -> bool:
        return self.source_image is not None

    @property
    def can_generate(self) -> bool:
        return bool(self.prompt) and not self.generating

    @property
    def image_is_stale(self) -> bool:
        """True when the shown image was generated from a different prompt."""
        return (
            self.generated_image is not None
            and self.generated_image.prompt != self.prompt
        )


class Workflow:
    """Session orchestrator binding the prompt and image synthesizers."""

    def __init__(
        self,
        describe: Optional[Callable[[str, str], str]] = None,
        generate: Optional[Callable[..., ImageArtifact]] = None,
    ):
        self._describe = describe or describe_image_for_prompt
        self._generate = generate or generate_image_from_prompt
        self._state = WorkflowState()

    # -----------------------------------------------------
    # Views
    # -----------------------------------------------------

    def view(self) -> WorkflowView:
        s = self._state
        return WorkflowView(
            source_image=s.source_image,
            prompt=s.prompt,
            generated_image=s.generated_image,
            aspect_ratio=s.aspect_ratio,
            image_size=s.image_size,
            analyzing=s.analyzing,
            generating=s.generating,
            notice=s.notice,
            error_detail=str(s.last_error) if s.last_error else None,
        )

    # -----------------------------------------------------
    # Synchronous transitions
    # -----------------------------------------------------

    def select_image(self, image: SourceImage) -> None:
        """Replace the source image and reset every derived value."""
        s = self._state
        s.source_image = image
        s.prompt = ""
        s.generated_image = None
        s.notice = None
        s.last_error = None

    def edit_prompt(self, text: str) -> None:
        """Overwrite the prompt text. The generated image is left in place."""
        self._state.prompt = text

    def clear_generated_image(self) -> None:
        self._state.generated_image = None

    def set_aspect_ratio(self, value) -> AspectRatio:
        self._state.aspect_ratio = AspectRatio.coerce(value)
        return self._state.aspect_ratio

    def set_image_size(self, value) -> ImageSize:
        self._state.image_size = ImageSize.coerce(value)
        return self._state.image_size

    def dismiss_notice(self) -> None:
        self._state.notice = None
        self._state.last_error = None

    # -----------------------------------------------------
    # Model-backed transitions
    # -----------------------------------------------------

    async def request_prompt(self) -> Optional[str]:
        """Describe the source image.

        Returns:
            The new prompt text, or `None` when the call was skipped or failed.
        """
        s = self._state
        if s.source_image is None:
            logger.debug("Prompt request skipped: no source image")
            return None
        if s.analyzing:
            logger.debug("Prompt request skipped: already in flight")
            return None

        s.analyzing = True
        s.prompt = ""
        s.notice = None
        s.last_error = None
        image = s.source_image

        try:
            base64_data = strip_data_url_prefix(image.data_url)
            prompt = await asyncio.to_thread(self._describe, base64_data, image.mime_type)
        except EXPECTED_FAILURES as err:
            if s.source_image is image:
                s.notice = PROMPT_FAILED_NOTICE
                s.last_error = err
            else:
                logger.debug("Dropping failure for a replaced source image: %s", err)
            return None
        finally:
            s.analyzing = False

        # A new image selected mid-flight makes this result obsolete.
        if s.source_image is not image:
            logger.debug("Discarding prompt for a replaced source image")
            return None

        s.prompt = prompt
        return prompt

    async def request_image(self) -> Optional[ImageArtifact]:
        """Generate an image from the current prompt and parameters.

        Returns:
            The new artifact, or `None` when the call was skipped or failed.
        """
        s = self._state
        if not s.prompt:
            logger.debug("Image request skipped: prompt is empty")
            return None
        if s.generating:
            logger.debug("Image request skipped: already in flight")
            return None

        s.generating = True
        s.generated_image = None
        s.notice = None
        s.last_error = None
        image = s.source_image

        try:
            artifact = await asyncio.to_thread(
                self._generate, s.prompt, s.aspect_ratio, s.image_size
            )
        except EXPECTED_FAILURES as err:
            if s.source_image is image:
                s.notice = IMAGE_FAILED_NOTICE
                s.last_error = err
            else:
                logger.debug("Dropping failure for a replaced source image: %s", err)
            return None
        finally:
            s.generating = False

        if s.source_image is not image:
            logger.debug("Discarding image for a replaced source image")
            return None

        s.generated_image = artifact
        return artifact

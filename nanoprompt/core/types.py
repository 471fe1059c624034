"""Domain data contracts and error taxonomy shared across NanoPrompt layers.

Architectural role:
    Defines the request-parameter enumerations, the source/generated image
    records held by the workflow orchestrator, and the exception classes raised by
    the credential gate and both synthesizers.

Error taxonomy:
    - `CredentialError` -> `InvalidProjectError` | `SelectionFailedError`
    - `SynthesisError` -> `NoImageProducedError` | `MissingCredentialError`
    - `InvalidGenerationParameterError` (caller contract violation)

Transport failures from `requests` are not wrapped; they propagate as-is.

Determinism:
    All types are structural and state-free beyond their fields.
"""

import base64
import binascii
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


DEFAULT_IMAGE_MIME_TYPE = "image/png"

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]*)(?P<params>(;[^,]*)?),", re.IGNORECASE)

_LABELS = {"AspectRatio": "aspect ratio", "ImageSize": "image size"}


# =========================================================
# ERRORS
# =========================================================

class CredentialError(RuntimeError):
    """Key selection attempt failed; the gate stays closed."""

    user_message = "Failed to select API key. Please try again."

    def __init__(self, message=None, cause=None):
        super().__init__(message or self.user_message)
        self.cause = cause


class InvalidProjectError(CredentialError):
    """The host rejected the selection because the chosen project does not exist."""

    user_message = (
        "The selected project was not found. "
        "Please try selecting a valid project again."
    )


class SelectionFailedError(CredentialError):
    """Any other key-selection failure."""


class SynthesisError(RuntimeError):
    """A model call finished without a usable result."""


class NoImageProducedError(SynthesisError):
    """The image model answered but returned no inline image data."""


class MissingCredentialError(SynthesisError):
    """No API key is bound to the process."""


class InvalidGenerationParameterError(ValueError):
    """Aspect ratio or image size outside the supported enumeration."""


# =========================================================
# GENERATION PARAMETERS
# =========================================================

class _ChoiceEnum(str, Enum):

    @classmethod
    def coerce(cls, value):
        """Return the member for `value` (member or raw string) or raise."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise InvalidGenerationParameterError(
                f"Unsupported {_LABELS[cls.__name__]}: {value!r} (expected one of {allowed})"
            ) from None

    @classmethod
    def values(cls):
        return [member.value for member in cls]


class AspectRatio(_ChoiceEnum):
    SQUARE = "1:1"
    PORTRAIT = "3:4"
    LANDSCAPE = "4:3"
    MOBILE = "9:16"
    WIDE = "16:9"


class ImageSize(_ChoiceEnum):
    ONE_K = "1K"
    TWO_K = "2K"
    FOUR_K = "4K"


# =========================================================
# DATA URL HELPERS
# =========================================================

def split_data_url(value: str):
    """Split a `data:` URL into `(mime_type, payload)`.

    Returns `(None, value)` unchanged when `value` carries no data-URL prefix.
    """
    match = _DATA_URL_RE.match(value)
    if not match:
        return None, value
    return (match.group("mime") or None), value[match.end():]


def strip_data_url_prefix(value: str) -> str:
    """Return the base64 payload of a data URL (or `value` when already bare)."""
    return split_data_url(value)[1]


def to_data_url(base64_data: str, mime_type: Optional[str]) -> str:
    return f"data:{mime_type or DEFAULT_IMAGE_MIME_TYPE};base64,{base64_data}"


# =========================================================
# IMAGE RECORDS
# =========================================================

@dataclass(frozen=True)
class SourceImage:
    """User-selected image held in memory by the workflow.

    Attributes:
        data_url: `data:<mime>;base64,<payload>` form of the file content.
        mime_type: Declared MIME type (not validated here).
        filename: Original file name when known.
    """

    data_url: str
    mime_type: str
    filename: Optional[str] = None

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str, filename=None):
        encoded = base64.b64encode(data).decode("ascii")
        return cls(to_data_url(encoded, mime_type), mime_type, filename)

    @property
    def base64_data(self) -> str:
        return strip_data_url_prefix(self.data_url)

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.base64_data)


@dataclass(frozen=True)
class ImageArtifact:
    """Decoded image returned by the image model plus its generation inputs."""

    base64_data: str
    mime_type: str = DEFAULT_IMAGE_MIME_TYPE
    prompt: str = ""
    aspect_ratio: AspectRatio = AspectRatio.SQUARE
    image_size: ImageSize = ImageSize.ONE_K

    @property
    def data_url(self) -> str:
        return to_data_url(self.base64_data, self.mime_type)

    def to_bytes(self) -> bytes:
        try:
            return base64.b64decode(self.base64_data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise SynthesisError("Image payload is not valid base64") from exc

    def save(self, path: str) -> int:
        """Write the decoded image to `path`; returns bytes written."""
        data = self.to_bytes()
        with open(path, "wb") as f:
            f.write(data)
        return len(data)

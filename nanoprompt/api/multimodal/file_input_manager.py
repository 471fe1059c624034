"""
Image file-input handling for API adapters.

Architectural role:
- Convert a user-chosen file (picker path, `file://` URL, `data:` URL, or raw
  dropped bytes) into a `SourceImage` for the workflow.
- Enforce size and basic type constraints before the image reaches a model.

Processing lifecycle:
1. Resolve the reference to raw bytes (decode `data:` URLs, read local files).
2. Pre-validate base64 payload size before decoding.
3. Resolve the MIME type (data-URL header, then extension, then Pillow sniffing).
4. Return a `SourceImage` carrying the data URL.

Drop handling:
- `load_dropped_image` silently rejects anything whose content type is not
  `image/*` by returning `None`.

Error handling strategy:
- Invalid references, unreadable files and oversized or empty payloads raise
  `FileInputError`.
- Pillow failures while sniffing only mean "type unknown"; the remote model keeps
  final authority over whether the payload is a usable image.

Side effects:
- Reads local files only. No temporary files are written.
"""

import base64
import binascii
import io
import mimetypes
import os
from typing import Optional
from urllib.parse import unquote, urlparse

from PIL import Image, UnidentifiedImageError

from nanoprompt.core.types import SourceImage, split_data_url
from nanoprompt.llm.provider_config import MAX_FILE_SIZE_MB


# ============================================================
# CONFIG
# ============================================================

MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
FALLBACK_MIME_TYPE = "application/octet-stream"


class FileInputError(ValueError):
    """The chosen file could not be turned into a source image."""


# ============================================================
# PUBLIC ENTRYPOINTS
# ============================================================

def load_source_image(file_ref: str) -> SourceImage:
    """
    Build a `SourceImage` from a `data:` URL, `file://` URL, or local path.

    Validation behavior:
    - Rejects unknown references, empty payloads and payloads over the size cap.
    - Remote `file://` hosts are rejected.
    """
    if not file_ref:
        raise FileInputError("No file reference given")

    if file_ref.startswith("data:"):
        return load_data_url(file_ref)

    path = _resolve_path(file_ref)
    if not path:
        raise FileInputError(f"File not found: {file_ref}")

    try:
        size = os.path.getsize(path)
        if size > MAX_FILE_SIZE_BYTES:
            raise FileInputError("File exceeds max size limit")

        with open(path, "rb") as f:
            data = f.read()
    except OSError as exc:
        raise FileInputError(f"Could not read file: {file_ref}") from exc

    return image_from_bytes(data, filename=os.path.basename(path))


def load_dropped_image(
    content_type: Optional[str],
    data: bytes,
    filename: Optional[str] = None,
) -> Optional[SourceImage]:
    """Accept a dropped file only when it declares an `image/*` type."""
    if not content_type or not content_type.startswith("image/"):
        return None
    return image_from_bytes(data, mime_type=content_type, filename=filename)


def image_from_bytes(
    data: bytes,
    mime_type: Optional[str] = None,
    filename: Optional[str] = None,
) -> SourceImage:
    """Wrap raw bytes, resolving the MIME type when the caller has none."""
    if not data:
        raise FileInputError("File is empty")
    if len(data) > MAX_FILE_SIZE_BYTES:
        raise FileInputError("File exceeds max size limit")

    mime_type = mime_type or _guess_mime_type(data, filename)
    return SourceImage.from_bytes(data, mime_type, filename)


# ============================================================
# INPUT RESOLUTION
# ============================================================

def load_data_url(data_url: str) -> SourceImage:
    """
    Validate a data URL and keep it as the stored form.

    Input validation behavior:
    - Applies an approximate decoded-size check before decoding.
    - Non-base64 data URLs are rejected.
    """
    if "," not in data_url:
        raise FileInputError("Malformed data URL")

    header = data_url.split(",", 1)[0]
    if ";base64" not in header.lower():
        raise FileInputError("Only base64 data URLs are supported")

    mime_type, encoded = split_data_url(data_url)

    padding = 0
    if encoded.endswith("=="):
        padding = 2
    elif encoded.endswith("="):
        padding = 1
    approx_decoded_size = (len(encoded) * 3) // 4 - padding
    if approx_decoded_size > MAX_FILE_SIZE_BYTES:
        raise FileInputError("File exceeds max size limit")

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise FileInputError("Data URL payload is not valid base64") from exc

    return image_from_bytes(data, mime_type=mime_type)


def _resolve_path(file_ref: str) -> Optional[str]:
    """Resolve a `file://` URL (local host only) or plain path to an existing file."""
    if file_ref.startswith("file://"):
        parsed = urlparse(file_ref)

        if parsed.netloc not in ("", "localhost"):
            return None

        file_ref = unquote(parsed.path or "")

    normalized = _normalize_path(file_ref)
    if normalized and os.path.isfile(normalized):
        return normalized
    return None


def _normalize_path(path: str) -> Optional[str]:
    """Expand and canonicalize a path; return `None` for empty input."""
    if not path:
        return None
    return os.path.realpath(os.path.expanduser(path))


# ============================================================
# TYPE DETECTION
# ============================================================

def _guess_mime_type(data: bytes, filename: Optional[str]) -> str:
    """Extension first, then Pillow format sniffing."""
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed

    try:
        with Image.open(io.BytesIO(data)) as img:
            sniffed = Image.MIME.get(img.format)
    except (UnidentifiedImageError, OSError):
        sniffed = None

    return sniffed or FALLBACK_MIME_TYPE

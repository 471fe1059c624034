"""Gemini `generateContent` transport client.

Architectural role:
    Executes HTTP requests against the configured Gemini endpoint and exposes small
    helpers for reading candidate parts out of the JSON response.

Model invocation flow:
    `llm.service` / `image.client` -> `send_request(model, payload)` ->
    `POST {GEMINI_API_BASE}/models/{model}:generateContent` -> parsed JSON.

Retry behavior:
    No retry loop is implemented. Each HTTP call is attempted exactly once with the
    configured `REQUEST_TIMEOUT` (none by default).

Failure handling model:
    - Missing key -> `MissingCredentialError`.
    - HTTP status and connection failures -> `requests` exceptions, unmodified.
    Nothing is converted into return-value strings; callers decide what to show.
"""

import logging

import requests

from nanoprompt.core.types import MissingCredentialError
from nanoprompt.llm.provider_config import (
    GEMINI_KEY_FILE,
    GEMINI_URL_TEMPLATE,
    REQUEST_TIMEOUT,
    load_key,
)


logger = logging.getLogger(__name__)


def send_request(model: str, payload: dict) -> dict:
    """Send one `generateContent` request and return the decoded JSON body.

    Args:
        model: Gemini model id (for example `gemini-3-pro-preview`).
        payload: Request body with `contents` and optional config blocks.

    Returns:
        Parsed JSON response.

    Failure scenarios:
        - No key resolved -> `MissingCredentialError`
        - Non-2xx status -> `requests.HTTPError` (raised by `raise_for_status`)
        - Transport failure -> other `requests.RequestException` subclasses
    """
    api_key = load_key(GEMINI_KEY_FILE)
    if not api_key:
        raise MissingCredentialError(
            f"Gemini API key not found (set GEMINI_API_KEY or {GEMINI_KEY_FILE})"
        )

    url = GEMINI_URL_TEMPLATE.format(model=model)

    headers = {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json",
    }

    logger.debug("POST %s", url)

    response = requests.post(
        url,
        headers=headers,
        json=payload,
        timeout=REQUEST_TIMEOUT,
    )

    response.raise_for_status()
    return response.json()


def first_candidate_parts(data: dict) -> list:
    """Return the content parts of the first candidate, or `[]` when absent."""
    candidates = data.get("candidates") or []
    if not candidates:
        return []
    content = candidates[0].get("content") or {}
    return content.get("parts") or []


def extract_text(data: dict) -> str:
    """Concatenate the text parts of the first candidate.

    Thought-summary parts (`thought: true`) are skipped.
    """
    return "".join(
        part.get("text") or ""
        for part in first_candidate_parts(data)
        if isinstance(part, dict) and not part.get("thought")
    )

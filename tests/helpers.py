"""Fake Gemini responses shared by the test modules."""

from unittest.mock import MagicMock


def make_response(payload: dict) -> MagicMock:
    """A `requests.Response` stand-in whose `json()` returns `payload`."""
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = payload
    return response


def text_payload(text):
    parts = [] if text is None else [{"text": text}]
    return {"candidates": [{"content": {"role": "model", "parts": parts}}]}


def image_payload(parts):
    return {"candidates": [{"content": {"role": "model", "parts": parts}}]}

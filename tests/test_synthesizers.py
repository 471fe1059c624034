"""Tests for the prompt and image synthesizers (mocked Gemini HTTP)."""

from __future__ import annotations

from unittest.mock import patch

import pytest
import requests

from helpers import image_payload, make_response, text_payload
from nanoprompt.core.types import (
    AspectRatio,
    ImageSize,
    InvalidGenerationParameterError,
    MissingCredentialError,
    NoImageProducedError,
)
from nanoprompt.image.service import generate_image_from_prompt
from nanoprompt.llm.service import FALLBACK_PROMPT, describe_image_for_prompt

POST = "nanoprompt.llm.client.requests.post"


# ---------------------------------------------------------------------------
# Prompt synthesizer
# ---------------------------------------------------------------------------

class TestDescribeImageForPrompt:
    @patch(POST)
    def test_request_shape(self, mock_post):
        mock_post.return_value = make_response(text_payload("A cat."))

        describe_image_for_prompt("QUJD", "image/jpeg")

        assert mock_post.call_count == 1
        url = mock_post.call_args.args[0]
        kwargs = mock_post.call_args.kwargs
        assert url.endswith("/models/gemini-3-pro-preview:generateContent")
        assert kwargs["headers"]["x-goog-api-key"] == "test-key"

        body = kwargs["json"]
        image_part, instruction_part = body["contents"][0]["parts"]
        assert image_part == {"inlineData": {"mimeType": "image/jpeg", "data": "QUJD"}}
        assert "Output ONLY the prompt text" in instruction_part["text"]
        assert "expert prompt engineer" in body["systemInstruction"]["parts"][0]["text"]

    @patch(POST)
    def test_returns_text_unmodified(self, mock_post):
        text = "  A red bicycle leaning against a brick wall.\n"
        mock_post.return_value = make_response(text_payload(text))

        assert describe_image_for_prompt("QUJD", "image/png") == text

    @patch(POST)
    def test_joins_text_parts_and_skips_thoughts(self, mock_post):
        mock_post.return_value = make_response(image_payload([
            {"text": "thinking...", "thought": True},
            {"text": "A foggy "},
            {"text": "harbor."},
        ]))

        assert describe_image_for_prompt("QUJD", "image/png") == "A foggy harbor."

    @patch(POST)
    def test_null_text_parts_are_skipped(self, mock_post):
        mock_post.return_value = make_response(image_payload([
            {"text": None},
            {"text": "A cat."},
        ]))

        assert describe_image_for_prompt("QUJD", "image/png") == "A cat."

    @patch(POST)
    def test_only_null_text_falls_back(self, mock_post):
        mock_post.return_value = make_response(image_payload([{"text": None}]))

        assert describe_image_for_prompt("QUJD", "image/png") == FALLBACK_PROMPT

    @pytest.mark.parametrize("payload", [text_payload(""), text_payload(None), {}])
    @patch(POST)
    def test_empty_text_falls_back(self, mock_post, payload):
        mock_post.return_value = make_response(payload)

        assert describe_image_for_prompt("QUJD", "image/png") == FALLBACK_PROMPT

    @patch(POST)
    def test_http_error_propagates_unmodified(self, mock_post):
        error = requests.HTTPError("403 Forbidden")
        mock_post.return_value.raise_for_status.side_effect = error

        with pytest.raises(requests.HTTPError) as excinfo:
            describe_image_for_prompt("QUJD", "image/png")
        assert excinfo.value is error

    @patch(POST)
    def test_empty_payload_rejected_without_request(self, mock_post):
        with pytest.raises(ValueError):
            describe_image_for_prompt("", "image/png")
        mock_post.assert_not_called()

    @patch(POST)
    def test_missing_key(self, mock_post, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY")
        monkeypatch.setattr("nanoprompt.llm.client.GEMINI_KEY_FILE", "/nonexistent/gemini.key")

        with pytest.raises(MissingCredentialError):
            describe_image_for_prompt("QUJD", "image/png")
        mock_post.assert_not_called()


# ---------------------------------------------------------------------------
# Image synthesizer
# ---------------------------------------------------------------------------

class TestGenerateImageFromPrompt:
    @patch(POST)
    def test_request_shape(self, mock_post):
        mock_post.return_value = make_response(image_payload([
            {"inlineData": {"mimeType": "image/png", "data": "SU1H"}},
        ]))

        generate_image_from_prompt("A blue bicycle.", "16:9", "2K")

        url = mock_post.call_args.args[0]
        body = mock_post.call_args.kwargs["json"]
        assert url.endswith("/models/gemini-3-pro-image-preview:generateContent")
        assert body["contents"][0]["parts"] == [{"text": "A blue bicycle."}]
        assert body["generationConfig"]["imageConfig"] == {
            "aspectRatio": "16:9",
            "imageSize": "2K",
        }

    @patch(POST)
    def test_first_inline_part_wins(self, mock_post):
        mock_post.return_value = make_response(image_payload([
            {"text": "Here is your image"},
            {"inline_data": {"mime_type": "image/jpeg", "data": "Rklyc3Q="}},
            {"inlineData": {"mimeType": "image/png", "data": "U2Vjb25k"}},
        ]))

        artifact = generate_image_from_prompt("p", AspectRatio.WIDE, ImageSize.FOUR_K)

        assert artifact.base64_data == "Rklyc3Q="
        assert artifact.mime_type == "image/jpeg"
        assert artifact.data_url == "data:image/jpeg;base64,Rklyc3Q="
        assert artifact.prompt == "p"
        assert artifact.aspect_ratio is AspectRatio.WIDE
        assert artifact.image_size is ImageSize.FOUR_K

    @patch(POST)
    def test_missing_mime_defaults_to_png(self, mock_post):
        mock_post.return_value = make_response(image_payload([
            {"inlineData": {"data": "SU1H"}},
        ]))

        assert generate_image_from_prompt("p").mime_type == "image/png"

    @patch(POST)
    def test_no_parts(self, mock_post):
        mock_post.return_value = make_response({"candidates": []})

        with pytest.raises(NoImageProducedError, match="No content generated"):
            generate_image_from_prompt("p")

    @patch(POST)
    def test_no_inline_data(self, mock_post):
        mock_post.return_value = make_response(image_payload([{"text": "I can't draw that."}]))

        with pytest.raises(NoImageProducedError, match="No image data found"):
            generate_image_from_prompt("p")

    @pytest.mark.parametrize("ratio, size", [("2:1", "1K"), ("1:1", "8K")])
    @patch(POST)
    def test_invalid_parameters_rejected_before_request(self, mock_post, ratio, size):
        with pytest.raises(InvalidGenerationParameterError):
            generate_image_from_prompt("p", ratio, size)
        mock_post.assert_not_called()

    @patch(POST)
    def test_empty_prompt_rejected(self, mock_post):
        with pytest.raises(ValueError):
            generate_image_from_prompt("")
        mock_post.assert_not_called()

    @patch(POST)
    def test_transport_error_propagates(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("offline")

        with pytest.raises(requests.ConnectionError):
            generate_image_from_prompt("p")

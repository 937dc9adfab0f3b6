"""Tests for model response normalization across wire formats."""

from __future__ import annotations

import json

from src.review_bot.services.llm_response import EXTRACTION_ERROR, extract_content


def test_chat_completion_shape():
    assert extract_content({"choices": [{"message": {"content": "X"}}]}) == "X"


def test_responses_shape():
    raw = {
        "output": [
            {"type": "reasoning", "summary": []},
            {"type": "message", "content": [{"type": "output_text", "text": "Y"}]},
        ]
    }
    assert extract_content(raw) == "Y"


def test_responses_shape_falls_back_to_first_output_string():
    assert extract_content({"output": [{"content": "plain"}]}) == "plain"


def test_responses_shape_falls_back_to_first_content_text():
    assert extract_content({"output": [{"content": [{"text": "first"}, {"text": "second"}]}]}) == "first"


def test_flat_response_and_text_keys():
    assert extract_content({"response": "R"}) == "R"
    assert extract_content({"text": "T"}) == "T"


def test_raw_string_passthrough():
    assert extract_content("already text") == "already text"


def test_unrecognized_shape_is_pretty_printed():
    assert extract_content({"foo": 1}) == json.dumps({"foo": 1}, indent=2)


def test_sdk_objects_are_dumped_first():
    class FakeModelResponse:
        def model_dump(self):
            return {"choices": [{"message": {"content": "from sdk"}}]}

    assert extract_content(FakeModelResponse()) == "from sdk"


def test_never_raises():
    class Broken:
        def model_dump(self):
            raise RuntimeError("boom")

    assert extract_content(Broken()) == EXTRACTION_ERROR


def test_null_content_in_choices_falls_through_to_json():
    raw = {"choices": [{"message": {"content": None}}]}
    assert extract_content(raw) == json.dumps(raw, indent=2)

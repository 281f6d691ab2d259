from pathlib import Path
import sys

import pytest
import requests

# Ensure tests can import project modules from this repo layout.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from vtwoods.config import ChatConfig  # noqa: E402
from vtwoods.rag import responses  # noqa: E402
from vtwoods.rag.generate import citation_locators, generate_answer  # noqa: E402
from vtwoods.rag.prompts import NO_ANSWER, SYSTEM_INSTRUCTIONS  # noqa: E402
from vtwoods.rag.responses import ExternalCallError  # noqa: E402

CONFIG = ChatConfig(api_key="sk-test", vector_store_id="vs_test", base_url="https://api.test/v1")


class _FakeResponse:
    reason = "Error"

    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


def _message_body(*parts):
    return {
        "output": [
            {"type": "file_search_call", "id": "fs_1"},
            {"type": "message", "content": list(parts)},
        ]
    }


def _fake_post(calls, response):
    def fake_post_json(url, payload, timeout, headers=None, retries=None):
        calls.append({"url": url, "payload": payload, "headers": headers, "retries": retries})
        return response

    return fake_post_json


def test_generate_answer_sends_grounded_request(monkeypatch):
    calls = []
    body = _message_body({"type": "output_text", "text": "Use a bridge.", "annotations": []})
    monkeypatch.setattr(responses, "post_json", _fake_post(calls, _FakeResponse(payload=body)))

    generate_answer(CONFIG, "How do I cross a stream?")

    call = calls[0]
    assert call["url"] == "https://api.test/v1/responses"
    assert call["retries"] == 0
    assert call["headers"]["Authorization"] == "Bearer sk-test"
    assert call["payload"]["input"][0] == {"role": "system", "content": SYSTEM_INSTRUCTIONS}
    assert call["payload"]["input"][1] == {"role": "user", "content": "How do I cross a stream?"}
    assert call["payload"]["tools"] == [
        {"type": "file_search", "vector_store_ids": ["vs_test"]}
    ]


def test_generate_answer_joins_text_and_dedupes_citations(monkeypatch):
    body = _message_body(
        {
            "type": "output_text",
            "text": "  Install waterbars ",
            "annotations": [
                {"type": "file_citation", "file_id": "file_1", "filename": "AMP_Manual.pdf"},
            ],
        },
        {
            "type": "output_text",
            "text": "every 50 feet.  ",
            "annotations": [
                {"type": "file_citation", "file_id": "file_1", "filename": "AMP_Manual.pdf"},
                {"type": "file_citation", "file_id": "file_2"},
            ],
        },
    )
    monkeypatch.setattr(responses, "post_json", _fake_post([], _FakeResponse(payload=body)))

    result = generate_answer(CONFIG, "waterbar spacing?")

    assert result.answer == "Install waterbars every 50 feet."
    assert result.citations == ["AMP_Manual.pdf", "file_2"]


def test_empty_model_output_becomes_no_answer(monkeypatch):
    monkeypatch.setattr(
        responses, "post_json", _fake_post([], _FakeResponse(payload={"output": []}))
    )
    assert generate_answer(CONFIG, "anything").answer == NO_ANSWER


def test_api_error_carries_status_and_message(monkeypatch):
    error = {"error": {"message": "Incorrect API key provided"}}
    monkeypatch.setattr(
        responses, "post_json", _fake_post([], _FakeResponse(status_code=401, payload=error))
    )
    with pytest.raises(ExternalCallError, match="401 Incorrect API key provided"):
        generate_answer(CONFIG, "culverts")


def test_non_json_body_is_external_failure(monkeypatch):
    monkeypatch.setattr(responses, "post_json", _fake_post([], _FakeResponse(text="<html>")))
    with pytest.raises(ExternalCallError, match="Invalid JSON"):
        generate_answer(CONFIG, "culverts")


def test_transport_error_is_external_failure(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.exceptions.ConnectTimeout("timed out")

    monkeypatch.setattr(responses, "post_json", boom)
    with pytest.raises(ExternalCallError, match="timed out"):
        generate_answer(CONFIG, "culverts")


def test_citation_locators_skip_unknown_annotations():
    annotations = [
        {"type": "url_citation", "url": "https://fpr.vermont.gov/amps"},
        {"type": "container_file_citation", "file_id": "cf_1"},
        {"type": "file_citation"},
    ]
    assert citation_locators(annotations) == ["https://fpr.vermont.gov/amps"]

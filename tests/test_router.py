from pathlib import Path
import sys
import time

import pytest

# Ensure tests can import project modules from this repo layout.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from vtwoods.config import ChatConfig  # noqa: E402
from vtwoods.rag import router as router_module  # noqa: E402
from vtwoods.rag.generate import GeneratedAnswer  # noqa: E402
from vtwoods.rag.prompts import (  # noqa: E402
    DEVELOPER_CONTACT,
    EMPTY_PROMPT,
    OUT_OF_SCOPE,
    SOILS_REDIRECT,
)
from vtwoods.rag.relevance import RelevanceVerdict  # noqa: E402
from vtwoods.rag.responses import ExternalCallError  # noqa: E402
from vtwoods.rag.router import ChatState, Router  # noqa: E402
from vtwoods.rag.scope import ScopeDecision  # noqa: E402

CONFIG = ChatConfig(api_key="sk-test", vector_store_id="vs_test")
IN_SCOPE_MESSAGE = "What are the AMPs for stream crossings on a logging job?"


@pytest.fixture
def fake_generation(monkeypatch):
    calls = []

    def fake_generate_answer(config, question):
        calls.append(question)
        return GeneratedAnswer(answer="Use a portable bridge.", citations=["AMP_Manual.pdf"])

    monkeypatch.setattr(router_module, "generate_answer", fake_generate_answer)
    return calls


@pytest.mark.parametrize(
    "decision, answer",
    [
        (ScopeDecision.EMPTY, EMPTY_PROMPT),
        (ScopeDecision.AUTHORSHIP, DEVELOPER_CONTACT),
        (ScopeDecision.SOILS, SOILS_REDIRECT),
        (ScopeDecision.OUT_OF_SCOPE, OUT_OF_SCOPE),
    ],
)
def test_fixed_branches_are_deterministic(decision, answer):
    router = Router(CONFIG)
    first = router.route(decision, "anything", want_citations=True)
    second = router.route(decision, "anything", want_citations=True)

    assert first.success is True
    assert first.answer == answer
    assert first.citations is None
    assert first.error is None
    assert first.model_dump_json() == second.model_dump_json()


def test_fixed_branches_never_need_configuration():
    router = Router(ChatConfig(api_key="", vector_store_id=""))
    result = router.handle("What's a good recipe for apple pie?")
    assert result.success is True
    assert result.answer == "Your request is beyond the scope and purpose of this app."


def test_empty_message_gets_prompt():
    result = Router(CONFIG).handle("   ")
    assert result.success is True
    assert result.answer == EMPTY_PROMPT


def test_in_scope_attaches_citations_only_when_requested(fake_generation):
    router = Router(CONFIG)

    with_citations = router.handle(IN_SCOPE_MESSAGE, want_citations=True)
    without_citations = router.handle(IN_SCOPE_MESSAGE, want_citations=False)

    assert with_citations.success is True
    assert with_citations.answer == "Use a portable bridge."
    assert with_citations.citations == ["AMP_Manual.pdf"]
    assert without_citations.citations is None
    assert fake_generation == [IN_SCOPE_MESSAGE, IN_SCOPE_MESSAGE]


@pytest.mark.parametrize(
    "config, missing",
    [
        (ChatConfig(api_key="", vector_store_id="vs_test"), "OPENAI_API_KEY"),
        (ChatConfig(api_key="sk-test", vector_store_id=""), "VECTOR_STORE_ID"),
    ],
)
def test_missing_configuration_fails_in_scope_request(config, missing, fake_generation):
    result = Router(config).route(ScopeDecision.IN_SCOPE, IN_SCOPE_MESSAGE)

    assert result.success is False
    assert result.error == f"Server is missing {missing}. Set it in the server environment variables."
    assert fake_generation == []


def test_external_failure_is_reported(monkeypatch):
    def failing_generate_answer(config, question):
        raise ExternalCallError("429 Rate limit reached")

    monkeypatch.setattr(router_module, "generate_answer", failing_generate_answer)
    result = Router(CONFIG).route(ScopeDecision.IN_SCOPE, IN_SCOPE_MESSAGE, want_citations=True)

    assert result.success is False
    assert result.error == "429 Rate limit reached"
    assert result.citations is None


@pytest.mark.parametrize(
    "verdict", [RelevanceVerdict.NOT_RELEVANT, RelevanceVerdict.UNPARSABLE]
)
def test_relevance_check_fails_closed(monkeypatch, fake_generation, verdict):
    monkeypatch.setattr(router_module, "judge_relevance", lambda config, question: verdict)
    config = ChatConfig(api_key="sk-test", vector_store_id="vs_test", relevance_check=True)
    state = ChatState(started=time.time(), request_id="req-1")

    result = Router(config).route(ScopeDecision.IN_SCOPE, IN_SCOPE_MESSAGE, True, state)

    assert result.success is True
    assert result.answer == OUT_OF_SCOPE
    assert result.citations is None
    assert state.relevance_verdict == verdict.value
    assert fake_generation == []


def test_relevant_judgment_proceeds_to_generation(monkeypatch, fake_generation):
    monkeypatch.setattr(
        router_module, "judge_relevance", lambda config, question: RelevanceVerdict.RELEVANT
    )
    config = ChatConfig(api_key="sk-test", vector_store_id="vs_test", relevance_check=True)

    result = Router(config).handle(IN_SCOPE_MESSAGE, want_citations=True)

    assert result.answer == "Use a portable bridge."
    assert fake_generation == [IN_SCOPE_MESSAGE]


def test_relevance_call_failure_is_reported(monkeypatch, fake_generation):
    def failing_judge(config, question):
        raise ExternalCallError("503 Service Unavailable")

    monkeypatch.setattr(router_module, "judge_relevance", failing_judge)
    config = ChatConfig(api_key="sk-test", vector_store_id="vs_test", relevance_check=True)

    result = Router(config).handle(IN_SCOPE_MESSAGE)

    assert result.success is False
    assert result.error == "503 Service Unavailable"
    assert fake_generation == []


def test_router_threshold_override():
    router = Router(CONFIG, min_topic_hits=2)
    assert router.classify("When is a shelterwood cut appropriate?") is ScopeDecision.OUT_OF_SCOPE

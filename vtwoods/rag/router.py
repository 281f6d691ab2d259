"""Turns a scope decision into the chat reply."""

from dataclasses import dataclass

from vtwoods.config import ChatConfig, ConfigurationMissing
from vtwoods.ops.logging import log_event
from vtwoods.ops.metrics import (
    inc_chat_error,
    inc_relevance_block,
    observe_generate_latency,
    observe_relevance_latency,
    timer,
)
from vtwoods.rag.generate import GeneratedAnswer, generate_answer
from vtwoods.rag.prompts import DEVELOPER_CONTACT, EMPTY_PROMPT, OUT_OF_SCOPE, SOILS_REDIRECT
from vtwoods.rag.relevance import RelevanceVerdict, judge_relevance
from vtwoods.rag.responses import ExternalCallError
from vtwoods.rag.scope import ScopeDecision, classify
from vtwoods.schemas import ChatResponse

_FIXED_ANSWERS = {
    ScopeDecision.EMPTY: EMPTY_PROMPT,
    ScopeDecision.AUTHORSHIP: DEVELOPER_CONTACT,
    ScopeDecision.SOILS: SOILS_REDIRECT,
    ScopeDecision.OUT_OF_SCOPE: OUT_OF_SCOPE,
}


@dataclass
class ChatState:
    started: float
    request_id: str = ""
    decision: str = ""
    relevance_sec: float = 0.0
    generate_sec: float = 0.0
    relevance_verdict: str = ""


def fixed_response(decision: ScopeDecision) -> ChatResponse:
    return ChatResponse(success=True, answer=_FIXED_ANSWERS[decision])


class Router:
    def __init__(self, config: ChatConfig, min_topic_hits: int | None = None):
        self.config = config
        self.min_topic_hits = min_topic_hits

    def classify(self, message: str) -> ScopeDecision:
        return classify(message, min_topic_hits=self.min_topic_hits)

    def handle(self, message: str, want_citations: bool = False) -> ChatResponse:
        return self.route(self.classify(message), message, want_citations)

    def route(
        self,
        decision: ScopeDecision,
        message: str,
        want_citations: bool = False,
        state: ChatState | None = None,
    ) -> ChatResponse:
        if decision is not ScopeDecision.IN_SCOPE:
            return fixed_response(decision)

        try:
            self.config.require_credentials()
        except ConfigurationMissing as exc:
            inc_chat_error("config_missing")
            return ChatResponse(success=False, error=str(exc))

        try:
            if self.config.relevance_check:
                verdict = self._check_relevance(message, state)
                if not verdict.allows_answer:
                    self._record_relevance_block(verdict, state)
                    return fixed_response(ScopeDecision.OUT_OF_SCOPE)
            generated = self._generate(message, state)
        except ExternalCallError as exc:
            inc_chat_error("external_call")
            return ChatResponse(success=False, error=str(exc))

        return ChatResponse(
            success=True,
            answer=generated.answer,
            citations=list(generated.citations) if want_citations else None,
        )

    def _check_relevance(self, message: str, state: ChatState | None) -> RelevanceVerdict:
        with timer() as elapsed:
            verdict = judge_relevance(self.config, message)
            sec = elapsed()
        observe_relevance_latency(sec)
        if state is not None:
            state.relevance_sec = sec
            state.relevance_verdict = verdict.value
        return verdict

    def _generate(self, message: str, state: ChatState | None) -> GeneratedAnswer:
        with timer() as elapsed:
            generated = generate_answer(self.config, message)
            sec = elapsed()
        observe_generate_latency(sec)
        if state is not None:
            state.generate_sec = sec
        return generated

    def _record_relevance_block(
        self, verdict: RelevanceVerdict, state: ChatState | None
    ) -> None:
        inc_relevance_block(verdict.value)
        log_event(
            {
                "type": "relevance_block",
                "request_id": state.request_id if state else "",
                "verdict": verdict.value,
            }
        )

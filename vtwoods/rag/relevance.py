"""Retrieval-sufficiency check run before the full grounded answer.

The model is asked to judge, from vector-store excerpts, whether the question
can be answered from the documents. Anything other than a clean positive
judgment keeps the request out of scope.
"""

import json
import re
from enum import Enum

from vtwoods.config import ChatConfig
from vtwoods.rag.prompts import build_relevance_prompt
from vtwoods.rag.responses import create_response, output_text, search_vector_store

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class RelevanceVerdict(str, Enum):
    RELEVANT = "relevant"
    NOT_RELEVANT = "not_relevant"
    UNPARSABLE = "unparsable"

    @property
    def allows_answer(self) -> bool:
        return self is RelevanceVerdict.RELEVANT


def parse_verdict(content: str) -> RelevanceVerdict:
    text = _FENCE.sub("", (content or "").strip())
    try:
        payload = json.loads(text)
    except ValueError:
        return RelevanceVerdict.UNPARSABLE

    if isinstance(payload, dict):
        payload = payload.get("relevant")
    if not isinstance(payload, bool):
        return RelevanceVerdict.UNPARSABLE
    return RelevanceVerdict.RELEVANT if payload else RelevanceVerdict.NOT_RELEVANT


def excerpts_from_results(results: list[dict]) -> list[str]:
    excerpts: list[str] = []
    for result in results:
        pieces = [
            str(c.get("text", ""))
            for c in result.get("content") or []
            if isinstance(c, dict) and c.get("type") == "text"
        ]
        text = "\n".join(p for p in pieces if p.strip()).strip()
        if text:
            excerpts.append(text)
    return excerpts


def judge_relevance(config: ChatConfig, question: str) -> RelevanceVerdict:
    results = search_vector_store(config, question, config.relevance_max_results)
    excerpts = excerpts_from_results(results)
    if not excerpts:
        return RelevanceVerdict.NOT_RELEVANT

    body = create_response(
        config,
        messages=[{"role": "user", "content": build_relevance_prompt(question, excerpts)}],
    )
    return parse_verdict(output_text(body))

"""Scope gate deciding how an incoming chat message is handled."""

from enum import Enum

from vtwoods.config import settings
from vtwoods.rag.vocabulary import VocabularyTable, vocabulary


class ScopeDecision(str, Enum):
    EMPTY = "empty"
    AUTHORSHIP = "authorship"
    SOILS = "soils"
    OUT_OF_SCOPE = "out_of_scope"
    IN_SCOPE = "in_scope"


def _matches_any(text: str, patterns) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def topic_matches(message: str, table: VocabularyTable | None = None) -> list[str]:
    """Return the labels of topical terms found in ``message``.

    A term only counts when one of its matches lies outside every match
    already counted for a longer term, so "stream crossing" is one hit and
    not two ("stream crossing" plus "crossing").
    """
    table = table or vocabulary()
    text = (message or "").lower()
    found: list[tuple[str, list[tuple[int, int]]]] = []
    for terms in table.topic.values():
        for label, pattern in terms:
            spans = [m.span() for m in pattern.finditer(text) if m.end() > m.start()]
            if spans:
                found.append((label, spans))
    found.sort(key=lambda item: max(end - start for start, end in item[1]), reverse=True)

    counted: list[tuple[int, int]] = []
    hits: list[str] = []
    for label, spans in found:
        free = [
            (start, end)
            for start, end in spans
            if not any(c_start <= start and end <= c_end for c_start, c_end in counted)
        ]
        if free and label not in hits:
            hits.append(label)
            counted.extend(free)
    return hits


def asks_authorship_or_feedback(text: str, table: VocabularyTable) -> bool:
    return _matches_any(text, table.authorship)


def is_soils_question(text: str, table: VocabularyTable) -> bool:
    return _matches_any(text, table.soils)


def is_in_scope(text: str, table: VocabularyTable, min_topic_hits: int) -> bool:
    if _matches_any(text, table.region):
        return not _matches_any(text, table.unrelated)
    return len(topic_matches(text, table)) >= max(1, min_topic_hits)


def classify(
    message: str,
    min_topic_hits: int | None = None,
    table: VocabularyTable | None = None,
) -> ScopeDecision:
    table = table or vocabulary()
    text = (message or "").strip().lower()
    if not text:
        return ScopeDecision.EMPTY
    if asks_authorship_or_feedback(text, table):
        return ScopeDecision.AUTHORSHIP
    if is_soils_question(text, table):
        return ScopeDecision.SOILS

    threshold = settings.SCOPE_MIN_TOPIC_HITS if min_topic_hits is None else min_topic_hits
    if is_in_scope(text, table, threshold):
        return ScopeDecision.IN_SCOPE
    return ScopeDecision.OUT_OF_SCOPE

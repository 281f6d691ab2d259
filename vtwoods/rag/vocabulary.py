"""Versioned keyword vocabulary for the scope gate.

Every entry names its match rule explicitly:

- ``substring``: plain substring of the lowercased message
- ``word``: word-boundary match, a trailing plural ``s``/``es`` allowed
- ``regex``: the value is a regular expression

An optional JSON file (``SCOPE_VOCABULARY_FILE``) can extend the topic and
unrelated groups without a code change.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path

from vtwoods.config import settings

VOCABULARY_VERSION = "2024.2"


class MatchRule(str, Enum):
    SUBSTRING = "substring"
    WORD = "word"
    REGEX = "regex"


@dataclass(frozen=True)
class Term:
    value: str
    rule: MatchRule = MatchRule.WORD
    label: str = ""

    @property
    def display(self) -> str:
        return self.label or self.value

    def pattern(self) -> str:
        if self.rule is MatchRule.SUBSTRING:
            return re.escape(self.value.lower())
        if self.rule is MatchRule.WORD:
            return rf"\b{re.escape(self.value.lower())}(?:s|es)?\b"
        return self.value


def _sub(*values: str) -> list[Term]:
    return [Term(v, MatchRule.SUBSTRING) for v in values]


def _word(*values: str) -> list[Term]:
    return [Term(v, MatchRule.WORD) for v in values]


def _regex(*values: str) -> list[Term]:
    return [Term(v, MatchRule.REGEX) for v in values]


def _labeled(label: str, value: str) -> Term:
    return Term(value, MatchRule.REGEX, label)


_AUTHORSHIP_TERMS = _sub(
    "who wrote",
    "who made",
    "who built",
    "who created",
    "feedback",
    "suggestion",
    "feature request",
    "contact",
    "email",
    "developer",
)

_SOILS_TERMS = [
    *_word("soil", "site index", "wss"),
    *_sub("web soil survey"),
    *_regex(
        r"\bdrainage class(?:es)?\b",
        r"\b(?:well|moderately well|somewhat poorly|poorly|very poorly"
        r"|excessively|somewhat excessively)[- ]drained\b",
    ),
]

_REGION_TERMS = _regex(r"\bvermont\b", r"\bvt\b")

# A region mention is still refused when it also names one of these.
_UNRELATED_TERMS = _word(
    "recipe",
    "dating",
    "movie",
    "tv show",
    "bitcoin",
    "stock",
    "fantasy football",
    "porn",
    "celebrity",
    "astrology",
    "horoscope",
)

_TOPIC_TERMS: dict[str, list[Term]] = {
    "water_quality": [
        *_word(
            "amp",
            "acceptable management practice",
            "waterbar",
            "water bar",
            "turnout",
            "stream crossing",
            "crossing",
            "culvert",
            "bridge",
            "portable bridge",
            "silt fence",
            "seed",
            "seeding",
            "seedling",
            "rut",
            "rutting",
            "ditch",
            "drainage",
            "buffer",
            "wetland",
        ),
        *_sub("mulch", "stabiliz", "erosion", "sediment", "riparian"),
        _labeled("broad-based dip", r"\bbroad[- ]based dips?\b"),
    ],
    "silviculture": [
        *_sub("silvicultur", "regeneration", "thinning", "shelterwood"),
        *_word(
            "selection",
            "group selection",
            "patch cut",
            "release",
            "crop tree",
            "marking",
            "basal area",
            "tpa",
            "qmd",
            "stand improvement",
        ),
        _labeled("clearcut", r"\bclear[- ]?cut(?:s|ting)?\b"),
    ],
    "operations": [
        *_sub("harvest", "timber"),
        *_word(
            "logging",
            "logger",
            "skid trail",
            "landing",
            "haul road",
            "forest road",
            "forwarder",
            "skidder",
            "processor",
            "chainsaw",
            "forestry",
            "forester",
            "woodlot",
        ),
        _labeled("feller-buncher", r"\bfeller[- ]?bunchers?\b"),
    ],
    "climate_adaptation": [
        *_sub("climate adaptation", "resilien", "invasive"),
        *_word(
            "deer browse",
            "drought",
            "flood",
            "flooding",
            "ice storm",
            "windthrow",
            "blowdown",
        ),
    ],
    "forest_products": [
        *_sub("sawmill", "lumber", "biomass", "firewood", "cordwood", "stumpage", "forest product"),
        *_word(
            "mill",
            "pulp",
            "chip",
            "pellet",
            "log market",
            "delivered",
            "scale",
            "cord",
        ),
        _labeled("board feet", r"\bboard[- ]f(?:ee|oo)t\b"),
    ],
    "programs": [
        *_word("forest action plan", "fia", "forest inventory", "analysis", "tree owner"),
        _labeled("tree owner's manual", r"\btree owner(?:'|’)?s manual\b"),
    ],
}


@dataclass(frozen=True)
class VocabularyTable:
    version: str
    authorship: tuple[re.Pattern[str], ...]
    soils: tuple[re.Pattern[str], ...]
    region: tuple[re.Pattern[str], ...]
    unrelated: tuple[re.Pattern[str], ...]
    topic: dict[str, tuple[tuple[str, re.Pattern[str]], ...]]


def _resolve_vocabulary_path(path_value: str) -> Path:
    path = Path(path_value).expanduser()
    if path.is_absolute():
        return path

    cwd_path = Path.cwd() / path
    if cwd_path.exists():
        return cwd_path

    repo_root = Path(__file__).resolve().parents[2]
    return repo_root / path


def _compile_terms(terms: list[Term], context: str) -> tuple[re.Pattern[str], ...]:
    compiled: list[re.Pattern[str]] = []
    for idx, term in enumerate(terms):
        try:
            compiled.append(re.compile(term.pattern(), re.IGNORECASE))
        except re.error as exc:
            raise RuntimeError(f"Invalid pattern in {context}[{idx}]: {exc}") from exc
    return tuple(compiled)


def _parse_term(raw: object, context: str) -> Term:
    if isinstance(raw, str):
        return Term(raw)
    if isinstance(raw, dict) and isinstance(raw.get("value"), str):
        rule_name = raw.get("rule", MatchRule.WORD.value)
        try:
            rule = MatchRule(rule_name)
        except ValueError as exc:
            raise RuntimeError(f"Unknown match rule '{rule_name}' in {context}") from exc
        label = raw.get("label", "")
        if not isinstance(label, str):
            raise RuntimeError(f"label must be a string in {context}")
        return Term(raw["value"], rule, label)
    raise RuntimeError(f"{context} entries must be strings or {{value, rule, label}} objects")


def _load_extra_terms(path_value: str) -> dict:
    path = _resolve_vocabulary_path(path_value)
    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise RuntimeError(f"Failed to read SCOPE_VOCABULARY_FILE at '{path}': {exc}") from exc

    if not text:
        raise RuntimeError(f"SCOPE_VOCABULARY_FILE is empty: '{path}'")

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"Invalid JSON in SCOPE_VOCABULARY_FILE '{path}': {exc}") from exc

    if not isinstance(payload, dict):
        raise RuntimeError("SCOPE_VOCABULARY_FILE must be a JSON object")
    return payload


def _merge_extra_terms(
    topic: dict[str, list[Term]],
    unrelated: list[Term],
    payload: dict,
) -> None:
    extra_topic = payload.get("topic_terms", {})
    extra_unrelated = payload.get("unrelated_terms", [])
    if not isinstance(extra_topic, dict):
        raise RuntimeError("topic_terms must be a JSON object")
    if not isinstance(extra_unrelated, list):
        raise RuntimeError("unrelated_terms must be a list")

    for category, values in extra_topic.items():
        if not isinstance(values, list):
            raise RuntimeError("Each topic_terms entry must map string -> list")
        topic.setdefault(category, []).extend(
            _parse_term(value, f"topic_terms.{category}") for value in values
        )
    unrelated.extend(_parse_term(value, "unrelated_terms") for value in extra_unrelated)


def build_vocabulary(extra_terms_file: str = "") -> VocabularyTable:
    topic = {category: list(terms) for category, terms in _TOPIC_TERMS.items()}
    unrelated = list(_UNRELATED_TERMS)
    version = VOCABULARY_VERSION

    if extra_terms_file:
        payload = _load_extra_terms(extra_terms_file)
        _merge_extra_terms(topic, unrelated, payload)
        version = f"{VOCABULARY_VERSION}+{payload.get('version', 'local')}"

    compiled_topic = {}
    for category, terms in topic.items():
        patterns = _compile_terms(terms, f"topic_terms.{category}")
        compiled_topic[category] = tuple(
            (term.display, pattern) for term, pattern in zip(terms, patterns)
        )

    return VocabularyTable(
        version=version,
        authorship=_compile_terms(_AUTHORSHIP_TERMS, "authorship"),
        soils=_compile_terms(_SOILS_TERMS, "soils"),
        region=_compile_terms(_REGION_TERMS, "region"),
        unrelated=_compile_terms(unrelated, "unrelated_terms"),
        topic=compiled_topic,
    )


@lru_cache(maxsize=1)
def vocabulary() -> VocabularyTable:
    return build_vocabulary(settings.SCOPE_VOCABULARY_FILE)


def validate_vocabulary_config() -> None:
    """Fail fast on an invalid extra vocabulary file."""
    vocabulary()

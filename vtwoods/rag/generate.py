from dataclasses import dataclass, field

from vtwoods.config import ChatConfig
from vtwoods.rag.prompts import NO_ANSWER, SYSTEM_INSTRUCTIONS
from vtwoods.rag.responses import create_response, output_annotations, output_text


@dataclass(frozen=True)
class GeneratedAnswer:
    answer: str
    citations: list[str] = field(default_factory=list)


def _locator(annotation: dict) -> str:
    kind = annotation.get("type")
    if kind == "file_citation":
        return str(annotation.get("filename") or annotation.get("file_id") or "")
    if kind == "url_citation":
        return str(annotation.get("url") or "")
    return ""


def citation_locators(annotations: list[dict]) -> list[str]:
    locators: list[str] = []
    seen = set()
    for annotation in annotations:
        locator = _locator(annotation)
        if not locator or locator in seen:
            continue
        seen.add(locator)
        locators.append(locator)
    return locators


def generate_answer(config: ChatConfig, question: str) -> GeneratedAnswer:
    body = create_response(
        config,
        messages=[
            {"role": "system", "content": SYSTEM_INSTRUCTIONS},
            {"role": "user", "content": question},
        ],
        tools=[{"type": "file_search", "vector_store_ids": [config.vector_store_id]}],
    )
    return GeneratedAnswer(
        answer=output_text(body) or NO_ANSWER,
        citations=citation_locators(output_annotations(body)),
    )

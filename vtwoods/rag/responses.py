"""Thin client for the hosted Responses and vector-store search endpoints."""

from typing import Any

import requests

from vtwoods.config import ChatConfig
from vtwoods.ops.http import post_json


class ExternalCallError(RuntimeError):
    """The hosted model API failed or answered with something unusable."""


def _headers(config: ChatConfig) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {config.api_key}",
        "Content-Type": "application/json",
    }


def _api_error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    message = ""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            message = str(error.get("message", ""))
        elif error:
            message = str(error)
    if not message:
        message = (response.text or "").strip()[:300] or response.reason or "request failed"
    return f"{response.status_code} {message}"


def _post(config: ChatConfig, path: str, payload: dict) -> dict[str, Any]:
    url = f"{config.base_url}{path}"
    try:
        r = post_json(
            url,
            payload=payload,
            timeout=config.timeout_sec,
            headers=_headers(config),
            retries=0,
        )
    except requests.exceptions.RequestException as exc:
        raise ExternalCallError(f"Request to {path} failed: {exc}") from exc

    if r.status_code >= 400:
        raise ExternalCallError(_api_error_detail(r))
    try:
        body = r.json()
    except ValueError as exc:
        raise ExternalCallError(f"Invalid JSON from {path}: {exc}") from exc
    if not isinstance(body, dict):
        raise ExternalCallError(f"Unexpected response shape from {path}")
    return body


def create_response(
    config: ChatConfig,
    messages: list[dict],
    tools: list[dict] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"model": config.model, "input": messages}
    if tools:
        payload["tools"] = tools
    return _post(config, "/responses", payload)


def search_vector_store(config: ChatConfig, query: str, max_results: int) -> list[dict]:
    body = _post(
        config,
        f"/vector_stores/{config.vector_store_id}/search",
        {"query": query, "max_num_results": max_results},
    )
    data = body.get("data") or []
    return [item for item in data if isinstance(item, dict)]


def _output_text_parts(body: dict) -> list[dict]:
    parts: list[dict] = []
    for item in body.get("output") or []:
        if not isinstance(item, dict) or item.get("type") != "message":
            continue
        for content in item.get("content") or []:
            if isinstance(content, dict) and content.get("type") == "output_text":
                parts.append(content)
    return parts


def output_text(body: dict) -> str:
    return "".join(str(part.get("text", "")) for part in _output_text_parts(body)).strip()


def output_annotations(body: dict) -> list[dict]:
    annotations: list[dict] = []
    for part in _output_text_parts(body):
        annotations.extend(a for a in part.get("annotations") or [] if isinstance(a, dict))
    return annotations

"""FastAPI entrypoint for the VT Woods chat service."""

import hashlib
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from vtwoods.config import ChatConfig, settings
from vtwoods.ops.logging import log_event
from vtwoods.ops.metrics import (
    inc_chat_error,
    inc_chat_requests,
    inc_scope_decision,
    metrics_content_type,
    observe_chat_latency,
    render_metrics,
)
from vtwoods.rag.prompts import SYSTEM_INSTRUCTIONS
from vtwoods.rag.router import ChatState, Router
from vtwoods.rag.vocabulary import validate_vocabulary_config, vocabulary
from vtwoods.schemas import ChatRequest, ChatResponse

_router = Router(ChatConfig.from_settings(settings))


def get_router() -> Router:
    return _router


def startup_check() -> None:
    validate_vocabulary_config()
    missing = _router.config.missing_fields()
    if missing:
        log_event({"type": "config_warning", "missing": missing})
    log_event(
        {
            "type": "startup",
            "model": settings.OPENAI_MODEL,
            "vocabulary_version": vocabulary().version,
            "relevance_check": settings.ENABLE_RELEVANCE_CHECK,
            "instructions_hash": _short_hash(SYSTEM_INSTRUCTIONS),
        }
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    startup_check()
    yield


app = FastAPI(title="VT Woods Chat", lifespan=lifespan)


@app.middleware("http")
async def frame_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["Content-Security-Policy"] = f"frame-ancestors {settings.FRAME_ANCESTORS}"
    response.headers["X-Frame-Options"] = "ALLOWALL"
    return response


def require_api_key(request: Request) -> None:
    if not settings.API_KEY:
        return
    if request.headers.get("x-api-key", "") != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Unauthorized")


def _resolve_request_id(request: Request) -> str:
    return request.headers.get("x-request-id") or uuid.uuid4().hex


def _short_hash(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:12]


def _question_metadata(question: str) -> dict[str, str | int]:
    clean = question.strip()
    return {"q_hash": _short_hash(clean), "q_len": len(clean)}


def _error_detail_metadata(detail: object) -> dict[str, str | int]:
    raw = str(detail)
    return {"detail_hash": _short_hash(raw), "detail_len": len(raw)}


def _log_chat_start(request_id: str, question: str, want_citations: bool) -> None:
    log_event(
        {
            "type": "chat_start",
            "request_id": request_id,
            "want_citations": want_citations,
            **_question_metadata(question),
        }
    )


def _log_chat_result(request_id: str, question: str, result: ChatResponse) -> None:
    if result.success:
        log_event(
            {
                "type": "chat_success",
                "request_id": request_id,
                "citation_count": len(result.citations or []),
                **_question_metadata(question),
            }
        )
        return
    log_event(
        {
            "type": "chat_error",
            "request_id": request_id,
            "status_code": 500,
            **_question_metadata(question),
            **_error_detail_metadata(result.error),
        }
    )


def _log_chat_end(request_id: str, question: str, state: ChatState) -> None:
    total = time.time() - state.started
    observe_chat_latency(total)
    log_event(
        {
            "type": "chat_end",
            "request_id": request_id,
            "decision": state.decision,
            "total_sec": total,
            "relevance_sec": state.relevance_sec,
            "generate_sec": state.generate_sec,
            "relevance_verdict": state.relevance_verdict,
            **_question_metadata(question),
        }
    )


def _json_reply(result: ChatResponse) -> JSONResponse:
    return JSONResponse(
        status_code=200 if result.success else 500,
        content=result.model_dump(exclude_none=True),
    )


@app.get("/health", response_class=PlainTextResponse)
def health() -> str:
    return "ok"


@app.get("/metrics")
def metrics(_: None = Depends(require_api_key)) -> Response:
    return Response(content=render_metrics(), media_type=metrics_content_type())


@app.exception_handler(RequestValidationError)
async def chat_body_fallback(request: Request, exc: RequestValidationError):
    if request.url.path != "/chat":
        return await request_validation_exception_handler(request, exc)
    # A body that is not a JSON object carries no message.
    log_event({"type": "chat_invalid_body", "errors": len(exc.errors())})
    router = app.dependency_overrides.get(get_router, get_router)()
    return await run_in_threadpool(_run_chat, request, ChatRequest(), router)


@app.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
def chat(
    request: Request,
    req: Optional[ChatRequest] = None,
    router: Router = Depends(get_router),
) -> JSONResponse:
    return _run_chat(request, req or ChatRequest(), router)


def _run_chat(request: Request, req: ChatRequest, router: Router) -> JSONResponse:
    request_id = _resolve_request_id(request)
    state = ChatState(started=time.time(), request_id=request_id)
    message = req.message

    inc_chat_requests()
    _log_chat_start(request_id, message, req.want_citations)

    try:
        decision = router.classify(message)
        state.decision = decision.value
        inc_scope_decision(decision.value)
        log_event(
            {
                "type": "chat_decision",
                "request_id": request_id,
                "decision": decision.value,
            }
        )
        result = router.route(decision, message, req.want_citations, state)
        _log_chat_result(request_id, message, result)
        return _json_reply(result)
    except Exception as exc:
        inc_chat_error(type(exc).__name__)
        log_event(
            {
                "type": "chat_error",
                "request_id": request_id,
                "status_code": 500,
                "error_type": type(exc).__name__,
                **_question_metadata(message),
                **_error_detail_metadata(exc),
            }
        )
        return _json_reply(ChatResponse(success=False, error="Internal server error"))
    finally:
        _log_chat_end(request_id, message, state)


def main() -> None:
    uvicorn.run(
        "vtwoods.__main__:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=False,
    )


if __name__ == "__main__":
    main()

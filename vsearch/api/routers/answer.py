"""Answer synthesis endpoints.

Routes
------
POST /answer           Body: {"prompt": "...", "previousMessages": [...]}
POST /answer/stream    Same body; Server-Sent Events token stream

``/answer`` returns::

    {"content": "...", "metadata": {"model": "...", "timestamp": "...",
                                    "promptTokens": 120, "completionTokens": 80}}

``/answer/stream`` frames::

    data: {"event": "token",  "text": " ..."}
    data: {"event": "done"}
    data: {"event": "error",  "detail": "..."}
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator

from fastapi import APIRouter
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from vsearch.synthesis import (
    answer_metadata,
    describe_synthesis_error,
    synthesize,
    synthesize_stream,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class AnswerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: Any = None
    previous_messages: list[dict[str, Any]] = Field(
        default_factory=list, alias="previousMessages"
    )


def _valid_prompt(body: AnswerRequest) -> bool:
    return isinstance(body.prompt, str) and bool(body.prompt.strip())


def _history(body: AnswerRequest) -> list[dict[str, str]]:
    return [
        {"role": str(m.get("role", "user")), "content": str(m.get("content", ""))}
        for m in body.previous_messages
    ]


def _sse(payload: dict[str, Any]) -> str:
    """Format a payload dict as a single SSE ``data:`` line."""
    return f"data: {json.dumps(payload)}\n\n"


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("")
async def answer_endpoint(body: AnswerRequest) -> JSONResponse:
    """Answer a prompt (normally built from sources) in one response."""
    if not _valid_prompt(body):
        return JSONResponse(status_code=400, content={"error": "Invalid prompt provided"})

    try:
        content = await synthesize(body.prompt, _history(body))
    except Exception as exc:  # noqa: BLE001
        print(f"[api] /answer failed: {exc!r}")
        return JSONResponse(
            status_code=500, content={"error": describe_synthesis_error(exc)}
        )

    return JSONResponse(
        content={"content": content, "metadata": answer_metadata(body.prompt, content)}
    )


@router.api_route("", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def answer_method_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=405, content={"error": "Method not allowed"}, headers={"Allow": "POST"}
    )


@router.post("/stream")
async def answer_stream_endpoint(body: AnswerRequest) -> Any:
    """Stream the answer as SSE token frames followed by ``done``."""
    if not _valid_prompt(body):
        return JSONResponse(status_code=400, content={"error": "Invalid prompt provided"})

    return StreamingResponse(
        _answer_sse_generator(body.prompt, _history(body)),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


# ---------------------------------------------------------------------------
# SSE generator
# ---------------------------------------------------------------------------

async def _answer_sse_generator(
    prompt: str,
    history: list[dict[str, str]],
) -> AsyncIterator[str]:
    try:
        async for text in synthesize_stream(prompt, history):
            yield _sse({"event": "token", "text": text})
        yield _sse({"event": "done"})
    except Exception as exc:  # noqa: BLE001
        print(f"[api] /answer/stream failed: {exc!r}")
        yield _sse({"event": "error", "detail": describe_synthesis_error(exc)})

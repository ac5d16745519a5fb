"""Related-query generation endpoint.

Routes
------
POST /queries    Body: {"query": "..."}  →  {"queries": ["...", "...", "..."]}
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from vsearch.synthesis import describe_synthesis_error, generate_related_queries

router = APIRouter()


class QueriesRequest(BaseModel):
    query: Any = None


@router.post("")
async def queries_endpoint(body: QueriesRequest) -> JSONResponse:
    """Suggest up to three search queries related to ``query``."""
    if not isinstance(body.query, str) or not body.query.strip():
        return JSONResponse(status_code=400, content={"error": "Query is required"})

    try:
        queries = await generate_related_queries(body.query.strip())
    except Exception as exc:  # noqa: BLE001
        print(f"[api] /queries failed: {exc!r}")
        return JSONResponse(
            status_code=500, content={"error": describe_synthesis_error(exc)}
        )
    return JSONResponse(content={"queries": queries})

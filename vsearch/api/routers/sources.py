"""Sources endpoint.

Routes
------
POST /sources    Body: {"query": "...", "searchEngine": "all", "sourceCount": 4}

Responses always carry a ``sources`` list so clients can render uniformly::

    200  {"sources": [...], "metadata": {"engine": "google+bing", ...}}
    400  {"sources": [], "error": "Invalid query provided"}
    405  {"sources": [], "error": "Method not allowed"}
    500  {"sources": [], "error": "Failed to fetch sources. Please try again."}
    504  {"sources": [], "error": "..."}   (settings.sources_request_timeout)
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from vsearch.config import settings
from vsearch.pipeline import InvalidQueryError, search_sources

router = APIRouter()

GENERIC_ERROR = "Failed to fetch sources. Please try again."
TIMEOUT_ERROR = "The search took too long to complete. Please try again."


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class SourcesRequest(BaseModel):
    """Fields are loosely typed; validation happens in ``search_sources``."""

    model_config = ConfigDict(populate_by_name=True)

    query: Any = None
    search_engine: Any = Field("all", alias="searchEngine")
    source_count: Any = Field(settings.default_source_count, alias="sourceCount")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"sources": [], "error": message})


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("")
async def sources_endpoint(body: SourcesRequest) -> JSONResponse:
    """Discover, scrape and rank sources for a query."""
    timeout = settings.sources_request_timeout or None
    try:
        result = await asyncio.wait_for(
            search_sources(body.query, body.search_engine, body.source_count),
            timeout=timeout,
        )
    except InvalidQueryError as exc:
        return error_response(400, str(exc))
    except asyncio.TimeoutError:
        print(f"[api] /sources timed out after {timeout}s")
        return error_response(504, TIMEOUT_ERROR)
    except Exception as exc:  # noqa: BLE001
        print(f"[api] /sources failed: {exc!r}")
        return error_response(500, GENERIC_ERROR)
    return JSONResponse(content=result.to_dict())


@router.api_route("", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def sources_method_not_allowed() -> JSONResponse:
    response = error_response(405, "Method not allowed")
    response.headers["Allow"] = "POST"
    return response

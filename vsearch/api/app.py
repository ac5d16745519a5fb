"""FastAPI application factory.

Routers
-------
All endpoint groups are mounted under their respective path prefix:

    /sources   Multi-engine link discovery, scraping and ranking
    /answer    LLM answer synthesis (JSON or SSE streaming)
    /queries   Related search-query generation

Malformed request bodies on ``/sources`` are answered with the same
``{"sources": [], "error": ...}`` shape as any other invalid query.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vsearch import __version__
from vsearch.api.routers import answer as answer_router
from vsearch.api.routers import queries as queries_router
from vsearch.api.routers import sources as sources_router


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    if request.url.path.rstrip("/") == "/sources":
        return sources_router.error_response(400, "Invalid query provided")
    return await request_validation_exception_handler(request, exc)


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="VSearch API",
        description=(
            "REST interface for VSearch: scrapes Google, Bing and DuckDuckGo "
            "result pages, extracts readable text from the linked pages, and "
            "synthesises cited answers with a chat model."
        ),
        version=__version__,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(sources_router.router, prefix="/sources", tags=["sources"])
    app.include_router(answer_router.router, prefix="/answer", tags=["answer"])
    app.include_router(queries_router.router, prefix="/queries", tags=["queries"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn vsearch.api.app:app --reload
app = create_app()

"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from vsearch.api import app

    uvicorn vsearch.api:app --reload
"""

from vsearch.api.app import app

__all__ = ["app"]

"""Data models for the source-acquisition pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class FetchResult:
    """The HTTP response for a single URL fetch."""

    url: str
    status_code: int
    content_type: str
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class ExtractedContent:
    """Readable text and title produced by one extraction strategy."""

    text: str
    title: str


@dataclass(frozen=True)
class Source:
    """A unit of evidence handed to answer synthesis.

    ``fallback`` marks synthetic sources built when nothing could be
    extracted; it is internal and never serialised.
    """

    url: str
    text: str
    title: Optional[str] = None
    favicon: Optional[str] = None
    timestamp: Optional[str] = None
    fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"url": self.url, "text": self.text}
        for key in ("title", "favicon", "timestamp"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass(frozen=True)
class SearchMetadata:
    engine: str
    total_results: Optional[int] = None
    search_time: Optional[int] = None
    filtered_sources: Optional[int] = None
    fallback: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"engine": self.engine}
        if self.total_results is not None:
            data["totalResults"] = self.total_results
        if self.search_time is not None:
            data["searchTime"] = self.search_time
        if self.filtered_sources is not None:
            data["filteredSources"] = self.filtered_sources
        if self.fallback is not None:
            data["fallback"] = self.fallback
        return data


@dataclass(frozen=True)
class SearchResultSet:
    """Terminal output of a sources query."""

    metadata: SearchMetadata
    sources: List[Source] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sources": [s.to_dict() for s in self.sources],
            "metadata": self.metadata.to_dict(),
        }

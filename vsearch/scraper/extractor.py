"""Content extraction: turns fetched HTML into an :class:`ExtractedContent`.

Extraction is an ordered chain of strategies sharing one signature,
``(html, url) -> ExtractedContent | None``.  :func:`extract` walks the chain
and returns the first result with at least ``MIN_CONTENT_CHARS`` of text:

1. ``extract_with_readability``: trafilatura's boilerplate removal.
2. ``extract_with_selectors``: site-aware CSS selectors, then the
   largest-text-blocks heuristic.
3. ``extract_with_simplified``: strip chrome, keep paragraphs.

Every strategy is deterministic for a given ``(html, url)``.
"""

from __future__ import annotations

import html as html_lib
import re
from typing import Callable, List, Optional, Sequence
from urllib.parse import unquote, urlparse

import trafilatura
from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from vsearch.config import settings
from vsearch.scraper.models import ExtractedContent

# Anything shorter is treated as "nothing extracted".
MIN_CONTENT_CHARS = 200

ExtractionStrategy = Callable[[str, str], Optional[ExtractedContent]]

# ---------------------------------------------------------------------------
# Site-aware selectors
# ---------------------------------------------------------------------------
_SITE_SELECTORS: list[tuple[tuple[str, ...], list[str]]] = [
    (("wikipedia.org",), ["#mw-content-text", ".mw-parser-output"]),
    (("github.com",), [".markdown-body", "article.markdown-body", ".repository-content"]),
    (("stackoverflow.com",), [".post-text", ".s-prose", ".answer"]),
    (
        ("news", "bbc", "cnn", "nytimes"),
        [".article-body", ".story-body", ".article__content", '[itemprop="articleBody"]'],
    ),
]

_GENERIC_SELECTORS = [
    "main",
    "article",
    '[role="main"]',
    "#content",
    ".content",
    ".post-content",
    ".entry-content",
    ".article-content",
    ".post-body",
    ".page-content",
    ".main-content",
    ".body-content",
]

_NON_CONTENT_TAGS = ["script", "style", "noscript", "template"]
_BLOCK_SKIP_TAGS = frozenset({"script", "style", "noscript", "template", "nav", "header", "footer"})
_SIMPLIFIED_STRIP = (
    "script, style, noscript, nav, footer, header, aside, menu, "
    ".sidebar, .footer, .header, .navigation, .nav, .menu, .comments, .ads, .ad"
)

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
_EXTENSION_RE = re.compile(r"\.\w+$")


# ---------------------------------------------------------------------------
# Titles
# ---------------------------------------------------------------------------

def _extract_title(html: str) -> str:
    """Return the text content of the first ``<title>`` tag, or empty string."""
    match = _TITLE_RE.search(html)
    if match:
        return " ".join(html_lib.unescape(match.group(1)).split())
    return ""


def title_from_url(url: str) -> str:
    """Build a readable title from *url*.

    ``https://www.example.com/blog/rust_ownership-guide.html`` becomes
    ``"rust ownership guide - example.com"``; a bare host yields just the
    domain.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    host = (parsed.hostname or "").lower()
    if not host:
        return url
    domain = host[4:] if host.startswith("www.") else host

    parts = [p for p in parsed.path.split("/") if p]
    last = unquote(parts[-1]) if parts else ""
    cleaned = _EXTENSION_RE.sub("", re.sub(r"[-_]", " ", last)).strip()
    cleaned = " ".join(cleaned.split())

    return f"{cleaned} - {domain}" if cleaned else domain


def _title_for(html: str, url: str) -> str:
    return _extract_title(html) or title_from_url(url)


# ---------------------------------------------------------------------------
# DOM helpers
# ---------------------------------------------------------------------------

def _soup(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NON_CONTENT_TAGS):
        tag.decompose()
    return soup


def _direct_text(element: Tag) -> str:
    """Text of *element*'s own text nodes, excluding descendants."""
    return "".join(
        str(child)
        for child in element.children
        if isinstance(child, NavigableString) and not isinstance(child, PreformattedString)
    ).strip()


def find_largest_text_blocks(soup: BeautifulSoup, limit: int = 10) -> str:
    """Join the *limit* elements with the most direct text (over 50 chars).

    The tree is walked in document order; ties keep that order.
    """
    root = soup.body or soup
    blocks: list[tuple[int, Tag]] = []

    stack: list[Tag] = [root]
    while stack:
        element = stack.pop()
        if element.name in _BLOCK_SKIP_TAGS:
            continue
        direct = _direct_text(element)
        if len(direct) > 50:
            blocks.append((len(direct), element))
        children = [c for c in element.children if isinstance(c, Tag)]
        stack.extend(reversed(children))

    blocks.sort(key=lambda item: item[0], reverse=True)
    texts = (el.get_text(" ", strip=True) for _, el in blocks[:limit])
    return "\n\n".join(text for text in texts if text)


def _selectors_for(url: str) -> list[str]:
    host = (urlparse(url).hostname or "").lower()
    for markers, selectors in _SITE_SELECTORS:
        if any(marker in host for marker in markers):
            return selectors
    return _GENERIC_SELECTORS


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def extract_with_readability(html: str, url: str) -> Optional[ExtractedContent]:
    """Primary path for article-like pages."""
    text = trafilatura.extract(
        html,
        url=url,
        include_comments=False,
        include_links=False,
        include_images=False,
        include_tables=True,
    )
    if not text or len(text) < MIN_CONTENT_CHARS:
        return None
    return ExtractedContent(text=text, title=_title_for(html, url))


def extract_with_selectors(html: str, url: str) -> Optional[ExtractedContent]:
    """Try hostname-specific selectors, then the largest-text-blocks heuristic."""
    soup = _soup(html)

    for selector in _selectors_for(url):
        elements = soup.select(selector)
        if not elements:
            continue
        texts = (el.get_text(" ", strip=True) for el in elements)
        combined = "\n\n".join(text for text in texts if text)
        if len(combined) >= MIN_CONTENT_CHARS:
            return ExtractedContent(text=combined, title=_title_for(html, url))

    blocks = find_largest_text_blocks(soup)
    if len(blocks) >= MIN_CONTENT_CHARS:
        return ExtractedContent(text=blocks, title=_title_for(html, url))
    return None


def extract_with_simplified(html: str, url: str) -> Optional[ExtractedContent]:
    """Last resort: drop page chrome and keep substantial paragraphs."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.select(_SIMPLIFIED_STRIP):
        tag.decompose()

    title = _title_for(html, url)

    paragraphs = [
        text
        for text in (p.get_text(" ", strip=True) for p in soup.find_all("p"))
        if len(text) > 20
    ]
    if paragraphs:
        return ExtractedContent(text="\n\n".join(paragraphs), title=title)

    body = soup.body or soup
    lines = [" ".join(line.split()) for line in body.get_text("\n").splitlines()]
    cleaned = "\n\n".join(line for line in lines if len(line) > 20)
    if len(cleaned) >= MIN_CONTENT_CHARS:
        return ExtractedContent(text=cleaned, title=title)
    return None


STRATEGIES: tuple[ExtractionStrategy, ...] = (
    extract_with_readability,
    extract_with_selectors,
    extract_with_simplified,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract(
    html: str,
    url: str,
    strategies: Sequence[ExtractionStrategy] = STRATEGIES,
) -> Optional[ExtractedContent]:
    """Run *strategies* in order and return the first sufficient result.

    A strategy that raises is logged and skipped.  Returns ``None`` when no
    strategy produced at least ``MIN_CONTENT_CHARS`` characters.
    """
    for strategy in strategies:
        try:
            content = strategy(html, url)
        except Exception as exc:  # noqa: BLE001
            print(f"[extract] {strategy.__name__} failed for {url}: {exc!r:.120}")
            continue
        if content is not None and len(content.text) >= MIN_CONTENT_CHARS:
            return content
    return None


def process_extracted_text(text: str, max_chars: Optional[int] = None) -> str:
    """Normalise extracted text for downstream use.

    Whitespace inside each paragraph is collapsed, empty and exact-duplicate
    paragraphs are dropped, and the result is cut to *max_chars* (default
    ``settings.max_source_chars``) with a trailing ``…``.
    """
    limit = settings.max_source_chars if max_chars is None else max_chars

    seen: set[str] = set()
    paragraphs: List[str] = []
    for chunk in _PARAGRAPH_SPLIT_RE.split(text):
        paragraph = " ".join(chunk.split())
        if paragraph and paragraph not in seen:
            seen.add(paragraph)
            paragraphs.append(paragraph)

    processed = "\n\n".join(paragraphs)
    if len(processed) > limit:
        processed = processed[:limit] + "…"
    return processed

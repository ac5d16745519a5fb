"""HTTP fetch client with per-attempt timeouts, retry/backoff and UA rotation.

``fetch`` is the single network entry point used by link discovery and by
the scraper.  Attempt *k* (0-based) is given ``timeout * (k + 1)`` seconds and
is preceded by a ``retry_delay * 2 ** (k - 1)`` second pause, so a slow host
gets progressively more room while a flaky one is not hammered.

Retry policy
------------
- 429 and 5xx responses are retried.
- Transport errors (connection reset, DNS hiccup, ...) are retried.
- Timeouts and requests that can never succeed (bad scheme, malformed URL,
  redirect loops) fail immediately.
- Every other response, including 4xx, is returned to the caller as-is.
"""

from __future__ import annotations

import asyncio
import random
from typing import Optional
from urllib.parse import urlparse

import httpx

from vsearch.config import settings
from vsearch.scraper.models import FetchResult

# ---------------------------------------------------------------------------
# Browser fingerprints
# ---------------------------------------------------------------------------
USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) CriOS/124.0.6367.88 Mobile/15E148 Safari/604.1",
)

_BASE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

_RETRY_STATUSES = frozenset({429})


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class FetchError(Exception):
    """Base class for every failure raised by :func:`fetch`."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url


class FetchTimeout(FetchError):
    """The attempt exceeded its timeout budget."""


class FetchAborted(FetchError):
    """The request was refused before it could reach the server."""


class FetchHTTPError(FetchError):
    """The server kept answering 429/5xx until retries ran out."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(url, f"HTTP error {status_code}")
        self.status_code = status_code


class FetchNetworkError(FetchError):
    """A transport error persisted across every attempt."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def random_user_agent() -> str:
    """Return a user agent picked uniformly from :data:`USER_AGENTS`."""
    return random.choice(USER_AGENTS)


def browser_headers(extra: Optional[dict[str, str]] = None) -> dict[str, str]:
    """Return browser-like request headers; keys in *extra* win."""
    headers = {"User-Agent": random_user_agent(), **_BASE_HEADERS}
    if extra:
        headers.update(extra)
    return headers


def is_valid_url(url: str) -> bool:
    """Return ``True`` if *url* is an absolute http(s) URL with a host."""
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.hostname)
    except ValueError:
        return False


def hostname(url: str) -> str:
    """Lower-cased host of *url*, or ``""`` when it cannot be parsed."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def registered_domain(url: str) -> str:
    """Host of *url* without a leading ``www.``."""
    host = hostname(url)
    if host.startswith("www."):
        host = host[4:]
    return host


def _should_retry(status_code: int) -> bool:
    return status_code in _RETRY_STATUSES or status_code >= 500


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def fetch(
    url: str,
    headers: Optional[dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> FetchResult:
    """GET *url* and return a :class:`FetchResult`.

    Args:
        url: Absolute URL to fetch.
        headers: Extra request headers (e.g. ``Referer``) merged over the
            browser defaults.
        timeout: Base timeout in seconds for the first attempt; defaults to
            ``settings.fetch_timeout``.

    Raises:
        FetchTimeout: An attempt timed out.
        FetchAborted: The request could not be sent at all.
        FetchHTTPError: 429/5xx responses on every attempt.
        FetchNetworkError: Transport errors on every attempt.
    """
    base_timeout = settings.fetch_timeout if timeout is None else timeout
    attempts = max(settings.fetch_max_retries, 1)
    last_error: Optional[FetchError] = None

    for attempt in range(attempts):
        if attempt > 0:
            await asyncio.sleep(settings.fetch_retry_delay * (2 ** (attempt - 1)))
            print(f"[fetch] Retry attempt {attempt + 1} for {url}")

        try:
            async with httpx.AsyncClient(
                timeout=base_timeout * (attempt + 1),
                follow_redirects=True,
            ) as client:
                response = await client.get(url, headers=browser_headers(headers))
        except httpx.TimeoutException as exc:
            raise FetchTimeout(url, f"timed out: {exc!r}") from exc
        except (httpx.UnsupportedProtocol, httpx.InvalidURL, httpx.TooManyRedirects) as exc:
            raise FetchAborted(url, f"request refused: {exc}") from exc
        except httpx.RequestError as exc:
            last_error = FetchNetworkError(url, f"network error: {exc!r}")
            continue

        if _should_retry(response.status_code):
            last_error = FetchHTTPError(url, response.status_code)
            continue

        return FetchResult(
            url=str(response.url),
            status_code=response.status_code,
            content_type=response.headers.get("content-type", ""),
            text=response.text,
        )

    raise last_error or FetchNetworkError(url, f"failed after {attempts} attempts")

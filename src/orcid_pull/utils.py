"""Shared utilities for the ORCID to MediaWiki publication sync.

This module provides common functionality used by:
- orcid_pull.orcid (registry client)
- orcid_pull.crossref (author lookups)
- orcid_pull.mediawiki (wiki publisher)

Includes the exception hierarchy, identifier parsing, URL resolution,
title normalization, DOI handling and HTTP infrastructure with rate limiting.
"""

from __future__ import annotations

import html
import logging
import re
import threading
import time
from collections import deque
from typing import Any
from urllib.parse import urljoin, urlparse

import httpx

# ------------- Constants -------------

ORCID_API = "https://pub.orcid.org/v2.1"
CROSSREF_API = "https://api.crossref.org"
DOI_RESOLVER = "http://doi.org"

USER_AGENT = "orcid-pull/0.3 (+https://www.mediawiki.org/wiki/API:Main_page)"

ORCID_ID_RE = re.compile(r"^\d{4}-\d{4}-\d{4}-\d{3}[\dX]$", re.IGNORECASE)
_DOI_PREFIX_RE = re.compile(r"^https?://(dx\.)?doi\.org/", re.IGNORECASE)


# ------------- Errors -------------


class OrcidPullError(Exception):
    """Base class for all errors raised by orcid_pull."""


class InvalidIdentifier(OrcidPullError, ValueError):
    """A researcher identifier could not be parsed."""


class MalformedData(OrcidPullError, ValueError):
    """Upstream data that must be a URL is not parseable as one."""


class CitationParseError(OrcidPullError, ValueError):
    """Free-text or BibTeX citation did not yield an author string."""


class UpstreamError(OrcidPullError):
    """Non-2xx or undecodable response from a remote service."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url
        self.body = body

    def __str__(self) -> str:
        msg = super().__str__()
        if self.status_code is not None:
            msg = f"{msg} (status {self.status_code}, url {self.url}, response: {self.body[:300]!r})"
        return msg


class WikiError(UpstreamError):
    """The wiki answered with an API error or a failed action result."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


# ------------- Identifiers & URLs -------------


def parse_orcid_id(raw: str) -> str:
    """Extract an ORCID identifier from a bare id, a path or a URL.

    >>> parse_orcid_id("orcid.org/0000-0003-1928-5141")
    '0000-0003-1928-5141'
    """
    s = (raw or "").strip()
    if ORCID_ID_RE.match(s):
        return s
    if not s.startswith("http"):
        s = "https://" + s
    try:
        uri = urlparse(s)
    except ValueError as e:
        raise InvalidIdentifier(f"cannot parse identifier {raw!r}: {e}") from e
    orcid_id = uri.path.strip("/")
    if not orcid_id:
        raise InvalidIdentifier(f"no identifier in {raw!r}")
    return orcid_id


def api_base(url: str) -> str:
    """Normalize an API base URL to end with exactly one slash."""
    return url.rstrip("/") + "/"


def resolve_relative(base: str, relative: str) -> str:
    """Resolve a relative reference against a base URL."""
    return urljoin(base, relative)


# ------------- Text Normalization -------------


def normalize_title(title: str) -> str:
    """Lowercase a title and drop spaces, parentheses and hyphens.

    Titles of the same work often differ only in these characters, so the
    normalization stays deliberately narrow.
    """
    t = (title or "").lower()
    for ch in (" ", "(", ")", "-"):
        t = t.replace(ch, "")
    return t


def unescape_entities(text: str) -> str:
    """Decode HTML entities (``&lt;`` -> ``<`` etc.)."""
    return html.unescape(text or "")


# ------------- DOI Utilities -------------


def doi_url(doi: str) -> str:
    """Build a resolver URL for a bare DOI."""
    return f"{DOI_RESOLVER}/{doi}"


def doi_from_url(url: str | None) -> str | None:
    """Strip the resolver prefix from a DOI URL."""
    if not url:
        return None
    d = _DOI_PREFIX_RE.sub("", url.strip())
    d = d.strip("/")
    return d or None


def normalize_url(url: str) -> str:
    """Decode entities in a URL and re-serialize it in canonical form.

    Raises:
        MalformedData: if the URL cannot be parsed at all. Relative references
            such as ``doi.org/10.1000/x`` are kept as they are.
    """
    decoded = unescape_entities(url).strip()
    try:
        parsed = httpx.URL(decoded)
    except httpx.InvalidURL as e:
        raise MalformedData(f"invalid URL {decoded!r}: {e}") from e
    return str(parsed)


# ------------- Rate Limiting -------------


class RateLimiter:
    """Thread-safe limiter allowing ``max_requests`` requests in any ``window`` seconds."""

    def __init__(self, max_requests: int, window: float = 60.0) -> None:
        self.max_requests = max(max_requests, 1)
        self.window = window
        self.sent: deque[float] = deque()
        self._lock = threading.Lock()

    def _expire(self, now: float) -> None:
        while self.sent and now - self.sent[0] >= self.window:
            self.sent.popleft()

    def wait(self) -> None:
        """Block until a request fits into the window, then record it."""
        with self._lock:
            now = time.monotonic()
            self._expire(now)
            if len(self.sent) >= self.max_requests:
                time.sleep(self.window - (now - self.sent[0]))
                now = time.monotonic()
                self._expire(now)
            self.sent.append(now)


class RateLimiterRegistry:
    """Manages per-service rate limiters."""

    # service -> (requests, window in seconds)
    DEFAULT_LIMITS: dict[str, tuple[int, float]] = {
        "orcid": (24, 1.0),  # ORCID public API: 24 req/s
        "crossref": (50, 1.0),  # Crossref polite pool: 50 req/s
        "mediawiki": (300, 60.0),
    }
    FALLBACK_LIMIT = (30, 60.0)

    def __init__(self, limits: dict[str, tuple[int, float]] | None = None) -> None:
        self._limits = {**self.DEFAULT_LIMITS, **(limits or {})}
        self._limiters: dict[str, RateLimiter] = {}
        self._lock = threading.Lock()

    def get(self, service: str) -> RateLimiter:
        """Get or create rate limiter for service."""
        with self._lock:
            if service not in self._limiters:
                max_requests, window = self._limits.get(service, self.FALLBACK_LIMIT)
                self._limiters[service] = RateLimiter(max_requests, window)
            return self._limiters[service]

    def wait(self, service: str) -> None:
        self.get(service).wait()


# ------------- HTTP Client -------------


class HttpClient:
    """HTTP client with per-service rate limiting and uniform error reporting.

    Requests are never retried here; callers decide what a failure means
    for them.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = USER_AGENT,
        rate_limiter: RateLimiterRegistry | None = None,
        transport: httpx.BaseTransport | None = None,
        logger: logging.Logger | None = None,
    ):
        """Initialize HTTP client.

        Args:
            timeout: Request timeout in seconds
            user_agent: User-Agent header value
            rate_limiter: Registry of per-service limiters (a default one is created if None)
            transport: Optional httpx transport, mainly for tests
            logger: Logger for request tracing
        """
        self.client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent},
            follow_redirects=True,
            transport=transport,
        )
        self.rate_limiter = rate_limiter or RateLimiterRegistry()
        self.logger = logger or logging.getLogger(__name__)

    def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        accept: str | None = None,
        service: str | None = None,
    ) -> httpx.Response:
        """Make an HTTP request and return a 2xx response.

        Raises:
            UpstreamError: on transport failures and non-2xx statuses.
        """
        if service:
            self.rate_limiter.wait(service)
        headers = {"Accept": accept} if accept else {}
        self.logger.debug("%s %s", method, url)
        try:
            resp = self.client.request(method, url, params=params, data=data, headers=headers)
        except httpx.HTTPError as e:
            raise UpstreamError(f"{method} {url} failed: {e}") from e
        if not resp.is_success:
            raise UpstreamError(
                f"{method} {url} bad response",
                status_code=resp.status_code,
                url=str(resp.request.url),
                body=resp.text,
            )
        return resp

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def close(self) -> None:
        self.client.close()

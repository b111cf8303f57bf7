"""Crossref lookups used to backfill missing authors."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from orcid_pull.utils import CROSSREF_API, HttpClient, UpstreamError, api_base, resolve_relative


def author_name(author: dict[str, Any]) -> str:
    """Display name of a Crossref author object ("Given Family")."""
    given = (author.get("given") or "").strip()
    family = (author.get("family") or "").strip()
    if given or family:
        return " ".join(p for p in (given, family) if p)
    return (author.get("name") or author.get("literal") or "").strip()


def crossref_message_to_authors(msg: dict[str, Any]) -> list[str]:
    names = [author_name(a) for a in msg.get("author") or []]
    return [n for n in names if n]


class CrossrefClient:
    """Minimal Crossref REST client: authors of a work by DOI."""

    def __init__(self, http: HttpClient, base_url: str = CROSSREF_API, logger: logging.Logger | None = None):
        self.http = http
        self.base_url = api_base(base_url)
        self.logger = logger or logging.getLogger(__name__)

    def work_url(self, doi: str) -> str:
        return resolve_relative(self.base_url, f"works/{quote(doi, safe='/')}")

    def lookup_authors(self, doi: str) -> list[str]:
        """Return the ordered author names registered for ``doi``.

        Raises:
            UpstreamError: on a non-2xx response or an undecodable body.
        """
        url = self.work_url(doi)
        resp = self.http.get(url, accept="application/json", service="crossref")
        try:
            msg = resp.json().get("message") or {}
        except ValueError as e:
            raise UpstreamError(f"undecodable Crossref response for {doi}: {e}", url=url) from e
        return crossref_message_to_authors(msg)

"""orcid_pull - Publish ORCID publication lists on MediaWiki pages.

This package provides tools for:
- Fetching the works of a researcher from the ORCID public API
- Backfilling missing authors from Crossref and citation strings
- Grouping works by category and year and rendering them as wikitext
- Replacing a section of MediaWiki user pages with the rendered list

Example usage:
    from orcid_pull import HttpClient, OrcidClient, fetch_works, DEFAULT_MODIFIERS

    http = HttpClient()
    works = fetch_works(OrcidClient(http), "0000-0002-0183-1282", modifiers=DEFAULT_MODIFIERS)
"""

from orcid_pull._version import __version__
from orcid_pull.backfill import AuthorBackfiller
from orcid_pull.citations import citation_contributors, parse_authors_bibtex, parse_authors_ieee
from orcid_pull.config import SyncConfig
from orcid_pull.crossref import CrossrefClient
from orcid_pull.grouping import CATEGORIES, group_by_category_and_year
from orcid_pull.mediawiki import WikiClient
from orcid_pull.modifiers import DEFAULT_MODIFIERS, update_contributors_line, update_external_ids_url, update_markup
from orcid_pull.orcid import (
    Citation,
    Contributor,
    ExternalID,
    OrcidClient,
    Work,
    dedupe_by_title,
    fetch_works,
    sort_by_year,
)
from orcid_pull.render import render_grouped
from orcid_pull.snapshot import read_works, write_works
from orcid_pull.sync import PublicationSync, User, explore_users
from orcid_pull.utils import (
    CitationParseError,
    HttpClient,
    InvalidIdentifier,
    MalformedData,
    OrcidPullError,
    RateLimiterRegistry,
    UpstreamError,
    WikiError,
    normalize_title,
    parse_orcid_id,
    resolve_relative,
)

__all__ = [
    "__version__",
    # Data model
    "Citation",
    "Contributor",
    "ExternalID",
    "Work",
    "User",
    # Clients
    "HttpClient",
    "RateLimiterRegistry",
    "OrcidClient",
    "CrossrefClient",
    "WikiClient",
    # Pipeline
    "AuthorBackfiller",
    "PublicationSync",
    "SyncConfig",
    "DEFAULT_MODIFIERS",
    "CATEGORIES",
    "citation_contributors",
    "dedupe_by_title",
    "explore_users",
    "fetch_works",
    "group_by_category_and_year",
    "normalize_title",
    "parse_authors_bibtex",
    "parse_authors_ieee",
    "parse_orcid_id",
    "read_works",
    "render_grouped",
    "resolve_relative",
    "sort_by_year",
    "update_contributors_line",
    "update_external_ids_url",
    "update_markup",
    "write_works",
    # Errors
    "OrcidPullError",
    "InvalidIdentifier",
    "MalformedData",
    "CitationParseError",
    "UpstreamError",
    "WikiError",
]

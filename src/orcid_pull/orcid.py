"""ORCID registry client and the work data model.

Works are fetched in two stages: the summary listing of a researcher
(``{base}/{id}/works``) and then one detail document per summary. ORCID
answers with namespaced XML; elements are matched by local name so that
v2.x and v3.0 documents, as well as the snapshot files written by
:mod:`orcid_pull.snapshot`, all decode through the same functions.
"""

from __future__ import annotations

import concurrent.futures
import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from orcid_pull.utils import (
    ORCID_API,
    HttpClient,
    UpstreamError,
    api_base,
    normalize_title,
    resolve_relative,
)

ORCID_XML = "application/vnd.orcid+xml"

# Detail fetches in flight at once; each batch is joined before the next starts.
DETAIL_BATCH_SIZE = 20


# ------------- Data Model -------------


@dataclass
class Contributor:
    name: str


@dataclass
class ExternalID:
    type: str  # doi = Digital Object Identifier, eid = Scopus
    value: str = ""
    url: str = ""


@dataclass
class Citation:
    type: str  # formatted-ieee, bibtex, ...
    value: str = ""


@dataclass
class Work:
    """One publication record, from a summary or a detail document.

    ``doi_url`` and ``contributors_line`` do not belong to the ORCID schema;
    they are filled in by :mod:`orcid_pull.modifiers` for rendering.
    """

    title: str = ""
    path: str = ""
    created: datetime | None = None
    modified: datetime | None = None
    source_name: str = ""
    year: int = 0
    month: int = 0
    day: int = 0
    journal_title: str = ""
    work_type: str = ""
    url: str = ""
    citation: Citation | None = None
    external_ids: list[ExternalID] = field(default_factory=list)
    contributors: list[Contributor] = field(default_factory=list)
    doi_url: str = ""
    contributors_line: str = ""

    @property
    def normalized_title(self) -> str:
        return normalize_title(self.title)

    def external_id_value(self, id_type: str) -> str:
        """Return the value of the first external id of the given type."""
        for ext in self.external_ids:
            if ext.type == id_type:
                return ext.value
        return ""


WorksModifier = Callable[[list[Work]], None]


# ------------- XML Decoding -------------


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(elem: ET.Element | None, *names: str) -> ET.Element | None:
    """Walk down a path of local element names."""
    for name in names:
        if elem is None:
            return None
        elem = next((c for c in elem if _local(c.tag) == name), None)
    return elem


def _children(elem: ET.Element | None, name: str) -> list[ET.Element]:
    if elem is None:
        return []
    return [c for c in elem if _local(c.tag) == name]


def _text(elem: ET.Element | None, *names: str) -> str:
    node = _child(elem, *names)
    if node is None or node.text is None:
        return ""
    return node.text


def _int(elem: ET.Element | None, *names: str) -> int:
    raw = _text(elem, *names).strip()
    try:
        return int(raw) if raw else 0
    except ValueError:
        return 0


def _datetime(elem: ET.Element | None, name: str) -> datetime | None:
    raw = _text(elem, name).strip()
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def decode_work(elem: ET.Element) -> Work:
    """Decode a ``work``/``work-summary`` element into a :class:`Work`."""
    citation = None
    citation_elem = _child(elem, "citation")
    if citation_elem is not None:
        citation = Citation(type=_text(citation_elem, "citation-type"), value=_text(citation_elem, "citation-value"))

    external_ids = [
        ExternalID(
            type=_text(ext, "external-id-type"),
            value=_text(ext, "external-id-value"),
            url=_text(ext, "external-id-url"),
        )
        for ext in _children(_child(elem, "external-ids"), "external-id")
    ]

    contributors = [
        Contributor(name=_text(c, "credit-name")) for c in _children(_child(elem, "contributors"), "contributor")
    ]

    return Work(
        title=_text(elem, "title", "title"),
        path=elem.get("path", ""),
        created=_datetime(elem, "created-date"),
        modified=_datetime(elem, "last-modified-date"),
        source_name=_text(elem, "source", "source-name"),
        year=_int(elem, "publication-date", "year"),
        month=_int(elem, "publication-date", "month"),
        day=_int(elem, "publication-date", "day"),
        journal_title=_text(elem, "journal-title"),
        work_type=_text(elem, "type"),
        url=_text(elem, "url"),
        citation=citation,
        external_ids=external_ids,
        contributors=contributors,
        doi_url=_text(elem, "doi-url"),
        contributors_line=_text(elem, "contributors-line"),
    )


def _parse_xml(payload: str | bytes, url: str) -> ET.Element:
    try:
        return ET.fromstring(payload)
    except ET.ParseError as e:
        raise UpstreamError(f"malformed XML from {url}: {e}") from e


def decode_summaries(payload: str | bytes, url: str = "") -> list[Work]:
    """Decode a ``works`` listing into deduplicated work summaries."""
    root = _parse_xml(payload, url)
    if _local(root.tag) != "works":
        raise UpstreamError(f"unexpected root element <{_local(root.tag)}> from {url}")
    works = [decode_work(s) for group in _children(root, "group") for s in _children(group, "work-summary")]
    return dedupe_by_title(works)


def decode_detail(payload: str | bytes, url: str = "") -> Work:
    root = _parse_xml(payload, url)
    if _local(root.tag) != "work":
        raise UpstreamError(f"unexpected root element <{_local(root.tag)}> from {url}")
    return decode_work(root)


# ------------- Deduplication -------------


def dedupe_by_title(works: Iterable[Work]) -> list[Work]:
    """Keep the first work of every normalized title, preserving order.

    Checking by title, because the same publication is often registered
    several times with different kinds of external ids.
    """
    unique: list[Work] = []
    for w in works:
        key = w.normalized_title
        if any(key == u.normalized_title for u in unique):
            continue
        unique.append(w)
    return unique


def sort_by_year(works: Iterable[Work]) -> list[Work]:
    """Stable sort, newest year first."""
    return sorted(works, key=lambda w: -w.year)


# ------------- ORCID Client -------------


class OrcidClient:
    """Client for the ORCID public API (XML flavour)."""

    def __init__(self, http: HttpClient, base_url: str = ORCID_API, logger: logging.Logger | None = None):
        self.http = http
        self.base_url = api_base(base_url)
        self.logger = logger or logging.getLogger(__name__)

    def works_url(self, orcid_id: str) -> str:
        return resolve_relative(self.base_url, f"{orcid_id}/works")

    def detail_url(self, path: str) -> str:
        # detail paths come as "/{id}/work/{put-code}" and live beneath the API base
        return resolve_relative(self.base_url, path.lstrip("/"))

    def fetch_summaries(self, orcid_id: str) -> list[Work]:
        """Fetch the work summaries of a researcher.

        Raises:
            UpstreamError: on a non-2xx response or malformed XML.
        """
        url = self.works_url(orcid_id)
        resp = self.http.get(url, accept=ORCID_XML, service="orcid")
        return decode_summaries(resp.content, url)

    def fetch_detail(self, path: str) -> Work:
        url = self.detail_url(path)
        self.logger.debug("fetching %s", url)
        resp = self.http.get(url, accept=ORCID_XML, service="orcid")
        return decode_detail(resp.content, url)

    def fetch_all_details(self, summaries: Sequence[Work]) -> list[Work]:
        """Fetch the detail document of every summary.

        Failed items are logged and dropped. The order of the result follows
        completion order, not the order of ``summaries``.
        """
        works = fetch_in_batches(summaries, lambda s: self.fetch_detail(s.path), self.logger)
        if len(works) != len(summaries):
            self.logger.warning(
                "different amount of publications: %d summaries vs %d details", len(summaries), len(works)
            )
        return works


def fetch_in_batches(
    summaries: Sequence[Work],
    fetch: Callable[[Work], Work],
    logger: logging.Logger,
    batch_size: int = DETAIL_BATCH_SIZE,
) -> list[Work]:
    """Run ``fetch`` over ``summaries`` in barrier-joined batches of ``batch_size``."""
    works: list[Work] = []
    if not summaries:
        return works
    with concurrent.futures.ThreadPoolExecutor(max_workers=batch_size) as ex:
        for start in range(0, len(summaries), batch_size):
            batch = summaries[start : start + batch_size]
            future_to_summary = {ex.submit(fetch, s): s for s in batch}
            for fut in concurrent.futures.as_completed(future_to_summary):
                summary = future_to_summary[fut]
                try:
                    works.append(fut.result())
                except Exception as e:
                    logger.warning("detail fetch failed for %r (%s): %s", summary.title, summary.path, e)
    return works


def fetch_works(
    client: OrcidClient,
    orcid_id: str,
    logger: logging.Logger | None = None,
    modifiers: Sequence[WorksModifier] = (),
) -> list[Work]:
    """Download all works of a researcher, newest first, with ``modifiers`` applied in order."""
    logger = logger or logging.getLogger(__name__)
    logger.info("downloading works of %s via HTTP", orcid_id)
    summaries = client.fetch_summaries(orcid_id)
    works = sort_by_year(client.fetch_all_details(summaries))
    for mod in modifiers:
        mod(works)
    return works

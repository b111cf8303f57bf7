"""Snapshot files of fetched works.

A snapshot holds the works of one researcher as a sequence of top-level
``<work>`` elements (no enclosing root). The element names are the ORCID ones,
so :func:`orcid_pull.orcid.decode_work` reads snapshots back.
"""

from __future__ import annotations

import os
import tempfile
import time
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Sequence
from datetime import timedelta

from orcid_pull.orcid import Work, WorksModifier, decode_work

DEFAULT_MAX_AGE = timedelta(hours=23)  # obsolete 1 hour before the next daily run


def snapshot_path(directory: str, orcid_id: str) -> str:
    return os.path.join(directory, f"{orcid_id}.xml")


def is_fresh(path: str, max_age: timedelta = DEFAULT_MAX_AGE) -> bool:
    """True if ``path`` exists and was modified less than ``max_age`` ago."""
    try:
        mtime = os.path.getmtime(path)
    except OSError:
        return False
    return time.time() - mtime < max_age.total_seconds()


def _sub(parent: ET.Element, tag: str, text: str | None = None) -> ET.Element:
    elem = ET.SubElement(parent, tag)
    if text:
        elem.text = text
    return elem


def encode_work(work: Work) -> ET.Element:
    elem = ET.Element("work")
    if work.path:
        elem.set("path", work.path)
    if work.title:
        _sub(_sub(elem, "title"), "title", work.title)
    if work.created:
        _sub(elem, "created-date", work.created.isoformat())
    if work.modified:
        _sub(elem, "last-modified-date", work.modified.isoformat())
    if work.source_name:
        _sub(_sub(elem, "source"), "source-name", work.source_name)
    if work.year or work.month or work.day:
        date = _sub(elem, "publication-date")
        for tag, value in (("year", work.year), ("month", work.month), ("day", work.day)):
            if value:
                _sub(date, tag, str(value))
    if work.journal_title:
        _sub(elem, "journal-title", work.journal_title)
    if work.work_type:
        _sub(elem, "type", work.work_type)
    if work.url:
        _sub(elem, "url", work.url)
    if work.citation is not None:
        citation = _sub(elem, "citation")
        _sub(citation, "citation-type", work.citation.type)
        _sub(citation, "citation-value", work.citation.value)
    if work.external_ids:
        ids = _sub(elem, "external-ids")
        for ext in work.external_ids:
            ext_elem = _sub(ids, "external-id")
            _sub(ext_elem, "external-id-type", ext.type)
            _sub(ext_elem, "external-id-value", ext.value)
            _sub(ext_elem, "external-id-url", ext.url)
    if work.contributors:
        contributors = _sub(elem, "contributors")
        for c in work.contributors:
            _sub(_sub(contributors, "contributor"), "credit-name", c.name)
    if work.doi_url:
        _sub(elem, "doi-url", work.doi_url)
    if work.contributors_line:
        _sub(elem, "contributors-line", work.contributors_line)
    return elem


def dumps_works(works: Iterable[Work]) -> str:
    return "".join(ET.tostring(encode_work(w), encoding="unicode") + "\n" for w in works)


def loads_works(text: str) -> list[Work]:
    """Decode top-level ``<work>`` elements until the end of ``text``."""
    root = ET.fromstring(f"<snapshot>{text}</snapshot>")
    return [decode_work(elem) for elem in root]


def write_works(path: str, works: Sequence[Work]) -> None:
    """Write a snapshot atomically."""
    directory = os.path.dirname(path) or "."
    tmp = tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=directory, prefix=".tmp_works_")
    try:
        tmp.write(dumps_works(works))
        tmp.flush()
        os.fsync(tmp.fileno())
    finally:
        tmp.close()
    os.replace(tmp.name, path)


def read_works(path: str, modifiers: Sequence[WorksModifier] = ()) -> list[Work]:
    with open(path, encoding="utf-8") as f:
        works = loads_works(f.read())
    for mod in modifiers:
        mod(works)
    return works

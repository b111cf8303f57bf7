"""Shared fixtures for orcid_pull tests."""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx
import pytest

from orcid_pull import Citation, Contributor, ExternalID, HttpClient, RateLimiterRegistry, Work

ORCID_ID = "0000-0002-0183-1282"

WORKS_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<activities:works path="/{ORCID_ID}/works"
    xmlns:activities="http://www.orcid.org/ns/activities"
    xmlns:common="http://www.orcid.org/ns/common"
    xmlns:work="http://www.orcid.org/ns/work">
  <activities:group>
    <work:work-summary put-code="1" path="/{ORCID_ID}/work/1">
      <work:title><common:title>Deep Learning (Review)</common:title></work:title>
      <work:type>journal-article</work:type>
      <common:publication-date><common:year>2019</common:year></common:publication-date>
    </work:work-summary>
    <work:work-summary put-code="2" path="/{ORCID_ID}/work/2">
      <work:title><common:title>deep learning review</common:title></work:title>
      <work:type>journal-article</work:type>
      <common:publication-date><common:year>2019</common:year></common:publication-date>
    </work:work-summary>
  </activities:group>
  <activities:group>
    <work:work-summary put-code="3" path="/{ORCID_ID}/work/3">
      <work:title><common:title>Graph Methods</common:title></work:title>
      <work:type>conference-paper</work:type>
      <common:publication-date><common:year>2021</common:year></common:publication-date>
    </work:work-summary>
  </activities:group>
</activities:works>
"""

DETAIL_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<work:work put-code="1" path="/{ORCID_ID}/work/1"
    xmlns:common="http://www.orcid.org/ns/common"
    xmlns:work="http://www.orcid.org/ns/work">
  <common:created-date>2019-05-01T10:00:00.000Z</common:created-date>
  <common:last-modified-date>2020-01-02T03:04:05.000Z</common:last-modified-date>
  <common:source><common:source-name>Crossref</common:source-name></common:source>
  <work:title><common:title>Deep Learning (Review)</common:title></work:title>
  <work:journal-title>Journal of Machine Learning</work:journal-title>
  <work:citation>
    <work:citation-type>formatted-ieee</work:citation-type>
    <work:citation-value>J. Doe (2019). Deep Learning (Review).</work:citation-value>
  </work:citation>
  <work:type>journal-article</work:type>
  <common:publication-date>
    <common:year>2019</common:year>
    <common:month>05</common:month>
  </common:publication-date>
  <common:external-ids>
    <common:external-id>
      <common:external-id-type>doi</common:external-id-type>
      <common:external-id-value>10.1000/jml.2019.001</common:external-id-value>
    </common:external-id>
  </common:external-ids>
  <work:url>https://example.org/paper</work:url>
  <work:contributors>
    <work:contributor><work:credit-name>Jane Doe</work:credit-name></work:contributor>
    <work:contributor><work:credit-name>John Smith</work:credit-name></work:contributor>
  </work:contributors>
</work:work>
"""


def detail_xml(put_code: int, title: str, year: int, work_type: str = "journal-article") -> str:
    """Minimal detail document for a work."""
    return f"""<work:work put-code="{put_code}" path="/{ORCID_ID}/work/{put_code}"
    xmlns:common="http://www.orcid.org/ns/common" xmlns:work="http://www.orcid.org/ns/work">
  <work:title><common:title>{title}</common:title></work:title>
  <work:type>{work_type}</work:type>
  <common:publication-date><common:year>{year}</common:year></common:publication-date>
</work:work>"""


@pytest.fixture
def logger():
    return logging.getLogger("orcid_pull.tests")


@pytest.fixture
def make_work():
    """Factory fixture for creating works."""

    def _make_work(title: str = "Example Title", year: int = 2020, **kwargs) -> Work:
        return Work(title=title, year=year, **kwargs)

    return _make_work


@pytest.fixture
def full_work():
    """A work with every field set."""
    return Work(
        title="Deep Learning for Everything",
        path=f"/{ORCID_ID}/work/42",
        source_name="Crossref",
        year=2021,
        month=3,
        day=14,
        journal_title="Journal of Machine Learning",
        work_type="journal-article",
        url="https://example.org/paper",
        citation=Citation(type="bibtex", value='@article{k, author = {Doe, Jane}, title = {Deep}}'),
        external_ids=[ExternalID(type="doi", value="10.1000/jml.2021.001", url="http://doi.org/10.1000/jml.2021.001")],
        contributors=[Contributor(name="Jane Doe"), Contributor(name="John Smith")],
        doi_url="http://doi.org/10.1000/jml.2021.001",
        contributors_line="Jane Doe, John Smith",
    )


@pytest.fixture
def make_http():
    """Factory fixture for an HttpClient answering through ``handler``."""
    clients: list[HttpClient] = []

    def _make_http(handler: Callable[[httpx.Request], httpx.Response]) -> HttpClient:
        limits = {"orcid": (100000, 1.0), "crossref": (100000, 1.0), "mediawiki": (100000, 1.0)}
        http = HttpClient(
            timeout=5.0,
            rate_limiter=RateLimiterRegistry(limits),
            transport=httpx.MockTransport(handler),
        )
        clients.append(http)
        return http

    yield _make_http
    for http in clients:
        http.close()

"""Tests for the post-processing modifiers."""

from __future__ import annotations

import pytest

from orcid_pull.modifiers import (
    DEFAULT_MODIFIERS,
    contributors_line,
    update_contributors_line,
    update_external_ids_url,
    update_markup,
)
from orcid_pull.orcid import Contributor, ExternalID
from orcid_pull.utils import MalformedData


class TestUpdateMarkup:
    def test_subscript(self, make_work):
        works = [make_work("MeZnOtBu<inf>4</inf>by")]
        update_markup(works)
        assert works[0].title == "MeZnOtBu</nowiki>{{sub|4}}<nowiki>by"

    def test_escaped_subscript(self, make_work):
        works = [make_work("H&lt;inf&gt;2&lt;/inf&gt;O")]
        update_markup(works)
        assert works[0].title == "H</nowiki>{{sub|2}}<nowiki>O"

    def test_superscript(self, make_work):
        works = [make_work("x<sup>2</sup>")]
        update_markup(works)
        assert works[0].title == "x</nowiki>{{sup|2}}<nowiki>"

    def test_plain_title_unchanged(self, make_work):
        works = [make_work("Graph Methods")]
        update_markup(works)
        assert works[0].title == "Graph Methods"


class TestContributorsLine:
    def test_join(self, make_work):
        work = make_work(contributors=[Contributor("Jane Doe"), Contributor("John Smith")])
        assert contributors_line(work) == "Jane Doe, John Smith"

    def test_empty(self, make_work):
        works = [make_work(contributors_line="stale")]
        update_contributors_line(works)
        assert works[0].contributors_line == ""


class TestUpdateExternalIdsUrl:
    def test_doi_value_gets_resolver_url(self, make_work):
        works = [make_work(external_ids=[ExternalID(type="doi", value="10.1000/xyz")])]
        update_external_ids_url(works)
        assert works[0].external_ids[0].url == "http://doi.org/10.1000/xyz"
        assert works[0].doi_url == "http://doi.org/10.1000/xyz"

    def test_existing_url_kept_and_unescaped(self, make_work):
        works = [make_work(external_ids=[ExternalID(type="doi", value="x", url="https://doi.org/10.1000/a&amp;b")])]
        update_external_ids_url(works)
        assert works[0].doi_url == "https://doi.org/10.1000/a&b"

    def test_other_types_ignored(self, make_work):
        works = [make_work(external_ids=[ExternalID(type="eid", value="2-s2.0-123")])]
        update_external_ids_url(works)
        assert works[0].external_ids[0].url == ""
        assert works[0].doi_url == ""

    def test_doi_without_value_or_url(self, make_work):
        works = [make_work(external_ids=[ExternalID(type="doi")])]
        update_external_ids_url(works)
        assert works[0].doi_url == ""

    def test_scheme_less_url_kept(self, make_work):
        works = [make_work(external_ids=[ExternalID(type="doi", value="10.1000/x", url="doi.org/10.1000/x")])]
        update_external_ids_url(works)
        assert works[0].doi_url == "doi.org/10.1000/x"

    def test_unparsable_url_raises(self, make_work):
        works = [make_work(external_ids=[ExternalID(type="doi", url="http://doi.org:abc/10.1000/x")])]
        with pytest.raises(MalformedData):
            update_external_ids_url(works)


class TestDefaultModifiers:
    def test_order(self):
        assert DEFAULT_MODIFIERS == (update_external_ids_url, update_contributors_line, update_markup)

    def test_applied_left_to_right(self, make_work):
        work = make_work(
            "A<inf>1</inf>",
            external_ids=[ExternalID(type="doi", value="10.1000/xyz")],
            contributors=[Contributor("Jane Doe")],
        )
        for mod in DEFAULT_MODIFIERS:
            mod([work])
        assert work.title == "A</nowiki>{{sub|1}}<nowiki>"
        assert work.doi_url == "http://doi.org/10.1000/xyz"
        assert work.contributors_line == "Jane Doe"

"""Tests for author extraction from citation strings."""

from __future__ import annotations

import pytest

from orcid_pull.citations import (
    citation_contributors,
    parse_authors_bibtex,
    parse_authors_bibtex_strict,
    parse_authors_ieee,
)
from orcid_pull.orcid import Citation, Contributor
from orcid_pull.utils import CitationParseError

VUNDER_BIBTEX = (
    "@inproceedings{Vunder_2018,doi = {10.1109/hsi.2018.8431062},"
    "url = {https://doi.org/10.1109%2Fhsi.2018.8431062},year = 2018,month = {jul},publisher = {{IEEE}},"
    "author = {Veiko Vunder and Robert Valner and Conor McMahon and Karl Kruusamae and Mitch Pryor},"
    "title = {Improved Situational Awareness in {ROS} Using Panospheric Vision and Virtual Reality},"
    "booktitle = {2018 11th International Conference on Human System Interaction ({HSI})}}"
)
VUNDER_AUTHORS = "Veiko Vunder and Robert Valner and Conor McMahon and Karl Kruusamae and Mitch Pryor"

CMUT_PLAIN = (
    'S. Banerji, W. L. Goh, J. H. Cheong and M. Je, "CMUT ultrasonic power link front-end for wireless power '
    'transfer deep in body," 2013 IEEE MTT-S International Microwave Workshop Series on RF and Wireless '
    "Technologies for Biomedical and Healthcare Applications (IMWS-BIO), Singapore, 2013, pp. 1-3.\n"
    "doi: 10.1109/IMWS-BIO.2013.6756176"
)


class TestParseAuthorsIEEE:
    """Tests for IEEE-formatted citations."""

    def test_year_in_parentheses(self):
        citation = (
            "Saoni Banerji, R.Senthil Kumar (2010). Diagnosis of Systems Via Condition Monitoring Based on Time "
            "Frequency Representations. International Journal of Recent Trends in Engineering & Research, "
            "4 (2), 20-24.01.IJRTET 04.02.102."
        )
        assert parse_authors_ieee(citation) == "Saoni Banerji, R.Senthil Kumar"

    def test_quoted_title(self):
        citation = (
            'S. Banerji, J. Madrenas and D. Fernandez, "Optimization of parameters for CMOS MEMS resonant '
            'pressure sensors," 2015 Symposium on Design, Test, Integration and Packaging of MEMS/MOEMS (DTIP), '
            "Montpellier, 2015, pp. 1-6. doi: 10.1109/DTIP.2015.7160984"
        )
        assert parse_authors_ieee(citation) == "S. Banerji, J. Madrenas and D. Fernandez"

    def test_bibtex_value(self):
        citation = (
            " @phdthesis{banerji2012ultrasonic, title= {Ultrasonic Link IC for Wireless Power and Data Transfer "
            "Deep in Body}, author= {Banerji, Saoni and Ling, Goh Wang and Cheong, Jia Hao and Je, Minkyu}, "
            "year= {2012}, school= {Nanyang Technological University}} "
        )
        assert parse_authors_ieee(citation) == "Banerji, Saoni and Ling, Goh Wang and Cheong, Jia Hao and Je, Minkyu"

    def test_trailing_period_trimmed(self):
        citation = (
            "Banerji, Saoni & Chiva, Josep. (2016). Under pressure? Do not lose direction! Smart sensors: "
            "Development of MEMS and CMOS on the same platform."
        )
        assert parse_authors_ieee(citation) == "Banerji, Saoni & Chiva, Josep"

    def test_no_match_raises(self):
        with pytest.raises(CitationParseError):
            parse_authors_ieee("Just a title without any structure")


class TestParseAuthorsBibtex:
    def test_plain_text_value(self):
        assert parse_authors_bibtex(CMUT_PLAIN) == "S. Banerji, W. L. Goh, J. H. Cheong and M. Je"

    def test_entry_value(self):
        assert parse_authors_bibtex(VUNDER_BIBTEX) == VUNDER_AUTHORS

    def test_strict_rejects_plain_text(self):
        with pytest.raises(CitationParseError):
            parse_authors_bibtex_strict(CMUT_PLAIN)

    def test_strict_entry(self):
        assert parse_authors_bibtex_strict(VUNDER_BIBTEX) == VUNDER_AUTHORS

    def test_strict_entry_without_author(self):
        with pytest.raises(CitationParseError):
            parse_authors_bibtex_strict("@misc{k, title = {No authors here}}")


class TestCitationContributors:
    def test_single_contributor_not_split(self, make_work):
        work = make_work(citation=Citation(type="bibtex", value=VUNDER_BIBTEX))
        assert citation_contributors(work) == [Contributor(name=VUNDER_AUTHORS)]

    def test_unsupported_type(self, make_work):
        work = make_work(citation=Citation(type="formatted-apa", value="Doe, J. (2020). Title."))
        assert citation_contributors(work) == []

    def test_parse_failure_is_not_fatal(self, make_work):
        work = make_work(citation=Citation(type="formatted-ieee", value="nothing to see"))
        assert citation_contributors(work) == []

    def test_without_citation(self, make_work):
        assert citation_contributors(make_work()) == []

    def test_existing_contributors_kept(self, make_work):
        work = make_work(
            contributors=[Contributor(name="Jane Doe")],
            citation=Citation(type="bibtex", value=VUNDER_BIBTEX),
        )
        assert citation_contributors(work) == []

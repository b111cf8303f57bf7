"""Author extraction from free-text and BibTeX citations.

ORCID works often come without contributors but with a citation string. The
parsers below pull the leading author list out of it. The result is always
kept as one string: citation styles disagree on name separators, so the
whole author list becomes a single contributor.
"""

from __future__ import annotations

import logging
import re

import bibtexparser
from bibtexparser.bparser import BibTexParser

from orcid_pull.orcid import Contributor, Work
from orcid_pull.utils import CitationParseError

# Authors followed by a parenthesized year: "A. Author, B. Author (2010). Title..."
IEEE_YEAR_RE = re.compile(r".*\(\d{4}\)")
# Authors followed by a quoted title: 'A. Author and B. Author, "Title," ...'
IEEE_QUOTED_TITLE_RE = re.compile(r'.*[\W|,|.|\s]{2,}"')
BIBTEX_QUOTED_TITLE_RE = re.compile(r'(.*)?(?:\W\s")')

# len(" (YYYY)")
YEAR_SUFFIX_LEN = 7


def _clean(match: str) -> str:
    return match.strip('"').strip(" ").strip(".").strip(",")


def _search(pattern: re.Pattern[str], s: str) -> str:
    m = pattern.search(s)
    if not m:
        raise CitationParseError(f"no matches for {s!r}")
    # only the first match matters, authors are at the beginning
    return m.group(0)


def _is_bibtex(s: str) -> bool:
    return s.strip(" ").startswith("@")


def parse_authors_bibtex_strict(s: str) -> str:
    """Return the ``author`` field of a single BibTeX entry verbatim."""
    parser = BibTexParser(common_strings=True)
    parser.customization = None
    try:
        db = bibtexparser.loads(s, parser=parser)
    except Exception as e:
        raise CitationParseError(f"bibtex parsing failed: {e}") from e
    if not db.entries:
        raise CitationParseError(f"no bibtex entry in {s[:80]!r}")
    authors = db.entries[-1].get("author", "")
    if not authors:
        raise CitationParseError("bibtex entry has no author field")
    return authors


def parse_authors_ieee(s: str) -> str:
    """Extract the author list of an IEEE-formatted citation."""
    if _is_bibtex(s):
        return parse_authors_bibtex_strict(s)

    m = IEEE_YEAR_RE.search(s)
    if m:
        return _clean(m.group(0)[:-YEAR_SUFFIX_LEN])

    return _clean(_search(IEEE_QUOTED_TITLE_RE, s))


def parse_authors_bibtex(s: str) -> str:
    """Extract the author list of a citation labelled as BibTeX.

    Such citations are frequently plain text, so the strict parser is used
    only when the value looks like an actual entry.
    """
    if _is_bibtex(s):
        return parse_authors_bibtex_strict(s)
    return _clean(_search(BIBTEX_QUOTED_TITLE_RE, s))


CITATION_PARSERS = {
    "formatted-ieee": parse_authors_ieee,
    "bibtex": parse_authors_bibtex,
}


def citation_contributors(work: Work, logger: logging.Logger | None = None) -> list[Contributor]:
    """Contributors recovered from the citation of a work without authors."""
    logger = logger or logging.getLogger(__name__)
    if work.contributors or work.citation is None:
        return []

    parse = CITATION_PARSERS.get(work.citation.type)
    if parse is None:
        logger.debug("unsupported citation type %r for %r", work.citation.type, work.title)
        return []

    try:
        authors = parse(work.citation.value)
    except CitationParseError as e:
        logger.info("citation parsing failed for %r: %s", work.title, e)
        return []
    if not authors:
        return []
    return [Contributor(name=authors)]

"""Post-processing steps applied to fetched works.

Every modifier takes the list of works and mutates it in place. They run in
the order given; :data:`DEFAULT_MODIFIERS` is the pipeline used by the sync.
"""

from __future__ import annotations

from orcid_pull.orcid import Work
from orcid_pull.utils import doi_url, normalize_url

# Titles are rendered inside <nowiki>...</nowiki>; each replacement closes the
# wrapper so the inserted template is parsed by the wiki, then reopens it.
MARKUP_REPLACEMENTS = (
    ("<inf>", "</nowiki>{{sub|"),
    ("</inf>", "}}<nowiki>"),
    ("&lt;inf&gt;", "</nowiki>{{sub|"),
    ("&lt;/inf&gt;", "}}<nowiki>"),
    ("<sup>", "</nowiki>{{sup|"),
    ("</sup>", "}}<nowiki>"),
)


def contributors_line(work: Work) -> str:
    return ", ".join(c.name for c in work.contributors)


def update_external_ids_url(works: list[Work]) -> None:
    """Fill in missing DOI URLs and set ``Work.doi_url``.

    Raises:
        MalformedData: if a DOI does not make a valid URL.
    """
    for w in works:
        for ext in w.external_ids:
            if ext.type != "doi":
                # TODO: eid (Scopus) ids have no freely fetchable record URL yet
                continue
            if ext.url:
                uri = ext.url
            elif ext.value:
                uri = doi_url(ext.value)
            else:
                continue
            uri = normalize_url(uri)
            ext.url = uri
            w.doi_url = uri


def update_contributors_line(works: list[Work]) -> None:
    for w in works:
        w.contributors_line = contributors_line(w)


def update_markup(works: list[Work]) -> None:
    """Turn inline subscript/superscript tags of titles into wiki templates."""
    for w in works:
        title = w.title
        for old, new in MARKUP_REPLACEMENTS:
            title = title.replace(old, new)
        w.title = title


DEFAULT_MODIFIERS = (update_external_ids_url, update_contributors_line, update_markup)

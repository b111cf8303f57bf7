"""Grouping of works into display categories and years."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from orcid_pull.orcid import Work

JOURNAL_ARTICLES = "Journal Articles"
CONFERENCE_PAPERS = "Conference Papers"
OTHER = "Other"

CATEGORIES = (JOURNAL_ARTICLES, CONFERENCE_PAPERS, OTHER)

WORK_TYPE_CATEGORIES = {
    "journal-article": JOURNAL_ARTICLES,
    "conference-paper": CONFERENCE_PAPERS,
}


def category_of(work: Work) -> str:
    return WORK_TYPE_CATEGORIES.get(work.work_type, OTHER)


def years_sorted(works: Iterable[Work]) -> list[int]:
    """Distinct publication years, newest first."""
    return sorted({w.year for w in works}, reverse=True)


def group_by_year(works: Sequence[Work]) -> list[list[Work]]:
    """Bucket works by year; buckets are newest first and keep input order inside."""
    return [[w for w in works if w.year == year] for year in years_sorted(works)]


def group_by_category_and_year(works: Iterable[Work]) -> dict[str, list[list[Work]]]:
    """Group works by display category, then by year.

    Every category is present in the result, in :data:`CATEGORIES` order,
    even when it holds no works.
    """
    by_category: dict[str, list[Work]] = {c: [] for c in CATEGORIES}
    for w in works:
        by_category[category_of(w)].append(w)
    return {c: group_by_year(group) for c, group in by_category.items()}

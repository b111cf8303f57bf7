"""Rendering of grouped works to MediaWiki markup."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from orcid_pull.orcid import Work


def nowiki(text: str) -> str:
    """Wrap ``text`` so the wiki shows it verbatim."""
    return f"<nowiki>{text}</nowiki>" if text else ""


def heading(text: str, level: int) -> str:
    marks = "=" * level
    return f"{marks} {text} {marks}"


def render_work(work: Work) -> str:
    """One numbered list line for a work.

    The title is expected to have gone through
    :func:`orcid_pull.modifiers.update_markup`: it may close and reopen the
    ``<nowiki>`` wrapper around inline templates.
    """
    parts = []
    if work.contributors_line:
        parts.append(nowiki(work.contributors_line) + ".")
    parts.append(f'"{nowiki(work.title)}".')
    if work.journal_title:
        parts.append(f"''{nowiki(work.journal_title)}''.")
    if work.doi_url:
        parts.append(f"[{work.doi_url} doi]")
    return "# " + " ".join(parts)


def render_grouped(grouped: Mapping[str, Sequence[Sequence[Work]]], level: int = 3) -> str:
    """Render works grouped by category and year.

    Categories without works are left out. Years are rendered in the order
    the groups come in, which is newest first.
    """
    lines: list[str] = []
    for category, buckets in grouped.items():
        if not buckets:
            continue
        lines.append(heading(category, level))
        for bucket in buckets:
            if not bucket:
                continue
            year = bucket[0].year
            lines.append(heading(str(year) if year else "Undated", level + 1))
            lines.extend(render_work(w) for w in bucket)
        lines.append("")
    return "\n".join(lines).rstrip("\n") + "\n"

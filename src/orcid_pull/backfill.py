"""Backfilling of missing authors.

Works that arrive without contributors go through a fallback chain:

1. Crossref, looked up by the DOI of the work,
2. the citation string of the work (see :mod:`orcid_pull.citations`).

Nothing in the chain is fatal: a failed step is logged and the next one is
tried, and a work may end up without authors.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable

from orcid_pull.citations import citation_contributors
from orcid_pull.crossref import CrossrefClient
from orcid_pull.modifiers import contributors_line, update_contributors_line
from orcid_pull.orcid import Contributor, Work
from orcid_pull.utils import OrcidPullError, doi_from_url


class AuthorBackfiller:
    """Fills ``Work.contributors`` for works that have none."""

    def __init__(self, crossref: CrossrefClient, logger: logging.Logger | None = None, cooldown: float = 1.0):
        """Initialize the backfiller.

        Args:
            crossref: Client for the secondary lookup
            logger: Logger instance
            cooldown: Seconds to pause after a failed Crossref lookup
        """
        self.crossref = crossref
        self.logger = logger or logging.getLogger(__name__)
        self.cooldown = cooldown

    def crossref_contributors(self, work: Work) -> list[Contributor]:
        if not work.doi_url:
            self.logger.debug("publication doesn't have DOI: %r", work.title)
            return []

        doi = doi_from_url(work.doi_url)
        if not doi:
            self.logger.debug("cannot extract DOI from %s", work.doi_url)
            return []

        self.logger.debug("crossref fetch: %r, %s", work.title, doi)
        try:
            names = self.crossref.lookup_authors(doi)
        except OrcidPullError as e:
            self.logger.warning("crossref fetch error for %s: %s", doi, e)
            # let the Crossref server rest a bit
            time.sleep(self.cooldown)
            return []
        return [Contributor(name=n) for n in names]

    def backfill_work(self, work: Work) -> bool:
        """Backfill one work; returns True when contributors were added."""
        if work.contributors:
            return False

        contributors = self.crossref_contributors(work)
        if not contributors:
            contributors = citation_contributors(work, self.logger)
        if not contributors:
            return False

        work.contributors = contributors
        work.contributors_line = contributors_line(work)
        return True

    def backfill(self, works: Iterable[Work]) -> int:
        """Backfill every work lacking contributors; returns the number filled."""
        works = list(works)
        start = time.monotonic()
        filled = sum(1 for w in works if self.backfill_work(w))
        update_contributors_line(works)
        self.logger.info(
            "authors backfilled for %d of %d works in %.1fs", filled, len(works), time.monotonic() - start
        )
        return filled

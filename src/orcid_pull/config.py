"""Configuration of a sync run."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass

from orcid_pull.utils import CROSSREF_API, ORCID_API

ENV_PREFIX = "ORCID_PULL_"


def env_default(name: str, fallback: str = "") -> str:
    """Value of ``ORCID_PULL_<name>`` from the environment, or ``fallback``."""
    return os.environ.get(ENV_PREFIX + name, fallback)


@dataclass
class SyncConfig:
    """Settings of one sync run.

    Attributes:
        wiki_url: Base URL of the wiki; ``api.php`` is resolved beneath it
        crossref_url: Base URL of the Crossref REST API
        orcid_api: Base URL of the ORCID public API
        section: Title of the profile page section holding the publications
        category: Wiki category whose member pages are synchronized.
            Every user page is inspected when empty.
        bot_name: Wiki bot account name
        bot_password: Wiki bot account password
        log_path: Optional log file; logs go to stderr when None
        snapshot_dir: Directory of the per-researcher snapshot files
        snapshot_max_age_hours: Age after which a snapshot is refetched
        timeout: HTTP timeout in seconds
        aggregate_category: Category of users merged into the aggregate page.
            The aggregate page is not updated when empty.
        aggregate_page: Title of the aggregate page
        aggregate_section: Section of the aggregate page holding the publications
        purge_page: Page whose cache is purged after the aggregate update
        dry_run: Render and log markup without editing pages
        verbose: Enable debug logging
    """

    wiki_url: str = ""
    crossref_url: str = CROSSREF_API
    orcid_api: str = ORCID_API
    section: str = "Publications"
    category: str = ""
    bot_name: str = ""
    bot_password: str = ""
    log_path: str | None = None
    snapshot_dir: str = "."
    snapshot_max_age_hours: float = 23.0
    timeout: float = 30.0
    aggregate_category: str = "PI"
    aggregate_page: str = "PI_Publications_By_Year"
    aggregate_section: str = "Publications By Year"
    purge_page: str = "Publications"
    dry_run: bool = False
    verbose: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> SyncConfig:
        return cls(
            wiki_url=args.wiki_url,
            crossref_url=args.crossref_url,
            orcid_api=args.orcid_api,
            section=args.section,
            category=args.category,
            bot_name=args.name,
            bot_password=args.password,
            log_path=args.log,
            snapshot_dir=args.snapshot_dir,
            snapshot_max_age_hours=args.snapshot_max_age,
            timeout=args.timeout,
            aggregate_category=args.aggregate_category,
            aggregate_page=args.aggregate_page,
            aggregate_section=args.aggregate_section,
            purge_page=args.purge_page,
            dry_run=args.dry_run,
            verbose=args.verbose,
        )

    def validate(self) -> str | None:
        """Return an error message for an unusable configuration, None otherwise."""
        mandatory = {
            "--url": self.wiki_url,
            "--crossref-url": self.crossref_url,
            "--orcid-api": self.orcid_api,
            "--section": self.section,
            "--name": self.bot_name,
            "--pass": self.bot_password,
        }
        missing = [flag for flag, value in mandatory.items() if not value.strip()]
        if missing:
            return "Missing mandatory options: " + ", ".join(missing)
        if self.aggregate_category and not (self.aggregate_page.strip() and self.aggregate_section.strip()):
            return "--aggregate-page and --aggregate-section must be set when --aggregate-category is used"
        if self.timeout <= 0:
            return "--timeout must be positive"
        if self.snapshot_max_age_hours <= 0:
            return "--snapshot-max-age must be positive"
        return None

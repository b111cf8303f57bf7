"""Synchronization of ORCID publication lists onto MediaWiki pages.

A run goes through these steps:

1. discover the user pages that link to an ORCID record,
2. load the works of every user, from a fresh snapshot file or from ORCID,
3. backfill missing authors (Crossref, then the citation string),
4. render the works grouped by category and year into each profile page,
5. merge the works of the aggregate category into one page and purge the
   page that transcludes it.

Usage:
    orcid-pull --url https://wiki.example.org/w --name Bot --pass secret
"""

from __future__ import annotations

import argparse
import concurrent.futures
import logging
import os
import sys
import threading
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta

from orcid_pull.backfill import AuthorBackfiller
from orcid_pull.config import SyncConfig, env_default
from orcid_pull.crossref import CrossrefClient
from orcid_pull.grouping import group_by_category_and_year
from orcid_pull.mediawiki import WikiClient
from orcid_pull.modifiers import DEFAULT_MODIFIERS
from orcid_pull.orcid import OrcidClient, Work, dedupe_by_title, fetch_works, sort_by_year
from orcid_pull.render import render_grouped
from orcid_pull.snapshot import is_fresh, read_works, snapshot_path, write_works
from orcid_pull.utils import (
    CROSSREF_API,
    ORCID_API,
    HttpClient,
    InvalidIdentifier,
    OrcidPullError,
    RateLimiterRegistry,
    parse_orcid_id,
)

# External-link lookups in flight at once during discovery.
DISCOVERY_BATCH_SIZE = 20


@dataclass
class User:
    """A wiki profile page and the ORCID record it links to."""

    title: str
    orcid_id: str = ""
    works: list[Work] = field(default_factory=list)


@dataclass
class PageResult:
    """Outcome of updating one page."""

    page: str
    action: str  # "updated", "would_update", "failed"
    message: str | None = None


def orcid_link(links: Iterable[str]) -> str | None:
    """First link pointing at orcid.org, if any."""
    return next((link for link in links if "orcid.org" in link), None)


def explore_users(
    wiki: WikiClient,
    category: str,
    logger: logging.Logger,
    batch_size: int = DISCOVERY_BATCH_SIZE,
) -> list[User]:
    """Find the candidate pages that carry an ORCID link.

    External links are fetched in barrier-joined batches of ``batch_size``.
    Wiki failures propagate; a link that does not hold a usable identifier
    only skips its page.

    Returns:
        Users sorted by page title.
    """
    titles = wiki.candidate_pages(category)
    logger.info("inspecting %d candidate pages%s", len(titles), f" of category {category}" if category else "")

    users: list[User] = []
    lock = threading.Lock()

    def inspect(title: str) -> None:
        link = orcid_link(wiki.get_external_links(title))
        if link is None:
            logger.debug("no ORCID link on %s", title)
            return
        try:
            orcid_id = parse_orcid_id(link)
        except InvalidIdentifier as e:
            logger.warning("skipping %s: %s", title, e)
            return
        with lock:
            users.append(User(title=title, orcid_id=orcid_id))

    if titles:
        with concurrent.futures.ThreadPoolExecutor(max_workers=batch_size) as ex:
            for start in range(0, len(titles), batch_size):
                futures = [ex.submit(inspect, t) for t in titles[start : start + batch_size]]
                for fut in concurrent.futures.as_completed(futures):
                    fut.result()

    users.sort(key=lambda u: u.title)
    logger.info("found %d users with an ORCID link", len(users))
    return users


def merge_works(users: Iterable[User]) -> list[Work]:
    """Works of all ``users``, deduplicated by title and sorted newest first."""
    combined = [w for u in users for w in u.works]
    return sort_by_year(dedupe_by_title(combined))


def render_works(works: Sequence[Work]) -> str:
    return render_grouped(group_by_category_and_year(works))


class PublicationSync:
    """Runs the sync for one wiki.

    Args:
        config: Run settings
        wiki: Wiki client used for discovery and page updates
        orcid: ORCID client
        backfiller: Author backfill chain
        logger: Logger instance
    """

    def __init__(
        self,
        config: SyncConfig,
        wiki: WikiClient,
        orcid: OrcidClient,
        backfiller: AuthorBackfiller,
        logger: logging.Logger | None = None,
    ):
        self.config = config
        self.wiki = wiki
        self.orcid = orcid
        self.backfiller = backfiller
        self.logger = logger or logging.getLogger(__name__)
        # works already loaded in this run, by ORCID id
        self._loaded: dict[str, list[Work]] = {}
        self._backfilled: set[str] = set()

    # --- loading ---

    def load_works(self, orcid_id: str) -> list[Work]:
        """Works of a researcher from a fresh snapshot, or fetched and snapshotted.

        Raises:
            OrcidPullError: when fetching from ORCID fails.
        """
        if orcid_id in self._loaded:
            return self._loaded[orcid_id]

        path = snapshot_path(self.config.snapshot_dir, orcid_id)
        max_age = timedelta(hours=self.config.snapshot_max_age_hours)
        works: list[Work] | None = None
        if is_fresh(path, max_age):
            self.logger.info("reading works of %s from %s", orcid_id, path)
            try:
                works = read_works(path, DEFAULT_MODIFIERS)
            except (ET.ParseError, OSError) as e:
                self.logger.warning("unreadable snapshot %s, fetching live: %s", path, e)
        if works is None:
            works = fetch_works(self.orcid, orcid_id, self.logger, DEFAULT_MODIFIERS)
            try:
                write_works(path, works)
            except OSError as e:
                self.logger.warning("cannot write snapshot %s: %s", path, e)

        self._loaded[orcid_id] = works
        return works

    def fetch_publications(self, users: Sequence[User]) -> list[User]:
        """Load works of every user; returns the users that could be loaded."""
        loaded = []
        for user in users:
            try:
                user.works = self.load_works(user.orcid_id)
            except OrcidPullError as e:
                self.logger.error("cannot load works of %s (%s): %s", user.title, user.orcid_id, e)
                continue
            self.logger.debug("%s: %d works", user.title, len(user.works))
            loaded.append(user)
        return loaded

    def fetch_missing_authors(self, users: Iterable[User]) -> None:
        for user in users:
            if user.orcid_id in self._backfilled:
                continue
            self.backfiller.backfill(user.works)
            self._backfilled.add(user.orcid_id)

    # --- publishing ---

    def publish(self, page: str, section: str, markup: str) -> PageResult:
        if self.config.dry_run:
            self.logger.info("dry run, section %r of %s would become:\n%s", section, page, markup)
            return PageResult(page=page, action="would_update")
        try:
            self.wiki.replace_section(page, section, markup)
        except OrcidPullError as e:
            self.logger.error("cannot update %s: %s", page, e)
            return PageResult(page=page, action="failed", message=str(e))
        self.logger.info("updated %s", page)
        return PageResult(page=page, action="updated")

    def update_profile_pages(self, users: Iterable[User]) -> list[PageResult]:
        return [self.publish(u.title, self.config.section, render_works(u.works)) for u in users]

    def update_publications_by_year(self) -> list[PageResult]:
        """Rebuild the aggregate page from the users of the aggregate category."""
        cfg = self.config
        users = explore_users(self.wiki, cfg.aggregate_category, self.logger)
        loaded = self.fetch_publications(users)
        self.fetch_missing_authors(loaded)
        if len(loaded) != len(users):
            # the aggregate page lists every user of the category or stays as it is
            msg = f"{len(users) - len(loaded)} users of {cfg.aggregate_category} could not be loaded"
            self.logger.error("not updating %s: %s", cfg.aggregate_page, msg)
            return [PageResult(page=cfg.aggregate_page, action="failed", message=msg)]

        works = merge_works(loaded)
        self.logger.info("%d publications of %d users for %s", len(works), len(loaded), cfg.aggregate_page)
        result = self.publish(cfg.aggregate_page, cfg.aggregate_section, render_works(works))
        results = [result]
        if result.action == "updated" and cfg.purge_page:
            try:
                self.wiki.purge(cfg.purge_page)
            except OrcidPullError as e:
                self.logger.error("cannot purge %s: %s", cfg.purge_page, e)
                results.append(PageResult(page=cfg.purge_page, action="failed", message=str(e)))
        return results

    def run(self) -> int:
        """Run the whole sync.

        Returns:
            Exit code: 0=success, 2=some users or pages failed.
        """
        users = explore_users(self.wiki, self.config.category, self.logger)
        loaded = self.fetch_publications(users)
        self.fetch_missing_authors(loaded)
        results = self.update_profile_pages(loaded)
        if self.config.aggregate_category:
            results.extend(self.update_publications_by_year())

        failed_users = len(users) - len(loaded)
        failed_pages = [r for r in results if r.action == "failed"]
        summarize(users, results, self.logger)
        return 2 if failed_users or failed_pages else 0


def summarize(users: Sequence[User], results: Sequence[PageResult], logger: logging.Logger) -> None:
    updated = sum(1 for r in results if r.action == "updated")
    would_update = sum(1 for r in results if r.action == "would_update")
    failed = [r for r in results if r.action == "failed"]
    logger.info(
        "Summary: users=%d, pages updated=%d, would update=%d, failures=%d",
        len(users),
        updated,
        would_update,
        len(failed),
    )
    for r in failed:
        logger.info("  %s: %s", r.page, r.message)


# ------------- CLI -------------


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="orcid-pull",
        description="Publish ORCID publication lists on MediaWiki user pages.",
    )
    p.add_argument("--url", dest="wiki_url", default=env_default("WIKI_URL"), help="Base URL of the wiki")
    p.add_argument(
        "--crossref-url",
        default=env_default("CROSSREF_URL", CROSSREF_API),
        help=f"Crossref API base URL (default: {CROSSREF_API})",
    )
    p.add_argument(
        "--orcid-api",
        default=env_default("ORCID_API", ORCID_API),
        help=f"ORCID public API base URL (default: {ORCID_API})",
    )
    p.add_argument("--section", default="Publications", help="Profile page section to replace (default: Publications)")
    p.add_argument("--category", default="", help="Only sync member pages of this category (default: all users)")
    p.add_argument("--name", default=env_default("BOT_NAME"), help="Bot account name")
    p.add_argument("--pass", dest="password", default=env_default("BOT_PASSWORD"), help="Bot account password")
    p.add_argument("--log", default=None, help="Write the log to this file instead of stderr")
    p.add_argument("--snapshot-dir", default=".", help="Directory of the snapshot files (default: .)")
    p.add_argument(
        "--snapshot-max-age",
        type=float,
        default=23.0,
        help="Hours after which a snapshot is refetched (default: 23)",
    )
    p.add_argument("--timeout", type=float, default=30.0, help="HTTP timeout seconds (default: 30)")
    p.add_argument(
        "--aggregate-category",
        default="PI",
        help="Category merged into the aggregate page; empty disables it (default: PI)",
    )
    p.add_argument("--aggregate-page", default="PI_Publications_By_Year", help="Title of the aggregate page")
    p.add_argument("--aggregate-section", default="Publications By Year", help="Section of the aggregate page")
    p.add_argument("--purge-page", default="Publications", help="Page purged after the aggregate update")
    p.add_argument("--dry-run", action="store_true", help="Render and log markup without editing pages")
    p.add_argument("--verbose", action="store_true", help="Verbose logging")
    return p


def init_logging(verbose: bool, log_path: str | None = None) -> logging.Logger:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s: %(message)s", filename=log_path)
    return logging.getLogger("orcid_pull")


def build_sync(config: SyncConfig, logger: logging.Logger) -> tuple[HttpClient, PublicationSync]:
    """Create the HTTP client and the sync components for ``config``."""
    http = HttpClient(timeout=config.timeout, rate_limiter=RateLimiterRegistry(), logger=logger)
    wiki = WikiClient(http, config.wiki_url, config.bot_name, config.bot_password, logger=logger)
    orcid = OrcidClient(http, config.orcid_api, logger=logger)
    backfiller = AuthorBackfiller(CrossrefClient(http, config.crossref_url, logger=logger), logger=logger)
    return http, PublicationSync(config, wiki, orcid, backfiller, logger=logger)


def main(argv: list[str] | None = None) -> int:
    """Main entry point of the sync.

    Args:
        argv: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code: 0=success, 1=configuration error or fatal failure, 2=some failures.
    """
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    config = SyncConfig.from_args(args)

    error = config.validate()
    if error:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {error}", file=sys.stderr)
        return 1

    logger = init_logging(config.verbose, config.log_path)
    if not os.path.isdir(config.snapshot_dir):
        logger.error("snapshot directory %s does not exist", config.snapshot_dir)
        return 1

    http, sync = build_sync(config, logger)
    try:
        return sync.run()
    except OrcidPullError as e:
        logger.error("sync aborted: %s", e)
        return 1
    finally:
        http.close()

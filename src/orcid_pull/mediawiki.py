"""MediaWiki action API client.

Only what the sync needs: listing candidate user pages, reading their
external links, replacing one section of a page and purging a page cache.
Writes require a bot account; the client logs in lazily before the first
write and keeps the session cookies in the shared :class:`HttpClient`.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from typing import Any

from orcid_pull.utils import HttpClient, WikiError, api_base, resolve_relative

EDIT_SUMMARY = "Publications updated from ORCID"


class WikiClient:
    """Client for a MediaWiki installation at ``base_url``."""

    def __init__(
        self,
        http: HttpClient,
        base_url: str,
        bot_name: str = "",
        bot_password: str = "",
        logger: logging.Logger | None = None,
    ):
        self.http = http
        self.api_url = resolve_relative(api_base(base_url), "api.php")
        self.bot_name = bot_name
        self.bot_password = bot_password
        self.logger = logger or logging.getLogger(__name__)
        self._logged_in = False
        self._login_lock = threading.Lock()

    # --- transport ---

    def _check(self, data: dict[str, Any]) -> dict[str, Any]:
        err = data.get("error")
        if err:
            raise WikiError(f"MediaWiki API error {err.get('code')}: {err.get('info')}", code=err.get("code"))
        return data

    def _get(self, params: dict[str, Any]) -> dict[str, Any]:
        params = {"format": "json", "formatversion": "2", **params}
        resp = self.http.get(self.api_url, params=params, accept="application/json", service="mediawiki")
        return self._check(resp.json())

    def _post(self, data: dict[str, Any]) -> dict[str, Any]:
        data = {"format": "json", "formatversion": "2", **data}
        resp = self.http.post(self.api_url, data=data, accept="application/json", service="mediawiki")
        return self._check(resp.json())

    def _query_all(self, params: dict[str, Any], list_key: str) -> Iterator[dict[str, Any]]:
        """Iterate over a ``list=`` query following continuation."""
        cont: dict[str, Any] = {}
        while True:
            data = self._get({"action": "query", **params, **cont})
            yield from data.get("query", {}).get(list_key, [])
            if "continue" not in data:
                return
            cont = data["continue"]

    # --- reading ---

    def list_category_members(self, category: str) -> list[str]:
        if not category.startswith("Category:"):
            category = f"Category:{category}"
        params = {"list": "categorymembers", "cmtitle": category, "cmlimit": "max"}
        return [m["title"] for m in self._query_all(params, "categorymembers")]

    def list_users(self) -> list[str]:
        params = {"list": "allusers", "aulimit": "max"}
        return [u["name"] for u in self._query_all(params, "allusers")]

    def candidate_pages(self, category: str = "") -> list[str]:
        """Page titles to inspect: category members, or every user page."""
        if category:
            return self.list_category_members(category)
        return ["User:" + name.replace(" ", "_") for name in self.list_users()]

    def get_external_links(self, title: str) -> list[str]:
        links: list[str] = []
        cont: dict[str, Any] = {}
        while True:
            data = self._get({"action": "query", "prop": "extlinks", "titles": title, "ellimit": "max", **cont})
            for page in data.get("query", {}).get("pages", []):
                links.extend(link["url"] for link in page.get("extlinks", []))
            if "continue" not in data:
                return links
            cont = data["continue"]

    def find_section(self, title: str, section_title: str) -> tuple[int, int] | None:
        """Return ``(index, level)`` of the first section named ``section_title``."""
        data = self._get({"action": "parse", "page": title, "prop": "sections"})
        for section in data.get("parse", {}).get("sections", []):
            if section.get("line", "").strip() == section_title:
                return int(section["index"]), int(section["level"])
        return None

    # --- writing ---

    def login(self) -> None:
        with self._login_lock:
            if self._logged_in:
                return
            data = self._get({"action": "query", "meta": "tokens", "type": "login"})
            token = data["query"]["tokens"]["logintoken"]
            data = self._post(
                {"action": "login", "lgname": self.bot_name, "lgpassword": self.bot_password, "lgtoken": token}
            )
            result = data.get("login", {})
            if result.get("result") != "Success":
                raise WikiError(f"login as {self.bot_name} failed: {result.get('reason') or result.get('result')}")
            self._logged_in = True
            self.logger.debug("logged in to %s as %s", self.api_url, self.bot_name)

    def csrf_token(self) -> str:
        self.login()
        data = self._get({"action": "query", "meta": "tokens"})
        return data["query"]["tokens"]["csrftoken"]

    def replace_section(self, title: str, section_title: str, markup: str) -> None:
        """Replace the body of section ``section_title`` of page ``title``.

        The section is appended to the page when it does not exist yet.
        """
        params: dict[str, Any] = {
            "action": "edit",
            "title": title,
            "contentmodel": "wikitext",
            "summary": EDIT_SUMMARY,
            "bot": "1",
        }
        found = self.find_section(title, section_title)
        if found:
            index, level = found
            marks = "=" * level
            params.update(section=str(index), text=f"{marks} {section_title} {marks}\n{markup}")
        else:
            params.update(section="new", sectiontitle=section_title, text=markup)
        params["token"] = self.csrf_token()

        data = self._post(params)
        result = data.get("edit", {})
        if result.get("result") != "Success":
            raise WikiError(f"edit of {title!r} failed: {result}")
        self.logger.debug("edit of %r: %s", title, "no change" if result.get("nochange") else "saved")

    def purge(self, title: str) -> None:
        data = self._post({"action": "purge", "titles": title})
        for page in data.get("purge", []):
            if "missing" in page or "invalid" in page:
                raise WikiError(f"cannot purge {title!r}: page missing or invalid")

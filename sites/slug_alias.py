"""
Slug aliasing for sites that rename their series URLs.

Some MangaThemesia sites hand out temporary slugs (``123-some-title``) and
later move the series to a different one. Bookmarks stored with the old slug
then start answering 404. This module keeps a persistent map from stored
slugs to the slug that last worked, rewrites outgoing series requests
through it, and searches the site for the new slug when a request fails.

Only requests whose URL carries a ``#fragment`` are touched. The fragment
holds the search hint (usually the series title) and is never sent to the
server.
"""

from __future__ import annotations

import json
import re
import threading
from typing import Callable, Dict, Optional
from urllib.parse import unquote_plus, urlparse

import requests
from requests.adapters import BaseAdapter, HTTPAdapter

from .base import CatalogPage
from .preferences import SourcePreferences

PREF_URL_MAP = "pref_url_map"

TEMP_TO_PERM_RE = re.compile(r"^\d+-")
_TITLE_SPECIAL_CHARS_RE = re.compile(r"[^a-z0-9]+")
_TRAILING_PLUS_RE = re.compile(r"\++$")

SearchFn = Callable[..., CatalogPage]

# Session.send options that also bound the nested search request.
SEARCH_REQUEST_OPTIONS = ("timeout", "proxies", "verify", "cert")


# --- Slug helpers -----------------------------------------------------------
def to_permanent_slug(slug: str) -> str:
    """Strip a leading ``<digits>-`` id prefix (``42-foo`` -> ``foo``)."""
    return TEMP_TO_PERM_RE.sub("", slug, count=1)


def extract_slug(url: str) -> str:
    """Return the last path segment, ignoring fragment, query and trailing slash."""
    path = url.split("#", 1)[0].split("?", 1)[0]
    return path.rstrip("/").rsplit("/", 1)[-1]


def to_search_query(title: str) -> str:
    """Turn a title into the ``foo+bar`` form used as the URL fragment hint."""
    query = _TITLE_SPECIAL_CHARS_RE.sub("+", title.strip().lower())
    return _TRAILING_PLUS_RE.sub("", query)


class SlugMigrationError(requests.exceptions.RequestException):
    """The stored slug 404s and searching the site found no replacement."""

    def __init__(self, slug: str, hint: str, **kwargs) -> None:
        self.slug = slug
        self.hint = hint
        super().__init__(
            f"Series '{slug}' has moved and could not be found again "
            f"(searched for '{hint}'). Migrate this entry manually.",
            **kwargs,
        )


# --- Alias store ------------------------------------------------------------
class SlugAliasStore:
    """Stored slug -> working slug, persisted as one JSON object."""

    def __init__(
        self,
        preferences: SourcePreferences,
        key: str = PREF_URL_MAP,
        log_debug_fn: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.preferences = preferences
        self.key = key
        self._lock = threading.Lock()
        self._log_debug_fn = log_debug_fn

    def _debug(self, msg: str) -> None:
        if self._log_debug_fn:
            self._log_debug_fn(msg)

    def _read(self) -> Dict[str, str]:
        serialized = self.preferences.get_string(self.key)
        if serialized is None:
            return {}
        try:
            data = json.loads(serialized)
        except ValueError:
            self._debug("  Slug map is corrupt, discarding all aliases.")
            return {}
        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            self._debug("  Slug map has an unexpected shape, discarding all aliases.")
            return {}
        return data

    def get(self, slug: str) -> Optional[str]:
        return self._read().get(slug)

    def put(self, slug: str, current_slug: str) -> None:
        with self._lock:
            slug_map = self._read()
            slug_map[slug] = current_slug
            self.preferences.put_string(self.key, json.dumps(slug_map))
        self._debug(f"  Slug alias saved: {slug} -> {current_slug}")

    def snapshot(self) -> Dict[str, str]:
        return dict(self._read())


# --- Re-resolution ----------------------------------------------------------
class SlugResolver:
    """Find the new slug of a moved series by searching for it."""

    def __init__(
        self,
        search: SearchFn,
        log_debug_fn: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._search = search
        self._log_debug_fn = log_debug_fn

    def _debug(self, msg: str) -> None:
        if self._log_debug_fn:
            self._log_debug_fn(msg)

    def resolve(self, failed_slug: str, hint: str, **request_kwargs) -> Optional[str]:
        """
        Search for ``hint`` and return the first result slug containing the
        permanent form of ``failed_slug``, or None.

        ``request_kwargs`` (timeout, proxies, ...) are handed to the search so
        it runs under the same limits as the request that failed.
        """
        perma_slug = to_permanent_slug(failed_slug).lower()
        try:
            results = self._search(1, hint, None, **request_kwargs)
        except requests.exceptions.RequestException as e:
            self._debug(f"  Search for '{hint}' failed: {e}")
            return None

        # Keep the site's relevance order.
        for entry in results.entries:
            candidate = extract_slug(entry.url)
            if perma_slug in candidate.lower():
                self._debug(f"  '{failed_slug}' found again as '{candidate}'.")
                return candidate

        self._debug(
            f"  No search result for '{hint}' matches '{perma_slug}' "
            f"({len(results.entries)} checked)."
        )
        return None


# --- Transport adapter ------------------------------------------------------
class SlugAliasAdapter(BaseAdapter):
    """
    Transport adapter that sends series requests to the current slug.

    Mount it on the session for the site's domains, wrapping the adapter that
    was serving them (``transport``), so cloudscraper's TLS setup stays in
    use. For a request with a fragment, the slug in the path is looked up in
    the alias store and the request goes to ``<series_url>/<slug>/``. A 404
    triggers one search-based re-resolution and exactly one retry against the
    slug it finds; the alias is saved only if that retry is not a 404 too.
    """

    def __init__(
        self,
        store: SlugAliasStore,
        resolver: SlugResolver,
        series_url: str,
        log_debug_fn: Optional[Callable[[str], None]] = None,
        transport: Optional[BaseAdapter] = None,
    ) -> None:
        super().__init__()
        # Never wrap another alias adapter (configure_session run twice).
        while isinstance(transport, SlugAliasAdapter):
            transport = transport.transport
        self.transport = transport if transport is not None else HTTPAdapter()
        self.store = store
        self.resolver = resolver
        self.series_url = series_url.rstrip("/")
        self._log_debug_fn = log_debug_fn

    def _debug(self, msg: str) -> None:
        if self._log_debug_fn:
            self._log_debug_fn(msg)

    @staticmethod
    def is_series_request(request: requests.PreparedRequest) -> bool:
        return bool(urlparse(request.url).fragment)

    def _retarget(self, request: requests.PreparedRequest, slug: str) -> requests.PreparedRequest:
        outgoing = request.copy()
        outgoing.url = f"{self.series_url}/{slug}/"
        return outgoing

    def send(self, request, **kwargs):
        if not self.is_series_request(request):
            return self.transport.send(request, **kwargs)

        stored_slug = extract_slug(request.url)
        target_slug = self.store.get(stored_slug) or stored_slug
        if target_slug != stored_slug:
            self._debug(f"  Using slug alias {stored_slug} -> {target_slug}")

        response = self.transport.send(self._retarget(request, target_slug), **kwargs)
        if response.status_code != 404:
            return response
        response.close()

        hint = unquote_plus(urlparse(request.url).fragment)
        self._debug(f"  '{target_slug}' returned 404, searching for '{hint}'.")
        search_kwargs = {k: kwargs[k] for k in SEARCH_REQUEST_OPTIONS if k in kwargs}
        new_slug = self.resolver.resolve(target_slug, hint, **search_kwargs)
        if not new_slug:
            raise SlugMigrationError(stored_slug, hint, request=request)

        retry = self.transport.send(self._retarget(request, new_slug), **kwargs)
        if retry.status_code != 404:
            self.store.put(stored_slug, new_slug)
        else:
            self._debug(f"  '{new_slug}' returned 404 as well, alias not saved.")
        return retry

    def close(self) -> None:
        self.transport.close()


__all__ = [
    "PREF_URL_MAP",
    "SlugAliasAdapter",
    "SlugAliasStore",
    "SlugMigrationError",
    "SlugResolver",
    "extract_slug",
    "to_permanent_slug",
    "to_search_query",
]

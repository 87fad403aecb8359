"""Realm Scans: MangaThemesia site whose series slugs change over time."""

from __future__ import annotations

import os
from typing import Dict, List, Optional

from .base import CatalogEntry, CatalogPage, SiteComicContext
from .mangathemesia import MangaThemesiaSiteHandler
from .preferences import SourcePreferences, default_prefs_dir
from .slug_alias import (
    SlugAliasAdapter,
    SlugAliasStore,
    SlugResolver,
    extract_slug,
    to_permanent_slug,
)

PREF_PERM_MANGA_URL_KEY_PREFIX = "pref_permanent_manga_url_2_"
PREF_PERM_MANGA_URL_TITLE = "Permanent Manga URL"
PREF_PERM_MANGA_URL_SUMMARY = "Turns all manga urls into permanent ones."


class RealmScansSiteHandler(MangaThemesiaSiteHandler):
    """
    Realm Scans hands out ``<id>-<title>`` slugs and renames them later.

    Listing results are rewritten to the id-less slug (when the permanent URL
    setting is on) and every series request goes through
    :class:`SlugAliasAdapter`, which follows renames by searching the site.
    """

    manga_url_directory = "/series"

    def __init__(self, preferences: Optional[SourcePreferences] = None):
        super().__init__(
            name="realmscans",
            display_name="Realm Scans",
            base_url="https://realmscans.xyz",
            lang="en",
            version_code=25,
        )
        self.preferences: Optional[SourcePreferences] = None
        self.alias_store: Optional[SlugAliasStore] = None
        if preferences is not None:
            self.bind_preferences(preferences)

    @property
    def preferences_namespace(self) -> str:
        return f"source_{self.name}"

    def bind_preferences(self, preferences: SourcePreferences, log_debug_fn=None) -> None:
        self.preferences = preferences
        self.alias_store = SlugAliasStore(preferences, log_debug_fn=log_debug_fn)

    def _store(self) -> SlugAliasStore:
        if self.alias_store is None:
            raise RuntimeError(
                f"{self.display_name}: preferences are not bound; call configure_session first."
            )
        return self.alias_store

    def configure_session(self, scraper, args, log_debug_fn=None) -> None:
        super().configure_session(scraper, args, log_debug_fn)
        prefs_dir = getattr(args, "prefs_dir", None)
        if self.preferences is None or (
            prefs_dir
            and os.path.abspath(prefs_dir) != os.path.abspath(self.preferences.directory)
        ):
            self.bind_preferences(
                SourcePreferences(
                    prefs_dir or default_prefs_dir(), self.preferences_namespace, log_debug_fn
                ),
                log_debug_fn,
            )

        resolver = SlugResolver(
            lambda page, query, filters, **kw: MangaThemesiaSiteHandler.fetch_search_manga(
                self, page, query, filters, scraper, **kw
            ),
            log_debug_fn=log_debug_fn,
        )
        for domain in self.domains:
            prefix = f"https://{domain}"
            adapter = SlugAliasAdapter(
                self._store(),
                resolver,
                self.series_url,
                log_debug_fn=log_debug_fn,
                transport=scraper.get_adapter(prefix),
            )
            scraper.mount(prefix, adapter)

    # --- Permanent URL setting ---------------------------------------------
    @property
    def perma_url_pref_key(self) -> str:
        return PREF_PERM_MANGA_URL_KEY_PREFIX + self.lang

    @property
    def perma_url_enabled(self) -> bool:
        self._store()
        return self.preferences.get_bool(self.perma_url_pref_key, True)

    def set_perma_url_enabled(self, enabled: bool) -> None:
        self._store()
        self.preferences.put_bool(self.perma_url_pref_key, enabled)

    # --- Listings: temporary -> permanent URL ------------------------------
    def temp_url_to_perm_if_needed(self, entry: CatalogEntry) -> CatalogEntry:
        if not self.perma_url_enabled:
            return entry

        title_first_word = entry.title.split(" ")[0]
        if f"/{title_first_word}".lower() in entry.url.lower():
            return entry

        current_slug = extract_slug(entry.url)
        perma_slug = to_permanent_slug(current_slug)
        self._store().put(perma_slug, current_slug)
        entry.url = f"{self.manga_url_directory}/{perma_slug}/"
        return entry

    def _perm_urls(self, page: CatalogPage) -> CatalogPage:
        for entry in page.entries:
            self.temp_url_to_perm_if_needed(entry)
        return page

    def fetch_popular_manga(self, page: int, scraper) -> CatalogPage:
        return self._perm_urls(super().fetch_popular_manga(page, scraper))

    def fetch_latest_updates(self, page: int, scraper) -> CatalogPage:
        return self._perm_urls(super().fetch_latest_updates(page, scraper))

    def fetch_search_manga(
        self, page: int, query: str, filters: Optional[Dict], scraper
    ) -> CatalogPage:
        return self._perm_urls(super().fetch_search_manga(page, query, filters, scraper))

    # --- Series: stored URL -> current URL ---------------------------------
    def fetch_manga_details(
        self, entry: CatalogEntry, scraper, make_request
    ) -> SiteComicContext:
        return super().fetch_manga_details(
            self.title_to_url_fragment(entry), scraper, make_request
        )

    def get_manga_url(self, entry: CatalogEntry) -> str:
        db_slug = extract_slug(entry.url)
        stored_slug = self._store().get(db_slug) or db_slug
        return f"{self.series_url}/{stored_slug}/"

    def get_chapter_images(self, chapter: Dict, scraper, make_request) -> List[str]:
        images = super().get_chapter_images(chapter, scraper, make_request)
        return list(dict.fromkeys(images))


__all__ = [
    "PREF_PERM_MANGA_URL_KEY_PREFIX",
    "RealmScansSiteHandler",
]

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup


@dataclass
class SiteComicContext:
    comic: Dict
    title: str
    identifier: str
    soup: Optional[BeautifulSoup] = None


@dataclass
class CatalogEntry:
    """A series as it appears in a listing or search result."""

    title: str
    url: str
    thumbnail_url: Optional[str] = None


@dataclass
class CatalogPage:
    entries: List[CatalogEntry] = field(default_factory=list)
    has_next_page: bool = False


class BaseSiteHandler:
    """Base class for site-specific handlers."""

    name: str = "base"
    display_name: str = "Base"
    lang: str = "en"
    version_code: int = 1
    domains: tuple[str, ...] = ()

    def matches(self, url: str) -> bool:
        netloc = urlparse(url).netloc.lower()
        return any(domain in netloc for domain in self.domains)

    # --- Session lifecycle -------------------------------------------------
    def configure_session(self, scraper, args, log_debug_fn=None) -> None:
        """Give the handler a chance to tweak the HTTP session."""
        return None

    # --- Catalog listings --------------------------------------------------
    def fetch_popular_manga(self, page: int, scraper) -> CatalogPage:
        raise NotImplementedError

    def fetch_latest_updates(self, page: int, scraper) -> CatalogPage:
        raise NotImplementedError

    def fetch_search_manga(
        self, page: int, query: str, filters: Optional[Dict], scraper
    ) -> CatalogPage:
        raise NotImplementedError

    # --- Series retrieval --------------------------------------------------
    def fetch_comic_context(self, url: str, scraper, make_request) -> SiteComicContext:
        """Return the key comic data for downstream processing."""
        raise NotImplementedError

    def fetch_manga_details(
        self, entry: CatalogEntry, scraper, make_request
    ) -> SiteComicContext:
        return self.fetch_comic_context(entry.url, scraper, make_request)

    def get_manga_url(self, entry: CatalogEntry) -> str:
        """Browser URL for the series."""
        return entry.url

    # --- Chapter helpers ---------------------------------------------------
    def get_chapters(
        self, context: SiteComicContext, scraper, make_request
    ) -> List[Dict]:
        raise NotImplementedError

    def fetch_chapter_list(
        self, entry: CatalogEntry, scraper, make_request
    ) -> List[Dict]:
        context = self.fetch_manga_details(entry, scraper, make_request)
        return self.get_chapters(context, scraper, make_request)

    def get_chapter_images(self, chapter: Dict, scraper, make_request) -> List[str]:
        raise NotImplementedError


__all__ = [
    "BaseSiteHandler",
    "CatalogEntry",
    "CatalogPage",
    "SiteComicContext",
]

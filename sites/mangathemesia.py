"""Base handler for MangaThemesia-based sites."""

from __future__ import annotations

import json
import re
from dataclasses import replace
from typing import Callable, Dict, List, Optional
from urllib.parse import urlencode, urljoin, urlparse

from bs4 import BeautifulSoup

from .base import BaseSiteHandler, CatalogEntry, CatalogPage, SiteComicContext
from .slug_alias import extract_slug, to_search_query

_TS_READER_MARKER = "ts_reader.run("
_CHAPTER_URL_RE = re.compile(r"chapter-(\d+(?:\.\d+)?)")
_CHAPTER_TITLE_RE = re.compile(r"Chapter\s+(\d+(?:\.\d+)?)", re.IGNORECASE)
_FIRST_NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")

SEARCH_FILTER_PARAMS = ("status", "type", "order", "author", "yearx")


def extract_ts_reader_payload(html: str) -> Optional[Dict]:
    """Return the JSON object passed to ``ts_reader.run(...)``, if any."""
    start = html.find(_TS_READER_MARKER)
    if start == -1:
        return None
    raw = html[start + len(_TS_READER_MARKER):].lstrip()
    # Minified themes emit !0 / !1 for true / false.
    raw = raw.replace("!0", "true").replace("!1", "false")
    try:
        payload, _ = json.JSONDecoder().raw_decode(raw)
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def _ts_reader_images(payload: Optional[Dict]) -> List[str]:
    if not payload:
        return []
    sources = payload.get("sources")
    if not isinstance(sources, list) or not sources:
        return []
    images = sources[0].get("images") if isinstance(sources[0], dict) else None
    return [img for img in images if isinstance(img, str)] if isinstance(images, list) else []


def _derive_domains(base_url: str) -> tuple:
    netloc = urlparse(base_url).netloc
    bare = netloc[4:] if netloc.startswith("www.") else netloc
    return (bare, f"www.{bare}")


class MangaThemesiaSiteHandler(BaseSiteHandler):
    """
    Shared scraper for MangaThemesia (formerly WPMangaStream / WPMangaReader)
    sites.

    Sites built on the theme share listing, series and reader markup, so a
    plain site only needs its name, base URL and language. Sites that
    deviate override the selectors or ``manga_url_directory``.
    """

    manga_url_directory: str = "/manga"
    listing_selector: str = ".utao .uta .imgu, .listupd .bs .bsx, .listo .bs .bsx"
    next_page_selector: str = "div.pagination .next, div.hpage .r"
    chapter_selector: str = "#chapterlist li, .eplister li, .chapter-list li"

    def __init__(
        self,
        name: str,
        display_name: str,
        base_url: str,
        lang: str = "en",
        domains: Optional[tuple] = None,
        manga_url_directory: Optional[str] = None,
        version_code: int = 1,
        url_normalizer: Optional[Callable[[str], str]] = None,
    ):
        self.name = name
        self.display_name = display_name
        self.base_url = base_url.rstrip("/")
        self.lang = lang
        self.domains = domains or _derive_domains(self.base_url)
        if manga_url_directory is not None:
            self.manga_url_directory = manga_url_directory
        self.version_code = version_code
        self._url_normalizer = url_normalizer

    def configure_session(self, scraper, args, log_debug_fn=None) -> None:
        scraper.headers.update({"Referer": f"{self.base_url}/"})

    # ------------------------------------------------------------------ helpers
    def _make_soup(self, html: str) -> BeautifulSoup:
        return BeautifulSoup(html, "html.parser")

    def _normalize_url(self, url: str) -> str:
        if self._url_normalizer:
            return self._url_normalizer(url)
        return url

    def _absolute_url(self, url: str) -> str:
        if url.startswith("http"):
            return self._normalize_url(url)
        return self._normalize_url(urljoin(f"{self.base_url}/", url))

    @property
    def series_url(self) -> str:
        return f"{self.base_url}{self.manga_url_directory}"

    # ---------------------------------------------------------------- listings
    def popular_manga_url(self, page: int) -> str:
        return self.search_manga_url(page, "", {"order": "popular"})

    def latest_updates_url(self, page: int) -> str:
        return self.search_manga_url(page, "", {"order": "update"})

    def search_manga_url(self, page: int, query: str, filters: Optional[Dict]) -> str:
        params = []
        if query:
            params.append(("title", query))
        params.append(("page", str(page)))
        filters = filters or {}
        for key in SEARCH_FILTER_PARAMS:
            value = filters.get(key)
            if value:
                params.append((key, value))
        for genre in filters.get("genres") or ():
            params.append(("genre[]", genre))
        return f"{self.series_url}/?{urlencode(params)}"

    def parse_catalog_page(self, html: str) -> CatalogPage:
        soup = self._make_soup(html)
        entries: List[CatalogEntry] = []
        for node in soup.select(self.listing_selector):
            entry = self._entry_from_node(node)
            if entry:
                entries.append(entry)
        has_next = soup.select_one(self.next_page_selector) is not None
        return CatalogPage(entries=entries, has_next_page=has_next)

    def _entry_from_node(self, node) -> Optional[CatalogEntry]:
        link = node if node.name == "a" else node.select_one("a")
        if not link or not link.get("href"):
            return None
        title = link.get("title") or ""
        if not title:
            title_node = node.select_one(".tt, .bigor .tt, h2")
            title = title_node.get_text(strip=True) if title_node else link.get_text(strip=True)
        thumb = None
        img = node.select_one("img")
        if img:
            thumb = img.get("data-src") or img.get("data-lazy-src") or img.get("src")
        return CatalogEntry(
            title=title.strip(),
            url=urlparse(link["href"]).path,
            thumbnail_url=thumb,
        )

    def _fetch_catalog_page(self, url: str, scraper, **request_kwargs) -> CatalogPage:
        response = scraper.get(url, **request_kwargs)
        response.raise_for_status()
        return self.parse_catalog_page(response.text)

    def fetch_popular_manga(self, page: int, scraper) -> CatalogPage:
        return self._fetch_catalog_page(self.popular_manga_url(page), scraper)

    def fetch_latest_updates(self, page: int, scraper) -> CatalogPage:
        return self._fetch_catalog_page(self.latest_updates_url(page), scraper)

    def fetch_search_manga(
        self, page: int, query: str, filters: Optional[Dict], scraper, **request_kwargs
    ) -> CatalogPage:
        return self._fetch_catalog_page(
            self.search_manga_url(page, query, filters), scraper, **request_kwargs
        )

    # ------------------------------------------------------------------ series
    def title_to_url_fragment(self, entry: CatalogEntry) -> CatalogEntry:
        """Copy of ``entry`` whose URL carries the title as a search hint."""
        if not entry.title:
            return entry
        base = entry.url.split("#", 1)[0]
        return replace(entry, url=f"{base}#{to_search_query(entry.title)}")

    def get_manga_url(self, entry: CatalogEntry) -> str:
        return self._absolute_url(entry.url.split("#", 1)[0])

    def fetch_manga_details(
        self, entry: CatalogEntry, scraper, make_request
    ) -> SiteComicContext:
        return self.fetch_comic_context(self._absolute_url(entry.url), scraper, make_request)

    def fetch_comic_context(self, url: str, scraper, make_request) -> SiteComicContext:
        url = self._normalize_url(url)
        response = make_request(url, scraper)
        soup = self._make_soup(response.text)

        title_node = soup.select_one("h1.entry-title, h1.series-title, h1.post-title")
        if title_node:
            title = title_node.get_text(strip=True)
        elif soup.title:
            title = soup.title.get_text(strip=True).split("-")[0].strip()
        else:
            title = "Unknown"

        desc_node = soup.select_one(
            ".entry-content[itemprop=description], .entry-content p, .summary__content p"
        )
        desc = desc_node.get_text(" ", strip=True) if desc_node else None

        cover = None
        cover_node = soup.select_one(".thumb img, .summary_image img")
        if cover_node:
            cover = (
                cover_node.get("data-src")
                or cover_node.get("data-lazy-src")
                or cover_node.get("src")
            )

        authors = [
            node.get_text(strip=True)
            for node in soup.select(".imptdt:-soup-contains('Author') i, .author-content a")
        ]
        genres = [
            node.get_text(strip=True)
            for node in soup.select(".mgen a, .seriestugenre a, .genres-content a")
        ]
        status_node = soup.select_one(
            ".imptdt:-soup-contains('Status') i, .tsinfo .imptdt i, .status-content"
        )
        status = status_node.get_text(strip=True) if status_node else "Unknown"

        slug = extract_slug(url)
        comic = {
            "hid": slug,
            "title": title,
            "desc": desc,
            "cover": cover,
            "authors": [a for a in authors if a],
            "genres": [g for g in genres if g],
            "status": status,
            "url": url,
        }
        return SiteComicContext(comic=comic, title=title, identifier=slug, soup=soup)

    # ---------------------------------------------------------------- chapters
    def _chapter_number(self, href: str, title: str) -> float:
        for pattern, text in (
            (_CHAPTER_URL_RE, href),
            (_CHAPTER_TITLE_RE, title),
            (_FIRST_NUMBER_RE, title),
        ):
            match = pattern.search(text)
            if match:
                return float(match.group(1))
        return 0.0

    def _chapter_from_node(self, item) -> Optional[Dict]:
        link = item if item.name == "a" else item.select_one("a")
        if not link or not link.get("href"):
            # Locked/paid chapters have no link.
            return None
        href = self._absolute_url(link["href"])

        title_node = link.select_one(".chapternum, .epl-num")
        if title_node:
            title = title_node.get_text(strip=True)
        else:
            title = link.get_text(separator=" ", strip=True)
        date_node = link.select_one(".chapterdate, .epl-date")

        return {
            "hid": href,
            "chap": self._chapter_number(href, title),
            "title": title,
            "url": href,
            "uploaded": date_node.get_text(strip=True) if date_node else "",
        }

    def get_chapters(
        self, context: SiteComicContext, scraper, make_request
    ) -> List[Dict]:
        soup = context.soup
        if soup is None:
            soup = self._make_soup(make_request(context.comic["url"], scraper).text)

        chapters = []
        for item in soup.select(self.chapter_selector):
            chapter = self._chapter_from_node(item)
            if chapter:
                chapters.append(chapter)

        # Listed newest first.
        chapters.reverse()
        return chapters

    def get_chapter_images(self, chapter: Dict, scraper, make_request) -> List[str]:
        url = self._absolute_url(chapter["url"])
        html = make_request(url, scraper).text

        images = _ts_reader_images(extract_ts_reader_payload(html))
        if not images:
            soup = self._make_soup(html)
            images = [
                img.get("data-src") or img.get("src")
                for img in soup.select("#readerarea img, .reading-content img")
            ]
        return [urljoin(url, src.strip()) for src in images if src and src.strip()]


__all__ = [
    "MangaThemesiaSiteHandler",
    "extract_ts_reader_payload",
]

"""Site handlers for the catalog tools."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .base import BaseSiteHandler, CatalogEntry, CatalogPage, SiteComicContext
from .mangathemesia import MangaThemesiaSiteHandler
from .mangathemesia_sites import MANGATHEMESIA_BASE_VERSION_CODE, MANGATHEMESIA_SITES
from .realmscans import RealmScansSiteHandler


def _build_mangathemesia_handlers() -> List[BaseSiteHandler]:
    handlers: List[BaseSiteHandler] = []
    for site_conf in MANGATHEMESIA_SITES:
        langs = site_conf.get("langs", ("en",))
        for index, lang in enumerate(langs):
            name = site_conf["name"] if index == 0 else f"{site_conf['name']}-{lang}"
            handlers.append(
                MangaThemesiaSiteHandler(
                    name=name,
                    display_name=site_conf["display_name"],
                    base_url=site_conf["base_url"],
                    lang=lang,
                    domains=site_conf.get("domains"),
                    manga_url_directory=site_conf.get("manga_url_directory"),
                    version_code=site_conf.get(
                        "version_code", MANGATHEMESIA_BASE_VERSION_CODE
                    ),
                    url_normalizer=site_conf.get("url_normalizer"),
                )
            )
    return handlers


# Overrides come first so they win domain matching.
_REGISTERED_HANDLERS: Iterable[BaseSiteHandler] = tuple(
    [RealmScansSiteHandler()] + _build_mangathemesia_handlers()
)


def registered_handlers() -> tuple:
    return tuple(_REGISTERED_HANDLERS)


def get_handler_by_name(name: str) -> Optional[BaseSiteHandler]:
    lowered = name.lower()
    for handler in _REGISTERED_HANDLERS:
        if handler.name == lowered:
            return handler
    return None


def get_handler_for_url(url: str) -> Optional[BaseSiteHandler]:
    for handler in _REGISTERED_HANDLERS:
        if handler.matches(url):
            return handler
    return None


__all__ = [
    "BaseSiteHandler",
    "CatalogEntry",
    "CatalogPage",
    "SiteComicContext",
    "get_handler_by_name",
    "get_handler_for_url",
    "registered_handlers",
]

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ------------------------------------------------------------------
# Multi-site catalog browser  →  listings, series, chapters, pages
# -----------------------------------------------------------
import argparse
import sys
from typing import List, Optional

import cloudscraper
import requests

from sites import get_handler_by_name, get_handler_for_url, registered_handlers
from sites.base import CatalogEntry, CatalogPage
from sites.preferences import default_prefs_dir
from sites.realmscans import PREF_PERM_MANGA_URL_SUMMARY, PREF_PERM_MANGA_URL_TITLE
from sites.slug_alias import SlugMigrationError

_VERBOSE = False  # Global flag for standard verbose output
_DEBUG = False  # Global flag for debug-level output


# -----------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------
def log_verbose(*args, **kwargs):
    """Prints if --verbose or --debug is set."""
    if _VERBOSE or _DEBUG:
        print(*args, **kwargs)


def log_debug(*args, **kwargs):
    """Prints only if --debug is set."""
    if _DEBUG:
        print(*args, **kwargs)


def make_request(url: str, scraper):
    try:
        r = scraper.get(url)
        # Cloudflare sometimes answers 403 with the real page attached
        if r.status_code >= 400:
            if not r.text or len(r.text) < 100:
                r.raise_for_status()
            log_verbose(f"  Warning: Got status {r.status_code} but response has content, continuing...")
        return r
    except SlugMigrationError as e:
        sys.exit(f"Series moved and could not be relocated: {e}")
    except requests.exceptions.RequestException as e:
        sys.exit(f"Request failed: {e}")


def resolve_site_handler(url: Optional[str], site_name: Optional[str]):
    if site_name:
        handler = get_handler_by_name(site_name)
        if not handler:
            sys.exit(f"Unknown site handler: {site_name}")
        return handler

    handler = get_handler_for_url(url) if url and url.startswith("http") else None
    if not handler:
        sys.exit(
            "Unable to auto-detect a site handler. "
            "Please specify one with --site."
        )
    return handler


def create_scraper(cookies: str = ""):
    scraper = cloudscraper.create_scraper(
        browser={
            "browser": "chrome",
            "platform": "darwin",
            "mobile": False,
        }
    )
    if cookies:
        scraper.cookies.update(
            dict(kv.split("=", 1) for kv in cookies.split(";") if "=" in kv)
        )
    return scraper


# -----------------------------------------------------------
# Output
# -----------------------------------------------------------
def print_catalog_page(page: CatalogPage) -> None:
    if not page.entries:
        print("No results.")
    for entry in page.entries:
        print(f"{entry.title}\n    {entry.url}")
        log_debug(f"    thumbnail: {entry.thumbnail_url}")
    if page.has_next_page:
        print("(more results on the next page)")


def _entry_from_args(args) -> CatalogEntry:
    return CatalogEntry(title=args.title or "", url=args.url)


# -----------------------------------------------------------
# Commands
# -----------------------------------------------------------
def cmd_sites(args, handler, scraper):
    for h in registered_handlers():
        print(f"{h.name:<20} {h.display_name:<26} {h.lang:<3} v{h.version_code:<3} {getattr(h, 'base_url', '')}")


def cmd_popular(args, handler, scraper):
    print_catalog_page(_listing(handler.fetch_popular_manga, args.page, scraper))


def cmd_latest(args, handler, scraper):
    print_catalog_page(_listing(handler.fetch_latest_updates, args.page, scraper))


def cmd_search(args, handler, scraper):
    filters = {
        "status": args.status,
        "type": args.type,
        "order": args.order,
        "genres": args.genre,
    }
    print_catalog_page(
        _listing(handler.fetch_search_manga, args.page, args.query, filters, scraper)
    )


def _listing(fetch, *fetch_args):
    try:
        return fetch(*fetch_args)
    except requests.exceptions.RequestException as e:
        sys.exit(f"Request failed: {e}")


def cmd_details(args, handler, scraper):
    entry = _entry_from_args(args)
    context = handler.fetch_manga_details(entry, scraper, make_request)
    comic = context.comic
    print(f"{context.title} (hid={context.identifier})")
    print(f"  Status:  {comic.get('status')}")
    if comic.get("authors"):
        print(f"  Authors: {', '.join(comic['authors'])}")
    if comic.get("genres"):
        print(f"  Genres:  {', '.join(comic['genres'])}")
    print(f"  Web URL: {handler.get_manga_url(entry)}")
    if comic.get("desc"):
        print()
        print(comic["desc"])


def cmd_chapters(args, handler, scraper):
    chapters = handler.fetch_chapter_list(_entry_from_args(args), scraper, make_request)
    log_verbose(f"Found {len(chapters)} chapters.")
    for chapter in chapters:
        uploaded = f"  [{chapter['uploaded']}]" if chapter.get("uploaded") else ""
        print(f"{chapter['chap']:>7g}  {chapter['title']}{uploaded}\n         {chapter['url']}")


def cmd_pages(args, handler, scraper):
    images: List[str] = handler.get_chapter_images({"url": args.url}, scraper, make_request)
    log_verbose(f"Found {len(images)} pages.")
    for index, src in enumerate(images, start=1):
        print(f"{index:>4}  {src}")


def cmd_aliases(args, handler, scraper):
    store = getattr(handler, "alias_store", None)
    if store is None:
        sys.exit(f"{handler.display_name} does not keep slug aliases.")
    aliases = store.snapshot()
    if not aliases:
        print("No slug aliases stored.")
    for stored, current in sorted(aliases.items()):
        print(f"{stored} -> {current}")


def cmd_perma_url(args, handler, scraper):
    if not hasattr(handler, "set_perma_url_enabled"):
        sys.exit(f"{handler.display_name} has no '{PREF_PERM_MANGA_URL_TITLE}' setting.")
    if args.state != "show":
        handler.set_perma_url_enabled(args.state == "on")
    state = "on" if handler.perma_url_enabled else "off"
    print(f"{PREF_PERM_MANGA_URL_TITLE}: {state}  ({PREF_PERM_MANGA_URL_SUMMARY})")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser("webtoon-catalog")
    p.add_argument(
        "--site",
        type=str,
        default=None,
        help="Explicitly select the site handler (auto-detected by URL when omitted).",
    )
    p.add_argument(
        "--prefs-dir",
        default=default_prefs_dir(),
        help="Directory holding per-source settings and slug aliases.",
    )
    p.add_argument("--cookies", default="")
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable detailed, step-by-step logging.",
    )
    p.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable highly detailed debug-level logging (slug aliases, re-resolution).",
    )

    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("sites", help="List the registered site handlers.").set_defaults(func=cmd_sites)

    for name, func, help_text in (
        ("popular", cmd_popular, "Browse popular series."),
        ("latest", cmd_latest, "Browse recently updated series."),
    ):
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("--page", type=int, default=1)
        sp.set_defaults(func=func)

    sp = sub.add_parser("search", help="Search the site catalog.")
    sp.add_argument("query")
    sp.add_argument("--page", type=int, default=1)
    sp.add_argument("--status", default=None, help="e.g. ongoing, completed, hiatus")
    sp.add_argument("--type", default=None, help="e.g. manga, manhwa, manhua")
    sp.add_argument("--order", default=None, help="e.g. title, update, popular")
    sp.add_argument("--genre", nargs="+", default=[])
    sp.set_defaults(func=cmd_search)

    for name, func, help_text in (
        ("details", cmd_details, "Show series details."),
        ("chapters", cmd_chapters, "List the chapters of a series."),
    ):
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("url", help="Series URL or path as stored in your library.")
        sp.add_argument(
            "--title",
            default=None,
            help="Series title; used to find the series again if its URL changed.",
        )
        sp.set_defaults(func=func)

    sp = sub.add_parser("pages", help="List the page images of a chapter.")
    sp.add_argument("url")
    sp.set_defaults(func=cmd_pages)

    sub.add_parser("aliases", help="Show stored slug aliases.").set_defaults(func=cmd_aliases)

    sp = sub.add_parser("perma-url", help=PREF_PERM_MANGA_URL_SUMMARY)
    sp.add_argument("state", choices=["on", "off", "show"])
    sp.set_defaults(func=cmd_perma_url)
    return p


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)

    global _VERBOSE, _DEBUG
    _VERBOSE = args.verbose
    _DEBUG = args.debug

    scraper = create_scraper(args.cookies)
    if args.command == "sites":
        return args.func(args, None, scraper)

    handler = resolve_site_handler(getattr(args, "url", None), args.site)
    log_verbose(f"Using site handler: {handler.display_name} ({handler.name})")
    handler.configure_session(scraper, args, log_debug_fn=log_debug)
    return args.func(args, handler, scraper)


if __name__ == "__main__":
    main()

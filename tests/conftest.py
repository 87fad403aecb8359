"""Shared fixtures: a fake site behind requests' transport layer."""

from __future__ import annotations

import io
from typing import Dict, List, Tuple

import pytest
import requests
from requests.adapters import HTTPAdapter

from sites.preferences import SourcePreferences
from sites.realmscans import RealmScansSiteHandler


class FakeSite:
    """Answers requests by exact URL; anything unknown is a 404."""

    def __init__(self) -> None:
        self.routes: Dict[str, Tuple[int, str]] = {}
        self.sent: List[str] = []
        self.timeouts: List[object] = []

    def add(self, url: str, status: int = 200, body: str = "") -> None:
        self.routes[url] = (status, body)

    def send(self, adapter, request, **kwargs):
        self.sent.append(request.url)
        self.timeouts.append(kwargs.get("timeout"))
        status, body = self.routes.get(request.url, (404, "not found"))
        response = requests.Response()
        response.status_code = status
        response._content = body.encode("utf-8")
        response.raw = io.BytesIO(b"")
        response.url = request.url
        response.request = request
        response.encoding = "utf-8"
        return response


@pytest.fixture
def fake_site(monkeypatch):
    site = FakeSite()
    monkeypatch.setattr(
        HTTPAdapter, "send", lambda adapter, request, **kw: site.send(adapter, request, **kw)
    )
    return site


@pytest.fixture
def prefs(tmp_path):
    return SourcePreferences(str(tmp_path), "source_realmscans")


@pytest.fixture
def realm(prefs):
    return RealmScansSiteHandler(preferences=prefs)


@pytest.fixture
def realm_session(realm, fake_site):
    session = requests.Session()
    realm.configure_session(session, None)
    return session


def listing_html(*entries: Tuple[str, str], next_page: bool = False) -> str:
    items = "".join(
        f'<div class="bs"><div class="bsx"><a href="{url}" title="{title}">'
        f'<img src="https://cdn.example/{i}.jpg"/><div class="tt">{title}</div></a></div></div>'
        for i, (title, url) in enumerate(entries)
    )
    pagination = '<div class="hpage"><a class="r" href="?page=2">Next</a></div>' if next_page else ""
    return f'<html><body><div class="listupd">{items}</div>{pagination}</body></html>'


def series_html(title: str, chapters: List[Tuple[str, str]] = ()) -> str:
    items = "".join(
        f'<li><a href="{url}"><span class="chapternum">{name}</span>'
        f'<span class="chapterdate">January 1, 2024</span></a></li>'
        for name, url in chapters
    )
    return (
        f'<html><body><h1 class="entry-title">{title}</h1>'
        f'<div class="entry-content" itemprop="description"><p>About {title}.</p></div>'
        f'<div id="chapterlist"><ul>{items}</ul></div></body></html>'
    )

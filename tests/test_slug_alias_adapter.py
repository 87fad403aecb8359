"""Series requests through SlugAliasAdapter, against a fake Realm Scans."""

from __future__ import annotations

import pytest
import requests
from requests.adapters import HTTPAdapter

from conftest import listing_html
from sites.slug_alias import SlugAliasAdapter, SlugMigrationError

BASE = "https://realmscans.xyz"
STORED_URL = f"{BASE}/series/42-old-name/#old name"


def _search_url(realm, query):
    return realm.search_manga_url(1, query, None)


def test_request_without_fragment_is_not_rewritten(realm, realm_session, fake_site):
    url = f"{BASE}/series/?page=1&order=popular"
    fake_site.add(url, body="listing")

    response = realm_session.get(url)

    assert response.status_code == 200
    assert fake_site.sent == [url]
    assert realm.alias_store.snapshot() == {}


def test_stored_slug_is_used_when_no_alias(realm, realm_session, fake_site):
    fake_site.add(f"{BASE}/series/42-old-name/", body="series page")

    response = realm_session.get(STORED_URL)

    assert response.text == "series page"
    assert fake_site.sent == [f"{BASE}/series/42-old-name/"]
    assert realm.alias_store.snapshot() == {}


def test_fragment_is_never_sent(realm, realm_session, fake_site):
    fake_site.add(f"{BASE}/series/42-old-name/")
    realm_session.get(STORED_URL)
    assert all("#" not in url for url in fake_site.sent)


def test_alias_is_applied_before_sending(realm, realm_session, fake_site):
    realm.alias_store.put("some-title", "42-some-title")
    fake_site.add(f"{BASE}/series/42-some-title/", body="current")

    response = realm_session.get(f"{BASE}/series/some-title/#some+title")

    assert response.text == "current"
    assert fake_site.sent == [f"{BASE}/series/42-some-title/"]


def test_not_found_triggers_reresolution_and_one_retry(realm, realm_session, fake_site):
    fake_site.add(f"{BASE}/series/42-old-name/", status=404)
    fake_site.add(
        _search_url(realm, "old name"),
        body=listing_html(
            ("Another Series", f"{BASE}/series/another-series/"),
            ("The Old Name Reborn", f"{BASE}/series/the-old-name-reborn/"),
        ),
    )
    fake_site.add(f"{BASE}/series/the-old-name-reborn/", body="moved here")

    response = realm_session.get(STORED_URL)

    assert response.status_code == 200
    assert response.text == "moved here"
    assert fake_site.sent == [
        f"{BASE}/series/42-old-name/",
        _search_url(realm, "old name"),
        f"{BASE}/series/the-old-name-reborn/",
    ]
    assert realm.alias_store.get("42-old-name") == "the-old-name-reborn"


def test_plus_encoded_hint_is_searched_as_words(realm, realm_session, fake_site):
    fake_site.add(
        _search_url(realm, "old name"),
        body=listing_html(("Old Name", f"{BASE}/series/old-name/")),
    )
    fake_site.add(f"{BASE}/series/old-name/", body="ok")

    response = realm_session.get(f"{BASE}/series/42-old-name/#old+name")

    assert response.text == "ok"
    assert _search_url(realm, "old name") in fake_site.sent


def test_reresolution_is_remembered_for_the_next_request(realm, realm_session, fake_site):
    fake_site.add(
        _search_url(realm, "old name"),
        body=listing_html(("Old Name", f"{BASE}/series/the-old-name-reborn/")),
    )
    fake_site.add(f"{BASE}/series/the-old-name-reborn/", body="ok")
    realm_session.get(STORED_URL)
    fake_site.sent.clear()

    realm_session.get(STORED_URL)

    assert fake_site.sent == [f"{BASE}/series/the-old-name-reborn/"]


def test_no_search_match_raises_migration_error(realm, realm_session, fake_site):
    fake_site.add(
        _search_url(realm, "old name"),
        body=listing_html(("Something Else", f"{BASE}/series/something-else/")),
    )

    with pytest.raises(SlugMigrationError) as excinfo:
        realm_session.get(STORED_URL)

    assert excinfo.value.slug == "42-old-name"
    assert excinfo.value.hint == "old name"
    assert isinstance(excinfo.value, requests.exceptions.RequestException)
    assert realm.alias_store.snapshot() == {}


def test_failed_search_request_raises_migration_error(realm, realm_session, fake_site):
    fake_site.add(_search_url(realm, "old name"), status=500)

    with pytest.raises(SlugMigrationError):
        realm_session.get(STORED_URL)
    assert realm.alias_store.snapshot() == {}


def test_retry_is_attempted_only_once(realm, realm_session, fake_site):
    fake_site.add(
        _search_url(realm, "old name"),
        body=listing_html(("Old Name", f"{BASE}/series/old-name-2/")),
    )

    response = realm_session.get(STORED_URL)

    assert response.status_code == 404
    assert fake_site.sent.count(_search_url(realm, "old name")) == 1
    assert len(fake_site.sent) == 3
    assert realm.alias_store.snapshot() == {}


@pytest.mark.parametrize("status", [200, 403, 500, 503])
def test_other_statuses_pass_through(realm, realm_session, fake_site, status):
    fake_site.add(f"{BASE}/series/42-old-name/", status=status, body="x")

    response = realm_session.get(STORED_URL)

    assert response.status_code == status
    assert fake_site.sent == [f"{BASE}/series/42-old-name/"]
    assert realm.alias_store.snapshot() == {}


def test_transport_errors_propagate(realm, realm_session, monkeypatch):
    def refuse(adapter, request, **kwargs):
        raise requests.exceptions.ConnectTimeout("timed out")

    monkeypatch.setattr(HTTPAdapter, "send", refuse)

    with pytest.raises(requests.exceptions.ConnectTimeout):
        realm_session.get(STORED_URL)


def test_dead_retry_keeps_the_previous_alias(realm, realm_session, fake_site):
    realm.alias_store.put("42-old-name", "old-name-1")
    fake_site.add(
        _search_url(realm, "old name"),
        body=listing_html(("Old Name", f"{BASE}/series/old-name-2/")),
    )

    response = realm_session.get(STORED_URL)

    assert response.status_code == 404
    assert fake_site.sent[-1] == f"{BASE}/series/old-name-2/"
    assert realm.alias_store.snapshot() == {"42-old-name": "old-name-1"}


def test_timeout_applies_to_search_and_retry(realm, realm_session, fake_site):
    fake_site.add(
        _search_url(realm, "old name"),
        body=listing_html(("The Old Name Reborn", f"{BASE}/series/the-old-name-reborn/")),
    )
    fake_site.add(f"{BASE}/series/the-old-name-reborn/", body="moved here")

    realm_session.get(STORED_URL, timeout=5)

    assert fake_site.sent == [
        f"{BASE}/series/42-old-name/",
        _search_url(realm, "old name"),
        f"{BASE}/series/the-old-name-reborn/",
    ]
    assert fake_site.timeouts == [5, 5, 5]


def test_requests_go_through_the_adapter_it_replaced(realm, fake_site):
    class RecordingAdapter(HTTPAdapter):
        def __init__(self):
            super().__init__()
            self.urls = []

        def send(self, request, **kwargs):
            self.urls.append(request.url)
            return super().send(request, **kwargs)

    session = requests.Session()
    recording = RecordingAdapter()
    session.mount("https://", recording)
    realm.configure_session(session, None)
    fake_site.add(f"{BASE}/series/42-old-name/", body="series page")

    response = session.get(STORED_URL)

    assert response.text == "series page"
    assert recording.urls == [f"{BASE}/series/42-old-name/"]
    assert session.get_adapter(STORED_URL).transport is recording


def test_cloudscraper_cipher_adapter_stays_in_use(realm):
    import cloudscraper

    scraper = cloudscraper.create_scraper()
    cipher_adapter = scraper.get_adapter(f"{BASE}/")
    assert isinstance(cipher_adapter, cloudscraper.CipherSuiteAdapter)

    realm.configure_session(scraper, None)
    realm.configure_session(scraper, None)

    adapter = scraper.get_adapter(f"{BASE}/series/x/")
    assert isinstance(adapter, SlugAliasAdapter)
    assert adapter.transport is cipher_adapter

from __future__ import annotations

import json
from datetime import timedelta

from linkedin_profile_pkg.cookies_auth import load_cookies_file, sanitize_cookies
from linkedin_profile_pkg.models import CookieRecord
from linkedin_profile_pkg.session_store import SessionStore


def _cookie(name="li_at", domain=".linkedin.com"):
    return CookieRecord(name=name, value="token", domain=domain, httpOnly=True, secure=True)


def test_save_keeps_only_linkedin_cookies(memory_cache):
    store = SessionStore(memory_cache, "jane@example.com")
    saved = store.save([_cookie(), _cookie("JSESSIONID", ".www.linkedin.com"), _cookie("_ga", ".google.com")])
    assert saved == 2
    assert [c.name for c in store.load()] == ["li_at", "JSESSIONID"]


def test_cookies_are_stored_under_account_key_with_long_ttl(memory_cache):
    store = SessionStore(memory_cache, "jane@example.com")
    store.save([_cookie()])
    assert memory_cache.writes == ["linkedin_cookies:jane@example.com"]
    assert store.ttl == timedelta(hours=24 * 7)


def test_nothing_saved_without_domain_cookies(memory_cache):
    store = SessionStore(memory_cache, "jane@example.com")
    assert store.save([_cookie("_ga", ".google.com")]) == 0
    assert memory_cache.writes == []
    assert store.load() is None


def test_round_trip_keeps_playwright_field_names(memory_cache):
    store = SessionStore(memory_cache, "jane@example.com")
    store.save([_cookie()])
    raw = json.loads(memory_cache.get("linkedin_cookies:jane@example.com"))
    assert raw[0]["httpOnly"] is True
    assert raw[0]["sameSite"] == "Lax"
    (loaded,) = store.load()
    assert loaded.to_playwright()["httpOnly"] is True


def test_garbage_payload_loads_as_no_session(memory_cache):
    store = SessionStore(memory_cache, "jane@example.com")
    memory_cache.set(store.key, b"not-json", timedelta(hours=1))
    assert store.load() is None
    memory_cache.set(store.key, b'[{"name": "li_at"}]', timedelta(hours=1))
    assert store.load() is None
    memory_cache.set(store.key, b"[]", timedelta(hours=1))
    assert store.load() is None


def test_clear_removes_session(memory_cache):
    store = SessionStore(memory_cache, "jane@example.com")
    store.save([_cookie()])
    store.clear()
    assert store.load() is None


def test_sanitize_cookies_from_browser_export():
    exported = [
        {"name": "li_at", "value": " abc def ", "domain": "www.linkedin.com", "sameSite": "no_restriction",
         "expirationDate": 1893456000, "hostOnly": False, "storeId": "0"},
        {"name": "lang", "value": "v=2", "domain": ".linkedin.com", "sameSite": "unspecified"},
        {"name": "other", "value": "x", "domain": ".example.com"},
        {"name": "", "value": "x", "domain": ".linkedin.com"},
    ]
    cookies = sanitize_cookies(exported)
    assert [c.name for c in cookies] == ["li_at", "lang"]
    li_at = cookies[0]
    assert li_at.value == "abcdef"
    assert li_at.domain == ".www.linkedin.com"
    assert li_at.same_site == "None"
    assert li_at.expires == 1893456000
    assert cookies[1].same_site == "Lax"


def test_load_cookies_file(tmp_path):
    path = tmp_path / "cookies.json"
    path.write_text(json.dumps([{"name": "li_at", "value": "t", "domain": ".linkedin.com"}]), encoding="utf-8")
    assert [c.name for c in load_cookies_file(str(path))] == ["li_at"]
    assert load_cookies_file(str(tmp_path / "missing.json")) == []
    path.write_text("{broken", encoding="utf-8")
    assert load_cookies_file(str(path)) == []

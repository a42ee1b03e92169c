from __future__ import annotations

from datetime import timedelta

import pyotp
import pytest

from conftest import FakeJar, FakePageQuery
from linkedin_profile_pkg.auth import AuthState, Authenticator
from linkedin_profile_pkg.config import LINKEDIN_FEED_URL, LINKEDIN_LOGIN_URL
from linkedin_profile_pkg.errors import (
    ChallengeRequired,
    ChallengeTimeout,
    ConfigurationError,
    CredentialsRejected,
    PageLoadTimeout,
)
from linkedin_profile_pkg.models import CookieRecord, Credentials
from linkedin_profile_pkg.session_store import SessionStore

SUBMIT = "button[type='submit']"
PIN = "input[name='pin']"
CHECKPOINT_URL = "https://www.linkedin.com/checkpoint/challenge/AgE123"
SEED = "JBSWY3DPEHPK3PXP"
NOW = 1_700_000_000


def _credentials(totp_seed=None):
    return Credentials(
        identifier="jane@example.com",
        secret="hunter2",
        totp_seed=totp_seed,
        profile_url="https://www.linkedin.com/in/janedoe",
    )


def _cookie(value="old"):
    return CookieRecord(name="li_at", value=value, domain=".linkedin.com")


def _login_page(**kwargs):
    """Login form that redirects to the feed when submitted, unless overridden."""
    kwargs.setdefault("present", ("#username", SUBMIT))
    kwargs.setdefault("effects", {SUBMIT: [{"url": LINKEDIN_FEED_URL, "hide": ["#username"]}]})
    return FakePageQuery(**kwargs)


def _authenticator(page, cache, jar=None, seed=None):
    store = SessionStore(cache, "jane@example.com")
    jar = jar or FakeJar(exported=[_cookie("fresh")])
    return Authenticator(page, jar, store, _credentials(seed), clock=lambda: NOW, settle_ms=0), store


@pytest.mark.asyncio
async def test_valid_cached_session_skips_login(memory_cache):
    page = FakePageQuery()
    auth, store = _authenticator(page, memory_cache)
    store.save([_cookie()])

    assert await auth.authenticate() == AuthState.SESSION_VALID
    assert auth.history == [AuthState.NO_SESSION, AuthState.PROBING_SESSION, AuthState.SESSION_VALID]
    assert page.fills == []
    assert auth.jar.added[0][0].value == "old"


@pytest.mark.asyncio
async def test_fresh_login_persists_session(memory_cache):
    page = _login_page()
    auth, store = _authenticator(page, memory_cache)

    assert await auth.authenticate() == AuthState.AUTHENTICATED
    assert page.visited == [LINKEDIN_LOGIN_URL]
    assert ("#username", "jane@example.com") in page.fills
    assert ("#password", "hunter2") in page.fills
    assert auth.history[-1] == AuthState.AUTHENTICATED
    assert [c.value for c in store.load()] == ["fresh"]


@pytest.mark.asyncio
async def test_probe_landing_on_checkpoint_routes_to_login(memory_cache):
    page = _login_page(redirects={LINKEDIN_FEED_URL: CHECKPOINT_URL})
    auth, store = _authenticator(page, memory_cache)
    store.save([_cookie()])

    assert await auth.authenticate() == AuthState.AUTHENTICATED
    assert AuthState.SESSION_VALID not in auth.history
    assert AuthState.NEEDS_LOGIN in auth.history
    assert [c.value for c in store.load()] == ["fresh"]


@pytest.mark.asyncio
async def test_garbage_cached_cookies_route_to_login(memory_cache):
    page = _login_page()
    auth, store = _authenticator(page, memory_cache)
    memory_cache.set(store.key, b"garbage", timedelta(hours=1))

    assert await auth.authenticate() == AuthState.AUTHENTICATED
    assert auth.history[:2] == [AuthState.NO_SESSION, AuthState.NEEDS_LOGIN]


@pytest.mark.asyncio
async def test_rejected_cookies_route_to_login(memory_cache):
    page = _login_page()
    auth, store = _authenticator(page, memory_cache, jar=FakeJar(accept=False))
    store.save([_cookie()])

    assert await auth.authenticate() == AuthState.AUTHENTICATED
    assert AuthState.NEEDS_LOGIN in auth.history


@pytest.mark.asyncio
async def test_probe_navigation_error_routes_to_login(memory_cache):
    page = _login_page(goto_errors=("/feed",))
    auth, store = _authenticator(page, memory_cache)
    store.save([_cookie()])

    assert await auth.authenticate() == AuthState.AUTHENTICATED


@pytest.mark.asyncio
async def test_challenge_without_seed_fails_and_leaves_store_alone(memory_cache):
    page = _login_page(
        effects={SUBMIT: [{"url": CHECKPOINT_URL, "hide": ["#username"], "show": [PIN]}]},
    )
    auth, _ = _authenticator(page, memory_cache)

    with pytest.raises(ChallengeRequired) as exc_info:
        await auth.authenticate()
    assert exc_info.value.retryable is False
    assert auth.state == AuthState.FAILED
    assert memory_cache.writes == []
    assert not any(sel == PIN for sel, _ in page.fills)


@pytest.mark.asyncio
async def test_totp_challenge_is_answered_with_current_code(memory_cache):
    page = _login_page(
        effects={
            SUBMIT: [
                {"url": CHECKPOINT_URL, "hide": ["#username"], "show": [PIN]},
                {"url": LINKEDIN_FEED_URL, "hide": [PIN]},
            ]
        },
    )
    auth, store = _authenticator(page, memory_cache, seed=SEED)

    assert await auth.authenticate() == AuthState.AUTHENTICATED
    assert (PIN, pyotp.TOTP(SEED).at(NOW)) in page.fills
    assert AuthState.CHALLENGE_HANDLED in auth.history
    assert store.load() is not None


@pytest.mark.asyncio
async def test_totp_code_not_accepted(memory_cache):
    page = _login_page(
        effects={
            SUBMIT: [
                {"url": CHECKPOINT_URL, "hide": ["#username"], "show": [PIN]},
                {"url": CHECKPOINT_URL},
            ]
        },
    )
    auth, _ = _authenticator(page, memory_cache, seed=SEED)

    with pytest.raises(ChallengeTimeout):
        await auth.authenticate()
    assert auth.history[-2:] == [AuthState.CHALLENGE_FAILED, AuthState.FAILED]
    assert memory_cache.writes == []


@pytest.mark.asyncio
async def test_challenge_page_without_code_input(memory_cache):
    page = _login_page(effects={SUBMIT: [{"url": CHECKPOINT_URL, "hide": ["#username"]}]})
    auth, _ = _authenticator(page, memory_cache, seed=SEED)

    with pytest.raises(ChallengeTimeout):
        await auth.authenticate()


@pytest.mark.asyncio
async def test_wrong_password_is_credentials_rejected(memory_cache):
    page = FakePageQuery(present=("#username", SUBMIT, "#error-for-password, #error-for-username, .form__label--error"))
    auth, _ = _authenticator(page, memory_cache)

    with pytest.raises(CredentialsRejected) as exc_info:
        await auth.authenticate()
    assert exc_info.value.retryable is False
    assert "hunter2" not in str(exc_info.value)


@pytest.mark.asyncio
async def test_login_form_never_appears(memory_cache):
    auth, _ = _authenticator(FakePageQuery(), memory_cache)

    with pytest.raises(PageLoadTimeout) as exc_info:
        await auth.authenticate()
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_login_page_navigation_failure(memory_cache):
    auth, _ = _authenticator(_login_page(goto_errors=("/login",)), memory_cache)

    with pytest.raises(PageLoadTimeout):
        await auth.authenticate()


@pytest.mark.asyncio
async def test_enter_key_used_when_no_submit_button(memory_cache):
    page = FakePageQuery(
        present=("#username",),
        effects={"#password": [{"url": LINKEDIN_FEED_URL, "hide": ["#username"]}]},
    )
    auth, _ = _authenticator(page, memory_cache)

    assert await auth.authenticate() == AuthState.AUTHENTICATED
    assert page.presses == [("#password", "Enter")]


def test_invalid_totp_seed_is_a_configuration_error(memory_cache):
    auth, _ = _authenticator(FakePageQuery(), memory_cache, seed="!!!!")
    with pytest.raises(ConfigurationError):
        auth.current_code()


def test_credentials_repr_hides_secrets():
    text = repr(_credentials(SEED))
    assert "hunter2" not in text
    assert SEED not in text

"""Login state machine: session restore, credential entry, TOTP challenge.

    NoSession -> ProbingSession -> SessionValid
                               \\-> NeedsLogin -> EnteringCredentials
        -> AwaitingChallenge -> (ChallengeHandled | ChallengeFailed)
        -> Authenticated | Failed

A restored session that lands on a login or checkpoint page is not an
error, it just routes to a fresh login. Only the login path can fail, and
it fails with a typed exception from ``errors``.
"""
import binascii
import logging
import time
from enum import Enum
from typing import Callable, List, NoReturn, Optional, Protocol

import pyotp

from .config import LINKEDIN_FEED_URL, LINKEDIN_LOGIN_URL, NAV_TIMEOUT_MS, WAIT_TIMEOUT_MS
from .cookies_auth import is_auth_wall, is_challenge_url, is_login_url
from .errors import (
    ChallengeRequired,
    ChallengeTimeout,
    ConfigurationError,
    CredentialsRejected,
    PageLoadTimeout,
    ScraperError,
)
from .models import CookieRecord, Credentials
from .page_query import PageQuery
from .scraper_logging import add_debug
from .selectors import (
    LOGIN_ERROR,
    LOGIN_PASSWORD,
    LOGIN_SUBMIT,
    LOGIN_USERNAME,
    first_match,
    otp_inputs,
    otp_submits,
)
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    NO_SESSION = "NoSession"
    PROBING_SESSION = "ProbingSession"
    SESSION_VALID = "SessionValid"
    NEEDS_LOGIN = "NeedsLogin"
    ENTERING_CREDENTIALS = "EnteringCredentials"
    AWAITING_CHALLENGE = "AwaitingChallenge"
    CHALLENGE_HANDLED = "ChallengeHandled"
    CHALLENGE_FAILED = "ChallengeFailed"
    AUTHENTICATED = "Authenticated"
    FAILED = "Failed"


class CookieJarLike(Protocol):
    async def add(self, cookies: List[CookieRecord]) -> bool: ...

    async def export(self) -> List[CookieRecord]: ...


class Authenticator:
    def __init__(
        self,
        page: PageQuery,
        jar: CookieJarLike,
        store: SessionStore,
        credentials: Credentials,
        clock: Callable[[], float] = time.time,
        debug: Optional[List[str]] = None,
        settle_ms: int = 2000,
    ):
        self.page = page
        self.jar = jar
        self.store = store
        self.credentials = credentials
        self.clock = clock
        self.debug = debug if debug is not None else []
        self.settle_ms = settle_ms
        self.history: List[AuthState] = []

    @property
    def state(self) -> Optional[AuthState]:
        return self.history[-1] if self.history else None

    def _enter(self, state: AuthState) -> None:
        self.history.append(state)
        add_debug(self.debug, f"Auth:{state.value}")
        logger.info("Auth state -> %s", state.value)

    def _fail(self, exc: ScraperError) -> NoReturn:
        self._enter(AuthState.FAILED)
        logger.error("Authentication failed: %s", exc)
        raise exc

    async def authenticate(self) -> AuthState:
        """Return SESSION_VALID or AUTHENTICATED, or raise a typed error."""
        self.history.clear()
        self._enter(AuthState.NO_SESSION)
        cookies = self.store.load()
        if cookies and await self.probe_session(cookies):
            return AuthState.SESSION_VALID

        self._enter(AuthState.NEEDS_LOGIN)
        await self._enter_credentials()
        await self._resolve_challenge()
        self._enter(AuthState.AUTHENTICATED)
        await self._persist_session()
        return AuthState.AUTHENTICATED

    async def probe_session(self, cookies: List[CookieRecord]) -> bool:
        """Load cookies and check they still reach an authenticated page."""
        self._enter(AuthState.PROBING_SESSION)
        if not await self.jar.add(cookies):
            return False
        try:
            await self.page.goto(LINKEDIN_FEED_URL, timeout_ms=NAV_TIMEOUT_MS)
        except Exception as e:
            logger.warning("Session probe navigation failed, falling back to login: %s", e)
            return False
        url = self.page.url
        if is_auth_wall(url):
            logger.info("Cookie session expired or invalid (landed on %s), performing fresh login", url)
            self.store.clear()
            return False
        self._enter(AuthState.SESSION_VALID)
        return True

    async def _enter_credentials(self) -> None:
        self._enter(AuthState.ENTERING_CREDENTIALS)
        try:
            await self.page.goto(LINKEDIN_LOGIN_URL, timeout_ms=NAV_TIMEOUT_MS)
        except Exception as e:
            self._fail(PageLoadTimeout(f"login page never loaded: {e}"))
        if not await self.page.wait_visible(LOGIN_USERNAME, WAIT_TIMEOUT_MS):
            self._fail(PageLoadTimeout(f"credential input never appeared on {self.page.url}"))

        logger.info("Entering credentials...")
        await self.page.fill(LOGIN_USERNAME, self.credentials.identifier)
        await self.page.fill(LOGIN_PASSWORD, self.credentials.secret)
        if not await self.page.click(LOGIN_SUBMIT):
            await self.page.press(LOGIN_PASSWORD, "Enter")

        if not await self.page.wait_hidden(LOGIN_USERNAME, WAIT_TIMEOUT_MS):
            url = self.page.url
            if not is_challenge_url(url) and (is_login_url(url) or await self.page.exists(LOGIN_ERROR)):
                self._fail(CredentialsRejected(f"login form rejected the credentials (still on {url})"))
        await self.page.settle(self.settle_ms)

    async def challenge_present(self) -> bool:
        if is_challenge_url(self.page.url):
            return True
        return await first_match(self.page, otp_inputs()) is not None

    def current_code(self) -> str:
        seed = (self.credentials.totp_seed or "").replace(" ", "").upper()
        try:
            return pyotp.TOTP(seed).at(int(self.clock()))
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError(f"TOTP seed is not valid base32: {e}") from e

    async def _resolve_challenge(self) -> None:
        self._enter(AuthState.AWAITING_CHALLENGE)
        logger.info("Current URL after login: %s", self.page.url)
        if not await self.challenge_present():
            logger.info("No 2FA required, proceeding...")
            return

        logger.info("2FA verification page detected")
        if not self.credentials.totp_seed:
            self._fail(ChallengeRequired("2FA required but TOTP secret not configured (set LINKEDIN_TOTP_SECRET)"))

        code = self.current_code()
        selector = await first_match(self.page, otp_inputs())
        if selector is None:
            await self.page.settle(self.settle_ms)
            selector = await first_match(self.page, otp_inputs())
        if selector is None:
            self._enter(AuthState.CHALLENGE_FAILED)
            self._fail(ChallengeTimeout("could not find OTP input field on 2FA page"))

        logger.info("Entering TOTP code via %s", selector)
        await self.page.fill(selector, code)
        submit = await first_match(self.page, otp_submits())
        if submit:
            logger.info("Clicked submit button with selector: %s", submit)
        else:
            logger.info("Could not find submit button, trying Enter key...")
            await self.page.press(selector, "Enter")

        await self.page.settle(self.settle_ms + 1000)
        if is_challenge_url(self.page.url):
            self._enter(AuthState.CHALLENGE_FAILED)
            self._fail(ChallengeTimeout("2FA verification failed, still on verification page"))
        self._enter(AuthState.CHALLENGE_HANDLED)

    async def _persist_session(self) -> None:
        try:
            cookies = await self.jar.export()
            self.store.save(cookies)
        except Exception as e:
            logger.warning("Failed to save session cookies: %s", e)

"""Top-level scrape orchestration.

``ProfileScraper`` wires a browser session to the authenticator, the
extractor and the normalizer, bounds the whole run with one timeout, and
keeps the last good result in the cache.
"""
import asyncio
import logging
from datetime import timedelta
from typing import Callable, List, Optional

from pydantic import ValidationError

from .auth import Authenticator
from .browser import browser_session
from .cache import Cache, FileCache
from .config import (
    CACHE_DIR,
    CACHE_TTL_HOURS,
    HEADLESS,
    INLINE_IMAGES,
    PROXY,
    SCRAPE_TIMEOUT_S,
    load_credentials,
)
from .cookies_auth import CookieJar
from .errors import ScraperError, ScrapeTimeout
from .extraction import Extractor
from .media import inline_images
from .models import CookieRecord, Credentials, RawScrape, ScrapeResult
from .normalize import Normalizer
from .page_query import PlaywrightPageQuery
from .scraper_logging import add_debug, save_debug_files
from .session_store import SessionStore

logger = logging.getLogger(__name__)

RESULT_KEY_PREFIX = "linkedin_data"


class ProfileScraper:
    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        cache: Optional[Cache] = None,
        headless: bool = HEADLESS,
        inline: bool = INLINE_IMAGES,
        debug: bool = False,
        timeout_s: float = SCRAPE_TIMEOUT_S,
        normalizer: Optional[Normalizer] = None,
        session_factory: Callable = browser_session,
        query_factory: Callable = PlaywrightPageQuery,
        jar_factory: Callable = CookieJar,
    ):
        self._credentials = credentials
        self.cache = cache if cache is not None else FileCache(CACHE_DIR)
        self.headless = headless
        self.inline = inline
        self.debug = debug
        self.timeout_s = timeout_s
        self.normalizer = normalizer or Normalizer()
        self.session_factory = session_factory
        self.query_factory = query_factory
        self.jar_factory = jar_factory
        self.debug_tags: List[str] = []

    @property
    def credentials(self) -> Credentials:
        # Raises ConfigurationError on first use when the environment is incomplete
        if self._credentials is None:
            self._credentials = load_credentials()
        return self._credentials

    @property
    def result_key(self) -> str:
        return f"{RESULT_KEY_PREFIX}:{self.credentials.identifier}"

    def session_store(self) -> SessionStore:
        return SessionStore(self.cache, self.credentials.identifier)

    def seed_session(self, cookies: List[CookieRecord]) -> int:
        """Store exported browser cookies so the next run can skip login."""
        count = self.session_store().save(cookies)
        logger.info("Seeded session store with %d cookies", count)
        return count

    async def scrape(self) -> ScrapeResult:
        """One full scrape; raises a ScraperError subclass on failure."""
        credentials = self.credentials
        self.debug_tags = []
        logger.info("Starting LinkedIn scrape for %s", credentials.profile_url)
        try:
            raw = await asyncio.wait_for(self._collect(credentials), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            add_debug(self.debug_tags, "Timeout")
            raise ScrapeTimeout(f"scrape did not finish within {self.timeout_s:.0f}s")
        result = self.normalizer.normalize(raw)
        logger.info(
            "Scraped profile %r: %d experience, %d education, %d skills",
            result.profile.name,
            len(result.experience),
            len(result.education),
            len(result.skills),
        )
        return result

    async def _collect(self, credentials: Credentials) -> RawScrape:
        async with self.session_factory(headless=self.headless, proxy=PROXY) as (context, page):
            query = self.query_factory(page)
            authenticator = Authenticator(
                query, self.jar_factory(context), self.session_store(), credentials, debug=self.debug_tags
            )
            try:
                await authenticator.authenticate()
                raw = await Extractor(query, credentials.profile_url, debug=self.debug_tags).extract()
            except ScraperError:
                if self.debug:
                    paths = await save_debug_files(page)
                    if paths:
                        logger.info("Saved debug files: %s", paths)
                raise
        if self.inline:
            raw = await inline_images(raw)
        return raw

    async def refresh(self) -> ScrapeResult:
        """Scrape and write the result through to the cache."""
        result = await self.scrape()
        self.cache.set(
            self.result_key,
            result.model_dump_json().encode("utf-8"),
            timedelta(hours=CACHE_TTL_HOURS),
        )
        return result

    async def get_cached(self) -> ScrapeResult:
        """Cached result when fresh, otherwise a new scrape."""
        data = self.cache.get(self.result_key)
        if data is not None:
            try:
                result = ScrapeResult.model_validate_json(data)
                logger.info("Using cached LinkedIn data")
                return result
            except ValidationError as e:
                logger.warning("Discarding unreadable cached result: %s", e)
                self.cache.delete(self.result_key)
        return await self.refresh()

    async def scrape_with_retry(self, attempts: int = 2, backoff_s: float = 5.0) -> ScrapeResult:
        """Retry transient failures; authentication and config errors fail fast."""
        if attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {attempts}")
        for attempt in range(1, attempts + 1):
            try:
                return await self.refresh()
            except ScraperError as e:
                if not e.retryable or attempt == attempts:
                    raise
                logger.warning("Attempt %d/%d failed (%s), retrying", attempt, attempts, e)
                await asyncio.sleep(backoff_s * attempt)
        raise AssertionError("unreachable")

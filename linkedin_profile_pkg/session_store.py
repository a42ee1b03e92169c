import json
import logging
from datetime import timedelta
from typing import List, Optional

from pydantic import ValidationError

from .cache import Cache
from .config import CACHE_TTL_HOURS, LINKEDIN_DOMAIN, SESSION_TTL_MULTIPLIER
from .models import CookieRecord

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "linkedin_cookies"


class SessionStore:
    """Persist the LinkedIn cookie jar for one account.

    Sessions live in the same cache as scrape results but under their own
    key and with a longer TTL. Nothing here decides whether a session is
    still good: expired cookies are returned as-is and the authenticator's
    probe navigation finds out.
    """

    def __init__(
        self,
        cache: Cache,
        account: str,
        ttl: timedelta | None = None,
        domain: str = LINKEDIN_DOMAIN,
    ):
        self.cache = cache
        self.key = f"{SESSION_KEY_PREFIX}:{account}"
        self.ttl = ttl or timedelta(hours=CACHE_TTL_HOURS * SESSION_TTL_MULTIPLIER)
        self.domain = domain

    def save(self, cookies: List[CookieRecord]) -> int:
        """Store cookies scoped to the target domain; returns how many were kept."""
        scoped = [c for c in cookies if self.domain in c.domain]
        if not scoped:
            logger.info("No %s cookies to save", self.domain)
            return 0
        payload = json.dumps([c.model_dump(by_alias=True) for c in scoped]).encode("utf-8")
        self.cache.set(self.key, payload, self.ttl)
        logger.info("Saved %d LinkedIn cookies to cache", len(scoped))
        return len(scoped)

    def load(self) -> Optional[List[CookieRecord]]:
        raw = self.cache.get(self.key)
        if raw is None:
            return None
        try:
            items = json.loads(raw)
            cookies = [CookieRecord.model_validate(c) for c in items]
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning("Failed to deserialize cached cookies, ignoring: %s", e)
            return None
        return cookies or None

    def clear(self) -> None:
        self.cache.delete(self.key)

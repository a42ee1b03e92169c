import json
import logging
import os
import re
from typing import Iterable, List

from playwright.async_api import BrowserContext
from pydantic import ValidationError

from .config import LINKEDIN_DOMAIN
from .models import CookieRecord

logger = logging.getLogger(__name__)

LOGIN_URL_MARKERS = ("/login", "/uas/login", "/signup", "authwall")
CHALLENGE_URL_MARKERS = ("checkpoint", "challenge", "two-step-verification")


def normalize_same_site(value) -> str:
    ss = str(value or "").lower()
    if ss in ["no_restriction", "none"]:
        return "None"
    if ss in ["lax", "strict"]:
        return ss.capitalize()
    return "Lax"


def sanitize_cookies(raw: Iterable[dict], domain: str = LINKEDIN_DOMAIN) -> List[CookieRecord]:
    """Clean browser-exported cookie dicts for the target domain only.

    - Removes whitespace from values
    - Normalizes domain to start with a dot
    - Normalizes ``sameSite`` values to what Playwright accepts
    - Drops extension-specific keys and entries missing name/value
    """
    clean: List[CookieRecord] = []
    for c in raw:
        if not isinstance(c, dict):
            continue
        c = dict(c)
        if isinstance(c.get("value"), str):
            c["value"] = re.sub(r"\s+", "", c["value"])
        cookie_domain = c.get("domain", "")
        if cookie_domain and not cookie_domain.startswith("."):
            cookie_domain = "." + cookie_domain
        if domain not in cookie_domain:
            continue
        c["domain"] = cookie_domain
        c["sameSite"] = normalize_same_site(c.get("sameSite"))
        # Extension exports call it expirationDate
        if "expires" not in c and "expirationDate" in c:
            c["expires"] = c["expirationDate"]
        for k in ["hostOnly", "session", "storeId", "id", "expirationDate"]:
            c.pop(k, None)
        if not c.get("name") or not c.get("value"):
            continue
        try:
            clean.append(CookieRecord.model_validate(c))
        except ValidationError as e:
            logger.debug("Skipping malformed cookie %s: %s", c.get("name"), e)
    return clean


def load_cookies_file(path: str) -> List[CookieRecord]:
    """Read a cookies.json exported from a real browser; [] when unusable."""
    if not os.path.exists(path):
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            cookies = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Could not read cookies file %s: %s", path, e)
        return []
    if not isinstance(cookies, list):
        return []
    return sanitize_cookies(cookies)


async def apply_cookies(context: BrowserContext, cookies: List[CookieRecord]) -> bool:
    """Add cookies to the context; returns False when the browser refuses them."""
    if not cookies:
        return False
    try:
        await context.add_cookies([c.to_playwright() for c in cookies])
    except Exception as e:
        logger.warning("Failed to restore cookies: %s", e)
        return False
    logger.info("Restored %d cookies from cache", len(cookies))
    return True


async def export_cookies(context: BrowserContext, domain: str = LINKEDIN_DOMAIN) -> List[CookieRecord]:
    cookies = await context.cookies()
    return sanitize_cookies([dict(c) for c in cookies if domain in c.get("domain", "")], domain)


def is_login_url(url: str) -> bool:
    return any(k in url for k in LOGIN_URL_MARKERS)


def is_challenge_url(url: str) -> bool:
    return any(k in url for k in CHALLENGE_URL_MARKERS)


def is_auth_wall(url: str) -> bool:
    """True when the browser was bounced to a login or verification page."""
    return is_login_url(url) or is_challenge_url(url)


class CookieJar:
    """Cookie import/export for one browser context."""

    def __init__(self, context: BrowserContext):
        self.context = context

    async def add(self, cookies: List[CookieRecord]) -> bool:
        return await apply_cookies(self.context, cookies)

    async def export(self) -> List[CookieRecord]:
        return await export_cookies(self.context)

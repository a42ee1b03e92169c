import os
import random
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

from .errors import ConfigurationError
from .models import Credentials


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ["1", "true", "yes"]


LINKEDIN_BASE_URL = "https://www.linkedin.com"
LINKEDIN_LOGIN_URL = f"{LINKEDIN_BASE_URL}/login"
LINKEDIN_FEED_URL = f"{LINKEDIN_BASE_URL}/feed/"
LINKEDIN_DOMAIN = "linkedin.com"
DEFAULT_PROFILE_URL = "https://www.linkedin.com/in/mrcodeeu"

CACHE_DIR = os.environ.get("CACHE_DIR", "./data/cache")
CACHE_TTL_HOURS = int(os.environ.get("CACHE_TTL_HOURS", "24"))
# Sessions degrade slower than scraped data.
SESSION_TTL_MULTIPLIER = 7
DATA_DIR = os.environ.get("DATA_DIR", "./data/generated")
DATA_REFRESH_HOURS = int(os.environ.get("DATA_REFRESH_HOURS", "4"))
DATA_AUTO_REFRESH = _env_flag("DATA_AUTO_REFRESH", "false")
DATA_REMOTE_BASE_URL = os.environ.get(
    "DATA_REMOTE_BASE_URL",
    "https://raw.githubusercontent.com/MrCodeEU/homepage/main/data/generated",
)
APP_VERSION = "1.0.0"

HEADLESS = _env_flag("SCRAPER_HEADLESS", "true")
SLOW_MO_MS = int(os.environ.get("SCRAPER_SLOW_MO_MS", "0"))
BLOCK_IMAGES = _env_flag("SCRAPER_BLOCK_IMAGES", "false")
INLINE_IMAGES = _env_flag("SCRAPER_INLINE_IMAGES", "true")
PROXY = os.environ.get("SCRAPER_PROXY") or None
NAV_TIMEOUT_MS = int(os.environ.get("SCRAPER_NAV_TIMEOUT_MS", "30000"))
WAIT_TIMEOUT_MS = int(os.environ.get("SCRAPER_WAIT_TIMEOUT_MS", "15000"))
SCRAPE_TIMEOUT_S = float(os.environ.get("SCRAPER_TIMEOUT_S", "180"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class MonthTables:
    """Month-name lookup tables for the two UI locales LinkedIn serves us.

    Tables are read-only mappings so one instance can be shared between
    concurrently running scrapers. Keys are lower-case tokens as they appear
    in the rendered date ranges (German abbreviations carry their dot).
    """
    german: Mapping[str, str]
    english: Mapping[str, str]
    ongoing: Tuple[str, ...] = field(default=())

    def ordered_tokens(self) -> Tuple[Tuple[str, str], ...]:
        """All (token, month) pairs, German first, longest token first."""
        pairs = list(self.german.items()) + list(self.english.items())
        # "march" must win over "mar", "sept." over "sep."
        return tuple(sorted(pairs, key=lambda kv: len(kv[0]), reverse=True))


DEFAULT_MONTH_TABLES = MonthTables(
    german=MappingProxyType({
        "jan.": "01", "januar": "01", "feb.": "02", "februar": "02",
        "mär.": "03", "märz": "03", "apr.": "04", "april": "04",
        "mai": "05", "jun.": "06", "juni": "06", "jul.": "07", "juli": "07",
        "aug.": "08", "august": "08", "sep.": "09", "sept.": "09",
        "september": "09", "okt.": "10", "oktober": "10",
        "nov.": "11", "november": "11", "dez.": "12", "dezember": "12",
    }),
    english=MappingProxyType({
        "jan": "01", "january": "01", "feb": "02", "february": "02",
        "mar": "03", "march": "03", "apr": "04", "may": "05",
        "jun": "06", "june": "06", "jul": "07", "july": "07",
        "aug": "08", "sep": "09", "sept": "09", "oct": "10", "october": "10",
        "nov": "11", "dec": "12", "december": "12",
    }),
    ongoing=("present", "heute", "now", "current", "aktuell", "today"),
)


def load_credentials(profile_url: str | None = None) -> Credentials:
    """Build credentials from the environment.

    Raises ConfigurationError before anything expensive happens when the
    login pair is missing, so no browser is launched for a run that cannot
    authenticate anyway.
    """
    email = os.environ.get("LINKEDIN_EMAIL", "").strip()
    password = os.environ.get("LINKEDIN_PASSWORD", "")
    if not email or not password:
        raise ConfigurationError(
            "LinkedIn credentials not set (need LINKEDIN_EMAIL and LINKEDIN_PASSWORD)"
        )
    url = profile_url or os.environ.get("LINKEDIN_PROFILE_URL") or DEFAULT_PROFILE_URL
    if LINKEDIN_DOMAIN not in url:
        raise ConfigurationError(f"Profile URL must point at {LINKEDIN_DOMAIN}: {url}")
    return Credentials(
        identifier=email,
        secret=password,
        totp_seed=os.environ.get("LINKEDIN_TOTP_SECRET") or None,
        profile_url=url,
    )


def user_agents():
    """Return a curated pool of desktop Chrome user agents.

    Rotating across a small, realistic set of user agents reduces the chance
    of fingerprinting correlating all runs to a single static UA.
    """
    return [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    ]


def random_user_agent():
    """Pick a random user agent from the pool."""
    return random.choice(user_agents())

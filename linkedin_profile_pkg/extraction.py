"""Profile, experience, education and skills extraction.

Profile fields are filled by ordered strategies (JSON-LD, semantic DOM
queries, legacy CSS classes); the first non-empty value per field wins.
List sections are loaded on their ``/details/...`` pages and each rendered
item is classified from its text segments.

The item classifier is best-effort pattern matching. Known ways it goes
wrong:

- grouped positions (several roles under one company header) yield the
  company as title of the first item and the role as organization;
- an organization name shorter than four characters ("IBM", "SAP") is
  skipped and the location may be taken as organization instead;
- a location without a comma ("Remote", "Wien") is not recognised;
- an education entry whose only secondary line is the date range gets no
  degree.

Entries where the same text landed in both title and organization are
dropped later by the normalizer.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence

from .config import WAIT_TIMEOUT_MS
from .errors import NavigationError, PartialExtractionWarning
from .models import ProfileRecord, RawEntry, RawScrape
from .navigation import expand_list, goto_with_retry, progressive_scroll, wait_for_main
from .page_query import ItemSnapshot, PageQuery
from .scraper_logging import add_debug
from .selectors import (
    CSS_FALLBACK,
    CSS_FALLBACK_PHOTO,
    EDUCATION_SECTION,
    EXPERIENCE_SECTION,
    LOAD_MORE_PATTERN,
    SKILLS_SECTION,
    SectionSpec,
    find_section,
)

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "headline", "location", "summary", "photo_url")

_YEAR = re.compile(r"(?<!\d)\d{4}(?!\d)")
_RANGE_GLYPH = re.compile(r"[–—-]|\s(?:to|bis)\s", re.I)
_MONTH_YEAR = re.compile(r"^[A-Za-zÄÖÜäöü]{3,9}\.?\s+\d{4}$")
_DURATION = re.compile(r"^\d+\s*(yrs?|years?|mos?|months?|jahre?|monate?)\b", re.I)
_PRONOUNS = re.compile(r"^(er/ihm|er/sie|sie/ihr|she/her|he/him|they/them)\b", re.I)
_LOCATION = re.compile(r"^[A-ZÄÖÜ][^\d@·]{1,60},\s*[A-ZÄÖÜ][^\d@]{1,60}$")
_NOISE = re.compile(
    r"^(show all|alle anzeigen|see more|mehr anzeigen|skills?:|kenntnisse:|\d+ endorsements?|"
    r"\d+ bestätigungen|endorse|bestätigen|message|nachricht)",
    re.I,
)
_PLACEHOLDER_IMAGES = ("data:", "ghost", "/aero-v1/sc/h/")


def looks_like_date(text: str) -> bool:
    """Year-bearing range, a month-year, or a bare year."""
    text = text.strip()
    if re.fullmatch(r"\d{4}", text) or _MONTH_YEAR.match(text):
        return True
    return bool(_YEAR.search(text)) and bool(_RANGE_GLYPH.search(text))


def is_placeholder_image(src: str) -> bool:
    return not src or any(marker in src for marker in _PLACEHOLDER_IMAGES)


def _usable(text: str, min_len: int = 4) -> bool:
    return (
        len(text) >= min_len
        and not looks_like_date(text)
        and not _PRONOUNS.match(text)
        and not _DURATION.match(text)
        and not _NOISE.match(text)
    )


@dataclass(frozen=True)
class ItemFields:
    """Names of the two identifying slots, for logs only."""
    primary: str
    secondary: str
    with_location: bool = False
    split_employment_type: bool = False
    split_field: bool = False


EXPERIENCE_FIELDS = ItemFields("title", "company", with_location=True, split_employment_type=True)
EDUCATION_FIELDS = ItemFields("school", "degree", split_field=True)


def classify_item(item: ItemSnapshot, fields: ItemFields) -> Optional[RawEntry]:
    """Map one list item's text segments to a RawEntry, or None if it has no primary."""
    texts = [t.strip() for t in item.texts if t and t.strip()]
    used = set()

    primary = next((t for t in item.bold if _usable(t.strip())), "")
    if not primary:
        primary = next((t for t in texts if _usable(t)), "")
    primary = primary.strip()
    if not primary:
        return None
    used.add(primary)

    secondary = next((t for t in texts if t not in used and _usable(t)), "")
    used.add(secondary)

    date_text = next((t for t in texts if t not in used and looks_like_date(t)), "")
    used.add(date_text)

    entry = RawEntry(primary=primary, date_text=date_text)

    if fields.with_location:
        for t in texts:
            candidate = t.split("·")[0].strip()
            if t in used or looks_like_date(t):
                continue
            if _LOCATION.match(candidate) or (t in item.muted and "," in candidate):
                entry.location = candidate
                used.add(t)
                break

    if fields.split_employment_type and "·" in secondary:
        head, _, tail = secondary.partition("·")
        secondary = head.strip()
        entry.employment_type = tail.strip()
    if fields.split_field and ", " in secondary:
        head, _, tail = secondary.partition(", ")
        secondary = head.strip()
        entry.field = tail.strip()
    entry.secondary = secondary

    rest = [t for t in texts if t not in used and len(t) > 60]
    if rest:
        entry.description = max(rest, key=len)

    entry.logo = next((src for src in item.images if not is_placeholder_image(src)), "")
    logger.debug("Classified %s=%r %s=%r date=%r", fields.primary, primary, fields.secondary, secondary, date_text)
    return entry


def classify_skill(item: ItemSnapshot) -> str:
    label = next((t.strip() for t in item.texts if t and t.strip()), "")
    if not label or len(label) > 100 or label[0].isdigit():
        return ""
    if "·" in label or "@" in label or _NOISE.match(label):
        return ""
    return label


# Profile strategies

def pick_name(candidates: Sequence[str]) -> str:
    for text in candidates:
        text = text.strip()
        if len(text) > 3 and not text[0].isdigit() and "notification" not in text.lower() \
                and "benachrichtigung" not in text.lower():
            return text
    return ""


def pick_headline(paragraphs: Sequence[str], exclude: Sequence[str] = ()) -> str:
    for text in paragraphs:
        lowered = text.lower()
        if not 10 < len(text) < 220 or text in exclude:
            continue
        if "@" in text or "follower" in lowered or "kontakt" in lowered or "contact info" in lowered:
            continue
        if _PRONOUNS.match(text):
            continue
        return text
    return ""


_GEO_HINTS = (
    "austria", "österreich", "germany", "deutschland", "switzerland", "schweiz",
    "united states", "united kingdom", "area", "region", "metropolitan",
)


def pick_location(texts: Sequence[str], small_texts: Sequence[str] = ()) -> str:
    """A geographic-looking line; small caption text is trusted on shape alone."""
    for t in texts:
        if len(t) < 100 and _LOCATION.match(t) and any(h in t.lower() for h in _GEO_HINTS):
            return t
    return next((t for t in small_texts if len(t) < 100 and _LOCATION.match(t)), "")


def person_from_json_ld(blocks: Sequence[str]) -> Dict[str, str]:
    """Fields from the first schema.org Person found in JSON-LD blocks."""
    for block in blocks:
        try:
            data = json.loads(block)
        except ValueError:
            continue
        nodes = data if isinstance(data, list) else [data]
        expanded = []
        for node in nodes:
            if isinstance(node, dict) and isinstance(node.get("@graph"), list):
                expanded.extend(node["@graph"])
            else:
                expanded.append(node)
        for node in expanded:
            if not isinstance(node, dict):
                continue
            kind = node.get("@type")
            if kind != "Person" and not (isinstance(kind, list) and "Person" in kind):
                continue
            return _person_fields(node)
    return {}


def _first_str(value) -> str:
    if isinstance(value, list):
        value = value[0] if value else ""
    if isinstance(value, dict):
        value = value.get("contentUrl") or value.get("url") or value.get("name") or ""
    return value.strip() if isinstance(value, str) else ""


def _person_fields(node: dict) -> Dict[str, str]:
    address = node.get("address")
    if isinstance(address, dict):
        parts = [_first_str(address.get("addressLocality")), _first_str(address.get("addressCountry"))]
        location = ", ".join(p for p in parts if p)
    else:
        location = _first_str(address)
    return {
        "name": _first_str(node.get("name")),
        "headline": _first_str(node.get("jobTitle")),
        "location": location,
        "summary": _first_str(node.get("description")),
        "photo_url": _first_str(node.get("image")),
    }


class ProfileStrategy(Protocol):
    name: str

    async def attempt(self, page: PageQuery) -> Dict[str, str]: ...


class StructuredDataStrategy:
    name = "json_ld"

    async def attempt(self, page: PageQuery) -> Dict[str, str]:
        return person_from_json_ld(await page.json_ld_blocks())


class SemanticScriptStrategy:
    """Reason about text roles inside ``main`` rather than class names."""
    name = "semantic"

    async def attempt(self, page: PageQuery) -> Dict[str, str]:
        name = pick_name(await page.texts("main h1") + await page.texts("main h2"))
        paragraphs = await page.texts("main section p, main .text-body-medium")
        location = pick_location(paragraphs, await page.texts("main section span.text-body-small"))
        about = await page.texts("section:has(#about) span[aria-hidden='true']")
        photos = await page.attributes(
            "[data-view-name='profile-top-card-member-photo'] img, main img[alt*='profile'], "
            "main img[alt*='Profil'], main img[alt*='photo'], main img[alt*='Foto']",
            "src",
        )
        return {
            "name": name,
            "headline": pick_headline(paragraphs, exclude=(name, location)),
            "location": location,
            "summary": max((t for t in about if len(t) > 40), key=len, default=""),
            "photo_url": next((src for src in photos if not is_placeholder_image(src)), ""),
        }


class CssFallbackStrategy:
    name = "css"

    async def attempt(self, page: PageQuery) -> Dict[str, str]:
        found: Dict[str, str] = {}
        for field, selectors in CSS_FALLBACK.items():
            for sel in selectors:
                texts = await page.texts(sel)
                if texts:
                    found[field] = texts[0]
                    break
        for sel in CSS_FALLBACK_PHOTO:
            srcs = [s for s in await page.attributes(sel, "src") if not is_placeholder_image(s)]
            if srcs:
                found["photo_url"] = srcs[0]
                break
        return found


DEFAULT_PROFILE_STRATEGIES = (StructuredDataStrategy(), SemanticScriptStrategy(), CssFallbackStrategy())


def clean_profile_url(url: str) -> str:
    """Strip query string, fragment and trailing slash."""
    return re.sub(r"[?#].*", "", url).rstrip("/")


class Extractor:
    def __init__(
        self,
        page: PageQuery,
        profile_url: str,
        strategies: Sequence[ProfileStrategy] = DEFAULT_PROFILE_STRATEGIES,
        debug: Optional[List[str]] = None,
        wait_timeout_ms: int = WAIT_TIMEOUT_MS,
        max_load_more: int = 5,
    ):
        self.page = page
        self.base_url = clean_profile_url(profile_url)
        self.strategies = strategies
        self.debug = debug if debug is not None else []
        self.wait_timeout_ms = wait_timeout_ms
        self.max_load_more = max_load_more

    def _partial(self, section: str, reason) -> None:
        warning = PartialExtractionWarning(section, str(reason))
        add_debug(self.debug, f"Partial:{section}")
        logger.warning("Partial extraction: %s", warning)

    async def extract(self) -> RawScrape:
        profile = await self.extract_profile()
        experience = await self.extract_entries(EXPERIENCE_SECTION, EXPERIENCE_FIELDS)
        education = await self.extract_entries(EDUCATION_SECTION, EDUCATION_FIELDS)
        skills = await self.extract_skills()
        return RawScrape(profile=profile, experience=experience, education=education, skills=skills)

    async def extract_profile(self) -> ProfileRecord:
        """Profile basics; raises NavigationError when the page never loaded."""
        if not clean_profile_url(self.page.url).startswith(self.base_url):
            logger.info("Navigating to profile page %s", self.base_url)
            await goto_with_retry(self.page, self.base_url + "/")
        await wait_for_main(self.page, timeout_ms=self.wait_timeout_ms)

        fields: Dict[str, str] = {}
        for strategy in self.strategies:
            if all(fields.get(f) for f in PROFILE_FIELDS):
                break
            try:
                found = await strategy.attempt(self.page)
            except Exception as e:
                self._partial(f"profile/{strategy.name}", e)
                continue
            for field in PROFILE_FIELDS:
                value = (found.get(field) or "").strip()
                if value and not fields.get(field):
                    fields[field] = value
                    add_debug(self.debug, f"Profile:{field}:{strategy.name}")

        if not fields.get("name"):
            raise NavigationError(f"profile page never loaded (no name found on {self.page.url})")
        profile = ProfileRecord(**fields)
        logger.info("Extracted profile: name=%r headline=%r location=%r", profile.name, profile.headline, profile.location)
        return profile

    async def wait_for_section(self, spec: SectionSpec, poll_ms: int = 500) -> Optional[str]:
        """Poll for the section container; logs and returns None on expiry."""
        for _ in range(max(1, self.wait_timeout_ms // poll_ms)):
            container = await find_section(self.page, spec)
            if container:
                return container
            await self.page.settle(poll_ms)
        logger.warning("Timed out waiting for %s section container", spec.name)
        return None

    async def _count_items(self, container: str, spec: SectionSpec) -> int:
        for sel in spec.items:
            n = await self.page.count(f"{container} {sel}")
            if n:
                return n
        return 0

    async def load_section(self, spec: SectionSpec) -> List[ItemSnapshot]:
        url = f"{self.base_url}/{spec.path}"
        logger.info("Extracting %s from: %s", spec.name, url)
        await goto_with_retry(self.page, url)
        await wait_for_main(self.page, timeout_ms=self.wait_timeout_ms)
        container = await self.wait_for_section(spec) or "main"
        add_debug(self.debug, f"Section:{spec.name}:{container}")

        await progressive_scroll(self.page)
        clicks = await expand_list(
            self.page,
            LOAD_MORE_PATTERN,
            lambda: self._count_items(container, spec),
            max_clicks=self.max_load_more,
        )
        if clicks:
            await progressive_scroll(self.page, steps=5)
        return await self.page.list_items(container, spec.items)

    async def extract_entries(self, spec: SectionSpec, fields: ItemFields) -> List[RawEntry]:
        try:
            snapshots = await self.load_section(spec)
        except Exception as e:
            self._partial(spec.name, e)
            return []
        entries: List[RawEntry] = []
        for snapshot in snapshots:
            try:
                entry = classify_item(snapshot, fields)
            except Exception as e:
                self._partial(f"{spec.name}/item", e)
                continue
            if entry:
                entries.append(entry)
        logger.info("Extracted %d %s entries", len(entries), spec.name)
        return entries

    async def extract_skills(self) -> List[str]:
        try:
            snapshots = await self.load_section(SKILLS_SECTION)
            skills = [s for s in (classify_skill(item) for item in snapshots) if s]
            if not skills:
                # Flat layout: skills are short paragraphs directly in main
                skills = [
                    t for t in await self.page.texts("main p")
                    if 1 < len(t) < 50 and " " not in t and classify_skill(ItemSnapshot(texts=[t]))
                ]
        except Exception as e:
            self._partial(SKILLS_SECTION.name, e)
            return []
        logger.info("Extracted %d skills", len(skills))
        return skills

"""Turn raw extracted strings into canonical records.

Dates come in whatever locale the LinkedIn UI is set to, e.g.
``"Nov. 2025–Heute · 4 Monate"`` or ``"Jan 2019 - Mar 2021"``. Each side of
a range becomes ``YYYY-MM`` when a month name is recognised, ``YYYY`` when
only the year is, and an empty string when there is no year at all.
"""
import logging
import re
from typing import Iterable, List, Tuple

from .config import DEFAULT_MONTH_TABLES, MonthTables
from .models import EducationEntry, ExperienceEntry, RawEntry, RawScrape, ScrapeResult

logger = logging.getLogger(__name__)

PRESENT = "Present"

_YEAR = re.compile(r"(?<!\d)(\d{4})(?!\d)")
_CANONICAL = re.compile(r"^\d{4}(-\d{2})?$")
_DASH_SPLIT = re.compile(r"\s*[–—]\s*")
_WORD_SPLIT = re.compile(r"\s+(?:to|bis)\s+", re.I)
_SPACED_HYPHEN = re.compile(r"\s+-\s+")
# "2020-2024", "2020-Present"; not "2025-11"
_BARE_HYPHEN = re.compile(r"(?<=\d{4})-(?!\d{2}$)")


class Normalizer:
    def __init__(self, months: MonthTables = DEFAULT_MONTH_TABLES):
        self.months = months
        self._tokens = months.ordered_tokens()

    @staticmethod
    def split_duration(text: str) -> Tuple[str, str]:
        """Split ``"Jan 2020 – Present · 5 yrs"`` into range and duration."""
        head, sep, tail = (text or "").partition("·")
        return head.strip(), tail.strip() if sep else ""

    def is_ongoing(self, text: str) -> bool:
        lowered = text.lower()
        return any(token in lowered for token in self.months.ongoing)

    def normalize_date(self, text: str) -> str:
        text = (text or "").strip()
        if _CANONICAL.match(text):
            return text
        match = _YEAR.search(text)
        if not match:
            return ""
        year = match.group(1)
        lowered = text.lower()
        for token, month in self._tokens:
            if token in lowered:
                return f"{year}-{month}"
        return year

    def _split(self, text: str) -> List[str]:
        for pattern in (_DASH_SPLIT, _WORD_SPLIT, _SPACED_HYPHEN, _BARE_HYPHEN):
            parts = pattern.split(text, maxsplit=1)
            if len(parts) == 2:
                return parts
        return [text]

    def parse_date_range(self, text: str) -> Tuple[str, str]:
        """Return (start, end); end is ``"Present"`` for ongoing ranges."""
        body, _ = self.split_duration(text)
        if not body:
            return "", ""
        parts = self._split(body)
        start = self.normalize_date(parts[0])
        if len(parts) == 1:
            return start, ""
        end_text = parts[1].strip()
        if self.is_ongoing(end_text) and not _YEAR.search(end_text):
            return start, PRESENT
        end = self.normalize_date(end_text)
        return start, end

    @staticmethod
    def _valid(primary: str, secondary: str) -> bool:
        # Same text in both slots means the classifier picked one node twice.
        return bool(primary) and primary != secondary

    def dedupe_experience(self, entries: Iterable[ExperienceEntry]) -> List[ExperienceEntry]:
        seen = set()
        out: List[ExperienceEntry] = []
        for e in entries:
            if not self._valid(e.title, e.company):
                logger.debug("Discarding experience entry %r", e.title)
                continue
            key = (e.title, e.company, e.date_range)
            if key in seen:
                continue
            seen.add(key)
            out.append(e)
        return out

    def dedupe_education(self, entries: Iterable[EducationEntry]) -> List[EducationEntry]:
        seen = set()
        out: List[EducationEntry] = []
        for e in entries:
            if not self._valid(e.school, e.degree):
                logger.debug("Discarding education entry %r", e.school)
                continue
            key = (e.school, e.degree, e.date_range)
            if key in seen:
                continue
            seen.add(key)
            out.append(e)
        return out

    @staticmethod
    def dedupe_skills(skills: Iterable[str]) -> List[str]:
        seen = set()
        out: List[str] = []
        for skill in skills:
            label = (skill or "").strip()
            if not label or label.lower() in seen:
                continue
            seen.add(label.lower())
            out.append(label)
        return out

    def to_experience(self, raw: RawEntry) -> ExperienceEntry:
        date_text, duration = self.split_duration(raw.date_text)
        start, end = self.parse_date_range(date_text)
        return ExperienceEntry(
            title=raw.primary.strip(),
            company=raw.secondary.strip(),
            company_logo=raw.logo,
            location=raw.location,
            start_date=start,
            end_date=end,
            description=raw.description,
            duration=duration,
            employment_type=raw.employment_type,
            date_range=raw.date_text.strip(),
        )

    def to_education(self, raw: RawEntry) -> EducationEntry:
        start, end = self.parse_date_range(raw.date_text)
        return EducationEntry(
            school=raw.primary.strip(),
            school_logo=raw.logo,
            degree=raw.secondary.strip(),
            field=raw.field,
            start_date=start,
            end_date=end,
            description=raw.description,
            date_range=raw.date_text.strip(),
        )

    def normalize(self, raw: RawScrape) -> ScrapeResult:
        experience = self.dedupe_experience(self.to_experience(r) for r in raw.experience)
        education = self.dedupe_education(self.to_education(r) for r in raw.education)
        skills = self.dedupe_skills(raw.skills)
        logger.info(
            "Normalized %d/%d experience, %d/%d education, %d/%d skills",
            len(experience), len(raw.experience),
            len(education), len(raw.education),
            len(skills), len(raw.skills),
        )
        return ScrapeResult(
            profile=raw.profile,
            experience=tuple(experience),
            education=tuple(education),
            skills=tuple(skills),
        )

from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Credentials(BaseModel):
    """Login material for one account, read once from the environment.

    ``secret`` and ``totp_seed`` are kept out of ``repr`` so that logging a
    request or an exception never leaks them.
    """
    identifier: str
    secret: str = Field(repr=False)
    totp_seed: Optional[str] = Field(default=None, repr=False)
    profile_url: str


class CookieRecord(BaseModel):
    """Serialized browser cookie, shaped like Playwright's cookie dicts."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    value: str
    domain: str
    path: str = "/"
    expires: float = -1
    http_only: bool = Field(default=False, alias="httpOnly")
    secure: bool = False
    same_site: str = Field(default="Lax", alias="sameSite")

    def to_playwright(self) -> dict:
        return self.model_dump(by_alias=True)


class ProfileRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    headline: str = ""
    location: str = ""
    summary: str = ""
    photo_url: str = ""


class ExperienceEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    company: str = ""
    company_logo: str = ""
    location: str = ""
    start_date: str = ""
    end_date: str = ""
    description: str = ""
    duration: str = ""
    employment_type: str = ""
    # Raw date text as rendered; only used as part of the dedup key.
    date_range: str = Field(default="", exclude=True)


class EducationEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    school: str
    school_logo: str = ""
    degree: str = ""
    field: str = ""
    start_date: str = ""
    end_date: str = ""
    description: str = ""
    date_range: str = Field(default="", exclude=True)


class ScrapeResult(BaseModel):
    """One successful scrape. Frozen so nothing downstream can patch it."""
    model_config = ConfigDict(frozen=True)

    profile: ProfileRecord
    experience: Tuple[ExperienceEntry, ...] = ()
    education: Tuple[EducationEntry, ...] = ()
    skills: Tuple[str, ...] = ()


class GeneratedEnvelope(BaseModel):
    """Self-describing wrapper written to ``linkedin.json``."""
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: str
    version: str
    data: Any


class RawEntry(BaseModel):
    """A classified list item before date parsing and deduplication.

    ``primary``/``secondary`` are title/company for experience and
    school/degree for education.
    """
    primary: str = ""
    secondary: str = ""
    date_text: str = ""
    location: str = ""
    logo: str = ""
    description: str = ""
    employment_type: str = ""
    field: str = ""


class RawScrape(BaseModel):
    """Everything the extractor recovered, still un-normalized."""
    profile: ProfileRecord
    experience: List[RawEntry] = []
    education: List[RawEntry] = []
    skills: List[str] = []

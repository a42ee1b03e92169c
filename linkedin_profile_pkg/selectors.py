"""Ordered selector candidates and the strategy interface that walks them.

LinkedIn ships several markup generations at once, so every lookup is a
prioritized list: the first candidate that works wins.
"""
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Tuple

from .page_query import PageQuery

logger = logging.getLogger(__name__)


class SelectorStrategy(Protocol):
    name: str

    async def attempt(self, page: PageQuery) -> Optional[str]:
        """Return the matched selector, or None when this strategy does not apply."""
        ...


@dataclass(frozen=True)
class PresentSelector:
    """Matches when at least one element for ``selector`` is in the DOM."""
    selector: str

    @property
    def name(self) -> str:
        return self.selector

    async def attempt(self, page: PageQuery) -> Optional[str]:
        return self.selector if await page.exists(self.selector) else None


@dataclass(frozen=True)
class ClickSelector:
    """Matches when ``selector`` was found and clicked."""
    selector: str

    @property
    def name(self) -> str:
        return self.selector

    async def attempt(self, page: PageQuery) -> Optional[str]:
        return self.selector if await page.click(self.selector) else None


async def first_match(page: PageQuery, strategies: Iterable[SelectorStrategy]) -> Optional[str]:
    for strategy in strategies:
        try:
            hit = await strategy.attempt(page)
        except Exception as e:
            logger.debug("Strategy %s failed: %s", strategy.name, e)
            continue
        if hit:
            return hit
    return None


LOGIN_USERNAME = "#username"
LOGIN_PASSWORD = "#password"
LOGIN_SUBMIT = "button[type='submit']"
LOGIN_ERROR = "#error-for-password, #error-for-username, .form__label--error"

OTP_INPUT_SELECTORS = (
    "input[name='pin']",
    "input#input__phone_verification_pin",
    "input[aria-label*='verification']",
    "input[aria-label*='code']",
    "input[type='tel']",
    "input.verification-code-input",
    "input[data-test='verification-code-input']",
)

OTP_SUBMIT_SELECTORS = (
    "button[type='submit']",
    "button[data-test='submit-button']",
    "button.btn-primary",
    "button[aria-label*='Submit']",
    "button[aria-label*='Verify']",
)


def otp_inputs() -> Tuple[PresentSelector, ...]:
    return tuple(PresentSelector(s) for s in OTP_INPUT_SELECTORS)


def otp_submits() -> Tuple[ClickSelector, ...]:
    return tuple(ClickSelector(s) for s in OTP_SUBMIT_SELECTORS)


# "Load more" / "Show more results", English and German UI.
LOAD_MORE_PATTERN = re.compile(
    r"load\s+more|show\s+more|see\s+more|weitere\s+laden|mehr\s+anzeigen|weitere\s+ergebnisse",
    re.I,
)


@dataclass(frozen=True)
class SectionSpec:
    """Where a profile detail section lives and how its items are marked up.

    ``containers`` lists section-specific anchors only; the page's ``main``
    landmark is used by the extractor after the section wait expires.
    """
    name: str
    path: str
    containers: Tuple[str, ...]
    items: Tuple[str, ...]

    def container_strategies(self) -> Tuple[PresentSelector, ...]:
        return tuple(PresentSelector(s) for s in self.containers)


_ITEM_SELECTORS = (
    "[componentkey*='entity-collection-item']",
    "[role='listitem']",
    "li.pvs-list__paged-list-item",
    "li.artdeco-list__item",
)

EXPERIENCE_SECTION = SectionSpec(
    name="experience",
    path="details/experience/",
    containers=(
        "[data-testid*='ExperienceDetailsSection']",
        "section:has(#experience)",
        "main .scaffold-finite-scroll__content",
    ),
    items=_ITEM_SELECTORS,
)

EDUCATION_SECTION = SectionSpec(
    name="education",
    path="details/education/",
    containers=(
        "[data-testid*='EducationDetailsSection']",
        "section:has(#education)",
        "main .scaffold-finite-scroll__content",
    ),
    items=_ITEM_SELECTORS,
)

SKILLS_SECTION = SectionSpec(
    name="skills",
    path="details/skills/",
    containers=(
        "[data-testid*='Skills']",
        "[data-view-name*='skill']",
        "section:has(#skills)",
    ),
    items=_ITEM_SELECTORS,
)


async def find_section(page: PageQuery, spec: SectionSpec) -> Optional[str]:
    return await first_match(page, spec.container_strategies())


# Legacy class names, only used when no semantic anchor yields anything.
CSS_FALLBACK = {
    "name": ("h1.text-heading-xlarge", ".pv-top-card--list li:first-child"),
    "headline": (".text-body-medium.break-words", ".pv-top-card--list + .text-body-medium"),
    "location": (
        ".pv-text-details__left-panel .text-body-small.inline",
        ".pv-top-card--list-bullet li:first-child",
    ),
    "summary": (".pv-about__summary-text", "#about ~ div .inline-show-more-text"),
}
CSS_FALLBACK_PHOTO = (
    "img.pv-top-card-profile-picture__image",
    "img.profile-photo-edit__preview",
)

"""Small query surface over a browser page.

Authentication and extraction only talk to a page through ``PageQuery``, so
their decision logic can be exercised with a scripted fake instead of a
browser. ``PlaywrightPageQuery`` is the real implementation; every call is
bounded by an explicit timeout.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from playwright.async_api import Page

from .config import NAV_TIMEOUT_MS, WAIT_TIMEOUT_MS

logger = logging.getLogger(__name__)


@dataclass
class ItemSnapshot:
    """Text content of one rendered list item, in document order."""
    texts: List[str] = field(default_factory=list)
    bold: List[str] = field(default_factory=list)
    muted: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)


class PageQuery(Protocol):
    @property
    def url(self) -> str: ...

    async def goto(self, url: str, timeout_ms: int = NAV_TIMEOUT_MS) -> None: ...

    async def wait_visible(self, selector: str, timeout_ms: int = WAIT_TIMEOUT_MS) -> bool: ...

    async def wait_hidden(self, selector: str, timeout_ms: int = WAIT_TIMEOUT_MS) -> bool: ...

    async def exists(self, selector: str) -> bool: ...

    async def count(self, selector: str) -> int: ...

    async def fill(self, selector: str, value: str) -> None: ...

    async def click(self, selector: str, timeout_ms: int = 5000) -> bool: ...

    async def press(self, selector: str, key: str) -> None: ...

    async def settle(self, ms: int) -> None: ...

    async def scroll_by(self, pixels: int) -> None: ...

    async def click_button_by_text(self, pattern: re.Pattern) -> bool: ...

    async def texts(self, selector: str) -> List[str]: ...

    async def attributes(self, selector: str, name: str) -> List[str]: ...

    async def json_ld_blocks(self) -> List[str]: ...

    async def list_items(self, container: str, items: Sequence[str]) -> List[ItemSnapshot]: ...


# Collects per-item texts by role: bold spans/paragraphs carry titles, muted
# ones carry dates and locations. aria-hidden duplicates (the visually hidden
# copy LinkedIn renders for screen readers) are skipped.
_ITEMS_SCRIPT = """
([container, itemSelectors]) => {
  const root = document.querySelector(container);
  if (!root) return null;
  let entries = [];
  for (const sel of itemSelectors) {
    entries = Array.from(root.querySelectorAll(sel));
    if (entries.length) break;
  }
  const clean = (el) => (el.textContent || '').replace(/\\s+/g, ' ').trim();
  return entries.map((entry) => {
    const texts = [];
    const bold = [];
    const muted = [];
    const seen = new Set();
    entry.querySelectorAll('p, span[aria-hidden="true"]').forEach((el) => {
      if (el.closest('.visually-hidden')) return;
      const text = clean(el);
      if (!text || text.length < 2 || seen.has(text)) return;
      seen.add(text);
      texts.push(text);
      const weight = parseInt(window.getComputedStyle(el).fontWeight || '400', 10);
      if (weight >= 600 || el.closest('.t-bold, strong, h3')) bold.push(text);
      if (el.closest('.t-black--light, .pvs-entity__caption-wrapper')) muted.push(text);
    });
    const images = [];
    entry.querySelectorAll('img').forEach((img) => {
      if (img.src) images.push(img.src);
    });
    return { texts, bold, muted, images };
  });
}
"""


class PlaywrightPageQuery:
    def __init__(self, page: Page):
        self.page = page

    @property
    def url(self) -> str:
        return self.page.url

    async def goto(self, url: str, timeout_ms: int = NAV_TIMEOUT_MS) -> None:
        await self.page.goto(url, timeout=timeout_ms, wait_until="domcontentloaded")

    async def wait_visible(self, selector: str, timeout_ms: int = WAIT_TIMEOUT_MS) -> bool:
        try:
            await self.page.locator(selector).first.wait_for(state="visible", timeout=timeout_ms)
            return True
        except Exception as e:
            logger.debug("wait_visible(%s) gave up: %s", selector, e)
            return False

    async def wait_hidden(self, selector: str, timeout_ms: int = WAIT_TIMEOUT_MS) -> bool:
        try:
            await self.page.locator(selector).first.wait_for(state="hidden", timeout=timeout_ms)
            return True
        except Exception as e:
            logger.debug("wait_hidden(%s) gave up: %s", selector, e)
            return False

    async def exists(self, selector: str) -> bool:
        return await self.count(selector) > 0

    async def count(self, selector: str) -> int:
        try:
            return await self.page.locator(selector).count()
        except Exception:
            return 0

    async def fill(self, selector: str, value: str) -> None:
        await self.page.locator(selector).first.fill(value, timeout=WAIT_TIMEOUT_MS)

    async def click(self, selector: str, timeout_ms: int = 5000) -> bool:
        loc = self.page.locator(selector).first
        try:
            if await loc.count() == 0:
                return False
            await loc.click(timeout=timeout_ms)
            return True
        except Exception as e:
            logger.debug("click(%s) failed: %s", selector, e)
            return False

    async def press(self, selector: str, key: str) -> None:
        await self.page.locator(selector).first.press(key, timeout=WAIT_TIMEOUT_MS)

    async def settle(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def scroll_by(self, pixels: int) -> None:
        await self.page.evaluate("(dy) => window.scrollBy(0, dy)", pixels)

    async def click_button_by_text(self, pattern: re.Pattern) -> bool:
        btns = self.page.get_by_role("button", name=pattern)
        for i in range(await btns.count()):
            btn = btns.nth(i)
            try:
                if await btn.is_visible():
                    await btn.scroll_into_view_if_needed(timeout=5000)
                    await btn.click(timeout=8000)
                    return True
            except Exception as e:
                logger.debug("Load-more button #%d not clickable: %s", i, e)
        return False

    async def texts(self, selector: str) -> List[str]:
        try:
            raw = await self.page.locator(selector).all_inner_texts()
        except Exception as e:
            logger.debug("texts(%s) failed: %s", selector, e)
            return []
        return [re.sub(r"\s+", " ", t).strip() for t in raw if t and t.strip()]

    async def attributes(self, selector: str, name: str) -> List[str]:
        try:
            values = await self.page.eval_on_selector_all(
                selector, "(els, name) => els.map((el) => el.getAttribute(name) || '')", name
            )
        except Exception as e:
            logger.debug("attributes(%s, %s) failed: %s", selector, name, e)
            return []
        return [v for v in values if v]

    async def json_ld_blocks(self) -> List[str]:
        return await self.page.eval_on_selector_all(
            "script[type='application/ld+json']", "(els) => els.map((el) => el.textContent || '')"
        )

    async def list_items(self, container: str, items: Sequence[str]) -> List[ItemSnapshot]:
        raw: Optional[list] = await self.page.evaluate(_ITEMS_SCRIPT, [container, list(items)])
        if raw is None:
            return []
        return [ItemSnapshot(**entry) for entry in raw]

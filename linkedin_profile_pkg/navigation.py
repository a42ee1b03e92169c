import logging
import random
import re
from typing import Awaitable, Callable, Optional

from .config import NAV_TIMEOUT_MS, WAIT_TIMEOUT_MS
from .errors import NavigationError
from .page_query import PageQuery

logger = logging.getLogger(__name__)


async def human_pause(page: PageQuery, min_ms: int = 500, max_ms: int = 1500) -> None:
    """Wait a random duration to emulate human pacing."""
    await page.settle(random.randint(min_ms, max_ms))


async def goto_with_retry(page: PageQuery, url: str, timeout_ms: int = NAV_TIMEOUT_MS, tries: int = 2) -> None:
    """Navigate with bounded retries; raises NavigationError after the last try."""
    last_err: Optional[Exception] = None
    for attempt in range(tries):
        try:
            await page.goto(url, timeout_ms=timeout_ms)
            await human_pause(page, 1000, 2000)
            return
        except Exception as e:
            last_err = e
            logger.warning("Navigation to %s failed (attempt %d/%d): %s", url, attempt + 1, tries, e)
            if attempt < tries - 1:
                await human_pause(page, 1000, 2000)
    raise NavigationError(f"failed to navigate to {url}: {last_err}")


async def wait_for_main(page: PageQuery, selector: str = "main", timeout_ms: int = WAIT_TIMEOUT_MS) -> bool:
    """Bounded wait for the page's main landmark. Logs on expiry, never raises."""
    if await page.wait_visible(selector, timeout_ms):
        return True
    logger.warning("Timed out waiting for %s on %s", selector, page.url)
    return False


async def progressive_scroll(page: PageQuery, steps: int = 10, step_px: int = 500, pause_ms: int = 300) -> None:
    """Scroll down in small steps so lazy-loaded list items render."""
    for _ in range(steps):
        try:
            await page.scroll_by(step_px)
        except Exception as e:
            logger.debug("Scroll step failed: %s", e)
            return
        await page.settle(pause_ms)


async def expand_list(
    page: PageQuery,
    pattern: re.Pattern,
    count_items: Callable[[], Awaitable[int]],
    max_clicks: int = 5,
    wait_ms: int = 3000,
) -> int:
    """Click "load more" controls until none is left or the list stops growing.

    Returns the number of successful clicks. ``count_items`` reports how many
    list items are currently rendered.
    """
    clicks = 0
    last = await count_items()
    for _ in range(max_clicks):
        try:
            clicked = await page.click_button_by_text(pattern)
        except Exception as e:
            logger.debug("Load-more lookup failed: %s", e)
            break
        if not clicked:
            break
        clicks += 1
        logger.info("Clicked 'Load more' button, waiting for content...")
        await page.settle(wait_ms)
        current = await count_items()
        if current <= last:
            break
        last = current
    return clicks

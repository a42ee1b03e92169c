"""Chromium lifecycle for one scrape run."""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Tuple

from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route, async_playwright

from .config import BLOCK_IMAGES, SLOW_MO_MS, random_user_agent

logger = logging.getLogger(__name__)

# Automation signals off; no GPU, sandbox or extensions inside containers.
CHROMIUM_FLAGS = (
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-extensions",
    "--no-first-run",
    "--mute-audio",
    "--window-size=1920,1080",
)

IMAGE_ROUTE = "**/*.{png,jpg,jpeg,gif,svg,ico,webp}"

# Patched before any page script runs.
STEALTH_SCRIPT = """
(() => {
  Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
  Object.defineProperty(navigator, 'languages', { get: () => ['de-AT', 'de', 'en-US', 'en'] });
  Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3] });
  window.chrome = window.chrome || { runtime: {} };
  const query = navigator.permissions.query.bind(navigator.permissions);
  navigator.permissions.query = (p) =>
    p && p.name === 'notifications' ? Promise.resolve({ state: Notification.permission }) : query(p);
})();
"""


@dataclass(frozen=True)
class SessionOptions:
    headless: bool = True
    proxy: Optional[str] = None
    block_images: bool = BLOCK_IMAGES
    locale: str = "de-AT"
    timezone_id: str = "Europe/Vienna"
    user_agent: Optional[str] = None


async def launch_browser(pw: Playwright, options: SessionOptions) -> Browser:
    kwargs = {"headless": options.headless, "args": list(CHROMIUM_FLAGS)}
    if options.proxy:
        kwargs["proxy"] = {"server": options.proxy}
    if SLOW_MO_MS > 0:
        kwargs["slow_mo"] = SLOW_MO_MS
    logger.info("Launching Chromium (headless=%s, proxy=%s)", options.headless, bool(options.proxy))
    return await pw.chromium.launch(**kwargs)


async def new_context(browser: Browser, options: SessionOptions) -> BrowserContext:
    """Desktop-sized context with the locale LinkedIn renders dates in."""
    context = await browser.new_context(
        user_agent=options.user_agent or random_user_agent(),
        viewport={"width": 1920, "height": 1080},
        locale=options.locale,
        timezone_id=options.timezone_id,
        extra_http_headers={"Accept-Language": "de-AT,de;q=0.9,en-US;q=0.8,en;q=0.7", "DNT": "1"},
    )
    await context.add_init_script(STEALTH_SCRIPT)
    return context


async def _abort_route(route: Route) -> None:
    await route.abort()


@asynccontextmanager
async def browser_session(
    headless: bool = True,
    proxy: Optional[str] = None,
    block_images: bool = BLOCK_IMAGES,
) -> AsyncIterator[Tuple[BrowserContext, Page]]:
    """Yield a fresh (context, page) and release everything on exit.

    Page, context, browser and the Playwright driver are closed on every
    exit path, including cancellation of the surrounding task.
    """
    options = SessionOptions(headless=headless, proxy=proxy, block_images=block_images)
    pw = await async_playwright().start()
    resources = []
    try:
        browser = await launch_browser(pw, options)
        resources.append(("browser", browser))
        context = await new_context(browser, options)
        resources.append(("context", context))
        page = await context.new_page()
        resources.append(("page", page))
        if options.block_images:
            await page.route(IMAGE_ROUTE, _abort_route)
        yield context, page
    finally:
        for name, resource in reversed(resources):
            try:
                await resource.close()
            except Exception as e:
                logger.warning("Failed to close %s: %s", name, e)
        try:
            await pw.stop()
        except Exception as e:
            logger.warning("Failed to stop playwright driver: %s", e)

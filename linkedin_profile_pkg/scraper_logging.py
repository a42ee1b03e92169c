import logging
import os
import sys
import tempfile
import time
from typing import List, Optional

_INITIALIZED: bool = False


def init_logging(level: str | None = None) -> None:
    """Configure the root logger once; later calls are no-ops."""
    global _INITIALIZED
    if _INITIALIZED:
        return

    from .config import LOG_LEVEL

    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        root_logger.addHandler(handler)
    # Playwright's asyncio chatter is rarely useful
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    _INITIALIZED = True


def add_debug(debug_list: List[str], tag: str) -> None:
    """Append a debug tag to the in-flight list.

    Using small, structured tags helps trace the executed strategies and
    decisions without exposing sensitive data.
    """
    debug_list.append(tag)


async def save_debug_files(page, prefix: str = "linkedin") -> Optional[dict]:
    """Save a full-page screenshot and HTML content for diagnostics.

    Returns a map with file paths or None if saving fails. Only called when
    a run was started with debug enabled.
    """
    try:
        ts = int(time.time())
        base = os.path.join(tempfile.gettempdir(), f"{prefix}_{ts}")
        screenshot_path = f"{base}.png"
        html_path = f"{base}.html"
        await page.screenshot(path=screenshot_path, full_page=True)
        content = await page.content()
        with open(html_path, "w", encoding="utf-8") as f:
            f.write(content)
        return {"screenshot": screenshot_path, "html": html_path}
    except Exception as e:
        logging.getLogger(__name__).warning("Could not save debug files: %s", e)
        return None

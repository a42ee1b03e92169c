from __future__ import annotations

import os
import sys
import time
from datetime import timedelta
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'linkedin_profile_pkg.auth'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    os.environ.setdefault("RUN_ENV", "test")


class MemoryCache:
    """In-process stand-in for FileCache with the same miss semantics."""

    def __init__(self):
        self.entries: Dict[str, Tuple[bytes, float]] = {}
        self.writes: List[str] = []

    def get(self, key: str) -> Optional[bytes]:
        entry = self.entries.get(key)
        if entry is None:
            return None
        data, expires_at = entry
        if time.time() > expires_at:
            del self.entries[key]
            return None
        return data

    def set(self, key: str, data: bytes, ttl: timedelta) -> None:
        self.writes.append(key)
        self.entries[key] = (data, time.time() + ttl.total_seconds())

    def delete(self, key: str) -> None:
        self.entries.pop(key, None)

    def clear(self) -> None:
        self.entries.clear()


class FakePageQuery:
    """Scripted page: URLs, present selectors and click effects are plain data.

    ``effects`` maps a selector to a queue of state changes applied when that
    selector is clicked (or Enter is pressed in it). Each change is a dict
    with optional ``url``, ``show`` and ``hide`` keys.
    """

    def __init__(
        self,
        url: str = "about:blank",
        present: Sequence[str] = (),
        redirects: Optional[Dict[str, str]] = None,
        goto_errors: Sequence[str] = (),
        effects: Optional[Dict[str, List[dict]]] = None,
        texts: Optional[Dict[str, List[str]]] = None,
        attributes: Optional[Dict[str, List[str]]] = None,
        json_ld: Sequence[str] = (),
        sections: Optional[Dict[str, list]] = None,
    ):
        self._url = url
        self.present = set(present)
        self.redirects = redirects or {}
        self.goto_errors = tuple(goto_errors)
        self.effects = {k: list(v) for k, v in (effects or {}).items()}
        self._texts = texts or {}
        self._attributes = attributes or {}
        self._json_ld = list(json_ld)
        self.sections = sections or {}
        self.visited: List[str] = []
        self.fills: List[Tuple[str, str]] = []
        self.clicks: List[str] = []
        self.presses: List[Tuple[str, str]] = []

    @property
    def url(self) -> str:
        return self._url

    def _apply(self, selector: str) -> None:
        queue = self.effects.get(selector)
        if not queue:
            return
        change = queue.pop(0)
        if "url" in change:
            self._url = change["url"]
        self.present |= set(change.get("show", ()))
        self.present -= set(change.get("hide", ()))

    async def goto(self, url: str, timeout_ms: int = 0) -> None:
        self.visited.append(url)
        if any(marker in url for marker in self.goto_errors):
            raise TimeoutError(f"Timeout navigating to {url}")
        self._url = self.redirects.get(url, url)

    async def wait_visible(self, selector: str, timeout_ms: int = 0) -> bool:
        return selector in self.present

    async def wait_hidden(self, selector: str, timeout_ms: int = 0) -> bool:
        return selector not in self.present

    async def exists(self, selector: str) -> bool:
        return selector in self.present

    async def count(self, selector: str) -> int:
        return 1 if selector in self.present else 0

    async def fill(self, selector: str, value: str) -> None:
        self.fills.append((selector, value))

    async def click(self, selector: str, timeout_ms: int = 5000) -> bool:
        if selector not in self.present:
            return False
        self.clicks.append(selector)
        self._apply(selector)
        return True

    async def press(self, selector: str, key: str) -> None:
        self.presses.append((selector, key))
        self._apply(selector)

    async def settle(self, ms: int) -> None:
        return None

    async def scroll_by(self, pixels: int) -> None:
        return None

    async def click_button_by_text(self, pattern) -> bool:
        return False

    async def texts(self, selector: str) -> List[str]:
        return list(self._texts.get(selector, []))

    async def attributes(self, selector: str, name: str) -> List[str]:
        return list(self._attributes.get(selector, []))

    async def json_ld_blocks(self) -> List[str]:
        return list(self._json_ld)

    async def list_items(self, container: str, items: Sequence[str]) -> list:
        for marker, snapshots in self.sections.items():
            if marker in self._url:
                return list(snapshots)
        return []


class FakeJar:
    def __init__(self, accept: bool = True, exported=None):
        self.accept = accept
        self.exported = list(exported or [])
        self.added: list = []

    async def add(self, cookies) -> bool:
        self.added.append(list(cookies))
        return self.accept

    async def export(self):
        return list(self.exported)


@pytest.fixture
def memory_cache():
    return MemoryCache()


@pytest.fixture
def fake_jar():
    return FakeJar()

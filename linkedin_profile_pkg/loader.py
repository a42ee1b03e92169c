import asyncio
import json
import logging
import os
import threading
from typing import Any, Dict, Sequence

import httpx

from .config import DATA_DIR, DATA_REFRESH_HOURS, DATA_REMOTE_BASE_URL
from .models import GeneratedEnvelope, ScrapeResult

logger = logging.getLogger(__name__)

GENERATED_FILES = ("github.json", "linkedin.json", "strava.json")


class DataNotFound(Exception):
    pass


class DataLoader:
    """Serve generated envelopes to the web layer.

    One plain lock guards both reads and refresh writes, so a reader never
    sees a half-written file; a refresh blocks reads for the duration of a
    single file write and vice versa.
    """

    def __init__(
        self,
        data_dir: str = DATA_DIR,
        remote_base_url: str = DATA_REMOTE_BASE_URL,
        refresh_interval_s: float = DATA_REFRESH_HOURS * 3600,
    ):
        self.data_dir = data_dir
        self.remote_base_url = remote_base_url.rstrip("/")
        self.refresh_interval_s = refresh_interval_s
        self._lock = threading.Lock()

    def _load_json(self, filename: str) -> Dict[str, Any]:
        # caller holds the lock
        path = os.path.join(self.data_dir, filename)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise DataNotFound(f"data file not found: {filename} (run data generation first)")

    def load_envelope(self, source: str) -> GeneratedEnvelope:
        with self._lock:
            raw = self._load_json(f"{source}.json")
        return GeneratedEnvelope.model_validate(raw)

    def load_linkedin(self) -> ScrapeResult:
        return ScrapeResult.model_validate(self.load_envelope("linkedin").data)

    def data_exists(self, source: str) -> bool:
        with self._lock:
            return os.path.exists(os.path.join(self.data_dir, f"{source}.json"))

    def save_file(self, filename: str, data: bytes) -> None:
        # Reject anything that is not JSON before it replaces a good file
        json.loads(data)
        os.makedirs(self.data_dir, exist_ok=True)
        path = os.path.join(self.data_dir, filename)
        with self._lock:
            with open(path, "wb") as f:
                f.write(data)
        logger.info("Updated %s (%d bytes)", filename, len(data))

    async def fetch_and_save(self, client: httpx.AsyncClient, filename: str) -> None:
        resp = await client.get(
            f"{self.remote_base_url}/{filename}",
            headers={"Cache-Control": "no-cache", "Accept": "application/json"},
        )
        resp.raise_for_status()
        self.save_file(filename, resp.content)

    async def refresh_from_remote(self, files: Sequence[str] = GENERATED_FILES) -> int:
        """Download the latest generated files; returns how many were updated."""
        updated = 0
        async with httpx.AsyncClient(timeout=30.0) as client:
            for filename in files:
                try:
                    await self.fetch_and_save(client, filename)
                    updated += 1
                except (httpx.HTTPError, ValueError, OSError) as e:
                    logger.warning("Failed to refresh %s: %s", filename, e)
        logger.info("Data refresh complete: %d/%d files updated", updated, len(files))
        return updated

    async def run_auto_refresh(self) -> None:
        """Refresh now and then every interval, until cancelled."""
        logger.info("Starting auto-refresh with interval: %ss", self.refresh_interval_s)
        try:
            while True:
                await self.refresh_from_remote()
                await asyncio.sleep(self.refresh_interval_s)
        except asyncio.CancelledError:
            logger.info("Auto-refresh stopped")
            raise

import base64
import json
import logging
import os
import re
import time
from datetime import timedelta
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class Cache(Protocol):
    """Key/value store with per-entry TTL.

    ``get`` returns None for a miss; a corrupt or expired entry is a miss,
    never an error.
    """

    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, data: bytes, ttl: timedelta) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


def sanitize_key(key: str) -> str:
    """Map a cache key to a safe file name."""
    return re.sub(r"[^A-Za-z0-9_\-]", "_", key)


class FileCache:
    """One JSON file per key: ``{"data": <base64>, "expires_at": <epoch>}``."""

    def __init__(self, base_dir: str):
        self.base_dir = base_dir
        os.makedirs(base_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.base_dir, f"{sanitize_key(key)}.json")

    def _discard(self, path: str, why: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to remove %s cache file %s: %s", why, path, e)

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                entry = json.load(f)
            data = base64.b64decode(entry["data"])
            expires_at = float(entry["expires_at"])
        except FileNotFoundError:
            return None
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Invalid cache entry for %s, treating as miss: %s", key, e)
            self._discard(path, "invalid")
            return None

        if time.time() > expires_at:
            self._discard(path, "expired")
            return None
        return data

    def set(self, key: str, data: bytes, ttl: timedelta) -> None:
        entry = {
            "data": base64.b64encode(data).decode("ascii"),
            "expires_at": time.time() + ttl.total_seconds(),
        }
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(entry, f)
        os.replace(tmp_path, path)

    def delete(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass

    def clear(self) -> None:
        for name in os.listdir(self.base_dir):
            path = os.path.join(self.base_dir, name)
            if os.path.isfile(path):
                os.remove(path)

"""File-backed response cache with a time-to-live."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300


class ResponseCache:
    """Maps request paths to decoded JSON bodies in a single JSON file.

    Entries older than `ttl` seconds are treated as absent and cleared.
    A missing or corrupt cache file behaves like an empty cache.
    """

    def __init__(self, path: Path, ttl: int = DEFAULT_TTL) -> None:
        self.path = path
        self.ttl = ttl

    def _load(self) -> dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def get(self, key: str) -> Any | None:
        entry = self._load().get(key)
        if not isinstance(entry, dict) or entry.get("value") is None:
            return None
        try:
            ts = datetime.fromisoformat(entry["ts"])
        except (KeyError, TypeError, ValueError):
            return None
        if ts + timedelta(seconds=self.ttl) < datetime.now(timezone.utc):
            logger.debug("Cache entry %s expired", key)
            self.clear(key)
            return None
        logger.debug("Cache hit for %s", key)
        return entry["value"]

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = {"value": value, "ts": datetime.now(timezone.utc).isoformat()}
        self._save(data)

    def clear(self, key: str | None = None) -> None:
        if key is None:
            self.path.unlink(missing_ok=True)
            return
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)

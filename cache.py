from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    text: str
    stored_at: float


class CacheStore:
    """JSON file holding url -> CacheEntry."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load_all(self) -> Dict[str, CacheEntry]:
        """Load every entry; a missing or unreadable file yields an empty mapping."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No existing cache found at %s", self._path)
            return {}
        except OSError as exc:
            logger.warning("Unable to read cache %s: %s", self._path, exc)
            return {}

        try:
            payload = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring corrupt cache file %s: %s", self._path, exc)
            return {}

        if not isinstance(payload, dict):
            logger.warning("Ignoring cache file %s: expected a JSON object", self._path)
            return {}

        entries: Dict[str, CacheEntry] = {}
        for url, item in payload.items():
            if not isinstance(item, dict) or not isinstance(item.get("text"), str):
                continue
            try:
                stored_at = float(item.get("stored_at", 0.0))
            except (TypeError, ValueError):
                logger.warning("Skipping cache entry %s with invalid stored_at", url)
                continue
            entries[url] = CacheEntry(text=item["text"], stored_at=stored_at)
        logger.debug("Loaded %d cache entries from %s", len(entries), self._path)
        return entries

    def persist_all(self, entries: Dict[str, CacheEntry]) -> None:
        """Write all entries, replacing the previous file only once fully written."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {url: asdict(entry) for url, entry in entries.items()}
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", dir=str(self._path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class ContentCache:
    """Extracted text keyed by requested URL, saved after every new entry.

    A ttl_seconds of 0 keeps entries forever.
    """

    def __init__(self, store: CacheStore, ttl_seconds: int = 0) -> None:
        self._store = store
        self._ttl = ttl_seconds
        self._entries: Dict[str, CacheEntry] = store.load_all()

    def get(self, url: str) -> Optional[str]:
        entry = self._entries.get(url)
        if not entry:
            return None
        if self._ttl and entry.stored_at + self._ttl < time.time():
            self._entries.pop(url, None)
            return None
        return entry.text

    def put(self, url: str, text: str) -> None:
        self._entries[url] = CacheEntry(text=text, stored_at=time.time())
        self._store.persist_all(self._entries)

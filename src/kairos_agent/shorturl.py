"""Short redirect links for calendar URLs, persisted to a JSON file."""

from __future__ import annotations

import json
import os
import secrets
import tempfile
import threading
from pathlib import Path
from typing import Dict, Mapping, Optional

import structlog

LOGGER = structlog.get_logger(__name__)

SHORT_ID_BYTES = 3


class ShortUrlStore:
    """``{short_id: long_url}`` mapping kept in memory and written through to disk."""

    def __init__(self, path: str | Path, base_url: str) -> None:
        self.path = Path(path)
        self.base_url = base_url.rstrip("/")
        self._lock = threading.Lock()
        self._mappings: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("{}", encoding="utf-8")
            LOGGER.info("shorturl.store.created", path=str(self.path))
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.error("shorturl.store.unreadable", path=str(self.path), error=str(exc))
            self._set_aside()
            return {}
        if not isinstance(data, dict):
            LOGGER.error("shorturl.store.invalid", path=str(self.path))
            self._set_aside()
            return {}
        LOGGER.info("shorturl.store.loaded", path=str(self.path), count=len(data))
        return {str(key): str(value) for key, value in data.items()}

    def _set_aside(self) -> None:
        """Move an unreadable store to ``<name>.unreadable``; new mappings start a fresh file."""
        backup = self.path.with_name(f"{self.path.name}.unreadable")
        try:
            os.replace(self.path, backup)
        except OSError as exc:
            LOGGER.error("shorturl.store.set_aside_failed", path=str(self.path), error=str(exc))
            return
        LOGGER.warning("shorturl.store.set_aside", path=str(self.path), backup=str(backup))

    def _save(self) -> None:
        # Readers only ever see a complete file.
        handle, temp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(handle, "w", encoding="utf-8") as temp_file:
                json.dump(self._mappings, temp_file, indent=2)
            os.replace(temp_path, self.path)
        except BaseException:
            os.unlink(temp_path)
            raise

    def __len__(self) -> int:
        return len(self._mappings)

    def shorten(self, long_url: str) -> str:
        """Return the id for ``long_url``, reusing an existing one when present."""
        with self._lock:
            for short_id, url in self._mappings.items():
                if url == long_url:
                    return short_id
            short_id = secrets.token_hex(SHORT_ID_BYTES)
            while short_id in self._mappings:
                short_id = secrets.token_hex(SHORT_ID_BYTES)
            self._mappings[short_id] = long_url
            self._save()
        LOGGER.info("shorturl.created", short_id=short_id)
        return short_id

    def resolve(self, short_id: str) -> Optional[str]:
        return self._mappings.get(short_id)

    def short_url(self, long_url: str) -> str:
        return f"{self.base_url}/r/{self.shorten(long_url)}"

    def shorten_links(self, links: Mapping[str, str]) -> Dict[str, str]:
        """Shorten every provider link; ``all`` is re-pointed at the short Google link."""
        shortened = {
            provider: self.short_url(url)
            for provider, url in links.items()
            if provider != "all" and url
        }
        shortened["all"] = shortened.get("google", "")
        return shortened

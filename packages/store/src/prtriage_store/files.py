"""FileCache: file-per-key assessment cache, the default backend.

Writes go to a temp file in the same directory and are moved into place
with os.replace(), so a concurrent reader sees the old file, the new file
or no file. Every entry carries its `pr_number` tag and invalidate_by_pr()
scans the directory for it; there is no index.

Layout: `<cache_dir>/<key>.json`, one CacheEntry dict per file.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path

from prtriage_store.base import BaseCache
from prtriage_store.models import CacheEntry

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class FileCache(BaseCache):
    """Stores cache entries as JSON files under ``cache_dir``.

    The directory defaults to `.prtriage/assessment-cache` and is created on
    first use. Configure via .prtriage.yml: `cache_dir: path/to/dir`.
    """

    def __init__(self, cache_dir: str = ".prtriage/assessment-cache"):
        self._dir = Path(cache_dir)
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid cache key: {key!r}")
        return self._dir / f"{key}.json"

    def get(self, key: str) -> CacheEntry | None:
        data = self._read(self._path(key))
        if data is None:
            return None
        return CacheEntry.from_dict(data)

    def put(self, entry: CacheEntry) -> None:
        target = self._path(entry.key)
        fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=f".{entry.key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entry.to_dict(), f, indent=2)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def invalidate_by_pr(self, pr_number: int) -> int:
        removed = 0
        for path in sorted(self._dir.glob("*.json")):
            data = self._read(path)
            if data is None:
                continue
            if str(data.get("pr_number")) != str(pr_number):
                continue
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                # Another pipeline instance removed it first.
                pass
        if removed:
            logger.info("Invalidated %d cached assessment(s) for PR #%s", removed, pr_number)
        return removed

    @staticmethod
    def _read(path: Path) -> dict | None:
        """Load one entry file, or None if it is missing or unreadable."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable cache entry %s: %s", path.name, e)
            return None
        return data if isinstance(data, dict) else None

"""Key-value stores for final analyses.

Keys look like ``owner/repo:branch:sha``. Stores never evaluate freshness;
the analyzer compares each record's timestamp against its own TTL.
"""

import copy
import json
from pathlib import Path
from typing import Optional, Protocol

from .logging import get_logger
from .models import RepoAnalysis

logger = get_logger("cache")

_CACHE_VERSION = 1


class CacheStore(Protocol):
    def get(self, key: str) -> Optional[RepoAnalysis]:
        ...

    def set(self, key: str, analysis: RepoAnalysis) -> None:
        ...


class MemoryCacheStore:
    """Process-local store. Hands out copies so callers cannot mutate entries."""

    def __init__(self) -> None:
        self._entries: dict[str, RepoAnalysis] = {}

    def get(self, key: str) -> Optional[RepoAnalysis]:
        entry = self._entries.get(key)
        return copy.deepcopy(entry) if entry is not None else None

    def set(self, key: str, analysis: RepoAnalysis) -> None:
        self._entries[key] = copy.deepcopy(analysis)

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)


class FileCacheStore:
    """JSON file store, persisted on every write."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._entries: dict[str, dict] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[RepoAnalysis]:
        payload = self._entries.get(key)
        if payload is None:
            return None
        try:
            return RepoAnalysis.from_dict(payload)
        except (KeyError, TypeError, ValueError):
            logger.debug("Dropping malformed cache entry %s", key)
            self._entries.pop(key, None)
            return None

    def set(self, key: str, analysis: RepoAnalysis) -> None:
        self._entries[key] = analysis.to_dict()
        self._persist()

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        self._persist()
        return count

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Internal helpers

    def _persist(self) -> None:
        payload = {"version": _CACHE_VERSION, "entries": self._entries}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")

    def _load(self) -> None:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable cache file %s", self._path)
            return
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        self._entries = {
            key: value for key, value in entries.items()
            if isinstance(key, str) and isinstance(value, dict)
        }

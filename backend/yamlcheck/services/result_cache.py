"""Result cache - fingerprint-keyed store of completed validation outcomes.

Entries live for the lifetime of the owning engine: no TTL, no size bound,
cleared only by reset().
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import structlog

from yamlcheck.errors import CacheCorruption
from yamlcheck.validators.models import ValidationOutcome

logger = structlog.get_logger()


def fingerprint(content: str, config: dict[str, Any], tool_names: Iterable[str]) -> str:
    """SHA-256 over document content, resolved tool config and the tool set.

    Any of the three changing yields a different key.
    """
    h = hashlib.sha256()
    h.update(content.encode("utf-8"))
    h.update(b"\x00")
    h.update(json.dumps(config, sort_keys=True, default=str).encode("utf-8"))
    h.update(b"\x00")
    h.update(json.dumps(sorted(set(tool_names))).encode("utf-8"))
    return h.hexdigest()


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    corrupt: int = 0
    size: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "corrupt": self.corrupt,
            "size": self.size,
        }


class ResultCache:
    """In-memory write-once/read-many outcome store."""

    def __init__(self):
        self._entries: dict[str, Any] = {}
        self._stats = CacheStats()

    @property
    def stats(self) -> CacheStats:
        self._stats.size = len(self._entries)
        return self._stats

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    @staticmethod
    def _check_shape(key: str, value: Any) -> ValidationOutcome:
        if not isinstance(value, ValidationOutcome):
            raise CacheCorruption(f"Entry {key[:12]} holds {type(value).__name__}, not an outcome")
        return value

    def get(self, key: str) -> Optional[ValidationOutcome]:
        """Return the stored outcome, or None on a miss or a corrupt entry."""
        if key not in self._entries:
            self._stats.misses += 1
            return None

        try:
            outcome = self._check_shape(key, self._entries[key])
        except CacheCorruption as e:
            logger.warning("cache_entry_corrupt", key=key[:12], error=str(e))
            del self._entries[key]
            self._stats.corrupt += 1
            self._stats.misses += 1
            return None

        self._stats.hits += 1
        return outcome

    def put(self, key: str, outcome: ValidationOutcome) -> None:
        """Store an outcome. Rewriting a key replaces the value (last writer wins)."""
        self._entries[key] = outcome

    def reset(self) -> None:
        self._entries.clear()
        self._stats = CacheStats()

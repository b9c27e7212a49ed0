"""Bounded key/value cache with golden-ratio scoring, decay and eviction.

Entries age exponentially (``PHI ** (-age / max_age)``) and are scored from a
Fibonacci-weighted access count, the time since their last access and their
current decay. When the cache is full, inserting a new key evicts the entry
with the lowest freshly computed score.

The cache is an ordinary object: construct one per process or tenant and hand
it to whatever needs it. All public methods are serialized by a re-entrant
lock, so eviction and insertion are atomic with respect to each other.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from pydantic import BaseModel, TypeAdapter

from data_designer_golden_text.golden import INV_PHI, PHI, fibonacci, mean, ratio_alignment, round_half_up

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ENTRY_OVERHEAD_BYTES = 64
_MIN_AGE_FACTOR = 0.1

# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CacheOptions:
    """Capacity, ageing and persistence settings.

    ``max_age`` is in seconds. ``persist_path`` enables :meth:`ScoringCache.persist`
    and loading the snapshot on construction.
    """

    max_entries: int = math.floor(PHI * 100)
    max_age: float = 24 * 60 * 60
    decay_threshold: float = INV_PHI
    golden_weight: float = PHI
    persist_path: str | None = None

    def __post_init__(self) -> None:
        if self.max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {self.max_entries}")
        if self.max_age <= 0:
            raise ValueError(f"max_age must be > 0, got {self.max_age}")
        if not 0 <= self.decay_threshold <= 1:
            raise ValueError(f"decay_threshold must be within [0, 1], got {self.decay_threshold}")
        if self.golden_weight <= 0:
            raise ValueError(f"golden_weight must be > 0, got {self.golden_weight}")


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass
class CacheEntry(Generic[T]):
    key: str
    value: T
    created_at: float
    last_access: float
    access_count: int = 1
    score: float = 0.0
    decay: float = 1.0


@dataclass(frozen=True)
class CacheStats:
    total_entries: int
    hits: int
    misses: int
    hit_rate: float
    average_age: float
    average_decay: float
    golden_ratio: float
    memory_usage: int

    def to_payload(self) -> dict[str, object]:
        return {
            "total_entries": self.total_entries,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
            "average_age": self.average_age,
            "average_decay": self.average_decay,
            "golden_ratio": self.golden_ratio,
            "memory_usage": self.memory_usage,
        }


@dataclass(frozen=True)
class TopEntry:
    key: str
    score: float
    age: float

    def to_payload(self) -> dict[str, object]:
        return {"key": self.key, "score": self.score, "age": self.age}


class _EntryRecord(BaseModel):
    key: str
    value: Any
    created_at: float
    last_access: float
    access_count: int
    score: float
    decay: float


class _Snapshot(BaseModel):
    entries: list[_EntryRecord]
    hits: int = 0
    misses: int = 0
    last_sweep: float
    saved_at: float


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class ScoringCache(Generic[T]):
    """Score-evicting cache.

    Args:
        options: Capacity, ageing and persistence settings.
        clock: Returns the current time in seconds. Defaults to :func:`time.time`.
        value_type: Type used to serialize values to and from the snapshot file.
            With the default ``Any``, dataclass values come back as plain dicts.
    """

    def __init__(
        self,
        options: CacheOptions | None = None,
        *,
        clock: Callable[[], float] = time.time,
        value_type: Any = Any,
    ) -> None:
        self.options = options or CacheOptions()
        self._clock = clock
        self._adapter: TypeAdapter[Any] = TypeAdapter(value_type)
        self._entries: dict[str, CacheEntry[T]] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._last_sweep = clock()

        if self.options.persist_path:
            self._load()

    # -- presets ------------------------------------------------------------

    @classmethod
    def for_sections(cls, persist_path: str | None = None, **kwargs: Any) -> ScoringCache[Any]:
        options = CacheOptions(
            max_entries=math.floor(PHI * 20),
            max_age=30 * 60,
            decay_threshold=0.382,
            golden_weight=PHI * 1.2,
            persist_path=persist_path,
        )
        return cls(options, **kwargs)

    @classmethod
    def for_keywords(cls, persist_path: str | None = None, **kwargs: Any) -> ScoringCache[Any]:
        options = CacheOptions(
            max_entries=math.floor(PHI * 50),
            max_age=2 * 60 * 60,
            decay_threshold=0.5,
            golden_weight=PHI,
            persist_path=persist_path,
        )
        return cls(options, **kwargs)

    @classmethod
    def for_patterns(cls, persist_path: str | None = None, **kwargs: Any) -> ScoringCache[Any]:
        options = CacheOptions(
            max_entries=math.floor(PHI * 30),
            max_age=60 * 60,
            decay_threshold=0.618,
            golden_weight=PHI * 0.8,
            persist_path=persist_path,
        )
        return cls(options, **kwargs)

    # -- public API ---------------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str, default: T | None = None) -> T | None:
        """Return the cached value, or ``default`` on a miss or an expired entry."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return default
            if self._is_expired(entry, now):
                del self._entries[key]
                self._misses += 1
                logger.debug(f"cache entry {key!r} expired on read")
                return default

            entry.access_count += 1
            entry.last_access = now
            entry.score = self._score(entry, now)
            self._hits += 1
            return entry.value

    def set(self, key: str, value: T) -> None:
        """Insert or replace ``key``. A new key on a full cache evicts the lowest scorer."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None:
                if len(self._entries) >= self.options.max_entries:
                    self._evict(now)
                entry = CacheEntry(key=key, value=value, created_at=now, last_access=now)
                self._entries[key] = entry
            else:
                entry.value = value
                entry.created_at = now
                entry.last_access = now
                entry.access_count += 1
                entry.decay = 1.0
            entry.score = self._score(entry, now)

            if now - self._last_sweep > self.options.max_age / PHI:
                self._sweep(now, keep=key)

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._is_expired(entry, self._clock()):
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._last_sweep = self._clock()

    def get_stats(self) -> CacheStats:
        with self._lock:
            now = self._clock()
            entries = list(self._entries.values())
            for entry in entries:
                self._is_expired(entry, now)
                entry.score = self._score(entry, now)

            lookups = self._hits + self._misses
            return CacheStats(
                total_entries=len(entries),
                hits=self._hits,
                misses=self._misses,
                hit_rate=round_half_up(self._hits / lookups) if lookups else 0.0,
                average_age=round_half_up(mean(now - e.created_at for e in entries)),
                average_decay=round_half_up(mean((e.decay for e in entries), default=1.0)),
                golden_ratio=round_half_up(ratio_alignment([e.score for e in entries])),
                memory_usage=self._memory_usage(entries),
            )

    def get_top_entries(self, limit: int = 10) -> list[TopEntry]:
        with self._lock:
            now = self._clock()
            ranked = []
            for entry in self._entries.values():
                self._is_expired(entry, now)
                entry.score = self._score(entry, now)
                ranked.append(TopEntry(entry.key, round_half_up(entry.score), round_half_up(now - entry.created_at)))
            ranked.sort(key=lambda e: e.score, reverse=True)
            return ranked[:limit]

    def persist(self) -> bool:
        """Write a snapshot to ``options.persist_path``.

        Returns ``True`` when a snapshot was written. Failures are logged and
        reported as ``False``; they are never raised.
        """
        path = self.options.persist_path
        if not path:
            return False
        # Only the snapshot is built under the lock; the file write happens outside it.
        with self._lock:
            try:
                snapshot = _Snapshot(
                    entries=[
                        _EntryRecord(
                            key=e.key,
                            value=self._adapter.dump_python(e.value, mode="json"),
                            created_at=e.created_at,
                            last_access=e.last_access,
                            access_count=e.access_count,
                            score=e.score,
                            decay=e.decay,
                        )
                        for e in self._entries.values()
                    ],
                    hits=self._hits,
                    misses=self._misses,
                    last_sweep=self._last_sweep,
                    saved_at=self._clock(),
                )
                payload = snapshot.model_dump_json(indent=2)
            except ValueError as exc:
                logger.warning(f"failed to serialize cache for {path}: {exc}")
                return False

        try:
            Path(path).write_text(payload, encoding="utf-8")
        except OSError as exc:
            logger.warning(f"failed to persist cache to {path}: {exc}")
            return False
        logger.debug(f"persisted {len(snapshot.entries)} cache entries to {path}")
        return True

    # -- internals ----------------------------------------------------------

    def _load(self) -> None:
        path = self.options.persist_path
        try:
            snapshot = _Snapshot.model_validate_json(Path(path).read_text(encoding="utf-8"))
            restored = [
                CacheEntry(
                    key=record.key,
                    value=self._adapter.validate_python(record.value),
                    created_at=record.created_at,
                    last_access=record.last_access,
                    access_count=record.access_count,
                    score=record.score,
                    decay=record.decay,
                )
                for record in snapshot.entries
            ]
        except FileNotFoundError:
            logger.debug(f"no cache snapshot at {path}, starting empty")
            return
        except (OSError, ValueError) as exc:
            logger.warning(f"ignoring unreadable cache snapshot {path}: {exc}")
            return

        now = self._clock()
        live = [e for e in restored if not self._is_expired(e, now)]
        for entry in live:
            entry.score = self._score(entry, now)
        live.sort(key=lambda e: e.score, reverse=True)
        self._entries = {e.key: e for e in live[: self.options.max_entries]}
        self._hits = snapshot.hits
        self._misses = snapshot.misses
        self._last_sweep = snapshot.last_sweep
        logger.debug(f"restored {len(self._entries)} cache entries from {path}")

    def _is_expired(self, entry: CacheEntry[T], now: float) -> bool:
        age = now - entry.created_at
        if age >= self.options.max_age:
            entry.decay = 0.0
            return True
        entry.decay = PHI ** (-age / self.options.max_age)
        return entry.decay < self.options.decay_threshold

    def _score(self, entry: CacheEntry[T], now: float) -> float:
        access = min(1.0, fibonacci(entry.access_count) / (PHI * 100))
        recency = 1 / (1 + (now - entry.last_access) / (self.options.max_age / PHI))
        age = max(_MIN_AGE_FACTOR, entry.decay)
        return max(0.0, min(1.0, access * recency * age * self.options.golden_weight))

    def _evict(self, now: float) -> None:
        if not self._entries:
            return
        for entry in self._entries.values():
            self._is_expired(entry, now)
            entry.score = self._score(entry, now)
        victim = min(self._entries.values(), key=lambda e: e.score)
        del self._entries[victim.key]
        logger.debug(f"evicted cache entry {victim.key!r} (score {victim.score:.4f})")

    def _sweep(self, now: float, keep: str) -> None:
        stale = []
        for key, entry in self._entries.items():
            if key == keep:
                continue
            expired = self._is_expired(entry, now)
            entry.score = self._score(entry, now)
            if expired or entry.score < self.options.decay_threshold:
                stale.append(key)

        cap = math.floor(len(self._entries) / PHI)
        for key in stale[:cap]:
            del self._entries[key]
        self._last_sweep = now
        logger.debug(f"cache sweep removed {min(len(stale), cap)} of {len(stale)} stale entries")

    def _memory_usage(self, entries: list[CacheEntry[T]]) -> int:
        total = 0
        for entry in entries:
            total += _estimate_size(entry.key, self._adapter)
            total += _estimate_size(entry.value, self._adapter)
            total += _ENTRY_OVERHEAD_BYTES
        return total


def _estimate_size(value: Any, adapter: TypeAdapter[Any]) -> int:
    if value is None:
        return 0
    if isinstance(value, str):
        return len(value) * 2
    if isinstance(value, bool):
        return 4
    if isinstance(value, (int, float)):
        return 8
    try:
        return len(adapter.dump_json(value)) * 2
    except ValueError:
        return 16

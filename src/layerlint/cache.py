"""
Result cache for layerlint.

Uses diskcache for SQLite-based persistent caching of call graphs, rule
check results and advisory output, keyed by analyzed method.

Policy:
- Every entry lives for a fixed TTL from insertion. Lookups treat expired
  entries as absent but leave them in place.
- A background sweep (see ``start_sweeper``) removes expired entries.
- On ``put``, once the store has reached ``max_entries`` and holds more
  than 80% of it, the oldest 20% of ``max_entries`` entries by insertion
  time are removed. Eviction is FIFO, reads never refresh an entry.
"""

from __future__ import annotations

import json
import threading
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from diskcache import Cache

from .exceptions import CacheCorruption
from .logging_config import get_logger

if TYPE_CHECKING:
    from .config import AnalysisConfig

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_SWEEP_SECONDS = 10 * 60
DEFAULT_MAX_ENTRIES = 1000
EVICTION_THRESHOLD = 0.8
EVICTION_FRACTION = 0.2


class CacheKind(Enum):
    """Kinds of cached artifacts. The value is the storage key prefix."""

    CALL_CHAIN = "call_chain_"
    AI_ANALYSIS = "ai_analysis_"
    RULE_CHECK = "rule_check_"

    def storage_key(self, key: str) -> str:
        return f"{self.value}{key}"


@dataclass(frozen=True)
class CacheEntry:
    """One stored artifact. ``payload`` is JSON text."""

    key: str
    kind: CacheKind
    payload: str
    created_at: float
    ttl: float
    seq: int = 0

    def is_expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl

    def to_record(self) -> dict[str, Any]:
        record = asdict(self)
        record["kind"] = self.kind.name
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "CacheEntry":
        return cls(
            key=record["key"],
            kind=CacheKind[record["kind"]],
            payload=record["payload"],
            created_at=float(record["created_at"]),
            ttl=float(record["ttl"]),
            seq=int(record.get("seq", 0)),
        )


def method_key(class_name: str, method_name: str) -> str:
    """Cache key of an analyzed method: ``className.methodName``."""
    return f"{class_name}.{method_name}"


class ResultCache:
    """
    TTL- and size-bounded cache of analysis artifacts.

    Safe for concurrent use: diskcache makes single-key operations atomic,
    and eviction and sweeping are serialized by an internal lock.

    Usage:
        with ResultCache(".layerlint-cache") as cache:
            cache.put("com.acme.UserController.getUser", CacheKind.CALL_CHAIN, graph.to_dict())
            cached = cache.get("com.acme.UserController.getUser", CacheKind.CALL_CHAIN)
    """

    def __init__(
        self,
        cache_dir: str = ".layerlint-cache",
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        sweep_interval: float = DEFAULT_SWEEP_SECONDS,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache.

        Args:
            cache_dir: Directory for cache storage
            ttl_seconds: Time-to-live of an entry, from insertion
            max_entries: Entry ceiling that triggers FIFO eviction
            sweep_interval: Seconds between background expiry sweeps
            enabled: Whether caching is enabled
            clock: Source of the current time in seconds
        """
        self.enabled = enabled
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.sweep_interval = sweep_interval
        self.clock = clock

        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

        if self.enabled:
            self.cache: Optional[Cache] = Cache(cache_dir)
            self._seq = self._last_seq()
            logger.debug(
                f"Cache initialized at {cache_dir} with TTL={ttl_seconds}s, max={max_entries}"
            )
        else:
            self.cache = None
            self._seq = 0
            logger.debug("Cache disabled")

    @classmethod
    def from_config(cls, config: "AnalysisConfig", **kwargs) -> "ResultCache":
        return cls(
            cache_dir=config.cache_dir,
            ttl_seconds=config.cache_ttl_seconds,
            max_entries=config.cache_max_entries,
            sweep_interval=config.cache_sweep_seconds,
            enabled=config.cache_enabled,
            **kwargs,
        )

    # ── public API ────────────────────────────────────────────────

    def get(self, key: str, kind: CacheKind) -> Optional[Any]:
        """
        Get a cached value.

        Returns:
            The decoded value, or None if absent, expired or corrupt
        """
        if self.cache is None:
            return None

        entry = self._read(kind.storage_key(key))
        if entry is None or entry.is_expired(self.clock()):
            logger.debug(f"Cache miss: {kind.storage_key(key)}")
            return None

        try:
            value = self._decode(entry)
        except CacheCorruption as e:
            logger.debug(f"{e}, treating as miss")
            return None

        logger.debug(f"Cache hit: {kind.storage_key(key)}")
        return value

    def put(self, key: str, kind: CacheKind, value: Any) -> None:
        """
        Store a JSON-serializable value, evicting old entries if needed.

        Raises:
            TypeError: If ``value`` is not JSON-serializable
        """
        if self.cache is None:
            return

        payload = json.dumps(value, sort_keys=True)
        with self._lock:
            self._evict_if_needed()
            self._seq += 1
            entry = CacheEntry(
                key=key,
                kind=kind,
                payload=payload,
                created_at=self.clock(),
                ttl=self.ttl_seconds,
                seq=self._seq,
            )
            self.cache.set(kind.storage_key(key), entry.to_record())
        logger.debug(f"Cache set: {kind.storage_key(key)}")

    def has_result(self, key: str) -> bool:
        """True when both the call graph and the rule check for ``key`` are live."""
        return (
            self.get(key, CacheKind.CALL_CHAIN) is not None
            and self.get(key, CacheKind.RULE_CHECK) is not None
        )

    def invalidate(self, key: str) -> None:
        """Remove every kind of entry stored for ``key``."""
        if self.cache is None:
            return
        for kind in CacheKind:
            self.cache.delete(kind.storage_key(key))
        logger.debug(f"Cache invalidated: {key}")

    def clear(self) -> None:
        """Clear all cache entries."""
        if self.cache is None:
            return
        with self._lock:
            self.cache.clear()
        logger.info("Cache cleared")

    def sweep(self) -> int:
        """Remove all expired entries. Returns the number removed."""
        if self.cache is None:
            return 0

        now = self.clock()
        removed = 0
        with self._lock:
            for storage_key, entry in self._entries():
                if entry is None or entry.is_expired(now):
                    if self.cache.delete(storage_key):
                        removed += 1
        if removed:
            logger.debug(f"Cache sweep removed {removed} expired entries")
        return removed

    def stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with entry counts per kind and storage details
        """
        if self.cache is None:
            return {"enabled": False}

        now = self.clock()
        by_kind = {kind.name: 0 for kind in CacheKind}
        expired = 0
        total = 0
        for _, entry in self._entries():
            total += 1
            if entry is None:
                continue
            by_kind[entry.kind.name] += 1
            if entry.is_expired(now):
                expired += 1

        return {
            "enabled": True,
            "size": total,
            "expired": expired,
            "by_kind": by_kind,
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
            "directory": self.cache.directory,
            "volume": self.cache.volume(),
        }

    # ── background sweep ─────────────────────────────────────────

    def start_sweeper(self) -> None:
        """Start the daemon thread that sweeps expired entries periodically."""
        if self.cache is None or self._sweeper is not None:
            return
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, daemon=True, name="layerlint-cache-sweeper"
        )
        self._sweeper.start()
        logger.debug(f"Cache sweeper started, interval {self.sweep_interval}s")

    def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._stop.set()
        self._sweeper.join(timeout=5)
        self._sweeper = None

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            try:
                self.sweep()
            except Exception as e:
                logger.warning(f"Cache sweep failed: {e}")

    def close(self) -> None:
        """Stop the sweeper and close the underlying store."""
        self.stop_sweeper()
        if self.cache is not None:
            self.cache.close()

    def __enter__(self) -> "ResultCache":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── internals ─────────────────────────────────────────────────

    def __len__(self) -> int:
        return 0 if self.cache is None else len(self.cache)

    def _read(self, storage_key: str) -> Optional[CacheEntry]:
        record = self.cache.get(storage_key)
        if record is None:
            return None
        try:
            return CacheEntry.from_record(record)
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"{CacheCorruption(storage_key, str(e))}, treating as miss")
            return None

    def _entries(self):
        """Yield ``(storage_key, entry)``; unreadable records yield None."""
        for storage_key in list(self.cache.iterkeys()):
            yield storage_key, self._read(storage_key)

    def _decode(self, entry: CacheEntry) -> Any:
        try:
            return json.loads(entry.payload)
        except (TypeError, ValueError) as e:
            raise CacheCorruption(entry.kind.storage_key(entry.key), str(e))

    def _evict_if_needed(self) -> int:
        size = len(self.cache)
        if size < self.max_entries or size <= self.max_entries * EVICTION_THRESHOLD:
            return 0

        count = max(1, int(self.max_entries * EVICTION_FRACTION))
        aged = []
        for storage_key, entry in self._entries():
            # Unreadable records sort first so they are evicted before live ones.
            order = (float("-inf"), 0) if entry is None else (entry.created_at, entry.seq)
            aged.append((order, storage_key))
        aged.sort()

        removed = 0
        for _, storage_key in aged[:count]:
            if self.cache.delete(storage_key):
                removed += 1
        logger.debug(f"Cache eviction removed {removed} of {size} entries")
        return removed

    def _last_seq(self) -> int:
        last = 0
        for _, entry in self._entries():
            if entry is not None:
                last = max(last, entry.seq)
        return last

"""
Caching for health analysis.

Two tiers:
- MetricsCache: in-memory TTL store shared by the complexity analyzer, the
  churn analyzer and the orchestrator. Namespaced keys keep the three
  logical caches apart. Safe for concurrent use from worker threads.
- ReportStore: optional diskcache-backed store that keeps whole reports
  across sessions, keyed by graph fingerprint and configuration hash.
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from diskcache import Cache

from .logging_config import get_logger
from .models import ChurnMetrics, ComplexityMetrics, HealthAnalysis

logger = get_logger(__name__)

# Default TTLs in seconds
COMPLEXITY_TTL = 7 * 24 * 3600  # code structure changes infrequently
CHURN_TTL = 24 * 3600  # git history moves daily
ANALYSIS_TTL = 3600  # whole reports should reflect edits within a session
CLEANUP_INTERVAL = 5 * 60

DEFAULT_CHURN_DAYS = 30


@dataclass
class CacheEntry:
    """A cached value with the time it was stored and its TTL."""

    value: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return (now - self.stored_at) > self.ttl


class MetricsCache:
    """
    In-memory TTL cache with lazy and periodic expiry.

    Expired entries are evicted when read and by a background sweep thread.
    There is no size bound; call ``cleanup()`` or ``clear()`` to reclaim
    memory, and ``dispose()`` when the owning analyzer goes away.
    """

    def __init__(
        self,
        complexity_ttl: float = COMPLEXITY_TTL,
        churn_ttl: float = CHURN_TTL,
        analysis_ttl: float = ANALYSIS_TTL,
        cleanup_interval: float = CLEANUP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            complexity_ttl: TTL for complexity metrics (seconds)
            churn_ttl: TTL for churn metrics (seconds)
            analysis_ttl: TTL for whole reports (seconds)
            cleanup_interval: Sweep period in seconds; 0 disables the sweep
            clock: Monotonic time source
        """
        self.complexity_ttl = complexity_ttl
        self.churn_ttl = churn_ttl
        self.analysis_ttl = analysis_ttl
        self.cleanup_interval = cleanup_interval
        self._clock = clock

        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

        if cleanup_interval > 0:
            self.start_cleanup_interval()

    # ------------------------------------------------------------------
    # Generic store
    # ------------------------------------------------------------------

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""
        with self._lock:
            self._entries[key] = CacheEntry(value=value, stored_at=self._clock(), ttl=ttl)

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    def has(self, key: str) -> bool:
        """True if ``key`` holds an unexpired entry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with ``prefix``."""
        with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Cleaned up {len(expired)} expired cache entries")
        return len(expired)

    def get_stats(self) -> dict[str, int]:
        """Entry count and how many of those entries have expired."""
        with self._lock:
            now = self._clock()
            expired = sum(1 for entry in self._entries.values() if entry.is_expired(now))
            return {"size": len(self._entries), "expired_count": expired}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Key builders
    # ------------------------------------------------------------------

    @staticmethod
    def complexity_key(path: str) -> str:
        return f"complexity:{path}"

    @staticmethod
    def churn_key(path: str, days: int = DEFAULT_CHURN_DAYS) -> str:
        return f"churn:{path}:{days}d"

    @staticmethod
    def analysis_key(graph_hash: str) -> str:
        return f"analysis:{graph_hash}"

    # ------------------------------------------------------------------
    # Typed accessors (best effort: failures behave like misses)
    # ------------------------------------------------------------------

    def get_complexity_metrics(self, path: str) -> Optional[ComplexityMetrics]:
        return self._safe_get(self.complexity_key(path))

    def set_complexity_metrics(self, path: str, metrics: ComplexityMetrics) -> None:
        self._safe_set(self.complexity_key(path), metrics, self.complexity_ttl)

    def get_churn_metrics(self, path: str, days: int = DEFAULT_CHURN_DAYS) -> Optional[ChurnMetrics]:
        return self._safe_get(self.churn_key(path, days))

    def set_churn_metrics(
        self, path: str, metrics: ChurnMetrics, days: int = DEFAULT_CHURN_DAYS
    ) -> None:
        self._safe_set(self.churn_key(path, days), metrics, self.churn_ttl)

    def get_analysis(self, graph_hash: str) -> Optional[HealthAnalysis]:
        return self._safe_get(self.analysis_key(graph_hash))

    def set_analysis(self, graph_hash: str, analysis: HealthAnalysis) -> None:
        self._safe_set(self.analysis_key(graph_hash), analysis, self.analysis_ttl)

    def _safe_get(self, key: str) -> Optional[Any]:
        try:
            value = self.get(key)
        except Exception as e:
            logger.warning(f"Cache get failed for {key}: {e}")
            return None
        if value is not None:
            logger.debug(f"Cache hit: {key}")
        return value

    def _safe_set(self, key: str, value: Any, ttl: float) -> None:
        try:
            self.set(key, value, ttl)
        except Exception as e:
            logger.warning(f"Cache set failed for {key}: {e}")

    # ------------------------------------------------------------------
    # Background sweep
    # ------------------------------------------------------------------

    def start_cleanup_interval(self) -> None:
        """Start the background sweep thread if it is not running."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name="constellation-cache-sweep",
            daemon=True,
        )
        self._sweeper.start()

    def stop_cleanup_interval(self) -> None:
        """Stop the background sweep thread."""
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            if self._sweeper.is_alive():
                logger.warning("Cache sweep thread did not exit within 5 seconds")
            self._sweeper = None

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.cleanup_interval):
            self.cleanup()

    def dispose(self) -> None:
        """Stop the sweep and drop every entry."""
        self.stop_cleanup_interval()
        self.clear()


class ReportStore:
    """
    Whole health reports persisted across sessions with diskcache.

    A report is stored as ``HealthAnalysis.to_dict()`` under
    ``report:<graph fingerprint>:<config hash>``, so it is only reused by a
    session that scores the same graph with the same settings. Disk errors and
    unreadable entries count as misses; an unreadable entry is also evicted.
    """

    def __init__(
        self,
        cache_dir: str = ".constellation-cache",
        ttl_seconds: float = ANALYSIS_TTL,
        enabled: bool = True,
    ):
        self.enabled = enabled
        self.ttl_seconds = ttl_seconds
        self.cache: Optional[Cache] = Cache(cache_dir) if enabled else None
        logger.debug(
            f"Report store at {cache_dir} (TTL={ttl_seconds}s)" if enabled else "Report store disabled"
        )

    @staticmethod
    def report_key(graph_hash: str, config_hash: str) -> str:
        return f"report:{graph_hash}:{config_hash}"

    def get(self, graph_hash: str, config_hash: str) -> Optional[HealthAnalysis]:
        """Stored report, or None if absent, expired or unreadable."""
        if self.cache is None:
            return None

        key = self.report_key(graph_hash, config_hash)
        try:
            data = self.cache.get(key)
        except Exception as e:
            logger.warning(f"Report store read failed for {key}: {e}")
            return None
        if data is None:
            return None

        try:
            analysis = HealthAnalysis.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Evicting unreadable stored report {key}: {e!r}")
            self._evict(key)
            return None

        logger.debug(f"Report store hit: {key}")
        return analysis

    def set(self, graph_hash: str, config_hash: str, analysis: HealthAnalysis) -> None:
        if self.cache is None:
            return

        key = self.report_key(graph_hash, config_hash)
        try:
            self.cache.set(key, analysis.to_dict(), expire=self.ttl_seconds)
        except Exception as e:
            logger.warning(f"Report store write failed for {key}: {e}")

    def clear(self) -> int:
        """Drop every stored report. Returns how many were removed."""
        if self.cache is None:
            return 0

        try:
            removed = self.cache.clear()
        except Exception as e:
            logger.warning(f"Report store clear failed: {e}")
            return 0
        logger.info(f"Report store cleared ({removed} reports)")
        return removed

    def stats(self) -> dict:
        """Live report count, directory and on-disk size; expired reports are purged first."""
        if self.cache is None:
            return {"enabled": False}

        try:
            self.cache.expire()
            return {
                "enabled": True,
                "size": len(self.cache),
                "directory": self.cache.directory,
                "volume": self.cache.volume(),
                "ttl_seconds": self.ttl_seconds,
            }
        except Exception as e:
            logger.warning(f"Report store stats failed: {e}")
            return {"enabled": True, "error": str(e)}

    def close(self) -> None:
        if self.cache is not None:
            self.cache.close()

    def _evict(self, key: str) -> None:
        try:
            self.cache.delete(key)
        except Exception as e:
            logger.debug(f"Report store delete failed for {key}: {e}")


# Bumped whenever the stored report layout changes, so old reports stop matching
REPORT_SCHEMA_VERSION = 1


def compute_config_hash(config: dict) -> str:
    """
    Short, key-order independent digest of a configuration dict.

    The report schema version is folded in, so upgrading to a release with a
    different report layout never reads an old report back.
    """
    payload = json.dumps(
        {"schema": REPORT_SCHEMA_VERSION, "config": config},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.blake2b(payload.encode("utf-8"), digest_size=8).hexdigest()

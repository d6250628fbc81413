"""Per-file churn metrics from git history.

``ChurnProvider`` is the contract the orchestrator depends on;
``GitChurnAnalyzer`` implements it by shelling out to ``git log``. Results
are cached in the shared MetricsCache under ``churn:<path>:<days>d``.
"""

from __future__ import annotations

import subprocess
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol

from ..cache import DEFAULT_CHURN_DAYS, MetricsCache
from ..exceptions import ChurnError, ErrorCode
from ..logging_config import get_logger
from ..models import NO_HISTORY_DAYS, ChurnMetrics

logger = get_logger(__name__)

_SECONDS_PER_DAY = 86400


class ChurnProvider(Protocol):
    """Source of version-control activity for a file.

    Implementations must not raise: on any history-read failure they return
    zeroed metrics with the ``NO_HISTORY_DAYS`` sentinel (or a file-system
    based estimate of the last change).
    """

    def get_file_churn(self, path: str, days: Optional[int] = None) -> ChurnMetrics: ...


@dataclass(frozen=True)
class MostActiveFile:
    path: str
    commits: int


@dataclass(frozen=True)
class ChurnStats:
    """Repository-wide churn summary over a set of files."""

    total_files: int
    files_with_commits: int
    total_commits: int
    average_commits_per_file: float
    most_active_file: Optional[MostActiveFile]
    unique_authors: int
    average_days_since_change: float


class GitChurnAnalyzer:
    """Churn metrics for files inside a git working tree."""

    # Files per concurrent chunk in analyze_files
    BATCH_SIZE = 5

    def __init__(
        self,
        cache: MetricsCache,
        workspace_root: str,
        window_days: int = DEFAULT_CHURN_DAYS,
        timeout_seconds: int = 10,
        clock: Callable[[], float] = time.time,
    ):
        self.cache = cache
        self.workspace_root = str(Path(workspace_root).resolve())
        self.window_days = window_days
        self.timeout_seconds = timeout_seconds
        self._clock = clock

    # ------------------------------------------------------------------
    # ChurnProvider
    # ------------------------------------------------------------------

    def get_file_churn(self, path: str, days: Optional[int] = None) -> ChurnMetrics:
        """Churn for ``path`` over the trailing ``days`` window. Never raises."""
        days = days or self.window_days

        cached = self.cache.get_churn_metrics(path, days)
        if cached is not None:
            return cached

        try:
            log = self._log_since(path, days)
            last_change = self._last_change_timestamp(path)
        except ChurnError as e:
            logger.warning(f"Git analysis failed for {path}: {e}")
            return self._fallback_metrics(path)

        authors = {author for _, author in log}
        metrics = ChurnMetrics(
            commit_count=len(log),
            unique_authors=len(authors),
            days_since_last_change=self._days_since_last_change(path, last_change),
        )

        self.cache.set_churn_metrics(path, metrics, days)
        return metrics

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_file_authors(self, path: str, days: Optional[int] = None) -> List[str]:
        """Distinct authors of ``path`` within the window, in log order."""
        try:
            log = self._log_since(path, days or self.window_days)
        except ChurnError as e:
            logger.warning(f"Failed to get authors for {path}: {e}")
            return []
        return list(dict.fromkeys(author for _, author in log))

    def analyze_files(self, paths: Iterable[str], days: Optional[int] = None) -> List[ChurnMetrics]:
        """Churn for many files, ``BATCH_SIZE`` git processes at a time."""
        paths = list(paths)
        results: List[ChurnMetrics] = []

        for start in range(0, len(paths), self.BATCH_SIZE):
            chunk = paths[start : start + self.BATCH_SIZE]
            with ThreadPoolExecutor(max_workers=len(chunk)) as executor:
                results.extend(executor.map(lambda p: self.get_file_churn(p, days), chunk))

        return results

    def get_churn_stats(self, paths: Iterable[str], days: Optional[int] = None) -> ChurnStats:
        paths = list(paths)
        metrics = self.analyze_files(paths, days)

        changed = [m for m in metrics if m.commit_count > 0]
        total_commits = sum(m.commit_count for m in metrics)

        most_active: Optional[MostActiveFile] = None
        for path, m in zip(paths, metrics):
            if m.commit_count > (most_active.commits if most_active else 0):
                most_active = MostActiveFile(path=path, commits=m.commit_count)

        all_authors: set[str] = set()
        for path in paths:
            all_authors.update(self.get_file_authors(path, days))

        average_commits = total_commits / len(changed) if changed else 0.0
        average_days = (
            sum(m.days_since_last_change for m in metrics) / len(metrics) if metrics else 0.0
        )

        return ChurnStats(
            total_files=len(metrics),
            files_with_commits=len(changed),
            total_commits=total_commits,
            average_commits_per_file=round(average_commits, 2),
            most_active_file=most_active,
            unique_authors=len(all_authors),
            average_days_since_change=round(average_days, 2),
        )

    def is_git_repository(self) -> bool:
        try:
            self._run_git(["rev-parse", "--git-dir"])
            return True
        except ChurnError:
            return False

    def clear_cache(self, path: Optional[str] = None, days: Optional[int] = None) -> None:
        """Drop cached churn for one file, or for every file."""
        if path is not None:
            self.cache.delete(MetricsCache.churn_key(path, days or self.window_days))
        else:
            self.cache.delete_prefix("churn:")

    # ------------------------------------------------------------------
    # git plumbing
    # ------------------------------------------------------------------

    def _log_since(self, path: str, days: int) -> List[tuple[int, str]]:
        """(timestamp, author) for each commit touching ``path`` in the window."""
        since = datetime.fromtimestamp(self._clock(), tz=timezone.utc) - timedelta(days=days)
        raw = self._run_git(
            [
                "log",
                f"--since={since.isoformat()}",
                "--format=%at|%an",
                "--follow",
                "--",
                path,
            ]
        )
        return self._parse_log(raw)

    def _last_change_timestamp(self, path: str) -> Optional[int]:
        raw = self._run_git(["log", "-1", "--format=%at", "--follow", "--", path]).strip()
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            raise ChurnError(
                f"Unexpected git timestamp for {path}: {raw!r}",
                code=ErrorCode.CH203,
                context={"path": path},
            )

    @staticmethod
    def _parse_log(raw: str) -> List[tuple[int, str]]:
        entries = []
        for line in raw.splitlines():
            line = line.strip()
            if not line:
                continue
            timestamp, _, author = line.partition("|")
            try:
                entries.append((int(timestamp), author))
            except ValueError:
                logger.debug(f"Skipping malformed git log line: {line!r}")
        return entries

    def _run_git(self, args: List[str]) -> str:
        cmd = ["git", "-C", self.workspace_root, *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout_seconds,
            )
        except FileNotFoundError:
            raise ChurnError(
                "Git command not found - ensure git is installed",
                code=ErrorCode.CH200,
                recoverable=False,
                recovery_hint="Install git and make sure it is on PATH",
            )
        except subprocess.TimeoutExpired:
            raise ChurnError(
                "Git command timed out",
                code=ErrorCode.CH202,
                context={"args": " ".join(args), "timeout": self.timeout_seconds},
            )
        except OSError as e:
            # EMFILE, EACCES, ENOMEM and friends while spawning git
            raise ChurnError(
                f"Cannot start git: {e.strerror or e}",
                code=ErrorCode.CH204,
                context={"args": " ".join(args), "errno": e.errno},
                recovery_hint="Lower batch_size if the process is out of file descriptors",
            ) from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            if "not a git repository" in stderr.lower():
                raise ChurnError(
                    "Not a git repository",
                    code=ErrorCode.CH201,
                    context={"workspace_root": self.workspace_root},
                    recoverable=False,
                )
            raise ChurnError(
                f"git {args[0]} failed: {stderr}",
                code=ErrorCode.CH203,
                context={"args": " ".join(args)},
            )

        if result.stderr and "warning:" not in result.stderr:
            logger.debug(f"git stderr: {result.stderr.strip()}")

        return result.stdout

    # ------------------------------------------------------------------
    # Fallbacks
    # ------------------------------------------------------------------

    def _days_since_last_change(self, path: str, last_change: Optional[int]) -> int:
        if last_change is None:
            last_change = self._mtime(path)
            if last_change is None:
                return NO_HISTORY_DAYS
        return max(0, int((self._clock() - last_change) // _SECONDS_PER_DAY))

    def _mtime(self, path: str) -> Optional[float]:
        try:
            return (Path(self.workspace_root) / path).stat().st_mtime
        except OSError:
            return None

    def _fallback_metrics(self, path: str) -> ChurnMetrics:
        """Zero activity, with the last-change age taken from the file system if possible."""
        mtime = self._mtime(path)
        if mtime is None:
            return ChurnMetrics.no_history()
        return ChurnMetrics(
            commit_count=0,
            unique_authors=0,
            days_since_last_change=max(0, int((self._clock() - mtime) // _SECONDS_PER_DAY)),
        )

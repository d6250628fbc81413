"""Health analysis orchestrator.

One HealthAnalyzer is built per workspace and owns its collaborators: the
metrics cache, the complexity analyzer, the churn provider, the graph
provider, the scorer, the recommendations engine and the optional persistent
report store. Any of them can be injected, which is how tests substitute
fakes.

Pipeline for ``analyze_codebase``:

    resolve graph -> validate -> report cache lookup
        -> dependency counts -> batched per-file analysis
        -> risk scoring -> aggregation -> recommendations -> cache
"""

from __future__ import annotations

import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Sequence

from ..cache import MetricsCache, ReportStore, compute_config_hash
from ..complexity import ComplexityAnalyzer
from ..config import HealthConfig
from ..exceptions import (
    BatchError,
    ErrorCode,
    GraphUnavailableError,
    HealthAnalysisError,
    NoMatchingFilesError,
)
from ..graph import Graph, GraphNode, GraphProvider, GraphStore, graph_hash, validate_graph
from ..logging_config import get_logger
from ..models import FileMetrics, HealthAnalysis, RiskCategory
from ..temporal import ChurnProvider, GitChurnAnalyzer
from .batching import BatchScheduler, is_resource_exhaustion
from .recommendations import RecommendationsEngine
from .scoring import RiskScorer

logger = get_logger(__name__)


class HealthAnalyzer:
    """Computes per-file risk scores and the codebase health report."""

    def __init__(
        self,
        workspace_root: str = ".",
        config: Optional[HealthConfig] = None,
        cache: Optional[MetricsCache] = None,
        complexity_analyzer: Optional[ComplexityAnalyzer] = None,
        churn_provider: Optional[ChurnProvider] = None,
        graph_provider: Optional[GraphProvider] = None,
        recommendations: Optional[RecommendationsEngine] = None,
        report_store: Optional[ReportStore] = None,
        scheduler: Optional[BatchScheduler] = None,
    ):
        self.workspace_root = workspace_root
        self.config = config or HealthConfig()
        cfg = self.config

        self.cache = (
            cache
            if cache is not None
            else MetricsCache(
                complexity_ttl=cfg.complexity_ttl_seconds,
                churn_ttl=cfg.churn_ttl_seconds,
                analysis_ttl=cfg.analysis_ttl_seconds,
                cleanup_interval=cfg.cleanup_interval_seconds,
            )
        )
        self.complexity = complexity_analyzer or ComplexityAnalyzer(
            self.cache, batch_size=cfg.complexity_batch_size
        )
        self.churn = churn_provider or GitChurnAnalyzer(
            self.cache,
            workspace_root,
            window_days=cfg.churn_window_days,
            timeout_seconds=cfg.git_timeout_seconds,
        )
        self.graph_provider = graph_provider or GraphStore()
        self.recommendations = recommendations or RecommendationsEngine()
        self.report_store = report_store or ReportStore(
            cache_dir=str(Path(workspace_root) / cfg.report_cache_dir),
            ttl_seconds=cfg.analysis_ttl_seconds,
            enabled=cfg.report_cache_enabled,
        )
        self.scheduler = scheduler or BatchScheduler(
            batch_size=cfg.batch_size,
            min_batch_size=cfg.min_batch_size,
            memory_check_interval=cfg.memory_check_interval,
            gc_interval=cfg.gc_interval,
            memory_warning_mb=cfg.memory_warning_mb,
        )
        self.scorer = RiskScorer(cfg.risk, top_risks_count=cfg.top_risks_count)
        self.config_hash = compute_config_hash(cfg.to_dict())

        # Churn lookups run here while complexity runs on the batch worker,
        # so the two overlap without nesting pools.
        self._churn_pool = ThreadPoolExecutor(
            max_workers=cfg.batch_size, thread_name_prefix="constellation-churn"
        )

    # ------------------------------------------------------------------
    # Whole-codebase analysis
    # ------------------------------------------------------------------

    def analyze_codebase(self, graph: Optional[Graph] = None) -> HealthAnalysis:
        """
        Analyze every file in ``graph`` (or the provider's current graph).

        Returns:
            The health report. Runs that fail after validation are logged and
            answered with the neutral fallback report.

        Raises:
            GraphUnavailableError: If no graph was given and none is loaded
            InvalidGraphError: If the graph does not have the expected shape
        """
        graph = self._resolve_graph(graph)
        validate_graph(graph)

        logger.info(f"Starting health analysis for {len(graph.nodes)} files")

        try:
            key = graph_hash(graph)

            cached = self.cache.get_analysis(key)
            if cached is not None:
                logger.info("Using cached analysis")
                return cached.copy()

            stored = self.report_store.get(key, self.config_hash)
            if stored is not None:
                logger.info("Using stored analysis")
                self.cache.set_analysis(key, stored.copy())
                return stored

            analysis, complete = self._analyze_graph(graph)

            if complete:
                self.cache.set_analysis(key, analysis.copy())
                self.report_store.set(key, self.config_hash, analysis)
            else:
                logger.warning("Analysis is partial; result not cached")

            return analysis
        except Exception as e:
            logger.error(f"Health analysis failed: {e}", exc_info=True)
            return HealthAnalysis.fallback()

    def analyze_codebase_safe(self, graph: Optional[Graph] = None) -> HealthAnalysis:
        """Like ``analyze_codebase`` but answers input errors with the fallback report."""
        try:
            return self.analyze_codebase(graph)
        except HealthAnalysisError as e:
            logger.error(f"{e.message} ({e.details.get('reason', '')})")
            return e.fallback

    # ------------------------------------------------------------------
    # Scoped analysis
    # ------------------------------------------------------------------

    def analyze_files(self, paths: Sequence[str], graph: Optional[Graph] = None) -> HealthAnalysis:
        """
        Analyze only the graph nodes matching ``paths``.

        Percentiles are computed within the subset. Edges touching a kept node
        are kept, so dependency counts are unaffected by the filtering.

        Raises:
            NoMatchingFilesError: If no node matches
        """
        graph = self._resolve_graph(graph)
        subset = graph.filter_nodes(lambda node: any(_path_matches(node, p) for p in paths))

        if not subset.nodes:
            raise NoMatchingFilesError(paths)

        return self.analyze_codebase(subset)

    def analyze_file_health(self, path: str, graph: Optional[Graph] = None) -> Optional[FileMetrics]:
        """Metrics for the first node matching ``path``, or None if not in the graph."""
        graph = self._resolve_graph(graph)

        node = next((n for n in graph.nodes if _path_matches(n, path)), None)
        if node is None:
            logger.warning(f"File not found in graph: {path}")
            return None

        index = self._dependency_index(graph)
        outgoing = Counter(edge.source for edge in graph.edges)
        return self.analyze_file(node, self._dependency_count(node, graph, index, outgoing))

    # ------------------------------------------------------------------
    # Per-file analysis
    # ------------------------------------------------------------------

    def analyze_file(self, node: GraphNode, dependency_count: int) -> FileMetrics:
        """Complexity and churn for one node, run concurrently. Never raises."""
        try:
            churn_future = self._churn_pool.submit(self.churn.get_file_churn, node.path)
            complexity = self.complexity.analyze_file(node.path)
            churn = churn_future.result()
            return FileMetrics(
                node_id=node.id,
                path=node.path,
                complexity=complexity,
                churn=churn,
                dependencies=dependency_count,
            )
        except Exception as e:
            logger.warning(f"Failed to analyze {node.path}: {e}")
            return FileMetrics.minimal(node.id, node.path, dependency_count)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def get_cache_stats(self) -> dict[str, int]:
        return self.cache.get_stats()

    def clear_cache(self) -> None:
        self.cache.clear()
        self.report_store.clear()

    def category_recommendations(self, analysis: HealthAnalysis, category: RiskCategory) -> list[str]:
        return self.recommendations.category_recommendations(analysis, category)

    def dispose(self) -> None:
        """Release threads, cached entries and the report store."""
        self._churn_pool.shutdown(wait=True, cancel_futures=True)
        self.cache.dispose()
        self.report_store.close()

    def __enter__(self) -> HealthAnalyzer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_graph(self, graph: Optional[Graph]) -> Graph:
        if graph is not None:
            return graph
        current = self.graph_provider.get_graph()
        if current is None:
            raise GraphUnavailableError()
        return current

    def _analyze_graph(self, graph: Graph) -> tuple[HealthAnalysis, bool]:
        """Run the full pipeline. The flag is False when any batch was lost."""
        start = time.perf_counter()

        index = self._dependency_index(graph)
        outgoing = Counter(edge.source for edge in graph.edges)
        counts = {
            node.id: self._dependency_count(node, graph, index, outgoing) for node in graph.nodes
        }

        run = self.scheduler.run(graph.nodes, lambda batch: self._analyze_batch(batch, counts))

        risk_scores = self.scorer.score_all(run.results)
        analysis = self.scorer.aggregate(risk_scores)
        analysis.recommendations = self.recommendations.generate(analysis)

        elapsed = time.perf_counter() - start
        logger.info(
            f"Completed health analysis of {analysis.total_files} files in {elapsed:.2f}s "
            f"(health score {analysis.health_score})"
        )
        return analysis, not run.aborted and run.skipped == 0

    def _analyze_batch(self, batch: list[GraphNode], counts: dict[str, int]) -> list[FileMetrics]:
        """Analyze one batch concurrently.

        ``analyze_file`` never raises, so a failure here comes from the pool
        itself and is reported as a BatchError for the scheduler.
        """
        try:
            with ThreadPoolExecutor(
                max_workers=len(batch), thread_name_prefix="constellation-health"
            ) as executor:
                return list(
                    executor.map(lambda node: self.analyze_file(node, counts[node.id]), batch)
                )
        except Exception as e:
            exhausted = is_resource_exhaustion(e)
            raise BatchError(
                f"Batch of {len(batch)} files failed: {e}",
                code=ErrorCode.CH400 if exhausted else ErrorCode.CH401,
                context={"batch_size": len(batch), "first_file": batch[0].id},
                recovery_hint="Lower batch_size" if exhausted else None,
            ) from e

    def _dependency_index(self, graph: Graph) -> GraphProvider:
        """The provider's reverse index when it describes ``graph``, else a local one."""
        current = self.graph_provider.get_graph()
        if current is not None and (current is graph or graph_hash(current) == graph_hash(graph)):
            return self.graph_provider
        return GraphStore(graph)

    @staticmethod
    def _dependency_count(
        node: GraphNode, graph: Graph, index: GraphProvider, outgoing: Counter
    ) -> int:
        """Incoming plus outgoing edges of ``node``."""
        try:
            return len(index.get_dependents_of(node.id)) + outgoing[node.id]
        except Exception as e:
            logger.debug(f"Reverse dependency lookup failed for {node.id}: {e}")
            return sum(1 for edge in graph.edges if edge.source == node.id or edge.target == node.id)


def _path_matches(node: GraphNode, path: str) -> bool:
    """Loose match: equal ids, or either path containing the other."""
    return node.id == path or path in node.path or node.path in path

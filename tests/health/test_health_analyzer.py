"""Tests for the HealthAnalyzer orchestrator."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from constellation_health.cache import MetricsCache, ReportStore
from constellation_health.config import HealthConfig
from constellation_health.exceptions import (
    BatchError,
    ErrorCode,
    GraphUnavailableError,
    InvalidGraphError,
    NoMatchingFilesError,
)
from constellation_health.graph import GraphStore, graph_hash
from constellation_health.health import BatchScheduler, HealthAnalyzer
from constellation_health.models import ChurnMetrics, ComplexityMetrics, RiskCategory


def complexity(cc, loc=40):
    return ComplexityMetrics(lines_of_code=loc, file_size=loc * 25, cyclomatic_complexity=cc)


def churn(commits, authors=1, days=3):
    return ChurnMetrics(commit_count=commits, unique_authors=authors, days_since_last_change=days)


@pytest.fixture
def three_file_graph(make_graph):
    # two.ts: 3 outgoing edges; three.ts: 1 incoming; one.ts: none
    return make_graph(
        ["one.ts", "two.ts", "three.ts"],
        [("two.ts", "three.ts"), ("two.ts", "lib/x.ts"), ("two.ts", "lib/y.ts")],
    )


@pytest.fixture
def three_file_analyzer(make_analyzer, fake_complexity, fake_churn):
    return make_analyzer(
        complexity=fake_complexity(
            {"/repo/one.ts": complexity(2), "/repo/two.ts": complexity(15), "/repo/three.ts": complexity(5)}
        ),
        churn=fake_churn({"/repo/one.ts": churn(0), "/repo/two.ts": churn(8), "/repo/three.ts": churn(12)}),
    )


class TestAnalyzeCodebase:
    def test_three_file_report(self, three_file_analyzer, three_file_graph):
        analysis = three_file_analyzer.analyze_codebase(three_file_graph)

        assert analysis.total_files == 3
        assert [s.node_id for s in analysis.risk_scores] == ["one.ts", "two.ts", "three.ts"]
        assert [s.metrics.dependencies for s in analysis.risk_scores] == [0, 3, 1]

        top = analysis.top_risks[0]
        assert top.node_id == "two.ts"
        assert top.percentile == 55
        assert top.category is RiskCategory.MEDIUM
        assert analysis.health_score == 67
        assert analysis.distribution.total == 3
        assert analysis.recommendations

    def test_degrades_per_file(self, make_analyzer, make_graph, fake_complexity):
        graph = make_graph([f"f{i}.ts" for i in range(10)])
        analyzer = make_analyzer(complexity=fake_complexity(failing={"/repo/f3.ts"}))

        analysis = analyzer.analyze_codebase(graph)

        assert analysis.total_files == 10
        failed = analysis.risk_scores[3].metrics
        assert failed.complexity == ComplexityMetrics.zero()
        assert failed.churn == ChurnMetrics.no_history()
        assert failed.dependencies == 0

    def test_churn_failure_degrades_per_file(self, make_analyzer, make_graph, fake_churn):
        graph = make_graph([f"f{i}.ts" for i in range(10)], [("f1.ts", "f2.ts")])
        analyzer = make_analyzer(churn=fake_churn(failing={"/repo/f2.ts"}))

        analysis = analyzer.analyze_codebase(graph)

        assert analysis.total_files == 10
        failed = analysis.risk_scores[2].metrics
        assert failed.complexity == ComplexityMetrics.zero()
        assert failed.dependencies == 1

    def test_cached_report_reused(self, make_analyzer, make_graph, fake_complexity, metrics_cache):
        graph = make_graph(["a.ts", "b.ts"])
        complexity_fake = fake_complexity()
        analyzer = make_analyzer(complexity=complexity_fake)

        first = analyzer.analyze_codebase(graph)
        calls = len(complexity_fake.calls)
        second = analyzer.analyze_codebase(make_graph(["a.ts", "b.ts"]))

        assert second == first
        assert len(complexity_fake.calls) == calls
        assert metrics_cache.get_analysis(graph_hash(graph)) == first

    def test_cached_report_isolated_from_callers(self, make_analyzer, make_graph):
        graph = make_graph(["a.ts", "b.ts"])
        analyzer = make_analyzer()

        first = analyzer.analyze_codebase(graph)
        first.recommendations.append("edited by caller")
        first.risk_scores.clear()

        second = analyzer.analyze_codebase(graph)
        second.top_risks.clear()
        third = analyzer.analyze_codebase(graph)

        assert second is not first
        assert "edited by caller" not in second.recommendations
        assert len(second.risk_scores) == 2
        assert len(third.top_risks) == 2

    def test_rescan_is_a_new_report(self, make_analyzer, make_graph, fake_complexity):
        complexity_fake = fake_complexity()
        analyzer = make_analyzer(complexity=complexity_fake)

        analyzer.analyze_codebase(make_graph(["a.ts"]))
        analyzer.analyze_codebase(make_graph(["a.ts"], timestamp="2024-02-01T00:00:00.000Z"))

        assert len(complexity_fake.calls) == 2

    def test_report_store_across_sessions(self, make_analyzer, make_graph, fake_complexity, tmp_path):
        graph = make_graph(["a.ts", "b.ts"])
        store_dir = str(tmp_path / "reports")

        first = make_analyzer(report_store=ReportStore(cache_dir=store_dir)).analyze_codebase(graph)

        complexity_fake = fake_complexity()
        later = make_analyzer(
            complexity=complexity_fake,
            cache=MetricsCache(cleanup_interval=0),
            report_store=ReportStore(cache_dir=store_dir),
        )
        restored = later.analyze_codebase(graph)

        assert complexity_fake.calls == []
        assert restored.to_dict() == first.to_dict()

    def test_partial_run_not_cached(self, make_analyzer, make_graph, metrics_cache):
        graph = make_graph([f"f{i}.ts" for i in range(25)])
        analyzer = make_analyzer(
            scheduler=BatchScheduler(batch_size=10, min_batch_size=10, memory_probe=lambda: None)
        )
        real_batch = analyzer._analyze_batch
        calls = []

        def flaky_batch(batch, counts):
            calls.append(len(batch))
            if len(calls) == 1:
                raise ValueError("worker crashed")
            return real_batch(batch, counts)

        analyzer._analyze_batch = flaky_batch

        analysis = analyzer.analyze_codebase(graph)

        assert analysis.total_files == 15
        assert metrics_cache.get_analysis(graph_hash(graph)) is None

    def test_uses_provider_graph(self, make_analyzer, make_graph):
        graph = make_graph(["a.ts", "b.ts"], [("a.ts", "b.ts")])
        analyzer = make_analyzer(graph_provider=GraphStore(graph))

        analysis = analyzer.analyze_codebase()

        assert analysis.total_files == 2
        assert [s.metrics.dependencies for s in analysis.risk_scores] == [1, 1]

    def test_dependency_counts(self, make_analyzer, make_graph):
        graph = make_graph(
            ["a.ts", "b.ts", "c.ts", "d.ts"],
            [("a.ts", "b.ts"), ("c.ts", "b.ts"), ("b.ts", "d.ts"), ("a.ts", "b.ts")],
        )
        analysis = make_analyzer().analyze_codebase(graph)
        # incoming counts distinct dependents, outgoing counts every edge
        assert [s.metrics.dependencies for s in analysis.risk_scores] == [2, 3, 1, 1]

    def test_unexpected_failure_returns_fallback(self, make_analyzer, make_graph, monkeypatch):
        analyzer = make_analyzer()

        def explode(metrics):
            raise RuntimeError("scoring bug")

        monkeypatch.setattr(analyzer.scorer, "score_all", explode)

        analysis = analyzer.analyze_codebase(make_graph(["a.ts"]))
        assert analysis.total_files == 0
        assert analysis.health_score == 50


@pytest.fixture
def starved_pool(monkeypatch):
    """Batch thread pool that cannot start threads for its first ``failures`` batches."""
    sizes = []

    def install(failures):
        def pool(max_workers, **kwargs):
            sizes.append(max_workers)
            if len(sizes) <= failures:
                raise RuntimeError("can't start new thread")
            return ThreadPoolExecutor(max_workers=max_workers, **kwargs)

        monkeypatch.setattr("constellation_health.health.analyzer.ThreadPoolExecutor", pool)
        return sizes

    return install


class TestBatchFailures:
    def test_pool_failure_raised_as_batch_error(self, make_analyzer, make_graph, starved_pool):
        graph = make_graph(["a.ts", "b.ts"])
        analyzer = make_analyzer()
        starved_pool(failures=1)

        with pytest.raises(BatchError) as excinfo:
            analyzer._analyze_batch(graph.nodes, {"a.ts": 0, "b.ts": 0})

        assert excinfo.value.code is ErrorCode.CH400
        assert excinfo.value.context == {"batch_size": 2, "first_file": "a.ts"}
        assert isinstance(excinfo.value.__cause__, RuntimeError)

    def test_thread_exhaustion_halves_batches(
        self, make_analyzer, make_graph, starved_pool, metrics_cache
    ):
        graph = make_graph([f"f{i}.ts" for i in range(20)])
        analyzer = make_analyzer(
            scheduler=BatchScheduler(batch_size=20, min_batch_size=10, memory_probe=lambda: None)
        )
        sizes = starved_pool(failures=1)

        analysis = analyzer.analyze_codebase(graph)

        assert sizes == [20, 10, 10]
        assert analysis.total_files == 20
        assert metrics_cache.get_analysis(graph_hash(graph)) is not None


class TestGraphErrors:
    def test_no_graph(self, make_analyzer):
        with pytest.raises(GraphUnavailableError):
            make_analyzer().analyze_codebase()

    def test_empty_graph(self, make_analyzer, make_graph):
        with pytest.raises(InvalidGraphError):
            make_analyzer().analyze_codebase(make_graph([]))

    def test_safe_variant_returns_fallback(self, make_analyzer, make_graph):
        analyzer = make_analyzer()
        assert analyzer.analyze_codebase_safe().health_score == 50
        fallback = analyzer.analyze_codebase_safe(make_graph([]))
        assert fallback.total_files == 0
        assert fallback.recommendations


class TestScopedAnalysis:
    @pytest.fixture
    def graph(self, make_graph):
        return make_graph(
            ["src/a.ts", "src/b.ts", "lib/c.ts"],
            [("src/a.ts", "lib/c.ts"), ("lib/c.ts", "src/b.ts")],
        )

    def test_by_id(self, make_analyzer, graph):
        analysis = make_analyzer().analyze_files(["src/a.ts"], graph)
        assert [s.node_id for s in analysis.risk_scores] == ["src/a.ts"]
        assert analysis.risk_scores[0].metrics.dependencies == 1

    def test_by_directory(self, make_analyzer, graph):
        analysis = make_analyzer().analyze_files(["/repo/src/"], graph)
        assert [s.node_id for s in analysis.risk_scores] == ["src/a.ts", "src/b.ts"]

    def test_no_match(self, make_analyzer, graph):
        with pytest.raises(NoMatchingFilesError) as excinfo:
            make_analyzer().analyze_files(["docs/readme.md"], graph)
        assert excinfo.value.paths == ["docs/readme.md"]

    def test_file_health(self, make_analyzer, fake_churn, graph):
        analyzer = make_analyzer(churn=fake_churn({"/repo/lib/c.ts": churn(4, authors=2)}))

        metrics = analyzer.analyze_file_health("lib/c.ts", graph)

        assert metrics.node_id == "lib/c.ts"
        assert metrics.dependencies == 2
        assert metrics.churn.commit_count == 4

    def test_file_health_unknown(self, make_analyzer, graph):
        assert make_analyzer().analyze_file_health("nope.ts", graph) is None


class TestMaintenance:
    def test_clear_cache(self, make_analyzer, make_graph, metrics_cache):
        analyzer = make_analyzer()
        analyzer.analyze_codebase(make_graph(["a.ts"]))
        assert analyzer.get_cache_stats()["size"] > 0

        analyzer.clear_cache()
        assert len(metrics_cache) == 0

    def test_category_recommendations(self, three_file_analyzer, three_file_graph):
        analysis = three_file_analyzer.analyze_codebase(three_file_graph)
        lines = three_file_analyzer.category_recommendations(analysis, RiskCategory.MEDIUM)
        assert lines[0].startswith("📝 Medium-risk files")
        assert lines[1] == "📊 Average complexity for medium-risk files: 10.0"

    def test_context_manager_disposes(self, fake_complexity, fake_churn):
        with HealthAnalyzer(
            "/repo",
            config=HealthConfig(cleanup_interval_seconds=0),
            complexity_analyzer=fake_complexity(),
            churn_provider=fake_churn(),
        ) as analyzer:
            pass

        with pytest.raises(RuntimeError):
            analyzer._churn_pool.submit(len, [])

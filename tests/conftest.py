"""Shared test fixtures for Constellation Health tests."""

import pytest

from constellation_health.cache import MetricsCache
from constellation_health.config import HealthConfig
from constellation_health.graph import Graph, GraphEdge, GraphMetadata, GraphNode
from constellation_health.health import HealthAnalyzer
from constellation_health.models import ChurnMetrics, ComplexityMetrics


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


class ManualClock:
    """Time source that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeComplexity:
    """Complexity analyzer returning canned metrics per path."""

    def __init__(self, metrics=None, failing=()):
        self.metrics = dict(metrics or {})
        self.failing = set(failing)
        self.calls = []

    def analyze_file(self, path):
        self.calls.append(path)
        if path in self.failing:
            raise OSError(f"cannot read {path}")
        return self.metrics.get(path, ComplexityMetrics(lines_of_code=10, file_size=100, cyclomatic_complexity=1))


class FakeChurn:
    """Churn provider returning canned metrics per path."""

    def __init__(self, metrics=None, failing=()):
        self.metrics = dict(metrics or {})
        self.failing = set(failing)
        self.calls = []

    def get_file_churn(self, path, days=None):
        self.calls.append(path)
        if path in self.failing:
            raise RuntimeError(f"history unavailable for {path}")
        return self.metrics.get(path, ChurnMetrics(commit_count=0, unique_authors=0, days_since_last_change=5))


def build_graph(node_ids, edges=(), timestamp="2024-01-01T00:00:00.000Z", scan_path="."):
    """Graph whose node paths are ``/repo/<id>``."""
    return Graph(
        nodes=[GraphNode(id=n, path=f"/repo/{n}", label=n.rsplit("/", 1)[-1]) for n in node_ids],
        edges=[GraphEdge(source=s, target=t) for s, t in edges],
        metadata=GraphMetadata(timestamp=timestamp, workspace_root="/repo", scan_path=scan_path),
    )


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def metrics_cache(clock):
    """Cache on a manual clock with the background sweep disabled."""
    cache = MetricsCache(cleanup_interval=0, clock=clock)
    yield cache
    cache.dispose()


@pytest.fixture
def make_graph():
    return build_graph


@pytest.fixture
def make_analyzer(metrics_cache):
    """Factory for analyzers wired to fake collaborators."""
    created = []

    def factory(complexity=None, churn=None, config=None, **kwargs):
        analyzer = HealthAnalyzer(
            workspace_root="/repo",
            config=config or HealthConfig(cleanup_interval_seconds=0),
            cache=kwargs.pop("cache", metrics_cache),
            complexity_analyzer=complexity or FakeComplexity(),
            churn_provider=churn or FakeChurn(),
            **kwargs,
        )
        created.append(analyzer)
        return analyzer

    yield factory

    for analyzer in created:
        analyzer.dispose()


@pytest.fixture
def fake_complexity():
    return FakeComplexity


@pytest.fixture
def fake_churn():
    return FakeChurn

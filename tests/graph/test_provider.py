"""Tests for GraphStore."""

import json

import pytest

from constellation_health.exceptions import GraphUnavailableError, InvalidGraphError
from constellation_health.graph import GraphStore
from constellation_health.graph.provider import GRAPH_CACHE_DIR, GRAPH_CACHE_FILE


def write_graph(root, graph):
    cache_dir = root / GRAPH_CACHE_DIR
    cache_dir.mkdir(parents=True, exist_ok=True)
    (cache_dir / GRAPH_CACHE_FILE).write_text(json.dumps(graph.to_dict()))


@pytest.fixture
def sample_graph(make_graph):
    return make_graph(
        ["src/a.ts", "src/b.ts", "src/util/c.ts", "srcx/d.ts", "lib/e.ts"],
        [
            ("src/a.ts", "src/b.ts"),
            ("src/a.ts", "src/b.ts"),
            ("src/util/c.ts", "src/b.ts"),
            ("lib/e.ts", "src/a.ts"),
        ],
    )


class TestReverseIndex:
    def test_dependents_are_distinct(self, sample_graph):
        store = GraphStore(sample_graph)
        assert store.get_dependents_of("src/b.ts") == ["src/a.ts", "src/util/c.ts"]
        assert store.get_dependents_of("src/a.ts") == ["lib/e.ts"]

    def test_unknown_node(self, sample_graph):
        assert GraphStore(sample_graph).get_dependents_of("nope.ts") == []

    def test_returns_copy(self, sample_graph):
        store = GraphStore(sample_graph)
        store.get_dependents_of("src/b.ts").append("x")
        assert len(store.get_dependents_of("src/b.ts")) == 2

    def test_clear(self, sample_graph):
        store = GraphStore(sample_graph)
        store.clear()
        assert store.get_graph() is None
        assert store.get_dependents_of("src/b.ts") == []


class TestLoadGraph:
    def test_missing_export(self, tmp_path):
        with pytest.raises(GraphUnavailableError):
            GraphStore().load_graph(str(tmp_path))

    def test_unreadable_export(self, tmp_path):
        cache_dir = tmp_path / GRAPH_CACHE_DIR
        cache_dir.mkdir()
        (cache_dir / GRAPH_CACHE_FILE).write_text("{not json")
        with pytest.raises(InvalidGraphError):
            GraphStore().load_graph(str(tmp_path))

    def test_whole_workspace(self, tmp_path, sample_graph):
        write_graph(tmp_path, sample_graph)
        store = GraphStore()

        graph = store.load_graph(str(tmp_path))

        assert len(graph.nodes) == 5
        assert store.get_graph() is graph
        assert store.get_dependents_of("src/b.ts") == ["src/a.ts", "src/util/c.ts"]

    @pytest.mark.parametrize("scan_path", ["src", "./src", "src/"])
    def test_scan_path_filters_nodes(self, tmp_path, sample_graph, scan_path):
        write_graph(tmp_path, sample_graph)

        graph = GraphStore().load_graph(str(tmp_path), scan_path)

        assert [n.id for n in graph.nodes] == ["src/a.ts", "src/b.ts", "src/util/c.ts"]
        assert graph.metadata.scan_path == scan_path
        # lib/e.ts -> src/a.ts survives because its target is kept
        assert len(graph.edges) == 4

    def test_reload_replaces_previous_graph(self, make_graph, tmp_path, sample_graph):
        store = GraphStore(make_graph(["other.ts"]))
        write_graph(tmp_path, sample_graph)
        store.load_graph(str(tmp_path), "lib")
        assert [n.id for n in store.get_graph().nodes] == ["lib/e.ts"]

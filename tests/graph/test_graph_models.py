"""Tests for the graph document model."""

import pytest

from constellation_health.exceptions import InvalidGraphError
from constellation_health.graph import Graph, GraphEdge, GraphNode

DOCUMENT = {
    "nodes": [
        {"id": "src/a.ts", "path": "/repo/src/a.ts", "label": "a.ts"},
        {"id": "src/b.ts", "path": "/repo/src/b.ts", "label": "b.ts", "package": "core"},
        {"id": "lib/c.ts", "path": "/repo/lib/c.ts", "label": "c.ts"},
    ],
    "edges": [
        {"source": "src/a.ts", "target": "src/b.ts"},
        {"source": "lib/c.ts", "target": "src/b.ts"},
    ],
    "metadata": {
        "timestamp": "2024-03-01T10:00:00.000Z",
        "workspaceRoot": "/repo",
        "scanPath": ".",
    },
}


class TestFromDict:
    def test_parses_document(self):
        graph = Graph.from_dict(DOCUMENT)
        assert [n.id for n in graph.nodes] == ["src/a.ts", "src/b.ts", "lib/c.ts"]
        assert graph.nodes[1].package == "core"
        assert graph.edges[0] == GraphEdge(source="src/a.ts", target="src/b.ts")
        assert graph.metadata.workspace_root == "/repo"
        assert graph.metadata.scan_path == "."

    def test_round_trips_through_to_dict(self):
        assert Graph.from_dict(DOCUMENT).to_dict() == DOCUMENT

    @pytest.mark.parametrize(
        "document",
        [
            [],
            {"nodes": {}, "edges": [], "metadata": {}},
            {"nodes": [], "edges": None, "metadata": {}},
            {"nodes": [], "edges": [], "metadata": "x"},
            {"nodes": [{"id": "a"}], "edges": [], "metadata": {}},
            {"nodes": [], "edges": [{"source": "a"}], "metadata": {}},
        ],
    )
    def test_rejects_malformed_documents(self, document):
        with pytest.raises(InvalidGraphError):
            Graph.from_dict(document)


class TestFilterNodes:
    def test_keeps_edges_touching_kept_nodes(self):
        graph = Graph.from_dict(DOCUMENT)
        subset = graph.filter_nodes(lambda node: node.id == "src/a.ts")

        assert [n.id for n in subset.nodes] == ["src/a.ts"]
        assert subset.edges == [GraphEdge(source="src/a.ts", target="src/b.ts")]
        assert subset.metadata == graph.metadata

    def test_original_untouched(self):
        graph = Graph.from_dict(DOCUMENT)
        graph.filter_nodes(lambda node: False)
        assert len(graph.nodes) == 3
        assert len(graph.edges) == 2


def test_node_defaults():
    node = GraphNode(id="a.ts", path="/repo/a.ts", label="a.ts")
    assert node.package is None

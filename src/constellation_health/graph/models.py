"""Dependency graph consumed by the health analyzer.

The graph is produced by the project scanner and exported as a JSON
document::

    {
      "nodes": [{"id": "src/a.ts", "path": "/abs/src/a.ts", "label": "a.ts"}],
      "edges": [{"source": "src/a.ts", "target": "src/b.ts"}],
      "metadata": {"timestamp": "...", "workspaceRoot": "/abs", "scanPath": "."}
    }

Edges are directed: ``source`` imports (depends on) ``target``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..exceptions import InvalidGraphError


@dataclass(frozen=True)
class GraphNode:
    """One file in the graph.

    ``id`` is the workspace-relative path; ``path`` is the absolute path used
    to read the file.
    """

    id: str
    path: str
    label: str
    package: Optional[str] = None


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str


@dataclass(frozen=True)
class GraphMetadata:
    """When and where the graph was scanned."""

    timestamp: str
    workspace_root: str
    scan_path: str


@dataclass
class Graph:
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)
    metadata: GraphMetadata = field(default_factory=lambda: GraphMetadata("", "", ""))

    @classmethod
    def from_dict(cls, data: Any) -> Graph:
        """Build a Graph from its exported JSON form.

        Raises:
            InvalidGraphError: If the document does not have the graph shape
        """
        if not isinstance(data, dict):
            raise InvalidGraphError("graph document must be an object")

        nodes = data.get("nodes")
        edges = data.get("edges")
        metadata = data.get("metadata")
        if not isinstance(nodes, list):
            raise InvalidGraphError("'nodes' must be a list")
        if not isinstance(edges, list):
            raise InvalidGraphError("'edges' must be a list")
        if not isinstance(metadata, dict):
            raise InvalidGraphError("'metadata' must be an object")

        try:
            return cls(
                nodes=[
                    GraphNode(
                        id=n["id"],
                        path=n["path"],
                        label=n["label"],
                        package=n.get("package"),
                    )
                    for n in nodes
                ],
                edges=[GraphEdge(source=e["source"], target=e["target"]) for e in edges],
                metadata=GraphMetadata(
                    timestamp=metadata.get("timestamp", ""),
                    workspace_root=metadata.get("workspaceRoot", ""),
                    scan_path=metadata.get("scanPath", ""),
                ),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise InvalidGraphError(f"malformed node or edge: {e}")

    def to_dict(self) -> dict[str, Any]:
        nodes = []
        for node in self.nodes:
            entry = {"id": node.id, "path": node.path, "label": node.label}
            if node.package is not None:
                entry["package"] = node.package
            nodes.append(entry)
        return {
            "nodes": nodes,
            "edges": [{"source": e.source, "target": e.target} for e in self.edges],
            "metadata": {
                "timestamp": self.metadata.timestamp,
                "workspaceRoot": self.metadata.workspace_root,
                "scanPath": self.metadata.scan_path,
            },
        }

    def filter_nodes(self, predicate: Callable[[GraphNode], bool]) -> Graph:
        """Subgraph of the nodes matching ``predicate``.

        Edges are kept when either endpoint survives, so dependency counts of
        the kept nodes still include links to files outside the subset.
        """
        nodes = [node for node in self.nodes if predicate(node)]
        kept = {node.id for node in nodes}
        edges = [e for e in self.edges if e.source in kept or e.target in kept]
        return Graph(nodes=nodes, edges=edges, metadata=self.metadata)

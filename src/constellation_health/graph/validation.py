"""Shape checks and the structural fingerprint used as a report cache key."""

from __future__ import annotations

import hashlib
import json

from ..exceptions import InvalidGraphError
from .models import Graph


def validate_graph(graph: Graph) -> None:
    """Fail fast if ``graph`` cannot be analyzed.

    Only the first node and edge are inspected; the rest are trusted to share
    their shape.

    Raises:
        InvalidGraphError: With a reason naming the first problem found
    """
    if not isinstance(graph, Graph):
        raise InvalidGraphError(f"expected a Graph, got {type(graph).__name__}")
    if not isinstance(graph.nodes, list) or not isinstance(graph.edges, list):
        raise InvalidGraphError("nodes and edges must be lists")
    if not graph.nodes:
        raise InvalidGraphError("graph has no nodes")

    metadata = graph.metadata
    if metadata is None:
        raise InvalidGraphError("graph metadata is missing")
    for name in ("timestamp", "workspace_root", "scan_path"):
        if not getattr(metadata, name, None):
            raise InvalidGraphError(f"metadata.{name} is missing")

    node = graph.nodes[0]
    for name in ("id", "path", "label"):
        if not getattr(node, name, None):
            raise InvalidGraphError(f"node is missing '{name}'")

    if graph.edges:
        edge = graph.edges[0]
        for name in ("source", "target"):
            if not getattr(edge, name, None):
                raise InvalidGraphError(f"edge is missing '{name}'")


def graph_hash(graph: Graph) -> str:
    """Fingerprint of the graph's identity, not its content.

    Built from node and edge counts plus the scan timestamp and path, so a
    rescan always produces a new key while two scans with identical counts
    and metadata collide.
    """
    identity = json.dumps(
        {
            "nodeCount": len(graph.nodes),
            "edgeCount": len(graph.edges),
            "timestamp": graph.metadata.timestamp,
            "scanPath": graph.metadata.scan_path,
        },
        separators=(",", ":"),
    )
    return hashlib.md5(identity.encode()).hexdigest()

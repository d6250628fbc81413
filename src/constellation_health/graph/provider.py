"""Graph provider contract and the in-memory store that implements it."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol

from ..exceptions import GraphUnavailableError, InvalidGraphError
from ..logging_config import get_logger
from .models import Graph, GraphNode

logger = get_logger(__name__)

GRAPH_CACHE_DIR = ".constellation-cache"
GRAPH_CACHE_FILE = "graph-v1.json"


class GraphProvider(Protocol):
    """Supplies the current dependency graph and an incoming-edge index."""

    def get_graph(self) -> Optional[Graph]: ...

    def load_graph(self, workspace_root: str, scan_path: str = ".") -> Graph: ...

    def get_dependents_of(self, node_id: str) -> list[str]: ...


class GraphStore:
    """Holds one graph and a reverse-dependency index over it.

    ``load_graph`` reads the graph exported by the project scanner from
    ``<workspace_root>/.constellation-cache/graph-v1.json``.
    """

    def __init__(self, graph: Optional[Graph] = None):
        self._graph: Optional[Graph] = None
        self._dependents: dict[str, list[str]] = {}
        if graph is not None:
            self.set_graph(graph)

    def set_graph(self, graph: Graph) -> None:
        self._graph = graph
        self._build_reverse_index()

    def get_graph(self) -> Optional[Graph]:
        return self._graph

    def load_graph(self, workspace_root: str, scan_path: str = ".") -> Graph:
        """Load the exported graph and keep the nodes under ``scan_path``.

        Raises:
            GraphUnavailableError: If no exported graph exists
            InvalidGraphError: If the export cannot be parsed
        """
        self.clear()

        graph_file = Path(workspace_root) / GRAPH_CACHE_DIR / GRAPH_CACHE_FILE
        logger.info(f"Loading graph for {workspace_root} (scan path: {scan_path})")

        if not graph_file.exists():
            raise GraphUnavailableError()

        try:
            with open(graph_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidGraphError(f"cannot read {graph_file}: {e}")

        graph = Graph.from_dict(data)
        prefix = _normalize_scan_path(scan_path)
        if prefix:
            graph = graph.filter_nodes(lambda node: _is_under(node, prefix))
            graph.metadata = replace(graph.metadata, scan_path=scan_path)

        self.set_graph(graph)
        logger.info(f"Graph loaded with {len(graph.nodes)} nodes and {len(graph.edges)} edges")
        return graph

    def get_dependents_of(self, node_id: str) -> list[str]:
        """Distinct ids of the nodes with an edge into ``node_id``."""
        return list(self._dependents.get(node_id, []))

    def clear(self) -> None:
        self._graph = None
        self._dependents.clear()

    def _build_reverse_index(self) -> None:
        self._dependents = {}
        if self._graph is None:
            return

        for edge in self._graph.edges:
            dependents = self._dependents.setdefault(edge.target, [])
            if edge.source not in dependents:
                dependents.append(edge.source)

        logger.debug(f"Built reverse-dependency index with {len(self._dependents)} entries")


def _normalize_scan_path(scan_path: str) -> str:
    """Scan path as a relative POSIX prefix, or '' for the whole workspace."""
    normalized = str(PurePosixPath(scan_path.replace("\\", "/")))
    if normalized in (".", "/", ""):
        return ""
    return normalized


def _is_under(node: GraphNode, prefix: str) -> bool:
    node_id = node.id.replace("\\", "/")
    return node_id == prefix or node_id.startswith(prefix + "/")

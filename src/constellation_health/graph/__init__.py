"""Dependency graph input: models, provider and validation."""

from .models import Graph, GraphEdge, GraphMetadata, GraphNode
from .provider import GraphProvider, GraphStore
from .validation import graph_hash, validate_graph

__all__ = [
    "Graph",
    "GraphEdge",
    "GraphMetadata",
    "GraphNode",
    "GraphProvider",
    "GraphStore",
    "graph_hash",
    "validate_graph",
]

"""
Exploration graph construction and layout.
"""

from rabbithole.visualization.builder import build_graph
from rabbithole.visualization.layout import layout
from rabbithole.visualization.models import (
    ExplorationGraph,
    GraphEdge,
    GraphNode,
    PositionedGraph,
    PositionedNode,
    StyledEdge,
)

__all__ = [
    "build_graph",
    "layout",
    "ExplorationGraph",
    "GraphEdge",
    "GraphNode",
    "PositionedGraph",
    "PositionedNode",
    "StyledEdge",
]

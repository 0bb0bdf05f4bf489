"""
Layered left-to-right layout for exploration graphs.

Steps:
1. Longest-path layering: roots in layer 0, every other node one layer past
   its deepest predecessor.
2. Ordering within a layer by predecessor barycenter, ties by input order.
3. Coordinates: each layer is a column as wide as its widest footprint; nodes
   are stacked in it with a fixed gap and the column is centered on the
   tallest one.

Pure function of its input: nodes and edges are read, never modified.
"""

import logging
from collections import deque
from typing import Optional, Sequence

from rabbithole.core.config import LayoutSettings, config
from rabbithole.visualization.models import (
    EdgeMarker,
    GraphEdge,
    GraphNode,
    Position,
    PositionedGraph,
    PositionedNode,
    StyledEdge,
)

logger = logging.getLogger(__name__)

EDGE_COLOR = "rgba(248, 248, 248, 0.8)"
EDGE_WIDTH = 1.5


def footprint(node: GraphNode, settings: LayoutSettings) -> tuple[int, int]:
    """(width, height) reserved for a node; depends only on its kind."""
    if node.kind == "answer":
        return settings.answer_width, settings.answer_height
    return settings.question_width, settings.question_height


def assign_layers(nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> dict[str, int]:
    """Longest-path layering. Asserts the graph is acyclic and edges are closed over nodes."""
    ids = [n.id for n in nodes]
    assert len(set(ids)) == len(ids), "duplicate node ids"

    successors: dict[str, list[str]] = {nid: [] for nid in ids}
    indegree = {nid: 0 for nid in ids}
    for edge in edges:
        assert edge.source_node_id in successors, f"edge {edge.id}: unknown source {edge.source_node_id}"
        assert edge.target_node_id in successors, f"edge {edge.id}: unknown target {edge.target_node_id}"
        successors[edge.source_node_id].append(edge.target_node_id)
        indegree[edge.target_node_id] += 1

    layers = {nid: 0 for nid in ids}
    ready = deque(nid for nid in ids if indegree[nid] == 0)
    visited = 0

    while ready:
        nid = ready.popleft()
        visited += 1
        for succ in successors[nid]:
            layers[succ] = max(layers[succ], layers[nid] + 1)
            indegree[succ] -= 1
            if indegree[succ] == 0:
                ready.append(succ)

    assert visited == len(ids), "graph contains a cycle"
    return layers


def order_layers(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    layers: dict[str, int],
) -> list[list[str]]:
    """Order each layer by the mean rank of node predecessors (barycenter heuristic)."""
    input_order = {n.id: i for i, n in enumerate(nodes)}
    predecessors: dict[str, list[str]] = {n.id: [] for n in nodes}
    for edge in edges:
        predecessors[edge.target_node_id].append(edge.source_node_id)

    depth = max(layers.values()) + 1
    buckets: list[list[str]] = [[] for _ in range(depth)]
    for node in nodes:
        buckets[layers[node.id]].append(node.id)

    rank: dict[str, int] = {}

    def barycenter(nid: str) -> tuple[float, int]:
        preds = predecessors[nid]
        return (sum(rank[p] for p in preds) / len(preds), input_order[nid])

    ordered = []
    for bucket in buckets:
        # Layer 0 keeps input order; predecessors always sit in earlier layers
        bucket = sorted(bucket, key=barycenter) if ordered else bucket
        for position, nid in enumerate(bucket):
            rank[nid] = position
        ordered.append(bucket)

    return ordered


def style_edge(edge: GraphEdge) -> StyledEdge:
    """Annotate an edge as an animated curve with a closed arrow at the target."""
    return StyledEdge(
        edge=edge,
        type="default",
        animated=True,
        style={"stroke": EDGE_COLOR, "strokeWidth": EDGE_WIDTH},
        marker_end=EdgeMarker(type="arrowclosed", color=EDGE_COLOR),
    )


def layout(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    settings: Optional[LayoutSettings] = None,
) -> PositionedGraph:
    """
    Assign non-overlapping top-left positions to every node.

    Args:
        nodes: Graph nodes, in the order ties should resolve
        edges: Directed edges between those nodes
        settings: Footprints and spacing (default from config)

    Returns:
        PositionedGraph with nodes in input order and styled edges
    """
    settings = settings or config.layout
    if not nodes:
        return PositionedGraph()

    # Answer nodes always render expanded here, so this is normally the wide mode
    expanded = any(n.kind == "answer" and n.expanded for n in nodes)
    rank_sep = settings.rank_sep_expanded if expanded else settings.rank_sep
    margin_x = settings.margin_x
    margin_y = settings.margin_y_expanded if expanded else settings.margin_y

    layers = assign_layers(nodes, edges)
    ordered = order_layers(nodes, edges, layers)
    sizes = {n.id: footprint(n, settings) for n in nodes}

    layer_widths = [max(sizes[nid][0] for nid in bucket) for bucket in ordered]
    layer_extents = [
        sum(sizes[nid][1] for nid in bucket) + settings.node_sep * (len(bucket) - 1)
        for bucket in ordered
    ]
    tallest = max(layer_extents)

    positions: dict[str, Position] = {}
    x = margin_x
    for k, bucket in enumerate(ordered):
        y = margin_y + (tallest - layer_extents[k]) / 2
        for nid in bucket:
            width, height = sizes[nid]
            positions[nid] = Position(x=x + (layer_widths[k] - width) / 2, y=y)
            y += height + settings.node_sep
        x += layer_widths[k] + rank_sep

    positioned = [
        PositionedNode(
            node=node,
            position=positions[node.id],
            width=sizes[node.id][0],
            height=sizes[node.id][1],
            layer=layers[node.id],
        )
        for node in nodes
    ]

    logger.debug(f"Laid out {len(nodes)} nodes in {len(ordered)} layers (expanded={expanded})")

    return PositionedGraph(
        nodes=positioned,
        edges=[style_edge(edge) for edge in edges],
        width=x - rank_sep + margin_x,
        height=tallest + 2 * margin_y,
    )

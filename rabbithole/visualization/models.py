"""
Graph models derived from an exploration session.

Nothing here is persisted: graphs are rebuilt from the turn list on demand.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import Field

from rabbithole.persistence.models import CamelModel, Turn

NodeKind = Literal["answer", "question"]


class GraphNode(CamelModel):
    """
    A node of the exploration graph.

    Answer nodes carry their Turn and are always expanded; question nodes
    carry the literal question text and start collapsed.
    """

    id: str
    kind: NodeKind
    payload: Union[Turn, str]
    expanded: bool
    turn_index: int
    question_index: Optional[int] = None


class GraphEdge(CamelModel):
    """Directed edge between two graph nodes."""

    id: str
    source_node_id: str
    target_node_id: str


class ExplorationGraph(CamelModel):
    """Candidate graph produced by the graph builder."""

    session_id: str
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)

    def node(self, node_id: str) -> Optional[GraphNode]:
        return next((n for n in self.nodes if n.id == node_id), None)


# --- Layout output ---

class Position(CamelModel):
    x: float
    y: float


class PositionedNode(CamelModel):
    """A graph node with its top-left position and render hints."""

    node: GraphNode
    position: Position
    width: int
    height: int
    layer: int
    source_position: Literal["left", "right", "top", "bottom"] = "right"
    target_position: Literal["left", "right", "top", "bottom"] = "left"


class EdgeMarker(CamelModel):
    type: Literal["arrow", "arrowclosed"] = "arrowclosed"
    color: str


class StyledEdge(CamelModel):
    """A directed edge annotated for rendering as an animated curve."""

    edge: GraphEdge
    type: str = "default"
    animated: bool = True
    style: Dict[str, Any] = Field(default_factory=dict)
    marker_end: EdgeMarker


class PositionedGraph(CamelModel):
    """Render-ready output of the layout engine."""

    nodes: List[PositionedNode] = Field(default_factory=list)
    edges: List[StyledEdge] = Field(default_factory=list)
    width: float = 0
    height: float = 0

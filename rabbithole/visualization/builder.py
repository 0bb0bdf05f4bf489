"""
Graph builder: exploration session -> candidate graph.

Turn i is the parent of turn i+1 and of its own follow-up questions. The
graph is recomputed from the full turn list on every call, and ids are
derived from (session id, turn index, question index) so repeated builds of
the same session are identical.
"""

import logging

from rabbithole.persistence.models import ExplorationSession
from rabbithole.visualization.models import ExplorationGraph, GraphEdge, GraphNode

logger = logging.getLogger(__name__)


def answer_node_id(session_id: str, turn_index: int) -> str:
    return f"{session_id}-history-{turn_index}"


def question_node_id(session_id: str, turn_index: int, question_index: int) -> str:
    return f"{session_id}-question-{turn_index}-{question_index}"


def build_graph(session: ExplorationSession) -> ExplorationGraph:
    """
    Build answer/question nodes and chain/question edges for a session.

    Node order: answer nodes by turn, then question nodes by (turn, question).
    Edge order: chain edges by turn, then question edges by (turn, question).
    """
    answer_nodes = []
    question_nodes = []
    chain_edges = []
    question_edges = []

    for i, turn in enumerate(session.turns):
        assert turn.sequence_index == i, (
            f"session {session.id}: turn at position {i} has sequence index {turn.sequence_index}"
        )
        parent_id = answer_node_id(session.id, i)

        answer_nodes.append(
            GraphNode(
                id=parent_id,
                kind="answer",
                payload=turn,
                expanded=True,
                turn_index=i,
            )
        )

        if i > 0:
            chain_edges.append(
                GraphEdge(
                    id=f"{session.id}-history-edge-{i - 1}",
                    source_node_id=answer_node_id(session.id, i - 1),
                    target_node_id=parent_id,
                )
            )

        for q, question in enumerate(turn.answer.follow_up_questions):
            question_id = question_node_id(session.id, i, q)
            question_nodes.append(
                GraphNode(
                    id=question_id,
                    kind="question",
                    payload=question,
                    expanded=False,
                    turn_index=i,
                    question_index=q,
                )
            )
            question_edges.append(
                GraphEdge(
                    id=f"edge-{question_id}",
                    source_node_id=parent_id,
                    target_node_id=question_id,
                )
            )

    logger.debug(
        f"Built graph for session {session.id}: {len(answer_nodes)} answers, "
        f"{len(question_nodes)} questions"
    )

    return ExplorationGraph(
        session_id=session.id,
        nodes=answer_nodes + question_nodes,
        edges=chain_edges + question_edges,
    )

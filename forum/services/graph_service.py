import logging
import math
import uuid
from typing import Dict, List, Optional, Sequence, Tuple
from forum.models.graph import (
    Edge,
    Node,
    Persona,
    PersonaResponse,
    Position,
    PromptNode,
    ResponseNode,
    Session,
    PERSONA_ORDER,
)
from forum.services.personas import PERSONAS

logger = logging.getLogger(__name__)

ROOT_POSITION = Position(x=400, y=100)
INITIAL_RESPONSE_POSITIONS = [Position(x=650, y=50), Position(x=650, y=300), Position(x=150, y=175)]
FOLLOW_UP_OFFSET = (150, 200)
BRANCH_DROP = 250
BRANCH_SPREAD = 300


class NotFoundError(ValueError):
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


def initial_response_position(index: int, count: int) -> Position:
    if index < len(INITIAL_RESPONSE_POSITIONS):
        return INITIAL_RESPONSE_POSITIONS[index]
    angle = index * 2 * math.pi / count
    return Position(x=400 + 300 * math.cos(angle), y=250 + 300 * math.sin(angle))


def branch_response_position(anchor: Position, index: int) -> Position:
    y = anchor.y + BRANCH_DROP
    if index < 3:
        return Position(x=anchor.x + (index - 1) * BRANCH_SPREAD, y=y)
    return Position(x=anchor.x + (index - 1) * 200, y=y)


def _response_node(response: PersonaResponse, parent_id: str, position: Position) -> ResponseNode:
    return ResponseNode(
        id=_new_id(),
        text=response.text,
        parent_id=parent_id,
        persona=response.persona,
        color=response.color,
        position=position,
    )


def _edge(source: str, target: str) -> Edge:
    return Edge(id=_new_id(), source=source, target=target)


class GraphService:
    def __init__(self):
        # Lives for the process; sessions are never evicted
        self.sessions: Dict[str, Session] = {}

    def create_session(self, prompt: str, responses: Sequence[PersonaResponse]) -> Session:
        root = PromptNode(id=_new_id(), text=prompt, position=ROOT_POSITION)
        response_nodes = [
            _response_node(response, root.id, initial_response_position(i, len(responses)))
            for i, response in enumerate(responses)
        ]
        session = Session(
            id=_new_id(),
            nodes=[root, *response_nodes],
            edges=[_edge(root.id, node.id) for node in response_nodes],
        )
        self.sessions[session.id] = session
        logger.info(f"Created Forum session {session.id} with {len(responses)} personality responses")
        return session

    def get_session(self, session_id: str) -> Optional[Session]:
        return self.sessions.get(session_id)

    def get_all_sessions(self) -> List[Session]:
        return list(self.sessions.values())

    def require_node(self, session_id: str, node_id: str) -> Tuple[Session, Node]:
        session = self.get_session(session_id)
        if not session:
            raise NotFoundError("Session not found")
        node = session.find_node(node_id)
        if not node:
            raise NotFoundError("Parent node not found")
        return session, node

    def add_branch(
        self,
        session_id: str,
        parent_node_id: str,
        responses: Sequence[PersonaResponse],
        follow_up: Optional[str] = None,
    ) -> Tuple[List[Node], List[Edge]]:
        """Anchors a new persona fan-out to an existing node.

        With follow-up text a prompt node is created under the parent and the
        responses hang off it; otherwise they hang off the parent directly.
        Only the newly created nodes and edges are returned.
        """
        session, parent = self.require_node(session_id, parent_node_id)

        new_nodes: List[Node] = []
        new_edges: List[Edge] = []
        anchor = parent
        if follow_up:
            anchor = PromptNode(
                id=_new_id(),
                text=follow_up,
                parent_id=parent.id,
                position=Position(
                    x=parent.position.x + FOLLOW_UP_OFFSET[0],
                    y=parent.position.y + FOLLOW_UP_OFFSET[1],
                ),
            )
            new_nodes.append(anchor)
            new_edges.append(_edge(parent.id, anchor.id))

        for i, response in enumerate(responses):
            node = _response_node(response, anchor.id, branch_response_position(anchor.position, i))
            new_nodes.append(node)
            new_edges.append(_edge(anchor.id, node.id))

        session.nodes.extend(new_nodes)
        session.edges.extend(new_edges)
        logger.info(f"Added branch to session {session_id}: {len(new_nodes)} nodes, {len(new_edges)} edges")
        return new_nodes, new_edges

    def add_simple_branch(self, session_id: str, parent_node_id: str, texts: Sequence[str]) -> Tuple[List[Node], List[Edge]]:
        responses = []
        for i, text in enumerate(texts):
            persona = PERSONA_ORDER[i] if i < len(PERSONA_ORDER) else Persona.REALIST
            responses.append(PersonaResponse(persona=persona, text=text, color=PERSONAS[persona].color))
        return self.add_branch(session_id, parent_node_id, responses)

    def get_session_stats(self) -> Dict[str, int]:
        total_sessions = len(self.sessions)
        total_nodes = sum(len(s.nodes) for s in self.sessions.values())
        total_edges = sum(len(s.edges) for s in self.sessions.values())
        average = math.floor(total_nodes / total_sessions + 0.5) if total_sessions else 0
        return {
            "total_sessions": total_sessions,
            "total_nodes": total_nodes,
            "total_edges": total_edges,
            "average_nodes_per_session": average,
        }

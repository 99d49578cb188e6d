import pytest
from forum.models.graph import Persona, PromptNode, ResponseNode
from forum.services.graph_service import (
    GraphService,
    NotFoundError,
    ROOT_POSITION,
    branch_response_position,
)
from forum.services.personas import fallback_responses


@pytest.fixture
def service():
    return GraphService()


@pytest.fixture
def responses():
    return fallback_responses("Should I learn to code?")


def test_create_session(service, responses):
    session = service.create_session("Should I learn to code?", responses)

    assert service.get_session(session.id) is session
    assert len(session.nodes) == 4
    assert len(session.edges) == 3

    root = session.nodes[0]
    assert isinstance(root, PromptNode)
    assert root.text == "Should I learn to code?"
    assert root.parent_id is None
    assert root.position == ROOT_POSITION

    personas = [node.persona for node in session.nodes[1:]]
    assert personas == [Persona.OPTIMIST, Persona.PESSIMIST, Persona.REALIST]
    for node, edge in zip(session.nodes[1:], session.edges):
        assert isinstance(node, ResponseNode)
        assert node.parent_id == root.id
        assert edge.source == root.id
        assert edge.target == node.id


def test_ids_are_unique(service, responses):
    session = service.create_session("Topic", responses)
    ids = [n.id for n in session.nodes] + [e.id for e in session.edges] + [session.id]
    assert len(ids) == len(set(ids))


def test_add_branch_without_follow_up(service, responses):
    session = service.create_session("Topic", responses)
    parent = session.nodes[1]

    new_nodes, new_edges = service.add_branch(session.id, parent.id, responses)

    assert len(new_nodes) == 3
    assert len(new_edges) == 3
    assert all(node.parent_id == parent.id for node in new_nodes)
    assert all(edge.source == parent.id for edge in new_edges)
    assert [edge.target for edge in new_edges] == [node.id for node in new_nodes]
    assert len(session.nodes) == 7
    assert len(session.edges) == 6


def test_add_branch_with_follow_up(service, responses):
    session = service.create_session("Topic", responses)
    parent = session.nodes[2]

    new_nodes, new_edges = service.add_branch(session.id, parent.id, responses, "What about cost?")

    assert len(new_nodes) == 4
    assert len(new_edges) == 4
    follow_up = new_nodes[0]
    assert isinstance(follow_up, PromptNode)
    assert follow_up.text == "What about cost?"
    assert follow_up.parent_id == parent.id
    assert follow_up.position.x == parent.position.x + 150
    assert follow_up.position.y == parent.position.y + 200
    assert new_edges[0].source == parent.id
    assert new_edges[0].target == follow_up.id
    assert all(node.parent_id == follow_up.id for node in new_nodes[1:])


def test_branch_from_prompt_node(service, responses):
    session = service.create_session("Topic", responses)
    new_nodes, _ = service.add_branch(session.id, session.nodes[0].id, responses)
    assert all(node.parent_id == session.nodes[0].id for node in new_nodes)


def test_branch_unknown_session(service, responses):
    with pytest.raises(NotFoundError, match="Session not found"):
        service.add_branch("missing", "node", responses)


def test_branch_unknown_node_leaves_session_untouched(service, responses):
    session = service.create_session("Topic", responses)
    with pytest.raises(NotFoundError, match="Parent node not found"):
        service.add_branch(session.id, "missing", responses, "follow up")
    assert len(session.nodes) == 4
    assert len(session.edges) == 3


def test_branch_positions():
    anchor = ROOT_POSITION
    assert branch_response_position(anchor, 0).x == anchor.x - 300
    assert branch_response_position(anchor, 1).x == anchor.x
    assert branch_response_position(anchor, 2).x == anchor.x + 300
    assert branch_response_position(anchor, 3).x == anchor.x + 400
    assert branch_response_position(anchor, 0).y == anchor.y + 250


def test_add_simple_branch(service, responses):
    session = service.create_session("Topic", responses)
    new_nodes, new_edges = service.add_simple_branch(session.id, session.nodes[1].id, ["One idea", "Another"])
    assert [node.persona for node in new_nodes] == [Persona.OPTIMIST, Persona.PESSIMIST]
    assert new_nodes[0].color == "green"
    assert len(new_edges) == 2


def test_get_all_sessions(service, responses):
    first = service.create_session("One", responses)
    second = service.create_session("Two", responses)
    assert [s.id for s in service.get_all_sessions()] == [first.id, second.id]


def test_session_stats(service, responses):
    assert service.get_session_stats() == {
        "total_sessions": 0,
        "total_nodes": 0,
        "total_edges": 0,
        "average_nodes_per_session": 0,
    }

    first = service.create_session("One", responses)
    service.create_session("Two", responses)
    service.add_branch(first.id, first.nodes[1].id, responses)

    stats = service.get_session_stats()
    assert stats["total_sessions"] == 2
    assert stats["total_nodes"] == 11
    assert stats["total_edges"] == 9
    # 5.5 rounds half up
    assert stats["average_nodes_per_session"] == 6


def assert_tree_consistent(session):
    ids = {node.id for node in session.nodes}
    roots = [node for node in session.nodes if node.parent_id is None]
    assert len(roots) == 1
    for node in session.nodes:
        if node.parent_id is not None:
            assert node.parent_id in ids
        if node.type == "response":
            assert node.persona in set(Persona)

    edge_pairs = [(edge.source, edge.target) for edge in session.edges]
    parent_pairs = {(node.parent_id, node.id) for node in session.nodes if node.parent_id is not None}
    assert len(edge_pairs) == len(set(edge_pairs))
    assert set(edge_pairs) == parent_pairs


def test_tree_stays_consistent_across_branches(service, responses):
    session = service.create_session("Topic", responses)
    assert_tree_consistent(session)
    counts = [(len(session.nodes), len(session.edges))]

    def branch(parent_id, follow_up=None):
        new_nodes, _ = service.add_branch(session.id, parent_id, responses, follow_up)
        assert_tree_consistent(session)
        counts.append((len(session.nodes), len(session.edges)))
        return new_nodes

    level_one = session.nodes[1]
    plain = branch(level_one.id)
    with_follow_up = branch(session.nodes[2].id, "And then?")
    follow_up_prompt = with_follow_up[0]
    off_follow_up = branch(follow_up_prompt.id)
    branch(plain[1].id, "Deeper still?")
    branch(off_follow_up[2].id)
    branch(session.nodes[0].id)

    assert all(later[0] >= earlier[0] and later[1] >= earlier[1] for earlier, later in zip(counts, counts[1:]))
    assert counts[-1] == (4 + 3 + 4 + 3 + 4 + 3 + 3, 3 + 3 + 4 + 3 + 4 + 3 + 3)

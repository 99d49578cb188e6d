import pytest
from pydantic import TypeAdapter, ValidationError
from forum.models.api import (
    BrainstormRequest,
    BranchRequest,
    FOLLOW_UP_ERROR,
    PROMPT_ERROR,
)
from forum.models.graph import Node, Persona, PromptNode, ResponseNode, Session

node_adapter = TypeAdapter(Node)


def test_node_union_dispatches_on_type():
    prompt = node_adapter.validate_python({"type": "prompt", "id": "1", "text": "Topic"})
    response = node_adapter.validate_python({
        "type": "response",
        "id": "2",
        "text": "Idea",
        "parentId": "1",
        "persona": "realist",
        "color": "grey",
    })
    assert isinstance(prompt, PromptNode)
    assert isinstance(response, ResponseNode)
    assert response.persona == Persona.REALIST


def test_prompt_cannot_carry_persona():
    with pytest.raises(ValidationError):
        node_adapter.validate_python({"type": "prompt", "id": "1", "text": "Topic", "persona": "optimist"})


def test_response_requires_persona_and_parent():
    with pytest.raises(ValidationError):
        node_adapter.validate_python({"type": "response", "id": "2", "text": "Idea", "parentId": "1", "color": "grey"})
    with pytest.raises(ValidationError):
        node_adapter.validate_python({"type": "response", "id": "2", "text": "Idea", "persona": "realist", "color": "grey"})


def test_nodes_are_immutable():
    node = PromptNode(id="1", text="Topic")
    with pytest.raises(ValidationError):
        node.text = "Changed"


def test_node_serializes_camel_case():
    node = ResponseNode(id="2", text="Idea", parent_id="1", persona=Persona.OPTIMIST, color="green")
    data = node.model_dump(by_alias=True, mode="json")
    assert data["parentId"] == "1"
    assert data["persona"] == "optimist"
    assert data["position"] == {"x": 0.0, "y": 0.0}


def test_session_find_node():
    session = Session(id="s", nodes=[PromptNode(id="1", text="Topic")])
    assert session.find_node("1").text == "Topic"
    assert session.find_node("2") is None


def test_brainstorm_request_strips_and_escapes():
    request = BrainstormRequest(prompt="  <b>Go/No go</b>  ")
    assert request.prompt == "&lt;b&gt;Go&#x2F;No go&lt;&#x2F;b&gt;"


@pytest.mark.parametrize("prompt", ["", "   ", "x" * 1001, 42, None])
def test_brainstorm_request_rejects_bad_prompt(prompt):
    with pytest.raises(ValidationError, match=PROMPT_ERROR):
        BrainstormRequest(prompt=prompt)


def test_branch_request_accepts_wire_names():
    request = BranchRequest.model_validate({
        "sessionId": "0b5e7c3a-9a2c-4d4e-8f1a-1c2d3e4f5a6b",
        "nodeId": "7c9e6679-7425-40de-944b-e07fc1f90ae7",
    })
    assert request.session_id == "0b5e7c3a-9a2c-4d4e-8f1a-1c2d3e4f5a6b"
    assert request.prompt is None


def test_branch_request_limits_follow_up():
    with pytest.raises(ValidationError, match=FOLLOW_UP_ERROR):
        BranchRequest(
            session_id="0b5e7c3a-9a2c-4d4e-8f1a-1c2d3e4f5a6b",
            node_id="7c9e6679-7425-40de-944b-e07fc1f90ae7",
            prompt="x" * 501,
        )


@pytest.mark.parametrize("value", [
    "{0b5e7c3a-9a2c-4d4e-8f1a-1c2d3e4f5a6b}",
    "urn:uuid:0b5e7c3a-9a2c-4d4e-8f1a-1c2d3e4f5a6b",
    "0b5e7c3a9a2c4d4e8f1a1c2d3e4f5a6b",
    "0b5e7c3a-9a2c-4d4e-8f1a-1c2d3e4f5a6b\n",
])
def test_branch_request_requires_canonical_uuid(value):
    with pytest.raises(ValidationError, match="SessionId must be a valid UUID"):
        BranchRequest(session_id=value, node_id="7c9e6679-7425-40de-944b-e07fc1f90ae7")

import re
from typing import Dict, List, Optional
from pydantic import Field, field_validator
from forum.core.security import sanitize_text
from forum.models.graph import CamelModel, Edge, Node

PROMPT_ERROR = "Prompt must be a string between 1 and 1000 characters"
FOLLOW_UP_ERROR = "Follow-up prompt must be a string between 1 and 500 characters"
SESSION_ID_ERROR = "SessionId must be a valid UUID"
NODE_ID_ERROR = "NodeId must be a valid UUID"

# Canonical dashed form only
UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\Z", re.IGNORECASE)

# Messages used when a field fails before reaching its own validator (e.g. missing)
FIELD_ERRORS: Dict[str, str] = {
    "prompt": PROMPT_ERROR,
    "sessionId": SESSION_ID_ERROR,
    "nodeId": NODE_ID_ERROR,
}


def _bounded_text(value, max_length: int, message: str) -> str:
    if not isinstance(value, str):
        raise ValueError(message)
    value = value.strip()
    if not 1 <= len(value) <= max_length:
        raise ValueError(message)
    return sanitize_text(value)


def _uuid_string(value, message: str) -> str:
    if not isinstance(value, str) or not UUID_PATTERN.match(value):
        raise ValueError(message)
    return value


class BrainstormRequest(CamelModel):
    prompt: str = Field(..., description="Topic to brainstorm", examples=["Should I learn to code?"])

    @field_validator("prompt", mode="before")
    @classmethod
    def validate_prompt(cls, v):
        return _bounded_text(v, 1000, PROMPT_ERROR)


class BranchRequest(CamelModel):
    session_id: str
    node_id: str
    prompt: Optional[str] = Field(None, description="Optional follow-up question")

    @field_validator("session_id", mode="before")
    @classmethod
    def validate_session_id(cls, v):
        return _uuid_string(v, SESSION_ID_ERROR)

    @field_validator("node_id", mode="before")
    @classmethod
    def validate_node_id(cls, v):
        return _uuid_string(v, NODE_ID_ERROR)

    @field_validator("prompt", mode="before")
    @classmethod
    def validate_prompt(cls, v):
        if v is None:
            return None
        return _bounded_text(v, 500, FOLLOW_UP_ERROR)


class BrainstormResponse(CamelModel):
    session_id: str
    nodes: List[Node]
    edges: List[Edge]


class BranchResponse(CamelModel):
    new_nodes: List[Node]
    new_edges: List[Edge]


class SessionStats(CamelModel):
    total_sessions: int
    total_nodes: int
    total_edges: int
    average_nodes_per_session: int


class StatsResponse(SessionStats):
    rate_limit_window: str
    rate_limit_max: int
    cors_origin: str
    timestamp: str


class HealthResponse(CamelModel):
    status: str
    service: str
    personalities: List[str]
    timestamp: str
    uptime: float

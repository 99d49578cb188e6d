from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Persona(str, Enum):
    OPTIMIST = "optimist"
    PESSIMIST = "pessimist"
    REALIST = "realist"


PERSONA_ORDER = (Persona.OPTIMIST, Persona.PESSIMIST, Persona.REALIST)


class CamelModel(BaseModel):
    """Snake-case attributes in Python, camelCase names on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="forbid")


class Position(FrozenModel):
    x: float = 0.0
    y: float = 0.0


class PromptNode(FrozenModel):
    type: Literal["prompt"] = "prompt"
    id: str
    text: str
    parent_id: Optional[str] = None
    position: Position = Field(default_factory=Position)


class ResponseNode(FrozenModel):
    type: Literal["response"] = "response"
    id: str
    text: str
    parent_id: str
    persona: Persona
    color: str
    position: Position = Field(default_factory=Position)


# A prompt can never carry a persona and a response always has one.
Node = Annotated[Union[PromptNode, ResponseNode], Field(discriminator="type")]


class Edge(FrozenModel):
    id: str
    source: str
    target: str


class PersonaResponse(FrozenModel):
    persona: Persona
    text: str
    color: str


class Session(CamelModel):
    id: str
    nodes: List[Node] = []
    edges: List[Edge] = []
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def find_node(self, node_id: str) -> Optional[Union[PromptNode, ResponseNode]]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

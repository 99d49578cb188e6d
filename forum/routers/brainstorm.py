import logging
import re
import time
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request
from forum.core import config
from forum.core.security import SizeLimitedJSONResponse, client_address, log_suspicious_prompt
from forum.models.api import (
    BrainstormRequest,
    BrainstormResponse,
    BranchRequest,
    BranchResponse,
    HealthResponse,
    StatsResponse,
)
from forum.models.graph import PERSONA_ORDER
from forum.services.graph_service import GraphService, NotFoundError
from forum.services.persona_service import PersonaService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", default_response_class=SizeLimitedJSONResponse)

SESSION_ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE
)


def get_graph_service(request: Request) -> GraphService:
    return request.app.state.graph_service


def get_persona_service(request: Request) -> PersonaService:
    return request.app.state.persona_service


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post("/brainstorm", response_model=BrainstormResponse)
async def brainstorm(
    body: BrainstormRequest,
    request: Request,
    graph: GraphService = Depends(get_graph_service),
    personas: PersonaService = Depends(get_persona_service),
):
    address = client_address(request)
    log_suspicious_prompt(body.prompt, address)
    logger.info(f"Forum brainstorm request: \"{body.prompt[:100]}...\" from IP: {address}")

    responses = await personas.generate_responses(body.prompt)
    if not responses:
        raise HTTPException(500, "Failed to generate personality responses")

    session = graph.create_session(body.prompt, responses)
    return BrainstormResponse(session_id=session.id, nodes=session.nodes, edges=session.edges)


@router.get("/session/{session_id}", response_model=BrainstormResponse)
async def get_session(session_id: str, graph: GraphService = Depends(get_graph_service)):
    if not SESSION_ID_PATTERN.match(session_id):
        raise HTTPException(400, "Invalid session ID format")
    session = graph.get_session(session_id)
    if not session:
        raise HTTPException(404, "Session not found")
    return BrainstormResponse(session_id=session.id, nodes=session.nodes, edges=session.edges)


@router.post("/branch", response_model=BranchResponse)
async def branch(
    body: BranchRequest,
    request: Request,
    graph: GraphService = Depends(get_graph_service),
    personas: PersonaService = Depends(get_persona_service),
):
    # Look up before generating so a bad id never costs a model call
    session = graph.get_session(body.session_id)
    if not session:
        raise HTTPException(404, "Session not found")
    parent = session.find_node(body.node_id)
    if not parent:
        raise HTTPException(404, "Node not found")

    address = client_address(request)
    logger.info(f"Forum branch request: node {body.node_id} in session {body.session_id} from IP: {address}")
    if body.prompt:
        log_suspicious_prompt(body.prompt, address)
        logger.info(f"Follow-up prompt: \"{body.prompt[:100]}...\"")

    responses = await personas.generate_branch(parent.text, body.prompt)
    if not responses:
        raise HTTPException(500, "Failed to generate personality responses")

    try:
        new_nodes, new_edges = graph.add_branch(body.session_id, body.node_id, responses, body.prompt)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    return BranchResponse(new_nodes=new_nodes, new_edges=new_edges)


@router.get("/stats", response_model=StatsResponse)
async def stats(graph: GraphService = Depends(get_graph_service)):
    return StatsResponse(
        **graph.get_session_stats(),
        rate_limit_window=config.RATE_LIMIT_WINDOW,
        rate_limit_max=config.RATE_LIMIT_MAX,
        cors_origin=config.CORS_ORIGIN,
        timestamp=_now(),
    )


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    return HealthResponse(
        status="healthy",
        service="Forum",
        personalities=[p.value for p in PERSONA_ORDER],
        timestamp=_now(),
        uptime=time.monotonic() - request.app.state.started_at,
    )

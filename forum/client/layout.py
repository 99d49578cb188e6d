import heapq
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from forum.client import constants
from forum.client.metrics import NodeDimensions, calculate_node_dimensions, node_color, wrap_text
from forum.client.simulation import ForceSimulation, SimNode
from forum.client.store import GraphStore
from forum.models.graph import Edge, Node

logger = logging.getLogger(__name__)


class NodeStatus(str, Enum):
    UNPOSITIONED = "unpositioned"
    SETTLING = "settling"
    VISIBLE = "visible"


class ViewportMode(str, Enum):
    FREE = "free"
    CENTERING = "centering"
    PINNED_CENTERED = "pinned_centered"


@dataclass(frozen=True)
class Transform:
    x: float = 0.0
    y: float = 0.0
    k: float = 1.0

    def apply(self, px: float, py: float) -> Tuple[float, float]:
        return px * self.k + self.x, py * self.k + self.y

    def interpolate(self, other: "Transform", t: float) -> "Transform":
        return Transform(
            x=self.x + (other.x - self.x) * t,
            y=self.y + (other.y - self.y) * t,
            k=self.k + (other.k - self.k) * t,
        )


def ease_cubic_in_out(t: float) -> float:
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


@dataclass
class RenderedNode:
    id: str
    x: float
    y: float
    width: float
    height: float
    radius: float
    color: str
    lines: List[str]
    opacity: float
    status: NodeStatus
    selected: bool
    expanded: bool


@dataclass
class RenderedEdge:
    id: str
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass
class Frame:
    transform: Transform
    mode: ViewportMode
    nodes: List[RenderedNode] = field(default_factory=list)
    edges: List[RenderedEdge] = field(default_factory=list)


@dataclass
class _Animation:
    start: float
    duration: float
    source: Transform
    target: Transform
    on_end: Callable[[], None]


class GraphLayout:
    """Headless model of the graph renderer.

    Owns all mutable layout state (positions, velocities, pins, visibility and
    the viewport transform) keyed by node id; the logical nodes it is given
    are never modified. Time only moves through ``advance``.
    """

    def __init__(self, width: float = 1280, height: float = 800, seed: int = 0):
        self.width = width
        self.height = height
        self.seed = seed
        self.now = 0.0
        self.simulation: Optional[ForceSimulation] = None
        self.nodes: Dict[str, Node] = {}
        self.edges: List[Edge] = []
        self.status: Dict[str, NodeStatus] = {}
        self.revealed_at: Dict[str, float] = {}
        self.dimensions: Dict[str, NodeDimensions] = {}
        self.mode = ViewportMode.FREE
        self.selected_id: Optional[str] = None
        self.pinned_id: Optional[str] = None
        self.transform = Transform()
        self._structure: Tuple[Tuple[str, ...], Tuple[Tuple[str, str, str], ...]] = ((), ())
        self._timers: List[Tuple[float, int, str, Callable[[], None]]] = []
        self._sequence = itertools.count()
        self._animation: Optional[_Animation] = None

    @property
    def center(self) -> Tuple[float, float]:
        return self.width / 2, self.height / 2

    @property
    def interactive(self) -> bool:
        return self.mode == ViewportMode.FREE

    # Timers

    def _schedule(self, delay: float, kind: str, action: Callable[[], None]):
        heapq.heappush(self._timers, (self.now + delay, next(self._sequence), kind, action))

    def _cancel(self, *kinds: str):
        self._timers = [timer for timer in self._timers if timer[2] not in kinds]
        heapq.heapify(self._timers)

    def _run_due_timers(self):
        while self._timers and self._timers[0][0] <= self.now:
            _, _, _, action = heapq.heappop(self._timers)
            action()

    # Structure

    def bind(self, store: GraphStore) -> Callable[[], None]:
        """Follows a store: re-syncs on graph changes and mirrors selection."""

        def on_change(state: GraphStore):
            self.sync(state.nodes, state.edges)
            if state.selected_node_id != self.selected_id:
                if state.selected_node_id is None:
                    self.deselect()
                else:
                    self.select(state.selected_node_id)

        on_change(store)
        return store.subscribe(on_change)

    def sync(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> bool:
        """Rebuilds the simulation if the node or edge set changed."""
        structure = (
            tuple(node.id for node in nodes),
            tuple((edge.id, edge.source, edge.target) for edge in edges),
        )
        if structure == self._structure:
            return False
        self._structure = structure
        self._rebuild(nodes, edges)
        return True

    def _rebuild(self, nodes: Sequence[Node], edges: Sequence[Edge]):
        previous: Dict[str, Tuple[float, float]] = {}
        if self.simulation:
            previous = {n.id: (n.x, n.y) for n in self.simulation.nodes}
            self.simulation.stop()
        initial = not previous
        cx, cy = self.center

        self.nodes = {node.id: node for node in nodes}
        self.edges = list(edges)
        self.status = {}
        self.dimensions = {}
        self.revealed_at = {k: v for k, v in self.revealed_at.items() if k in self.nodes}
        sim_nodes = []
        for node in self.nodes.values():
            dims = calculate_node_dimensions(node.text, self._is_expanded(node.id))
            self.dimensions[node.id] = dims
            x, y = previous.get(node.id, (cx, cy))
            sim_node = SimNode(id=node.id, x=x, y=y, radius=dims.radius)
            # Held in place until the release timer so nothing jumps on rebuild
            sim_node.pin(x, y)
            sim_nodes.append(sim_node)
            if initial or node.id not in previous:
                self.status[node.id] = NodeStatus.SETTLING
                self.revealed_at.pop(node.id, None)
            else:
                self.status[node.id] = NodeStatus.VISIBLE

        self.simulation = ForceSimulation(
            sim_nodes,
            links=[(edge.id, edge.source, edge.target) for edge in self.edges],
            center=self.center,
            seed=self.seed,
        )
        if self.selected_id not in self.nodes:
            self._clear_selection()
        elif self.pinned_id is not None:
            self.simulation.node(self.pinned_id).pin(cx, cy)

        settling = sum(1 for status in self.status.values() if status == NodeStatus.SETTLING)
        logger.debug(f"Rebuilt simulation: {len(sim_nodes)} nodes, {len(previous)} seeded, {settling} settling")

        self._cancel("release", "reveal")
        self._schedule(constants.FIXED_POSITION_RELEASE_DELAY, "release", self._release_seeds)
        self._schedule(constants.SETTLEMENT_DELAY, "reveal", self._reveal)

    def _release_seeds(self):
        for sim_node in self.simulation.nodes:
            if sim_node.id == self.pinned_id:
                continue
            sim_node.release()
        self.simulation.restart(constants.RESTART_ALPHA)

    def _reveal(self):
        for node_id, status in self.status.items():
            if status == NodeStatus.SETTLING:
                self.status[node_id] = NodeStatus.VISIBLE
                self.revealed_at[node_id] = self.now

    def _is_expanded(self, node_id: str) -> bool:
        node = self.nodes.get(node_id)
        return node is not None and node_id == self.selected_id and node.type == "response"

    def _resize_node(self, node_id: str):
        node = self.nodes.get(node_id)
        sim_node = self.simulation.node(node_id) if self.simulation else None
        if node is None or sim_node is None:
            return
        dims = calculate_node_dimensions(node.text, self._is_expanded(node_id))
        self.dimensions[node_id] = dims
        sim_node.radius = dims.radius

    def status_of(self, node_id: str) -> NodeStatus:
        return self.status.get(node_id, NodeStatus.UNPOSITIONED)

    def opacity(self, node_id: str) -> float:
        status = self.status_of(node_id)
        if status != NodeStatus.VISIBLE:
            return 0.0
        revealed = self.revealed_at.get(node_id)
        if revealed is None:
            return 1.0
        return min(1.0, (self.now - revealed) / constants.FADE_IN_DURATION)

    # Viewport state machine

    def _centered_transform(self) -> Transform:
        cx, cy = self.center
        k = constants.CENTER_SCALE
        return Transform(x=cx - cx * k, y=cy - cy * k, k=k)

    def select(self, node_id: str) -> bool:
        """FREE -> CENTERING; the node is pinned once the lock delay passes."""
        if not self.simulation or self.simulation.node(node_id) is None:
            logger.warning(f"Cannot select {node_id}: not in layout")
            return False
        if self.selected_id == node_id:
            return True
        if self.selected_id is not None:
            self._unpin()

        self.selected_id = node_id
        self.mode = ViewportMode.CENTERING
        self._resize_node(node_id)
        self._cancel("lock")
        self._schedule(constants.LOCK_DELAY, "lock", self._lock)
        return True

    def _lock(self):
        sim_node = self.simulation.node(self.selected_id)
        if sim_node is None:
            self._clear_selection()
            return
        cx, cy = self.center
        sim_node.pin(cx, cy)
        self.pinned_id = self.selected_id
        self.simulation.restart(constants.PIN_ALPHA)
        self._animation = _Animation(
            start=self.now,
            duration=constants.CENTER_DURATION,
            source=self.transform,
            target=self._centered_transform(),
            on_end=self._finish_lock,
        )

    def _finish_lock(self):
        self.mode = ViewportMode.PINNED_CENTERED
        logger.debug(f"Viewport locked to {self.selected_id}")

    def deselect(self) -> bool:
        """Any mode -> FREE; the node drifts back under a low-energy restart."""
        if self.selected_id is None:
            return False
        self._unpin()
        self._clear_selection()
        if self.simulation:
            self.simulation.restart(constants.RESTART_ALPHA)
        return True

    def _unpin(self):
        previous = self.selected_id
        self._cancel("lock")
        self._animation = None
        self.selected_id = None
        self.pinned_id = None
        sim_node = self.simulation.node(previous) if self.simulation else None
        if sim_node is not None:
            sim_node.release()
        self._resize_node(previous)

    def _clear_selection(self):
        self.selected_id = None
        self.pinned_id = None
        self.mode = ViewportMode.FREE
        self._cancel("lock")
        self._animation = None

    def resize(self, width: float, height: float):
        self.width = width
        self.height = height
        if not self.simulation:
            return
        cx, cy = self.center
        self.simulation.set_center(cx, cy)
        if self.pinned_id is not None:
            # Re-pin at the new center without re-running settle and fade
            self.simulation.node(self.pinned_id).pin(cx, cy)
            self.transform = self._centered_transform()
            if self._animation is not None:
                on_end = self._animation.on_end
                self._animation = None
                on_end()
            self.simulation.restart(constants.RESTART_ALPHA)
        else:
            self.simulation.restart(constants.RESIZE_ALPHA)

    # Interaction, ignored unless the viewport is free

    def pan(self, dx: float, dy: float) -> bool:
        if not self.interactive:
            return False
        self.transform = Transform(x=self.transform.x + dx, y=self.transform.y + dy, k=self.transform.k)
        return True

    def zoom(self, factor: float, about: Optional[Tuple[float, float]] = None) -> bool:
        if not self.interactive:
            return False
        px, py = about if about is not None else self.center
        k = min(constants.MAX_SCALE, max(constants.MIN_SCALE, self.transform.k * factor))
        ratio = k / self.transform.k
        self.transform = Transform(x=px - (px - self.transform.x) * ratio, y=py - (py - self.transform.y) * ratio, k=k)
        return True

    def drag_start(self, node_id: str) -> bool:
        sim_node = self.simulation.node(node_id) if self.simulation and self.interactive else None
        if sim_node is None:
            return False
        self.simulation.alpha_target = constants.DRAG_ALPHA_TARGET
        self.simulation.restart()
        sim_node.fx, sim_node.fy = sim_node.x, sim_node.y
        return True

    def drag_to(self, node_id: str, x: float, y: float) -> bool:
        sim_node = self.simulation.node(node_id) if self.simulation and self.interactive else None
        if sim_node is None:
            return False
        sim_node.fx, sim_node.fy = x, y
        return True

    def drag_end(self, node_id: str) -> bool:
        sim_node = self.simulation.node(node_id) if self.simulation and self.interactive else None
        if sim_node is None:
            return False
        self.simulation.alpha_target = 0.0
        sim_node.release()
        return True

    # Clock

    def advance(self, ms: float):
        end = self.now + ms
        while self.now < end:
            self.now = min(end, self.now + constants.FRAME_INTERVAL)
            self._run_due_timers()
            if self.simulation:
                self.simulation.step()
            self._step_animation()

    def _step_animation(self):
        animation = self._animation
        if animation is None:
            return
        t = min(1.0, (self.now - animation.start) / animation.duration)
        self.transform = animation.source.interpolate(animation.target, ease_cubic_in_out(t))
        if t >= 1.0:
            self._animation = None
            animation.on_end()

    def position(self, node_id: str) -> Optional[Tuple[float, float]]:
        sim_node = self.simulation.node(node_id) if self.simulation else None
        if sim_node is None:
            return None
        return sim_node.x, sim_node.y

    def frame(self) -> Frame:
        frame = Frame(transform=self.transform, mode=self.mode)
        if not self.simulation:
            return frame
        for sim_node in self.simulation.nodes:
            node = self.nodes[sim_node.id]
            dims = self.dimensions[sim_node.id]
            expanded = self._is_expanded(sim_node.id)
            frame.nodes.append(RenderedNode(
                id=sim_node.id,
                x=sim_node.x,
                y=sim_node.y,
                width=dims.width,
                height=dims.height,
                radius=dims.radius,
                color=node_color(node),
                lines=wrap_text(node.text, expanded=expanded),
                opacity=self.opacity(sim_node.id),
                status=self.status_of(sim_node.id),
                selected=sim_node.id == self.selected_id,
                expanded=expanded,
            ))
        for link in self.simulation.links:
            frame.edges.append(RenderedEdge(
                id=link.id,
                x1=link.source.x,
                y1=link.source.y,
                x2=link.target.x,
                y2=link.target.y,
            ))
        return frame

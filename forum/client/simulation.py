import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple
from forum.client import constants

logger = logging.getLogger(__name__)


@dataclass
class SimNode:
    """Mutable layout state for one node; joined to the logical graph by id."""
    id: str
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    fx: Optional[float] = None
    fy: Optional[float] = None
    radius: float = constants.BASE_COLLISION_RADIUS

    @property
    def fixed(self) -> bool:
        return self.fx is not None or self.fy is not None

    def pin(self, x: float, y: float):
        self.fx = self.x = x
        self.fy = self.y = y

    def release(self):
        self.fx = None
        self.fy = None


@dataclass
class SimLink:
    id: str
    source: SimNode
    target: SimNode
    strength: float = 1.0
    bias: float = 0.5


class ForceSimulation:
    """Stepwise force layout with alpha cooling.

    Forces are applied in the order link, many-body, center, collide, then
    velocities are integrated with friction. Many-body and collide are
    computed pairwise.
    """

    def __init__(
        self,
        nodes: Iterable[SimNode],
        links: Iterable[Tuple[str, str, str]] = (),
        center: Tuple[float, float] = (0.0, 0.0),
        link_distance: float = constants.LINK_DISTANCE,
        charge_strength: float = constants.CHARGE_STRENGTH,
        center_strength: float = constants.CENTER_STRENGTH,
        alpha_decay: float = constants.ALPHA_DECAY,
        velocity_decay: float = constants.VELOCITY_DECAY,
        alpha_min: float = constants.ALPHA_MIN,
        seed: int = 0,
    ):
        self.nodes: List[SimNode] = list(nodes)
        self.by_id: Dict[str, SimNode] = {node.id: node for node in self.nodes}
        self.center = center
        self.link_distance = link_distance
        self.charge_strength = charge_strength
        self.center_strength = center_strength
        self.alpha_decay = alpha_decay
        self.velocity_decay = velocity_decay
        self.alpha_min = alpha_min
        self.alpha = 1.0
        self.alpha_target = 0.0
        self.running = True
        self.random = random.Random(seed)
        self.links = self._build_links(links)

    def _build_links(self, links) -> List[SimLink]:
        built = []
        for link_id, source_id, target_id in links:
            source = self.by_id.get(source_id)
            target = self.by_id.get(target_id)
            if source is None or target is None:
                logger.debug(f"Skipping link {link_id}: endpoint missing")
                continue
            built.append(SimLink(id=link_id, source=source, target=target))

        count: Dict[str, int] = {}
        for link in built:
            count[link.source.id] = count.get(link.source.id, 0) + 1
            count[link.target.id] = count.get(link.target.id, 0) + 1
        for link in built:
            source_count = count[link.source.id]
            target_count = count[link.target.id]
            link.bias = source_count / (source_count + target_count)
            link.strength = 1 / min(source_count, target_count)
        return built

    def node(self, node_id: str) -> Optional[SimNode]:
        return self.by_id.get(node_id)

    def set_center(self, x: float, y: float):
        self.center = (x, y)

    def restart(self, alpha: Optional[float] = None):
        if alpha is not None:
            self.alpha = alpha
        self.running = True

    def stop(self):
        self.running = False

    @property
    def settled(self) -> bool:
        return self.alpha < self.alpha_min and self.alpha_target < self.alpha_min

    def step(self) -> bool:
        """Advances one frame if the simulation is hot; returns whether it ticked."""
        if not self.running:
            return False
        if self.settled:
            self.running = False
            return False
        self.tick()
        return True

    def tick(self):
        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
        self._apply_links()
        self._apply_charge()
        self._apply_center()
        self._apply_collide()
        for node in self.nodes:
            if node.fx is None:
                node.vx *= 1 - self.velocity_decay
                node.x += node.vx
            else:
                node.x = node.fx
                node.vx = 0.0
            if node.fy is None:
                node.vy *= 1 - self.velocity_decay
                node.y += node.vy
            else:
                node.y = node.fy
                node.vy = 0.0

    def _jiggle(self) -> float:
        return (self.random.random() - 0.5) * 1e-6

    def _apply_links(self):
        for link in self.links:
            source, target = link.source, link.target
            x = target.x + target.vx - source.x - source.vx or self._jiggle()
            y = target.y + target.vy - source.y - source.vy or self._jiggle()
            length = math.sqrt(x * x + y * y)
            scale = (length - self.link_distance) / length * self.alpha * link.strength
            x *= scale
            y *= scale
            target.vx -= x * link.bias
            target.vy -= y * link.bias
            source.vx += x * (1 - link.bias)
            source.vy += y * (1 - link.bias)

    def _apply_charge(self):
        for node in self.nodes:
            for other in self.nodes:
                if other is node:
                    continue
                x = other.x - node.x or self._jiggle()
                y = other.y - node.y or self._jiggle()
                distance2 = x * x + y * y
                if distance2 < 1:
                    distance2 = math.sqrt(distance2)
                weight = self.charge_strength * self.alpha / distance2
                node.vx += x * weight
                node.vy += y * weight

    def _apply_center(self):
        if not self.nodes:
            return
        mean_x = sum(node.x for node in self.nodes) / len(self.nodes)
        mean_y = sum(node.y for node in self.nodes) / len(self.nodes)
        shift_x = (mean_x - self.center[0]) * self.center_strength
        shift_y = (mean_y - self.center[1]) * self.center_strength
        for node in self.nodes:
            node.x -= shift_x
            node.y -= shift_y

    def _apply_collide(self):
        for i, a in enumerate(self.nodes):
            for b in self.nodes[i + 1:]:
                reach = a.radius + b.radius
                x = a.x + a.vx - b.x - b.vx
                y = a.y + a.vy - b.y - b.vy
                distance2 = x * x + y * y
                if distance2 >= reach * reach:
                    continue
                if x == 0:
                    x = self._jiggle()
                    distance2 += x * x
                if y == 0:
                    y = self._jiggle()
                    distance2 += y * y
                distance = math.sqrt(distance2)
                overlap = (reach - distance) / distance
                x *= overlap
                y *= overlap
                share = b.radius ** 2 / (a.radius ** 2 + b.radius ** 2)
                a.vx += x * share
                a.vy += y * share
                b.vx -= x * (1 - share)
                b.vy -= y * (1 - share)

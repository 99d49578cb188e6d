import logging
from typing import Callable, List, Optional, Sequence
from forum.models.graph import Edge, Node

logger = logging.getLogger(__name__)


class GraphStore:
    """Shared client state: the current graph, request flags and overlay.

    Setters replace state and notify subscribers. Nothing here validates the
    graph: duplicate ids or dangling parent ids are kept as given.
    """

    def __init__(self):
        self.nodes: List[Node] = []
        self.edges: List[Edge] = []
        self.session_id: Optional[str] = None
        self.is_loading = False
        self.error: Optional[str] = None
        self.overlay_node: Optional[Node] = None
        self.is_overlay_visible = False
        self.selected_node_id: Optional[str] = None
        self._listeners: List[Callable[["GraphStore"], None]] = []

    def subscribe(self, listener: Callable[["GraphStore"], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        for listener in list(self._listeners):
            listener(self)

    def get_node(self, node_id: str) -> Optional[Node]:
        return next((node for node in self.nodes if node.id == node_id), None)

    def set_graph(self, nodes: Sequence[Node], edges: Sequence[Edge], session_id: Optional[str] = None):
        self.nodes = list(nodes)
        self.edges = list(edges)
        self.session_id = session_id or None
        self.error = None
        if self.selected_node_id is not None and self.get_node(self.selected_node_id) is None:
            self.selected_node_id = None
        self._notify()

    def add_nodes(self, new_nodes: Sequence[Node], new_edges: Sequence[Edge]):
        self.nodes = [*self.nodes, *new_nodes]
        self.edges = [*self.edges, *new_edges]
        self.error = None
        self._notify()

    def set_loading(self, loading: bool):
        self.is_loading = loading
        self._notify()

    def set_error(self, error: Optional[str]):
        self.error = error
        self.is_loading = False
        self._notify()

    def clear_graph(self):
        self.nodes = []
        self.edges = []
        self.session_id = None
        self.error = None
        self.overlay_node = None
        self.is_overlay_visible = False
        self.selected_node_id = None
        self._notify()

    def show_overlay(self, node: Node):
        self.overlay_node = node
        self.is_overlay_visible = True
        self._notify()

    def hide_overlay(self):
        self.overlay_node = None
        self.is_overlay_visible = False
        self._notify()

    def set_selected_node(self, node_id: Optional[str]):
        self.selected_node_id = node_id
        self._notify()

    def toggle_selected_node(self, node_id: str) -> bool:
        """Click handler: prompts and clicks while loading are ignored."""
        node = self.get_node(node_id)
        if node is None or node.type == "prompt" or self.is_loading:
            return False
        if self.selected_node_id == node_id:
            logger.debug(f"Deselecting node {node_id}")
            self.set_selected_node(None)
        else:
            logger.debug(f"Selecting node {node_id}")
            self.set_selected_node(node_id)
        return True

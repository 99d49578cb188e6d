import logging
from typing import Optional
import httpx
from pydantic import ValidationError
from forum.client.store import GraphStore
from forum.models.api import BrainstormResponse, BranchResponse

logger = logging.getLogger(__name__)

EMPTY_PROMPT_ERROR = "Please enter a topic to explore"
CREATE_ERROR = "Failed to generate personality perspectives. Please try again."
FOLLOW_UP_ERROR = "Failed to create follow-up. Please try again."
EXPAND_ERROR = "Failed to expand idea. Please try again."


class ForumApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"HTTP error! status: {status_code} ({message})")
        self.status_code = status_code
        self.message = message


class ForumClient:
    def __init__(self, base_url: str = "http://localhost:3000", client: Optional[httpx.AsyncClient] = None, timeout: float = 60.0):
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        response = await self.client.request(method, f"/api{path}", **kwargs)
        if response.is_error:
            try:
                message = response.json().get("error", response.reason_phrase)
            except ValueError:
                message = response.reason_phrase
            raise ForumApiError(response.status_code, message)
        try:
            return response.json()
        except ValueError:
            raise ForumApiError(response.status_code, "Response was not valid JSON")

    @staticmethod
    def _parse(model, data):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ForumApiError(200, f"Unexpected response shape: {e.error_count()} errors")

    async def create_session(self, prompt: str) -> BrainstormResponse:
        data = await self._request("POST", "/brainstorm", json={"prompt": prompt})
        return self._parse(BrainstormResponse, data)

    async def expand_node(self, session_id: str, node_id: str, follow_up: Optional[str] = None) -> BranchResponse:
        body = {"sessionId": session_id, "nodeId": node_id}
        if follow_up is not None:
            body["prompt"] = follow_up
        data = await self._request("POST", "/branch", json=body)
        return self._parse(BranchResponse, data)

    async def get_session(self, session_id: str) -> BrainstormResponse:
        data = await self._request("GET", f"/session/{session_id}")
        return self._parse(BrainstormResponse, data)

    async def get_stats(self) -> dict:
        return await self._request("GET", "/stats")

    async def health(self) -> dict:
        return await self._request("GET", "/health")

    async def submit_prompt(self, store: GraphStore, text: str) -> bool:
        """Starts a session, or follows up on the overlay node when it is open.

        The store only receives graph data on success; failures leave the
        graph untouched and set a user-facing error.
        """
        prompt = text.strip()
        if not prompt:
            store.set_error(EMPTY_PROMPT_ERROR)
            return False

        if store.is_overlay_visible and store.overlay_node is not None and store.session_id is not None:
            added = await self.branch_from(store, store.overlay_node.id, prompt)
            if added:
                store.hide_overlay()
            return added

        store.set_error(None)
        store.set_loading(True)
        try:
            result = await self.create_session(prompt)
            store.set_graph(result.nodes, result.edges, result.session_id)
            logger.info(f"Forum session created with {len(result.nodes)} nodes")
            return True
        except (ForumApiError, httpx.HTTPError) as e:
            logger.error(f"Failed to process request: {e}")
            store.set_error(CREATE_ERROR)
            return False
        finally:
            store.set_loading(False)

    async def branch_from(self, store: GraphStore, node_id: str, follow_up: Optional[str] = None) -> bool:
        node = store.get_node(node_id)
        if node is None or store.is_loading:
            return False
        # Clicking a prompt does nothing; follow-ups may hang off any node
        if node.type == "prompt" and follow_up is None:
            return False

        store.set_error(None)
        store.set_loading(True)
        try:
            if not store.session_id:
                raise ForumApiError(400, "No active session")
            result = await self.expand_node(store.session_id, node_id, follow_up)
            store.add_nodes(result.new_nodes, result.new_edges)
            logger.info(f"Added {len(result.new_nodes)} new nodes to {node_id}")
            return True
        except (ForumApiError, httpx.HTTPError) as e:
            logger.error(f"Failed to expand node: {e}")
            store.set_error(FOLLOW_UP_ERROR if follow_up else EXPAND_ERROR)
            return False
        finally:
            store.set_loading(False)

    async def close(self):
        await self.client.aclose()

"""HTTP client for the conversation backend."""

import logging
from typing import Any

import httpx

from config import API_BASE_URL

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Backend request failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ConversationApi:
    """Thin async wrapper over the ``/api`` endpoints.

    Args:
        base_url: API root, e.g. ``http://localhost:8000/api``
        timeout: Request timeout in seconds; agent replies dominate latency
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ConversationApi":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(f"Could not reach the server: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        if not response.is_success or body.get("success") is False:
            message = body.get("error") or f"Request failed with status {response.status_code}"
            raise ApiError(message, status_code=response.status_code)
        if not body:
            raise ApiError("Unexpected response from the server", status_code=response.status_code)

        return body

    async def send_message(self, message: str, thread_id: str | None = None) -> dict:
        """Send a message; omit ``thread_id`` to start a new conversation."""
        payload: dict[str, Any] = {"message": message}
        if thread_id:
            payload["threadId"] = thread_id
        return await self._request("POST", "/message", json=payload)

    async def start_conversation(self, message: str) -> dict:
        return await self._request("POST", "/conversations/start", json={"message": message})

    async def list_conversations(self, page: int = 1, limit: int = 20) -> dict:
        return await self._request("GET", "/conversations", params={"page": page, "limit": limit})

    async def get_conversation(self, thread_id: str) -> dict:
        return await self._request("GET", f"/conversations/{thread_id}")

    async def create_conversation(self, title: str | None = None) -> dict:
        return await self._request("POST", "/conversations", json={"title": title})

    async def search_conversations(self, query: str, page: int = 1, limit: int = 10) -> dict:
        return await self._request(
            "GET", "/conversations/search", params={"q": query, "page": page, "limit": limit}
        )

    async def update_conversation_title(self, thread_id: str, title: str) -> dict:
        return await self._request("PUT", f"/conversations/{thread_id}/title", json={"title": title})

    async def delete_conversation(self, thread_id: str) -> dict:
        return await self._request("DELETE", f"/conversations/{thread_id}")

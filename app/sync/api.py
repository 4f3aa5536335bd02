"""Async HTTP client for the group API."""

from typing import Any, Dict, List, Optional
import logging

import httpx

from app.config import settings
from app.modules.polls.schemas import PollResponse
from app.modules.statuses.schemas import StatusResponse, StatusTimeout
from app.modules.todos.schemas import TodoListResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A request failed; message is the server's `error` text when there was one."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class HaloApiClient:
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.token = token
        self._client = client or httpx.AsyncClient(base_url=base_url or settings.api_base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: Any = None, fallback: str = "Request failed.") -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiError(503, fallback)
        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = {}
        if response.is_error:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise ApiError(response.status_code, message if isinstance(message, str) else fallback)
        return payload

    async def list_statuses(self, group_id: str) -> List[StatusResponse]:
        payload = await self._request("GET", f"/groups/{group_id}/statuses", fallback="Unable to load statuses.")
        return [StatusResponse(**s) for s in payload.get("statuses", [])]

    async def put_status(
        self,
        group_id: str,
        message: str,
        emoji: Optional[str] = None,
        image: Optional[str] = None,
        expires_in: StatusTimeout = StatusTimeout.NEVER,
    ) -> StatusResponse:
        body = {"message": message, "emoji": emoji, "image": image, "expires_in": StatusTimeout(expires_in).value}
        payload = await self._request("POST", f"/groups/{group_id}/statuses", json=body, fallback="Unable to update status.")
        return StatusResponse(**payload["status"])

    async def list_polls(self, group_id: str) -> List[PollResponse]:
        payload = await self._request("GET", f"/groups/{group_id}/polls", fallback="Unable to load polls.")
        return [PollResponse(**p) for p in payload.get("polls", [])]

    async def create_poll(self, group_id: str, question: str, options: List[str]) -> PollResponse:
        payload = await self._request(
            "POST", f"/groups/{group_id}/polls",
            json={"question": question, "options": options},
            fallback="Unable to create poll.",
        )
        return PollResponse(**payload["poll"])

    async def vote(self, group_id: str, poll_id: str, option_id: Optional[str]) -> PollResponse:
        payload = await self._request(
            "POST", f"/groups/{group_id}/polls/{poll_id}/vote",
            json={"option_id": option_id},
            fallback="Unable to save vote.",
        )
        return PollResponse(**payload["poll"])

    async def delete_poll(self, group_id: str, poll_id: str) -> None:
        await self._request("DELETE", f"/groups/{group_id}/polls/{poll_id}", fallback="Unable to delete poll.")

    async def list_todo_lists(self, group_id: str) -> List[TodoListResponse]:
        payload = await self._request("GET", f"/groups/{group_id}/todos", fallback="Unable to load group lists.")
        return [TodoListResponse(**t) for t in payload.get("lists", [])]

    async def create_todo_list(self, group_id: str, title: str, items: List[str]) -> TodoListResponse:
        payload = await self._request(
            "POST", f"/groups/{group_id}/todos",
            json={"title": title, "items": items},
            fallback="Unable to create list.",
        )
        return TodoListResponse(**payload["list"])

    async def delete_todo_list(self, group_id: str, list_id: str) -> None:
        await self._request("DELETE", f"/groups/{group_id}/todos/{list_id}", fallback="Unable to delete list.")

    async def add_todo_item(self, group_id: str, list_id: str, label: str) -> TodoListResponse:
        payload = await self._request(
            "POST", f"/groups/{group_id}/todos/{list_id}/items",
            json={"label": label},
            fallback="Unable to add item.",
        )
        return TodoListResponse(**payload["list"])

    async def update_todo_item(
        self,
        group_id: str,
        list_id: str,
        item_id: str,
        completed: Optional[bool] = None,
        label: Optional[str] = None,
    ) -> TodoListResponse:
        body = {k: v for k, v in (("completed", completed), ("label", label)) if v is not None}
        payload = await self._request(
            "PATCH", f"/groups/{group_id}/todos/{list_id}/items/{item_id}",
            json=body,
            fallback="Unable to update item.",
        )
        return TodoListResponse(**payload["list"])

    async def remove_todo_item(self, group_id: str, list_id: str, item_id: str) -> TodoListResponse:
        payload = await self._request(
            "DELETE", f"/groups/{group_id}/todos/{list_id}/items/{item_id}",
            fallback="Unable to delete item.",
        )
        return TodoListResponse(**payload["list"])

    async def reorder_todo_items(self, group_id: str, list_id: str, item_ids: List[str]) -> TodoListResponse:
        payload = await self._request(
            "PATCH", f"/groups/{group_id}/todos/{list_id}/reorder",
            json={"item_ids": item_ids},
            fallback="Unable to reorder items.",
        )
        return TodoListResponse(**payload["list"])

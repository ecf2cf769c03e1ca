"""
Recrutas REST API client.
Thin async wrapper over the chat, notification, agent-task and session endpoints.
"""
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from recrutas_live.core.config import settings
from recrutas_live.core.exceptions import NotAuthenticated, RequestError, TransportError
from recrutas_live.schema.agent_task import AgentTask
from recrutas_live.schema.auth import SessionUser
from recrutas_live.schema.chat import ChatRoom, Message, MessageCreateBody
from recrutas_live.schema.notification import Notification, UnreadCount

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class ApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.token = token if token is not None else settings.API_TOKEN
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.REQUEST_TIMEOUT,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        try:
            r = await self._client.request(method, path, headers=self._headers(), json=json)
        except httpx.RequestError as e:
            logger.warning("%s %s request error: %s", method, path, e)
            raise TransportError(str(e) or "Request could not be sent.")

        if r.status_code == 401:
            raise NotAuthenticated(body=r.text)
        if r.status_code >= 400:
            logger.warning("%s %s failed %s: %s", method, path, r.status_code, r.text[:500] if r.text else "")
            msg = f"{method} {path} failed: {r.status_code}"
            if r.text:
                try:
                    err_json = r.json()
                    detail = err_json.get("message") if isinstance(err_json, dict) else None
                    msg = f"{msg} ({detail or str(err_json)[:300]})"
                except ValueError:
                    msg = f"{msg} ({r.text[:300]})"
            raise RequestError(msg, status_code=r.status_code, body=r.text)

        if not r.content:
            return None
        try:
            return r.json()
        except ValueError:
            logger.warning("%s %s returned non-JSON body: %s", method, path, r.text[:200])
            raise RequestError(
                f"{method} {path} returned an invalid JSON body.",
                status_code=r.status_code,
                body=r.text,
            )

    def _parse(self, path: str, model: Type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning("Unexpected %s payload from %s: %s", model.__name__, path, e)
            raise RequestError(
                f"{path} returned an unexpected {model.__name__} ({e.error_count()} invalid field(s)).",
                body=data,
            )

    def _parse_list(self, path: str, model: Type[M], data: Any) -> List[M]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise RequestError(f"{path} returned {type(data).__name__}, expected a list.", body=data)
        return [self._parse(path, model, item) for item in data]

    # --- Chat ---

    async def list_rooms(self) -> List[ChatRoom]:
        path = "/api/chat/rooms"
        return self._parse_list(path, ChatRoom, await self._request("GET", path))

    async def list_messages(self, room_id: int) -> List[Message]:
        """Messages in server order (by creation time). Never re-sorted here."""
        path = f"/api/chat/rooms/{room_id}/messages"
        return self._parse_list(path, Message, await self._request("GET", path))

    async def send_message(self, room_id: int, body: str) -> Message:
        path = f"/api/chat/rooms/{room_id}/messages"
        data = await self._request("POST", path, json=MessageCreateBody(message=body).model_dump())
        return self._parse(path, Message, data)

    # --- Notifications ---

    async def list_notifications(self) -> List[Notification]:
        path = "/api/notifications"
        return self._parse_list(path, Notification, await self._request("GET", path))

    async def unread_count(self) -> int:
        path = "/api/notifications/count"
        data = await self._request("GET", path)
        return self._parse(path, UnreadCount, data if data is not None else {}).count

    async def mark_read(self, notification_id: int) -> None:
        await self._request("POST", f"/api/notifications/{notification_id}/read")

    async def mark_all_read(self) -> None:
        await self._request("POST", "/api/notifications/mark-all-read")

    # --- Agent tasks ---

    async def list_agent_tasks(self) -> List[AgentTask]:
        path = "/api/agent-tasks"
        return self._parse_list(path, AgentTask, await self._request("GET", path))

    # --- Session ---

    async def current_user(self) -> SessionUser:
        path = "/api/auth/user"
        return self._parse(path, SessionUser, await self._request("GET", path))

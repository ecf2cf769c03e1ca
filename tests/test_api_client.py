"""
Tests for the REST client
"""
import httpx
import pytest

from recrutas_live.api.client import ApiClient
from recrutas_live.core.exceptions import NotAuthenticated, RequestError, TransportError
from recrutas_live.schema.agent_task import AgentTaskStatus


class TestApiClient:
    @pytest.mark.asyncio
    async def test_list_rooms_and_messages(self, api):
        rooms = await api.list_rooms()
        assert [r.id for r in rooms] == [42]
        assert rooms[0].other_participant("u1") == "u2"

        messages = await api.list_messages(42)
        assert [(m.id, m.room_id, m.sender_id, m.body) for m in messages] == [(1, 42, "u2", "hi there")]

    @pytest.mark.asyncio
    async def test_send_message_posts_message_field(self, api, backend):
        message = await api.send_message(42, "hello")
        assert message.body == "hello"
        assert backend.messages[42][-1]["message"] == "hello"

    @pytest.mark.asyncio
    async def test_unread_count_and_agent_tasks(self, api, backend):
        backend.unread_override = 4
        assert await api.unread_count() == 4

        tasks = await api.list_agent_tasks()
        assert tasks[0].status == AgentTaskStatus.PROCESSING
        assert not tasks[0].is_terminal

    @pytest.mark.asyncio
    async def test_error_message_from_body(self, api, backend):
        backend.count_status = 503
        with pytest.raises(RequestError) as exc_info:
            await api.unread_count()
        assert exc_info.value.status_code == 503
        assert "Count unavailable" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_json_success_body(self, api, backend):
        backend.count_html = "<!doctype html><html></html>"
        with pytest.raises(RequestError) as exc_info:
            await api.unread_count()
        assert exc_info.value.status_code == 200
        assert "invalid JSON" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unexpected_payload_shape(self, api, backend):
        backend.agent_tasks = [{"id": 1, "status": "processing"}]
        with pytest.raises(RequestError):
            await api.list_agent_tasks()

        backend.rooms = {"rooms": []}
        with pytest.raises(RequestError):
            await api.list_rooms()

    @pytest.mark.asyncio
    async def test_unauthorized(self, api, backend):
        backend.user = None
        with pytest.raises(NotAuthenticated):
            await api.current_user()

    @pytest.mark.asyncio
    async def test_bearer_token_sent(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"count": 2})

        async with ApiClient(base_url="http://testserver", token="abc", transport=httpx.MockTransport(handler)) as api:
            assert await api.unread_count() == 2
        assert seen["auth"] == "Bearer abc"

    @pytest.mark.asyncio
    async def test_network_error_is_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with ApiClient(base_url="http://testserver", transport=httpx.MockTransport(handler)) as api:
            with pytest.raises(TransportError):
                await api.list_rooms()

"""
End-to-end tests for LiveClient against the in-memory server
"""
from unittest.mock import Mock

import pytest

from recrutas_live.chat.send_path import SendStatus
from recrutas_live.client import LiveClient
from recrutas_live.core.exceptions import EmptyMessage, NotAuthenticated
from tests.fakes import message_json, notification_json, wait_until


async def connected(client):
    await wait_until(lambda: client.connection is not None and client.connection.is_open)
    return client.connection


class TestLiveClient:
    @pytest.mark.asyncio
    async def test_start_requires_session(self, live_client, backend, connector):
        backend.user = None
        with pytest.raises(NotAuthenticated):
            await live_client.start()
        assert connector.endpoints == []

    @pytest.mark.asyncio
    async def test_connects_with_user_id(self, live_client, connector):
        async with live_client:
            await connected(live_client)
            assert connector.endpoints == ["ws://testserver/ws?userId=u1"]
        assert live_client.disconnected

    @pytest.mark.asyncio
    async def test_join_and_send_produce_one_frame_each(self, live_client, connector):
        async with live_client:
            messages = await live_client.open_room(42)
            assert [m.body for m in messages] == ["hi there"]
            await connected(live_client)

            pending = await live_client.send(42, "hello")
            assert pending.status == SendStatus.DELIVERED

            frames = [f for f in connector.last.sent if f["type"] != "ping"]
            assert frames == [
                {"type": "join_chat", "roomId": 42, "userId": "u1"},
                {
                    "type": "chat_message",
                    "roomId": 42,
                    "senderId": "u1",
                    "message": "hello",
                    "clientId": pending.client_id,
                },
            ]

    @pytest.mark.asyncio
    async def test_empty_send_touches_nothing(self, live_client, backend, connector):
        async with live_client:
            await live_client.open_room(42)
            await connected(live_client)

            with pytest.raises(EmptyMessage):
                await live_client.send(42, "   ")
            assert connector.last.sent_of("chat_message") == []
            assert backend.calls_to("POST", "/api/chat/rooms/42/messages") == 0

    @pytest.mark.asyncio
    async def test_new_message_refreshes_open_room(self, live_client, backend, connector):
        updates = []
        async with live_client:
            await live_client.open_room(42, lambda room_id, messages: updates.append((room_id, len(messages))))
            await connected(live_client)
            await live_client.cache.drain()

            backend.messages[42].append(message_json(2, 42, "u2", "are you free tomorrow?"))
            connector.last.push({"type": "new_message", "roomId": 42})
            await wait_until(lambda: (42, 2) in updates)
            assert live_client.messages(42)[-1].body == "are you free tomorrow?"

    @pytest.mark.asyncio
    async def test_closed_room_stops_refreshing(self, live_client, backend, connector):
        async with live_client:
            await live_client.open_room(42)
            connection = await connected(live_client)
            await live_client.close_room(42)
            await live_client.cache.drain()
            assert connector.last.sent_of("leave_chat") == [{"type": "leave_chat", "roomId": 42, "userId": "u1"}]
            assert 42 not in connection.rooms

            before = backend.calls_to("GET", "/api/chat/rooms/42/messages")
            connector.last.push({"type": "new_message", "roomId": 42})
            connector.last.push({"type": "pong"})
            await wait_until(lambda: live_client.dispatcher.last_pong_at is not None)
            await live_client.cache.drain()
            assert backend.calls_to("GET", "/api/chat/rooms/42/messages") == before

    @pytest.mark.asyncio
    async def test_notification_push_toasts_and_updates_badge(self, api, connector, backend):
        on_toast = Mock()
        client = LiveClient(
            api=api,
            connector=connector,
            ws_url="ws://testserver/ws",
            on_toast=on_toast,
            supervisor_options={"initial_delay": 0.0, "jitter": 0.0, "heartbeat_interval": 60.0},
            poller_options={"interval": 3600.0},
        )
        async with client:
            await connected(client)
            await wait_until(lambda: backend.calls_to("GET", "/api/notifications/count") >= 1)
            assert client.notifications.count == 0

            backend.notifications.append(notification_json(5, priority="urgent"))
            connector.last.push({"type": "notification", "data": notification_json(5, priority="urgent")})
            await wait_until(lambda: client.notifications.count == 1)
            assert on_toast.call_args.args[0].id == 5

            await client.mark_read(5)
            await client.cache.drain()
            assert client.notifications.count == 0

    @pytest.mark.asyncio
    async def test_reconnect_rejoins_and_catches_up(self, live_client, backend, connector):
        async with live_client:
            await live_client.open_room(42)
            first = await connected(live_client)

            backend.messages[42].append(message_json(2, 42, "u2", "sent while you were away"))
            connector.last.drop()
            await wait_until(lambda: live_client.connection is not first and live_client.connection.is_open)

            assert connector.last.sent_of("join_chat") == [{"type": "join_chat", "roomId": 42, "userId": "u1"}]
            await wait_until(lambda: len(live_client.messages(42)) == 2)

    @pytest.mark.asyncio
    async def test_rooms_and_agent_tasks(self, live_client):
        async with live_client:
            rooms = await live_client.rooms()
            tasks = await live_client.agent_tasks()
        assert [r.id for r in rooms] == [42]
        assert [t.application_id for t in tasks] == [9]

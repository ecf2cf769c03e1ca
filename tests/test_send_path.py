"""
Tests for the acknowledged send path
"""
import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from recrutas_live.cache.query_cache import QueryCache
from recrutas_live.chat.send_path import OutboundSendPath, SendStatus
from recrutas_live.core.exceptions import DeliveryTimeout, EmptyMessage, MessageTooLong, NotConnected
from recrutas_live.schema.frames import DeliveredFrame


def acking_connection(path, message_id=7):
    """Connection whose server acknowledges every send on the next loop turn."""
    connection = Mock()

    async def send(frame):
        asyncio.get_running_loop().call_soon(
            path.on_delivered,
            DeliveredFrame(room_id=frame.room_id, client_id=frame.client_id, message_id=message_id),
        )

    connection.send = AsyncMock(side_effect=send)
    return connection


class TestValidation:
    @pytest.fixture
    def path(self):
        return OutboundSendPath(QueryCache(), ack_timeout=0.05)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["", "   ", "\n\t", None])
    async def test_empty_message_never_reaches_connection(self, path, body):
        connection = Mock()
        connection.send = AsyncMock()

        with pytest.raises(EmptyMessage):
            await path.send(connection, 42, "u1", body)
        connection.send.assert_not_awaited()
        assert path.pending_for(42) == []

    @pytest.mark.asyncio
    async def test_length_limit(self, path):
        connection = acking_connection(path)
        with pytest.raises(MessageTooLong):
            await path.send(connection, 42, "u1", "x" * 5001)
        connection.send.assert_not_awaited()

        pending = await path.send(connection, 42, "u1", "x" * 5000)
        assert pending.status == SendStatus.DELIVERED

    def test_body_is_trimmed(self, path):
        assert path.validate("  hello \n") == "hello"


class TestOutboundSendPath:
    @pytest.mark.asyncio
    async def test_delivered_on_ack(self):
        path = OutboundSendPath(QueryCache(), ack_timeout=1.0)
        connection = acking_connection(path, message_id=11)

        pending = await path.send(connection, 42, "u1", "hello")
        assert pending.status == SendStatus.DELIVERED
        assert pending.message_id == 11
        assert pending.attempts == 1
        frame = connection.send.await_args.args[0]
        assert (frame.room_id, frame.sender_id, frame.body, frame.client_id) == (42, "u1", "hello", pending.client_id)

    @pytest.mark.asyncio
    async def test_timeout_then_retry_with_same_client_id(self):
        path = OutboundSendPath(QueryCache(), ack_timeout=0.05)
        silent = Mock()
        silent.send = AsyncMock()

        pending = await path.send(silent, 42, "u1", "hello")
        assert pending.status == SendStatus.FAILED
        assert isinstance(pending.error, DeliveryTimeout)
        assert pending.can_retry
        assert path.pending_for(42) == [pending]

        client_id = pending.client_id
        await path.retry(acking_connection(path), pending)
        assert pending.status == SendStatus.DELIVERED
        assert pending.client_id == client_id
        assert pending.attempts == 2
        assert path.pending_for(42) == []

    @pytest.mark.asyncio
    async def test_late_ack_marks_delivered(self):
        path = OutboundSendPath(QueryCache(), ack_timeout=0.05)
        silent = Mock()
        silent.send = AsyncMock()
        pending = await path.send(silent, 42, "u1", "hello")
        assert pending.status == SendStatus.FAILED

        path.on_delivered(DeliveredFrame(room_id=42, client_id=pending.client_id, message_id=3))
        assert pending.status == SendStatus.DELIVERED
        assert pending.message_id == 3

    @pytest.mark.asyncio
    async def test_discard_failed_message(self):
        path = OutboundSendPath(QueryCache(), ack_timeout=0.05)
        silent = Mock()
        silent.send = AsyncMock()
        pending = await path.send(silent, 42, "u1", "hello")
        assert path.pending_for(42) == [pending]

        assert path.discard(pending)
        assert path.pending_for(42) == []
        assert not path.discard(pending)

        path.on_delivered(DeliveredFrame(room_id=42, client_id=pending.client_id, message_id=3))
        assert pending.status == SendStatus.FAILED

    @pytest.mark.asyncio
    async def test_no_connection_fails_without_raising(self):
        path = OutboundSendPath(QueryCache(), ack_timeout=0.05)
        pending = await path.send(None, 42, "u1", "hello")
        assert pending.status == SendStatus.FAILED
        assert isinstance(pending.error, NotConnected)

    @pytest.mark.asyncio
    async def test_composer_cleared_only_on_delivery(self):
        path = OutboundSendPath(QueryCache(), ack_timeout=0.05)
        path.composer(42).text = "hello"
        silent = Mock()
        silent.send = AsyncMock()

        pending = await path.send_composed(silent, 42, "u1")
        assert pending.status == SendStatus.FAILED
        assert path.composer(42).text == "hello"

        await path.retry(acking_connection(path), pending)
        assert path.composer(42).text == ""

    @pytest.mark.asyncio
    async def test_send_via_api(self, api, backend):
        path = OutboundSendPath(QueryCache(), api=api)
        message = await path.send_via_api(42, "  over rest  ")
        assert message.body == "over rest"
        assert message.room_id == 42
        assert backend.messages[42][-1]["message"] == "over rest"

        with pytest.raises(EmptyMessage):
            await path.send_via_api(42, " ")
        assert backend.calls_to("POST", "/api/chat/rooms/42/messages") == 1

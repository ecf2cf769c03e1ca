"""
Tests for the WebSocket frame codec
"""
import json

import pytest

from recrutas_live.core.exceptions import FrameDecodeError
from recrutas_live.schema.frames import (
    DeliveredFrame,
    JoinFrame,
    LeaveFrame,
    NewMessageFrame,
    NotificationFrame,
    PingFrame,
    PongFrame,
    SendFrame,
    decode_frame,
    encode_frame,
)
from recrutas_live.schema.notification import Priority


class TestEncodeFrame:
    def test_join(self):
        wire = json.loads(encode_frame(JoinFrame(room_id=42, user_id="u1")))
        assert wire == {"type": "join_chat", "roomId": 42, "userId": "u1"}

    def test_leave(self):
        wire = json.loads(encode_frame(LeaveFrame(room_id=42, user_id="u1")))
        assert wire == {"type": "leave_chat", "roomId": 42, "userId": "u1"}

    def test_send_uses_message_field(self):
        frame = SendFrame(room_id=42, sender_id="u1", body="hello", client_id="c-1")
        wire = json.loads(encode_frame(frame))
        assert wire == {
            "type": "chat_message",
            "roomId": 42,
            "senderId": "u1",
            "message": "hello",
            "clientId": "c-1",
        }

    def test_ping(self):
        assert json.loads(encode_frame(PingFrame())) == {"type": "ping"}


class TestDecodeFrame:
    def test_new_message_inline(self):
        frame = decode_frame('{"type": "new_message", "roomId": 42}')
        assert isinstance(frame, NewMessageFrame)
        assert frame.room_id == 42

    def test_new_message_nested_chat_room_id(self):
        frame = decode_frame(json.dumps({"type": "new_message", "data": {"chatRoomId": 7, "message": "x"}}))
        assert isinstance(frame, NewMessageFrame)
        assert frame.room_id == 7

    def test_delivered(self):
        frame = decode_frame(json.dumps({
            "type": "message_delivered", "roomId": 42, "clientId": "c-1", "messageId": 9,
        }))
        assert isinstance(frame, DeliveredFrame)
        assert frame.client_id == "c-1"
        assert frame.message_id == 9

    def test_notification_from_data(self):
        frame = decode_frame(json.dumps({
            "type": "notification",
            "data": {"id": 3, "type": "interview_scheduled", "title": "Interview", "message": "Tomorrow", "priority": "urgent"},
        }))
        assert isinstance(frame, NotificationFrame)
        assert frame.notification.id == 3
        assert frame.notification.priority == Priority.URGENT
        assert frame.notification.wants_toast

    def test_pong(self):
        assert isinstance(decode_frame('{"type": "pong"}'), PongFrame)

    def test_unknown_type_is_ignored(self):
        assert decode_frame('{"type": "typing_indicator", "roomId": 42}') is None

    @pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"roomId": 42}', '{"type": 5}'])
    def test_malformed_raises(self, text):
        with pytest.raises(FrameDecodeError):
            decode_frame(text)

    def test_known_type_missing_fields_raises(self):
        with pytest.raises(FrameDecodeError):
            decode_frame('{"type": "message_delivered", "roomId": 42}')

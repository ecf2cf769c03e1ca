"""
WebSocket frame protocol.

Frames are one tagged union keyed by `kind`. Each kind maps to exactly one
wire `type`, so `chat_message` only ever means an outbound send.
"""
import json
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from recrutas_live.core.exceptions import FrameDecodeError
from recrutas_live.schema.notification import Notification


class _Frame(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


# --- Outbound ---

class JoinFrame(_Frame):
    kind: Literal["Join"] = "Join"
    room_id: int
    user_id: str


class LeaveFrame(_Frame):
    kind: Literal["Leave"] = "Leave"
    room_id: int
    user_id: str


class SendFrame(_Frame):
    kind: Literal["Send"] = "Send"
    room_id: int
    sender_id: str
    body: str = Field(..., alias="message")
    client_id: str


class PingFrame(_Frame):
    kind: Literal["Ping"] = "Ping"


# --- Inbound ---

class NewMessageFrame(_Frame):
    """Cue to refetch a room's messages. Carries no message payload."""
    kind: Literal["NewMessage"] = "NewMessage"
    room_id: int


class DeliveredFrame(_Frame):
    """Server acknowledgment of a persisted send, echoing the client id."""
    kind: Literal["Delivered"] = "Delivered"
    room_id: int
    client_id: str
    message_id: Optional[int] = None


class NotificationFrame(_Frame):
    kind: Literal["Notification"] = "Notification"
    notification: Notification


class PongFrame(_Frame):
    kind: Literal["Pong"] = "Pong"


OutboundFrame = Union[JoinFrame, LeaveFrame, SendFrame, PingFrame]
InboundFrame = Annotated[
    Union[NewMessageFrame, DeliveredFrame, NotificationFrame, PongFrame],
    Field(discriminator="kind"),
]

OUTBOUND_WIRE_TYPES: Dict[str, str] = {
    "Join": "join_chat",
    "Leave": "leave_chat",
    "Send": "chat_message",
    "Ping": "ping",
}

INBOUND_KINDS: Dict[str, str] = {
    "new_message": "NewMessage",
    "message_delivered": "Delivered",
    "notification": "Notification",
    "pong": "Pong",
}

_inbound_adapter: TypeAdapter = TypeAdapter(InboundFrame)


def encode_frame(frame: OutboundFrame) -> str:
    """Serialize an outbound frame as wire JSON: `type` plus inline camelCase payload."""
    wire: Dict[str, Any] = {"type": OUTBOUND_WIRE_TYPES[frame.kind]}
    wire.update(frame.model_dump(by_alias=True, exclude={"kind"}, exclude_none=True))
    return json.dumps(wire)


def decode_frame(text: Union[str, bytes]) -> Optional[Union[NewMessageFrame, DeliveredFrame, NotificationFrame, PongFrame]]:
    """
    Parse one inbound frame.

    Returns None for well-formed frames of a type this client does not know.

    Raises:
        FrameDecodeError: text is not a JSON object with a string `type`,
            or a known type is missing required fields
    """
    try:
        obj = json.loads(text)
    except (TypeError, ValueError):
        raise FrameDecodeError()
    if not isinstance(obj, dict) or not isinstance(obj.get("type"), str):
        raise FrameDecodeError()

    kind = INBOUND_KINDS.get(obj["type"])
    if kind is None:
        return None

    data = obj.get("data")
    if kind == "Notification":
        payload: Dict[str, Any] = {"notification": data if isinstance(data, dict) else obj.get("notification")}
    else:
        payload = {k: v for k, v in obj.items() if k not in ("type", "data")}
        if isinstance(data, dict):
            payload.update(data)
        # Some surfaces nest the room as chatRoomId
        if "roomId" not in payload and "chatRoomId" in payload:
            payload["roomId"] = payload.pop("chatRoomId")
    payload["kind"] = kind

    try:
        return _inbound_adapter.validate_python(payload)
    except ValidationError as e:
        raise FrameDecodeError(f"Malformed {obj['type']} frame: {e.error_count()} invalid field(s).")

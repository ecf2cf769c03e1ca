"""
Client exceptions.
Transport errors surface as connection status, request errors as toasts,
validation errors are caught before anything leaves the client.
"""
from typing import Any, Optional


class LiveClientError(Exception):
    """Base error. Carries a stable code and a user-facing message."""

    code = "CLIENT_ERROR"
    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)


# --- Transport ---

class TransportError(LiveClientError):
    code = "TRANSPORT_ERROR"
    default_message = "Connection to the server failed."


class NotConnected(TransportError):
    code = "NOT_CONNECTED"
    default_message = "Connection is not open."


class FrameDecodeError(LiveClientError):
    code = "INVALID_FRAME"
    default_message = "Frame is not a JSON object with a type."


# --- Requests ---

class RequestError(LiveClientError):
    code = "REQUEST_FAILED"
    default_message = "Request failed."

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[Any] = None,
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class NotAuthenticated(RequestError):
    code = "NOT_AUTHENTICATED"
    default_message = "Not authenticated."

    def __init__(self, message: Optional[str] = None, body: Optional[Any] = None):
        super().__init__(message, status_code=401, body=body)


# --- Validation ---

class ValidationError(LiveClientError):
    code = "VALIDATION_ERROR"
    default_message = "Invalid input."


class EmptyMessage(ValidationError):
    code = "EMPTY_CONTENT"
    default_message = "Message content cannot be empty or whitespace only."


class MessageTooLong(ValidationError):
    code = "MESSAGE_TOO_LONG"

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Message too long. Maximum {limit} characters allowed.")


# --- Delivery ---

class DeliveryTimeout(LiveClientError):
    code = "DELIVERY_TIMEOUT"
    default_message = "Message was not confirmed by the server."

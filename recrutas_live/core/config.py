"""
Client settings.
Values come from the environment or a local .env file.
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Recrutas API (same origin serves REST and the /ws endpoint)
    API_BASE_URL: str = "http://localhost:5000"
    WS_PATH: str = "/ws"
    API_TOKEN: Optional[str] = None
    REQUEST_TIMEOUT: float = 30.0

    # Notifications
    NOTIFICATION_POLL_INTERVAL: float = 30.0  # seconds between unread-count fetches
    UNREAD_BADGE_CAP: int = 99

    # Reconnect supervisor
    RECONNECT_INITIAL_DELAY: float = 1.0
    RECONNECT_MAX_DELAY: float = 30.0
    RECONNECT_MULTIPLIER: float = 2.0
    RECONNECT_JITTER: float = 0.2  # +/- fraction of the computed delay
    HEARTBEAT_INTERVAL: float = 30.0

    # Outbound messages
    SEND_ACK_TIMEOUT: float = 10.0
    MAX_MESSAGE_LENGTH: int = 5000

    # Optional
    DEBUG: bool = False
    PROJECT_NAME: str = "Recrutas Live"

    @property
    def ws_url(self) -> str:
        base = self.API_BASE_URL.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return f"{base}/{self.WS_PATH.lstrip('/')}"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()

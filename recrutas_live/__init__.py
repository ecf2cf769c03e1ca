from recrutas_live.client import LiveClient
from recrutas_live.core.config import settings

__all__ = ["LiveClient", "settings"]

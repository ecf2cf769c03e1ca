from recrutas_live.api.client import ApiClient

__all__ = ["ApiClient"]

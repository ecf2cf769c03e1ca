from recrutas_live.notifications.poller import NotificationPoller
from recrutas_live.notifications.read_state import ReadStateReconciler

__all__ = ["NotificationPoller", "ReadStateReconciler"]

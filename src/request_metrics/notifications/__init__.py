"""Notification bus and the events it publishes."""

from request_metrics.notifications.bus import Listener, NotificationBus
from request_metrics.notifications.events import Event, FailureInfo
from request_metrics.notifications.listeners import log_event

__all__ = [
    "Event",
    "FailureInfo",
    "Listener",
    "NotificationBus",
    "log_event",
]

"""External notifications fired when the whistle target is reached."""

from .dispatcher import (
    DispatchReport,
    HttpNotificationPort,
    NotificationDispatcher,
    NotificationOutcome,
    NotificationPort,
    NotificationTarget,
    targets_from_config,
)

__all__ = [
    "DispatchReport",
    "HttpNotificationPort",
    "NotificationDispatcher",
    "NotificationOutcome",
    "NotificationPort",
    "NotificationTarget",
    "targets_from_config",
]

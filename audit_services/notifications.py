"""LoggingNotificationSink -- notifications delivered to the structured log."""

from __future__ import annotations

import logging

from audit_kernel.domain.types import Notification, NotificationSeverity
from audit_kernel.logging_config import get_logger

logger = get_logger("services.notifications")

_LEVELS = {
    NotificationSeverity.INFO: logging.INFO,
    NotificationSeverity.WARNING: logging.WARNING,
    NotificationSeverity.ERROR: logging.ERROR,
}


class LoggingNotificationSink:
    """NotificationSink for deployments without an operator UI channel."""

    def notify(self, notification: Notification) -> None:
        logger.log(
            _LEVELS[notification.severity],
            "audit_notification",
            extra={
                "title": notification.title,
                "description": notification.description,
                "severity": notification.severity.value,
                "notified_entry_id": notification.entry_id,
                **dict(notification.details),
            },
        )

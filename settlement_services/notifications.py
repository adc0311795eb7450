"""
settlement_services.notifications -- Fire-and-forget lifecycle notifications.

Responsibility:
    Declares the notification dispatcher contract and the event names the
    engine emits.  ``safe_dispatch`` is the only way services send a
    notification: a dispatcher failure is logged and discarded so it can
    never fail the lifecycle operation that triggered it.

Architecture position:
    Services layer.  No database access.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Protocol, runtime_checkable
from uuid import UUID

from settlement_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


class NotificationEvent(str, Enum):
    MILESTONE_SUBMITTED = "milestone_submitted"
    MILESTONE_APPROVED = "milestone_approved"
    MILESTONE_REJECTED = "milestone_rejected"
    PAYMENT_RECEIVED = "payment_received"


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Delivers a notification.  Delivery is not awaited or confirmed."""

    def dispatch(
        self,
        event_type: str,
        recipient_id: UUID,
        payload: Mapping[str, Any],
    ) -> None:
        ...


class LoggingNotificationDispatcher:
    """Default dispatcher: records each notification as a structured log line."""

    def dispatch(
        self,
        event_type: str,
        recipient_id: UUID,
        payload: Mapping[str, Any],
    ) -> None:
        logger.info(
            "notification_dispatched",
            extra={
                "event_type": event_type,
                "recipient_id": str(recipient_id),
                "payload": dict(payload),
            },
        )


def safe_dispatch(
    dispatcher: NotificationDispatcher | None,
    event: NotificationEvent,
    recipient_id: UUID,
    payload: Mapping[str, Any],
) -> bool:
    """
    Send a notification, swallowing and logging any dispatcher error.

    Returns:
        True if the dispatcher accepted the notification.
    """
    if dispatcher is None:
        return False
    try:
        dispatcher.dispatch(event.value, recipient_id, payload)
    except Exception:
        logger.warning(
            "notification_dispatch_failed",
            extra={"event_type": event.value, "recipient_id": str(recipient_id)},
            exc_info=True,
        )
        return False
    return True

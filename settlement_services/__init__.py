"""
settlement_services -- Package init and public API.

Responsibility:
    Stateful services that sit between the lifecycle modules and the
    outside world: the payment processor and the transfer and notification
    collaborators it drives.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

        settlement_services/ -> settlement_engines/  (allowed)
        settlement_services/ -> settlement_kernel/   (allowed)
        settlement_engines/  -> settlement_services/ (FORBIDDEN)
        settlement_kernel/   -> settlement_services/ (FORBIDDEN)
"""

from settlement_kernel.logging_config import get_logger

logger = get_logger("services")

from settlement_services.notifications import (  # noqa: E402
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    NotificationEvent,
    safe_dispatch,
)
from settlement_services.payment_processor import (  # noqa: E402
    PAYMENT_WORKFLOW,
    PaymentInstruction,
    PaymentProcessor,
)
from settlement_services.transfer import (  # noqa: E402
    TimeoutTransferGateway,
    TransferError,
    TransferReceipt,
    TransferService,
    TransferTimeoutError,
)

__all__ = [
    "PaymentProcessor",
    "PaymentInstruction",
    "PAYMENT_WORKFLOW",
    "TransferService",
    "TransferReceipt",
    "TransferError",
    "TransferTimeoutError",
    "TimeoutTransferGateway",
    "NotificationDispatcher",
    "NotificationEvent",
    "LoggingNotificationDispatcher",
    "safe_dispatch",
]

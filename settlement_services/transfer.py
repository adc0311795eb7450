"""
settlement_services.transfer -- Outbound payout transfers.

Responsibility:
    Declares the contract of the external payout processor
    (``TransferService``) and wraps it in ``TimeoutTransferGateway``, which
    imposes a hard timeout on every call and normalises every failure to
    ``TransferError``.

Architecture position:
    Services layer.  The only code in the engine that talks to the payout
    processor.  No database access.

Invariants enforced:
    - A transfer call never blocks its caller longer than the configured
      timeout.  A timed out call is reported as ``TransferTimeoutError``;
      the worker is a daemon thread that is abandoned, never joined, so a
      processor that never answers cannot hold up interpreter exit.
    - Callers only ever see ``TransferError`` (or a subclass) on failure.

Failure modes:
    - TransferError: processor declined, destination invalid, network error.
    - TransferTimeoutError: processor did not answer within the timeout.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Protocol, runtime_checkable

from settlement_kernel.logging_config import get_logger

logger = get_logger("services.transfer")


class TransferError(Exception):
    """The payout processor refused or failed a transfer."""

    code: str = "TRANSFER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TransferTimeoutError(TransferError):
    """The payout processor did not answer in time."""

    code: str = "TRANSFER_TIMEOUT"

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Transfer timed out after {timeout_seconds:g} seconds")


@dataclass(frozen=True)
class TransferReceipt:
    """Acknowledgement from the payout processor."""

    transfer_id: str


@runtime_checkable
class TransferService(Protocol):
    """Moves ``amount`` to ``destination_account_id`` at the payout processor."""

    def transfer_to_payee(
        self,
        amount: Decimal,
        destination_account_id: str,
        metadata: Mapping[str, str],
    ) -> TransferReceipt:
        ...


class TimeoutTransferGateway:
    """
    Runs each transfer on a daemon thread and waits at most ``timeout_seconds``.

    Contract:
        ``transfer_to_payee`` has the same signature as ``TransferService``
        and either returns a ``TransferReceipt`` or raises ``TransferError``.
    """

    def __init__(self, service: TransferService, timeout_seconds: float = 30.0):
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive: {timeout_seconds}")
        self._service = service
        self._timeout_seconds = timeout_seconds

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def transfer_to_payee(
        self,
        amount: Decimal,
        destination_account_id: str,
        metadata: Mapping[str, str],
    ) -> TransferReceipt:
        future: Future[TransferReceipt] = Future()
        worker = threading.Thread(
            target=self._run,
            args=(future, amount, destination_account_id, dict(metadata)),
            name="transfer",
            daemon=True,
        )
        t0 = time.monotonic()
        worker.start()
        try:
            receipt = future.result(timeout=self._timeout_seconds)
        except FutureTimeoutError as exc:
            logger.error(
                "transfer_timed_out",
                extra={
                    "timeout_seconds": self._timeout_seconds,
                    "destination_account_id": destination_account_id,
                },
            )
            raise TransferTimeoutError(self._timeout_seconds) from exc
        except TransferError:
            raise
        except Exception as exc:
            logger.error(
                "transfer_raised_unexpected_error",
                extra={"error_type": type(exc).__name__},
                exc_info=True,
            )
            raise TransferError(str(exc) or type(exc).__name__) from exc

        if not getattr(receipt, "transfer_id", None):
            raise TransferError("Payout processor returned no transfer id")

        logger.info(
            "transfer_completed",
            extra={
                "transfer_id": receipt.transfer_id,
                "amount": str(amount),
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
        return receipt

    def _run(
        self,
        future: Future[TransferReceipt],
        amount: Decimal,
        destination_account_id: str,
        metadata: dict[str, str],
    ) -> None:
        """Worker body: hand the processor's answer, or its error, to ``future``."""
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(
                self._service.transfer_to_payee(amount, destination_account_id, metadata)
            )
        except Exception as exc:
            future.set_exception(exc)


def describe_transfer(metadata: Mapping[str, Any]) -> dict[str, str]:
    """Flatten metadata to the string map payout processors accept."""
    return {str(k): "" if v is None else str(v) for k, v in metadata.items()}

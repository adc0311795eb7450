"""
Tests for the timeout transfer gateway.

Covers:
- Successful transfers return the processor's receipt
- Declines, unexpected errors and missing transfer ids become TransferError
- Hung processors time out without blocking the caller or interpreter exit
"""

import threading
import time
from decimal import Decimal

import pytest

from settlement_services.transfer import (
    TimeoutTransferGateway,
    TransferError,
    TransferReceipt,
    TransferService,
    TransferTimeoutError,
    describe_transfer,
)


def test_fake_satisfies_protocol(transfers):
    assert isinstance(transfers, TransferService)


class TestTimeoutTransferGateway:

    def test_success(self, transfers):
        service = transfers
        receipt = TimeoutTransferGateway(service).transfer_to_payee(
            Decimal("454.80"), "acct_1", {"paymentId": "p1"},
        )
        assert receipt == TransferReceipt("tr_0001")
        assert service.calls[0]["amount"] == Decimal("454.80")
        assert service.calls[0]["destination"] == "acct_1"
        assert service.calls[0]["metadata"] == {"paymentId": "p1"}

    def test_decline_passes_through(self, transfers):
        transfers.mode = "fail"
        gateway = TimeoutTransferGateway(transfers)
        with pytest.raises(TransferError, match="card_declined"):
            gateway.transfer_to_payee(Decimal("1"), "acct_1", {})

    def test_unexpected_error_wrapped(self, transfers):
        transfers.mode = "crash"
        gateway = TimeoutTransferGateway(transfers)
        with pytest.raises(TransferError) as exc_info:
            gateway.transfer_to_payee(Decimal("1"), "acct_1", {})
        assert exc_info.value.message == "connection reset"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_timeout(self, transfers):
        service = transfers
        service.mode = "hang"
        gateway = TimeoutTransferGateway(service, timeout_seconds=0.05)
        t0 = time.monotonic()
        try:
            with pytest.raises(TransferTimeoutError) as exc_info:
                gateway.transfer_to_payee(Decimal("1"), "acct_1", {})
        finally:
            service.release.set()
        assert time.monotonic() - t0 < 2
        assert exc_info.value.timeout_seconds == 0.05
        assert exc_info.value.code == "TRANSFER_TIMEOUT"

    def test_abandoned_worker_is_daemon(self, transfers):
        transfers.mode = "hang"
        gateway = TimeoutTransferGateway(transfers, timeout_seconds=0.05)
        try:
            with pytest.raises(TransferTimeoutError):
                gateway.transfer_to_payee(Decimal("1"), "acct_1", {})
            stuck = [t for t in threading.enumerate() if t.name == "transfer" and t.is_alive()]
            assert stuck
            assert all(t.daemon for t in stuck)
        finally:
            transfers.release.set()

    def test_missing_transfer_id(self):
        class NoId:
            def transfer_to_payee(self, amount, destination_account_id, metadata):
                return TransferReceipt(transfer_id="")

        with pytest.raises(TransferError, match="no transfer id"):
            TimeoutTransferGateway(NoId()).transfer_to_payee(Decimal("1"), "acct_1", {})

    @pytest.mark.parametrize("timeout", [0, -1])
    def test_timeout_must_be_positive(self, transfers, timeout):
        with pytest.raises(ValueError):
            TimeoutTransferGateway(transfers, timeout_seconds=timeout)


def test_describe_transfer_flattens_values():
    assert describe_transfer({"a": 1, "b": None, "c": Decimal("8.00")}) == {
        "a": "1", "b": "", "c": "8.00",
    }

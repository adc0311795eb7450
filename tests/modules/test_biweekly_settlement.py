"""
Tests for biweekly settlement of hourly contracts.

Covers:
- Period summary: only APPROVED entries inside the inclusive bounds count
- Processing: payment amounts, period metadata, description
- Guards: fixed price contracts, empty periods, missing payout account,
  inverted bounds, duplicate periods (and retry after failure)
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from settlement_config.schema import SettlementPolicy
from settlement_engines.fees import ProvincialFeeCalculator
from settlement_kernel.domain.review import Approve, Reject
from settlement_kernel.domain.statuses import ActorRole, PaymentStatus, ProjectType
from settlement_kernel.exceptions import (
    DuplicateSettlementError,
    NoApprovedHoursError,
    NotFoundError,
    PayoutAccountMissingError,
    ProjectTypeMismatchError,
    TransferFailureError,
    ValidationError,
)
from settlement_kernel.models.payment import Payment
from settlement_modules.settlement.service import SettlementService
from settlement_services.payment_processor import PaymentProcessor

START = date(2024, 1, 1)
END = date(2024, 1, 14)


@pytest.fixture
def log_hours(fulfillment, hourly_contract, talent, business):
    """Log an entry and optionally review it.  Returns the TimeEntryDTO."""

    def _log(entry_date: date, hours: str, decision=Approve(), contract=None):
        target = contract or hourly_contract
        entry = fulfillment.add_time_entry(target.id, talent.id, entry_date, hours, f"Work {entry_date}")
        if decision is not None:
            entry = fulfillment.review_time_entry(entry.id, business.id, decision)
        return entry

    return _log


def _payments(session) -> int:
    return session.scalar(select(func.count()).select_from(Payment))


class TestSummarizePeriod:

    def test_counts_approved_entries_in_bounds(self, settlement, hourly_contract, business, log_hours):
        first = log_hours(date(2024, 1, 2), "5")
        last = log_hours(END, "3")
        log_hours(date(2024, 1, 3), "4", decision=None)
        log_hours(date(2024, 1, 4), "2", decision=Reject("duplicate"))
        log_hours(date(2023, 12, 31), "6")
        log_hours(date(2024, 1, 15), "7")

        summary = settlement.summarize_period(hourly_contract.id, business.id, START, END)

        assert [e.id for e in summary.time_entries] == [first.id, last.id]
        assert summary.total_hours == Decimal("8.00")
        assert summary.hourly_rate == Decimal("40.00")
        assert summary.gross_amount == Decimal("320.00")
        assert summary.base_fee == Decimal("25.60")
        assert summary.tax_amount == Decimal("3.33")
        assert summary.platform_fee == Decimal("28.93")
        assert summary.net_amount == Decimal("291.07")
        assert summary.can_process is True
        assert summary.description == "Biweekly payment for 8 hours"

    def test_single_day_period(self, settlement, hourly_contract, business, log_hours):
        log_hours(START, "1.5")
        summary = settlement.summarize_period(hourly_contract.id, business.id, START, START)
        assert summary.total_hours == Decimal("1.50")
        assert summary.description == "Biweekly payment for 1.5 hours"

    def test_empty_period(self, settlement, hourly_contract, business):
        summary = settlement.summarize_period(hourly_contract.id, business.id, START, END)
        assert summary.time_entries == ()
        assert summary.total_hours == Decimal("0")
        assert summary.can_process is False

    def test_unset_rate(self, settlement, make_contract, business, log_hours):
        contract = make_contract(ProjectType.HOURLY, hourly_rate=None)
        log_hours(date(2024, 1, 2), "5", contract=contract)
        summary = settlement.summarize_period(contract.id, business.id, START, END)
        assert summary.total_hours == Decimal("5.00")
        assert summary.gross_amount == Decimal("0.00")
        assert summary.net_amount == Decimal("0.00")

    def test_fixed_price_rejected(self, settlement, fixed_contract, business):
        with pytest.raises(ProjectTypeMismatchError, match="Biweekly payments only apply to hourly projects"):
            settlement.summarize_period(fixed_contract.id, business.id, START, END)

    def test_inverted_bounds(self, settlement, hourly_contract, business):
        with pytest.raises(ValidationError):
            settlement.summarize_period(hourly_contract.id, business.id, END, START)

    def test_talent_cannot_summarize(self, settlement, hourly_contract, talent):
        with pytest.raises(NotFoundError):
            settlement.summarize_period(hourly_contract.id, talent.id, START, END)

    def test_display_dict(self, settlement, hourly_contract, business, log_hours):
        log_hours(date(2024, 1, 2), "5")
        data = settlement.summarize_period(hourly_contract.id, business.id, START, END).to_display_dict()
        assert data["gross_amount"] == 200.0
        assert data["period_start"] == "2024-01-01"
        assert len(data["time_entries"]) == 1


class TestProcessPeriod:

    def test_pays_period(
        self, settlement, hourly_contract, business, talent, log_hours, transfers, notifier, clock,
    ):
        log_hours(date(2024, 1, 2), "5")
        log_hours(date(2024, 1, 3), "3")

        payment = settlement.process_period(hourly_contract.id, business.id, START, END)

        assert payment.status is PaymentStatus.COMPLETED
        assert payment.milestone_id is None
        assert payment.amount == Decimal("320.00")
        assert payment.platform_fee == Decimal("28.93")
        assert payment.net_amount == Decimal("291.07")
        assert payment.period_start == START
        assert payment.period_end == END
        assert payment.total_hours == Decimal("8.00")
        assert payment.transfer_id == "tr_0001"
        assert payment.processed_at == clock.now()
        assert payment.payee_id == talent.id

        metadata = transfers.calls[0]["metadata"]
        assert metadata["periodStart"] == "2024-01-01"
        assert metadata["periodEnd"] == "2024-01-14"
        assert metadata["totalHours"] == "8"
        assert metadata["description"] == "Biweekly payment for 8 hours"
        assert "milestoneId" not in metadata
        assert notifier.sent[-1][0] == "payment_received"

    def test_no_approved_hours(self, settlement, hourly_contract, business, log_hours, session):
        log_hours(date(2024, 1, 2), "5", decision=None)
        with pytest.raises(NoApprovedHoursError) as exc_info:
            settlement.process_period(hourly_contract.id, business.id, START, END)
        assert str(exc_info.value) == "No approved hours to process for period 2024-01-01 to 2024-01-14"
        assert _payments(session) == 0

    def test_missing_payout_account(
        self, settlement, make_user, make_contract, business, session, fulfillment, transfers,
    ):
        unpaid = make_user(ActorRole.TALENT, payout_account_id=None)
        contract = make_contract(ProjectType.HOURLY, hourly_rate=Decimal("40"), talent_user=unpaid)
        entry = fulfillment.add_time_entry(contract.id, unpaid.id, date(2024, 1, 2), 5, "Work")
        fulfillment.review_time_entry(entry.id, business.id, Approve())

        with pytest.raises(PayoutAccountMissingError):
            settlement.process_period(contract.id, business.id, START, END)
        assert _payments(session) == 0
        assert transfers.calls == []

    def test_duplicate_period_refused(self, settlement, hourly_contract, business, log_hours, transfers):
        log_hours(date(2024, 1, 2), "5")
        first = settlement.process_period(hourly_contract.id, business.id, START, END)

        with pytest.raises(DuplicateSettlementError) as exc_info:
            settlement.process_period(hourly_contract.id, business.id, START, END)
        assert exc_info.value.payment_id == str(first.id)
        assert len(transfers.calls) == 1

    def test_failed_period_can_be_retried(self, settlement, hourly_contract, business, log_hours, transfers, session):
        log_hours(date(2024, 1, 2), "5")
        transfers.mode = "fail"
        with pytest.raises(TransferFailureError, match="Failed to transfer biweekly payment: card_declined"):
            settlement.process_period(hourly_contract.id, business.id, START, END)

        transfers.mode = "succeed"
        retry = settlement.process_period(hourly_contract.id, business.id, START, END)
        assert retry.status is PaymentStatus.COMPLETED

        statuses = sorted(session.scalars(select(Payment.status)))
        assert statuses == ["COMPLETED", "FAILED"]

    def test_duplicate_guard_can_be_disabled(
        self, session, config, transfers, clock, hourly_contract, business, log_hours,
    ):
        service = SettlementService(
            session,
            PaymentProcessor(session, transfers, clock=clock),
            ProvincialFeeCalculator(config.fees),
            clock=clock,
            defaults=config.defaults,
            policy=SettlementPolicy(reject_duplicate_periods=False),
        )
        log_hours(date(2024, 1, 2), "5")
        service.process_period(hourly_contract.id, business.id, START, END)
        service.process_period(hourly_contract.id, business.id, START, END)
        assert _payments(session) == 2

    def test_overlapping_period_is_a_different_period(
        self, settlement, hourly_contract, business, log_hours,
    ):
        log_hours(date(2024, 1, 2), "5")
        settlement.process_period(hourly_contract.id, business.id, START, END)
        other = settlement.process_period(hourly_contract.id, business.id, START, date(2024, 1, 7))
        assert other.status is PaymentStatus.COMPLETED

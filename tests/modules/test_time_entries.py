"""
Tests for the time entry lifecycle.

Covers:
- Logging hours on hourly contracts only
- Hours validation (non-positive, non-finite, non-numeric, booleans)
- Hours kept exactly as entered
- Milestone tagging must stay within the contract
- Review once, with default rejection reason
"""

from datetime import date
from decimal import Decimal

import pytest

from settlement_kernel.domain.review import Approve, Reject
from settlement_kernel.domain.statuses import ActorRole, ProjectType, TimeEntryStatus
from settlement_kernel.exceptions import (
    InvalidOperationError,
    InvalidStateError,
    NotFoundError,
    ProjectTypeMismatchError,
    ValidationError,
)
from settlement_kernel.models.fulfillment import TimeEntry


class TestAddTimeEntry:

    def test_logs_pending_entry(self, fulfillment, hourly_contract, talent):
        entry = fulfillment.add_time_entry(
            hourly_contract.id, talent.id, date(2024, 1, 2), "5", "API integration",
        )
        assert entry.status is TimeEntryStatus.PENDING
        assert entry.hours == Decimal("5.00")
        assert entry.date == date(2024, 1, 2)
        assert entry.contract_id == hourly_contract.id
        assert entry.milestone_id is None

    def test_accepts_iso_date_and_float_hours(self, fulfillment, hourly_contract, talent):
        entry = fulfillment.add_time_entry(hourly_contract.id, talent.id, "2024-01-03", 2.5, "Review")
        assert entry.date == date(2024, 1, 3)
        assert entry.hours == Decimal("2.50")

    @pytest.mark.parametrize("hours", ["0.004", "1.005", "7.333333333"])
    def test_hours_stored_as_entered(self, fulfillment, hourly_contract, talent, session, hours):
        entry = fulfillment.add_time_entry(hourly_contract.id, talent.id, date(2024, 1, 2), hours, "Work")
        assert entry.hours == Decimal(hours)

        session.expire_all()
        assert session.get(TimeEntry, entry.id).hours == Decimal(hours)

    def test_hours_beyond_storage_precision_rejected(self, fulfillment, hourly_contract, talent):
        with pytest.raises(ValidationError) as exc_info:
            fulfillment.add_time_entry(hourly_contract.id, talent.id, date(2024, 1, 2), "0.0000000001", "Work")
        assert str(exc_info.value) == "Hours cannot have more than 9 decimal places"

    def test_fixed_price_contract_rejected(self, fulfillment, fixed_contract, talent):
        with pytest.raises(ProjectTypeMismatchError) as exc_info:
            fulfillment.add_time_entry(fixed_contract.id, talent.id, date(2024, 1, 2), 1, "Work")
        assert isinstance(exc_info.value, InvalidOperationError)
        assert str(exc_info.value) == "Time entries can only be added to hourly projects"
        assert exc_info.value.actual_type == ProjectType.FIXED_PRICE.value

    @pytest.mark.parametrize(
        "hours",
        [0, -1, "0", "-2.5", "abc", "", "NaN", "Infinity", float("nan"), float("inf"), True, None],
    )
    def test_invalid_hours(self, fulfillment, hourly_contract, talent, hours):
        with pytest.raises(ValidationError) as exc_info:
            fulfillment.add_time_entry(hourly_contract.id, talent.id, date(2024, 1, 2), hours, "Work")
        assert str(exc_info.value) == "Hours must be a valid positive number"
        assert exc_info.value.field == "hours"

    def test_invalid_date(self, fulfillment, hourly_contract, talent):
        with pytest.raises(ValidationError):
            fulfillment.add_time_entry(hourly_contract.id, talent.id, "next tuesday", 1, "Work")

    def test_description_required(self, fulfillment, hourly_contract, talent):
        with pytest.raises(ValidationError):
            fulfillment.add_time_entry(hourly_contract.id, talent.id, date(2024, 1, 2), 1, "  ")

    def test_business_cannot_log(self, fulfillment, hourly_contract, business):
        with pytest.raises(NotFoundError):
            fulfillment.add_time_entry(hourly_contract.id, business.id, date(2024, 1, 2), 1, "Work")

    def test_tagged_milestone(self, fulfillment, hourly_contract, talent, make_milestone):
        milestone = make_milestone(hourly_contract)
        entry = fulfillment.add_time_entry(
            hourly_contract.id, talent.id, date(2024, 1, 2), 1, "Work", milestone_id=milestone.id,
        )
        assert entry.milestone_id == milestone.id

    def test_milestone_from_other_contract(
        self, fulfillment, hourly_contract, make_contract, talent, make_milestone,
    ):
        other = make_contract(ProjectType.HOURLY, hourly_rate=Decimal("10"))
        foreign = make_milestone(other)
        with pytest.raises(NotFoundError):
            fulfillment.add_time_entry(
                hourly_contract.id, talent.id, date(2024, 1, 2), 1, "Work", milestone_id=foreign.id,
            )


class TestReviewTimeEntry:

    @pytest.fixture
    def entry(self, fulfillment, hourly_contract, talent):
        return fulfillment.add_time_entry(hourly_contract.id, talent.id, date(2024, 1, 2), 4, "Work")

    def test_approve(self, fulfillment, entry, business, clock):
        reviewed = fulfillment.review_time_entry(entry.id, business.id, Approve())
        assert reviewed.status is TimeEntryStatus.APPROVED
        assert reviewed.approved_at == clock.now()

    def test_reject_default_reason(self, fulfillment, entry, business):
        reviewed = fulfillment.review_time_entry(entry.id, business.id, Reject(None))
        assert reviewed.status is TimeEntryStatus.REJECTED
        assert reviewed.rejection_reason == "No reason provided"

    def test_reviewed_once(self, fulfillment, entry, business):
        fulfillment.review_time_entry(entry.id, business.id, Approve())
        with pytest.raises(InvalidStateError, match="already been reviewed"):
            fulfillment.review_time_entry(entry.id, business.id, Reject("changed my mind"))

    def test_talent_cannot_review(self, fulfillment, entry, talent):
        with pytest.raises(NotFoundError):
            fulfillment.review_time_entry(entry.id, talent.id, Approve())

    def test_other_business_cannot_review(self, fulfillment, entry, make_user):
        other = make_user(ActorRole.BUSINESS)
        with pytest.raises(NotFoundError):
            fulfillment.review_time_entry(entry.id, other.id, Approve())

"""
Module: settlement_kernel.models.fulfillment
Responsibility: ORM persistence for the work performed under a contract:
    milestones, the deliverables attached to them, and logged time entries.
Architecture position: Kernel > Models.  May import from db/base.py and
    sibling models only.

Invariants enforced:
    - status columns hold only the values of the corresponding workflow
      (CheckConstraint); the transition rules themselves are enforced by
      status-guarded UPDATEs in the fulfillment service.
    - Milestones are never deleted by this core.  Deliverables cascade with
      their milestone; a deleted milestone detaches its time entries.
    - hours > 0 for every time entry.

Failure modes:
    - IntegrityError on an out-of-vocabulary status or non-positive hours.
"""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.db.types import Hours, Money
from settlement_kernel.domain.statuses import (
    DeliverableStatus,
    MilestoneStatus,
    TimeEntryStatus,
)

if TYPE_CHECKING:
    from settlement_kernel.domain.dtos import DeliverableDTO, MilestoneDTO, TimeEntryDTO
    from settlement_kernel.models.contract import Contract


class Milestone(TrackedBase):
    """A payable unit of work within a contract."""

    __tablename__ = "milestones"

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'IN_PROGRESS', 'SUBMITTED', 'APPROVED', 'REJECTED')",
            name="ck_milestones_valid_status",
        ),
        CheckConstraint("amount >= 0", name="ck_milestones_amount_non_negative"),
        Index("idx_milestones_contract_order", "contract_id", "order"),
    )

    contract_id: Mapped[UUID] = mapped_column(ForeignKey("contracts.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Money] = mapped_column(nullable=False)
    due_date: Mapped[dt.date | None] = mapped_column(nullable=True)
    order: Mapped[int] = mapped_column(nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MilestoneStatus.PENDING.value,
    )
    submitted_at: Mapped[dt.datetime | None] = mapped_column(nullable=True)
    approved_at: Mapped[dt.datetime | None] = mapped_column(nullable=True)
    rejected_at: Mapped[dt.datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    contract: Mapped["Contract"] = relationship(back_populates="milestones", lazy="joined")
    deliverables: Mapped[list["Deliverable"]] = relationship(
        back_populates="milestone",
        cascade="all, delete-orphan",
        order_by="Deliverable.created_at",
    )
    time_entries: Mapped[list["TimeEntry"]] = relationship(
        back_populates="milestone",
        order_by="TimeEntry.date.desc()",
    )

    def to_dto(self) -> MilestoneDTO:
        from settlement_kernel.domain.dtos import MilestoneDTO

        return MilestoneDTO(
            id=self.id,
            contract_id=self.contract_id,
            title=self.title,
            description=self.description,
            amount=self.amount,
            order=self.order,
            status=MilestoneStatus(self.status),
            due_date=self.due_date,
            created_at=self.created_at,
            submitted_at=self.submitted_at,
            approved_at=self.approved_at,
            rejected_at=self.rejected_at,
            rejection_reason=self.rejection_reason,
        )

    def __repr__(self) -> str:
        return f"<Milestone {self.id} #{self.order} {self.title} status={self.status}>"


class Deliverable(TrackedBase):
    """A discrete work artifact submitted against a milestone."""

    __tablename__ = "deliverables"

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'SUBMITTED', 'APPROVED', 'REJECTED')",
            name="ck_deliverables_valid_status",
        ),
        Index("idx_deliverables_milestone_status", "milestone_id", "status"),
    )

    milestone_id: Mapped[UUID] = mapped_column(
        ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DeliverableStatus.PENDING.value,
    )
    submitted_at: Mapped[dt.datetime | None] = mapped_column(nullable=True)
    approved_at: Mapped[dt.datetime | None] = mapped_column(nullable=True)
    rejected_at: Mapped[dt.datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    milestone: Mapped[Milestone] = relationship(back_populates="deliverables")

    def to_dto(self) -> DeliverableDTO:
        from settlement_kernel.domain.dtos import DeliverableDTO

        return DeliverableDTO(
            id=self.id,
            milestone_id=self.milestone_id,
            title=self.title,
            description=self.description,
            file_url=self.file_url,
            status=DeliverableStatus(self.status),
            created_at=self.created_at,
            submitted_at=self.submitted_at,
            approved_at=self.approved_at,
            rejected_at=self.rejected_at,
            rejection_reason=self.rejection_reason,
        )

    def __repr__(self) -> str:
        return f"<Deliverable {self.id}: {self.title} status={self.status}>"


class TimeEntry(TrackedBase):
    """A logged unit of hourly work, reviewed once by the business."""

    __tablename__ = "time_entries"

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_time_entries_valid_status",
        ),
        CheckConstraint("hours > 0", name="ck_time_entries_hours_positive"),
        Index("idx_time_entries_contract_date", "contract_id", "date"),
        Index("idx_time_entries_contract_status", "contract_id", "status"),
    )

    contract_id: Mapped[UUID] = mapped_column(ForeignKey("contracts.id"), nullable=False)
    milestone_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("milestones.id", ondelete="SET NULL"), nullable=True,
    )
    date: Mapped[dt.date] = mapped_column(nullable=False)
    hours: Mapped[Hours] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TimeEntryStatus.PENDING.value,
    )
    approved_at: Mapped[dt.datetime | None] = mapped_column(nullable=True)
    rejected_at: Mapped[dt.datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    contract: Mapped["Contract"] = relationship(back_populates="time_entries")
    milestone: Mapped[Milestone | None] = relationship(back_populates="time_entries")

    def to_dto(self) -> TimeEntryDTO:
        from settlement_kernel.domain.dtos import TimeEntryDTO

        return TimeEntryDTO(
            id=self.id,
            contract_id=self.contract_id,
            milestone_id=self.milestone_id,
            date=self.date,
            hours=self.hours,
            description=self.description,
            status=TimeEntryStatus(self.status),
            created_at=self.created_at,
            approved_at=self.approved_at,
            rejected_at=self.rejected_at,
            rejection_reason=self.rejection_reason,
        )

    def __repr__(self) -> str:
        return f"<TimeEntry {self.id} {self.date} {self.hours}h status={self.status}>"

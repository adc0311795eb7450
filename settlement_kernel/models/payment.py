"""
Module: settlement_kernel.models.payment
Responsibility: ORM persistence for payments -- one row per attempt to move
    money from a business to a talent, whether triggered by a milestone
    approval or by a biweekly hourly settlement.
Architecture position: Kernel > Models.  May import from db/base.py and
    sibling models only.

Invariants enforced:
    - net_amount == amount - platform_fee (checked when the row becomes a
      PaymentDTO; writers compute both from one FeeBreakdown).
    - status leaves PROCESSING exactly once, to COMPLETED or FAILED.
    - transfer_id is set iff status is COMPLETED.
    - period_start/period_end/total_hours are set together, and only for
      hourly settlements.

Failure modes:
    - IntegrityError on an out-of-vocabulary status or negative amounts.
"""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.db.types import Hours, Money
from settlement_kernel.domain.statuses import PaymentStatus

if TYPE_CHECKING:
    from settlement_kernel.domain.dtos import PaymentDTO
    from settlement_kernel.models.contract import Contract


class Payment(TrackedBase):
    """
    A transfer of funds for approved work.

    Guarantees:
        - Rows are created in PROCESSING and committed before the external
          transfer is attempted, so a crash mid-transfer leaves a visible
          PROCESSING record rather than no record.
    """

    __tablename__ = "payments"

    __table_args__ = (
        CheckConstraint(
            "status IN ('PROCESSING', 'COMPLETED', 'FAILED')",
            name="ck_payments_valid_status",
        ),
        CheckConstraint("amount >= 0", name="ck_payments_amount_non_negative"),
        CheckConstraint("platform_fee >= 0", name="ck_payments_fee_non_negative"),
        Index("idx_payments_contract_created", "contract_id", "created_at"),
        Index("idx_payments_contract_period", "contract_id", "period_start", "period_end"),
        Index("idx_payments_milestone", "milestone_id"),
    )

    contract_id: Mapped[UUID] = mapped_column(ForeignKey("contracts.id"), nullable=False)
    milestone_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("milestones.id"), nullable=True,
    )
    payer_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    payee_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)

    amount: Mapped[Money] = mapped_column(nullable=False)
    platform_fee: Mapped[Money] = mapped_column(nullable=False)
    net_amount: Mapped[Money] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.PROCESSING.value,
    )
    transfer_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    processed_at: Mapped[dt.datetime | None] = mapped_column(nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Hourly settlements only
    period_start: Mapped[dt.date | None] = mapped_column(nullable=True)
    period_end: Mapped[dt.date | None] = mapped_column(nullable=True)
    total_hours: Mapped[Hours | None] = mapped_column(nullable=True)

    contract: Mapped["Contract"] = relationship()

    def to_dto(self) -> PaymentDTO:
        from settlement_kernel.domain.dtos import PaymentDTO

        return PaymentDTO(
            id=self.id,
            contract_id=self.contract_id,
            milestone_id=self.milestone_id,
            payer_id=self.payer_id,
            payee_id=self.payee_id,
            amount=self.amount,
            platform_fee=self.platform_fee,
            net_amount=self.net_amount,
            status=PaymentStatus(self.status),
            transfer_id=self.transfer_id,
            processed_at=self.processed_at,
            failure_reason=self.failure_reason,
            period_start=self.period_start,
            period_end=self.period_end,
            total_hours=self.total_hours,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<Payment {self.id}: {self.amount} net={self.net_amount} status={self.status}>"

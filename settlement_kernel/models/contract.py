"""
Module: settlement_kernel.models.contract
Responsibility: ORM persistence for projects and the contracts signed
    against them.  A contract's business_id and talent_id are the
    authorization scope for every lifecycle operation in the engine.
Architecture position: Kernel > Models.  May import from db/base.py and
    sibling models only.

Invariants enforced:
    - Party identities (business_id, talent_id) are immutable for the
      engine's purposes; no service writes them.
    - hourly_rate is Decimal and may be NULL (treated as zero when
      settling hours).
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.domain.statuses import ProjectType

if TYPE_CHECKING:
    from settlement_kernel.domain.dtos import ContractDTO
    from settlement_kernel.models.fulfillment import Milestone, TimeEntry
    from settlement_kernel.models.party import User


class Project(TrackedBase):
    """A posted project.  ``type`` decides how contracts under it are paid."""

    __tablename__ = "projects"

    __table_args__ = (
        Index("idx_projects_business_id", "business_id"),
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    business_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.title} ({self.type})>"


class Contract(TrackedBase):
    """
    A signed agreement between one business and one talent for one project.

    Guarantees:
        - project, business and talent relationships load eagerly with the
          contract, so a scoped lookup returns everything an authorization
          check or fee computation needs.
    """

    __tablename__ = "contracts"

    __table_args__ = (
        Index("idx_contracts_business_id", "business_id"),
        Index("idx_contracts_talent_id", "talent_id"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    business_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    talent_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    hourly_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="CAD")

    project: Mapped[Project] = relationship(lazy="joined")
    business: Mapped["User"] = relationship(foreign_keys=[business_id], lazy="joined")
    talent: Mapped["User"] = relationship(foreign_keys=[talent_id], lazy="joined")

    milestones: Mapped[list["Milestone"]] = relationship(
        back_populates="contract",
        order_by="Milestone.order",
    )
    time_entries: Mapped[list["TimeEntry"]] = relationship(
        back_populates="contract",
    )

    @property
    def project_type(self) -> ProjectType:
        return ProjectType(self.project.type)

    def to_dto(self) -> ContractDTO:
        from settlement_kernel.domain.dtos import ContractDTO

        return ContractDTO(
            id=self.id,
            project_id=self.project_id,
            project_type=self.project_type,
            business_id=self.business_id,
            talent_id=self.talent_id,
            hourly_rate=self.hourly_rate,
            currency=self.currency,
        )

    def __repr__(self) -> str:
        return f"<Contract {self.id}: business={self.business_id} talent={self.talent_id}>"

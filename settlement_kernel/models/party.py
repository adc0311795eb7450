"""
Module: settlement_kernel.models.party
Responsibility: ORM persistence for marketplace users -- the businesses that
    pay and the talent who get paid.  Only the fields the settlement engine
    reads are mapped here; general profile CRUD lives elsewhere.
Architecture position: Kernel > Models.  May import from db/base.py only.

Guard enforcement points (not ORM-level, but this model is the data source):
    - Payout guard: payout_account_id must be set before any transfer.
    - Fee guard: province, tax_exempt and tax_number drive the talent's
      platform-fee computation.
"""

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase


class User(TrackedBase):
    """
    A business or talent account.

    Guarantees:
        - role is set at creation and never changes.
        - has_tax_exemption is True iff the user is flagged exempt or has a
          registered GST/HST number.
    """

    __tablename__ = "users"

    __table_args__ = (
        Index("idx_users_role", "role"),
    )

    role: Mapped[str] = mapped_column(String(20), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Talent location; province code drives sales tax on the platform fee
    province: Mapped[str | None] = mapped_column(String(2), nullable=True)

    tax_exempt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tax_number: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Destination account at the payout processor (e.g. a Connect account id)
    payout_account_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    @property
    def has_tax_exemption(self) -> bool:
        return bool(self.tax_exempt) or bool(self.tax_number)

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.display_name} ({self.role})>"

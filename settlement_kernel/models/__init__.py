"""ORM models.  Importing this package registers every table on Base.metadata."""

from settlement_kernel.models.contract import Contract, Project
from settlement_kernel.models.fulfillment import Deliverable, Milestone, TimeEntry
from settlement_kernel.models.party import User
from settlement_kernel.models.payment import Payment

__all__ = [
    "User",
    "Project",
    "Contract",
    "Milestone",
    "Deliverable",
    "TimeEntry",
    "Payment",
]

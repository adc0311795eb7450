"""
Fulfillment Module (``settlement_modules.fulfillment``).

Responsibility
--------------
The work done under a contract: deliverables submitted against
milestones, hours logged on hourly contracts, and milestone submission and
review, with approval handing off to the payment processor.

Architecture position
---------------------
**Modules layer** -- workflows, value objects and a service facade over
``settlement_kernel``, ``settlement_engines`` and ``settlement_services``.
"""

from settlement_modules.fulfillment.models import MilestoneReviewResult, MilestoneView
from settlement_modules.fulfillment.service import FulfillmentService
from settlement_modules.fulfillment.workflows import (
    DELIVERABLE_WORKFLOW,
    MILESTONE_WORKFLOW,
    NO_PENDING_DELIVERABLES,
    TIME_ENTRY_WORKFLOW,
)

__all__ = [
    "FulfillmentService",
    "MilestoneView",
    "MilestoneReviewResult",
    "DELIVERABLE_WORKFLOW",
    "TIME_ENTRY_WORKFLOW",
    "MILESTONE_WORKFLOW",
    "NO_PENDING_DELIVERABLES",
]

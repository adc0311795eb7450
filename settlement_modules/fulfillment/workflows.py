"""
Fulfillment Workflows (``settlement_modules.fulfillment.workflows``).

Responsibility
--------------
Declares the state machines for deliverables, time entries and
milestones.  Guards name the preconditions the fulfillment service checks;
``settles_payment=True`` marks the transition that hands off to the
payment processor.

Architecture position
---------------------
**Modules layer** -- declarative workflow definitions.  Imports canonical
Guard, Transition, Workflow from ``settlement_kernel.domain.workflow``.

Invariants enforced
-------------------
* APPROVED and REJECTED are terminal for every entity.  A rejected
  deliverable is not resubmittable.
* Review actions are ``Approve.action`` / ``Reject.action`` so a
  ``ReviewDecision`` selects its transition directly.
"""

from settlement_kernel.domain.review import Approve, Reject
from settlement_kernel.domain.statuses import (
    DeliverableStatus,
    MilestoneStatus,
    TimeEntryStatus,
)
from settlement_kernel.domain.workflow import Guard, Transition, Workflow
from settlement_kernel.logging_config import get_logger

logger = get_logger("modules.fulfillment.workflows")

SUBMIT = "submit"
START = "start"
APPROVE = Approve.action
REJECT = Reject.action


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

NO_PENDING_DELIVERABLES = Guard(
    name="no_pending_deliverables",
    description="Fixed price milestones need every deliverable submitted first",
)


# -----------------------------------------------------------------------------
# Deliverable Workflow
# -----------------------------------------------------------------------------

DELIVERABLE_WORKFLOW = Workflow(
    name="deliverable",
    description="A work artifact submitted once and reviewed once",
    initial_state=DeliverableStatus.PENDING.value,
    states=tuple(s.value for s in DeliverableStatus),
    terminal_states=(DeliverableStatus.APPROVED.value, DeliverableStatus.REJECTED.value),
    transitions=(
        Transition(DeliverableStatus.PENDING.value, DeliverableStatus.SUBMITTED.value, action=SUBMIT),
        Transition(DeliverableStatus.SUBMITTED.value, DeliverableStatus.APPROVED.value, action=APPROVE),
        Transition(DeliverableStatus.SUBMITTED.value, DeliverableStatus.REJECTED.value, action=REJECT),
    ),
)


# -----------------------------------------------------------------------------
# Time Entry Workflow
# -----------------------------------------------------------------------------

TIME_ENTRY_WORKFLOW = Workflow(
    name="time_entry",
    description="Logged hours, reviewed once by the business",
    initial_state=TimeEntryStatus.PENDING.value,
    states=tuple(s.value for s in TimeEntryStatus),
    terminal_states=(TimeEntryStatus.APPROVED.value, TimeEntryStatus.REJECTED.value),
    transitions=(
        Transition(TimeEntryStatus.PENDING.value, TimeEntryStatus.APPROVED.value, action=APPROVE),
        Transition(TimeEntryStatus.PENDING.value, TimeEntryStatus.REJECTED.value, action=REJECT),
    ),
)


# -----------------------------------------------------------------------------
# Milestone Workflow
# -----------------------------------------------------------------------------

MILESTONE_WORKFLOW = Workflow(
    name="milestone",
    description="A payable unit of work; approval triggers payment",
    initial_state=MilestoneStatus.PENDING.value,
    states=tuple(s.value for s in MilestoneStatus),
    terminal_states=(MilestoneStatus.APPROVED.value, MilestoneStatus.REJECTED.value),
    transitions=(
        # PENDING -> IN_PROGRESS is driven outside this engine
        Transition(MilestoneStatus.PENDING.value, MilestoneStatus.IN_PROGRESS.value, action=START),
        Transition(
            MilestoneStatus.PENDING.value,
            MilestoneStatus.SUBMITTED.value,
            action=SUBMIT,
            guard=NO_PENDING_DELIVERABLES,
        ),
        Transition(
            MilestoneStatus.IN_PROGRESS.value,
            MilestoneStatus.SUBMITTED.value,
            action=SUBMIT,
            guard=NO_PENDING_DELIVERABLES,
        ),
        Transition(
            MilestoneStatus.SUBMITTED.value,
            MilestoneStatus.APPROVED.value,
            action=APPROVE,
            settles_payment=True,
        ),
        Transition(MilestoneStatus.SUBMITTED.value, MilestoneStatus.REJECTED.value, action=REJECT),
    ),
)

logger.debug(
    "fulfillment_workflows_registered",
    extra={
        "workflows": [
            DELIVERABLE_WORKFLOW.name,
            TIME_ENTRY_WORKFLOW.name,
            MILESTONE_WORKFLOW.name,
        ],
    },
)

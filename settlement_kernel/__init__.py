"""
Settlement Kernel

The contract fulfillment and payment settlement core of the marketplace:
- Deliverable, time entry and milestone state machines
- Status-guarded transitions (no lost updates between racing reviewers)
- Exact decimal money arithmetic
- Payment records that always reach a terminal status
"""

__version__ = "0.1.0"

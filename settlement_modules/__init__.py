"""
Settlement Modules.

Thin orchestration layers over the settlement kernel, engines and services.
Each module contains:
- Domain models (the value objects it returns)
- Workflows (state machines)
- A service facade that owns the transaction boundary

Modules:
- Fulfillment: deliverables, time entries, milestones, milestone payments
- Settlement: biweekly payout of approved hourly work
"""

from settlement_modules import fulfillment, settlement

__all__ = ["fulfillment", "settlement"]

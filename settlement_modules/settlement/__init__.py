"""
Settlement Module (``settlement_modules.settlement``).

Biweekly settlement of hourly contracts: approved hours in a period become
one payment to the talent.
"""

from settlement_modules.settlement.models import PeriodSummary
from settlement_modules.settlement.service import SettlementService

__all__ = ["SettlementService", "PeriodSummary"]

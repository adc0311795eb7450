"""Selectors for the settlement kernel (read side)."""

from settlement_kernel.selectors.base import BaseSelector
from settlement_kernel.selectors.scope_selector import ScopeSelector

__all__ = [
    "BaseSelector",
    "ScopeSelector",
]

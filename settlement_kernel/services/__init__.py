"""Kernel service infrastructure."""

from settlement_kernel.services.base import BaseService

__all__ = ["BaseService"]

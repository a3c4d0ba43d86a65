"""
Sighting Reports and Rewards

This module provides:
- Sighting reports with a one-time submission award
- Admin verification with an exactly-once bonus
- Point balances that never go negative
- Reward redemptions spent locally and replicated to the server
- Client/server reconciliation where the server outcome wins
"""

from .models import (
    ReportStatus,
    Report,
    Redemption,
    RewardCatalogEntry,
)
from .lifecycle import BASE_AWARD, VERIFY_AWARD, ReportLifecycle
from .redemptions import RedemptionManager
from .service import SightingService
from .client import SightingClient

__all__ = [
    "ReportStatus",
    "Report",
    "Redemption",
    "RewardCatalogEntry",
    "BASE_AWARD",
    "VERIFY_AWARD",
    "ReportLifecycle",
    "RedemptionManager",
    "SightingService",
    "SightingClient",
]

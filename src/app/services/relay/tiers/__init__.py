# ============================================
# RELAY TIERS PACKAGE
# ============================================
# Two-tier execution for calls behind an anti-bot layer:
# - Tier 1: context.request through the cleared browser context (cheap)
# - Tier 2: fetch() from inside a disposable live page (after a challenge)
# ============================================

from .base import OutboundResult, TierExecutor, TierLevel
from .tier1_direct import Tier1DirectExecutor
from .tier2_in_page import Tier2InPageExecutor

__all__ = [
    # Base
    "TierExecutor",
    "TierLevel",
    "OutboundResult",
    # Tier 1
    "Tier1DirectExecutor",
    # Tier 2
    "Tier2InPageExecutor",
]

# ============================================
# RELAY - Clearance Escalation Engine
# ============================================
#
# Relays calls to an API behind an anti-bot challenge layer through a
# long-lived, cleared browser session.
#
# Architecture:
#   BrowserSession: one Playwright engine + context, bootstrapped once
#   Tier 1: context.request through the cleared context
#   Tier 2: fetch() inside a disposable page (after a challenge)
#   ChallengeDetector: status/marker predicate deciding escalation
#   RelayOrchestrator: ready → direct → (refresh → in-page) → result
# ============================================

from .detector import ChallengeDetector, ChallengeVerdict

# Exceptions
from .exceptions import (
    BrowserSessionException,
    ChallengeBlockedException,
    MissingTokenException,
    RelayException,
    RelayTimeoutException,
)
from .orchestrator import RelayOrchestrator, relay_once
from .request import OutboundRequest
from .session import BrowserSession, SessionState

# Tier executors (for direct use)
from .tiers import OutboundResult, Tier1DirectExecutor, Tier2InPageExecutor, TierExecutor, TierLevel

__all__ = [
    # Orchestrator
    "RelayOrchestrator",
    "relay_once",
    # Session
    "BrowserSession",
    "SessionState",
    # Detection
    "ChallengeDetector",
    "ChallengeVerdict",
    # Model
    "OutboundRequest",
    "OutboundResult",
    # Tier system
    "TierExecutor",
    "TierLevel",
    "Tier1DirectExecutor",
    "Tier2InPageExecutor",
    # Exceptions
    "RelayException",
    "MissingTokenException",
    "ChallengeBlockedException",
    "BrowserSessionException",
    "RelayTimeoutException",
]

"""
Drip claimer package.

Watches for token distributions and races a batch of signed payment
authorizations against a faucet drip endpoint.
"""

from .claim_orchestrator import ClaimOrchestrator
from .claimer import DripClaimer
from .config import ClaimerConfig
from .distribution_watcher import DistributionWatcher
from .models import MintOutcome, PaymentRequirement, WatchState

__all__ = [
    "ClaimerConfig",
    "ClaimOrchestrator",
    "DistributionWatcher",
    "DripClaimer",
    "MintOutcome",
    "PaymentRequirement",
    "WatchState",
]
__version__ = "0.1.0"

"""
Service layer for business logic.
"""

from services.analysis_orchestrator import AnalysisOrchestrator, AnalysisOutcome
from services.subscription_gate import SubscriptionGate
from services.usage_ledger import LedgerResult, UsageLedgerUpdater

__all__ = [
    "AnalysisOrchestrator",
    "AnalysisOutcome",
    "LedgerResult",
    "SubscriptionGate",
    "UsageLedgerUpdater",
]

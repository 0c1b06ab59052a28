# Interfaces (Abstract Contracts)
# Adapters implement these interfaces
from .repositories import SERVER_TIMESTAMP, QuotaStore
from .services import AnalysisOracle, IdentityVerifier

__all__ = [
    "SERVER_TIMESTAMP",
    "QuotaStore",
    "AnalysisOracle",
    "IdentityVerifier",
]

"""
Analysis request orchestration.

Runs identity verification, the subscription gate and the AI analysis in that
order for one inbound request. Quota consumed by the gate is not refunded
when the analysis fails.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from core.exceptions import (
    AuthenticationError,
    AuthorizationDenied,
    OracleError,
    ValidationError,
)
from core.interfaces.services import AnalysisOracle, IdentityVerifier
from services.subscription_gate import SubscriptionGate

logger = logging.getLogger(__name__)


@dataclass
class AnalysisOutcome:
    """Successful analysis with the gate's admission reason."""

    result: dict[str, Any]
    message: str
    subject_id: str


def _is_missing(value: Any) -> bool:
    # Empty containers are real payloads; falsy scalars are not
    if isinstance(value, (dict, list)):
        return False
    return not value


class AnalysisOrchestrator:
    """Composes identity verification, the subscription gate and the oracle."""

    def __init__(
        self,
        identity_verifier: IdentityVerifier,
        gate: SubscriptionGate,
        oracle: AnalysisOracle,
        oracle_timeout: float | None = None,
    ):
        self.identity_verifier = identity_verifier
        self.gate = gate
        self.oracle = oracle
        self.oracle_timeout = oracle_timeout

    async def run(self, token: str | None, analysis_data: Any) -> AnalysisOutcome:
        """
        Handle one analysis request.

        Raises:
            ValidationError: Token or payload missing
            AuthenticationError: Token rejected by the identity verifier
            AuthorizationDenied: Gate refused the request
            OracleError: The analysis failed after quota was charged
        """
        if not token or _is_missing(analysis_data):
            raise ValidationError()

        try:
            subject_id = await self.identity_verifier.verify(token)
        except AuthenticationError as e:
            logger.warning("Token verification failed: %s", e)
            raise
        except Exception as e:
            logger.error("Identity verifier error: %s", e, exc_info=True)
            raise AuthenticationError() from e

        if not subject_id:
            raise AuthenticationError("Verifier returned no subject")

        decision = await self.gate.evaluate(subject_id)
        if not decision.can_proceed:
            logger.warning(
                "Access denied for user %s. Reason: %s",
                subject_id,
                decision.reason,
                extra={"user_id": subject_id},
            )
            raise AuthorizationDenied(decision.reason)

        try:
            if self.oracle_timeout:
                result = await asyncio.wait_for(
                    self.oracle.analyze(analysis_data), timeout=self.oracle_timeout
                )
            else:
                result = await self.oracle.analyze(analysis_data)
        except OracleError as e:
            logger.error("AI Analysis Execution Error for user %s: %s", subject_id, e)
            raise
        except TimeoutError as e:
            logger.error(
                "AI analysis timed out after %.1fs for user %s", self.oracle_timeout, subject_id
            )
            raise OracleError("AI analysis timed out") from e
        except Exception as e:
            logger.error(
                "AI Analysis Execution Error for user %s: %s", subject_id, e, exc_info=True
            )
            raise OracleError() from e

        return AnalysisOutcome(result=result, message=decision.reason, subject_id=subject_id)

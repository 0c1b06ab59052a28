"""Service interfaces for external integrations."""

from abc import ABC, abstractmethod
from typing import Any


class IdentityVerifier(ABC):
    """Abstract verifier for bearer credentials."""

    @abstractmethod
    async def verify(self, token: str) -> str:
        """
        Verify a bearer token.

        Returns:
            The stable subject identifier of the caller

        Raises:
            AuthenticationError: If the token is invalid or expired
        """
        ...


class AnalysisOracle(ABC):
    """Abstract service for AI analysis generation."""

    @abstractmethod
    async def analyze(self, analysis_data: Any) -> dict[str, Any]:
        """
        Run an analysis and return the parsed JSON result.

        Raises:
            OracleError: On transport failure, empty output or malformed JSON
        """
        ...

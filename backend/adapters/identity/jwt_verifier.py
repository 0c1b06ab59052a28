"""
JWT identity verifier.

Verifies HS256 access tokens issued by the platform and returns the token
subject as the caller's stable identifier.
"""

from core.exceptions import AuthenticationError
from core.interfaces.services import IdentityVerifier
from core.security.tokens import TokenService


class JWTIdentityVerifier(IdentityVerifier):
    """Identity verifier backed by TokenService."""

    def __init__(self, token_service: TokenService):
        self._token_service = token_service

    async def verify(self, token: str) -> str:
        payload = self._token_service.verify_access_token(token)
        if payload is None:
            raise AuthenticationError("Invalid or expired token")
        return payload.sub

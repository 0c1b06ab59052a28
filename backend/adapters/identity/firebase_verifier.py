"""
Firebase ID-token verifier.

Verifies RS256 ID tokens minted by Firebase Authentication against Google's
published securetoken certificates. The token must name the configured
project as its audience and ``https://securetoken.google.com/<project>`` as
its issuer.
"""

import logging
import re
import time
from collections.abc import Awaitable, Callable
from typing import Optional

import httpx
from jose import JWTError, jwt

from core.exceptions import AuthenticationError
from core.interfaces.services import IdentityVerifier

logger = logging.getLogger(__name__)

GOOGLE_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)
FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"

_MAX_AGE_RE = re.compile(r"max-age=(\d+)")

# kid -> PEM certificate
CertificateFetcher = Callable[[], Awaitable[dict[str, str]]]


class GoogleCertificateCache:
    """Fetches Google's signing certificates and keeps them until max-age runs out."""

    def __init__(
        self,
        url: str = GOOGLE_CERTS_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._certs: dict[str, str] = {}
        self._expires_at = 0.0

    async def __call__(self) -> dict[str, str]:
        if self._certs and time.monotonic() < self._expires_at:
            return self._certs

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(self.url)
            response.raise_for_status()
            certs = response.json()

        match = _MAX_AGE_RE.search(response.headers.get("cache-control", ""))
        max_age = int(match.group(1)) if match else 0
        self._certs = certs
        self._expires_at = time.monotonic() + max_age
        logger.info("Fetched %d Google signing certificates (max-age=%ds)", len(certs), max_age)
        return certs


class FirebaseIdentityVerifier(IdentityVerifier):
    """Identity verifier for Firebase Authentication ID tokens."""

    def __init__(self, project_id: str, cert_fetcher: Optional[CertificateFetcher] = None):
        if not project_id:
            raise ValueError("Firebase project id is required")
        self.project_id = project_id
        self.issuer = f"{FIREBASE_ISSUER_PREFIX}{project_id}"
        self._fetch_certs = cert_fetcher or GoogleCertificateCache()

    async def verify(self, token: str) -> str:
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise AuthenticationError("Malformed ID token") from e

        if header.get("alg") != "RS256":
            raise AuthenticationError("ID token must be signed with RS256")
        kid = header.get("kid")

        try:
            certs = await self._fetch_certs()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Could not fetch Google signing certificates: %s", e)
            raise AuthenticationError("Signing certificates unavailable") from e

        cert = certs.get(kid) if kid else None
        if cert is None:
            raise AuthenticationError("ID token signed with an unknown key")

        try:
            claims = jwt.decode(
                token,
                cert,
                algorithms=["RS256"],
                audience=self.project_id,
                issuer=self.issuer,
            )
        except JWTError as e:
            raise AuthenticationError(f"Invalid ID token: {e}") from e

        subject = claims.get("sub") or claims.get("user_id")
        if not subject:
            raise AuthenticationError("ID token has no subject")
        return subject

"""Identity verification adapters and factory."""

import logging

from core.interfaces.services import IdentityVerifier
from core.security.tokens import TokenService
from infrastructure.config.settings import Settings

from .jwt_verifier import JWTIdentityVerifier

logger = logging.getLogger(__name__)


def create_identity_verifier(settings: Settings) -> IdentityVerifier:
    """Build the identity verifier selected by ``IDENTITY_BACKEND``."""
    if settings.identity_backend == "firebase":
        from .firebase_verifier import FirebaseIdentityVerifier

        project_id = settings.firebase_project_id or settings.firestore_project
        logger.info("Using Firebase identity verifier (project=%s)", project_id)
        return FirebaseIdentityVerifier(project_id=project_id)

    return JWTIdentityVerifier(
        TokenService(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            access_token_expire_minutes=settings.jwt_access_token_expire_minutes,
        )
    )


__all__ = ["JWTIdentityVerifier", "create_identity_verifier"]

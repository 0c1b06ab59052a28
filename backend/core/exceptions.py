"""
Error taxonomy shared by the gate, the ledger and the orchestrator.

Adapters translate library exceptions into these classes at their boundary;
the API layer maps them to status codes and public messages.
"""


class RelayError(Exception):
    """Base exception for every failure the relay reports to a caller."""

    # Message returned in the response body unless expose_detail is set
    public_message: str = "Internal server error"
    # When True the exception's own message is user-facing
    expose_detail: bool = False

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)

    def to_public_message(self) -> str:
        """Return the message that may be shown to the caller."""
        if self.expose_detail:
            return str(self)
        return self.public_message


class ValidationError(RelayError):
    """Raised when a required field is missing from a request."""

    public_message = "Missing authorization token or analysis data."


class AuthenticationError(RelayError):
    """Raised when the bearer credential is missing or cannot be verified."""

    public_message = "Unauthorized: Invalid authentication token."


class AuthorizationDenied(RelayError):
    """Raised when the subscription gate refuses a request."""

    expose_detail = True

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class StorageError(RelayError):
    """Raised when a quota store read or write fails."""

    pass


class OracleError(RelayError):
    """Raised when the AI service fails, times out or returns unusable output."""

    public_message = "Failed to generate AI analysis."


class WebhookShapeError(RelayError):
    """Raised when a payment webhook payload is malformed. Not retryable."""

    public_message = "Invalid webhook structure"
    expose_detail = True


class WebhookStorageError(RelayError):
    """Raised when a ledger write fails. The sender should retry."""

    public_message = "Database Update Failed"

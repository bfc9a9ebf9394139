"""Base exception hierarchy shared by the service layer.

Endpoints translate these into ``HTTPException`` responses; services never
raise HTTP errors themselves.
"""


class AuraTalkError(RuntimeError):
    """Base class for all service-level failures."""


class ValidationFailure(AuraTalkError, ValueError):
    """Input was rejected before any external call was made."""


class ConflictError(AuraTalkError):
    """A uniqueness constraint enforced by the service was violated."""


class NotFoundError(AuraTalkError):
    """The referenced record does not exist."""


class AuthenticationError(AuraTalkError):
    """Credentials or session were rejected."""


class ExternalServiceError(AuraTalkError):
    """A collaborator outside the process failed."""

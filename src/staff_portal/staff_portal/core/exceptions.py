class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"


class NotFoundError(DomainError):
    """Raised when the targeted record does not exist."""

    code = "not_found"


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""

    code = "authentication_error"


class AuthorizationError(DomainError):
    """Raised when a user lacks the role or ownership for an action."""

    code = "authorization_error"


class InvalidStateError(DomainError):
    """Raised when an operation is not permitted from the current status."""

    code = "invalid_state"

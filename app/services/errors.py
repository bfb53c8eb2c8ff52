"""Expected failure kinds of the auth core, each mapped to an HTTP status."""


class AuthServiceError(Exception):
    """Base class for auth outcomes the API reports to clients."""

    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateEmailError(AuthServiceError):
    status_code = 400
    default_message = "Email is already registered"


class WeakPasswordError(AuthServiceError):
    """Raised when a password fails the strength policy; carries every violated rule."""

    status_code = 400
    default_message = "Password does not meet the security requirements"

    def __init__(self, reasons: list[str], message: str | None = None) -> None:
        self.reasons = list(reasons)
        super().__init__(message)


class InvalidCredentialsError(AuthServiceError):
    # Same message for unknown email and wrong password.
    status_code = 401
    default_message = "Invalid credentials"


class AccountLockedError(AuthServiceError):
    status_code = 403
    default_message = "Account locked after too many failed login attempts"


class MissingTokenError(AuthServiceError):
    status_code = 401
    default_message = "Authentication required"


class TokenRevokedError(AuthServiceError):
    status_code = 401
    default_message = "Token is invalid or expired"


class TokenExpiredError(AuthServiceError):
    status_code = 401
    default_message = "Token expired. Please log in again"


class InvalidSignatureError(AuthServiceError):
    status_code = 401
    default_message = "Invalid token"


class ForbiddenError(AuthServiceError):
    status_code = 403
    default_message = "Forbidden: insufficient permissions"


class NotFoundError(AuthServiceError):
    status_code = 404
    default_message = "User not found"


class StoreUnavailableError(AuthServiceError):
    """Any persistence-layer failure. Reported to clients as a generic server fault."""

    status_code = 500
    default_message = "Storage backend unavailable"

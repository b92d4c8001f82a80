"""Custom exceptions for the application."""


class BaseAPIException(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = None,
        details: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class InvalidCredentials(BaseAPIException):
    """Unknown email, wrong password or non-active account.

    The message is identical for every cause so callers cannot tell
    whether an account exists.
    """

    def __init__(self, message: str = "Invalid email or password", details: dict = None):
        super().__init__(
            message=message,
            status_code=401,
            error_code="INVALID_CREDENTIALS",
            details=details
        )


class InvalidToken(BaseAPIException):
    """Malformed, expired, tampered or revoked session token."""

    def __init__(self, message: str = "Invalid or expired token", details: dict = None):
        super().__init__(
            message=message,
            status_code=401,
            error_code="INVALID_TOKEN",
            details=details
        )


class StoreTimeout(BaseAPIException):
    """Credential store did not answer within the configured budget."""

    def __init__(self, message: str = "Credential store timed out", details: dict = None):
        super().__init__(
            message=message,
            status_code=504,
            error_code="TIMEOUT",
            details=details
        )


class StoreUnavailable(BaseAPIException):
    """Credential store failed persistently."""

    def __init__(self, message: str = "Credential store unavailable", details: dict = None):
        super().__init__(
            message=message,
            status_code=503,
            error_code="STORE_UNAVAILABLE",
            details=details
        )


class AuthorizationError(BaseAPIException):
    """Authorization error."""

    def __init__(self, message: str = "Insufficient permissions", details: dict = None):
        super().__init__(
            message=message,
            status_code=403,
            error_code="AUTHORIZATION_ERROR",
            details=details
        )


class ValidationError(BaseAPIException):
    """Validation error."""

    def __init__(self, message: str = "Validation failed", details: dict = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="VALIDATION_ERROR",
            details=details
        )


class NotFoundError(BaseAPIException):
    """Resource not found error."""

    def __init__(self, message: str = "Resource not found", details: dict = None):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND_ERROR",
            details=details
        )


class ConflictError(BaseAPIException):
    """Resource conflict error."""

    def __init__(self, message: str = "Resource conflict", details: dict = None):
        super().__init__(
            message=message,
            status_code=409,
            error_code="CONFLICT_ERROR",
            details=details
        )


class ConfigurationError(BaseAPIException):
    """Configuration error."""

    def __init__(self, message: str = "Configuration error", details: dict = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="CONFIGURATION_ERROR",
            details=details
        )

"""
Custom exceptions for the catalog clients.

Every error carries a machine readable ``code``, a ``user_message`` suitable
for display, the HTTP ``status_code`` that caused it (if any) and a
``retryable`` flag. The retry policy uses the flag to decide whether a
request is re-issued; once retries are exhausted the flag is cleared so the
caller sees a terminal failure.
"""

from typing import Optional


class CatalogError(Exception):
    """
    Base class for all errors raised by the catalog clients.

    Attributes:
        message: Explanation of the error
        status_code: HTTP status code of the failed response, if any
        retryable: True if re-issuing the request may succeed
        attempts: Number of network attempts made before giving up
    """

    code = "CATALOG_ERROR"
    user_message = "An unexpected error occurred. Please try again."
    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.attempts = 0

    def mark_exhausted(self, attempts: int) -> None:
        """Flag the error as terminal after the retry budget is spent."""
        self.retryable = False
        self.attempts = attempts

    def __str__(self):
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class ValidationError(CatalogError):
    """Raised when required input is missing or malformed."""

    code = "VALIDATION_ERROR"
    user_message = "Invalid data provided. Please check your input and try again."

    def __init__(self, message: str, field: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message, status_code)
        self.field = field


class ClientRequestError(ValidationError):
    """Raised for 4xx responses other than 401, 403 and 429."""

    code = "CLIENT_REQUEST_ERROR"
    user_message = "The request was rejected by the service."


class AuthenticationError(CatalogError):
    """Raised on HTTP 401."""

    code = "AUTHENTICATION_ERROR"
    user_message = "Authentication failed. Please sign in again."


class AuthorizationError(CatalogError):
    """Raised on HTTP 403."""

    code = "AUTHORIZATION_ERROR"
    user_message = ("You don't have permission to access this resource. "
                    "Please contact your administrator.")


class RateLimitedError(CatalogError):
    """
    Raised on HTTP 429.

    Attributes:
        retry_after: Seconds the service asked us to wait, if it said so
    """

    code = "RATE_LIMIT_ERROR"
    user_message = "Too many requests. Please wait a moment and try again."
    retryable = True

    def __init__(self, message: str, retry_after: Optional[float] = None,
                 status_code: Optional[int] = 429):
        super().__init__(message, status_code)
        self.retry_after = retry_after


class ServerError(CatalogError):
    """Raised on HTTP 5xx."""

    code = "SERVER_ERROR"
    user_message = "Server is temporarily unavailable. Please try again in a few moments."
    retryable = True


class ServiceUnavailableError(ServerError):
    """Raised on HTTP 503 and while the circuit breaker is open."""

    code = "SERVICE_UNAVAILABLE"
    user_message = "Service is temporarily unavailable. Please try again later."


class NetworkError(CatalogError):
    """Raised when the transport fails: connection errors and timeouts."""

    code = "NETWORK_ERROR"
    user_message = ("Network connection failed. Please check your internet "
                    "connection and try again.")
    retryable = True


class ParseError(CatalogError):
    """Raised when a response body does not have the expected shape."""

    code = "PARSE_ERROR"
    user_message = "The service returned an unexpected response."


class TokenAcquisitionError(CatalogError):
    """Raised when the token supplier fails. No request is sent."""

    code = "TOKEN_ACQUISITION_ERROR"
    user_message = "Could not obtain credentials. Please sign in again."

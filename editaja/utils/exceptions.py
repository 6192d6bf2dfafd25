"""Custom exceptions for the edit Aja backend."""

from typing import Any, Dict, Optional


class EditAjaException(Exception):
    """Base exception for the edit Aja application."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize EditAjaException.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code.
            error_code: Machine-readable error code.
            details: Additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationError(EditAjaException):
    """Raised when authentication fails."""

    def __init__(
        self,
        message: str = "Unauthorized",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize AuthenticationError."""
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTHENTICATION_ERROR",
            details=details,
        )


class AuthorizationError(EditAjaException):
    """Raised when user is not authorized to access a resource."""

    def __init__(
        self,
        message: str = "Forbidden",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize AuthorizationError."""
        super().__init__(
            message=message,
            status_code=403,
            error_code="AUTHORIZATION_ERROR",
            details=details,
        )


class NotFoundError(EditAjaException):
    """Raised when a resource is not found."""

    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize NotFoundError."""
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details,
        )


class ValidationError(EditAjaException):
    """Raised when request input is invalid."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize ValidationError."""
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class InsufficientTokensError(EditAjaException):
    """Raised when a user does not hold enough diamonds."""

    def __init__(
        self,
        message: str = "Insufficient diamonds",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize InsufficientTokensError."""
        super().__init__(
            message=message,
            status_code=402,
            error_code="INSUFFICIENT_TOKENS",
            details=details,
        )


class QuotaExceededError(EditAjaException):
    """Raised when an anonymous visitor exceeds the daily generation quota."""

    def __init__(
        self,
        message: str = "Daily generation limit reached",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize QuotaExceededError."""
        super().__init__(
            message=message,
            status_code=429,
            error_code="QUOTA_EXCEEDED",
            details=details,
        )


class ConfigurationError(EditAjaException):
    """Raised when a required runtime setting is missing."""

    def __init__(
        self,
        message: str = "Service is not configured",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize ConfigurationError."""
        super().__init__(
            message=message,
            status_code=500,
            error_code="CONFIGURATION_ERROR",
            details=details,
        )


class PaymentGatewayError(EditAjaException):
    """Raised when Midtrans rejects or fails a request."""

    def __init__(
        self,
        message: str = "Payment gateway error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize PaymentGatewayError."""
        super().__init__(
            message=message,
            status_code=502,
            error_code="PAYMENT_GATEWAY_ERROR",
            details=details,
        )


class ImageHostError(EditAjaException):
    """Raised when the remote image host fails."""

    def __init__(
        self,
        message: str = "Image server error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize ImageHostError."""
        super().__init__(
            message=message,
            status_code=502,
            error_code="IMAGE_HOST_ERROR",
            details=details,
        )


class AIGenerationError(EditAjaException):
    """Raised when the AI image generation API fails."""

    def __init__(
        self,
        message: str = "Failed to generate image",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize AIGenerationError."""
        super().__init__(
            message=message,
            status_code=502,
            error_code="AI_GENERATION_ERROR",
            details=details,
        )


class CatalogFetchError(EditAjaException):
    """Raised when the viral prompt catalogue cannot be fetched or parsed."""

    def __init__(
        self,
        message: str = "Failed to fetch data",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize CatalogFetchError."""
        super().__init__(
            message=message,
            status_code=502,
            error_code="CATALOG_FETCH_ERROR",
            details=details,
        )


class ServiceUnavailableError(EditAjaException):
    """Raised when a backing service (usually Firestore) is rate limited."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        retry_after: int = 3600,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize ServiceUnavailableError."""
        details = dict(details or {})
        details.setdefault("retryAfter", retry_after)
        self.retry_after = retry_after
        super().__init__(
            message=message,
            status_code=503,
            error_code="SERVICE_UNAVAILABLE",
            details=details,
        )

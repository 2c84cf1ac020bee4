"""Custom exceptions for the CRM hub application."""


class CRMHubException(Exception):
    """Base exception for all CRM hub errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        """Initialize exception with message and optional details.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class WebhookException(CRMHubException):
    """Exceptions related to outbound webhooks."""

    pass


class InvalidWebhookPathException(WebhookException):
    """Stored webhook path is empty or cannot be parsed."""

    pass


class WebhookDeliveryException(WebhookException):
    """Webhook endpoint rejected the request or could not be reached."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ) -> None:
        """Initialize delivery exception.

        Args:
            message: Error message
            status_code: HTTP status returned by the endpoint, if any
            details: Additional error details
        """
        super().__init__(message, details)
        self.status_code = status_code


class APIException(CRMHubException):
    """API-related exceptions."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict | None = None,
    ) -> None:
        """Initialize API exception.

        Args:
            message: Error message
            status_code: HTTP status code
            details: Additional error details
        """
        super().__init__(message, details)
        self.status_code = status_code


class NotFoundException(APIException):
    """Resource not found."""

    def __init__(self, message: str = "Resource not found", details: dict | None = None) -> None:
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404, details=details)


class UnauthorizedException(APIException):
    """Unauthorized access."""

    def __init__(self, message: str = "Unauthorized", details: dict | None = None) -> None:
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401, details=details)


class ConflictException(APIException):
    """Resource conflicts with an existing one."""

    def __init__(self, message: str = "Conflict", details: dict | None = None) -> None:
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409, details=details)

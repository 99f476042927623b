"""
Custom exception classes for consistent error handling
Rendered as the standard ErrorResponse envelope by the app handlers
"""

from typing import Optional, Dict, Any


class PaymentsAPIException(Exception):
    """
    Base exception for the payments API
    Carries the HTTP status code and a stable error code
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "PAYMENTS_API_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationError(PaymentsAPIException):
    """Authentication error - HTTP 401 Unauthorized"""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTHENTICATION_ERROR"
        )

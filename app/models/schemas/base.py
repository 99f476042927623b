"""
Standardized API responses
"""

from datetime import datetime, timezone
from typing import Generic, TypeVar, Optional, Dict, Any

from pydantic import BaseModel, Field

from app.core.exceptions import PaymentsAPIException

T = TypeVar('T')


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class APIResponse(BaseModel, Generic[T]):
    """Standard success response"""
    success: bool = Field(True, description="Indicates if the request was successful")
    data: Optional[T] = Field(None, description="Response data payload")
    message: Optional[str] = Field(None, description="Human-readable message")
    timestamp: datetime = Field(default_factory=_utcnow, description="Response timestamp (UTC)")


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Stable error code, e.g. AUTHENTICATION_ERROR")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")


class ErrorResponse(BaseModel):
    """Error envelope returned for PaymentsAPIException"""
    success: bool = Field(False, description="Always false for error responses")
    error: ErrorDetail
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp (UTC)")

    @classmethod
    def from_exception(cls, exc: PaymentsAPIException) -> "ErrorResponse":
        return cls(error=ErrorDetail(code=exc.error_code, message=exc.message, details=exc.details or None))

"""
Health check routes
"""

from fastapi import APIRouter, Depends

from app.api.v1.dependencies import get_payment_logger
from app.models.schemas.base import APIResponse
from app.utils.logger import PaymentLogger, iso_timestamp

router = APIRouter()


@router.get("/health")
async def health_check(payment_logger: PaymentLogger = Depends(get_payment_logger)):
    return APIResponse(
        success=True,
        data={
            "status": "healthy",
            "version": "1.0.0",
            "log_dir": str(payment_logger.log_dir),
            "timestamp": iso_timestamp()
        },
        message="API is healthy"
    )

"""
Log monitoring routes
Sink sizes, rotation counters and a manual rotation sweep
"""

from fastapi import APIRouter, Depends

from app.api.v1.dependencies import get_payment_logger
from app.core.security import validate_monitoring_key
from app.models.schemas.base import APIResponse
from app.models.schemas.monitoring import LogStats, RotationResult
from app.utils.logger import PaymentLogger

router = APIRouter(dependencies=[Depends(validate_monitoring_key)])


@router.get("/monitoring/logs", response_model=APIResponse[LogStats])
async def log_stats(payment_logger: PaymentLogger = Depends(get_payment_logger)):
    """Current size of every category log and rotation counters"""
    return APIResponse(
        success=True,
        data=LogStats(**payment_logger.stats()),
        message="Logging statistics"
    )


@router.post("/monitoring/logs/rotate", response_model=APIResponse[RotationResult])
async def rotate_logs(payment_logger: PaymentLogger = Depends(get_payment_logger)):
    """Run a rotation sweep now instead of waiting for the hourly one"""
    backups = payment_logger.rotate_logs()
    return APIResponse(
        success=True,
        data=RotationResult(rotated=[str(path) for path in backups]),
        message=f"{len(backups)} log file(s) rotated"
    )

"""
FASTAPI APPLICATION
Entry point of the M-Pesa payments logging API
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.middleware.request_tracker import RequestTrackerMiddleware
from app.api.v1.routers import health, monitoring
from app.core.config import Settings, get_settings
from app.core.exceptions import PaymentsAPIException
from app.models.schemas.base import ErrorResponse
from app.utils.logger import LogRotationTask, PaymentLogger


def create_app(settings: Optional[Settings] = None, payment_logger: Optional[PaymentLogger] = None) -> FastAPI:
    """
    Build the application around a single PaymentLogger.

    The logger is stored on app.state and handed to the request tracker; the
    lifespan owns the hourly rotation task and cancels it on shutdown.
    """
    settings = settings or get_settings()
    payment_logger = payment_logger or PaymentLogger(settings)
    rotation = LogRotationTask(payment_logger, settings.LOG_ROTATION_INTERVAL_SECONDS)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        rotation.start()
        payment_logger.info(
            f"SERVICE_START | Name: {settings.PROJECT_NAME} | LogDir: {payment_logger.log_dir} | "
            f"RotationInterval: {settings.LOG_ROTATION_INTERVAL_SECONDS}s"
        )
        yield
        # Shutdown
        await rotation.stop()
        payment_logger.info(f"SERVICE_STOP | Name: {settings.PROJECT_NAME}")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Logging and request tracking for the M-Pesa payment backend",
        version="1.0.0",
        debug=settings.DEBUG,
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.logger = payment_logger
    app.state.rotation = rotation

    app.add_middleware(RequestTrackerMiddleware, logger=payment_logger)

    @app.exception_handler(PaymentsAPIException)
    async def payments_exception_handler(request: Request, exc: PaymentsAPIException):
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse.from_exception(exc).model_dump(mode="json")
        )

    # 🌐 ROUTERS
    app.include_router(health.router, prefix=settings.API_V1_STR, tags=["Health"])
    app.include_router(monitoring.router, prefix=settings.API_V1_STR, tags=["Monitoring"])

    @app.get("/")
    async def root():
        """Root endpoint for status checks"""
        return {
            "message": settings.PROJECT_NAME,
            "status": "online",
            "version": "1.0.0"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=get_settings().DEBUG)

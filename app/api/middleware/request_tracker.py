"""
Request tracking middleware
Times every request and reports its outcome through the payment logger
"""

import time
from typing import Callable, Optional

from fastapi import Request
from starlette.background import BackgroundTask, BackgroundTasks
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.utils.logger import PaymentLogger


def request_url(request: Request) -> str:
    """Path plus query string, as the client sent it"""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


class RequestTrackerMiddleware(BaseHTTPMiddleware):
    """
    Logs every request on arrival and its outcome once the response is sent.

    The outcome is logged from a background task attached to the response, so
    it runs after the last body chunk went out and the bytes sent to the
    client are never touched. Responses with status >= 400 are logged as API
    errors, everything else as API responses; requests slower than the
    threshold also get a performance entry.

    When the client disconnects before the body is fully sent, the response
    never reaches its background work and no outcome line is written.
    """

    def __init__(
        self,
        app,
        logger: PaymentLogger,
        slow_threshold_ms: Optional[float] = None,
        clock: Callable[[], float] = time.perf_counter
    ):
        super().__init__(app)
        self.logger = logger
        if slow_threshold_ms is None:
            slow_threshold_ms = logger.settings.SLOW_REQUEST_THRESHOLD_MS
        self.slow_threshold_ms = slow_threshold_ms
        self.clock = clock

    async def dispatch(self, request: Request, call_next) -> Response:
        # Start timer
        start_time = self.clock()
        method = request.method
        url = request_url(request)

        self.logger.api.request(
            method,
            url,
            request.client.host if request.client else "unknown",
            request.headers.get("user-agent") or "unknown"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            # Nothing was sent; the framework renders the 500
            elapsed_ms = self._elapsed_ms(start_time)
            self.logger.api.error(method, url, str(e), 500)
            self.logger.error(e, {"method": method, "url": url})
            self._track_slow(method, url, 500, elapsed_ms)
            raise

        self.attach_outcome(response, BackgroundTask(self._log_outcome, method, url, response, start_time))
        return response

    @staticmethod
    def attach_outcome(response: Response, finished: BackgroundTask):
        """Run the outcome logging first, then whatever background work the response already had"""
        if response.background is None:
            response.background = finished
        else:
            response.background = BackgroundTasks(tasks=[finished, response.background])

    def _log_outcome(self, method: str, url: str, response: Response, start_time: float):
        elapsed_ms = self._elapsed_ms(start_time)
        status_code = response.status_code

        if status_code >= 400:
            self.logger.api.error(method, url, f"HTTP {status_code}", status_code)
        else:
            self.logger.api.response(method, url, status_code, elapsed_ms)

        self._track_slow(method, url, status_code, elapsed_ms)

    def _track_slow(self, method: str, url: str, status_code: int, elapsed_ms: float):
        if elapsed_ms > self.slow_threshold_ms:
            self.logger.performance.timing(
                "api_request",
                elapsed_ms,
                {"method": method, "url": url, "statusCode": status_code}
            )

    def _elapsed_ms(self, start_time: float) -> float:
        return round((self.clock() - start_time) * 1000, 2)

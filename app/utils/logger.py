"""
Payment backend logger
Category log files with a colorized console echo and size-based rotation
"""

import asyncio
import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

import psutil

from app.core.config import Settings, get_settings

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

# Category -> file name inside LOG_DIR
LOG_FILES = {
    "payment": "payments.log",
    "webhook": "webhooks.log",
    "error": "errors.log",
    "performance": "performance.log",
    "api": "api.log",
    "firebase": "firebase.log",
}

LEVEL_COLORS = {
    "INFO": "\x1b[36m",
    "SUCCESS": "\x1b[32m",
    "WARNING": "\x1b[33m",
    "ERROR": "\x1b[31m",
    "DEBUG": "\x1b[35m",
}
RESET = "\x1b[0m"

MISSING = "N/A"


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC ISO-8601 with millisecond precision, e.g. 2024-05-01T10:00:00.123Z"""
    moment = moment or datetime.now(timezone.utc)
    stamp = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def rotated_path(path: Path, moment: Optional[datetime] = None) -> Path:
    """payments.log -> payments_2024-05-01T10-00-00-123Z.log"""
    stamp = iso_timestamp(moment).replace(":", "-").replace(".", "-")
    return path.with_name(f"{path.stem}_{stamp}{path.suffix}")


def memory_snapshot() -> Dict[str, int]:
    """Memory usage of the current process, in bytes"""
    info = psutil.Process().memory_info()
    return {"rss": info.rss, "vms": info.vms}


def _field(value: Any) -> str:
    return MISSING if value is None else str(value)


def _json(value: Any) -> str:
    try:
        return json.dumps(value if value is not None else {}, default=str)
    except (TypeError, ValueError):
        # Non-string keys or circular references
        return str(value)


def _milliseconds(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _stack(error: Any) -> str:
    if not isinstance(error, BaseException) or error.__traceback__ is None:
        return MISSING
    frames = traceback.extract_tb(error.__traceback__)
    return " -> ".join(f"{frame.filename}:{frame.lineno} in {frame.name}" for frame in frames)


class LineFormatter(logging.Formatter):
    """[timestamp] [LEVEL] message"""

    def __init__(self):
        super().__init__("[%(asctime)s] [%(levelname)s] %(message)s")

    def formatTime(self, record, datefmt=None):
        return iso_timestamp(datetime.fromtimestamp(record.created, tz=timezone.utc))


class ColorFormatter(LineFormatter):
    """Console variant: level prefix colored, reset before the message"""

    def __init__(self, colors: bool = True):
        super().__init__()
        self.colors = colors

    def format(self, record):
        prefix = f"[{self.formatTime(record)}] [{record.levelname}]"
        if not self.colors:
            return f"{prefix} {record.getMessage()}"
        color = LEVEL_COLORS.get(record.levelname, LEVEL_COLORS["INFO"])
        return f"{color}{prefix}{RESET} {record.getMessage()}"


class CategoryFileHandler(logging.Handler):
    """
    Appends one formatted line per record to a category file.

    The file is opened with O_APPEND for every record and written with a single
    write call, so concurrent writers never split a line and a write after a
    rotation recreates the path. Failures are reported to the console stream
    and never raised.
    """

    def __init__(self, path: Path, console: TextIO):
        super().__init__()
        self.path = path
        self.console = console

    def emit(self, record):
        try:
            line = (self.format(record) + "\n").encode("utf-8")
            fd = os.open(self.path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
            try:
                os.write(fd, line)
            finally:
                os.close(fd)
        except Exception:
            self.handleError(record)

    def handleError(self, record):
        error = sys.exc_info()[1]
        try:
            self.console.write(f"Failed to write to log file {self.path}: {error}\n")
            self.console.flush()
        except (OSError, ValueError):
            pass


class _Category:
    """Base for the category groups; writes go through the owning service"""

    category = ""

    def __init__(self, service: "PaymentLogger"):
        self._service = service

    def _log(self, level: int, message: str):
        self._service.write(self.category, level, message)


class PaymentLog(_Category):
    category = "payment"

    def init(self, reference, email=None, amount=None, booking_id=None):
        self._log(logging.INFO,
                  f"PAYMENT_INIT | Ref: {_field(reference)} | Email: {_field(email)} | "
                  f"Amount: KES {_field(amount)} | Booking: {_field(booking_id)}")

    def success(self, reference, amount=None, payment_method=None, completed_at=None):
        self._log(SUCCESS,
                  f"PAYMENT_SUCCESS | Ref: {_field(reference)} | Amount: KES {_field(amount)} | "
                  f"Method: {_field(payment_method)} | CompletedAt: {_field(completed_at)}")

    def failed(self, reference, error, amount=None, gateway_response=None):
        self._log(logging.ERROR,
                  f"PAYMENT_FAILED | Ref: {_field(reference)} | Error: {_field(error)} | "
                  f"Amount: KES {_field(amount)} | Reason: {_field(gateway_response)}")

    def retry(self, original_ref, new_ref, retry_count):
        self._log(logging.WARNING,
                  f"PAYMENT_RETRY | Original: {_field(original_ref)} | New: {_field(new_ref)} | "
                  f"RetryCount: {_field(retry_count)}")

    def cancel(self, reference, reason):
        self._log(logging.WARNING, f"PAYMENT_CANCELLED | Ref: {_field(reference)} | Reason: {_field(reason)}")

    def status(self, reference, status, details: Optional[Dict[str, Any]] = None):
        self._log(logging.DEBUG,
                  f"PAYMENT_STATUS | Ref: {_field(reference)} | Status: {_field(status)} | "
                  f"Details: {_json(details)}")


class WebhookLog(_Category):
    category = "webhook"

    def incoming(self, event, reference=None):
        self._log(logging.INFO, f"WEBHOOK_INCOMING | Event: {_field(event)} | Ref: {_field(reference)}")

    def verified(self, event, reference):
        self._log(SUCCESS, f"WEBHOOK_VERIFIED | Event: {_field(event)} | Ref: {_field(reference)}")

    def failed(self, event, error):
        self._log(logging.ERROR, f"WEBHOOK_FAILED | Event: {_field(event)} | Error: {_field(error)}")

    def processed(self, event, reference, action):
        self._log(SUCCESS,
                  f"WEBHOOK_PROCESSED | Event: {_field(event)} | Ref: {_field(reference)} | "
                  f"Action: {_field(action)}")

    def signature_error(self, reason):
        self._log(logging.ERROR, f"WEBHOOK_SIGNATURE_ERROR | Reason: {_field(reason)}")


class ApiLog(_Category):
    category = "api"

    def request(self, method, endpoint, ip, user_agent):
        self._log(logging.INFO,
                  f"API_REQUEST | Method: {_field(method)} | Endpoint: {_field(endpoint)} | "
                  f"IP: {_field(ip)} | UA: {_field(user_agent)}")

    def response(self, method, endpoint, status_code, response_time_ms):
        self._log(logging.INFO,
                  f"API_RESPONSE | Method: {_field(method)} | Endpoint: {_field(endpoint)} | "
                  f"Status: {_field(status_code)} | Time: {_field(response_time_ms)}ms")

    def error(self, method, endpoint, error, status_code):
        self._log(logging.ERROR,
                  f"API_ERROR | Method: {_field(method)} | Endpoint: {_field(endpoint)} | "
                  f"Error: {_field(error)} | Status: {_field(status_code)}")


class FirebaseLog(_Category):
    category = "firebase"

    def write(self, collection, document, operation):
        self._log(logging.DEBUG,
                  f"FIREBASE_WRITE | Collection: {_field(collection)} | Doc: {_field(document)} | "
                  f"Operation: {_field(operation)}")

    def read(self, collection, document):
        self._log(logging.DEBUG, f"FIREBASE_READ | Collection: {_field(collection)} | Doc: {_field(document)}")

    def error(self, operation, error):
        self._log(logging.ERROR, f"FIREBASE_ERROR | Operation: {_field(operation)} | Error: {_field(error)}")


class PerformanceLog(_Category):
    category = "performance"

    def timing(self, operation, duration_ms, details: Optional[Dict[str, Any]] = None):
        self._log(logging.INFO,
                  f"PERFORMANCE | Operation: {_field(operation)} | Duration: {_field(duration_ms)}ms | "
                  f"Details: {_json(details)}")

        duration = _milliseconds(duration_ms)
        if duration is not None and duration > self._service.slow_operation_ms:
            self._service.console(logging.WARNING, f"SLOW_OPERATION: {operation} took {duration_ms}ms")

    def memory(self, operation, usage: Optional[Dict[str, Any]] = None):
        if usage is None:
            usage = memory_snapshot()
        self._log(logging.DEBUG, f"MEMORY | Operation: {_field(operation)} | Usage: {_json(usage)}")


class PaymentLogger:
    """
    Logging service for the payment backend.

    Construct one per process and hand it to whatever needs to log (the
    request tracker, routes through ``app.state.logger``). Each category has
    its own append-only file under ``LOG_DIR``; every entry is echoed to the
    console. Sink failures are reported to the console and never raised.
    """

    def __init__(self, settings: Optional[Settings] = None, stream: Optional[TextIO] = None):
        self.settings = settings or get_settings()
        self.log_dir = Path(self.settings.LOG_DIR)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.slow_operation_ms = self.settings.SLOW_OPERATION_THRESHOLD_MS
        self.stream = stream if stream is not None else sys.stdout

        self.paths = {category: self.log_dir / name for category, name in LOG_FILES.items()}

        console_handler = logging.StreamHandler(self.stream)
        console_handler.setFormatter(ColorFormatter(colors=self.settings.LOG_CONSOLE_COLORS))
        self._console = self._build_logger("console", console_handler)

        self._files = {}
        for category, path in self.paths.items():
            file_handler = CategoryFileHandler(path, self.stream)
            file_handler.setFormatter(LineFormatter())
            self._files[category] = self._build_logger(category, file_handler)

        self.rotations = 0
        self.last_rotation_check: Optional[str] = None

        self.payment = PaymentLog(self)
        self.webhook = WebhookLog(self)
        self.api = ApiLog(self)
        self.firebase = FirebaseLog(self)
        self.performance = PerformanceLog(self)

    def _build_logger(self, suffix: str, handler: logging.Handler) -> logging.Logger:
        # Kept out of the logging manager so each service owns its handlers
        logger = logging.Logger(f"{self.settings.LOGGER_NAME}.{suffix}", logging.DEBUG)
        logger.propagate = False
        logger.addHandler(handler)
        return logger

    def write(self, category: str, level: int, message: str):
        """One line to the category file and one to the console"""
        self._files[category].log(level, message)
        self._console.log(level, message)

    def console(self, level: int, message: str):
        self._console.log(level, message)

    # Generic logging

    def error(self, error: Any, context: Optional[Dict[str, Any]] = None):
        message = str(error) if isinstance(error, BaseException) else _field(error)
        self.write("error", logging.ERROR,
                   f"ERROR | Message: {message} | Stack: {_stack(error)} | Context: {_json(context)}")

    def info(self, message: str):
        self.write("api", logging.INFO, message)

    def success(self, message: str):
        self.write("api", SUCCESS, message)

    def warning(self, message: str):
        self.write("api", logging.WARNING, message)

    def debug(self, message: str):
        self.write("api", logging.DEBUG, message)

    # Rotation

    def rotate_logs(self) -> List[Path]:
        """
        Rename every category file larger than LOG_MAX_BYTES.

        The backup gets a timestamp suffix and the original path is left absent
        until the next write. Files that are missing or cannot be renamed are
        skipped.

        Returns:
            Backup paths created by this sweep
        """
        self.last_rotation_check = iso_timestamp()
        backups = []

        for path in self.paths.values():
            try:
                if path.stat().st_size <= self.settings.LOG_MAX_BYTES:
                    continue
                backup = rotated_path(path)
                path.rename(backup)
            except OSError:
                continue

            backups.append(backup)
            self.rotations += 1
            self.console(logging.INFO, f"LOG_ROTATED | File: {path} | Backup: {backup}")

        return backups

    def stats(self) -> Dict[str, Any]:
        sinks = {}
        for category, path in self.paths.items():
            try:
                size = path.stat().st_size
                exists = True
            except OSError:
                size = 0
                exists = False
            sinks[category] = {"path": str(path), "exists": exists, "size_bytes": size}

        return {
            "log_dir": str(self.log_dir),
            "sinks": sinks,
            "max_bytes": self.settings.LOG_MAX_BYTES,
            "rotations": self.rotations,
            "last_rotation_check": self.last_rotation_check,
        }


class LogRotationTask:
    """Background task that sweeps the logger's files on a fixed interval"""

    def __init__(self, logger: PaymentLogger, interval_seconds: Optional[float] = None):
        self.logger = logger
        if interval_seconds is None:
            interval_seconds = logger.settings.LOG_ROTATION_INTERVAL_SECONDS
        self.interval_seconds = interval_seconds
        self.task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    def start(self):
        if not self.running:
            self.task = asyncio.create_task(self._run())

    async def stop(self):
        if self.task is None:
            return
        self.task.cancel()
        try:
            await self.task
        except asyncio.CancelledError:
            pass
        self.task = None

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.logger.rotate_logs()
            except Exception as e:
                self.logger.error(e, {"operation": "rotate_logs"})

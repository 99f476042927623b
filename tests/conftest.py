"""
Shared fixtures: every test logs into its own temporary directory
"""
import io
import os
import tempfile

# app.main builds a module-level app on import; keep its logs out of the repo
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="mpesa-logs-"))

import pytest

from app.core.config import Settings
from app.utils.logger import PaymentLogger


@pytest.fixture
def settings(tmp_path):
    return Settings(LOG_DIR=str(tmp_path / "logs"))


@pytest.fixture
def console():
    """Console sink the logger writes to instead of stdout"""
    return io.StringIO()


@pytest.fixture
def payment_logger(settings, console):
    return PaymentLogger(settings, stream=console)


@pytest.fixture
def log_lines(payment_logger):
    """Lines of a category log file, [] when it does not exist"""
    def read(category):
        path = payment_logger.paths[category]
        if not path.exists():
            return []
        return path.read_text(encoding="utf-8").splitlines()
    return read

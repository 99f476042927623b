"""
Tests for size-based rotation and the background rotation task
"""
import asyncio

import pytest

from app.core.config import Settings
from app.utils.logger import LogRotationTask, PaymentLogger

TEN_MIB = 10 * 1024 * 1024


def test_default_threshold_is_ten_mib(payment_logger):
    assert payment_logger.settings.LOG_MAX_BYTES == TEN_MIB


def test_oversized_file_is_renamed_with_timestamp(payment_logger, console):
    path = payment_logger.paths["payment"]
    path.write_bytes(b"x" * (TEN_MIB + 1))

    backups = payment_logger.rotate_logs()

    assert len(backups) == 1
    backup = backups[0]
    assert not path.exists()
    assert backup.exists()
    assert backup != path
    assert backup.parent == path.parent
    assert backup.name.startswith("payments_")
    assert backup.suffix == ".log"
    assert ":" not in backup.name
    assert backup.stat().st_size == TEN_MIB + 1
    assert "LOG_ROTATED" in console.getvalue()


def test_file_below_threshold_is_untouched(payment_logger):
    path = payment_logger.paths["api"]
    path.write_bytes(b"x" * TEN_MIB)

    assert payment_logger.rotate_logs() == []
    assert path.exists()
    assert path.stat().st_size == TEN_MIB
    assert sorted(p.name for p in payment_logger.log_dir.iterdir()) == ["api.log"]


def test_next_write_recreates_rotated_file(tmp_path, console):
    payment_logger = PaymentLogger(Settings(LOG_DIR=str(tmp_path), LOG_MAX_BYTES=100), stream=console)
    for i in range(5):
        payment_logger.webhook.incoming("charge.success", f"R{i}")

    assert len(payment_logger.rotate_logs()) == 1

    payment_logger.webhook.incoming("charge.success", "R-after")
    lines = payment_logger.paths["webhook"].read_text().splitlines()
    assert len(lines) == 1
    assert lines[0].endswith("Ref: R-after")


def test_missing_files_are_skipped(payment_logger):
    big = payment_logger.paths["error"]
    big.write_bytes(b"x" * (TEN_MIB + 1))

    backups = payment_logger.rotate_logs()

    assert [b.name.split("_")[0] for b in backups] == ["errors"]
    assert not payment_logger.paths["payment"].exists()


def test_rename_failure_does_not_block_other_files(tmp_path, console, monkeypatch):
    payment_logger = PaymentLogger(Settings(LOG_DIR=str(tmp_path), LOG_MAX_BYTES=10), stream=console)
    payment_logger.payment.cancel("R1", "timeout")
    payment_logger.webhook.failed("charge.success", "bad payload")

    payments = payment_logger.paths["payment"]
    original_rename = type(payments).rename

    def rename(self, target):
        if self.name == "payments.log":
            raise PermissionError("read-only")
        return original_rename(self, target)

    monkeypatch.setattr(type(payments), "rename", rename)

    backups = payment_logger.rotate_logs()

    assert [b.name.split("_")[0] for b in backups] == ["webhooks"]
    assert payments.exists()


def test_stats_report_sinks_and_rotations(tmp_path, console):
    payment_logger = PaymentLogger(Settings(LOG_DIR=str(tmp_path), LOG_MAX_BYTES=10), stream=console)
    payment_logger.api.request("GET", "/", "127.0.0.1", "pytest")

    before = payment_logger.stats()
    assert before["sinks"]["api"]["exists"] is True
    assert before["sinks"]["api"]["size_bytes"] > 0
    assert before["sinks"]["payment"] == {
        "path": str(payment_logger.paths["payment"]), "exists": False, "size_bytes": 0
    }
    assert before["rotations"] == 0
    assert before["last_rotation_check"] is None

    payment_logger.rotate_logs()

    after = payment_logger.stats()
    assert after["rotations"] == 1
    assert after["sinks"]["api"]["exists"] is False
    assert after["last_rotation_check"] is not None


@pytest.mark.asyncio
async def test_rotation_task_sweeps_on_interval(tmp_path, console):
    payment_logger = PaymentLogger(Settings(LOG_DIR=str(tmp_path), LOG_MAX_BYTES=10), stream=console)
    payment_logger.info("enough bytes to rotate")

    task = LogRotationTask(payment_logger, interval_seconds=0.01)
    task.start()
    try:
        for _ in range(100):
            if payment_logger.rotations:
                break
            await asyncio.sleep(0.01)
    finally:
        await task.stop()

    assert payment_logger.rotations == 1
    assert not payment_logger.paths["api"].exists()


@pytest.mark.asyncio
async def test_rotation_task_start_is_idempotent_and_stop_cancels(payment_logger):
    task = LogRotationTask(payment_logger, interval_seconds=3600)

    task.start()
    first = task.task
    task.start()

    assert task.task is first
    assert task.running

    await task.stop()

    assert first.cancelled()
    assert task.task is None
    assert not task.running


@pytest.mark.asyncio
async def test_rotation_task_survives_sweep_errors(payment_logger, log_lines, monkeypatch):
    calls = []

    def broken_sweep():
        calls.append(1)
        raise RuntimeError("disk gone")

    monkeypatch.setattr(payment_logger, "rotate_logs", broken_sweep)

    task = LogRotationTask(payment_logger, interval_seconds=0.01)
    task.start()
    try:
        for _ in range(100):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.01)
    finally:
        await task.stop()

    assert len(calls) >= 2
    assert "ERROR | Message: disk gone" in log_lines("error")[0]

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest

from mongo_backup import cli
from mongo_backup.dump import DumpError
from mongo_backup.logger import configure_logging
from mongo_backup.orchestrator import BackupResult
from mongo_backup.upload import UploadOutcome


@pytest.fixture(autouse=True)
def _keep_log_handlers():
    with patch("mongo_backup.cli.configure_logging") as configure:
        yield configure


def test_main_returns_zero_on_success():
    started = datetime(2024, 1, 1, tzinfo=timezone.utc)
    orchestrator = Mock()
    orchestrator.run.return_value = BackupResult(
        file_name="mongodb-backup.gz",
        remote_key="mongodb-backup.gz",
        outcome=UploadOutcome(bucket="nightly-backups", key="mongodb-backup.gz", etag="abc", size_bytes=1),
        started_at=started,
        completed_at=started + timedelta(seconds=3),
    )

    assert cli.main(orchestrator) == 0


def test_main_returns_one_on_failure(caplog):
    orchestrator = Mock()
    orchestrator.run.side_effect = DumpError("database connection failed")

    assert cli.main(orchestrator) == 1
    assert "A critical unexpected error occurred at the top level: database connection failed" in caplog.text


def test_main_uses_log_level_from_environment(monkeypatch, _keep_log_handlers):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    orchestrator = Mock()
    orchestrator.run.side_effect = DumpError("boom")

    cli.main(orchestrator)

    _keep_log_handlers.assert_called_once_with("debug")


def test_configure_logging_falls_back_to_info():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging("not-a-level")
        assert root.level == logging.INFO
        configure_logging("debug")
        assert root.level == logging.DEBUG
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)

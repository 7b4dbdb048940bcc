from __future__ import annotations

import logging
import subprocess
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, List, Optional, Union

from .config import BackupError

LOG = logging.getLogger(__name__)

DUMP_EXECUTABLE = "mongodump"


class DumpError(BackupError):
    """Raised when mongodump cannot be started or exits unsuccessfully."""


@dataclass(frozen=True)
class BackupArtifact:
    path: Path
    file_name: str


def ensure_directory(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOG.error("Error creating or ensuring directory %s: %s", directory, exc)
        raise
    LOG.info("Temporary backup directory ensured: %s", directory)


def backup_file_name(timestamp: Optional[datetime] = None) -> str:
    moment = timestamp or datetime.now(timezone.utc)
    return f"mongodb-backup-{moment.strftime('%Y-%m-%dT%H-%M-%S-%fZ')}.gz"


def produce_dump(
    connection_string: str,
    working_directory: Union[str, Path],
    executable: str = DUMP_EXECUTABLE,
) -> BackupArtifact:
    directory = Path(working_directory)
    ensure_directory(directory)

    file_name = backup_file_name()
    archive_path = directory / file_name
    cmd = [executable, f"--uri={connection_string}", f"--archive={archive_path}", "--gzip"]

    LOG.info("Starting %s into %s", executable, archive_path)
    try:
        process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as exc:
        raise DumpError(f"{executable} failed: {exc}") from exc

    stdout_lines: List[str] = []
    stderr_lines: List[str] = []
    readers = [
        threading.Thread(target=_drain, args=(process.stdout, stdout_lines, f"{executable} stdout"), daemon=True),
        threading.Thread(target=_drain, args=(process.stderr, stderr_lines, f"{executable} stderr"), daemon=True),
    ]
    try:
        for reader in readers:
            reader.start()
        for reader in readers:
            reader.join()
        exit_code = process.wait()
    except BaseException:
        process.kill()
        process.wait()
        raise

    stderr_text = "".join(stderr_lines).strip()
    if exit_code != 0:
        LOG.error("%s stderr: %s", executable, stderr_text)
        raise DumpError(
            f"{executable} failed with exit code {exit_code}: {stderr_text or 'No error details'}"
        )

    if not archive_path.is_file():
        raise DumpError(f"{executable} exited successfully but produced no archive at {archive_path}")

    LOG.info("Backup created successfully: %s", archive_path)
    return BackupArtifact(path=archive_path, file_name=file_name)


def _drain(stream: Optional[IO[bytes]], sink: List[str], label: str) -> None:
    # mongodump reports progress on stderr, so both streams are logged at INFO
    if stream is None:
        return
    with stream:
        for raw in iter(stream.readline, b""):
            line = raw.decode("utf-8", "replace")
            sink.append(line)
            if line.strip():
                LOG.info("%s: %s", label, line.rstrip())

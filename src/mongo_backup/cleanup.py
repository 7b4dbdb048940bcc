from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Union

from .config import BackupError

LOG = logging.getLogger(__name__)


class CleanupError(BackupError):
    """Raised when a local backup file or directory cannot be removed."""


def remove_file(path: Union[str, Path]) -> None:
    file_path = Path(path)
    try:
        file_path.unlink(missing_ok=True)
    except OSError as exc:
        LOG.error("Error deleting local file %s: %s", file_path, exc)
        raise CleanupError(f"Could not delete {file_path}: {exc}") from exc
    LOG.info("Successfully deleted local backup file: %s", file_path)


def remove_directory(path: Union[str, Path]) -> None:
    directory = Path(path)
    try:
        shutil.rmtree(directory)
    except FileNotFoundError:
        pass
    except OSError as exc:
        LOG.error("Error deleting directory %s: %s", directory, exc)
        raise CleanupError(f"Could not delete {directory}: {exc}") from exc
    LOG.info("Successfully deleted temporary directory: %s", directory)

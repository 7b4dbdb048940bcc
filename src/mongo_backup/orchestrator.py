from __future__ import annotations

import logging
import tempfile
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Union

from .cleanup import remove_directory, remove_file
from .config import BackupConfig, S3ClientConfig, load_config
from .dump import BackupArtifact, produce_dump
from .upload import UploadOutcome, upload_file

LOG = logging.getLogger(__name__)

DEFAULT_WORKING_DIRECTORY = Path(tempfile.gettempdir()) / "tmp_mongo_backups"

ConfigLoader = Callable[[], BackupConfig]
DumpProducer = Callable[[str, Path], BackupArtifact]
Uploader = Callable[[S3ClientConfig, str, Path, str], UploadOutcome]
Remover = Callable[[Path], None]


@dataclass(frozen=True)
class BackupResult:
    file_name: str
    remote_key: str
    outcome: UploadOutcome
    started_at: datetime
    completed_at: datetime


class BackupOrchestrator:
    """Runs dump, upload and cleanup as one unit.

    Local cleanup always runs once per call to :meth:`run`, whichever step
    failed. Cleanup failures are logged and never replace the run's own
    result.
    """

    def __init__(
        self,
        config_loader: ConfigLoader = load_config,
        dump_producer: DumpProducer = produce_dump,
        uploader: Uploader = upload_file,
        file_remover: Remover = remove_file,
        directory_remover: Remover = remove_directory,
        working_directory: Union[str, Path] = DEFAULT_WORKING_DIRECTORY,
    ) -> None:
        self._config_loader = config_loader
        self._dump_producer = dump_producer
        self._uploader = uploader
        self._remove_file = file_remover
        self._remove_directory = directory_remover
        self._working_directory = Path(working_directory)

    @property
    def working_directory(self) -> Path:
        return self._working_directory

    def run(self) -> BackupResult:
        started_at = datetime.now(timezone.utc)
        artifact_path: Optional[Path] = None

        try:
            config = self._config_loader()
            artifact = self._dump_producer(config.mongo_uri, self._working_directory)
            artifact_path = artifact.path

            outcome = self._uploader(
                config.s3_client_config(),
                config.s3_bucket_name,
                artifact.path,
                artifact.file_name,
            )
        except BaseException as exc:
            _log_failure(exc)
            raise
        finally:
            self._cleanup(artifact_path)

        return BackupResult(
            file_name=artifact.file_name,
            remote_key=artifact.file_name,
            outcome=outcome,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )

    def _cleanup(self, artifact_path: Optional[Path]) -> None:
        if artifact_path is not None:
            try:
                self._remove_file(artifact_path)
            except Exception as exc:  # noqa: BLE001
                LOG.error("Cleanup failed but continuing: %s", exc)

        try:
            self._remove_directory(self._working_directory)
        except Exception as exc:  # noqa: BLE001
            LOG.error("Cleanup failed but continuing: %s", exc)


def _log_failure(exc: BaseException) -> None:
    LOG.error("Backup failed: %r", exc)
    # KeyboardInterrupt, SystemExit: repr only
    if not isinstance(exc, Exception):
        return
    LOG.error("Error details: %s", exc)
    LOG.error(
        "Stack trace:\n%s",
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).rstrip(),
    )

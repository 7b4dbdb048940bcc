from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from .logger import configure_logging
from .orchestrator import BackupOrchestrator

LOG = logging.getLogger(__name__)


def main(orchestrator: Optional[BackupOrchestrator] = None) -> int:
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    orchestrator = orchestrator or BackupOrchestrator()

    try:
        result = orchestrator.run()
    except Exception as exc:  # noqa: BLE001
        LOG.critical("A critical unexpected error occurred at the top level: %s", exc)
        return 1

    LOG.info(
        "Backup %s uploaded to s3://%s/%s in %.2fs",
        result.file_name,
        result.outcome.bucket,
        result.remote_key,
        (result.completed_at - result.started_at).total_seconds(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

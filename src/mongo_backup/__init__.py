"""MongoDB to S3 backup package."""

from __future__ import annotations

from .config import BackupConfig, ConfigurationError, load_config  # noqa: F401
from .orchestrator import BackupOrchestrator, BackupResult  # noqa: F401

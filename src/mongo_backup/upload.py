from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import BackupError, S3ClientConfig

LOG = logging.getLogger(__name__)

MEGABYTE = 1024 * 1024


class UploadError(BackupError):
    """Raised when the archive cannot be transferred to object storage."""


@dataclass(frozen=True)
class UploadOutcome:
    bucket: str
    key: str
    etag: Optional[str]
    size_bytes: int


class UploadProgress:
    """Thread-safe byte counter passed to boto3 as the transfer callback."""

    def __init__(self, total: Optional[int]) -> None:
        self._total = total
        self._loaded = 0
        self._last_percentage: Optional[int] = None
        self._lock = threading.Lock()

    def __call__(self, bytes_amount: int) -> None:
        with self._lock:
            self._loaded += bytes_amount
            self.report(self._loaded, self._total)

    def report(self, loaded: Optional[int], total: Optional[int]) -> None:
        if not loaded or not total:
            return
        percentage = round(loaded / total * 100)
        if percentage == self._last_percentage:
            return
        self._last_percentage = percentage
        LOG.info(
            "Upload progress: %d%% (%.2f/%.2f MB)",
            percentage,
            loaded / MEGABYTE,
            total / MEGABYTE,
        )


def build_client(config: S3ClientConfig):
    return boto3.client(
        "s3",
        region_name=config.region,
        aws_access_key_id=config.access_key_id,
        aws_secret_access_key=config.secret_access_key,
        endpoint_url=config.endpoint_url or None,
    )


def upload_file(
    config: S3ClientConfig,
    bucket: str,
    local_path: Union[str, Path],
    remote_key: str,
) -> UploadOutcome:
    try:
        client = build_client(config)
    except (BotoCoreError, ValueError) as exc:
        LOG.error("Error creating S3 client: %s", exc)
        raise UploadError(f"Could not create S3 client: {exc}") from exc
    LOG.info("Uploading %s to S3 bucket %s...", remote_key, bucket)

    try:
        with open(local_path, "rb") as fh:
            size_bytes = os.fstat(fh.fileno()).st_size
            client.upload_fileobj(fh, bucket, remote_key, Callback=UploadProgress(size_bytes))
        response = client.head_object(Bucket=bucket, Key=remote_key)
    except (BotoCoreError, ClientError, OSError) as exc:
        LOG.error("Error uploading file to S3: %s", exc)
        raise UploadError(f"Upload of {remote_key} to bucket {bucket} failed: {exc}") from exc
    finally:
        client.close()

    etag = response.get("ETag")
    LOG.info("File uploaded successfully to S3: s3://%s/%s", bucket, remote_key)
    return UploadOutcome(
        bucket=bucket,
        key=remote_key,
        etag=etag.strip('"') if etag else None,
        size_bytes=size_bytes,
    )

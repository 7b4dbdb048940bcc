from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, SecretStr, TypeAdapter, ValidationError, field_validator


class BackupError(Exception):
    """Base class for failures raised by the backup run."""


class ConfigurationError(BackupError):
    """Raised when a required setting is missing or invalid."""


# Checked in this order; the first missing variable is reported.
REQUIRED_VARIABLES: Tuple[Tuple[str, str], ...] = (
    ("MONGO_URL", "mongo_uri"),
    ("S3_BUCKET_NAME", "s3_bucket_name"),
    ("AWS_ACCESS_KEY_ID", "aws_access_key_id"),
    ("AWS_SECRET_ACCESS_KEY", "aws_secret_access_key"),
    ("AWS_REGION", "aws_region"),
)
OPTIONAL_VARIABLES: Tuple[Tuple[str, str], ...] = (("AWS_ENDPOINT_URL", "aws_endpoint_url"),)

_ENDPOINT_URL = TypeAdapter(AnyHttpUrl)


@dataclass(frozen=True)
class S3ClientConfig:
    region: str
    access_key_id: str
    secret_access_key: str
    endpoint_url: Optional[str] = None


class BackupConfig(BaseModel):
    """Settings for a single backup run, read once from the environment."""

    model_config = ConfigDict(frozen=True)

    mongo_uri: str = Field(description="Connection string of the source database.")
    s3_bucket_name: str
    aws_access_key_id: str
    aws_secret_access_key: SecretStr
    aws_region: str
    aws_endpoint_url: Optional[str] = Field(default=None, description="Alternate S3-compatible endpoint.")

    @field_validator("mongo_uri", "s3_bucket_name", "aws_access_key_id", "aws_region")
    @classmethod
    def _require_value(cls, value: str) -> str:
        if not value:
            raise ValueError("value must be a non-empty string")
        return value

    @field_validator("aws_secret_access_key")
    @classmethod
    def _require_secret(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("value must be a non-empty string")
        return value

    @field_validator("aws_endpoint_url")
    @classmethod
    def _check_endpoint(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            _ENDPOINT_URL.validate_python(value)
        except ValidationError as exc:
            raise ValueError(f"invalid endpoint URL '{value}': expected http:// or https:// with a host") from exc
        return value

    def s3_client_config(self) -> S3ClientConfig:
        return S3ClientConfig(
            region=self.aws_region,
            access_key_id=self.aws_access_key_id,
            secret_access_key=self.aws_secret_access_key.get_secret_value(),
            endpoint_url=self.aws_endpoint_url,
        )


def load_config(environ: Optional[Mapping[str, str]] = None) -> BackupConfig:
    env = os.environ if environ is None else environ
    values = {}

    for variable, field_name in REQUIRED_VARIABLES:
        value = env.get(variable)
        if not value:
            raise ConfigurationError(f"{variable} environment variable is not set.")
        values[field_name] = value

    for variable, field_name in OPTIONAL_VARIABLES:
        values[field_name] = env.get(variable) or None

    try:
        return BackupConfig(**values)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc

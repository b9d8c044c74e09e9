from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

from .errors import StorageConfigError

ACL_PRIVATE = "private"
ACL_PUBLIC_READ = "public-read"
SUPPORTED_ACLS = (ACL_PRIVATE, ACL_PUBLIC_READ)


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name, default) or "").strip()


def _opt(mapping: Mapping[str, Any], *names: str) -> str:
    for name in names:
        v = mapping.get(name)
        if v is not None and str(v).strip():
            return str(v).strip()
    return ""


@dataclass(frozen=True)
class AdapterOptions:
    """
    S3 storage adapter configuration, fixed for the adapter's lifetime.

    Credentials may be empty here; setup_lifecycle() is where they are required.

    s3_acl:
      - "private"     -> downloads go through presigned GET URLs
      - "public-read" -> downloads use the plain object URL
    """
    bucket: str
    region: str
    access_key_id: str = ""
    secret_access_key: str = field(default="", repr=False)
    s3_acl: str = ACL_PRIVATE

    def __post_init__(self) -> None:
        if self.s3_acl not in SUPPORTED_ACLS:
            raise StorageConfigError(
                f"Unsupported s3ACL {self.s3_acl!r} (expected one of: {', '.join(SUPPORTED_ACLS)})"
            )

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "AdapterOptions":
        """
        Build options from the host's plugin config.

        Accepts the host's camelCase names (accessKeyId, secretAccessKey, s3ACL)
        as well as the snake_case field names.
        """
        return cls(
            bucket=_opt(options, "bucket"),
            region=_opt(options, "region"),
            access_key_id=_opt(options, "accessKeyId", "access_key_id"),
            secret_access_key=_opt(options, "secretAccessKey", "secret_access_key"),
            s3_acl=_opt(options, "s3ACL", "s3_acl") or ACL_PRIVATE,
        )

    @classmethod
    def from_env(cls) -> "AdapterOptions":
        """
        Host-side helper. The adapter never reads the environment itself.

        Env:
          - S3_BUCKET
          - AWS_REGION or AWS_DEFAULT_REGION
          - AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY
          - S3_ACL (default private)
        """
        return cls(
            bucket=_env("S3_BUCKET"),
            region=_env("AWS_REGION") or _env("AWS_DEFAULT_REGION"),
            access_key_id=_env("AWS_ACCESS_KEY_ID"),
            secret_access_key=_env("AWS_SECRET_ACCESS_KEY"),
            s3_acl=_env("S3_ACL") or ACL_PRIVATE,
        )

from __future__ import annotations

from typing import Optional


class StorageAdapterError(RuntimeError):
    pass


class StorageConfigError(StorageAdapterError):
    """
    Adapter options are unusable (missing credentials, unknown ACL mode).
    Raised before any client is created.
    """


class AdapterNotReadyError(StorageAdapterError):
    """
    A service-dependent operation was called before setup_lifecycle() succeeded.
    """

    def __init__(self, operation: str):
        super().__init__(
            f"S3 storage adapter is not initialized; call setup_lifecycle() before {operation}()"
        )
        self.operation = operation


class BucketNotFoundError(StorageAdapterError):
    """
    Bucket existence probe failed.

    Every probe failure (missing bucket, denied access, bad region) is reported
    with the same message. The underlying cause is kept in `detail` and chained
    as __cause__.
    """

    def __init__(self, bucket: str, detail: Optional[str] = None):
        super().__init__(f'Bucket "{bucket}" does not exist')
        self.bucket = bucket
        self.detail = detail


class UnexpectedBodyError(StorageAdapterError):
    def __init__(self, key: str, body_type: str):
        super().__init__(f"Expected Body to be a readable stream for {key!r} (got {body_type})")
        self.key = key

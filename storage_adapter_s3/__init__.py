from storage_adapter_s3.errors import (
    AdapterNotReadyError,
    BucketNotFoundError,
    StorageAdapterError,
    StorageConfigError,
    UnexpectedBodyError,
)
from storage_adapter_s3.settings import ACL_PRIVATE, ACL_PUBLIC_READ, AdapterOptions
from storage_adapter_s3.storage import StorageAdapter
from storage_adapter_s3.impl.storage_s3 import (
    CLEANUP_RULE_ID,
    CLEANUP_TAG_KEY,
    S3StorageAdapter,
)

__all__ = [
    "ACL_PRIVATE",
    "ACL_PUBLIC_READ",
    "AdapterNotReadyError",
    "AdapterOptions",
    "BucketNotFoundError",
    "CLEANUP_RULE_ID",
    "CLEANUP_TAG_KEY",
    "S3StorageAdapter",
    "StorageAdapter",
    "StorageAdapterError",
    "StorageConfigError",
    "UnexpectedBodyError",
]

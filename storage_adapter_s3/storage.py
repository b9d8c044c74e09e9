from __future__ import annotations

from typing import Any, Dict, Protocol, runtime_checkable


@runtime_checkable
class StorageAdapter(Protocol):
    """
    Capability contract the host application calls into.

    Every method is a coroutine; implementations may suspend on network I/O.
    """

    async def get_upload_signed_url(
        self,
        key: str,
        content_type: str,
        expires_in: int = 3600,
    ) -> Dict[str, Any]: ...

    async def get_download_url(self, key: str, expires_in: int = 3600) -> str: ...

    async def mark_key_for_deletion(self, key: str) -> None: ...

    async def mark_key_for_not_deletion(self, key: str) -> None: ...

    async def setup_lifecycle(self) -> None: ...

    async def object_can_be_accessed_publicly(self) -> bool: ...

    async def get_key_as_data_url(self, key: str) -> str: ...

"""
In-memory key-value store, same contract and quota rule as the local one.
Used for ephemeral deployments and tests.
"""

from typing import Dict, Optional

from ..core.errors import StorageQuotaExceeded
from .interface import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, quota_bytes: int = 5 * 1024 * 1024):
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        current = len(self._data.get(key, "").encode("utf-8"))
        total = await self.size_bytes() - current + len(value.encode("utf-8"))
        if total > self.quota_bytes:
            raise StorageQuotaExceeded()
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def size_bytes(self) -> int:
        return sum(len(v.encode("utf-8")) for v in self._data.values())

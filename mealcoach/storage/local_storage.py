"""
Local Filesystem Storage Implementation.
One UTF-8 file per key under a base directory, with a total byte quota.
"""

import errno
import logging
import os
import re
from pathlib import Path
from typing import Optional

import aiofiles

from ..core.errors import StorageQuotaExceeded
from .interface import KeyValueStore

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class LocalKeyValueStore(KeyValueStore):
    """
    Local filesystem key-value store.
    """

    def __init__(self, base_dir: str = "./data", quota_bytes: int = 5 * 1024 * 1024):
        """
        Initialize local storage with a base directory.

        Args:
            base_dir: Directory holding one file per key
            quota_bytes: Maximum total size of all stored values
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.quota_bytes = quota_bytes

    def _get_full_path(self, key: str) -> Path:
        """Map a key to its file, rejecting anything that could escape base_dir."""
        if not _KEY_PATTERN.match(key) or ".." in key:
            raise ValueError(f"Invalid storage key: {key}")
        return self.base_dir / f"{key}.json"

    async def get(self, key: str) -> Optional[str]:
        full_path = self._get_full_path(key)
        if not full_path.exists():
            return None
        try:
            async with aiofiles.open(full_path, 'r', encoding='utf-8') as f:
                return await f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read storage key {key}: {e}")
            return None

    async def set(self, key: str, value: str) -> None:
        full_path = self._get_full_path(key)
        new_size = len(value.encode('utf-8'))
        current = full_path.stat().st_size if full_path.exists() else 0
        total = await self.size_bytes() - current + new_size
        if total > self.quota_bytes:
            logger.error(
                "Storage quota exceeded",
                extra={"extra_fields": {"key": key, "required": total, "quota": self.quota_bytes}}
            )
            raise StorageQuotaExceeded()

        # A failed write must leave the previous value in place
        temp_path = self.base_dir / f".{key}.tmp"
        try:
            async with aiofiles.open(temp_path, 'w', encoding='utf-8') as f:
                await f.write(value)
            os.replace(temp_path, full_path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            # A full disk is the same situation as a full quota for the user
            if e.errno == errno.ENOSPC:
                raise StorageQuotaExceeded() from e
            raise

    async def delete(self, key: str) -> bool:
        full_path = self._get_full_path(key)
        if not full_path.exists():
            return False
        full_path.unlink()
        return True

    async def size_bytes(self) -> int:
        return sum(p.stat().st_size for p in self.base_dir.glob("*.json") if p.is_file())

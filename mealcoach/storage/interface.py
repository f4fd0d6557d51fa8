"""
Storage Interface - key-value contract for everything the app persists.
Implementations can switch between local files and process memory.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """
    Abstract key-value store holding text blobs under fixed keys.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Load the text stored under a key.

        Args:
            key: Record key (e.g. "user-profile")

        Returns:
            Optional[str]: Stored text, or None if the key is absent or unreadable
        """

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """
        Store text under a key, replacing any previous value.

        Args:
            key: Record key
            value: Text to store

        Raises:
            StorageQuotaExceeded: If the write would exceed the store's quota
        """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            bool: True if the key existed
        """

    @abstractmethod
    async def size_bytes(self) -> int:
        """Total bytes currently stored."""

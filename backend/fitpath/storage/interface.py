"""
Storage Interface - Abstract base class for document storage backends.
The repository layer only talks to this interface, so a bucket or database
backend can replace the local filesystem without touching the services.
"""

from abc import ABC, abstractmethod
from typing import List, Optional


class StorageInterface(ABC):
    """
    Key/value document storage addressed by relative paths.

    Implementations raise ``StorageError`` on I/O failures instead of
    returning sentinel values, so callers can tell "missing" from "broken".
    """

    @abstractmethod
    async def save(self, path: str, content: bytes | str) -> None:
        """
        Atomically replace the content stored at ``path``.

        Args:
            path: Relative path (e.g., "users/<id>.json")
            content: Text or binary content
        """
        pass

    @abstractmethod
    async def load(self, path: str) -> Optional[bytes]:
        """
        Load content from ``path``.

        Returns:
            Optional[bytes]: Stored content, or None if nothing is stored there
        """
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """
        Delete the content at ``path``.

        Returns:
            bool: True if something was deleted
        """
        pass

    @abstractmethod
    async def list(self, path: str, pattern: str = "*") -> List[str]:
        """
        List stored paths directly under a directory.

        Args:
            path: Directory path
            pattern: Glob pattern to filter file names (e.g., "*.json")

        Returns:
            List[str]: Sorted relative paths
        """
        pass

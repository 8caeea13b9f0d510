"""
Local Filesystem Storage Implementation.
Documents are plain files below a base directory on the server.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional

import aiofiles

from ..core.exceptions import StorageError
from .interface import StorageInterface

logger = logging.getLogger(__name__)


class LocalStorage(StorageInterface):
    """
    Local filesystem storage implementation.

    Writes go to a temporary sibling file that is then renamed over the
    target, so readers never observe a half-written document.
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Initialize local storage with a base directory.

        Args:
            base_dir: Base directory for all stored files
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, path: str) -> Path:
        """Convert relative path to full absolute path within base directory."""
        full_path = (self.base_dir / path).resolve()

        # Security check: ensure path is within base_dir
        if full_path != self.base_dir and self.base_dir not in full_path.parents:
            raise ValueError(f"Invalid path: {path} - path traversal detected")

        return full_path

    async def save(self, path: str, content: bytes | str) -> None:
        full_path = self._get_full_path(path)
        tmp_path = full_path.with_name(f".{full_path.name}.{uuid.uuid4().hex}.tmp")
        data = content.encode('utf-8') if isinstance(content, str) else content
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, 'wb') as f:
                await f.write(data)
            os.replace(tmp_path, full_path)
        except OSError as e:
            logger.error(f"Error saving file {path}: {e}")
            if tmp_path.exists():
                tmp_path.unlink()
            raise StorageError(f"Failed to save {path}") from e

    async def load(self, path: str) -> Optional[bytes]:
        full_path = self._get_full_path(path)
        if not full_path.exists():
            return None
        try:
            async with aiofiles.open(full_path, 'rb') as f:
                return await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Error loading file {path}: {e}")
            raise StorageError(f"Failed to load {path}") from e

    async def exists(self, path: str) -> bool:
        return self._get_full_path(path).exists()

    async def delete(self, path: str) -> bool:
        full_path = self._get_full_path(path)
        try:
            full_path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Error deleting file {path}: {e}")
            raise StorageError(f"Failed to delete {path}") from e

    async def list(self, path: str, pattern: str = "*") -> List[str]:
        full_path = self._get_full_path(path)
        if not full_path.is_dir():
            return []
        return sorted(
            str(p.relative_to(self.base_dir))
            for p in full_path.glob(pattern)
            if p.is_file() and not p.name.startswith(".")
        )

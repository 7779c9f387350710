"""
Local-disk object store for uploaded files.

Objects live under ``STORAGE_DIR`` keyed by their storage name.  Copies are
streamed with aiofiles so large uploads do not block the event loop.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

import aiofiles
import aiofiles.os

from app.config import settings
from app.exceptions import UpstreamFailureError

logger = logging.getLogger(__name__)

_COPY_CHUNK = 1024 * 1024  # 1 MB


class FileStorage:
    """Put / delete objects in a directory acting as a bucket."""

    def __init__(self, root: Optional[str] = None) -> None:
        self.root = root or settings.STORAGE_DIR

    def path_for(self, storage_name: str) -> str:
        # Storage names are generated server-side, but never let one escape the root
        return os.path.join(self.root, os.path.basename(storage_name))

    async def put(self, source_path: str, storage_name: str) -> str:
        """
        Copy a local file into the store.

        Returns:
            Path of the stored object.

        Raises:
            UpstreamFailureError: the copy failed.
        """
        target = self.path_for(storage_name)
        try:
            await aiofiles.os.makedirs(self.root, exist_ok=True)
            async with aiofiles.open(source_path, "rb") as src, aiofiles.open(target, "wb") as dst:
                while True:
                    chunk = await src.read(_COPY_CHUNK)
                    if not chunk:
                        break
                    await dst.write(chunk)
        except OSError as exc:
            logger.error("Storage put failed for %r: %s", storage_name, exc)
            raise UpstreamFailureError(f"Failed to store file: {exc}") from exc

        logger.info("Stored object %r", storage_name)
        return target

    async def delete(self, storage_name: str) -> None:
        """Remove an object; a missing object is not an error."""
        target = self.path_for(storage_name)
        try:
            await aiofiles.os.remove(target)
        except FileNotFoundError:
            logger.warning("Storage delete: object %r already gone", storage_name)
        except OSError as exc:
            logger.error("Storage delete failed for %r: %s", storage_name, exc)
            raise UpstreamFailureError(f"Failed to delete file: {exc}") from exc
        else:
            logger.info("Deleted object %r", storage_name)


def get_file_storage() -> FileStorage:
    """FastAPI dependency."""
    return FileStorage()

# fasttrack/adapters/outbound/storage/local_blob_storage.py

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from fasttrack.adapters.configuration.config import settings
from fasttrack.application.ports.outbound import IBlobStorage
from fasttrack.domain.exceptions import StorageException

logger = logging.getLogger(__name__)


class LocalBlobStorage(IBlobStorage):
    """
    Blob storage on the local filesystem, rooted at ``STORAGE_ROOT``.

    Writes go to a temporary file in the target directory and are moved
    into place with ``os.replace``, so readers never see a partial file
    and rewriting the same path is an overwrite.
    """

    def __init__(self, root: str = None):
        self.root = Path(root or settings.STORAGE_ROOT).resolve()

    def _resolve(self, path: str) -> Path:
        if not path or os.path.isabs(path):
            raise StorageException(detail="Invalid storage path", path=path)
        target = (self.root / path).resolve()
        if target != self.root and self.root not in target.parents:
            raise StorageException(detail="Storage path escapes the storage root", path=path)
        return target

    def _write_sync(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    async def write(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(self._write_sync, target, data)
        except OSError as e:
            logger.error(f"Failed to write blob {path}: {e}")
            raise StorageException(detail="Failed to write blob", path=path)

    async def read(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError:
            raise StorageException(detail="Blob not found", path=path)
        except OSError as e:
            logger.error(f"Failed to read blob {path}: {e}")
            raise StorageException(detail="Failed to read blob", path=path)

    async def exists(self, path: str) -> bool:
        try:
            target = self._resolve(path)
        except StorageException:
            return False
        return await asyncio.to_thread(target.is_file)

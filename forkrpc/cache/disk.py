"""
Persistent tier of the fork client cache.

Raw (undecoded) JSON-RPC results are stored as one JSON file per request:

    <cache_path>/network-<network_id>/request-<key>.json

Files are shared by every client pointed at the same directory and network,
and are never deleted or invalidated by this module.
"""
import asyncio
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from ..constants import NETWORK_DIR_TEMPLATE, REQUEST_FILE_TEMPLATE

logger = structlog.get_logger()


def _umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# Same permissions a plain open(path, "w") would give
FILE_MODE = 0o666 & ~_umask()


class DiskCache:
    def __init__(self, cache_path: Union[str, Path], network_id: int):
        """
        Initialize a disk cache scoped to one network.

        Args:
            cache_path: Root directory of the fork cache
            network_id: Id of the network whose responses are stored
        """
        self.cache_path = Path(cache_path)
        self.network_id = network_id
        self._directory_created = False
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path:
        return self.cache_path / NETWORK_DIR_TEMPLATE.format(network_id=self.network_id)

    def path_for_key(self, key: str) -> Path:
        return self.directory / REQUEST_FILE_TEMPLATE.format(key=key)

    async def get_raw(self, key: str) -> Optional[Any]:
        """
        Read a raw payload.

        Args:
            key: Cache key of the request

        Returns:
            The stored JSON value, or None if the entry is missing or unreadable
        """
        path = self.path_for_key(key)
        try:
            return await asyncio.to_thread(_read_json, path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.debug("disk_cache_read_failed", key=key, path=str(path), error=str(e))
            return None

    async def set_raw(self, key: str, raw: Any) -> bool:
        """
        Persist a raw payload.

        Write failures are logged and dropped: the caller already holds the
        decoded value, and a later run will simply fetch it again.

        Args:
            key: Cache key of the request
            raw: Undecoded JSON value

        Returns:
            True if the entry was written
        """
        path = self.path_for_key(key)
        try:
            await self.ensure_directory()
            await asyncio.to_thread(_write_json_atomic, path, raw)
        except OSError as e:
            logger.warning("disk_cache_write_failed", key=key, path=str(path), error=str(e))
            return False

        logger.debug("disk_cache_stored", key=key)
        return True

    async def ensure_directory(self) -> None:
        """Create the network directory once. Safe to call concurrently."""
        if self._directory_created:
            return

        await asyncio.to_thread(self.directory.mkdir, parents=True, exist_ok=True)
        with self._lock:
            self._directory_created = True


def _read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(path: Path, value: Any) -> None:
    # Readers only ever see complete files under the final name
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(value, f)
        os.chmod(tmp_name, FILE_MODE)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise

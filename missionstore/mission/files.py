from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from missionstore.errors import MissionFileNotFound, UploadError

logger = logging.getLogger(__name__)


def _is_plain_name(filename: str) -> bool:
    return bool(filename) and Path(filename).name == filename and filename not in (".", "..")


class MissionFileStore:
    """Directory of uploaded / available waypoint files, keyed by file name."""

    def __init__(self, root: Path | str, extension: str = "waypoints"):
        self.root = Path(root).expanduser().resolve()
        self.extension = extension.lstrip(".")

    def _path(self, filename: str) -> Path:
        return self.root / filename

    # ---- sync primitives (run in a worker thread by the async API) ----

    def _write(self, filename: str, data: bytes) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(filename)
        path.write_bytes(data)
        return path

    def _list(self, extension: str) -> List[Dict[str, Any]]:
        if not self.root.is_dir():
            return []
        files = []
        for path in sorted(self.root.iterdir()):
            if not path.is_file() or path.suffix != f".{extension}":
                continue
            stat = path.stat()
            files.append({
                "filename": path.name,
                "size": stat.st_size,
                "modified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            })
        return files

    # ---- async API ----

    async def write(self, filename: str, data: bytes) -> Path:
        if not _is_plain_name(filename):
            raise UploadError(f"Invalid waypoint file name: {filename!r}")
        try:
            path = await asyncio.to_thread(self._write, filename, data)
        except OSError as e:
            raise UploadError(f"Could not store {filename}: {e}") from e
        logger.info("Stored waypoint file %s (%s bytes)", path, len(data))
        return path

    async def exists(self, filename: str) -> bool:
        if not _is_plain_name(filename):
            return False
        return await asyncio.to_thread(self._path(filename).is_file)

    async def read(self, filename: str) -> bytes:
        if not await self.exists(filename):
            raise MissionFileNotFound(filename)
        try:
            return await asyncio.to_thread(self._path(filename).read_bytes)
        except FileNotFoundError:
            # removed between the existence check and the read
            raise MissionFileNotFound(filename) from None

    async def list_files(self, extension: Optional[str] = None) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._list, (extension or self.extension).lstrip("."))

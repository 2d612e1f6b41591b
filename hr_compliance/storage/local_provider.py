"""
Local filesystem artifact storage.
Writes files under ``UPLOAD_DIR`` and serves them from ``PUBLIC_FILES_URL``.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from urllib.parse import quote

from hr_compliance.storage.provider import ArtifactStorage, StoredArtifact

logger = logging.getLogger(__name__)


class LocalArtifactStorage(ArtifactStorage):

    def __init__(self, base_dir: str, public_url: str) -> None:
        self.base_dir = Path(base_dir)
        self.public_url = public_url.rstrip("/")

    def _get_path(self, key: str) -> Path:
        clean_key = key.replace("\\", "/").replace("..", "").lstrip("/")
        return self.base_dir / clean_key

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def put(self, key: str, data: bytes, mime_type: str) -> StoredArtifact:
        path = self._get_path(key)
        await asyncio.to_thread(self._write, path, data)
        logger.debug("Stored %d bytes (%s) at %s", len(data), mime_type, path)
        return StoredArtifact(
            url=f"{self.public_url}/{quote(key.lstrip('/'))}",
            key=key,
        )

    async def delete(self, key: str) -> None:
        path = self._get_path(key)
        await asyncio.to_thread(path.unlink, missing_ok=True)

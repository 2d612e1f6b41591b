"""Artifact storage interface and the FastAPI dependency that selects it."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class StoredArtifact:
    url: str
    key: str


class ArtifactStorage:
    """Store bytes under a key and hand back a retrievable URL."""

    async def put(self, key: str, data: bytes, mime_type: str) -> StoredArtifact:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError


@lru_cache
def get_storage() -> ArtifactStorage:
    """FastAPI dependency: the process-wide storage provider."""
    from hr_compliance.config import settings
    from hr_compliance.storage.local_provider import LocalArtifactStorage

    return LocalArtifactStorage(settings.UPLOAD_DIR, settings.PUBLIC_FILES_URL)

"""Artifact storage — opaque key → URL persistence for uploaded and rendered files."""

from hr_compliance.storage.provider import ArtifactStorage, StoredArtifact, get_storage

__all__ = ["ArtifactStorage", "StoredArtifact", "get_storage"]

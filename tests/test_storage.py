"""Local filesystem artifact storage tests."""

from __future__ import annotations

from hr_compliance.storage.local_provider import LocalArtifactStorage


async def test_put_writes_file_and_returns_public_url(tmp_path):
    storage = LocalArtifactStorage(str(tmp_path), "https://files.example.com/")

    stored = await storage.put("timesheets/abc/2024-01-15 sheet.txt", b"TIME SHEET", "text/plain")

    assert (tmp_path / "timesheets/abc/2024-01-15 sheet.txt").read_bytes() == b"TIME SHEET"
    assert stored.key == "timesheets/abc/2024-01-15 sheet.txt"
    assert stored.url == "https://files.example.com/timesheets/abc/2024-01-15%20sheet.txt"


async def test_keys_cannot_escape_base_dir(tmp_path):
    base = tmp_path / "uploads"
    storage = LocalArtifactStorage(str(base), "https://files.example.com")

    await storage.put("../../etc/passwd", b"x", "text/plain")

    assert (base / "etc/passwd").exists()


async def test_delete_is_idempotent(tmp_path):
    storage = LocalArtifactStorage(str(tmp_path), "https://files.example.com")
    await storage.put("a/b.txt", b"x", "text/plain")

    await storage.delete("a/b.txt")
    await storage.delete("a/b.txt")

    assert not (tmp_path / "a/b.txt").exists()

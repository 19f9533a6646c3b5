"""
StorageBackend abstract interface for supporting documents.
Only the local-disk backend exists; STORAGE_BACKEND selects it.
"""

import abc
from pathlib import Path


class StorageBackend(abc.ABC):
    @abc.abstractmethod
    def save(self, data: bytes, filename: str, subfolder: str = "") -> str:
        """Persist data and return the storage path/key."""

    @abc.abstractmethod
    def load(self, path: str) -> bytes:
        """Load and return raw bytes from storage path/key."""

    @abc.abstractmethod
    def exists(self, path: str) -> bool:
        """Return True if the path/key exists in storage."""

    @abc.abstractmethod
    def delete(self, path: str) -> None:
        """Remove the path/key. Missing paths are ignored."""


class LocalDiskStorage(StorageBackend):
    """
    Stores files on the local filesystem.
    Root is set from settings.local_storage_path.
    """

    def __init__(self, root: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, data: bytes, filename: str, subfolder: str = "") -> str:
        target_dir = self.root / subfolder if subfolder else self.root
        target_dir.mkdir(parents=True, exist_ok=True)
        # Never let a client-supplied name escape the target directory
        target_path = target_dir / Path(filename).name
        target_path.write_bytes(data)
        # Return relative path string (portable across mounts)
        return target_path.relative_to(self.root).as_posix()

    def load(self, path: str) -> bytes:
        return (self.root / path).read_bytes()

    def exists(self, path: str) -> bool:
        return (self.root / path).exists()

    def delete(self, path: str) -> None:
        (self.root / path).unlink(missing_ok=True)


def get_storage() -> StorageBackend:
    """Factory — returns the configured storage backend."""
    from app.settings import settings

    if settings.storage_backend == "local":
        return LocalDiskStorage(settings.local_storage_path)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")

"""Object storage abstraction for uploaded images: local filesystem and in-memory."""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger


class StorageError(Exception):
    """A backend could not store an object. Nothing is left behind."""


class ObjectStorage(ABC):
    """Abstract interface for bucket/path object stores."""

    def __init__(self, public_base_url: str):
        self.public_base_url = public_base_url.rstrip("/")

    @abstractmethod
    async def put(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Store an object and return its path. Either fully succeeds or raises StorageError."""

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{bucket}/{path}"


class LocalObjectStorage(ObjectStorage):
    """Store objects under base_path/<bucket>/<path>."""

    def __init__(self, base_path: Path, public_base_url: str):
        super().__init__(public_base_url)
        self.base_path = Path(base_path)

    def _write(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        partial.write_bytes(data)
        partial.replace(target)

    async def put(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        target = self.base_path / bucket / path
        if target.exists():
            raise StorageError(f"Object {bucket}/{path} already exists")
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as e:
            raise StorageError(str(e)) from e
        logger.debug("Stored {} bytes ({}) at {}", len(data), content_type, target)
        return path


class MemoryObjectStorage(ObjectStorage):
    """Keep objects in a dict keyed by (bucket, path); useful for tests and dry runs."""

    def __init__(self, public_base_url: str = "http://localhost/objects"):
        super().__init__(public_base_url)
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}

    async def put(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        if (bucket, path) in self.objects:
            raise StorageError(f"Object {bucket}/{path} already exists")
        self.objects[(bucket, path)] = (data, content_type)
        return path

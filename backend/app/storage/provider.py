"""Abstract ObjectStoreProvider interface.

Every remote backend (S3, Google Drive, …) implements this interface so the
uploader and the download resolver stay provider-agnostic.
"""
from abc import ABC, abstractmethod
from pathlib import Path

from .schemas import RemoteObject


class ObjectStoreProvider(ABC):
    """Abstract base class for remote object stores.

    Methods are blocking; async callers run them with ``asyncio.to_thread``.
    Implementations must therefore be safe to call from worker threads.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short backend name stored on records (``"s3"``, ``"gdrive"``)."""

    @abstractmethod
    def upload(self, local_path: Path, key: str, content_type: str) -> RemoteObject:
        """Store a local file under *key* and make it publicly readable.

        Raises:
            RemoteUploadError: On any provider failure.
        """

    @abstractmethod
    def fetch(self, remote_id: str, dest_path: Path) -> Path:
        """Download the object identified by *remote_id* into *dest_path*.

        Raises:
            Exception: On provider failure or when the object is missing.
        """

    @abstractmethod
    def delete(self, remote_id: str) -> None:
        """Delete the object identified by *remote_id*."""

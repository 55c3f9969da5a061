"""Storage uploader: push staged files to the configured remote providers.

Providers are tried in order; the first one that stores the file wins.  A
file whose upload fails everywhere stays on local disk and its failure is
reported as an ``UploadOutcome`` so the request can still create a record.
"""
import asyncio
import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from app.errors import RemoteUploadError
from app.intake.schemas import StagedFile

from .cleanup import remove_local
from .provider import ObjectStoreProvider
from .schemas import RemoteObject, UploadOutcome

logger = logging.getLogger(__name__)


class StorageUploader:
    """Uploads staged files and deletes remote objects.

    Args:
        providers: Remote providers in priority order.  May be empty, in which
            case every upload fails and local files are retained.
        key_prefix: Leading segment of every object key.
    """

    def __init__(self, providers: Sequence[ObjectStoreProvider], key_prefix: str = "journal-archive"):
        self._providers: List[ObjectStoreProvider] = list(providers)
        self._key_prefix = key_prefix.strip("/")

    @property
    def providers(self) -> List[ObjectStoreProvider]:
        return list(self._providers)

    def get_provider(self, name: Optional[str]) -> Optional[ObjectStoreProvider]:
        """Return the provider registered under *name*, or the primary if *name* is None."""
        if name is None:
            return self._providers[0] if self._providers else None
        for provider in self._providers:
            if provider.name == name:
                return provider
        return None

    def build_key(self, collection: str, original_filename: str, timestamp_ms: Optional[int] = None) -> str:
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        name = Path(original_filename.replace("\\", "/")).name
        parts = [self._key_prefix, collection, f"{timestamp_ms}-{name}"]
        return "/".join(p for p in parts if p)

    # -----------------------------------------------------------------------
    # Upload
    # -----------------------------------------------------------------------

    async def upload(self, local_path: Path, key: str, content_type: str) -> RemoteObject:
        """Upload one file, falling back through the providers.

        Raises:
            RemoteUploadError: No provider is configured or all of them failed.
        """
        if not self._providers:
            raise RemoteUploadError("No remote storage provider is configured")

        errors = []
        for provider in self._providers:
            try:
                return await asyncio.to_thread(provider.upload, local_path, key, content_type)
            except Exception as exc:
                logger.warning("Upload of %s via %s failed: %s", key, provider.name, exc)
                errors.append(f"{provider.name}: {exc}")

        raise RemoteUploadError(
            "; ".join(errors),
            details={"key": key, "providers": [p.name for p in self._providers]},
        )

    async def upload_outcome(self, staged: StagedFile, collection: str) -> UploadOutcome:
        """Upload a staged file and clean it up; never raises for upload failures.

        The local copy is deleted once the remote upload succeeds and kept
        when it fails, so downloads can still be served from disk.
        """
        key = self.build_key(collection, staged.original_filename)
        outcome = UploadOutcome(kind=staged.kind, local_name=staged.local_name)
        try:
            outcome.remote = await self.upload(staged.path, key, staged.mime_type)
        except RemoteUploadError as exc:
            logger.error("Remote upload failed for %s: %s", staged.local_name, exc.message)
            outcome.error = exc.message
            outcome.local_retained = True
            return outcome

        await remove_local(staged.path)
        return outcome

    async def upload_all(self, staged_files: Iterable[StagedFile], collection: str) -> List[UploadOutcome]:
        """Upload several staged files concurrently, one outcome per file."""
        return list(
            await asyncio.gather(*(self.upload_outcome(s, collection) for s in staged_files))
        )

    # -----------------------------------------------------------------------
    # Delete
    # -----------------------------------------------------------------------

    async def delete(self, backend: Optional[str], remote_id: str) -> bool:
        """Delete a remote object; failures are logged and reported as False."""
        provider = self.get_provider(backend)
        if provider is None:
            logger.warning("No provider %r to delete remote object %s", backend, remote_id)
            return False
        try:
            await asyncio.to_thread(provider.delete, remote_id)
        except Exception as exc:
            logger.warning("Failed to delete %s from %s: %s", remote_id, provider.name, exc)
            return False
        return True

"""Download resolver: find a record's document wherever it still exists.

Strategies, first success wins:

1. Remote by identifier: the provider that stored the object fetches it into
   a temporary file, deleted after the response.
2. Remote by URL: the stored public URL is fetched over HTTP.  CDN delivery
   URLs containing ``/upload/`` are rewritten to ``/upload/fl_attachment/``
   so the CDN serves the raw attachment.
3. Local disk: a fixed, ordered list of candidate paths covering the
   current storage root and the layouts older deployments wrote to.

When every strategy fails the error lists everything that was tried.
"""
import asyncio
import logging
import os
import re
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import unquote

import httpx

from app.errors import DownloadSourceExhaustedError, NotFoundError
from app.intake.schemas import FileKind
from app.records.schemas import ArchiveRecord, FileRef, RecordKind
from app.storage.cleanup import remove_local
from app.storage.uploader import StorageUploader

from .schemas import DownloadAttempt, ResolvedDownload

logger = logging.getLogger(__name__)

DEFAULT_HTTP_TIMEOUT = 30.0

_FILENAME_STRIP = re.compile(r"[^A-Za-z0-9_ -]")
_SPACES = re.compile(r" +")


def rewrite_attachment_url(url: str) -> str:
    """Force attachment delivery for CDN ``/upload/`` URLs.

    Examples:
        >>> rewrite_attachment_url("https://cdn.example.com/raw/upload/v1/a.pdf")
        'https://cdn.example.com/raw/upload/fl_attachment/v1/a.pdf'
        >>> rewrite_attachment_url("https://bucket.s3.amazonaws.com/a.pdf")
        'https://bucket.s3.amazonaws.com/a.pdf'
    """
    if "/upload/" in url and "fl_attachment" not in url:
        return url.replace("/upload/", "/upload/fl_attachment/", 1)
    return url


def sanitize_filename(title: Optional[str], kind: FileKind) -> str:
    """Build the attachment file name from a record title."""
    name = _FILENAME_STRIP.sub("", title or "")
    name = _SPACES.sub("_", name)[:100]
    return f"{name or 'document'}{kind.extension}"


def candidate_paths(
    local_name: str,
    collection: str,
    storage_root: Path,
    base_dir: Path,
    legacy_roots: Iterable[Path] = (),
) -> List[Path]:
    """Ordered, de-duplicated local paths a stored file may live at."""
    stored = Path(local_name.replace("\\", "/"))
    name = stored.name
    base_dir = Path(base_dir)
    legacy_roots = [Path(p) for p in legacy_roots]

    def by_name(file_name: str) -> List[Path]:
        paths = [Path(storage_root) / file_name]
        paths.extend(root / file_name for root in legacy_roots)
        paths.extend([
            base_dir / "uploads" / collection / file_name,
            base_dir.parent / "uploads" / collection / file_name,
            base_dir / "backend" / "uploads" / collection / file_name,
        ])
        return paths

    candidates: List[Path] = []
    if stored.is_absolute():
        candidates.append(stored)
    elif len(stored.parts) > 1:
        # Older records stored paths such as "uploads/journals/<name>"
        candidates.extend([base_dir / stored, base_dir.parent / stored])

    candidates.extend(by_name(name))
    if "%20" in name:
        candidates.extend(by_name(unquote(name)))

    seen = set()
    unique: List[Path] = []
    for path in candidates:
        key = os.path.normpath(str(path))
        if key not in seen:
            seen.add(key)
            unique.append(Path(key))
    return unique


def _usable(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


class DownloadResolver:
    """Resolves record documents through the download fallback chain.

    Args:
        uploader: Gives access to the providers named on records.
        storage_roots: Local storage root per record kind.
        base_dir: Directory legacy relative paths resolve against.
        temp_dir: Where remote fetches are written.
        legacy_roots: Extra directories searched by name.
        http_timeout: Timeout for URL fetches, in seconds.
        transport: Optional httpx transport (tests).
    """

    def __init__(
        self,
        uploader: StorageUploader,
        storage_roots: Dict[RecordKind, Path],
        base_dir: Path,
        temp_dir: Path,
        legacy_roots: Iterable[Path] = (),
        http_timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.uploader = uploader
        self.storage_roots = {k: Path(v) for k, v in storage_roots.items()}
        self.base_dir = Path(base_dir)
        self.temp_dir = Path(temp_dir)
        self.legacy_roots = [Path(p) for p in legacy_roots]
        self._http = httpx.AsyncClient(
            timeout=http_timeout,
            transport=transport,
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def resolve(self, kind: RecordKind, record: ArchiveRecord, file_kind: FileKind) -> ResolvedDownload:
        """Return the first available copy of a record's document.

        Raises:
            NotFoundError: the record has no document of this kind.
            DownloadSourceExhaustedError: every strategy failed.
        """
        ref = record.file_ref(file_kind)
        if not ref.present:
            raise NotFoundError(
                f"No {file_kind.name} file found for this {kind.value}",
                details={"id": record.id},
            )

        filename = sanitize_filename(record.title, file_kind)
        attempts: List[DownloadAttempt] = []

        if ref.remote_id:
            resolved = await self._from_remote_id(ref, filename, attempts)
            if resolved is not None:
                return resolved

        if ref.remote_url:
            resolved = await self._from_url(ref, filename, attempts)
            if resolved is not None:
                return resolved

        local_paths: List[Path] = []
        if ref.local_name:
            found, local_paths = self.find_local(kind, ref.local_name)
            if found is not None:
                logger.info("Serving %s for %s %s from %s", file_kind.value, kind.value, record.id, found)
                return ResolvedDownload(kind=file_kind, filename=filename, source="local", path=found)
            attempts.extend(DownloadAttempt("local", str(p), "not found") for p in local_paths)

        logger.error(
            "No source for %s of %s %s after %d attempts", file_kind.value, kind.value, record.id, len(attempts)
        )
        raise DownloadSourceExhaustedError(
            f"{file_kind.name} file not found for this {kind.value}",
            details={
                "id": record.id,
                "remoteIds": [a.target for a in attempts if a.strategy == "remote_id"],
                "urls": [a.target for a in attempts if a.strategy == "url"],
                "localPaths": [str(p) for p in local_paths],
                "attempts": [a.as_dict() for a in attempts],
            },
        )

    def find_local(self, kind: RecordKind, local_name: str) -> Tuple[Optional[Path], List[Path]]:
        """Scan the candidate paths.  Returns (first usable path, all candidates)."""
        candidates = candidate_paths(
            local_name,
            kind.collection,
            self.storage_roots[kind],
            self.base_dir,
            self.legacy_roots,
        )
        for path in candidates:
            if _usable(path):
                return path, candidates
        return None, candidates

    # -----------------------------------------------------------------------
    # Strategies
    # -----------------------------------------------------------------------

    async def _from_remote_id(
        self, ref: FileRef, filename: str, attempts: List[DownloadAttempt]
    ) -> Optional[ResolvedDownload]:
        provider = self.uploader.get_provider(ref.backend)
        if provider is None:
            attempts.append(DownloadAttempt("remote_id", ref.remote_id, f"no provider {ref.backend!r}"))
            return None

        self.temp_dir.mkdir(parents=True, exist_ok=True)
        temp_path = self.temp_dir / f"{uuid.uuid4().hex}{ref.kind.extension}"
        try:
            await asyncio.to_thread(provider.fetch, ref.remote_id, temp_path)
        except Exception as exc:
            logger.warning("Fetch of %s from %s failed: %s", ref.remote_id, provider.name, exc)
            attempts.append(DownloadAttempt("remote_id", ref.remote_id, str(exc)))
            await remove_local(temp_path)
            return None

        return ResolvedDownload(
            kind=ref.kind,
            filename=filename,
            source=provider.name,
            path=temp_path,
            temporary=True,
        )

    async def _from_url(
        self, ref: FileRef, filename: str, attempts: List[DownloadAttempt]
    ) -> Optional[ResolvedDownload]:
        url = rewrite_attachment_url(ref.remote_url)
        try:
            resp = await self._http.get(url, headers={"Accept": "*/*", "Cache-Control": "no-cache"})
            resp.raise_for_status()
            if not resp.content:
                raise ValueError("empty response body")
        except Exception as exc:
            logger.warning("Fetch of %s failed: %s", url, exc)
            attempts.append(DownloadAttempt("url", url, str(exc)))
            return None

        return ResolvedDownload(kind=ref.kind, filename=filename, source="url", content=resp.content)

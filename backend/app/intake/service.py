"""Upload intake: stage multipart file parts on disk and validate them.

Files are staged in the collection's storage directory (journals or
submissions) before their signatures can be checked.  Any rejection after
staging removes every file staged for the request.
"""
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import aiofiles
from starlette.datastructures import UploadFile

from app.errors import FileTooLargeError, JournalArchiveError, MissingFileError
from app.storage.cleanup import remove_all

from .schemas import MAX_FILE_SIZE_BYTES, FileKind, IntakeFields, StagedFile, safe_local_name
from .validation import (
    check_declared_type,
    check_file_name,
    check_required_fields,
    check_signature,
    log_security_event,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass
class FilePart:
    """A required file part of a multipart request."""
    field_name: str
    kind: FileKind
    upload: Optional[UploadFile]


@dataclass
class IntakeResult:
    fields: IntakeFields
    staged: Dict[FileKind, StagedFile]


class UploadIntake:
    """Validates upload requests and stages their files.

    Args:
        staging_dir: Directory staged files are written to.
        max_file_size_bytes: Per-file size limit.
        min_abstract_length: Minimum abstract length after trimming.
    """

    def __init__(
        self,
        staging_dir: Path,
        max_file_size_bytes: int = MAX_FILE_SIZE_BYTES,
        min_abstract_length: int = 0,
    ) -> None:
        self.staging_dir = Path(staging_dir)
        self._max_size = max_file_size_bytes
        self._min_abstract_length = min_abstract_length

    def ensure_staging_dir(self) -> None:
        self.staging_dir.mkdir(parents=True, exist_ok=True)

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def accept(
        self,
        parts: List[FilePart],
        title: Optional[str],
        abstract: Optional[str],
        authors: Any = None,
        keywords: Any = None,
    ) -> IntakeResult:
        """Run every intake check and return the staged files.

        Order: missing file parts, text fields, then per file the declared
        type, the signature of the staged bytes and the file name.

        Raises:
            MissingFileError, ValidationError, FileTypeError,
            FileTooLargeError, SuspiciousFileNameError
        """
        missing = [p.field_name for p in parts if p.upload is None or not p.upload.filename]
        if missing:
            raise MissingFileError(
                f"Missing required file(s): {', '.join(missing)}",
                details={"missing": missing},
            )

        fields = check_required_fields(
            title,
            abstract,
            authors=authors,
            keywords=keywords,
            min_abstract_length=self._min_abstract_length,
        )

        staged: Dict[FileKind, StagedFile] = {}
        try:
            for part in parts:
                filename = part.upload.filename
                check_declared_type(filename, part.upload.content_type, part.kind)
                staged_file = await self.stage(part.upload, part.kind)
                staged[part.kind] = staged_file
                check_signature(staged_file.path, part.kind, filename)
                check_file_name(filename)
        except JournalArchiveError:
            await self.discard(staged.values())
            raise
        except Exception:
            logger.exception("Staging failed; removing staged files")
            await self.discard(staged.values())
            raise

        for staged_file in staged.values():
            log_security_event(
                "FILE_UPLOAD_SUCCESS",
                original_name=staged_file.original_filename,
                local_name=staged_file.local_name,
                size=staged_file.size_bytes,
            )
        return IntakeResult(fields=fields, staged=staged)

    async def stage(self, upload: UploadFile, kind: FileKind) -> StagedFile:
        """Stream an uploaded part to the staging directory.

        Raises:
            FileTooLargeError: the part exceeds the size limit (the partial
                file is removed).
        """
        self.ensure_staging_dir()
        filename = upload.filename or f"upload{kind.extension}"
        path = self.staging_dir / safe_local_name(filename, int(time.time() * 1000))

        size, too_large = await self._write(upload, path)
        staged = StagedFile(
            kind=kind,
            original_filename=filename,
            path=path,
            mime_type=upload.content_type or kind.media_type,
            size_bytes=size,
        )
        if too_large:
            await self.discard([staged])
            raise FileTooLargeError(
                f"File size exceeds limit of {self._max_size} bytes",
                details={"filename": filename},
            )
        logger.info("Staged %s upload %s -> %s (%d bytes)", kind.value, filename, path, size)
        return staged

    async def discard(self, staged_files) -> None:
        """Remove staged files after a rejected or failed request."""
        await remove_all(s.path for s in staged_files)

    # -----------------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------------

    async def _write(self, upload: UploadFile, path: Path) -> Tuple[int, bool]:
        size = 0
        async with aiofiles.open(path, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > self._max_size:
                    return size, True
                await out.write(chunk)
        return size, False

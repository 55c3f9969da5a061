"""Ingest service: the upload-to-record pipeline and record lifecycle.

An upload runs intake (validate and stage), uploads every staged file
concurrently, then writes the record.  Remote upload failures do not fail
the request; they are reported in the response and the affected local
files are kept so the download resolver can still serve them.
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from starlette.datastructures import UploadFile

from app.errors import ConversionError, InvalidStatusError, NotFoundError, RecordPersistError
from app.intake.conversion import convert_docx_to_pdf
from app.intake.schemas import FileKind, StagedFile
from app.intake.service import FilePart, UploadIntake
from app.records.schemas import ArchiveRecord, RecordKind, valid_statuses
from app.records.service import RecordStore
from app.records.writer import RecordWriter
from app.storage.cleanup import remove_all, remove_local
from app.storage.schemas import UploadOutcome
from app.storage.uploader import StorageUploader

logger = logging.getLogger(__name__)


def _failed(outcome: Optional[UploadOutcome]) -> bool:
    return outcome is not None and not outcome.succeeded


def _remote_error(outcomes: Dict[FileKind, UploadOutcome]) -> Optional[str]:
    errors = [f"{kind.value}: {o.error}" for kind, o in outcomes.items() if o.error]
    return "; ".join(errors) or None


def journal_upload_response(record: ArchiveRecord, outcomes: Dict[FileKind, UploadOutcome]) -> dict:
    docx_failed = _failed(outcomes.get(FileKind.DOCX))
    pdf_failed = _failed(outcomes.get(FileKind.PDF))
    any_failed = docx_failed or pdf_failed
    return {
        "message": (
            "Journal uploaded successfully but remote upload failed"
            if any_failed
            else "Journal uploaded successfully"
        ),
        "journal": {
            "id": record.id,
            "title": record.title,
            "abstract": record.abstract,
            "authors": record.authors,
            "status": record.status.value,
            "hasDocx": bool(record.docx_remote_id),
            "hasPdf": bool(record.pdf_remote_id),
            "docxLink": record.docx_remote_url,
            "pdfLink": record.pdf_remote_url,
            # Legacy name: true when any remote upload failed
            "googleDriveUploadFailed": any_failed,
            "googleDriveError": _remote_error(outcomes),
            "docxUploadFailed": docx_failed,
            "pdfUploadFailed": pdf_failed,
        },
    }


def submission_upload_response(
    record: ArchiveRecord,
    outcomes: Dict[FileKind, UploadOutcome],
    pdf_conversion_failed: bool,
) -> dict:
    docx_failed = _failed(outcomes.get(FileKind.DOCX))
    pdf_failed = _failed(outcomes.get(FileKind.PDF))
    return {
        "message": "Submission created successfully",
        "submission": record.to_response(),
        "remoteUploadFailed": docx_failed or pdf_failed,
        "docxUploadFailed": docx_failed,
        "pdfUploadFailed": pdf_failed,
        "pdfConversionFailed": pdf_conversion_failed,
        "remoteError": _remote_error(outcomes),
    }


class IngestService:
    """Coordinates intake, remote storage and the record store.

    Args:
        store: Record store shared by both collections.
        uploader: Remote storage uploader.
        intakes: One UploadIntake per record kind, each staging into that
            collection's storage root.
    """

    def __init__(
        self,
        store: RecordStore,
        uploader: StorageUploader,
        intakes: Dict[RecordKind, UploadIntake],
    ):
        self.store = store
        self.uploader = uploader
        self.intakes = intakes
        self.writer = RecordWriter(store)

    def storage_root(self, kind: RecordKind) -> Path:
        return self.intakes[kind].staging_dir

    # -----------------------------------------------------------------------
    # Uploads
    # -----------------------------------------------------------------------

    async def ingest_journal(
        self,
        title: Optional[str],
        abstract: Optional[str],
        authors: Any,
        keywords: Any,
        pdf_file: Optional[UploadFile],
        docx_file: Optional[UploadFile],
    ) -> dict:
        """Validate, store and record a journal article (PDF + DOCX)."""
        kind = RecordKind.JOURNAL
        result = await self.intakes[kind].accept(
            [
                FilePart("pdfFile", FileKind.PDF, pdf_file),
                FilePart("docxFile", FileKind.DOCX, docx_file),
            ],
            title,
            abstract,
            authors=authors,
            keywords=keywords,
        )
        outcomes = await self._upload(kind, result.staged.values())
        record = await self._persist(kind, result.fields, outcomes)
        return journal_upload_response(record, outcomes)

    async def ingest_submission(
        self,
        title: Optional[str],
        abstract: Optional[str],
        authors: Any,
        keywords: Any,
        docx_file: Optional[UploadFile],
    ) -> dict:
        """Validate a DOCX manuscript, derive its PDF, store and record both.

        A failed conversion still creates the record, without PDF fields.
        """
        kind = RecordKind.SUBMISSION
        result = await self.intakes[kind].accept(
            [FilePart("file", FileKind.DOCX, docx_file)],
            title,
            abstract,
            authors=authors,
            keywords=keywords,
        )
        docx = result.staged[FileKind.DOCX]
        staged: List[StagedFile] = [docx]

        pdf_conversion_failed = False
        try:
            pdf_path = await convert_docx_to_pdf(docx.path, result.fields.title)
        except ConversionError as exc:
            logger.warning("PDF conversion failed for %s: %s", docx.local_name, exc.message)
            pdf_conversion_failed = True
        else:
            staged.append(
                StagedFile(
                    kind=FileKind.PDF,
                    original_filename=f"{Path(docx.original_filename).stem}.pdf",
                    path=pdf_path,
                    mime_type=FileKind.PDF.media_type,
                    size_bytes=pdf_path.stat().st_size,
                )
            )

        outcomes = await self._upload(kind, staged)
        record = await self._persist(kind, result.fields, outcomes)
        return submission_upload_response(record, outcomes, pdf_conversion_failed)

    async def _upload(self, kind: RecordKind, staged_files) -> Dict[FileKind, UploadOutcome]:
        outcomes = await self.uploader.upload_all(staged_files, kind.collection)
        return {o.kind: o for o in outcomes}

    async def _persist(self, kind: RecordKind, fields, outcomes: Dict[FileKind, UploadOutcome]) -> ArchiveRecord:
        try:
            return await self.writer.create_record(kind, fields, outcomes)
        except RecordPersistError:
            root = self.storage_root(kind)
            await remove_all(root / o.local_name for o in outcomes.values() if o.local_retained)
            raise

    # -----------------------------------------------------------------------
    # Record lifecycle
    # -----------------------------------------------------------------------

    async def get_record(self, kind: RecordKind, record_id: str) -> ArchiveRecord:
        record = await asyncio.to_thread(self.store.get, kind, record_id)
        if record is None:
            raise NotFoundError(f"{kind.label} not found", details={"id": record_id})
        return record

    async def list_records(self, kind: RecordKind) -> List[ArchiveRecord]:
        return await asyncio.to_thread(self.store.list, kind)

    async def search_records(self, kind: RecordKind, query: str) -> List[ArchiveRecord]:
        return await asyncio.to_thread(self.store.search, kind, query)

    async def update_status(self, kind: RecordKind, record_id: str, status: str) -> ArchiveRecord:
        allowed = valid_statuses(kind)
        if status not in allowed:
            raise InvalidStatusError(status, allowed)
        record = await asyncio.to_thread(self.store.update_status, kind, record_id, status)
        if record is None:
            raise NotFoundError(f"{kind.label} not found", details={"id": record_id})
        logger.info("%s %s status -> %s", kind.label, record_id, status)
        return record

    async def delete_record(self, kind: RecordKind, record_id: str) -> Dict[str, Any]:
        """Delete a record, then best-effort delete its remote and local files.

        Returns:
            ``{"record": ..., "deleted_remote": [...]}`` where ``deleted_remote``
            lists the file kinds removed from remote storage.
        """
        record = await asyncio.to_thread(self.store.delete, kind, record_id)
        if record is None:
            raise NotFoundError(f"{kind.label} not found", details={"id": record_id})

        root = self.storage_root(kind)
        deleted_remote: List[str] = []
        for file_kind in FileKind:
            ref = record.file_ref(file_kind)
            if ref.local_name:
                await remove_local(root / ref.local_name)
            if ref.remote_id and await self.uploader.delete(ref.backend, ref.remote_id):
                deleted_remote.append(file_kind.name)

        return {"record": record, "deleted_remote": deleted_remote}

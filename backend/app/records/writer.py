"""Record writer: turn intake results and upload outcomes into a record."""
import asyncio
import logging
from typing import Mapping, Optional

from app.errors import RecordPersistError
from app.intake.schemas import FileKind, IntakeFields
from app.storage.schemas import UploadOutcome

from .schemas import ArchiveRecord, RecordKind
from .service import RecordStore

logger = logging.getLogger(__name__)


def build_record(
    kind: RecordKind,
    fields: IntakeFields,
    outcomes: Mapping[FileKind, UploadOutcome],
    status: Optional[str] = None,
) -> ArchiveRecord:
    """Assemble an unsaved record.

    Local names are always recorded; remote fields stay None for a file
    whose upload failed.
    """
    data = {
        "title": fields.title,
        "abstract": fields.abstract,
        "authors": list(fields.authors),
        "keywords": list(fields.keywords),
    }
    for file_kind, outcome in outcomes.items():
        prefix = file_kind.value
        data[f"{prefix}_local_name"] = outcome.local_name
        if outcome.remote is not None:
            data[f"{prefix}_remote_id"] = outcome.remote.remote_id
            data[f"{prefix}_remote_url"] = outcome.remote.remote_url
            data[f"{prefix}_remote_backend"] = outcome.remote.backend
    if status is not None:
        data["status"] = status
    return kind.model(**data)


class RecordWriter:
    """Persists new records through a RecordStore."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def create_record(
        self,
        kind: RecordKind,
        fields: IntakeFields,
        outcomes: Mapping[FileKind, UploadOutcome],
        status: Optional[str] = None,
    ) -> ArchiveRecord:
        """Build and insert a record.

        Raises:
            RecordPersistError: the store rejected the write.  Nothing is
                persisted in that case.
        """
        record = build_record(kind, fields, outcomes, status=status)
        try:
            return await asyncio.to_thread(self.store.create, kind, record)
        except Exception as exc:
            logger.exception("Failed to persist %s record %r", kind.value, fields.title)
            raise RecordPersistError(f"Failed to save {kind.value} record") from exc

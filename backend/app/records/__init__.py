"""Journal and submission records and their DuckDB store."""
from .schemas import (
    ArchiveRecord,
    FileRef,
    JournalRecord,
    JournalStatus,
    RecordKind,
    StatusUpdate,
    SubmissionRecord,
    SubmissionStatus,
    valid_statuses,
)
from .service import RecordStore
from .writer import RecordWriter, build_record

__all__ = [
    "ArchiveRecord",
    "FileRef",
    "JournalRecord",
    "JournalStatus",
    "RecordKind",
    "RecordStore",
    "RecordWriter",
    "StatusUpdate",
    "SubmissionRecord",
    "SubmissionStatus",
    "build_record",
    "valid_statuses",
]

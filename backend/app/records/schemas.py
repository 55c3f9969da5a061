"""Pydantic schemas for archive records.

Records are serialized with camelCase keys (``docxRemoteUrl``,
``createdAt``) to match what existing clients read.  Journals and
submissions share the same columns and differ only in their status set.

These schemas are used by:
    - RecordStore: DuckDB storage layer
    - RecordWriter: builds records from intake results and upload outcomes
    - the journals / submissions routers and the download resolver
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.intake.schemas import FileKind


class JournalStatus(str, Enum):
    SUBMITTED = "submitted"
    REVIEWED = "reviewed"
    ACCEPTED = "accepted"
    PUBLISHED = "published"


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under-review"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class FileRef:
    """Where one document of a record can be found."""
    kind: FileKind
    local_name: Optional[str]
    remote_id: Optional[str]
    remote_url: Optional[str]
    backend: Optional[str]

    @property
    def present(self) -> bool:
        return bool(self.local_name or self.remote_id or self.remote_url)


class ArchiveRecord(BaseModel):
    """Columns shared by journal and submission records.

    Attributes:
        id: UUID assigned by the store on creation.
        docx_local_name / pdf_local_name: Staged file names, always recorded
            when the file existed.
        docx_remote_id / pdf_remote_id: Provider identifiers, None when the
            remote upload failed.
        docx_remote_url / pdf_remote_url: Public URLs, None on failure.
        docx_remote_backend / pdf_remote_backend: Provider holding the object.
        created_at: Set once by the store.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    title: str
    abstract: str
    authors: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    docx_local_name: Optional[str] = None
    pdf_local_name: Optional[str] = None
    docx_remote_id: Optional[str] = None
    pdf_remote_id: Optional[str] = None
    docx_remote_url: Optional[str] = None
    pdf_remote_url: Optional[str] = None
    docx_remote_backend: Optional[str] = None
    pdf_remote_backend: Optional[str] = None
    created_at: Optional[datetime] = None

    def file_ref(self, kind: FileKind) -> FileRef:
        prefix = kind.value
        return FileRef(
            kind=kind,
            local_name=getattr(self, f"{prefix}_local_name"),
            remote_id=getattr(self, f"{prefix}_remote_id"),
            remote_url=getattr(self, f"{prefix}_remote_url"),
            backend=getattr(self, f"{prefix}_remote_backend"),
        )

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class JournalRecord(ArchiveRecord):
    status: JournalStatus = JournalStatus.PUBLISHED


class SubmissionRecord(ArchiveRecord):
    status: SubmissionStatus = SubmissionStatus.SUBMITTED


Record = Union[JournalRecord, SubmissionRecord]


class RecordKind(str, Enum):
    """The two record collections kept by the archive."""
    JOURNAL = "journal"
    SUBMISSION = "submission"

    @property
    def table(self) -> str:
        return f"{self.value}s"

    @property
    def collection(self) -> str:
        """Name used in storage keys and ``uploads/<collection>`` paths."""
        return f"{self.value}s"

    @property
    def model(self) -> Type[ArchiveRecord]:
        return JournalRecord if self is RecordKind.JOURNAL else SubmissionRecord

    @property
    def status_enum(self) -> Type[Enum]:
        return JournalStatus if self is RecordKind.JOURNAL else SubmissionStatus

    @property
    def label(self) -> str:
        return self.value.capitalize()


def valid_statuses(kind: RecordKind) -> List[str]:
    return [s.value for s in kind.status_enum]


class StatusUpdate(BaseModel):
    """Request body for status changes."""
    status: str = Field(..., min_length=1, description="New record status")

"""Result types for remote storage operations.

A failed upload is an expected outcome, so it is reported as an
``UploadOutcome`` with ``error`` set rather than raised to the caller.
"""
from dataclasses import dataclass
from typing import Optional

from app.intake.schemas import FileKind


@dataclass(frozen=True)
class RemoteObject:
    """An object stored by a remote provider.

    Attributes:
        remote_id: Provider identifier (S3 object key, Drive file id).
        remote_url: Publicly resolvable URL for the object.
        backend: Name of the provider that holds the object.
    """
    remote_id: str
    remote_url: str
    backend: str


@dataclass
class UploadOutcome:
    """What happened to one staged file."""
    kind: FileKind
    local_name: str
    remote: Optional[RemoteObject] = None
    error: Optional[str] = None
    local_retained: bool = False

    @property
    def succeeded(self) -> bool:
        return self.remote is not None

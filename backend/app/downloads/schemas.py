"""Schemas for document downloads."""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.intake.schemas import FileKind


@dataclass
class DownloadAttempt:
    """One strategy tried while resolving a download."""
    strategy: str
    target: str
    error: Optional[str] = None

    def as_dict(self) -> dict:
        return {"strategy": self.strategy, "target": self.target, "error": self.error}


@dataclass
class ResolvedDownload:
    """A document ready to be sent to the client.

    Exactly one of ``path`` and ``content`` is set.  ``temporary`` marks a
    path that must be deleted once the response has been sent.
    """
    kind: FileKind
    filename: str
    source: str
    path: Optional[Path] = None
    content: Optional[bytes] = None
    temporary: bool = False

    @property
    def media_type(self) -> str:
        return self.kind.media_type

    @property
    def size(self) -> int:
        if self.content is not None:
            return len(self.content)
        return self.path.stat().st_size


class FileCheckResponse(BaseModel):
    """Result of the local file existence check."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    exists: bool
    file_name: Optional[str] = None
    path: Optional[str] = None

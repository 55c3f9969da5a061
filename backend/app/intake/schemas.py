"""Schemas for upload intake.

This module defines what the intake layer accepts and produces:
- FileKind: the two document formats the archive stores (DOCX, PDF)
- ALLOWED_MIME_TYPES / FILE_SIGNATURES: per-kind allow-lists checked on upload
- StagedFile: a validated upload sitting in the local staging directory
- IntakeFields: the cleaned text fields of an upload request
- StringList / CommaString / JsonString: the shapes an author or keyword
  field can arrive in, resolved by normalize_text_list()

Staged files are named ``<epoch-ms>-<safe original name>`` so two uploads of
the same document never collide on disk.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Union

logger = logging.getLogger(__name__)


class FileKind(str, Enum):
    """Document formats accepted by the archive."""
    DOCX = "docx"
    PDF = "pdf"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @property
    def media_type(self) -> str:
        return CANONICAL_MEDIA_TYPES[self]


CANONICAL_MEDIA_TYPES = {
    FileKind.DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    FileKind.PDF: "application/pdf",
}

# Declared MIME types accepted per kind
ALLOWED_MIME_TYPES = {
    FileKind.DOCX: [
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/docx",
        "application/vnd.ms-word",
    ],
    FileKind.PDF: [
        "application/pdf",
        "application/x-pdf",
    ],
}

# Leading bytes per kind. DOCX is a ZIP container.
FILE_SIGNATURES = {
    FileKind.DOCX: [
        b"PK\x03\x04",
        b"PK\x05\x06",  # empty archive
        b"PK\x07\x08",  # spanned archive
    ],
    FileKind.PDF: [
        b"%PDF",
    ],
}

SIGNATURE_LENGTH = 4

MAX_FILE_SIZE_BYTES = 50 * 1024 * 1024


def get_file_kind(filename: str) -> Optional[FileKind]:
    """Map a filename to its FileKind by extension, or None if not allowed.

    Examples:
        >>> get_file_kind("paper.PDF")
        <FileKind.PDF: 'pdf'>
        >>> get_file_kind("tool.exe") is None
        True
    """
    ext = Path(filename).suffix.lower()
    for kind in FileKind:
        if kind.extension == ext:
            return kind
    return None


_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def safe_local_name(original_filename: str, timestamp_ms: int) -> str:
    """Build the on-disk name for a staged upload."""
    base = Path(original_filename.replace("\\", "/")).name
    base = _UNSAFE_NAME_CHARS.sub("", re.sub(r"\s+", "_", base)) or "upload"
    return f"{timestamp_ms}-{base}"


@dataclass
class StagedFile:
    """An upload written to the local staging directory."""
    kind: FileKind
    original_filename: str
    path: Path
    mime_type: str
    size_bytes: int = 0

    @property
    def local_name(self) -> str:
        return self.path.name


@dataclass
class IntakeFields:
    """Text fields of an upload after trimming and normalization."""
    title: str
    abstract: str
    authors: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Author / keyword inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StringList:
    """Field sent as repeated form values or a JSON list body."""
    items: List[Any]


@dataclass(frozen=True)
class CommaString:
    """Field sent as ``"a, b, c"``."""
    text: str


@dataclass(frozen=True)
class JsonString:
    """Field sent as a JSON-encoded array string ``'["a", "b"]'``."""
    text: str


TextListInput = Union[StringList, CommaString, JsonString]


def classify_text_list(value: Any) -> Optional[TextListInput]:
    """Tag a raw author/keyword value with the shape it arrived in.

    Returns None when the field was not supplied at all.
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        if len(value) == 1 and isinstance(value[0], str):
            # A single form value may itself be a comma or JSON string
            return classify_text_list(value[0])
        return StringList(list(value))
    text = str(value).strip()
    if text.startswith("[") and text.endswith("]"):
        return JsonString(text)
    return CommaString(text)


def _clean(items: List[Any]) -> List[str]:
    cleaned = []
    for item in items:
        if item is None or isinstance(item, (list, dict)):
            continue
        text = str(item).strip()
        if text:
            cleaned.append(text)
    return cleaned


def _split_commas(text: str) -> List[str]:
    return _clean(text.split(","))


def normalize_text_list(value: Any) -> List[str]:
    """Resolve any accepted author/keyword shape to a list of trimmed strings.

    Empty entries are dropped. A JSON string that fails to parse, or parses to
    something other than a list, is treated as a comma-separated string.
    """
    tagged = classify_text_list(value)
    if tagged is None:
        return []
    if isinstance(tagged, StringList):
        return _clean(tagged.items)
    if isinstance(tagged, JsonString):
        try:
            parsed = json.loads(tagged.text)
        except json.JSONDecodeError:
            logger.debug("Not valid JSON, splitting on commas: %r", tagged.text)
            return _split_commas(tagged.text.strip("[]"))
        if isinstance(parsed, list):
            return _clean(parsed)
        return _split_commas(tagged.text.strip("[]"))
    return _split_commas(tagged.text)

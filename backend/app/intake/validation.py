"""Upload validation checks.

Each check raises the matching error from ``app.errors``; callers decide
what to clean up.  Rejections are also written to the ``app.security``
logger so suspicious uploads can be audited separately from request logs.
"""
import logging
import re
from pathlib import Path
from typing import Any, List, Optional

from app.errors import FileTypeError, SuspiciousFileNameError, ValidationError

from .schemas import (
    ALLOWED_MIME_TYPES,
    FILE_SIGNATURES,
    SIGNATURE_LENGTH,
    FileKind,
    IntakeFields,
    get_file_kind,
    normalize_text_list,
)

security_logger = logging.getLogger("app.security")

_SUSPICIOUS_PATTERNS = [
    re.compile(r"\.\."),                                             # directory traversal
    re.compile(r'[<>:"|?*]'),                                        # invalid characters
    re.compile(r"^(con|prn|aux|nul|com[1-9]|lpt[1-9])(\.[^.]*)?$", re.IGNORECASE),  # reserved device names
    re.compile(r"\.(exe|bat|cmd|scr|pif|vbs|js|jar|com)$", re.IGNORECASE),          # executables
]


def log_security_event(event: str, **details: Any) -> None:
    security_logger.warning("%s %s", event, details)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def check_required_fields(
    title: Optional[str],
    abstract: Optional[str],
    authors: Any = None,
    keywords: Any = None,
    min_abstract_length: int = 0,
) -> IntakeFields:
    """Validate and clean the text fields of an upload.

    Every failing field is reported, not just the first one.  Authors and
    keywords may be omitted, but a value that normalizes to nothing fails.

    Raises:
        ValidationError: listing each problem found.
    """
    errors: List[str] = []

    if _is_blank(title):
        errors.append("Title is required")

    if _is_blank(abstract):
        errors.append("Abstract is required")
    elif len(abstract.strip()) < min_abstract_length:
        errors.append(f"Abstract must be at least {min_abstract_length} characters")

    author_list = normalize_text_list(authors)
    if authors is not None and not author_list:
        errors.append("Authors must contain at least one name")

    keyword_list = normalize_text_list(keywords)
    if keywords is not None and not keyword_list:
        errors.append("Keywords must contain at least one keyword")

    if errors:
        raise ValidationError(errors)

    return IntakeFields(
        title=title.strip(),
        abstract=abstract.strip(),
        authors=author_list,
        keywords=keyword_list,
    )


def check_declared_type(filename: str, mime_type: Optional[str], expected: FileKind) -> None:
    """Check extension and declared MIME type against the allow-lists.

    Raises:
        FileTypeError: if either does not match *expected*.
    """
    kind = get_file_kind(filename)
    if kind is not expected:
        log_security_event(
            "REJECTED_FILE_UPLOAD_EXT",
            original_name=filename,
            expected=expected.value,
        )
        raise FileTypeError(
            f"File extension not allowed: expected {expected.extension}",
            details={"filename": filename},
        )

    declared = (mime_type or "").split(";")[0].strip().lower()
    if declared not in ALLOWED_MIME_TYPES[expected]:
        log_security_event(
            "REJECTED_FILE_UPLOAD_MIME",
            original_name=filename,
            mime_type=declared,
        )
        raise FileTypeError(
            f"File type not allowed: {declared or 'unknown'}",
            details={"filename": filename, "mimeType": declared},
        )


def has_valid_signature(header: bytes, kind: FileKind) -> bool:
    """Return True when *header* starts with a known signature for *kind*."""
    prefix = header[:SIGNATURE_LENGTH]
    return any(prefix == signature for signature in FILE_SIGNATURES[kind])


def check_signature(path: Path, kind: FileKind, original_filename: str) -> None:
    """Compare the first bytes of a staged file with the signatures for *kind*.

    Raises:
        FileTypeError: if the file is empty or its signature does not match.
    """
    with path.open("rb") as fh:
        header = fh.read(SIGNATURE_LENGTH)

    if not header:
        log_security_event("REJECTED_FILE_UPLOAD_EMPTY", original_name=original_filename)
        raise FileTypeError("Empty file detected", details={"filename": original_filename})

    if not has_valid_signature(header, kind):
        log_security_event(
            "FILE_UPLOAD_VALIDATION_FAILED",
            original_name=original_filename,
            expected=kind.value,
        )
        raise FileTypeError(
            f"File signature validation failed: not a valid {kind.value.upper()} file",
            details={"filename": original_filename},
        )


def check_file_name(filename: str) -> None:
    """Reject names with traversal, reserved device names or executable extensions.

    Raises:
        SuspiciousFileNameError
    """
    if any(pattern.search(filename) for pattern in _SUSPICIOUS_PATTERNS):
        log_security_event("REJECTED_FILE_UPLOAD_SUSPICIOUS", original_name=filename)
        raise SuspiciousFileNameError(
            "Suspicious file name detected",
            details={"filename": filename},
        )

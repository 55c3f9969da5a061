"""Upload intake for journal articles and manuscript submissions.

Validates multipart uploads (required fields, file extension, declared MIME
type, file signature, file name) and stages accepted files on local disk.
"""
from .schemas import FileKind, IntakeFields, StagedFile, normalize_text_list
from .service import FilePart, IntakeResult, UploadIntake

__all__ = [
    "FileKind",
    "FilePart",
    "IntakeFields",
    "IntakeResult",
    "StagedFile",
    "UploadIntake",
    "normalize_text_list",
]

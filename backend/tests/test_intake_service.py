"""Tests for UploadIntake staging and rejection cleanup."""
import io

import pytest
from starlette.datastructures import Headers, UploadFile

from app.errors import FileTooLargeError, FileTypeError, MissingFileError, SuspiciousFileNameError, ValidationError
from app.intake.schemas import FileKind
from app.intake.service import FilePart, UploadIntake

from conftest import ABSTRACT, PDF_BYTES

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def make_upload(data: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def intake(tmp_path):
    return UploadIntake(tmp_path / "staging", max_file_size_bytes=1024 * 1024, min_abstract_length=50)


def journal_parts(pdf: UploadFile = None, docx: UploadFile = None):
    return [
        FilePart("pdfFile", FileKind.PDF, pdf),
        FilePart("docxFile", FileKind.DOCX, docx),
    ]


class TestUploadIntake:

    @pytest.mark.asyncio
    async def test_accepts_and_stages_both_files(self, intake, docx_bytes):
        result = await intake.accept(
            journal_parts(
                make_upload(PDF_BYTES, "paper.pdf", "application/pdf"),
                make_upload(docx_bytes, "paper.docx", DOCX_MIME),
            ),
            "Title",
            ABSTRACT,
            authors=["Ada"],
        )
        assert set(result.staged) == {FileKind.PDF, FileKind.DOCX}
        pdf = result.staged[FileKind.PDF]
        assert pdf.path.read_bytes() == PDF_BYTES
        assert pdf.local_name.endswith("-paper.pdf")
        assert pdf.size_bytes == len(PDF_BYTES)
        assert result.fields.authors == ["Ada"]

    @pytest.mark.asyncio
    async def test_missing_file_part(self, intake):
        with pytest.raises(MissingFileError) as exc_info:
            await intake.accept(
                journal_parts(make_upload(PDF_BYTES, "paper.pdf", "application/pdf"), None),
                "Title",
                ABSTRACT,
            )
        assert exc_info.value.details == {"missing": ["docxFile"]}

    @pytest.mark.asyncio
    async def test_field_errors_before_staging(self, intake, docx_bytes):
        with pytest.raises(ValidationError):
            await intake.accept(
                journal_parts(
                    make_upload(PDF_BYTES, "paper.pdf", "application/pdf"),
                    make_upload(docx_bytes, "paper.docx", DOCX_MIME),
                ),
                "",
                "",
            )
        assert not intake.staging_dir.exists() or not any(intake.staging_dir.iterdir())

    @pytest.mark.asyncio
    async def test_signature_failure_removes_every_staged_file(self, intake):
        with pytest.raises(FileTypeError):
            await intake.accept(
                journal_parts(
                    make_upload(PDF_BYTES, "paper.pdf", "application/pdf"),
                    make_upload(b"MZ\x90\x00not a zip", "malware.docx", DOCX_MIME),
                ),
                "Title",
                ABSTRACT,
            )
        assert list(intake.staging_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_suspicious_name_removes_staged_file(self, intake):
        with pytest.raises(SuspiciousFileNameError):
            await intake.accept(
                [FilePart("pdfFile", FileKind.PDF, make_upload(PDF_BYTES, "bad|name.pdf", "application/pdf"))],
                "Title",
                ABSTRACT,
            )
        assert list(intake.staging_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_oversized_file_rejected(self, tmp_path):
        small = UploadIntake(tmp_path / "staging", max_file_size_bytes=10)
        with pytest.raises(FileTooLargeError):
            await small.stage(make_upload(PDF_BYTES, "paper.pdf", "application/pdf"), FileKind.PDF)
        assert list(small.staging_dir.iterdir()) == []

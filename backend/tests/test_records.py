"""Tests for the DuckDB record store and the record writer."""
from unittest.mock import MagicMock

import pytest

from app.errors import RecordPersistError
from app.intake.schemas import FileKind, IntakeFields
from app.records.schemas import (
    JournalRecord,
    JournalStatus,
    RecordKind,
    SubmissionRecord,
    SubmissionStatus,
    valid_statuses,
)
from app.records.service import RecordStore
from app.records.writer import RecordWriter, build_record
from app.storage.schemas import RemoteObject, UploadOutcome


@pytest.fixture
def store():
    s = RecordStore(":memory:")
    yield s
    s.close()


def journal(title: str = "Deep Archives", **kwargs) -> JournalRecord:
    data = {
        "title": title,
        "abstract": "An abstract about archives.",
        "authors": ["Ada"],
        "keywords": ["storage", "Archival"],
        "docx_local_name": "1-paper.docx",
        "pdf_local_name": "1-paper.pdf",
    }
    data.update(kwargs)
    return JournalRecord(**data)


class TestRecordSchemas:

    def test_defaults(self):
        assert journal().status is JournalStatus.PUBLISHED
        assert SubmissionRecord(title="t", abstract="a").status is SubmissionStatus.SUBMITTED

    def test_camel_case_response(self):
        body = journal(docx_remote_url="https://x/y.docx").to_response()
        assert body["docxRemoteUrl"] == "https://x/y.docx"
        assert body["pdfLocalName"] == "1-paper.pdf"
        assert body["status"] == "published"
        assert "createdAt" in body

    def test_populate_by_alias(self):
        record = JournalRecord(title="t", abstract="a", docxRemoteId="abc")
        assert record.docx_remote_id == "abc"

    def test_file_ref(self):
        ref = journal(pdf_remote_id="k", pdf_remote_backend="s3").file_ref(FileKind.PDF)
        assert ref.local_name == "1-paper.pdf"
        assert ref.remote_id == "k"
        assert ref.backend == "s3"
        assert ref.present
        assert not SubmissionRecord(title="t", abstract="a").file_ref(FileKind.PDF).present

    def test_valid_statuses(self):
        assert valid_statuses(RecordKind.SUBMISSION) == ["submitted", "under-review", "accepted", "rejected"]
        assert "published" in valid_statuses(RecordKind.JOURNAL)

    def test_kind_names(self):
        assert RecordKind.JOURNAL.table == "journals"
        assert RecordKind.SUBMISSION.collection == "submissions"
        assert RecordKind.SUBMISSION.model is SubmissionRecord


class TestRecordStore:

    def test_create_assigns_id_and_created_at(self, store):
        record = store.create(RecordKind.JOURNAL, journal())
        assert record.id
        assert record.created_at is not None

        fetched = store.get(RecordKind.JOURNAL, record.id)
        assert fetched == record
        assert fetched.authors == ["Ada"]

    def test_get_missing(self, store):
        assert store.get(RecordKind.JOURNAL, "nope") is None

    def test_tables_are_separate(self, store):
        record = store.create(RecordKind.JOURNAL, journal())
        assert store.get(RecordKind.SUBMISSION, record.id) is None
        assert store.list(RecordKind.SUBMISSION) == []

    def test_list_newest_first(self, store):
        first = store.create(RecordKind.JOURNAL, journal("First"))
        second = store.create(RecordKind.JOURNAL, journal("Second"))
        assert [r.id for r in store.list(RecordKind.JOURNAL)] == [second.id, first.id]

    def test_search_is_case_insensitive(self, store):
        store.create(RecordKind.JOURNAL, journal("Deep Archives"))
        store.create(RecordKind.JOURNAL, journal("Other", abstract="Nothing here", keywords=["misc"]))

        assert [r.title for r in store.search(RecordKind.JOURNAL, "deep")] == ["Deep Archives"]
        assert [r.title for r in store.search(RecordKind.JOURNAL, "ARCHIVAL")] == ["Deep Archives"]
        assert len(store.search(RecordKind.JOURNAL, "e")) == 2
        assert store.search(RecordKind.JOURNAL, "zzz") == []

    def test_search_matches_non_ascii_keywords(self, store):
        record = store.create(RecordKind.JOURNAL, journal("Plain", abstract="none", keywords=["Café Culture"]))

        assert store.get(RecordKind.JOURNAL, record.id).keywords == ["Café Culture"]
        assert [r.id for r in store.search(RecordKind.JOURNAL, "café")] == [record.id]

    def test_search_ignores_list_punctuation(self, store):
        store.create(RecordKind.JOURNAL, journal("One", abstract="alpha", keywords=[]))
        store.create(RecordKind.JOURNAL, journal("Two", abstract="beta", keywords=["x", "y"]))

        assert store.search(RecordKind.JOURNAL, "[") == []
        assert store.search(RecordKind.JOURNAL, '", "') == []
        assert store.search(RecordKind.JOURNAL, "xy") == []
        assert [r.title for r in store.search(RecordKind.JOURNAL, "Y")] == ["Two"]

    def test_empty_lists_round_trip(self, store):
        record = store.create(RecordKind.SUBMISSION, SubmissionRecord(title="t", abstract="a"))
        fetched = store.get(RecordKind.SUBMISSION, record.id)
        assert fetched.authors == []
        assert fetched.keywords == []

    def test_update_status_keeps_created_at(self, store):
        record = store.create(RecordKind.SUBMISSION, SubmissionRecord(title="t", abstract="a"))
        updated = store.update_status(RecordKind.SUBMISSION, record.id, "under-review")
        assert updated.status is SubmissionStatus.UNDER_REVIEW
        assert updated.created_at == record.created_at
        assert store.update_status(RecordKind.SUBMISSION, "missing", "accepted") is None

    def test_delete_returns_record(self, store):
        record = store.create(RecordKind.JOURNAL, journal())
        assert store.delete(RecordKind.JOURNAL, record.id).id == record.id
        assert store.get(RecordKind.JOURNAL, record.id) is None
        assert store.delete(RecordKind.JOURNAL, record.id) is None


class TestRecordWriter:

    def _outcomes(self):
        return {
            FileKind.PDF: UploadOutcome(
                kind=FileKind.PDF,
                local_name="1-paper.pdf",
                remote=RemoteObject("k/1-paper.pdf", "https://s3/k/1-paper.pdf", "s3"),
            ),
            FileKind.DOCX: UploadOutcome(
                kind=FileKind.DOCX,
                local_name="1-paper.docx",
                error="s3: unreachable",
                local_retained=True,
            ),
        }

    def test_build_record_uses_available_remote_fields(self):
        fields = IntakeFields(title="T", abstract="A", authors=["x"], keywords=["k"])
        record = build_record(RecordKind.JOURNAL, fields, self._outcomes())

        assert record.pdf_remote_id == "k/1-paper.pdf"
        assert record.pdf_remote_backend == "s3"
        assert record.docx_remote_id is None
        assert record.docx_remote_url is None
        assert record.docx_local_name == "1-paper.docx"
        assert record.pdf_local_name == "1-paper.pdf"

    @pytest.mark.asyncio
    async def test_create_record_persists(self, store):
        writer = RecordWriter(store)
        fields = IntakeFields(title="T", abstract="A")
        record = await writer.create_record(RecordKind.JOURNAL, fields, self._outcomes())
        assert store.get(RecordKind.JOURNAL, record.id) is not None

    @pytest.mark.asyncio
    async def test_store_failure_raises_persist_error(self):
        failing = MagicMock()
        failing.create.side_effect = RuntimeError("disk full")
        writer = RecordWriter(failing)

        with pytest.raises(RecordPersistError):
            await writer.create_record(RecordKind.JOURNAL, IntakeFields(title="T", abstract="A"), {})

"""DuckDB-based record storage.

Journal and submission records live in two tables with the same layout.
Author and keyword lists are stored as native ``VARCHAR[]`` columns.

Database Schema:
    journals / submissions tables:
        - id: UUID string primary key
        - seq: insertion order, breaks ties between equal timestamps
        - title, abstract: article text fields
        - authors, keywords: string lists
        - docx_* / pdf_*: local name, remote id, remote url, remote backend
        - status: lifecycle status
        - created_at: creation time (UTC), never updated

Thread Safety:
    The DuckDB connection is NOT thread-safe.  Every statement runs under a
    lock so the store can be called from ``asyncio.to_thread`` workers.

Usage:
    store = RecordStore("journal_archive.duckdb")
    record = store.create(RecordKind.JOURNAL, JournalRecord(title=..., ...))
    records = store.search(RecordKind.JOURNAL, "neural")
"""
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import duckdb

from .schemas import ArchiveRecord, RecordKind

logger = logging.getLogger(__name__)

_COLUMNS = [
    "id",
    "title",
    "abstract",
    "authors",
    "keywords",
    "docx_local_name",
    "pdf_local_name",
    "docx_remote_id",
    "pdf_remote_id",
    "docx_remote_url",
    "pdf_remote_url",
    "docx_remote_backend",
    "pdf_remote_backend",
    "status",
    "created_at",
]

_LIST_COLUMNS = {"authors", "keywords"}

_SELECT = ", ".join(_COLUMNS)


class RecordStore:
    """Stores journal and submission records in DuckDB.

    Attributes:
        db_path: Path to the DuckDB file, or ``:memory:``.
    """

    def __init__(self, db_path: str = "journal_archive.duckdb") -> None:
        self.db_path = db_path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.Lock()
        self._initialize_db()

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._connection = duckdb.connect(self.db_path)
        return self._connection

    def _initialize_db(self) -> None:
        """Create both tables if they don't exist (idempotent)."""
        with self._lock:
            conn = self._get_connection()
            for kind in RecordKind:
                conn.execute(f"CREATE SEQUENCE IF NOT EXISTS {kind.table}_seq START 1")
                conn.execute(f"""
                    CREATE TABLE IF NOT EXISTS {kind.table} (
                        id VARCHAR PRIMARY KEY,
                        seq INTEGER DEFAULT nextval('{kind.table}_seq'),
                        title VARCHAR NOT NULL,
                        abstract VARCHAR NOT NULL,
                        authors VARCHAR[] NOT NULL,
                        keywords VARCHAR[] NOT NULL,
                        docx_local_name VARCHAR,
                        pdf_local_name VARCHAR,
                        docx_remote_id VARCHAR,
                        pdf_remote_id VARCHAR,
                        docx_remote_url VARCHAR,
                        pdf_remote_url VARCHAR,
                        docx_remote_backend VARCHAR,
                        pdf_remote_backend VARCHAR,
                        status VARCHAR NOT NULL,
                        created_at TIMESTAMP NOT NULL
                    )
                """)

    # -----------------------------------------------------------------------
    # Row mapping
    # -----------------------------------------------------------------------

    @staticmethod
    def _to_record(kind: RecordKind, row: tuple) -> ArchiveRecord:
        data = dict(zip(_COLUMNS, row))
        data["authors"] = list(data["authors"] or [])
        data["keywords"] = list(data["keywords"] or [])
        if data["created_at"] is not None:
            data["created_at"] = data["created_at"].replace(tzinfo=timezone.utc)
        return kind.model(**data)

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def create(self, kind: RecordKind, record: ArchiveRecord) -> ArchiveRecord:
        """Insert *record*, assigning its id and creation time."""
        created_at = datetime.now(timezone.utc)
        stored = record.model_copy(update={"id": str(uuid.uuid4()), "created_at": created_at})

        values = [
            stored.id,
            stored.title,
            stored.abstract,
            list(stored.authors),
            list(stored.keywords),
            stored.docx_local_name,
            stored.pdf_local_name,
            stored.docx_remote_id,
            stored.pdf_remote_id,
            stored.docx_remote_url,
            stored.pdf_remote_url,
            stored.docx_remote_backend,
            stored.pdf_remote_backend,
            stored.status.value,
            created_at.replace(tzinfo=None),
        ]
        placeholders = ", ".join(
            "?::VARCHAR[]" if column in _LIST_COLUMNS else "?" for column in _COLUMNS
        )
        with self._lock:
            self._get_connection().execute(
                f"INSERT INTO {kind.table} ({_SELECT}) VALUES ({placeholders})",
                values,
            )
        logger.info("Created %s record %s", kind.value, stored.id)
        return stored

    def get(self, kind: RecordKind, record_id: str) -> Optional[ArchiveRecord]:
        with self._lock:
            row = self._get_connection().execute(
                f"SELECT {_SELECT} FROM {kind.table} WHERE id = ?",
                [record_id],
            ).fetchone()
        return self._to_record(kind, row) if row else None

    def list(self, kind: RecordKind) -> List[ArchiveRecord]:
        """All records of *kind*, newest first."""
        with self._lock:
            rows = self._get_connection().execute(
                f"SELECT {_SELECT} FROM {kind.table} ORDER BY created_at DESC, seq DESC"
            ).fetchall()
        return [self._to_record(kind, row) for row in rows]

    def search(self, kind: RecordKind, query: str) -> List[ArchiveRecord]:
        """Case-insensitive substring match on title, abstract and keywords.

        Keywords are matched one element at a time.
        """
        needle = query.strip().lower()
        with self._lock:
            rows = self._get_connection().execute(
                f"""
                SELECT {_SELECT} FROM {kind.table} AS r
                WHERE instr(lower(r.title), ?) > 0
                   OR instr(lower(r.abstract), ?) > 0
                   OR EXISTS (
                       SELECT 1 FROM (SELECT unnest(r.keywords) AS keyword) AS k
                       WHERE instr(lower(k.keyword), ?) > 0
                   )
                ORDER BY r.created_at DESC, r.seq DESC
                """,
                [needle, needle, needle],
            ).fetchall()
        return [self._to_record(kind, row) for row in rows]

    def update_status(self, kind: RecordKind, record_id: str, status: str) -> Optional[ArchiveRecord]:
        """Set the status of a record.  Returns None when it does not exist."""
        with self._lock:
            conn = self._get_connection()
            exists = conn.execute(
                f"SELECT 1 FROM {kind.table} WHERE id = ?", [record_id]
            ).fetchone()
            if not exists:
                return None
            conn.execute(
                f"UPDATE {kind.table} SET status = ? WHERE id = ?",
                [status, record_id],
            )
        return self.get(kind, record_id)

    def delete(self, kind: RecordKind, record_id: str) -> Optional[ArchiveRecord]:
        """Delete a record and return what was deleted, or None."""
        record = self.get(kind, record_id)
        if record is None:
            return None
        with self._lock:
            self._get_connection().execute(
                f"DELETE FROM {kind.table} WHERE id = ?", [record_id]
            )
        logger.info("Deleted %s record %s", kind.value, record_id)
        return record

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

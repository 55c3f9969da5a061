"""Shared test fixtures and configuration for backend tests."""
import io
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest
from docx import Document
from fastapi.testclient import TestClient

from app.config import AppConfig
from app.dependencies import build_services, get_services
from app.errors import RemoteUploadError
from app.main import app
from app.storage.provider import ObjectStoreProvider
from app.storage.schemas import RemoteObject

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"

ABSTRACT = (
    "This paper studies the archival of scholarly documents across "
    "remote object stores and local disks."
)


def make_docx_bytes(*paragraphs: str, table_rows: Optional[List[List[str]]] = None) -> bytes:
    doc = Document()
    for text in paragraphs or ("Manuscript body text.",):
        doc.add_paragraph(text)
    if table_rows:
        table = doc.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


class FakeObjectStore(ObjectStoreProvider):
    """In-memory provider.  Keys ending in a suffix from ``fail_suffixes`` fail."""

    def __init__(self, name: str = "s3", fail_all: bool = False, fail_suffixes: Optional[Set[str]] = None):
        self._name = name
        self.fail_all = fail_all
        self.fail_suffixes = fail_suffixes or set()
        self.objects: Dict[str, bytes] = {}
        self.deleted: List[str] = []

    @property
    def name(self) -> str:
        return self._name

    def upload(self, local_path: Path, key: str, content_type: str) -> RemoteObject:
        if self.fail_all or any(key.endswith(s) for s in self.fail_suffixes):
            raise RemoteUploadError(f"{self._name} unreachable")
        self.objects[key] = Path(local_path).read_bytes()
        return RemoteObject(
            remote_id=key,
            remote_url=f"https://{self._name}.example.com/{key}",
            backend=self._name,
        )

    def fetch(self, remote_id: str, dest_path: Path) -> Path:
        if remote_id not in self.objects:
            raise KeyError(remote_id)
        Path(dest_path).write_bytes(self.objects[remote_id])
        return Path(dest_path)

    def delete(self, remote_id: str) -> None:
        self.objects.pop(remote_id, None)
        self.deleted.append(remote_id)


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    """Config with every path under tmp_path and an in-memory database."""
    config = AppConfig()
    config.server.environment = "test"
    config.storage.base_dir = str(tmp_path)
    config.storage.root = str(tmp_path / "uploads" / "journals")
    config.storage.submissions_root = str(tmp_path / "uploads" / "submissions")
    config.storage.temp_dir = str(tmp_path / "tmp")
    config.object_store.enabled = False
    config.database.path = ":memory:"
    return config


@pytest.fixture
def fake_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def services(app_config, fake_store):
    svc = build_services(app_config, providers=[fake_store])
    app.dependency_overrides[get_services] = lambda: svc
    yield svc
    app.dependency_overrides.pop(get_services, None)
    svc.store.close()


@pytest.fixture
def api_client(services):
    """TestClient wired to the per-test services (lifespan not run)."""
    return TestClient(app)


@pytest.fixture
def docx_bytes() -> bytes:
    return make_docx_bytes("Introduction", "Results and discussion.")


@pytest.fixture
def journal_form() -> dict:
    return {
        "title": "Archiving Scholarly Documents",
        "abstract": ABSTRACT,
        "authors": "Ada Lovelace, Alan Turing",
        "keywords": '["archives", "storage"]',
    }

"""Tests for the error hierarchy and rendered error bodies."""
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.config import AppConfig
from app.errors import (
    DownloadSourceExhaustedError,
    FileTooLargeError,
    FileTypeError,
    JournalArchiveError,
    MissingFileError,
    NotFoundError,
    RecordPersistError,
    SuspiciousFileNameError,
    ValidationError,
    register_exception_handlers,
)


def make_app(environment: str) -> FastAPI:
    app = FastAPI()
    config = AppConfig()
    config.server.environment = environment
    app.state.config = config
    register_exception_handlers(app)

    @app.get("/persist")
    async def persist():
        raise RecordPersistError("Failed to save journal record")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("unexpected")

    return app


def test_status_codes():
    assert ValidationError(["x"]).status_code == 400
    assert MissingFileError("m").status_code == 400
    assert FileTypeError("f").status_code == 400
    assert SuspiciousFileNameError("s").status_code == 400
    assert FileTooLargeError("l").status_code == 413
    assert RecordPersistError("p").status_code == 500
    assert NotFoundError("n").status_code == 404
    assert DownloadSourceExhaustedError("d").status_code == 404
    assert issubclass(DownloadSourceExhaustedError, JournalArchiveError)


def test_validation_error_details():
    err = ValidationError(["Title is required", "Abstract is required"])
    assert err.message == "Validation failed"
    assert err.details == ["Title is required", "Abstract is required"]


def test_stack_included_outside_production():
    client = TestClient(make_app("development"))
    body = client.get("/persist").json()

    assert body["success"] is False
    assert body["message"] == "Failed to save journal record"
    assert body["error_type"] == "RecordPersistError"
    assert body["path"] == "/persist"
    assert body["method"] == "GET"
    assert "timestamp" in body
    assert "RecordPersistError" in body["stack"]


def test_stack_hidden_in_production():
    client = TestClient(make_app("production"))
    body = client.get("/persist").json()

    assert "stack" not in body
    assert "error" not in body


def test_unhandled_exception_renders_500():
    client = TestClient(make_app("development"), raise_server_exceptions=False)
    response = client.get("/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["message"] == "Internal Server Error"
    assert body["error"] == "unexpected"

"""Upload-to-record pipeline."""
from .service import IngestService, journal_upload_response, submission_upload_response

__all__ = ["IngestService", "journal_upload_response", "submission_upload_response"]

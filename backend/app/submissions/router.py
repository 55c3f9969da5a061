"""Manuscript submission endpoints.

A submission is a single DOCX upload (file part ``file``); its PDF is
derived on the server.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Request

from app.dependencies import Services, get_services
from app.intake.forms import form_file, form_list, form_text
from app.records.schemas import RecordKind, StatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["submissions"])

KIND = RecordKind.SUBMISSION


@router.post("", status_code=201)
async def create_submission(request: Request, services: Services = Depends(get_services)) -> dict:
    async with request.form() as form:
        return await services.ingest.ingest_submission(
            title=form_text(form, "title"),
            abstract=form_text(form, "abstract"),
            authors=form_list(form, "authors"),
            keywords=form_list(form, "keywords"),
            docx_file=form_file(form, "file"),
        )


@router.get("")
async def list_submissions(services: Services = Depends(get_services)) -> List[dict]:
    records = await services.ingest.list_records(KIND)
    return [r.to_response() for r in records]


@router.get("/{record_id}")
async def get_submission(record_id: str, services: Services = Depends(get_services)) -> dict:
    record = await services.ingest.get_record(KIND, record_id)
    return record.to_response()


@router.put("/{record_id}/status")
async def update_submission_status(
    record_id: str,
    body: StatusUpdate,
    services: Services = Depends(get_services),
) -> dict:
    """Change a submission's status.

    Valid statuses: submitted, under-review, accepted, rejected.
    """
    record = await services.ingest.update_status(KIND, record_id, body.status)
    return {
        "message": "Submission status updated successfully",
        "submission": record.to_response(),
    }


@router.delete("/{record_id}")
async def delete_submission(record_id: str, services: Services = Depends(get_services)) -> dict:
    result = await services.ingest.delete_record(KIND, record_id)
    return {
        "message": "Submission deleted successfully",
        "deletedSubmission": result["record"].to_response(),
        "deletedFromRemote": result["deleted_remote"] or None,
    }

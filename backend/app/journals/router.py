"""Journal article endpoints.

Uploads are multipart requests carrying ``title``, ``abstract``,
``authors[]``/``authors``, ``keywords[]``/``keywords`` and the two file
parts ``pdfFile`` and ``docxFile``.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from app.dependencies import Services, get_services
from app.intake.forms import form_file, form_list, form_text
from app.records.schemas import RecordKind, StatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/journals", tags=["journals"])

KIND = RecordKind.JOURNAL


@router.post("", status_code=201)
async def upload_journal(request: Request, services: Services = Depends(get_services)) -> dict:
    """Upload a journal article (PDF + DOCX).

    Remote upload failures still return 201; the response flags which file
    failed and that file stays on local disk.
    """
    async with request.form() as form:
        return await services.ingest.ingest_journal(
            title=form_text(form, "title"),
            abstract=form_text(form, "abstract"),
            authors=form_list(form, "authors"),
            keywords=form_list(form, "keywords"),
            pdf_file=form_file(form, "pdfFile"),
            docx_file=form_file(form, "docxFile"),
        )


@router.get("")
async def list_journals(services: Services = Depends(get_services)) -> List[dict]:
    """List all journals, newest first."""
    records = await services.ingest.list_records(KIND)
    return [r.to_response() for r in records]


@router.get("/search")
async def search_journals(
    query: Optional[str] = None,
    services: Services = Depends(get_services),
) -> List[dict]:
    """Case-insensitive search over title, abstract and keywords."""
    if not query or not query.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    records = await services.ingest.search_records(KIND, query)
    return [r.to_response() for r in records]


@router.get("/{record_id}")
async def get_journal(record_id: str, services: Services = Depends(get_services)) -> dict:
    record = await services.ingest.get_record(KIND, record_id)
    return record.to_response()


@router.patch("/{record_id}/status")
async def update_journal_status(
    record_id: str,
    body: StatusUpdate,
    services: Services = Depends(get_services),
) -> dict:
    record = await services.ingest.update_status(KIND, record_id, body.status)
    return record.to_response()


@router.delete("/{record_id}")
async def delete_journal(record_id: str, services: Services = Depends(get_services)) -> dict:
    """Delete a journal and, best-effort, its remote and local files."""
    result = await services.ingest.delete_record(KIND, record_id)
    return {
        "message": "Journal deleted successfully",
        "deletedFromRemote": result["deleted_remote"] or None,
    }

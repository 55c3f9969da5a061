"""Document download endpoints for journals and submissions.

Both URL shapes are served for each collection:
    /<collection>/{id}/download/{kind}
    /<collection>/download/{kind}/{id}
"""
import asyncio
import logging
from typing import AsyncIterator

import aiofiles
from fastapi import APIRouter, Depends
from fastapi.responses import Response, StreamingResponse

from app.dependencies import Services, get_services
from app.errors import FileTypeError
from app.intake.schemas import FileKind
from app.records.schemas import RecordKind
from app.storage.cleanup import remove_local

from .schemas import FileCheckResponse, ResolvedDownload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["downloads"])

CHUNK_SIZE = 64 * 1024


def parse_file_kind(value: str) -> FileKind:
    try:
        return FileKind(value.lower())
    except ValueError:
        raise FileTypeError("Invalid file type", details={"fileType": value}) from None


async def _stream_file(download: ResolvedDownload) -> AsyncIterator[bytes]:
    try:
        async with aiofiles.open(download.path, "rb") as fh:
            while True:
                chunk = await fh.read(CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
    finally:
        # Runs on completion and on client disconnect
        if download.temporary:
            await remove_local(download.path)


def build_download_response(download: ResolvedDownload) -> Response:
    headers = {
        "Content-Disposition": f'attachment; filename="{download.filename}"',
        "Content-Length": str(download.size),
    }
    if download.content is not None:
        return Response(download.content, media_type=download.media_type, headers=headers)

    return StreamingResponse(
        _stream_file(download),
        media_type=download.media_type,
        headers=headers,
    )


async def _download(services: Services, kind: RecordKind, record_id: str, file_type: str) -> Response:
    file_kind = parse_file_kind(file_type)
    record = await services.ingest.get_record(kind, record_id)
    download = await services.resolver.resolve(kind, record, file_kind)
    logger.info(
        "Download %s of %s %s via %s", file_kind.value, kind.value, record_id, download.source
    )
    return build_download_response(download)


@router.get("/journals/{record_id}/download/{file_type}")
async def download_journal_file(
    record_id: str, file_type: str, services: Services = Depends(get_services)
) -> Response:
    return await _download(services, RecordKind.JOURNAL, record_id, file_type)


@router.get("/journals/download/{file_type}/{record_id}")
async def download_journal_file_legacy(
    file_type: str, record_id: str, services: Services = Depends(get_services)
) -> Response:
    return await _download(services, RecordKind.JOURNAL, record_id, file_type)


@router.get("/submissions/{record_id}/download/{file_type}")
async def download_submission_file(
    record_id: str, file_type: str, services: Services = Depends(get_services)
) -> Response:
    return await _download(services, RecordKind.SUBMISSION, record_id, file_type)


@router.get("/submissions/download/{file_type}/{record_id}")
async def download_submission_file_legacy(
    file_type: str, record_id: str, services: Services = Depends(get_services)
) -> Response:
    return await _download(services, RecordKind.SUBMISSION, record_id, file_type)


@router.get("/journals/check-file/{record_id}/{file_type}", response_model=FileCheckResponse)
async def check_journal_file(
    record_id: str, file_type: str, services: Services = Depends(get_services)
) -> FileCheckResponse:
    """Report whether a journal document exists on local disk."""
    file_kind = parse_file_kind(file_type)
    record = await services.ingest.get_record(RecordKind.JOURNAL, record_id)
    local_name = record.file_ref(file_kind).local_name
    if not local_name:
        return FileCheckResponse(exists=False)

    found, _ = await asyncio.to_thread(services.resolver.find_local, RecordKind.JOURNAL, local_name)
    return FileCheckResponse(
        exists=found is not None,
        file_name=local_name,
        path=str(found) if found else None,
    )

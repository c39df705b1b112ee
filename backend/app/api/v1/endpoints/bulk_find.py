from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import ValidationError
from typing import Optional
import logging

from app.api.dependencies import get_bulk_service, get_caller_identity
from app.core.config import settings
from app.core.exceptions import RequestValidationFailed
from app.schemas.bulk import (
    BulkLookupResponse,
    BulkRecordsRequest,
    SaveBulkResultsRequest,
    SaveBulkResultsResponse,
)
from app.schemas.lookup import ResultRecord, RetryRecordRequest
from app.services.bulk import BulkLookupService, validate_pagination
from app.services.ingest import parse_upload

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_upload(request: Request):
    """Return (file_name, rows, raw content) from a multipart file or a JSON body."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        if upload is None or isinstance(upload, str):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded.")
        contents = await upload.read()
        rows = parse_upload(upload.filename, contents)
        return upload.filename, rows, contents

    try:
        body = BulkRecordsRequest.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Expected a multipart file upload or a JSON body with records: {e}"
        )
    if not body.records:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No records provided.")
    return body.file_name, body.records, None


@router.post("/bulk-find-email", response_model=BulkLookupResponse)
async def bulk_find_email(
    request: Request,
    page: int = Query(1),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    identity: str = Depends(get_caller_identity),
    bulk_service: BulkLookupService = Depends(get_bulk_service),
):
    if page_size is None:
        page_size = settings.BULK_DEFAULT_PAGE_SIZE
    validate_pagination(page, page_size, bulk_service.max_page_size)

    file_name, rows, contents = await _read_upload(request)
    logger.info(f"Bulk email search by {identity}: {file_name} ({len(rows)} records)")
    return await bulk_service.process(
        identity,
        file_name,
        rows,
        page=page,
        page_size=page_size,
        content=contents,
    )


@router.post("/bulk-find-email/retry", response_model=ResultRecord)
async def retry_record(
    body: RetryRecordRequest,
    identity: str = Depends(get_caller_identity),
    bulk_service: BulkLookupService = Depends(get_bulk_service),
):
    return await bulk_service.retry_record(body.record, bypass_cache=body.bypass_cache)


@router.post("/bulk-results", response_model=SaveBulkResultsResponse)
async def save_bulk_results(
    body: SaveBulkResultsRequest,
    identity: str = Depends(get_caller_identity),
    bulk_service: BulkLookupService = Depends(get_bulk_service),
):
    try:
        search_id = await bulk_service.save_snapshot(identity, body.file_name, body.results)
    except RequestValidationFailed:
        raise
    except Exception as e:
        logger.error(f"Error saving bulk search result: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save bulk search result."
        )
    return SaveBulkResultsResponse(success=True, searchId=search_id)

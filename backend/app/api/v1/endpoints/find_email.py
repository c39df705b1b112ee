from fastapi import APIRouter, Depends, HTTPException, status
import logging

from app.api.dependencies import get_caller_identity, get_lookup_service
from app.schemas.lookup import CandidateRecord, FindEmailResponse
from app.services.identity import missing_required_fields
from app.services.lookup import EmailLookupService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/find-email", response_model=FindEmailResponse)
async def find_email(
    record: CandidateRecord,
    identity: str = Depends(get_caller_identity),
    lookup_service: EmailLookupService = Depends(get_lookup_service),
):
    missing = missing_required_fields(record)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing required fields: {', '.join(missing)}"
        )

    logger.info(f"Single email search by {identity} for {record.first_name} {record.last_name}")
    return await lookup_service.find_and_store(identity, record)

from fastapi import APIRouter, Depends, HTTPException, status
from datetime import datetime, timezone

from app.api.dependencies import get_caller_identity, get_verifier
from app.schemas.verification import (
    BatchVerifyItem,
    BatchVerifyRequest,
    BatchVerifyResponse,
    VerifyEmailRequest,
    VerifyEmailResponse,
)
from app.services.identity import validate_email_format
from app.services.verification import EmailVerifier

router = APIRouter()


@router.post("/verify-email", response_model=VerifyEmailResponse)
async def verify_email(
    body: VerifyEmailRequest,
    identity: str = Depends(get_caller_identity),
    verifier: EmailVerifier = Depends(get_verifier),
):
    email = (body.email or "").strip()
    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required")
    if not validate_email_format(email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email format")

    is_verified = await verifier.verify(email)
    return VerifyEmailResponse(
        email=email,
        isVerified=is_verified,
        emailQuality=verifier.classify(email),
        verifiedAt=datetime.now(timezone.utc).isoformat(),
    )


@router.post("/verify-email/batch", response_model=BatchVerifyResponse)
async def verify_all(
    body: BatchVerifyRequest,
    identity: str = Depends(get_caller_identity),
    verifier: EmailVerifier = Depends(get_verifier),
):
    """Verify every found, unverified email in a result set, one at a time."""
    outcome = await verifier.verify_all(body.results)
    return BatchVerifyResponse(
        results=outcome.results,
        items=[
            BatchVerifyItem(index=item.index, email=item.email, isVerified=item.is_verified, error=item.error)
            for item in outcome.items
        ],
        verifiedCount=outcome.verified_count,
        failedCount=outcome.failed_count,
    )

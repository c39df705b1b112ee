"""
Verification & Classification

SES is asked to start verification of an address. It does not answer yes or
no; a call that does not error counts as verified. Everything here fails
closed: a bad format or a provider error is simply "not verified".
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import boto3

from app.core.config import settings
from app.schemas.lookup import ResultRecord
from app.services.identity import classify_domain, validate_email_format

logger = logging.getLogger(__name__)


class SesVerificationProvider:
    def __init__(self, client: Any = None):
        self.client = client or boto3.client(
            "ses",
            region_name=settings.AWS_REGION,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        )

    async def request_verification(self, email: str) -> None:
        await asyncio.to_thread(self.client.verify_email_identity, EmailAddress=email)


@dataclass
class VerificationOutcome:
    index: int
    email: str
    is_verified: bool
    error: Optional[str] = None


@dataclass
class BatchOutcome:
    results: List[ResultRecord]
    items: List[VerificationOutcome]

    @property
    def verified_count(self) -> int:
        return sum(1 for item in self.items if item.is_verified)

    @property
    def failed_count(self) -> int:
        return sum(1 for item in self.items if not item.is_verified)


class EmailVerifier:
    def __init__(self, provider):
        self.provider = provider

    async def verify(self, email: Optional[str]) -> bool:
        ok, _ = await self._verify(email)
        return ok

    async def _verify(self, email: Optional[str]):
        if not validate_email_format(email):
            return False, "Invalid email format"
        try:
            await self.provider.request_verification(email)
            return True, None
        except Exception as e:
            logger.error(f"Error verifying email {email}: {e}")
            return False, str(e)

    @staticmethod
    def classify(email: Optional[str]) -> Optional[str]:
        return classify_domain(email)

    async def verify_all(self, results: List[ResultRecord]) -> BatchOutcome:
        """
        Verify every found, not yet verified email one after another.

        Records are updated in place (isVerified, emailQuality). The provider
        is never called concurrently.
        """
        items = []
        for index, record in enumerate(results):
            if not record.found_email:
                record.is_verified = None
                record.email_quality = None
                continue
            if record.is_verified is not None:
                continue
            ok, error = await self._verify(record.found_email)
            record.is_verified = ok
            record.email_quality = self.classify(record.found_email)
            items.append(VerificationOutcome(index=index, email=record.found_email, is_verified=ok, error=error))

        outcome = BatchOutcome(results=results, items=items)
        logger.info(
            f"Batch verification finished: {outcome.verified_count} verified, {outcome.failed_count} failed"
        )
        return outcome

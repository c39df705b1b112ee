"""
Single Lookup Orchestrator

One record at a time:
1. Required field check (missing fields -> skipped, never queried)
2. Cache lookup by computed key
3. Query resolver, primary then fallback tier
4. Normalize/filter the business email
5. Write a normalized hit through to the cache
6. Attach personal emails as discovered
"""
import hashlib
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from app.schemas.lookup import CandidateRecord, FindEmailResponse
from app.services.cache import CacheGateway, compute_cache_key
from app.services.identity import missing_required_fields, normalize_and_filter
from app.services.query_resolver import QueryResolver, not_found_message

logger = logging.getLogger(__name__)

FIND_EMAIL_FEATURE = "find-email"


@dataclass
class LookupResult:
    email: Optional[str] = None
    personal_emails: List[str] = field(default_factory=list)
    cached: bool = False
    skipped: bool = False
    missing_fields: List[str] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.email is not None


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_request_id(content: bytes) -> str:
    """Millisecond timestamp plus the first 8 hex chars of the content hash."""
    digest = hashlib.sha256(content).hexdigest()[:8]
    return f"{int(time.time() * 1000)}-{digest}"


class EmailLookupService:
    def __init__(self, cache: CacheGateway, resolver: QueryResolver, results_store=None):
        self.cache = cache
        self.resolver = resolver
        self.results_store = results_store

    async def lookup(self, record: CandidateRecord, use_cache: bool = True) -> LookupResult:
        missing = missing_required_fields(record)
        if missing:
            logger.warning(f"Skipping record, missing required fields: {', '.join(missing)}")
            return LookupResult(skipped=True, missing_fields=missing)

        cache_key = compute_cache_key(record)
        if use_cache:
            cached_email = await self.cache.get(cache_key)
            if cached_email:
                return LookupResult(email=cached_email, cached=True)

        resolved = await self.resolver.resolve(record)

        email = normalize_and_filter(resolved.business_email)
        if resolved.business_email and email is None:
            logger.info(f"Discarded unusable email returned for {cache_key}")

        if email:
            await self.cache.put(cache_key, email)

        message = None
        if email is None and not resolved.personal_emails:
            message = resolved.message or not_found_message(record)

        return LookupResult(
            email=email,
            personal_emails=list(resolved.personal_emails),
            message=message,
        )

    async def find_and_store(self, identity: str, record: CandidateRecord) -> FindEmailResponse:
        """Single search from the API: look up, persist to history, report."""
        result = await self.lookup(record)

        search_id = generate_request_id(compute_cache_key(record).encode("utf-8"))
        response = FindEmailResponse(
            searchId=search_id,
            firstName=record.first_name or "",
            lastName=record.last_name or "",
            linkedin=record.linkedin or "",
            companyName=record.company_name or "",
            email=result.email,
            personalEmails=result.personal_emails,
            cached=result.cached,
            error=result.message,
            timestamp=utc_timestamp(),
        )

        if self.results_store is not None:
            try:
                await self.results_store.put_json(
                    identity,
                    FIND_EMAIL_FEATURE,
                    search_id,
                    response.model_dump(by_alias=True, exclude={"warning"}),
                )
            except Exception as e:
                logger.error(f"Error saving search result {search_id}: {e}")
                response.warning = "Search completed but failed to save to history"

        return response

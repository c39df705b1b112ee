"""
Bulk Batch Orchestrator

Drives single lookups over an uploaded batch:
1. Validate pagination and required columns before any lookup
2. Slice the requested page
3. Resolve chunk by chunk: records inside a chunk run concurrently,
   chunks run strictly one after another
4. Enrich found emails sequentially (verification + quality)
5. Attach the daily quota summary and persist the snapshot
"""
import asyncio
import json
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import RequestValidationFailed
from app.schemas.bulk import BulkLookupResponse
from app.schemas.lookup import CandidateRecord, ResultRecord
from app.services.ingest import check_required_columns
from app.services.lookup import EmailLookupService, LookupResult, generate_request_id, utc_timestamp
from app.services.results_store import BULK_FEATURE
from app.services.usage_tracker import build_rate_limit_info
from app.services.verification import EmailVerifier

logger = logging.getLogger(__name__)


PERSISTENCE_WARNING = "Results processed successfully but could not be stored for future reference."

RESULT_COLUMNS = {
    "foundEmail", "personalEmails", "isVerified", "emailQuality",
    "skipped", "processedAt", "retryCount", "lastRetry",
}


def validate_pagination(page: int, page_size: int, max_page_size: int) -> None:
    if page < 1 or page_size < 1 or page_size > max_page_size:
        raise RequestValidationFailed(
            f"Invalid pagination parameters: page must be >= 1 and pageSize between 1 and {max_page_size}"
        )


def paginate(records: Sequence, page: int, page_size: int) -> list:
    start = (page - 1) * page_size
    return list(records[start:start + page_size])


def chunked(items: Sequence, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


def to_candidate(row: Dict[str, Any]) -> CandidateRecord:
    try:
        return CandidateRecord.model_validate(row)
    except ValidationError as e:
        logger.warning(f"Could not read record {row!r}: {e}")
        return CandidateRecord()


class BulkLookupService:
    def __init__(
        self,
        lookup_service: EmailLookupService,
        verifier: EmailVerifier,
        results_store=None,
        chunk_size: Optional[int] = None,
        max_page_size: Optional[int] = None,
        deadline_seconds: Optional[float] = None,
    ):
        self.lookup_service = lookup_service
        self.verifier = verifier
        self.results_store = results_store
        self.chunk_size = chunk_size or settings.BULK_CHUNK_SIZE
        self.max_page_size = max_page_size or settings.BULK_MAX_PAGE_SIZE
        self.deadline_seconds = deadline_seconds if deadline_seconds is not None else settings.LOOKUP_DEADLINE_SECONDS

    async def _safe_lookup(self, record: CandidateRecord, use_cache: bool = True) -> LookupResult:
        """One record's failure or timeout becomes not-found for that record only."""
        try:
            if self.deadline_seconds:
                return await asyncio.wait_for(
                    self.lookup_service.lookup(record, use_cache=use_cache),
                    timeout=self.deadline_seconds,
                )
            return await self.lookup_service.lookup(record, use_cache=use_cache)
        except asyncio.TimeoutError:
            logger.warning(
                f"Lookup for {record.first_name} {record.last_name} exceeded {self.deadline_seconds}s, treating as not found"
            )
        except Exception as e:
            logger.error(f"Error finding email for {record.first_name} {record.last_name}: {e}")
        return LookupResult()

    async def resolve_all(self, records: List[CandidateRecord]) -> List[LookupResult]:
        """Results come back in input order regardless of completion order."""
        results: List[LookupResult] = []
        for number, chunk in enumerate(chunked(records, self.chunk_size), start=1):
            logger.info(f"Processing chunk {number} ({len(chunk)} records)")
            chunk_results = await asyncio.gather(*(self._safe_lookup(record) for record in chunk))
            results.extend(chunk_results)
        return results

    async def enrich(self, record: ResultRecord) -> ResultRecord:
        if record.found_email:
            record.is_verified = await self.verifier.verify(record.found_email)
            record.email_quality = self.verifier.classify(record.found_email)
        else:
            record.is_verified = None
            record.email_quality = None
        return record

    @staticmethod
    def build_result(row: Dict[str, Any], lookup: LookupResult, processed_at: str) -> ResultRecord:
        # Output columns in the upload are overwritten, never parsed
        carried = {k: v for k, v in row.items() if k not in RESULT_COLUMNS}
        try:
            record = ResultRecord.model_validate(carried)
        except ValidationError:
            record = ResultRecord()
        record.found_email = lookup.email
        record.personal_emails = list(lookup.personal_emails)
        record.skipped = lookup.skipped
        record.is_verified = None
        record.email_quality = None
        record.processed_at = processed_at
        return record

    async def process(
        self,
        identity: str,
        file_name: str,
        rows: List[Dict[str, Any]],
        page: int = 1,
        page_size: Optional[int] = None,
        content: Optional[bytes] = None,
    ) -> BulkLookupResponse:
        if page_size is None:
            page_size = settings.BULK_DEFAULT_PAGE_SIZE
        validate_pagination(page, page_size, self.max_page_size)

        header = set()
        for row in rows:
            header.update(row.keys())
        check_required_columns(header)

        if content is None:
            content = json.dumps(rows, sort_keys=True, default=str).encode("utf-8")
        request_id = generate_request_id(content)

        page_rows = paginate(rows, page, page_size)
        logger.info(
            f"Bulk request {request_id}: {len(page_rows)} of {len(rows)} records on page {page} (pageSize {page_size})"
        )

        candidates = [to_candidate(row) for row in page_rows]
        lookups = await self.resolve_all(candidates)

        results = []
        for row, lookup in zip(page_rows, lookups):
            record = self.build_result(row, lookup, utc_timestamp())
            results.append(await self.enrich(record))

        response = BulkLookupResponse(
            requestId=request_id,
            fileName=file_name,
            totalRecords=len(rows),
            page=page,
            pageSize=page_size,
            totalPages=math.ceil(len(rows) / page_size),
            recordCount=len(results),
            successCount=sum(1 for r in results if r.found_email),
            verifiedCount=sum(1 for r in results if r.is_verified is True),
            timestamp=utc_timestamp(),
            rateLimitInfo=build_rate_limit_info(len(results)),
            results=results,
        )

        if not await self._persist(identity, request_id, response):
            response.warning = PERSISTENCE_WARNING
        return response

    async def _persist(self, identity: str, search_id: str, response: BulkLookupResponse) -> bool:
        if self.results_store is None:
            return False
        payload = response.model_dump(mode="json", by_alias=True, exclude={"warning"})
        payload["searchId"] = search_id
        payload["totalRecordsInFile"] = response.total_records
        try:
            await self.results_store.put_json(identity, BULK_FEATURE, search_id, payload)
            return True
        except Exception as e:
            logger.error(f"Error storing bulk result {search_id}: {e}")
            return False

    async def retry_record(self, record: ResultRecord, bypass_cache: Optional[bool] = None) -> ResultRecord:
        """
        Re-run one lookup in place. Previous email, verification and quality
        are cleared and replaced; the retry counter goes up by one. The cache
        is still consulted unless bypassing is requested or configured.
        """
        if bypass_cache is None:
            bypass_cache = settings.RETRY_BYPASS_CACHE

        record.found_email = None
        record.personal_emails = []
        record.is_verified = None
        record.email_quality = None
        record.skipped = False
        record.retry_count = (record.retry_count or 0) + 1
        record.last_retry = utc_timestamp()

        lookup = await self._safe_lookup(record, use_cache=not bypass_cache)
        record.found_email = lookup.email
        record.personal_emails = list(lookup.personal_emails)
        record.skipped = lookup.skipped
        record.processed_at = utc_timestamp()
        return await self.enrich(record)

    async def save_snapshot(self, identity: str, file_name: str, results: List[ResultRecord]) -> str:
        """Persist an in-memory result set as a new snapshot. Errors propagate."""
        if not file_name:
            raise RequestValidationFailed("Missing required parameters: fileName")

        payload_results = [r.model_dump(mode="json", by_alias=True) for r in results]
        search_id = generate_request_id(json.dumps(payload_results, sort_keys=True).encode("utf-8"))
        payload = {
            "searchId": search_id,
            "fileName": file_name,
            "recordCount": len(results),
            "successCount": sum(1 for r in results if r.found_email),
            "verifiedCount": sum(1 for r in results if r.is_verified is True),
            "results": payload_results,
            "timestamp": utc_timestamp(),
        }
        await self.results_store.put_json(identity, BULK_FEATURE, search_id, payload)
        return search_id

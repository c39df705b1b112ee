"""
Query Resolver

Looks a candidate up in the data lake with two tiers:
1. Primary query on all four fields
2. Fallback query without the LinkedIn constraint, only when the primary
   query produced neither a business email nor personal emails

Each tier runs its own submit (bounded retries) -> poll (capped exponential
backoff) -> extract cycle. Backend trouble degrades to "no result".
"""
import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from app.core.config import settings
from app.core.exceptions import QueryThrottledError
from app.services.query_builder import SearchQuery, build_fallback_query, build_primary_query
from app.services.query_state import BackoffPolicy, PollState, QueryState, advance

logger = logging.getLogger(__name__)


@dataclass
class ResolverResult:
    business_email: Optional[str] = None
    personal_emails: List[str] = field(default_factory=list)
    tier: Optional[str] = None
    message: Optional[str] = None

    @property
    def found(self) -> bool:
        return bool(self.business_email or self.personal_emails)


def parse_personal_emails(value: Optional[str]) -> List[str]:
    """
    Decode the PERSONAL_EMAILS column.

    Accepts a JSON array literal, a comma-separated list or a single bare
    value. Anything unparseable yields an empty list.
    """
    if not value or not value.strip():
        return []

    raw = value.strip()
    try:
        if raw.startswith('[') and raw.endswith(']'):
            parsed = json.loads(raw)
            if not isinstance(parsed, list):
                raise ValueError(f"expected a JSON array, got {type(parsed).__name__}")
            return [str(item).strip() for item in parsed if item and str(item).strip()]
        if ',' in raw:
            return [part.strip() for part in raw.split(',') if part.strip()]
        return [raw]
    except ValueError as e:
        logger.error(f"Error parsing personal emails {value!r}: {e}")
        return []


def extract_result(rows: Optional[List[List[Optional[str]]]]) -> Optional[ResolverResult]:
    """Row 0 is the header; row 1 (if any) holds BUSINESS_EMAIL, PERSONAL_EMAILS."""
    if not rows or len(rows) < 2:
        return None

    data_row = rows[1]
    business_email = data_row[0] if len(data_row) > 0 else None
    personal_raw = data_row[1] if len(data_row) > 1 else None

    return ResolverResult(
        business_email=business_email or None,
        personal_emails=parse_personal_emails(personal_raw),
    )


def not_found_message(record) -> str:
    return (
        "No matching email found. We searched for records matching the following criteria:\n"
        f"- Name: {record.first_name} {record.last_name}\n"
        f"- Company: {record.company_name}\n"
        f"- LinkedIn: {record.linkedin}\n"
        "Please verify your information and try again with different variations."
    )


class QueryResolver:
    def __init__(
        self,
        backend,
        table: Optional[str] = None,
        output_location: Optional[str] = None,
        policy: Optional[BackoffPolicy] = None,
        max_submit_attempts: Optional[int] = None,
        max_poll_attempts: Optional[int] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.backend = backend
        self.table = table or settings.ATHENA_TABLE
        self.output_location = output_location if output_location is not None else settings.ATHENA_OUTPUT_LOCATION
        self.policy = policy or BackoffPolicy.from_settings(settings)
        self.max_submit_attempts = max_submit_attempts or settings.QUERY_SUBMIT_MAX_ATTEMPTS
        self.max_poll_attempts = max_poll_attempts or settings.QUERY_POLL_MAX_ATTEMPTS
        self.sleep = sleep or asyncio.sleep

    async def resolve(self, record) -> ResolverResult:
        logger.info(
            f"Searching for email for {record.first_name} {record.last_name} at {record.company_name}"
        )

        primary = await self.run_tier(build_primary_query(record, self.table))
        if primary is not None and primary.found:
            primary.tier = "primary"
            return primary

        logger.info("No results with full criteria, trying fallback query...")
        fallback = await self.run_tier(build_fallback_query(record, self.table))
        if fallback is not None and fallback.found:
            fallback.tier = "fallback"
            return fallback

        if fallback is not None:
            message = "No email returned by query. The record was found but no email was available."
        else:
            message = not_found_message(record)
        return ResolverResult(message=message)

    async def run_tier(self, query: SearchQuery) -> Optional[ResolverResult]:
        """Submit, poll and extract one query. None means no data row or failure."""
        query_id = await self.submit(query)
        if not query_id:
            logger.error(f"{query.tier} query failed to start after {self.max_submit_attempts} attempts")
            return None

        poll = await self.wait_for_completion(query_id)
        if not poll.succeeded:
            logger.error(
                f"{query.tier} query {query_id} ended in {poll.state.value}"
                f"{f' - {poll.reason}' if poll.reason else ''} after {poll.attempts} polls"
            )
            return None

        try:
            rows = await self.backend.get_result_rows(query_id)
        except Exception as e:
            logger.error(f"Error retrieving query results for {query_id}: {e}")
            return None

        return extract_result(rows)

    async def submit(self, query: SearchQuery) -> Optional[str]:
        for attempt in range(1, self.max_submit_attempts + 1):
            try:
                query_id = await self.backend.submit(query, self.output_location)
                logger.info(f"Query execution started with ID: {query_id}")
                return query_id
            except QueryThrottledError as e:
                throttled = True
                logger.warning(f"Query attempt {attempt} throttled, backing off: {e}")
            except Exception as e:
                throttled = False
                logger.error(f"Query attempt {attempt} failed: {e}")

            if attempt < self.max_submit_attempts:
                await self.sleep(self.policy.submit_retry_delay(attempt, throttled))
        return None

    async def wait_for_completion(self, query_id: str) -> PollState:
        poll = PollState()
        while not poll.finished:
            await self.sleep(self.policy.poll_delay(poll.attempts))
            try:
                status = await self.backend.get_status(query_id)
                observed, reason = status.state, status.reason
            except Exception as e:
                logger.error(f"Error polling query status for {query_id}: {e}")
                observed, reason = None, None
            poll = advance(poll, observed, self.max_poll_attempts, reason)
            logger.debug(f"Query {query_id} state: {poll.state.value} (poll {poll.attempts})")

        if poll.state == QueryState.TIMED_OUT:
            logger.warning(
                f"Reached maximum polling attempts ({self.max_poll_attempts}) for query {query_id}"
            )
        return poll

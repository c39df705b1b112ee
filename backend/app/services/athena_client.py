import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.exceptions import QueryBackendError, QueryThrottledError
from app.services.query_builder import SearchQuery
from app.services.query_state import QueryState

logger = logging.getLogger(__name__)


THROTTLING_ERROR_CODES = {"ThrottlingException", "TooManyRequestsException", "Throttling"}


@dataclass(frozen=True)
class QueryStatus:
    state: QueryState
    reason: Optional[str] = None


def _translate_error(action: str, error: Exception) -> QueryBackendError:
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        message = error.response.get("Error", {}).get("Message", str(error))
        if code in THROTTLING_ERROR_CODES:
            return QueryThrottledError(f"{action} throttled: {message}")
        return QueryBackendError(f"{action} failed ({code}): {message}")
    return QueryBackendError(f"{action} failed: {error}")


class AthenaQueryBackend:
    """
    Athena client for the email data lake.
    Implements the async query workflow:
    1. Start query execution
    2. Poll execution status
    3. Fetch result rows (row 0 is the header)

    boto3 is blocking, so each call runs in a worker thread.
    """

    def __init__(self, client: Any = None, use_execution_parameters: Optional[bool] = None):
        self.client = client or boto3.client(
            "athena",
            region_name=settings.AWS_REGION,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        )
        if use_execution_parameters is None:
            use_execution_parameters = settings.ATHENA_USE_EXECUTION_PARAMETERS
        self.use_execution_parameters = use_execution_parameters

    def _start_kwargs(self, query: SearchQuery, output_location: str) -> dict:
        kwargs = {
            "ResultConfiguration": {"OutputLocation": output_location},
        }
        if self.use_execution_parameters and query.parameters:
            kwargs["QueryString"] = query.sql
            kwargs["ExecutionParameters"] = list(query.parameters)
        else:
            kwargs["QueryString"] = query.inline()
        if settings.ATHENA_DATABASE:
            kwargs["QueryExecutionContext"] = {"Database": settings.ATHENA_DATABASE}
        if settings.ATHENA_WORKGROUP:
            kwargs["WorkGroup"] = settings.ATHENA_WORKGROUP
        return kwargs

    async def submit(self, query: SearchQuery, output_location: str) -> str:
        try:
            response = await asyncio.to_thread(
                self.client.start_query_execution,
                **self._start_kwargs(query, output_location),
            )
        except (ClientError, BotoCoreError) as e:
            raise _translate_error("StartQueryExecution", e) from e

        query_id = response.get("QueryExecutionId")
        if not query_id:
            raise QueryBackendError("Query execution failed to start.")
        return query_id

    async def get_status(self, query_id: str) -> QueryStatus:
        try:
            response = await asyncio.to_thread(
                self.client.get_query_execution,
                QueryExecutionId=query_id,
            )
        except (ClientError, BotoCoreError) as e:
            raise _translate_error("GetQueryExecution", e) from e

        status = response.get("QueryExecution", {}).get("Status", {})
        return QueryStatus(
            state=QueryState.parse(status.get("State")),
            reason=status.get("StateChangeReason"),
        )

    async def get_result_rows(self, query_id: str) -> List[List[Optional[str]]]:
        try:
            response = await asyncio.to_thread(
                self.client.get_query_results,
                QueryExecutionId=query_id,
            )
        except (ClientError, BotoCoreError) as e:
            raise _translate_error("GetQueryResults", e) from e

        rows = response.get("ResultSet", {}).get("Rows", []) or []
        return [
            [cell.get("VarCharValue") for cell in row.get("Data", [])]
            for row in rows
        ]

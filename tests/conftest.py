# tests/conftest.py
import asyncio
import io
import json
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from botocore.exceptions import ClientError

os.environ.setdefault("SECRET_KEY", "test-secret-key")

from app.services.athena_client import QueryStatus
from app.services.bulk import BulkLookupService
from app.services.cache import CacheGateway
from app.services.lookup import EmailLookupService
from app.services.query_resolver import QueryResolver
from app.services.query_state import QueryState
from app.services.results_store import ResultsStore
from app.services.verification import EmailVerifier, SesVerificationProvider


HEADER = ["BUSINESS_EMAIL", "PERSONAL_EMAILS"]


def make_row(first="Jane", last="Doe", linkedin="linkedin.com/in/janedoe", company="Acme", **extra):
    row = {"firstName": first, "lastName": last, "linkedin": linkedin, "companyName": company}
    row.update(extra)
    return row


# ---------------------------------------------------------------------------
# Query backend
# ---------------------------------------------------------------------------


class FakeQueryBackend:
    """
    In-memory stand-in for the Athena adapter.

    rows_by_tier: result rows (header included) returned per query tier.
    states: status sequence; the last entry repeats forever.
    submit_errors: exceptions raised by successive submits (None = succeed).
    """

    def __init__(self, rows_by_tier=None, states=None, submit_errors=None):
        self.rows_by_tier = rows_by_tier or {}
        self.states = list(states or [QueryState.SUCCEEDED])
        self.submit_errors = list(submit_errors or [])
        self.submitted = []
        self.submit_attempts = 0
        self.status_calls = 0
        self._queries = {}

    async def submit(self, query, output_location):
        self.submit_attempts += 1
        if self.submit_errors:
            error = self.submit_errors.pop(0)
            if error is not None:
                raise error
        self.submitted.append(query)
        query_id = f"q-{len(self.submitted)}"
        self._queries[query_id] = query
        await asyncio.sleep(0)
        return query_id

    async def get_status(self, query_id):
        self.status_calls += 1
        state = self.states[0] if len(self.states) == 1 else self.states.pop(0)
        return QueryStatus(state=state)

    async def get_result_rows(self, query_id):
        tier = self._queries[query_id].tier
        return self.rows_by_tier.get(tier, [HEADER])

    def first_names_queried(self, tier="primary") -> List[str]:
        # parameter 0 is the quoted first name
        return [q.parameters[0].strip("'") for q in self.submitted if q.tier == tier]


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


# ---------------------------------------------------------------------------
# Redis / S3 / SES clients
# ---------------------------------------------------------------------------


class FakeRedis:
    def __init__(self, fail: bool = False):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, int] = {}
        self.fail = fail
        self.get_calls = 0
        self.set_calls = 0

    async def get(self, key):
        self.get_calls += 1
        if self.fail:
            raise ConnectionError("redis down")
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.set_calls += 1
        if self.fail:
            raise ConnectionError("redis down")
        self.data[key] = value
        self.expiry[key] = ex

    async def aclose(self):
        pass


class FakeS3:
    """Synchronous boto3-shaped S3 client backed by a dict."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.modified: Dict[str, datetime] = {}
        self.fail_puts = False
        self.unreadable = set()
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def put_object(self, Bucket, Key, Body, ContentType=None):
        if self.fail_puts:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
        self._clock += timedelta(minutes=1)
        self.objects[Key] = Body
        self.modified[Key] = self._clock
        return {}

    def get_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
        if Key in self.unreadable:
            raise ClientError({"Error": {"Code": "InternalError", "Message": "boom"}}, "GetObject")
        return {"Body": io.BytesIO(self.objects[Key])}

    def list_objects_v2(self, Bucket, Prefix):
        contents = [
            {"Key": key, "LastModified": self.modified[key]}
            for key in self.objects
            if key.startswith(Prefix)
        ]
        return {"Contents": contents} if contents else {}

    def stored(self, key) -> Dict[str, Any]:
        return json.loads(self.objects[key])


class FakeSes:
    def __init__(self, failing: Optional[set] = None):
        self.failing = failing or set()
        self.calls: List[str] = []

    def verify_email_identity(self, EmailAddress):
        self.calls.append(EmailAddress)
        if EmailAddress in self.failing:
            raise ClientError({"Error": {"Code": "InvalidParameterValue", "Message": "bad"}}, "VerifyEmailIdentity")
        return {}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def backend():
    return FakeQueryBackend()


@pytest.fixture
def redis_client():
    return FakeRedis()


@pytest.fixture
def cache(redis_client):
    return CacheGateway(client=redis_client, ttl_seconds=30 * 24 * 60 * 60, prefix="test:")


@pytest.fixture
def s3():
    return FakeS3()


@pytest.fixture
def store(s3):
    return ResultsStore(client=s3, bucket_setting="s3://results-bucket/prod/")


@pytest.fixture
def ses():
    return FakeSes()


@pytest.fixture
def verifier(ses):
    return EmailVerifier(SesVerificationProvider(client=ses))


@pytest.fixture
def resolver(backend, sleeper):
    return QueryResolver(
        backend,
        table="my_table",
        output_location="s3://athena-output/",
        max_submit_attempts=3,
        max_poll_attempts=10,
        sleep=sleeper,
    )


@pytest.fixture
def lookup_service(cache, resolver, store):
    return EmailLookupService(cache, resolver, store)


@pytest.fixture
def bulk_service(lookup_service, verifier, store):
    return BulkLookupService(lookup_service, verifier, store, chunk_size=10, max_page_size=1000, deadline_seconds=0)

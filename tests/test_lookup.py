import pytest

from app.schemas.lookup import CandidateRecord
from app.services.cache import compute_cache_key
from app.services.lookup import EmailLookupService, generate_request_id
from app.services.results_store import SINGLE_FEATURE
from tests.conftest import HEADER


JANE_ROWS = {"primary": [HEADER, ["jane.doe@acme.com", "jane@gmail.com,jdoe@yahoo.com"]]}


@pytest.fixture
def jane():
    return CandidateRecord(
        firstName="Jane", lastName="Doe", linkedin="linkedin.com/in/janedoe", companyName="Acme"
    )


@pytest.mark.asyncio
async def test_jane_doe_end_to_end(lookup_service, backend, cache, jane):
    backend.rows_by_tier = JANE_ROWS

    result = await lookup_service.lookup(jane)

    assert result.email == "jane.doe@acme.com"
    assert result.personal_emails == ["jane@gmail.com", "jdoe@yahoo.com"]
    assert not result.cached
    assert await cache.get(compute_cache_key(jane)) == "jane.doe@acme.com"


@pytest.mark.asyncio
async def test_repeat_lookup_is_served_from_cache(lookup_service, backend, jane):
    backend.rows_by_tier = JANE_ROWS

    await lookup_service.lookup(jane)
    submitted = len(backend.submitted)

    shouted = CandidateRecord(
        firstName="JANE", lastName="doe", linkedin="LINKEDIN.COM/in/janedoe", companyName="acme"
    )
    result = await lookup_service.lookup(shouted)

    assert result.cached
    assert result.email == "jane.doe@acme.com"
    assert len(backend.submitted) == submitted
    assert backend.status_calls == 1


@pytest.mark.asyncio
async def test_missing_fields_skip_without_any_backend_call(lookup_service, backend, redis_client):
    record = CandidateRecord(firstName="Jane", lastName="Doe", linkedin="linkedin.com/in/janedoe")

    result = await lookup_service.lookup(record)

    assert result.skipped
    assert result.missing_fields == ["companyName"]
    assert result.email is None
    assert backend.submit_attempts == 0
    assert redis_client.get_calls == 0


@pytest.mark.asyncio
async def test_disposable_email_is_not_found_and_not_cached(lookup_service, backend, redis_client, jane):
    backend.rows_by_tier = {"primary": [HEADER, ["jane@mailinator.com", None]]}

    result = await lookup_service.lookup(jane)

    assert result.email is None
    assert redis_client.set_calls == 0
    assert result.message


@pytest.mark.asyncio
async def test_personal_emails_pass_through_unfiltered(lookup_service, backend, redis_client, jane):
    backend.rows_by_tier = {"primary": [HEADER, [None, "test@gmail.com"]]}

    result = await lookup_service.lookup(jane)

    assert result.email is None
    assert result.personal_emails == ["test@gmail.com"]
    assert result.message is None
    assert redis_client.set_calls == 0


@pytest.mark.asyncio
async def test_bypassing_the_cache_queries_again(lookup_service, backend, jane):
    backend.rows_by_tier = JANE_ROWS
    await lookup_service.lookup(jane)

    result = await lookup_service.lookup(jane, use_cache=False)

    assert not result.cached
    assert len(backend.submitted) == 2


@pytest.mark.asyncio
async def test_find_and_store_persists_to_history(lookup_service, backend, s3, jane):
    backend.rows_by_tier = JANE_ROWS

    response = await lookup_service.find_and_store("user-1", jane)

    key = f"prod/user-data/user-1/{SINGLE_FEATURE}/{response.search_id}.json"
    stored = s3.stored(key)
    assert stored["email"] == "jane.doe@acme.com"
    assert stored["personalEmails"] == ["jane@gmail.com", "jdoe@yahoo.com"]
    assert stored["searchId"] == response.search_id
    assert response.warning is None


@pytest.mark.asyncio
async def test_find_and_store_warns_when_history_write_fails(lookup_service, backend, s3, jane):
    backend.rows_by_tier = JANE_ROWS
    s3.fail_puts = True

    response = await lookup_service.find_and_store("user-1", jane)

    assert response.email == "jane.doe@acme.com"
    assert response.warning


@pytest.mark.asyncio
async def test_not_found_response_explains_search(cache, resolver, jane):
    service = EmailLookupService(cache, resolver)

    response = await service.find_and_store("user-1", jane)

    assert response.email is None
    assert "No matching email found" in response.error


def test_request_id_shape():
    request_id = generate_request_id(b"abc")
    millis, digest = request_id.split("-")
    assert millis.isdigit()
    assert digest == "ba7816bf"

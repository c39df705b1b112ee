import pytest

from app.schemas.lookup import CandidateRecord
from app.services.identity import (
    classify_domain,
    clean_field,
    extract_linkedin_handle,
    missing_required_fields,
    normalize_and_filter,
    validate_email_format,
)


class TestEmailFormat:
    @pytest.mark.parametrize("email", ["jane@acme.com", "a.b+c@sub.example.co.uk"])
    def test_valid(self, email):
        assert validate_email_format(email)

    @pytest.mark.parametrize("email", ["", None, "jane", "jane@acme", "ja ne@acme.com", "a@b@c.com"])
    def test_invalid(self, email):
        assert not validate_email_format(email)


class TestNormalizeAndFilter:
    def test_trims_and_lowercases(self):
        assert normalize_and_filter("  Jane.Doe@ACME.com ") == "jane.doe@acme.com"

    @pytest.mark.parametrize("email", [
        "a@mailinator.com",
        "someone@tempmail.com",
        "x@throwawaymail.com",
        "y@eu.guerrillamail.com",
    ])
    def test_disposable_domains_rejected(self, email):
        assert normalize_and_filter(email) is None

    @pytest.mark.parametrize("email", ["test@acme.com", "fake@acme.com", "example@acme.com", "USER@acme.com"])
    def test_fake_local_parts_rejected(self, email):
        assert normalize_and_filter(email) is None

    def test_bad_format_rejected_without_raising(self):
        assert normalize_and_filter("not-an-email") is None
        assert normalize_and_filter(None) is None


def test_extract_linkedin_handle():
    assert extract_linkedin_handle("https://www.linkedin.com/in/jane-doe-123/") == "jane-doe-123"
    assert extract_linkedin_handle("linkedin.com/in/janedoe") == "janedoe"
    assert extract_linkedin_handle("janedoe") == "janedoe"


def test_classify_domain():
    assert classify_domain("jane@gmail.com") == "personal"
    assert classify_domain("jane@Yahoo.com") == "personal"
    assert classify_domain("jane@acme.com") == "business"
    assert classify_domain("jane") is None
    assert classify_domain(None) is None


def test_clean_field_strips_invisible_characters():
    assert clean_field("Ja\u200bne\u00a0 Doe ") == "Ja ne Doe"


def test_missing_required_fields_uses_column_names():
    record = CandidateRecord(firstName="Jane", lastName="  ", linkedin="linkedin.com/in/janedoe")
    assert missing_required_fields(record) == ["lastName", "companyName"]


def test_candidate_record_keeps_extra_columns_and_accepts_linkedin_url():
    record = CandidateRecord.model_validate({
        "firstName": "Jane",
        "lastName": "Doe",
        "linkedinUrl": "linkedin.com/in/janedoe",
        "companyName": "Acme",
        "title": "CTO",
    })
    assert record.linkedin == "linkedin.com/in/janedoe"
    assert record.model_dump(by_alias=True)["title"] == "CTO"

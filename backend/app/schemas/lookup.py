from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import List, Literal, Optional

from app.services.identity import clean_field


EmailQuality = Literal["personal", "business"]


class CandidateRecord(BaseModel):
    """One identity to resolve. Unknown columns are carried through untouched."""

    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    linkedin: Optional[str] = Field(
        None,
        alias="linkedin",
        validation_alias=AliasChoices("linkedin", "linkedinUrl"),
    )
    company_name: Optional[str] = Field(None, alias="companyName")

    @field_validator("first_name", "last_name", "linkedin", "company_name", mode="before")
    @classmethod
    def clean_required(cls, v):
        if v is None:
            return None
        return clean_field(str(v))

    class Config:
        populate_by_name = True
        extra = "allow"


class ResultRecord(CandidateRecord):
    found_email: Optional[str] = Field(None, alias="foundEmail")
    personal_emails: List[str] = Field(default_factory=list, alias="personalEmails")
    is_verified: Optional[bool] = Field(None, alias="isVerified")
    email_quality: Optional[EmailQuality] = Field(None, alias="emailQuality")
    skipped: bool = False
    processed_at: Optional[str] = Field(None, alias="processedAt")
    retry_count: int = Field(0, alias="retryCount")
    last_retry: Optional[str] = Field(None, alias="lastRetry")


class FindEmailResponse(BaseModel):
    search_id: str = Field(alias="searchId")
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    linkedin: str
    company_name: str = Field(alias="companyName")
    email: Optional[str] = None
    personal_emails: List[str] = Field(default_factory=list, alias="personalEmails")
    cached: bool = False
    error: Optional[str] = None
    timestamp: str
    warning: Optional[str] = None

    class Config:
        populate_by_name = True


class RetryRecordRequest(BaseModel):
    record: ResultRecord
    bypass_cache: Optional[bool] = Field(None, alias="bypassCache")

    class Config:
        populate_by_name = True

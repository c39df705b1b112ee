from pydantic import BaseModel, Field
from typing import List, Optional


class HistoryEntry(BaseModel):
    key: str
    search_id: str = Field(alias="searchId")
    last_modified: Optional[str] = Field(None, alias="lastModified")
    timestamp: Optional[str] = None
    # bulk
    file_name: Optional[str] = Field(None, alias="fileName")
    record_count: Optional[int] = Field(None, alias="recordCount")
    success_count: Optional[int] = Field(None, alias="successCount")
    # single
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    company_name: Optional[str] = Field(None, alias="companyName")
    linkedin: Optional[str] = None
    email: Optional[str] = None
    personal_emails: List[str] = Field(default_factory=list, alias="personalEmails")

    class Config:
        populate_by_name = True


class HistoryResponse(BaseModel):
    results: List[HistoryEntry]

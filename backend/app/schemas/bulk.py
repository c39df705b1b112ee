from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from app.schemas.lookup import ResultRecord


class RateLimitInfo(BaseModel):
    daily_limit: int = Field(alias="dailyLimit")
    remaining_today: int = Field(alias="remainingToday")
    reset_time: str = Field(alias="resetTime")

    class Config:
        populate_by_name = True


class BulkRecordsRequest(BaseModel):
    """JSON alternative to a multipart upload: records already decoded by the caller."""

    file_name: str = Field("records.json", alias="fileName")
    records: List[Dict[str, Any]]

    class Config:
        populate_by_name = True


class BulkLookupResponse(BaseModel):
    request_id: str = Field(alias="requestId")
    file_name: str = Field(alias="fileName")
    total_records: int = Field(alias="totalRecords")
    page: int
    page_size: int = Field(alias="pageSize")
    total_pages: int = Field(alias="totalPages")
    record_count: int = Field(alias="recordCount")
    success_count: int = Field(alias="successCount")
    verified_count: int = Field(alias="verifiedCount")
    timestamp: str
    rate_limit_info: RateLimitInfo = Field(alias="rateLimitInfo")
    results: List[ResultRecord]
    warning: Optional[str] = None

    class Config:
        populate_by_name = True


class SaveBulkResultsRequest(BaseModel):
    file_name: str = Field(alias="fileName")
    results: List[ResultRecord]

    class Config:
        populate_by_name = True


class SaveBulkResultsResponse(BaseModel):
    success: bool
    search_id: str = Field(alias="searchId")

    class Config:
        populate_by_name = True

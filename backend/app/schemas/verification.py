from pydantic import BaseModel, Field
from typing import List, Optional

from app.schemas.lookup import EmailQuality, ResultRecord


class VerifyEmailRequest(BaseModel):
    email: Optional[str] = None


class VerifyEmailResponse(BaseModel):
    email: str
    is_verified: bool = Field(alias="isVerified")
    email_quality: Optional[EmailQuality] = Field(None, alias="emailQuality")
    verified_at: str = Field(alias="verifiedAt")

    class Config:
        populate_by_name = True


class BatchVerifyRequest(BaseModel):
    results: List[ResultRecord]


class BatchVerifyItem(BaseModel):
    index: int
    email: str
    is_verified: bool = Field(alias="isVerified")
    error: Optional[str] = None

    class Config:
        populate_by_name = True


class BatchVerifyResponse(BaseModel):
    results: List[ResultRecord]
    items: List[BatchVerifyItem]
    verified_count: int = Field(alias="verifiedCount")
    failed_count: int = Field(alias="failedCount")

    class Config:
        populate_by_name = True

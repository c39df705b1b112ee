from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Redis (lookup cache)
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL_SECONDS: int = 30 * 24 * 60 * 60  # 30 days
    CACHE_KEY_PREFIX: str = "email-lookup:"

    # JWT (issued by the external sign-in provider)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    # Accept X-User-Id as the caller identity (only behind an authenticating gateway)
    TRUST_GATEWAY_USER_HEADER: bool = False

    # AWS
    AWS_REGION: str = "ap-south-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None

    # Athena (data lake)
    ATHENA_DATABASE: Optional[str] = None
    ATHENA_TABLE: str = "my_table"
    ATHENA_WORKGROUP: Optional[str] = None
    ATHENA_OUTPUT_LOCATION: str = ""  # e.g. s3://bucket/athena-output/
    ATHENA_USE_EXECUTION_PARAMETERS: bool = True

    # Query retry / polling policy
    QUERY_SUBMIT_MAX_ATTEMPTS: int = 3
    QUERY_SUBMIT_RETRY_DELAY_MS: int = 1000
    QUERY_THROTTLE_RETRY_DELAY_MS: int = 2000
    QUERY_POLL_MAX_ATTEMPTS: int = 10
    QUERY_POLL_BASE_DELAY_MS: int = 1000
    QUERY_POLL_MAX_DELAY_MS: int = 10000

    # S3 results store: "bucket" or "s3://bucket/base/prefix/"
    S3_BUCKET_NAME: str = "email-finder-results"

    # Bulk processing
    BULK_CHUNK_SIZE: int = 10
    BULK_DEFAULT_PAGE_SIZE: int = 100
    BULK_MAX_PAGE_SIZE: int = 1000
    LOOKUP_DEADLINE_SECONDS: Optional[float] = None  # per-record deadline, None disables

    # Daily quota reported back to callers
    DAILY_LOOKUP_LIMIT: int = 1000
    RATE_LIMIT_TIMEZONE: str = "UTC"

    # Retry-one-record skips the cache read when enabled
    RETRY_BYPASS_CACHE: bool = False

    # App
    APP_NAME: str = "Email Finder"
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()

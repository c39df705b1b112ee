"""
Results Store

Search results and history live in S3 as one JSON document per search:

    {base_prefix}user-data/{identity}/{feature}/{search_id}.json

S3_BUCKET_NAME may be a bare bucket name or "s3://bucket/base/prefix/".
"""
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import ClientError

from app.core.config import settings
from app.core.exceptions import ResultNotFound

logger = logging.getLogger(__name__)


BULK_FEATURE = "bulk-find-email"
SINGLE_FEATURE = "find-email"

BULK_METADATA_FIELDS = ("fileName", "recordCount", "successCount")
SINGLE_METADATA_FIELDS = ("firstName", "lastName", "companyName", "linkedin", "email", "personalEmails")


def parse_bucket_setting(value: str) -> Tuple[str, str]:
    """Split S3_BUCKET_NAME into (bucket, base prefix ending in '/')."""
    trimmed = (value or "").strip()
    if trimmed.startswith("s3://"):
        trimmed = trimmed[len("s3://"):]
    bucket, _, base = trimmed.partition("/")
    base = base.strip("/")
    return bucket, f"{base}/" if base else ""


def search_id_from_key(key: str) -> str:
    name = key.rsplit("/", 1)[-1]
    return name[:-len(".json")] if name.endswith(".json") else name


class ResultsStore:
    def __init__(self, client: Any = None, bucket_setting: Optional[str] = None):
        self.client = client or boto3.client(
            "s3",
            region_name=settings.AWS_REGION,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        )
        self.bucket, self.base_prefix = parse_bucket_setting(
            bucket_setting if bucket_setting is not None else settings.S3_BUCKET_NAME
        )

    def prefix_for(self, identity: str, feature: str) -> str:
        return f"{self.base_prefix}user-data/{identity}/{feature}/"

    def key_for(self, identity: str, feature: str, search_id: str) -> str:
        return f"{self.prefix_for(identity, feature)}{search_id}.json"

    async def put_json(self, identity: str, feature: str, search_id: str, payload: Dict[str, Any]) -> str:
        key = self.key_for(identity, feature, search_id)
        await asyncio.to_thread(
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=json.dumps(payload).encode("utf-8"),
            ContentType="application/json",
        )
        logger.info(f"Saved {feature} result {search_id} to s3://{self.bucket}/{key}")
        return key

    async def _read(self, key: str) -> Dict[str, Any]:
        response = await asyncio.to_thread(self.client.get_object, Bucket=self.bucket, Key=key)
        body = response["Body"].read()
        return json.loads(body)

    async def get_json(self, identity: str, feature: str, search_id: str) -> Dict[str, Any]:
        key = self.key_for(identity, feature, search_id)
        try:
            return await self._read(key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in ("NoSuchKey", "404", "NotFound"):
                raise ResultNotFound(f"Search result {search_id} not found") from e
            raise

    async def list_entries(self, identity: str, feature: str) -> List[Dict[str, Any]]:
        """
        History metadata for one identity and feature, newest first.

        Each object is read for its metadata. An object that cannot be read
        still shows up, with what can be derived from its key.
        """
        prefix = self.prefix_for(identity, feature)
        response = await asyncio.to_thread(
            self.client.list_objects_v2,
            Bucket=self.bucket,
            Prefix=prefix,
        )
        contents = response.get("Contents") or []
        if not contents:
            return []

        fields = BULK_METADATA_FIELDS if feature == BULK_FEATURE else SINGLE_METADATA_FIELDS
        entries = await asyncio.gather(*(self._entry(item, fields) for item in contents))
        entries.sort(key=lambda entry: entry.get("_sort") or "", reverse=True)
        for entry in entries:
            entry.pop("_sort", None)
        return entries

    async def _entry(self, item: Dict[str, Any], fields) -> Dict[str, Any]:
        key = item["Key"]
        last_modified = item.get("LastModified")
        modified = last_modified.isoformat() if hasattr(last_modified, "isoformat") else last_modified

        entry = {
            "key": key,
            "searchId": search_id_from_key(key),
            "lastModified": modified,
            "_sort": modified,
        }
        try:
            data = await self._read(key)
        except Exception as e:
            logger.error(f"Error fetching data for {key}: {e}")
            return entry

        entry["searchId"] = data.get("searchId") or entry["searchId"]
        entry["timestamp"] = data.get("timestamp")
        for name in fields:
            if data.get(name) is not None:
                entry[name] = data[name]
        return entry

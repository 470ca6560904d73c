"""S3-backed blob store and dataset, using aioboto3 clients."""

import itertools
import json
import time
import uuid
from typing import Any, Mapping, Optional
from urllib.parse import quote

from botocore.exceptions import ClientError

from ..core.error_handling import retry_async
from ..core.exceptions import DatasetError, StoreError

RETRYABLE_S3_ERROR_CODES = (
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "SlowDown",
    "RequestTimeout",
    "InternalError",
    "ServiceUnavailable",
)
NOT_FOUND_ERROR_CODES = ("NoSuchKey", "NotFound", "404")


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def is_retryable_s3_error(error: BaseException) -> bool:
    return isinstance(error, ClientError) and _error_code(error) in RETRYABLE_S3_ERROR_CODES


class S3BlobStore:
    """Blob store over S3: store ids are buckets, outputs go to one bucket.

    The aioboto3 client is owned by the caller; this class never opens or
    closes it.
    """

    def __init__(
        self,
        s3_client: Any,
        bucket: str,
        public_url_base: Optional[str] = None,
        region: Optional[str] = None,
    ):
        self._s3_client = s3_client
        self._bucket = bucket
        self._public_url_base = public_url_base
        self._region = region

    async def get(self, store_id: str, key: str) -> Optional[bytes]:
        """Read ``key`` from bucket ``store_id``; None if it does not exist."""
        try:
            response = await self._get_object(store_id, key)
            async with response["Body"] as stream:
                return await stream.read()
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_ERROR_CODES:
                return None
            raise StoreError(f"S3 get_object failed for s3://{store_id}/{key}: {e}") from e

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """Write ``data`` to the output bucket."""
        try:
            await self._put_object(key, data, content_type)
        except ClientError as e:
            raise StoreError(f"S3 put_object failed for s3://{self._bucket}/{key}: {e}") from e

    def public_url(self, key: str) -> str:
        quoted = quote(key, safe="/")
        if self._public_url_base:
            return f"{self._public_url_base.rstrip('/')}/{quoted}"
        if self._region:
            return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{quoted}"
        return f"https://{self._bucket}.s3.amazonaws.com/{quoted}"

    @retry_async(retries=2, is_retryable=is_retryable_s3_error)
    async def _get_object(self, bucket: str, key: str) -> Any:
        return await self._s3_client.get_object(Bucket=bucket, Key=key)

    @retry_async(retries=2, is_retryable=is_retryable_s3_error)
    async def _put_object(self, key: str, data: bytes, content_type: str) -> None:
        await self._s3_client.put_object(
            Bucket=self._bucket, Key=key, Body=data, ContentType=content_type
        )


class S3Dataset:
    """Append-only dataset stored as one JSON object per record.

    Records land under ``{prefix}/{run_id}/{sequence:09d}.json`` so a run
    can be read back in append order.
    """

    def __init__(
        self,
        s3_client: Any,
        bucket: str,
        prefix: str = "datasets",
        run_id: Optional[str] = None,
    ):
        self._s3_client = s3_client
        self._bucket = bucket
        self._prefix = prefix.strip("/")
        self.run_id = run_id or f"{time.strftime('%Y%m%dT%H%M%S')}-{uuid.uuid4().hex[:8]}"
        self._sequence = itertools.count()

    def record_key(self, sequence: int) -> str:
        return f"{self._prefix}/{self.run_id}/{sequence:09d}.json"

    async def append(self, record: Mapping[str, Any]) -> None:
        key = self.record_key(next(self._sequence))
        try:
            await self._s3_client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=json.dumps(dict(record)).encode("utf-8"),
                ContentType="application/json",
            )
        except ClientError as e:
            raise DatasetError(f"Dataset append failed for s3://{self._bucket}/{key}: {e}") from e

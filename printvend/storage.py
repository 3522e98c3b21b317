# printvend/storage.py
import logging
from datetime import datetime
from functools import lru_cache
from typing import Iterator, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from printvend.config import settings
from printvend.errors import UpstreamError

logger = logging.getLogger(__name__)


def get_s3_client():
    """
    Build an S3 client for the print bucket.
    An explicit endpoint targets the BaaS storage (or MinIO locally);
    without one boto3 talks to AWS.
    """
    kwargs = {
        "aws_access_key_id": settings.s3_access_key_id,
        "aws_secret_access_key": settings.s3_secret_access_key,
        "region_name": settings.s3_region,
    }
    if settings.s3_endpoint_url:
        kwargs["endpoint_url"] = settings.s3_endpoint_url
    return boto3.client("s3", **kwargs)


class BlobStore:
    """Thin wrapper over one bucket. All failures surface as UpstreamError."""

    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    def upload(self, key: str, data: bytes, content_type: str = "application/pdf") -> None:
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except (ClientError, BotoCoreError) as e:
            logger.error("Upload of %s failed: %s", key, e)
            raise UpstreamError("File upload failed") from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise UpstreamError(f"File delete failed for {key}") from e

    def list_objects(self) -> Iterator[Tuple[str, datetime]]:
        """Yield (key, last_modified) for every object in the bucket."""
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket):
                for obj in page.get("Contents", []):
                    yield obj["Key"], obj["LastModified"]
        except (ClientError, BotoCoreError) as e:
            raise UpstreamError("Listing stored files failed") from e


@lru_cache
def get_storage() -> BlobStore:
    return BlobStore(get_s3_client(), settings.storage_bucket)

"""S3 object storage for uploaded images."""

from typing import Iterable, List, Optional

import boto3
from botocore.config import Config as BotoConfig
from loguru import logger
from starlette.concurrency import run_in_threadpool

from .config import settings
from .core.exceptions import ServiceUnavailableError

# S3 DeleteObjects accepts at most this many keys per call
DELETE_BATCH_SIZE = 1000


class S3Storage:
    """Thin wrapper around a boto3 S3 client bound to one bucket.

    The blocking boto3 calls have ``a``-prefixed coroutine twins that run them
    in the threadpool, for use from request handlers.
    """

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        cloudfront_domain: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        client=None,
    ):
        self.bucket = bucket
        self.region = region
        self.cloudfront_domain = cloudfront_domain
        self.endpoint_url = endpoint_url
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=BotoConfig(signature_version="s3v4"),
        )

    def public_url(self, key: str) -> str:
        """URL the object is served from once uploaded."""
        if self.cloudfront_domain:
            return f"https://{self.cloudfront_domain}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def generate_presigned_put(self, key: str, content_type: str, expires_in: int) -> str:
        """Signed URL that lets a client PUT exactly this key and content type."""
        return self.client.generate_presigned_url(
            ClientMethod="put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=expires_in,
        )

    def put_object(self, key: str, body: bytes, content_type: str) -> None:
        """Upload bytes under ``key``."""
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
        )

    def delete_objects(self, keys: Iterable[str]) -> List[str]:
        """
        Delete objects by key.

        Returns:
            Keys the store reported as not deleted
        """
        keys = [key for key in keys if key]
        failed: List[str] = []
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            response = self.client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
            )
            for error in response.get("Errors", []):
                logger.warning(f"Failed to delete {error.get('Key')}: {error.get('Message')}")
                failed.append(error.get("Key"))
        return failed

    async def agenerate_presigned_put(self, key: str, content_type: str, expires_in: int) -> str:
        return await run_in_threadpool(self.generate_presigned_put, key, content_type, expires_in)

    async def aput_object(self, key: str, body: bytes, content_type: str) -> None:
        await run_in_threadpool(self.put_object, key, body, content_type)

    async def adelete_objects(self, keys: Iterable[str]) -> List[str]:
        return await run_in_threadpool(self.delete_objects, list(keys))


_storage: Optional[S3Storage] = None


def get_storage() -> S3Storage:
    """
    Get the process-wide storage client.

    Raises:
        ServiceUnavailableError: If no bucket is configured
    """
    global _storage
    if _storage is None:
        if not settings.AWS_S3_BUCKET_NAME:
            raise ServiceUnavailableError("Image storage is not configured")
        _storage = S3Storage(
            bucket=settings.AWS_S3_BUCKET_NAME,
            region=settings.AWS_REGION,
            cloudfront_domain=settings.CLOUDFRONT_DOMAIN,
            endpoint_url=settings.AWS_S3_ENDPOINT_URL,
            access_key_id=settings.AWS_ACCESS_KEY_ID,
            secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        )
    return _storage

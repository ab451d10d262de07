"""
Object Storage Helper

Wraps an S3-compatible client pointed at an Alibaba Cloud OSS bucket.
Provides the single put-object operation the publisher needs.
"""

import logging
from typing import Any, Optional
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


def endpoint_for_region(region: str) -> str:
    """
    Build the public OSS endpoint for a region.

    Accepts both "oss-cn-hangzhou" and "cn-hangzhou".
    """
    region = region.strip()
    if not region.startswith("oss-"):
        region = f"oss-{region}"
    return f"https://{region}.aliyuncs.com"


class ObjectStorage:
    """
    Put-only access to one bucket.
    """

    def __init__(
        self,
        bucket: str,
        region: str,
        access_key_id: str,
        access_key_secret: str,
        endpoint: Optional[str] = None,
        client: Any = None,
    ):
        """
        Initialize the storage client.

        Args:
            bucket: Bucket name
            region: OSS region, e.g. "oss-cn-hangzhou"
            access_key_id: Access key id
            access_key_secret: Access key secret
            endpoint: Endpoint override (default: derived from region)
            client: Pre-built S3 client, mainly for tests
        """
        self.bucket = bucket
        self.endpoint = (endpoint or endpoint_for_region(region)).rstrip("/")
        if client is None:
            client = boto3.client(
                "s3",
                endpoint_url=self.endpoint,
                region_name=region[4:] if region.startswith("oss-") else region,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=access_key_secret,
                config=Config(
                    s3={"addressing_style": "virtual"},
                    signature_version="s3v4",
                    request_checksum_calculation="when_required",
                    response_checksum_validation="when_required",
                ),
            )
        self.client = client
        logger.debug(f"Object storage ready: bucket={bucket} endpoint={self.endpoint}")

    def object_url(self, key: str) -> str:
        """Public URL of an object in this bucket."""
        host = urlparse(self.endpoint).netloc or self.endpoint
        return f"https://{self.bucket}.{host}/{key.lstrip('/')}"

    def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str = "application/json; charset=utf-8",
    ) -> str:
        """
        Upload bytes to a fixed key, replacing any existing object.

        Args:
            key: Object key
            body: Object content
            content_type: MIME type stored with the object

        Returns:
            URL of the uploaded object

        Raises:
            ClientError, BotoCoreError: If the upload fails
        """
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Upload of {key} to bucket {self.bucket} failed: {e}")
            raise

        url = self.object_url(key)
        logger.info(f"Uploaded {len(body)} bytes to {url}")
        return url

    @classmethod
    def from_settings(cls, settings) -> "ObjectStorage":
        """Build storage from a Settings object."""
        return cls(
            bucket=settings.OSS_BUCKET,
            region=settings.OSS_REGION,
            access_key_id=settings.OSS_ACCESS_KEY_ID,
            access_key_secret=settings.OSS_ACCESS_KEY_SECRET,
            endpoint=settings.OSS_ENDPOINT,
        )

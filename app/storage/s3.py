import boto3
from typing import Iterator, Optional
from urllib.parse import quote
from botocore.exceptions import ClientError
from app.settings import Settings, settings as default_settings
import logging

log = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}

def is_not_found(error: ClientError) -> bool:
    """True when a boto ClientError means the bucket or key does not exist."""
    return str(error.response.get("Error", {}).get("Code")) in NOT_FOUND_CODES

# -------------------------
# S3 Service
# -------------------------
class S3Service:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        session = boto3.session.Session(region_name=self.settings.aws_region)
        kwargs = {
            "aws_access_key_id": self.settings.aws_access_key_id,
            "aws_secret_access_key": self.settings.aws_secret_access_key,
        }
        if self.settings.aws_endpoint_url:
            kwargs["endpoint_url"] = self.settings.aws_endpoint_url

        self.client = session.client("s3", **kwargs)
        log.info("Initialized S3 client")

    def ensure_bucket(self, bucket: str):
        try:
            self.client.head_bucket(Bucket=bucket)
            log.debug("Bucket %s already exists", bucket)
        except ClientError as e:
            if is_not_found(e):
                self.create_bucket(bucket)
            else:
                log.error("Failed to check/create bucket: %s", e)
                raise

    def create_bucket(self, bucket: str):
        kwargs = {"Bucket": bucket}
        # us-east-1 rejects an explicit LocationConstraint
        if self.settings.aws_region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.settings.aws_region}
        self.client.create_bucket(**kwargs)
        log.info("Created bucket %s", bucket)

    def exists(self, bucket: str, key: str) -> bool:
        try:
            self.client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            if is_not_found(e):
                return False
            raise

    def upload(self, bucket: str, key: str, data: bytes, content_type: str):
        self.client.put_object(
            Bucket=bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        log.debug("Uploaded %s bytes to s3://%s/%s", len(data), bucket, key)

    def download(self, bucket: str, key: str) -> bytes:
        resp = self.client.get_object(Bucket=bucket, Key=key)
        return resp["Body"].read()

    def list_keys(self, bucket: str, prefix: str = "") -> Iterator[str]:
        paginator = self.client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            for obj in page.get("Contents", []):
                yield obj["Key"]

    def generate_presigned_url(self, bucket: str, key: str, expires_in: Optional[int] = None) -> str:
        expires = expires_in or self.settings.presign_expire_seconds
        url = self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires,
        )
        if self.settings.external_endpoint and self.settings.aws_endpoint_url:
            url = url.replace(self.settings.aws_endpoint_url, self.settings.external_endpoint)
        return url

    def object_url(self, bucket: str, key: str) -> str:
        """Locator a client can fetch the object from, access token included."""
        if not self.settings.public_base_url:
            return self.generate_presigned_url(bucket, key)
        url = f"{self.settings.public_base_url.rstrip('/')}/{bucket}/{quote(key)}"
        if self.settings.access_token:
            url = f"{url}?{self.settings.access_token.lstrip('?')}"
        return url

    def delete(self, bucket: str, key: str):
        self.client.delete_object(Bucket=bucket, Key=key)
        log.debug("Deleted s3://%s/%s", bucket, key)

    def close(self):
        log.info("Closed S3 client")

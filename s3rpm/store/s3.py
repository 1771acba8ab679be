"""S3 object store client built on boto3."""

import os
from typing import Any, List, Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from ..common.errors import LocalIOError, RemoteStoreError
from ..common.logger import get_logger
from .base import DeleteResult, ObjectInfo, ObjectStore, Visibility

logger = get_logger("store")

# S3 DeleteObjects accepts at most this many keys per request
DELETE_BATCH_SIZE = 1000

_CONDITION_FAILED_CODES = {"PreconditionFailed", "ConditionalRequestConflict", "412", "409"}
_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class S3ObjectStore(ObjectStore):
    """Object store backed by an S3 (or S3-compatible) endpoint."""

    def __init__(self, client: Any):
        """Initialize with a boto3 S3 client.

        Args:
            client: boto3 S3 client (or a compatible stand-in)
        """
        self.client = client

    @classmethod
    def from_credentials(
        cls,
        access_key: str,
        secret_key: str,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
    ) -> "S3ObjectStore":
        """Create a store from static credentials.

        Args:
            access_key: AWS access key id
            secret_key: AWS secret access key
            region: AWS region
            endpoint_url: Optional endpoint for S3-compatible services

        Returns:
            S3ObjectStore instance
        """
        session = boto3.session.Session(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )
        return cls(session.client("s3", endpoint_url=endpoint_url))

    def list(self, bucket: str, prefix: str) -> List[ObjectInfo]:
        objects = []
        kwargs = {"Bucket": bucket}
        if prefix:
            kwargs["Prefix"] = prefix

        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(**kwargs):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    # Skip directory markers
                    if key.endswith("/"):
                        continue
                    objects.append(ObjectInfo(key=key, size=obj.get("Size", 0)))
        except (ClientError, BotoCoreError) as e:
            raise RemoteStoreError("list", bucket, prefix, e) from e

        logger.debug(f"Listed {len(objects)} objects under s3://{bucket}/{prefix}")
        return objects

    def get(self, bucket: str, key: str, dest_path: str) -> None:
        parent = os.path.dirname(dest_path)
        try:
            if parent:
                os.makedirs(parent, exist_ok=True)
        except OSError as e:
            raise LocalIOError("create directory", parent, e) from e

        try:
            self.client.download_file(bucket, key, dest_path)
        except (ClientError, BotoCoreError) as e:
            raise RemoteStoreError("download", bucket, key, e) from e
        except OSError as e:
            raise LocalIOError("write", dest_path, e) from e

        logger.info(f"Downloaded s3://{bucket}/{key} -> {dest_path}")

    def put(self, bucket: str, key: str, src_path: str, visibility: Visibility) -> None:
        if not os.path.isfile(src_path):
            raise LocalIOError("read", src_path, FileNotFoundError(src_path))

        try:
            self.client.upload_file(
                src_path, bucket, key, ExtraArgs={"ACL": visibility.acl}
            )
        except (ClientError, BotoCoreError, S3UploadFailedError) as e:
            raise RemoteStoreError("upload", bucket, key, e) from e
        except OSError as e:
            raise LocalIOError("read", src_path, e) from e

        logger.info(f"Uploaded {src_path} -> s3://{bucket}/{key} ({visibility.acl})")

    def delete_batch(self, bucket: str, keys: List[str]) -> DeleteResult:
        result = DeleteResult()

        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            chunk = keys[start:start + DELETE_BATCH_SIZE]
            try:
                response = self.client.delete_objects(
                    Bucket=bucket,
                    Delete={"Objects": [{"Key": key} for key in chunk], "Quiet": False},
                )
            except (ClientError, BotoCoreError) as e:
                raise RemoteStoreError("delete", bucket, chunk[0], e) from e

            result.deleted.extend(item["Key"] for item in response.get("Deleted", []))
            for error in response.get("Errors", []):
                key = error.get("Key", "<unknown>")
                message = error.get("Message") or error.get("Code", "unknown error")
                result.failed[key] = message
                logger.error(f"Failed to delete s3://{bucket}/{key}: {message}")

        logger.info(f"Deleted {len(result.deleted)} objects from s3://{bucket}")
        return result

    def put_if_absent(self, bucket: str, key: str, body: bytes) -> bool:
        try:
            self.client.put_object(Bucket=bucket, Key=key, Body=body, IfNoneMatch="*")
        except ClientError as e:
            if _error_code(e) in _CONDITION_FAILED_CODES:
                return False
            raise RemoteStoreError("conditional put", bucket, key, e) from e
        except BotoCoreError as e:
            raise RemoteStoreError("conditional put", bucket, key, e) from e
        return True

    def read(self, bucket: str, key: str) -> Optional[bytes]:
        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return None
            raise RemoteStoreError("read", bucket, key, e) from e
        except BotoCoreError as e:
            raise RemoteStoreError("read", bucket, key, e) from e

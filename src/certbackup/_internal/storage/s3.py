"""Amazon S3 storage backend."""
import logging
from typing import Any
from typing import List
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError

from certbackup import errors
from certbackup import interfaces

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = ('NoSuchKey', '404', 'NotFound')

INSTRUCTIONS = (
    "Configure AWS credentials as described at "
    "https://boto3.readthedocs.io/en/latest/guide/configuration.html#best-practices-for-configuring-credentials "  # pylint: disable=line-too-long
    "and allow s3:GetObject, s3:PutObject and s3:ListBucket on the bucket.")


class S3Storage(interfaces.StorageBackend):
    """Backups stored as objects in one S3 bucket.

    :ivar str bucket: bucket name
    :ivar client: boto3 S3 client

    """

    def __init__(self, bucket: str, region: Optional[str] = None,
                 client: Optional[Any] = None) -> None:
        self.bucket = bucket
        self.client = client if client is not None else boto3.client(
            "s3", region_name=region)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.bucket!r})'

    def upload(self, name: str, content: bytes) -> None:
        try:
            self.client.put_object(Bucket=self.bucket, Key=name, Body=content)
        except (BotoCoreError, ClientError) as e:
            logger.debug('Encountered error uploading %s: %s', name, e, exc_info=True)
            raise errors.StorageError(
                f'Unable to upload s3://{self.bucket}/{name}: {e}. {INSTRUCTIONS}')
        logger.debug('Uploaded %d bytes to s3://%s/%s', len(content), self.bucket, name)

    def download(self, name: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=name)
            return response["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                raise errors.BackupNotFound(f's3://{self.bucket}/{name} does not exist')
            logger.debug('Encountered error downloading %s: %s', name, e, exc_info=True)
            raise errors.StorageError(
                f'Unable to download s3://{self.bucket}/{name}: {e}. {INSTRUCTIONS}')
        except BotoCoreError as e:
            logger.debug('Encountered error downloading %s: %s', name, e, exc_info=True)
            raise errors.StorageError(
                f'Unable to download s3://{self.bucket}/{name}: {e}. {INSTRUCTIONS}')

    def list_names(self) -> List[str]:
        names = []
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket):
                for obj in page.get("Contents", []):
                    names.append(obj["Key"])
        except (BotoCoreError, ClientError) as e:
            logger.debug('Encountered error listing %s: %s', self.bucket, e, exc_info=True)
            raise errors.StorageError(
                f'Unable to list s3://{self.bucket}: {e}. {INSTRUCTIONS}')
        return sorted(names)

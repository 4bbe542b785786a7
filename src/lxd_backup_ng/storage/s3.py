# pyright: standard

"""lxd-backup-ng: lxd_backup_ng/storage/s3.py
Object store on S3 or an S3 compatible service.

Objects are streamed with a multipart upload. Data is buffered until a part
is full; objects smaller than a single part are sent with one ``put_object``
when the sink is closed.
"""

import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from lxd_backup_ng import __util__

from .common import ObjectStore, WriteSink

logger = logging.getLogger(__name__)

# S3 rejects parts smaller than 5 MiB, except for the last one.
MIN_PART_SIZE = 5 * 1024 * 1024
DEFAULT_PART_SIZE = 8 * 1024 * 1024


class S3WriteSink(WriteSink):
    """Multipart upload of a single object."""

    def __init__(self, key, client, bucket, part_size=DEFAULT_PART_SIZE) -> None:
        super().__init__(key)
        self.client = client
        self.bucket = bucket
        self.part_size = part_size
        self.upload_id = None
        self._buffer = bytearray()
        self._parts = []

    def _write(self, data) -> None:
        self._buffer += data
        while len(self._buffer) >= self.part_size:
            part = bytes(self._buffer[: self.part_size])
            del self._buffer[: self.part_size]
            self._upload_part(part)

    def _upload_part(self, data) -> None:
        try:
            if self.upload_id is None:
                response = self.client.create_multipart_upload(
                    Bucket=self.bucket, Key=self.key
                )
                self.upload_id = response["UploadId"]
                logger.debug("Started multipart upload %s for %s", self.upload_id, self.key)
            number = len(self._parts) + 1
            response = self.client.upload_part(
                Bucket=self.bucket,
                Key=self.key,
                UploadId=self.upload_id,
                PartNumber=number,
                Body=data,
            )
        except (BotoCoreError, ClientError) as e:
            raise __util__.StorageError(
                f"Uploading part of s3://{self.bucket}/{self.key} failed: {e}"
            ) from e
        self._parts.append({"ETag": response["ETag"], "PartNumber": number})

    def _commit(self) -> None:
        try:
            if self.upload_id is None:
                self.client.put_object(
                    Bucket=self.bucket, Key=self.key, Body=bytes(self._buffer)
                )
            else:
                if self._buffer:
                    self._upload_part(bytes(self._buffer))
                self.client.complete_multipart_upload(
                    Bucket=self.bucket,
                    Key=self.key,
                    UploadId=self.upload_id,
                    MultipartUpload={"Parts": self._parts},
                )
        except (BotoCoreError, ClientError, __util__.StorageError) as e:
            self._abort()
            raise __util__.StorageError(
                f"Committing s3://{self.bucket}/{self.key} failed: {e}"
            ) from e
        finally:
            self._buffer.clear()

    def _abort(self) -> None:
        self._buffer.clear()
        if self.upload_id is None:
            return
        upload_id, self.upload_id = self.upload_id, None
        try:
            self.client.abort_multipart_upload(
                Bucket=self.bucket, Key=self.key, UploadId=upload_id
            )
        except (BotoCoreError, ClientError) as e:
            logger.warning("Aborting upload %s of %s failed: %s", upload_id, self.key, e)


class S3ObjectStore(ObjectStore):
    """Objects stored in an S3 bucket."""

    def __init__(
        self,
        bucket,
        region=None,
        endpoint_url=None,
        profile=None,
        part_size=DEFAULT_PART_SIZE,
        client=None,
    ) -> None:
        super().__init__(
            bucket, region=region, endpoint_url=endpoint_url, profile=profile
        )
        if part_size < MIN_PART_SIZE:
            raise ValueError(f"part size must be at least {MIN_PART_SIZE} bytes")
        self.part_size = part_size
        if client is None:
            try:
                session_kw = {"profile_name": profile} if profile else {}
                session = boto3.session.Session(**session_kw)
                client = session.client(
                    "s3", region_name=region or None, endpoint_url=endpoint_url or None
                )
            except BotoCoreError as e:
                raise __util__.AbortError(f"Cannot create S3 client: {e}") from e
        self.client = client

    def open_write_sink(self, key) -> S3WriteSink:
        return S3WriteSink(key, self.client, self.bucket, part_size=self.part_size)

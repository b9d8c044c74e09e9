from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.response import StreamingBody

from storage_adapter_s3.errors import (
    AdapterNotReadyError,
    BucketNotFoundError,
    StorageConfigError,
    UnexpectedBodyError,
)
from storage_adapter_s3.settings import ACL_PUBLIC_READ, AdapterOptions
from storage_adapter_s3.storage import StorageAdapter

logger = logging.getLogger(__name__)

CLEANUP_TAG_KEY = "adminforth-candidate-for-cleanup"
CLEANUP_TAG_VALUE = "true"
CLEANUP_TAGLINE = f"{CLEANUP_TAG_KEY}={CLEANUP_TAG_VALUE}"
CLEANUP_RULE_ID = "adminforth-unused-cleaner"
CLEANUP_EXPIRATION_DAYS = 2

TAGGING_HEADER = "x-amz-tagging"

# Stay as signed request headers in presigned URLs; the uploader sends them verbatim.
UNHOISTABLE_HEADERS = frozenset({TAGGING_HEADER})

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _error_code(exc: Exception) -> str:
    response = getattr(exc, "response", None) or {}
    return str((response.get("Error") or {}).get("Code") or "")


def _hoist_amz_headers(request, signature_version=None, **kwargs) -> None:
    """
    Move x-amz-* headers into the query string of a presigned request.

    botocore signs every header it serialized, so without this the caller would
    have to replay x-amz-acl as well. Headers in UNHOISTABLE_HEADERS are left
    alone and end up in X-Amz-SignedHeaders.
    """
    if not isinstance(signature_version, str) or not signature_version.endswith("-query"):
        return
    for name in list(request.headers.keys()):
        lname = name.lower()
        if lname.startswith("x-amz-") and lname not in UNHOISTABLE_HEADERS:
            request.params[lname] = request.headers[name]
            del request.headers[name]


def _make_s3_client(options: AdapterOptions):
    # No retries: a failed call surfaces to the caller as-is.
    cfg = Config(
        region_name=options.region or None,
        signature_version="s3v4",
        s3={"addressing_style": "virtual"},
        retries={"max_attempts": 1, "mode": "standard"},
        request_checksum_calculation="when_required",
    )
    client = boto3.client(
        "s3",
        aws_access_key_id=options.access_key_id,
        aws_secret_access_key=options.secret_access_key,
        config=cfg,
    )
    client.meta.events.register("before-sign.s3.PutObject", _hoist_amz_headers)
    return client


def cleanup_lifecycle_rule() -> Dict[str, Any]:
    return {
        "ID": CLEANUP_RULE_ID,
        "Status": "Enabled",
        "Filter": {"Tag": {"Key": CLEANUP_TAG_KEY, "Value": CLEANUP_TAG_VALUE}},
        "Expiration": {"Days": CLEANUP_EXPIRATION_DAYS},
    }


class S3StorageAdapter(StorageAdapter):
    """
    S3-backed StorageAdapter.

    Uploads go straight from the client to S3 through presigned PUT URLs and
    carry the cleanup tag, so anything uploaded but never confirmed expires
    via the bucket lifecycle rule. Confirming a file (mark_key_for_not_deletion)
    clears the tag set.

    States:
      - uninitialized: only object_can_be_accessed_publicly() and public-read
        get_download_url() work; everything else raises AdapterNotReadyError
      - ready: after setup_lifecycle() succeeds (no way back)
    """

    def __init__(self, options: AdapterOptions):
        self.options = options
        self._s3: Optional[Any] = None
        self._ready = False

    @classmethod
    def from_env(cls) -> "S3StorageAdapter":
        return cls(AdapterOptions.from_env())

    @property
    def is_ready(self) -> bool:
        return self._ready

    def _client(self, operation: str):
        if not self._ready or self._s3 is None:
            raise AdapterNotReadyError(operation)
        return self._s3

    def public_url(self, key: str) -> str:
        region = self.options.region
        host = f"{self.options.bucket}.s3.{region}.amazonaws.com" if region else f"{self.options.bucket}.s3.amazonaws.com"
        return f"https://{host}/{quote(key)}"

    async def get_upload_signed_url(
        self,
        key: str,
        content_type: str,
        expires_in: int = 3600,
    ) -> Dict[str, Any]:
        s3 = self._client("get_upload_signed_url")
        upload_url = s3.generate_presigned_url(
            ClientMethod="put_object",
            Params={
                "Bucket": self.options.bucket,
                "Key": key,
                "ContentType": content_type,
                "ACL": self.options.s3_acl,
                "Tagging": CLEANUP_TAGLINE,
            },
            ExpiresIn=expires_in,
            HttpMethod="PUT",
        )
        logger.debug("[S3] presigned PUT key=%s content_type=%s expires_in=%s", key, content_type, expires_in)
        return {
            "uploadUrl": upload_url,
            "uploadExtraParams": {TAGGING_HEADER: CLEANUP_TAGLINE},
        }

    async def get_download_url(self, key: str, expires_in: int = 3600) -> str:
        if self.options.s3_acl == ACL_PUBLIC_READ:
            return self.public_url(key)

        s3 = self._client("get_download_url")
        url = s3.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.options.bucket, "Key": key},
            ExpiresIn=expires_in,
        )
        logger.debug("[S3] presigned GET key=%s expires_in=%s", key, expires_in)
        return url

    async def _put_tag_set(self, operation: str, key: str, tag_set: List[Dict[str, str]]) -> None:
        s3 = self._client(operation)
        # Replaces the whole tag set; unrelated tags on the object are dropped.
        await asyncio.to_thread(
            s3.put_object_tagging,
            Bucket=self.options.bucket,
            Key=key,
            Tagging={"TagSet": tag_set},
        )
        logger.debug("[S3] %s key=%s tags=%s", operation, key, tag_set)

    async def mark_key_for_deletion(self, key: str) -> None:
        await self._put_tag_set(
            "mark_key_for_deletion",
            key,
            [{"Key": CLEANUP_TAG_KEY, "Value": CLEANUP_TAG_VALUE}],
        )

    async def mark_key_for_not_deletion(self, key: str) -> None:
        await self._put_tag_set("mark_key_for_not_deletion", key, [])

    async def setup_lifecycle(self) -> None:
        if not self.options.has_credentials:
            raise StorageConfigError("Missing AWS credentials (accessKeyId / secretAccessKey) in adapter options")

        if self._s3 is None:
            self._s3 = _make_s3_client(self.options)
            logger.info("[S3] client initialized bucket=%s region=%s", self.options.bucket, self.options.region)

        s3 = self._s3
        bucket = self.options.bucket

        try:
            await asyncio.to_thread(s3.head_bucket, Bucket=bucket)
        except Exception as exc:
            raise BucketNotFoundError(bucket, detail=str(exc)) from exc

        rules: List[Dict[str, Any]] = []
        try:
            res = await asyncio.to_thread(s3.get_bucket_lifecycle_configuration, Bucket=bucket)
            rules = list(res.get("Rules") or [])
        except Exception as exc:
            if _error_code(exc) != "NoSuchLifecycleConfiguration":
                logger.exception("[S3] error checking lifecycle config bucket=%s", bucket)
                raise

        if any(r.get("ID") == CLEANUP_RULE_ID for r in rules):
            logger.info('[S3] lifecycle rule "%s" already exists bucket=%s', CLEANUP_RULE_ID, bucket)
        else:
            # PUT replaces the whole configuration, so existing rules are sent back too.
            await asyncio.to_thread(
                s3.put_bucket_lifecycle_configuration,
                Bucket=bucket,
                LifecycleConfiguration={"Rules": rules + [cleanup_lifecycle_rule()]},
            )
            logger.info('[S3] lifecycle rule "%s" created bucket=%s', CLEANUP_RULE_ID, bucket)

        self._ready = True

    async def object_can_be_accessed_publicly(self) -> bool:
        return self.options.s3_acl == ACL_PUBLIC_READ

    async def get_key_as_data_url(self, key: str) -> str:
        """
        Return the object as `data:<content-type>;base64,<payload>`.

        The whole body is read into memory; only call this for small objects.
        """
        s3 = self._client("get_key_as_data_url")
        resp = await asyncio.to_thread(s3.get_object, Bucket=self.options.bucket, Key=key)

        body = resp.get("Body")
        if not isinstance(body, StreamingBody):
            raise UnexpectedBodyError(key, type(body).__name__)

        try:
            data = await asyncio.to_thread(body.read)
        finally:
            body.close()

        content_type = resp.get("ContentType") or DEFAULT_CONTENT_TYPE
        return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"

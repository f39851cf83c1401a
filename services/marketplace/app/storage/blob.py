"""
Syllabus blob storage.

The course service only ever holds the reference string returned by
``BlobStore.put``; URLs are minted on demand by ``url_for``.

Constraints checked before anything is stored (``UploadRejected`` otherwise):
  - content type ``application/pdf``
  - non-empty, at most ``syllabus_max_bytes`` (5 MB)
  - body starts with the ``%PDF`` magic bytes
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Protocol

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import Settings
from app.exceptions import StoreUnavailable, UploadRejected

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
_PDF_MAGIC = b"%PDF"


class BlobStore(Protocol):
    async def put(self, data: bytes, *, content_type: str, filename: str) -> str: ...

    async def delete(self, ref: str) -> None: ...

    async def url_for(self, ref: str) -> str: ...


def validate_syllabus(data: bytes, content_type: str | None, max_bytes: int) -> None:
    if (content_type or "").split(";")[0].strip().lower() != PDF_CONTENT_TYPE:
        raise UploadRejected("Only PDF files are allowed for the syllabus.")
    if not data:
        raise UploadRejected("The uploaded file is empty.")
    if len(data) > max_bytes:
        raise UploadRejected(f"Syllabus exceeds the {max_bytes // (1024 * 1024)} MB limit.")
    if not data.startswith(_PDF_MAGIC):
        raise UploadRejected("The uploaded file is not a valid PDF.")


def _syllabus_key(prefix: str, filename: str) -> str:
    """Build a unique, human-readable S3 key for a syllabus."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    uid = uuid.uuid4().hex[:8]
    safe = "".join(c if c.isalnum() or c in "._-" else "_" for c in filename)[-80:] or "syllabus.pdf"
    return f"{prefix}{ts}_{uid}_{safe}"


class S3BlobStore:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _session(self) -> aioboto3.Session:
        return aioboto3.Session(
            aws_access_key_id=self._settings.aws_access_key_id or None,
            aws_secret_access_key=self._settings.aws_secret_access_key or None,
            region_name=self._settings.s3_region,
        )

    async def put(self, data: bytes, *, content_type: str, filename: str) -> str:
        key = _syllabus_key(self._settings.s3_syllabus_prefix, filename)
        try:
            async with self._session().client("s3") as s3:
                await s3.put_object(
                    Bucket=self._settings.s3_bucket,
                    Key=key,
                    Body=data,
                    ContentType=content_type,
                )
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 put_object failed for key %s: %s", key, exc)
            raise StoreUnavailable("Could not store the syllabus file.") from exc
        return key

    async def delete(self, ref: str) -> None:
        """Best-effort — logs on failure but never raises."""
        try:
            async with self._session().client("s3") as s3:
                await s3.delete_object(Bucket=self._settings.s3_bucket, Key=ref)
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 delete_object failed for key %s: %s", ref, exc)

    async def url_for(self, ref: str) -> str:
        try:
            async with self._session().client("s3") as s3:
                url: str = await s3.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self._settings.s3_bucket, "Key": ref},
                    ExpiresIn=self._settings.s3_presigned_expiry_seconds,
                )
        except (BotoCoreError, ClientError) as exc:
            raise StoreUnavailable("Could not sign the syllabus URL.") from exc
        return url


async def store_syllabus(
    store: BlobStore, data: bytes, *, content_type: str | None, filename: str, max_bytes: int
) -> str:
    validate_syllabus(data, content_type, max_bytes)
    return await store.put(data, content_type=PDF_CONTENT_TYPE, filename=filename)


async def discard(store: BlobStore, ref: str | None) -> None:
    """Delete an orphaned blob; never raises."""
    if not ref:
        return
    try:
        await store.delete(ref)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Could not delete orphaned blob %s: %s", ref, exc)

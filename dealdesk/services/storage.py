"""Blob storage port: write-once uploads for payment proofs and chat attachments.

Objects are never deleted or versioned; every upload gets a fresh key and the
returned URL is stored verbatim on the transaction, ledger row or message.
"""

from __future__ import annotations

import asyncio
import mimetypes
import re
import uuid

import boto3
import structlog
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from dealdesk.core.config import settings
from dealdesk.core.errors import DependencyFailure

logger = structlog.get_logger()

_EXTENSION_RE = re.compile(r"[a-z0-9]{1,8}")


def _get_s3_client():
    return boto3.client(
        "s3",
        endpoint_url=settings.AWS_S3_ENDPOINT_URL or None,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region_name=settings.AWS_S3_REGION,
        config=BotoConfig(signature_version="s3v4"),
    )


def public_url(key: str) -> str:
    base = settings.BLOB_PUBLIC_BASE_URL or f"{settings.AWS_S3_ENDPOINT_URL}/{settings.AWS_S3_BUCKET}"
    return f"{base.rstrip('/')}/{key}"


def build_key(prefix: str, connection_id: uuid.UUID, content_type: str, filename: str | None = None) -> str:
    """Fresh object key; the client's filename only contributes a plain extension."""
    ext = mimetypes.guess_extension(content_type) or ""
    if filename and "." in filename:
        candidate = filename.rsplit(".", 1)[1].lower()
        if _EXTENSION_RE.fullmatch(candidate):
            ext = f".{candidate}"
    return f"{prefix}/{connection_id}/{uuid.uuid4().hex}{ext}"


def _put_sync(key: str, data: bytes, content_type: str) -> None:
    s3 = _get_s3_client()
    s3.put_object(
        Bucket=settings.AWS_S3_BUCKET,
        Key=key,
        Body=data,
        ContentType=content_type,
    )


async def put(data: bytes, key: str, content_type: str) -> str:
    """Store bytes under key and return the public URL.

    Raises DependencyFailure when the object store rejects or cannot be
    reached; callers must not have written anything to the database yet.
    """
    try:
        await asyncio.to_thread(_put_sync, key, data, content_type)
    except (BotoCoreError, ClientError) as exc:
        logger.error("blob_put_failed", key=key, error=str(exc))
        raise DependencyFailure("Could not store the uploaded file", key=key) from exc
    logger.info("blob_stored", key=key, size=len(data))
    return public_url(key)

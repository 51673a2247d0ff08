import logging
from pathlib import Path

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from .concurrency import run_concurrently
from .errors import PublishError
from .models import ArtifactRef

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".mp4": "video/mp4",
    ".webp": "image/webp",
}


def get_s3_client():
    """
    SDK client for server-side upload. Works against AWS S3, R2 and MinIO.
    Retries are turned off; a failed put is reported, not repeated.
    """
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL,
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
            retries={"max_attempts": 1, "mode": "standard"},
        ),
    )


def object_url(key: str, base: str | None = None) -> str:
    """
    Public URL for a published key: <S3_PUBLIC_BASE_URL>/<key>.
    Derived from the key alone, no round-trip to the store.
    """
    base = (base or settings.S3_PUBLIC_BASE_URL).rstrip("/")
    return f"{base}/{key}"


def content_type_for(key: str) -> str:
    """video/mp4 for .mp4 keys, image/webp for everything else."""
    return CONTENT_TYPES.get(Path(key).suffix.lower(), "image/webp")


def _safe_cause(error: BaseException) -> str:
    """
    Caller-facing reason for a failed upload. Exception messages can carry
    local paths or the store endpoint, so only the error code or type is kept.
    """
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code")
        if code:
            return f"store error {code}"
    return type(error).__name__


class ArtifactPublisher:
    """Puts local files into one bucket and hands back their public URLs."""

    def __init__(self, client, bucket: str, public_base_url: str):
        self.client = client
        self.bucket = bucket
        self.public_base_url = public_base_url

    def publish(self, artifact: ArtifactRef) -> str:
        """
        Upload a single file with one put_object call and return its URL.
        The whole file is read into memory; uploads are capped at the boundary.
        """
        try:
            body = Path(artifact.local_path).read_bytes()
            self.client.put_object(
                Bucket=self.bucket,
                Key=artifact.remote_key,
                Body=body,
                ContentType=artifact.content_type,
            )
        except (BotoCoreError, ClientError, OSError) as e:
            logger.error("Failed to upload %s: %s", artifact.remote_key, e)
            raise PublishError.aggregate({artifact.remote_key: _safe_cause(e)}) from e

        logger.info("Uploaded %s", artifact.remote_key)
        return object_url(artifact.remote_key, self.public_base_url)

    def publish_all(self, artifacts: list[ArtifactRef]) -> list[str]:
        """
        Publish every artifact concurrently and wait for all of them.
        Returns URLs in input order, or raises one PublishError naming every
        artifact that failed. Artifacts that did upload are left in place.
        """
        outcomes = run_concurrently(
            [lambda a=artifact: self.publish(a) for artifact in artifacts]
        )

        failures = {}
        for artifact, outcome in zip(artifacts, outcomes):
            if outcome.ok:
                continue
            err = outcome.error
            if isinstance(err, PublishError):
                failures[artifact.remote_key] = err.failures.get(artifact.remote_key, err.cause)
            else:
                failures[artifact.remote_key] = _safe_cause(err)
        if failures:
            raise PublishError.aggregate(failures)

        return [outcome.value for outcome in outcomes]

import logging
from datetime import timedelta

from minio import Minio
from minio.error import S3Error

from .config import settings

logger = logging.getLogger("digital-download")

minio_client = Minio(
    settings.MINIO_ENDPOINT,
    access_key=settings.MINIO_ACCESS_KEY,
    secret_key=settings.MINIO_SECRET_KEY,
    secure=settings.MINIO_SECURE,
    region=settings.MINIO_REGION,
)


def presigned_download_url(bucket: str, object_name: str) -> str | None:
    """Return a time-limited public GET URL for an object, or None if MinIO refuses."""
    try:
        return minio_client.presigned_get_object(
            bucket,
            object_name,
            expires=timedelta(seconds=settings.MINIO_PRESIGN_EXPIRES_SECONDS),
        )
    except (S3Error, ValueError) as e:
        logger.error(f"MinIO presign failed for {bucket}/{object_name}: {e}")
        return None

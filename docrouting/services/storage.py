import logging
import uuid

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from docrouting.config import settings

logger = logging.getLogger(__name__)


class StorageService:
    @staticmethod
    def is_configured() -> bool:
        return bool(
            settings.s3_endpoint_url
            and settings.s3_access_key
            and settings.s3_secret_key
        )

    @staticmethod
    def _get_client():  # type: ignore[return]
        if not StorageService.is_configured():
            raise RuntimeError(
                "S3 storage is not configured. "
                "Set S3_ENDPOINT_URL, S3_ACCESS_KEY, and S3_SECRET_KEY."
            )
        return boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            region_name=settings.s3_region,
            config=Config(signature_version="s3v4"),
        )

    @staticmethod
    def generate_storage_key(document_id: str, file_name: str) -> str:
        unique = uuid.uuid4().hex[:12]
        return f"documents/{document_id}/{unique}/{file_name}"

    @staticmethod
    def store(storage_key: str, content: bytes, mime_type: str) -> str:
        client = StorageService._get_client()
        client.put_object(
            Bucket=settings.s3_bucket_name,
            Key=storage_key,
            Body=content,
            ContentType=mime_type,
        )
        logger.info("Stored object %s (%d bytes)", storage_key, len(content))
        return storage_key

    @staticmethod
    def delete(storage_key: str) -> None:
        client = StorageService._get_client()
        client.delete_object(Bucket=settings.s3_bucket_name, Key=storage_key)
        logger.info("Deleted object %s", storage_key)

    @staticmethod
    def exists(storage_key: str) -> bool:
        client = StorageService._get_client()
        try:
            client.head_object(Bucket=settings.s3_bucket_name, Key=storage_key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in {"404", "NoSuchKey", "NotFound"}:
                return False
            raise
        return True

    @staticmethod
    def generate_download_url(storage_key: str, file_name: str | None = None) -> str:
        client = StorageService._get_client()
        params = {"Bucket": settings.s3_bucket_name, "Key": storage_key}
        if file_name:
            params["ResponseContentDisposition"] = f'attachment; filename="{file_name}"'
        url: str = client.generate_presigned_url(
            "get_object",
            Params=params,
            ExpiresIn=settings.s3_presigned_url_expiry,
        )
        return url


storage = StorageService()

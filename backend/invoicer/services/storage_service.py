import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from typing import Optional
import os
import uuid
from invoicer.config import settings
from invoicer.exceptions import NotFoundError, PersistenceError, ValidationError
import logging

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads/"
KEY_PREFIX = "logos/"

CONTENT_TYPES = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.bmp': 'image/bmp',
    '.webp': 'image/webp',
    '.svg': 'image/svg+xml',
    '.tiff': 'image/tiff',
    '.tif': 'image/tiff',
}


def validate_image_upload(content_type: Optional[str], size: int, max_bytes: Optional[int] = None):
    """
    Reject uploads that are not images or exceed the size limit.

    Raises:
        ValidationError: non-image content type or oversized file
    """
    max_bytes = max_bytes or settings.max_upload_bytes
    if not content_type or not content_type.startswith("image/"):
        raise ValidationError("Only image files are allowed")
    if size > max_bytes:
        raise ValidationError(f"File size must be less than {max_bytes // (1024 * 1024)}MB")


class StorageService:
    """Service for storing uploaded assets in object storage (S3-compatible) or on disk"""

    def __init__(self, local_storage_dir: Optional[str] = None, use_s3: bool = True):
        self.bucket_name = settings.storage_bucket_name
        self.s3_client = None

        # Require both access key and secret key to use S3
        if use_s3 and settings.storage_access_key_id and settings.storage_secret_access_key:
            s3_config = {
                # logos are read during rendering; same bounds as remote logo fetches
                'config': Config(
                    connect_timeout=settings.logo_fetch_timeout_seconds,
                    read_timeout=settings.logo_fetch_timeout_seconds,
                    retries={'max_attempts': settings.logo_fetch_retries},
                ),
                'aws_access_key_id': settings.storage_access_key_id,
                'aws_secret_access_key': settings.storage_secret_access_key,
            }
            if settings.storage_endpoint_url:
                s3_config['endpoint_url'] = settings.storage_endpoint_url
            if settings.storage_region:
                s3_config['region_name'] = settings.storage_region

            try:
                self.s3_client = boto3.client('s3', **s3_config)
                logger.info("S3 storage initialized successfully")
            except Exception as e:
                logger.warning(f"Failed to initialize S3 client, falling back to local storage: {str(e)}")
                self.s3_client = None
        else:
            logger.info("No S3 credentials found, using local filesystem storage")

        self.local_storage_dir = os.path.abspath(local_storage_dir or settings.local_storage_dir)
        os.makedirs(self.local_storage_dir, exist_ok=True)

    def _content_type(self, filename: str) -> str:
        ext = os.path.splitext(filename)[1].lower()
        return CONTENT_TYPES.get(ext, 'application/octet-stream')

    def _local_path(self, key: str) -> str:
        # keys are flat file names; strip any directory components
        return os.path.join(self.local_storage_dir, os.path.basename(key))

    def upload_file(self, file_content: bytes, filename: str, content_type: Optional[str] = None) -> str:
        """
        Store an uploaded file under a unique key

        Args:
            file_content: Binary content of the file
            filename: Original filename (only its extension is kept)
            content_type: MIME type reported by the client

        Returns:
            Storage key, e.g. "3f2b...e1.png"
        """
        ext = os.path.splitext(filename or "")[1].lower()
        key = f"{uuid.uuid4()}{ext}"
        content_type = content_type or self._content_type(key)

        if self.s3_client:
            try:
                self.s3_client.put_object(
                    Bucket=self.bucket_name,
                    Key=f"{KEY_PREFIX}{key}",
                    Body=file_content,
                    ContentType=content_type
                )
            except (ClientError, BotoCoreError) as e:
                raise PersistenceError(f"Failed to upload to S3: {str(e)}") from e
        else:
            local_path = self._local_path(key)
            try:
                with open(local_path, 'wb') as f:
                    f.write(file_content)
            except OSError as e:
                logger.error(f"Failed to save file to local storage: {str(e)}")
                raise PersistenceError(f"Failed to save file: {str(e)}") from e
            logger.info(f"File saved to local storage: {local_path}")
        return key

    def get_file_url(self, key: str) -> str:
        """Public reference for a stored file, served by the /uploads route"""
        return f"{UPLOAD_URL_PREFIX}{key}"

    def key_from_url(self, url: str) -> Optional[str]:
        """Storage key for a /uploads/... reference, None for anything else"""
        if url and url.startswith(UPLOAD_URL_PREFIX):
            key = url[len(UPLOAD_URL_PREFIX):]
            return os.path.basename(key) or None
        return None

    def download_file(self, key: str) -> bytes:
        """
        Read a stored file

        Raises:
            NotFoundError: no file under this key
            PersistenceError: storage backend failure
        """
        if self.s3_client:
            try:
                response = self.s3_client.get_object(Bucket=self.bucket_name, Key=f"{KEY_PREFIX}{key}")
                return response['Body'].read()
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                    raise NotFoundError(f"File not found: {key}") from e
                raise PersistenceError(f"Failed to download from S3: {str(e)}") from e
            except BotoCoreError as e:
                logger.warning(f"S3 unreachable while reading {key}: {str(e)}")
                raise PersistenceError(f"Failed to download from S3: {str(e)}") from e

        local_path = self._local_path(key)
        if not os.path.exists(local_path):
            raise NotFoundError(f"File not found: {key}")
        try:
            with open(local_path, 'rb') as f:
                return f.read()
        except OSError as e:
            logger.error(f"Failed to read file from local storage: {str(e)}")
            raise PersistenceError(f"Failed to read file: {str(e)}") from e

    def content_type_for(self, key: str) -> str:
        return self._content_type(key)


storage_service = StorageService()


def get_storage_service() -> StorageService:
    """FastAPI dependency for the shared storage service"""
    return storage_service

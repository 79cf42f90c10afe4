from fastapi import UploadFile
from supabase import Client
from config import get_supabase_admin_client, SUPABASE_STORAGE_BUCKET
from utils.errors import ValidationFailed, UpstreamFailure
import uuid
import os
import logging

logger = logging.getLogger(__name__)

IMAGE_TYPES = ["image/jpeg", "image/png", "image/gif", "image/webp"]
DOCUMENT_TYPES = IMAGE_TYPES + ["application/pdf"]
MAX_FILE_SIZE = 5 * 1024 * 1024


class StorageHelpers:
    """Uploads product images and KYC documents to Supabase Storage"""

    def __init__(self):
        self._admin_client = None

    @property
    def admin_client(self) -> Client:
        if self._admin_client is None:
            self._admin_client = get_supabase_admin_client()
        return self._admin_client

    async def upload_file(self, file: UploadFile, folder: str, allowed_types=None) -> str:
        """
        Upload a file under `folder` and return its public URL
        """
        allowed_types = allowed_types or IMAGE_TYPES
        if file.content_type not in allowed_types:
            raise ValidationFailed(f"File type {file.content_type} not allowed")

        file_content = await file.read()
        if len(file_content) > MAX_FILE_SIZE:
            raise ValidationFailed("File size must be less than 5MB")
        await file.seek(0)

        file_extension = os.path.splitext(file.filename)[1] if file.filename else ''
        unique_filename = f"{folder}/{uuid.uuid4()}{file_extension}"

        try:
            bucket = self.admin_client.storage.from_(SUPABASE_STORAGE_BUCKET)
            bucket.upload(
                path=unique_filename,
                file=file_content,
                file_options={"content-type": file.content_type}
            )
            public_url = bucket.get_public_url(unique_filename)
        except Exception as upload_error:
            logger.error(f"Upload error for {unique_filename}: {str(upload_error)}")
            raise UpstreamFailure(f"Upload failed: {str(upload_error)}")

        logger.info(f"Uploaded {unique_filename}")
        return public_url


storage_helpers = StorageHelpers()

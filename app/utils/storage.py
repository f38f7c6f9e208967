import logging
import os
import asyncio

from google.cloud import storage
from google.api_core.exceptions import GoogleAPICallError

from app.core.config import settings

# Configure logging
logger = logging.getLogger(__name__)


class StorageNotConfigured(ConnectionAbortedError):
    pass


class GcsStorage:
    def __init__(self):
        self.storage_client: storage.Client | None = None
        self.bucket: storage.bucket.Bucket | None = None

    def _initialize_client(self):
        if not settings.GCS_BUCKET_NAME:
            logger.error("GCS_BUCKET_NAME is not configured. GCS client not initialized.")
            return
        try:
            if settings.GOOGLE_APPLICATION_CREDENTIALS and os.path.exists(settings.GOOGLE_APPLICATION_CREDENTIALS):
                logger.info(f"Initializing GCS client from service account file: {settings.GOOGLE_APPLICATION_CREDENTIALS}")
                self.storage_client = storage.Client.from_service_account_json(
                    settings.GOOGLE_APPLICATION_CREDENTIALS
                )
            else:
                logger.info("Initializing GCS client with Application Default Credentials.")
                self.storage_client = storage.Client()
            self.bucket = self.storage_client.bucket(settings.GCS_BUCKET_NAME)
            logger.info(f"GCS Bucket {settings.GCS_BUCKET_NAME} obtained.")
        except Exception as e:
            logger.error(f"Failed to initialize Google Cloud Storage client or bucket: {e}", exc_info=True)
            self.storage_client = None
            self.bucket = None

    def _require_bucket(self) -> "storage.bucket.Bucket":
        if self.bucket is None:
            self._initialize_client()  # lazily, so the app starts without credentials
        if self.bucket is None:
            raise StorageNotConfigured("GCS not initialized")
        return self.bucket

    async def upload_bytes_async(self, data: bytes, blob_name: str, content_type: str) -> str:
        """Uploads data and returns its public URL."""
        blob = self._require_bucket().blob(blob_name)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: blob.upload_from_string(data, content_type=content_type)
            )
        except GoogleAPICallError as e:
            logger.error(f"Upload of {blob_name} failed: {e}")
            raise
        logger.info(f"Uploaded {len(data)} bytes to GCS: {settings.GCS_BUCKET_NAME}/{blob_name}")
        return blob.public_url

    async def delete_blob_async(self, blob_name: str) -> None:
        blob = self._require_bucket().blob(blob_name)
        loop = asyncio.get_running_loop()

        def _delete():
            if blob.exists():
                blob.delete()
                logger.info(f"Blob {blob_name} deleted from GCS bucket {settings.GCS_BUCKET_NAME}.")

        await loop.run_in_executor(None, _delete)


gcs_storage = GcsStorage()

"""Photo Storage Client - Imperative Shell.

Uploads sighting photos to Google Cloud Storage and returns their public URL.
"""

import logging
import time

from google.cloud import storage

from petwatch.core.errors import StoreError


logger = logging.getLogger(__name__)


class PhotoStorageClient:
    """Client for storing sighting photos in a Cloud Storage bucket."""

    def __init__(
        self,
        bucket_name: str,
        project_id: str | None = None,
        client: storage.Client | None = None,
    ) -> None:
        self.bucket_name = bucket_name
        self.project_id = project_id
        self._client = client

    @property
    def client(self) -> storage.Client:
        """Lazy initialization of Storage client."""
        if self._client is None:
            self._client = storage.Client(project=self.project_id)
        return self._client

    def upload(self, image_bytes: bytes, content_type: str = "image/jpeg") -> str:
        """Upload a photo.

        Args:
            image_bytes: Encoded image
            content_type: MIME type of the image

        Returns:
            Public URL of the stored object

        Raises:
            StoreError: If the upload fails
        """
        object_name = f"pet_{int(time.time() * 1000)}.jpg"
        logger.info("Uploading photo %s (%d bytes)", object_name, len(image_bytes))

        try:
            blob = self.client.bucket(self.bucket_name).blob(object_name)
            blob.upload_from_string(image_bytes, content_type=content_type)
        except Exception as e:
            logger.error("Failed to upload photo: %s", str(e))
            raise StoreError(f"Failed to upload photo: {e}") from e

        return blob.public_url

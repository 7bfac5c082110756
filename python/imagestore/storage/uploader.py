"""Image upload service.

Writes bytes to the object store, then resolves the public download URL.
Either step failing raises UploadFailure; there is no retry and no
partial-success state (an object written before a failed resolve is left
in place).
"""

from imagestore.errors import StorageError, UploadFailure
from imagestore.logging import get_logger
from imagestore.storage.blobs import UploadableFile
from imagestore.storage.client import DEFAULT_CONTENT_TYPE, ObjectStoreBase

logger = get_logger(__name__)


class Uploader:
    """Pushes bytes to a storage key and returns its download URL."""

    def __init__(self, store: ObjectStoreBase):
        self._store = store

    async def upload(
        self,
        key: str,
        data: bytes,
        content_type: str | None = None,
    ) -> str:
        """Upload data to key.

        Args:
            key: Full storage key (see storage.paths).
            data: Object content.
            content_type: MIME type; application/octet-stream if omitted.

        Returns:
            Download URL for the stored object.

        Raises:
            UploadFailure: If the write or the URL resolution fails.
        """
        content_type = content_type or DEFAULT_CONTENT_TYPE

        try:
            await self._store.put_object(key, data, content_type=content_type)
            url = await self._store.resolve_url(key)
        except StorageError as e:
            logger.warning("storage.upload.failed", key=key, error_code=e.code.value)
            raise UploadFailure(key, f"Upload failed for {key}: {e.message}", e.code) from e

        logger.info(
            "storage.upload.finished",
            key=key,
            size_bytes=len(data),
            content_type=content_type,
        )
        return url

    async def upload_file(self, file: UploadableFile, key: str) -> str:
        """Upload an UploadableFile using its bytes and MIME type."""
        return await self.upload(key, file.data, file.content_type)

"""Firebase Storage client abstraction.

Provides a narrow async interface over the object store with:
- Object upload (raw bytes + content type)
- Download URL resolution (token-bearing public URL)
- Object deletion (not-found reported as ObjectNotFoundError)

Download URLs have the shape
    {base}/b/{bucket}/o/{escaped key}?alt=media&token={token}
and paths.decode_download_url() must be able to invert them. All methods
receive the full storage key; no prefix manipulation happens here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from urllib.parse import urlsplit
from uuid import uuid4

import httpx

from imagestore.config import DEFAULT_FIREBASE_STORAGE_BASE_URL, Settings, get_settings
from imagestore.errors import ObjectNotFoundError, StorageError, StorageErrorCode
from imagestore.logging import get_logger
from imagestore.storage.paths import encode_object_name

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def build_download_url(base_url: str, bucket: str, key: str, token: str) -> str:
    """Build the public download URL for an object."""
    return f"{base_url}/b/{bucket}/o/{encode_object_name(key)}?alt=media&token={token}"


class ObjectStoreBase(ABC):
    """Abstract base class for object store implementations."""

    @abstractmethod
    async def put_object(
        self,
        path: str,
        data: bytes,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        """Write bytes to storage.

        Args:
            path: Full storage key.
            data: Object content.
            content_type: MIME type stored with the object.

        Raises:
            StorageError: If the write fails.
        """
        ...

    @abstractmethod
    async def resolve_url(self, path: str) -> str:
        """Get the canonical download URL for an existing object.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            StorageError: If resolution fails.
        """
        ...

    @abstractmethod
    async def delete_object(self, path: str) -> None:
        """Delete an object from storage.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            StorageError: For any other failure.
        """
        ...


class FirebaseStorageClient(ObjectStoreBase):
    """Production Firebase Storage client.

    Uses httpx.AsyncClient against the Firebase Storage REST API. An
    injected http_client is borrowed and never closed here.
    """

    def __init__(
        self,
        bucket: str,
        *,
        base_url: str = DEFAULT_FIREBASE_STORAGE_BASE_URL,
        auth_token: str | None = None,
        timeout_s: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the storage client.

        Args:
            bucket: Bucket name (e.g., my-app.appspot.com).
            base_url: REST API root.
            auth_token: Bearer token for authenticated access.
            timeout_s: Per-request timeout in seconds.
            http_client: Shared AsyncClient; one is created if omitted.
        """
        if not bucket:
            raise ValueError("bucket is required for FirebaseStorageClient")

        self._bucket = bucket
        self._base_url = base_url.rstrip("/")
        self._objects_url = f"{self._base_url}/b/{bucket}/o"
        self._timeout = httpx.Timeout(timeout_s, connect=10.0)
        self._headers: dict[str, str] = {}
        if auth_token:
            self._headers["Authorization"] = f"Bearer {auth_token}"

        self._owns_client = http_client is None
        self._client = http_client if http_client is not None else httpx.AsyncClient()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> "FirebaseStorageClient":
        if not settings.firebase_storage_bucket:
            raise ValueError("FIREBASE_STORAGE_BUCKET is not configured")
        return cls(
            settings.firebase_storage_bucket,
            base_url=settings.normalized_base_url,
            auth_token=settings.firebase_auth_token,
            timeout_s=settings.storage_timeout_s,
            http_client=http_client,
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    async def aclose(self) -> None:
        """Close the underlying http client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "FirebaseStorageClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _object_url(self, path: str) -> str:
        return f"{self._objects_url}/{encode_object_name(path)}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        **kwargs,
    ) -> httpx.Response:
        try:
            return await self._client.request(
                method,
                url,
                headers={**self._headers, **(headers or {})},
                timeout=self._timeout,
                **kwargs,
            )
        except httpx.HTTPError as e:
            raise StorageError(
                f"Storage request failed: {type(e).__name__}: {e}",
                code=StorageErrorCode.E_STORAGE_ERROR,
            ) from e

    async def put_object(
        self,
        path: str,
        data: bytes,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        """Upload via POST /b/{bucket}/o?name={path}."""
        response = await self._request(
            "POST",
            self._objects_url,
            params={"name": path},
            content=data,
            headers={"Content-Type": content_type or DEFAULT_CONTENT_TYPE},
        )

        if response.status_code not in (200, 201):
            raise StorageError(
                f"Failed to upload object: {response.status_code} {response.text}",
                code=StorageErrorCode.E_STORAGE_PUT_FAILED,
            )

        logger.debug("storage.put.finished", key=path, size_bytes=len(data))

    async def resolve_url(self, path: str) -> str:
        """Read object metadata and build a URL from its first download token."""
        response = await self._request("GET", self._object_url(path))

        if response.status_code == 404:
            raise ObjectNotFoundError(path)

        if response.status_code != 200:
            raise StorageError(
                f"Failed to resolve download URL: {response.status_code} {response.text}",
                code=StorageErrorCode.E_RESOLVE_URL_FAILED,
            )

        try:
            metadata = response.json()
        except ValueError as e:
            raise StorageError(
                "Failed to resolve download URL: invalid metadata response",
                code=StorageErrorCode.E_RESOLVE_URL_FAILED,
            ) from e

        if not isinstance(metadata, dict):
            raise StorageError(
                "Failed to resolve download URL: metadata is not an object",
                code=StorageErrorCode.E_RESOLVE_URL_FAILED,
            )

        # Firebase returns a comma-separated list; the first token is canonical.
        tokens = metadata.get("downloadTokens") or ""
        token = tokens.split(",")[0].strip() if isinstance(tokens, str) else ""
        if not token:
            raise StorageError(
                "Failed to resolve download URL: object has no download token",
                code=StorageErrorCode.E_RESOLVE_URL_FAILED,
            )

        return build_download_url(self._base_url, self._bucket, path, token)

    async def delete_object(self, path: str) -> None:
        """Delete via DELETE /b/{bucket}/o/{escaped path}."""
        response = await self._request("DELETE", self._object_url(path))

        if response.status_code == 404:
            raise ObjectNotFoundError(path)

        if response.status_code not in (200, 204):
            raise StorageError(
                f"Failed to delete object: {response.status_code} {response.text}",
                code=StorageErrorCode.E_STORAGE_DELETE_FAILED,
            )


@dataclass(frozen=True)
class StoredObject:
    """An object held by FakeObjectStore."""

    data: bytes
    content_type: str
    token: str


class FakeObjectStore(ObjectStoreBase):
    """Fake object store for testing without real Firebase.

    Stores objects in memory and issues download URLs with the same shape as
    the real client, so URL-based deletion round-trips.
    """

    def __init__(self, base_url: str = "https://fake-storage.test/v0", bucket: str = "fake-bucket"):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self._objects: dict[str, StoredObject] = {}
        self._errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []  # (operation, path)

    async def put_object(
        self,
        path: str,
        data: bytes,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        """Store an object in memory."""
        self.calls.append(("put", path))
        self._raise_injected("put")
        self._objects[path] = StoredObject(
            data=data,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            token=str(uuid4()),
        )

    async def resolve_url(self, path: str) -> str:
        """Return a fake download URL for a stored object."""
        self.calls.append(("resolve", path))
        self._raise_injected("resolve")
        stored = self._objects.get(path)
        if stored is None:
            raise ObjectNotFoundError(path)
        return build_download_url(self.base_url, self.bucket, path, stored.token)

    async def delete_object(self, path: str) -> None:
        """Delete a fake object."""
        self.calls.append(("delete", path))
        self._raise_injected("delete")
        if self._objects.pop(path, None) is None:
            raise ObjectNotFoundError(path)

    def _raise_injected(self, operation: str) -> None:
        error = self._errors.get(operation)
        if error is not None:
            raise error

    # Test helper methods

    def fail_on(self, operation: str, error: Exception) -> None:
        """Make every call to operation ("put", "resolve", "delete") raise error."""
        self._errors[operation] = error

    def get_object(self, path: str) -> StoredObject | None:
        """Get a stored object directly."""
        return self._objects.get(path)

    def has_object(self, path: str) -> bool:
        return path in self._objects

    def clear(self) -> None:
        """Clear all objects, injected errors, and recorded calls."""
        self._objects.clear()
        self._errors.clear()
        self.calls.clear()


def get_object_store(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> ObjectStoreBase:
    """Get the configured object store.

    The returned FirebaseStorageClient owns its httpx.AsyncClient; callers
    must `await store.aclose()` (or use it as `async with`) when done.
    Pass http_client to share a client whose lifetime the caller manages.

    Returns:
        FirebaseStorageClient if FIREBASE_STORAGE_BUCKET is set,
        FakeObjectStore otherwise.
    """
    settings = settings or get_settings()

    if settings.uses_real_store:
        client = FirebaseStorageClient.from_settings(settings, http_client=http_client)
        logger.info(
            "storage.client.configured",
            bucket=client.bucket,
            host=urlsplit(settings.normalized_base_url).hostname,
        )
        return client

    # In-memory store for local dev / tests without Firebase
    return FakeObjectStore()

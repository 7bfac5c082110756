"""Blob dereferencing for uploads.

Turns a transient blob reference into an UploadableFile ready for the
Uploader. Supported references:
- blob:<uuid> URLs minted by a BlobRegistry (valid until revoked)
- data: URIs (base64 or percent-encoded payloads)
- http(s) URLs, fetched with httpx

The MIME type is whatever the blob reports, defaulting to image/png.
"""

import base64
import binascii
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes
from uuid import uuid4

import httpx

from imagestore.config import Settings
from imagestore.errors import DereferenceFailure
from imagestore.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BLOB_CONTENT_TYPE = "image/png"

BLOB_URL_SCHEME = "blob:"
DATA_URL_SCHEME = "data:"

HTTP_TIMEOUT = 30.0


@dataclass(frozen=True)
class UploadableFile:
    """Bytes with a file name and MIME type, passed once to the Uploader."""

    data: bytes
    name: str
    content_type: str

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Blob:
    """Raw blob content with its reported type ("" when unknown)."""

    data: bytes
    content_type: str = ""


def _normalize_content_type(content_type: str | None) -> str:
    """Strip parameters ("; charset=...") and lowercase."""
    return (content_type or "").split(";")[0].strip().lower()


class BlobRegistry:
    """In-process registry of transient blobs addressed by blob: URLs."""

    def __init__(self):
        self._blobs: dict[str, Blob] = {}

    def create_object_url(self, data: bytes, content_type: str | None = None) -> str:
        """Register data and return a blob URL referencing it."""
        url = f"{BLOB_URL_SCHEME}{uuid4()}"
        self._blobs[url] = Blob(data=data, content_type=_normalize_content_type(content_type))
        return url

    def revoke_object_url(self, url: str) -> None:
        """Release a blob URL. Revoking an unknown URL is a no-op."""
        self._blobs.pop(url, None)

    def lookup(self, url: str) -> Blob | None:
        return self._blobs.get(url)

    def __len__(self) -> int:
        return len(self._blobs)


def parse_data_url(url: str) -> Blob:
    """Decode a data: URI.

    Raises:
        DereferenceFailure: If the URI is malformed.
    """
    header, sep, payload = url[len(DATA_URL_SCHEME) :].partition(",")
    if not sep:
        raise DereferenceFailure("Malformed data URL: missing ','")

    params = header.split(";")
    is_base64 = params[-1].strip().lower() == "base64"
    if is_base64:
        params = params[:-1]
    content_type = _normalize_content_type(params[0] if params else "")

    if is_base64:
        try:
            data = base64.b64decode(unquote_to_bytes(payload), validate=True)
        except (binascii.Error, ValueError) as e:
            raise DereferenceFailure(f"Malformed data URL: {e}") from e
    else:
        data = unquote_to_bytes(payload)

    return Blob(data=data, content_type=content_type)


class BlobConverter:
    """Materializes blob references into uploadable files."""

    def __init__(
        self,
        registry: BlobRegistry | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = HTTP_TIMEOUT,
    ):
        self._registry = registry if registry is not None else BlobRegistry()
        self._http_client = http_client
        self._timeout = httpx.Timeout(timeout_s, connect=10.0)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        registry: BlobRegistry | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "BlobConverter":
        return cls(
            registry=registry,
            http_client=http_client,
            timeout_s=settings.storage_timeout_s,
        )

    @property
    def registry(self) -> BlobRegistry:
        return self._registry

    async def materialize(self, blob_ref: str, file_name: str) -> UploadableFile:
        """Dereference blob_ref and wrap its bytes as an UploadableFile.

        Args:
            blob_ref: blob:, data:, or http(s) URL.
            file_name: Name given to the resulting file.

        Raises:
            DereferenceFailure: If the reference is invalid, revoked, or
                cannot be fetched.
        """
        blob = await self._dereference(blob_ref)
        return UploadableFile(
            data=blob.data,
            name=file_name,
            content_type=blob.content_type or DEFAULT_BLOB_CONTENT_TYPE,
        )

    async def _dereference(self, blob_ref: str) -> Blob:
        if not blob_ref:
            raise DereferenceFailure("Empty blob reference")

        if blob_ref.startswith(BLOB_URL_SCHEME):
            blob = self._registry.lookup(blob_ref)
            if blob is None:
                raise DereferenceFailure(f"Blob reference is unknown or revoked: {blob_ref}")
            return blob

        if blob_ref.startswith(DATA_URL_SCHEME):
            return parse_data_url(blob_ref)

        if blob_ref.startswith(("http://", "https://")):
            return await self._fetch(blob_ref)

        raise DereferenceFailure("Unsupported blob reference scheme")

    async def _fetch(self, url: str) -> Blob:
        if self._http_client is not None:
            return await self._fetch_with(self._http_client, url)
        async with httpx.AsyncClient() as client:
            return await self._fetch_with(client, url)

    async def _fetch_with(self, client: httpx.AsyncClient, url: str) -> Blob:
        try:
            response = await client.get(url, timeout=self._timeout, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.warning("blob.fetch.failed", error_type=type(e).__name__)
            raise DereferenceFailure(f"Failed to fetch blob: {type(e).__name__}") from e

        if response.status_code != 200:
            raise DereferenceFailure(f"Failed to fetch blob: HTTP {response.status_code}")

        return Blob(
            data=response.content,
            content_type=_normalize_content_type(response.headers.get("content-type")),
        )

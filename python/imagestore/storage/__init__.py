"""Storage module for Firebase Storage operations.

Provides:
- Object store clients (real and in-memory) behind one async interface
- Path building utilities for user-uploaded and generated assets
- Uploader and best-effort Deleter
- BlobConverter for turning blob references into uploadable files
"""

from imagestore.storage.blobs import BlobConverter, BlobRegistry, UploadableFile
from imagestore.storage.client import (
    FakeObjectStore,
    FirebaseStorageClient,
    ObjectStoreBase,
    get_object_store,
)
from imagestore.storage.deleter import DeleteOutcome, Deleter, DeleteResult
from imagestore.storage.paths import (
    build_generated_asset_path,
    build_user_asset_path,
    decode_download_url,
    get_file_extension,
)
from imagestore.storage.uploader import Uploader

__all__ = [
    "ObjectStoreBase",
    "FirebaseStorageClient",
    "FakeObjectStore",
    "get_object_store",
    "Uploader",
    "Deleter",
    "DeleteOutcome",
    "DeleteResult",
    "BlobConverter",
    "BlobRegistry",
    "UploadableFile",
    "build_user_asset_path",
    "build_generated_asset_path",
    "decode_download_url",
    "get_file_extension",
]

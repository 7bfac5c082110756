"""Pytest configuration and fixtures for imagestore tests.

Test isolation strategy:
- Every test gets a fresh FakeObjectStore; nothing touches real storage
- Firebase client tests mock HTTP with respx
- Settings cache and STORAGE_TEST_PREFIX are reset around each test
"""

from collections.abc import Generator

import pytest

from imagestore.config import clear_settings_cache
from imagestore.logging import clear_request_context
from imagestore.storage.blobs import BlobConverter, BlobRegistry
from imagestore.storage.client import FakeObjectStore
from imagestore.storage.deleter import Deleter
from imagestore.storage.uploader import Uploader


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch) -> Generator[None, None, None]:
    """Strip storage env vars and clear cached settings/log context."""
    for name in (
        "STORAGE_TEST_PREFIX",
        "IMAGESTORE_ENV",
        "FIREBASE_STORAGE_BUCKET",
        "FIREBASE_STORAGE_BASE_URL",
        "FIREBASE_AUTH_TOKEN",
        "STORAGE_TIMEOUT_S",
        "LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    clear_request_context()
    yield
    clear_settings_cache()
    clear_request_context()


@pytest.fixture
def fake_store() -> FakeObjectStore:
    """Provide a fresh in-memory object store."""
    return FakeObjectStore()


@pytest.fixture
def uploader(fake_store: FakeObjectStore) -> Uploader:
    return Uploader(fake_store)


@pytest.fixture
def deleter(fake_store: FakeObjectStore) -> Deleter:
    return Deleter(fake_store)


@pytest.fixture
def blob_registry() -> BlobRegistry:
    return BlobRegistry()


@pytest.fixture
def blob_converter(blob_registry: BlobRegistry) -> BlobConverter:
    return BlobConverter(registry=blob_registry)

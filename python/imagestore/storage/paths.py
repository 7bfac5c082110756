"""Storage path building utilities.

This module provides the single point of logic for building storage keys and
for mapping keys to and from the escaped segment of a download URL. The
Deleter depends on decode_download_url() inverting encode_object_name().

Path Invariant:
    - User uploads: user-assets/{owner_id}/{artifact_id}_{timestamp_ms}.{ext}
    - Generated: generated-assets/{owner_id}/{artifact_id}_{timestamp_ms}.png
    - Test: test_runs/{run_id}/ prepended to either of the above

Rules:
    - Builders never touch the network and never fail; their only inputs
      besides arguments are the clock and STORAGE_TEST_PREFIX from the
      environment
    - No leading slash
    - Prefix applied exactly once in _build_path()
    - Keys built in the same millisecond for the same artifact collide
"""

import os
import time
from urllib.parse import quote, unquote, urlsplit

# Environment variable for test run prefix
TEST_PREFIX_ENV_VAR = "STORAGE_TEST_PREFIX"

USER_ASSETS_CATEGORY = "user-assets"
GENERATED_ASSETS_CATEGORY = "generated-assets"
GENERATED_ASSET_EXTENSION = "png"

# Path segment that precedes the escaped object name in a download URL.
DOWNLOAD_URL_MARKER = "/o/"


def _get_test_prefix() -> str:
    """Get the test prefix from environment.

    Returns:
        Empty string in production, "test_runs/{run_id}/" in test.
    """
    prefix = os.environ.get(TEST_PREFIX_ENV_VAR, "")
    if prefix and not prefix.endswith("/"):
        prefix = f"{prefix}/"
    return prefix


def current_timestamp_ms() -> int:
    """Milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


def get_file_extension(file_name: str) -> str | None:
    """Get the extension of a file name.

    Args:
        file_name: Original file name, e.g. "photo.jpg".

    Returns:
        The substring after the last ".", or None when the name has no
        "." or ends with one.
    """
    _, dot, ext = file_name.rpartition(".")
    if not dot or not ext:
        return None
    return ext


def _build_path(
    category: str,
    owner_id: str,
    artifact_id: str,
    ext: str | None,
    now_ms: int | None,
) -> str:
    timestamp = current_timestamp_ms() if now_ms is None else now_ms
    name = f"{artifact_id}_{timestamp}"
    if ext:
        name = f"{name}.{ext}"
    return f"{_get_test_prefix()}{category}/{owner_id}/{name}"


def build_user_asset_path(
    owner_id: str,
    artifact_id: str,
    file_name: str,
    *,
    now_ms: int | None = None,
) -> str:
    """Build the storage key for a user-uploaded image.

    Args:
        owner_id: ID of the user who owns the asset.
        artifact_id: ID of the record the image belongs to.
        file_name: Original file name; only its extension is kept.
        now_ms: Timestamp override. Defaults to the current time.

    Returns:
        Storage key. A file name without an extension yields a key with no
        extension segment.

    Example:
        >>> build_user_asset_path("u1", "t1", "photo.jpg", now_ms=1700000000000)
        'user-assets/u1/t1_1700000000000.jpg'
    """
    return _build_path(
        USER_ASSETS_CATEGORY,
        owner_id,
        artifact_id,
        get_file_extension(file_name),
        now_ms,
    )


def build_generated_asset_path(
    owner_id: str,
    artifact_id: str,
    *,
    now_ms: int | None = None,
) -> str:
    """Build the storage key for a server-generated image (always PNG).

    Example:
        >>> build_generated_asset_path("u1", "g1", now_ms=1700000000000)
        'generated-assets/u1/g1_1700000000000.png'
    """
    return _build_path(
        GENERATED_ASSETS_CATEGORY,
        owner_id,
        artifact_id,
        GENERATED_ASSET_EXTENSION,
        now_ms,
    )


def encode_object_name(key: str) -> str:
    """Percent-encode a key as a single URL path segment ("/" included)."""
    return quote(key, safe="")


def decode_download_url(url: str, marker: str = DOWNLOAD_URL_MARKER) -> str | None:
    """Recover the storage key from a download URL.

    Takes the URL's path component, finds the first occurrence of marker,
    and percent-decodes everything after it. The query string is never part
    of the key.

    Args:
        url: Download URL issued by the object store.
        marker: Path token that precedes the escaped object name.

    Returns:
        The storage key, or None if the URL is malformed, foreign, or the
        escaped segment is empty.
    """
    if not url:
        return None

    try:
        path = urlsplit(url).path
    except ValueError:
        return None

    _, found, encoded = path.partition(marker)
    if not found or not encoded:
        return None

    return unquote(encoded)

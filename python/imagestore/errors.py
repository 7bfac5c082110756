"""Storage error definitions.

All storage errors carry a stable string code so callers can branch on the
failure class without string matching on messages.

Propagation policy:
- UploadFailure and DereferenceFailure reach the caller.
- Delete errors never do; the Deleter logs and reports them in its result.
- ObjectNotFoundError on delete counts as success.
"""

from enum import Enum


class StorageErrorCode(str, Enum):
    """Standardized error codes for storage operations.

    Format: E_CATEGORY_NAME
    """

    # Generic / transport
    E_STORAGE_ERROR = "E_STORAGE_ERROR"
    E_STORAGE_MISSING = "E_STORAGE_MISSING"

    # Object store operations
    E_STORAGE_PUT_FAILED = "E_STORAGE_PUT_FAILED"
    E_RESOLVE_URL_FAILED = "E_RESOLVE_URL_FAILED"
    E_STORAGE_DELETE_FAILED = "E_STORAGE_DELETE_FAILED"

    # Caller-facing failures
    E_UPLOAD_FAILED = "E_UPLOAD_FAILED"
    E_BLOB_DEREFERENCE_FAILED = "E_BLOB_DEREFERENCE_FAILED"


class StorageError(Exception):
    """Base exception for storage errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
    """

    def __init__(
        self,
        message: str,
        code: StorageErrorCode = StorageErrorCode.E_STORAGE_ERROR,
    ):
        super().__init__(message)
        self.message = message
        self.code = code


class ObjectNotFoundError(StorageError):
    """The requested object does not exist in the store."""

    def __init__(self, path: str):
        super().__init__(f"Object not found: {path}", code=StorageErrorCode.E_STORAGE_MISSING)
        self.path = path


class UploadFailure(StorageError):
    """Writing bytes or resolving the download URL failed.

    Attributes:
        path: Storage key the upload targeted.
        cause_code: Code of the underlying store error, if any.
    """

    def __init__(self, path: str, message: str, cause_code: StorageErrorCode | None = None):
        super().__init__(message, code=StorageErrorCode.E_UPLOAD_FAILED)
        self.path = path
        self.cause_code = cause_code


class DereferenceFailure(StorageError):
    """A blob reference could not be read (unknown, revoked, or unreachable)."""

    def __init__(self, message: str):
        super().__init__(message, code=StorageErrorCode.E_BLOB_DEREFERENCE_FAILED)

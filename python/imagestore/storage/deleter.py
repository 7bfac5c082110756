"""Best-effort deletion of stored images by download URL.

Deletion is cleanup that runs inside larger user-facing operations, so it
never raises. Every call reports a DeleteResult instead:

- DELETED: the object was removed
- NOT_FOUND: the object was already gone (idempotent success)
- SKIPPED: the URL carried no storage key; no store call was made
- SUPPRESSED_ERROR: the store failed; the error was logged and swallowed
"""

from dataclasses import dataclass
from enum import Enum

from imagestore.errors import ObjectNotFoundError, StorageError
from imagestore.logging import get_logger
from imagestore.storage.client import ObjectStoreBase
from imagestore.storage.paths import DOWNLOAD_URL_MARKER, decode_download_url

logger = get_logger(__name__)


class DeleteOutcome(str, Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"
    SUPPRESSED_ERROR = "suppressed_error"


@dataclass(frozen=True)
class DeleteResult:
    """Outcome of a delete call.

    Attributes:
        outcome: What happened.
        key: Storage key the call targeted (None when SKIPPED).
        error: Diagnostic message for SUPPRESSED_ERROR.
    """

    outcome: DeleteOutcome
    key: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """False only for SUPPRESSED_ERROR; callers may still ignore it."""
        return self.outcome != DeleteOutcome.SUPPRESSED_ERROR

    @property
    def removed(self) -> bool:
        """True if the object is known to be absent after the call."""
        return self.outcome in (DeleteOutcome.DELETED, DeleteOutcome.NOT_FOUND)


class Deleter:
    """Deletes objects by download URL, swallowing every failure."""

    def __init__(self, store: ObjectStoreBase, *, marker: str = DOWNLOAD_URL_MARKER):
        self._store = store
        self._marker = marker

    async def delete_by_url(self, url: str) -> DeleteResult:
        """Delete the object a download URL points to.

        A URL without the marker segment is a silent no-op.
        """
        key = decode_download_url(url, self._marker)
        if key is None:
            logger.debug("storage.delete.skipped", reason="no_storage_key")
            return DeleteResult(DeleteOutcome.SKIPPED)

        return await self.delete_key(key)

    async def delete_key(self, key: str) -> DeleteResult:
        """Delete an object by storage key with the same never-raise policy."""
        try:
            await self._store.delete_object(key)
        except ObjectNotFoundError:
            logger.info("storage.delete.not_found", key=key)
            return DeleteResult(DeleteOutcome.NOT_FOUND, key=key)
        except StorageError as e:
            logger.warning(
                "storage.delete.suppressed",
                key=key,
                error_code=e.code.value,
                error=e.message,
            )
            return DeleteResult(DeleteOutcome.SUPPRESSED_ERROR, key=key, error=e.message)
        except Exception as e:
            logger.warning(
                "storage.delete.suppressed",
                key=key,
                error_type=type(e).__name__,
                error=str(e),
                exc_info=True,
            )
            return DeleteResult(
                DeleteOutcome.SUPPRESSED_ERROR, key=key, error=f"{type(e).__name__}: {e}"
            )

        logger.info("storage.delete.finished", key=key)
        return DeleteResult(DeleteOutcome.DELETED, key=key)

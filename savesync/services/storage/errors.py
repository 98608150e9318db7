"""
Error taxonomy for cloud storage operations.

Every public storage operation fails with one of these exceptions so that
callers can tell a missing document (recoverable) apart from a local
filesystem failure or a provider rejection (fatal to the operation).
"""
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

# Exceptions the boto3 client may raise from any S3 call
BOTO_ERRORS = (ClientError, BotoCoreError)

# Provider error codes meaning "the object is not there"
NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})


class SaveSyncError(Exception):
    """Base class for all savesync errors."""


class NotFoundError(SaveSyncError):
    """A remote object, document or local root does not exist."""

    def __init__(self, message, key=None):
        super().__init__(message)
        self.key = key


class LocalIOError(SaveSyncError, OSError):
    """Local filesystem failure (open, stat, read, write, walk)."""


class TransferError(SaveSyncError):
    """The object store rejected a request."""

    def __init__(self, message, code=None, operation=None, key=None):
        super().__init__(message)
        self.code = code
        self.operation = operation
        self.key = key


class MalformedDocumentError(SaveSyncError, ValueError):
    """A stored JSON document could not be decoded."""

    def __init__(self, message, key=None):
        super().__init__(message)
        self.key = key


class CredentialsNotConfiguredError(SaveSyncError):
    """No credential is stored under the requested key."""


class OfflineModeError(SaveSyncError):
    """Cloud operations were requested while offline mode is enabled."""


def error_code(exc: BaseException) -> Optional[str]:
    """Return the provider error code carried by a botocore ClientError."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


def translate_client_error(exc: Exception, operation: str, key: Optional[str] = None) -> SaveSyncError:
    """Map a botocore exception onto the savesync taxonomy.

    Args:
        exc: Exception raised by the boto3 client
        operation: Name of the S3 operation (for messages)
        key: Object key or prefix involved, if any

    Returns:
        A :class:`NotFoundError` for missing-object codes, otherwise a
        :class:`TransferError`. Exceptions that already belong to the
        taxonomy are returned unchanged.
    """
    if isinstance(exc, SaveSyncError):
        return exc

    if isinstance(exc, ClientError):
        code = error_code(exc)
        message = exc.response.get("Error", {}).get("Message") or str(exc)
        if code in NOT_FOUND_CODES:
            return NotFoundError(f"{operation}: object not found: {key}", key=key)
        return TransferError(
            f"{operation} failed for {key!r}: {code}: {message}",
            code=code,
            operation=operation,
            key=key,
        )

    # BotoCoreError covers connection, timeout and endpoint failures
    return TransferError(f"{operation} failed for {key!r}: {exc}", operation=operation, key=key)

"""
Credential stores.

The sync engine only needs ``save`` / ``load`` / ``delete``; where the
secret actually lives is up to the implementation. ``load`` returning
``None`` means "not configured" and is not an error.
"""
import json
import os
import re
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from ...models import Credential
from ...utils.file_utils import ensure_dir, write_private_file
from ...utils.logger import get_logger
from ..storage.errors import LocalIOError, MalformedDocumentError

log = get_logger(__name__)

_SAFE_KEY_RE = re.compile(r'^[A-Za-z0-9._-]+$')


class Store(ABC):
    """Abstract credential store."""

    @abstractmethod
    def save(self, key: str, credential: Credential) -> None:
        """Create or overwrite the credential stored under *key*."""

    @abstractmethod
    def load(self, key: str) -> Optional[Credential]:
        """Return the credential stored under *key*, or None if absent."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the credential stored under *key*. Missing keys are ignored."""


class FileStore(Store):
    """Stores each credential as ``<directory>/<key>.json``.

    The directory is created with mode 0700 and files are written with
    mode 0600.
    """

    def __init__(self, directory: str):
        self.directory = directory

    def _file_path(self, key: str) -> str:
        key = (key or "").strip()
        if not _SAFE_KEY_RE.match(key) or key in ('.', '..'):
            raise ValueError(f"Invalid credential key: {key!r}")
        return os.path.join(self.directory, f"{key}.json")

    def save(self, key, credential):
        path = self._file_path(key)
        blob = json.dumps(credential.to_dict()).encode('utf-8')
        try:
            ensure_dir(self.directory)
            write_private_file(path, blob)
        except OSError as e:
            raise LocalIOError(f"Cannot write credential {key!r}: {e}") from e
        log.debug("Saved credential %r", key)

    def load(self, key):
        path = self._file_path(key)
        try:
            with open(path, 'rb') as f:
                blob = f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LocalIOError(f"Cannot read credential {key!r}: {e}") from e

        try:
            data = json.loads(blob)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedDocumentError(f"Corrupted credential file {path}: {e}", key=key) from e
        if not isinstance(data, dict):
            raise MalformedDocumentError(f"Corrupted credential file {path}", key=key)
        return Credential.from_dict(data)

    def delete(self, key):
        path = self._file_path(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise LocalIOError(f"Cannot delete credential {key!r}: {e}") from e
        log.debug("Deleted credential %r", key)


class MemoryStore(Store):
    """In-process store, for embedding and tests."""

    def __init__(self, credentials: Optional[Dict[str, Credential]] = None):
        self._lock = threading.Lock()
        self._data = {k: c.to_dict() for k, c in (credentials or {}).items()}

    def save(self, key, credential):
        with self._lock:
            self._data[key] = credential.to_dict()

    def load(self, key):
        with self._lock:
            data = self._data.get(key)
        return Credential.from_dict(data) if data is not None else None

    def delete(self, key):
        with self._lock:
            self._data.pop(key, None)

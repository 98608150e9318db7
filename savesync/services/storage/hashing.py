"""
Content fingerprints for change detection.

:func:`hash_directory` produces a digest that depends only on the set of
(relative path, file contents) pairs under a directory, never on
filesystem iteration order or the host's path separator.
"""
import hashlib
import os

from .errors import LocalIOError, NotFoundError

_CHUNK_SIZE = 1024 * 1024


def _hash_file(path):
    """Raw SHA-256 digest of a file's contents."""
    hasher = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b''):
            hasher.update(chunk)
    return hasher.digest()


def _walk_error(error):
    raise error


def hash_directory(root):
    """Compute the content fingerprint of a directory tree.

    For every regular file, sorted by its forward-slash relative path, the
    running SHA-256 is fed the path bytes, a NUL byte and the file's own
    SHA-256 digest. Directories contribute nothing, so all empty
    directories share one digest.

    Args:
        root: Directory path (surrounding whitespace is ignored)

    Returns:
        Hex digest string

    Raises:
        NotFoundError: If *root* does not exist
        NotADirectoryError: If *root* is not a directory
        LocalIOError: If a file cannot be read
    """
    root = str(root).strip()
    if not os.path.exists(root):
        raise NotFoundError(f"Directory not found: {root}", key=root)
    if not os.path.isdir(root):
        raise NotADirectoryError(f"Not a directory: {root}")

    paths = []
    try:
        for current, _dirs, files in os.walk(root, onerror=_walk_error):
            for filename in files:
                full_path = os.path.join(current, filename)
                if not os.path.isfile(full_path):
                    continue
                rel_path = os.path.relpath(full_path, root)
                paths.append(rel_path.replace(os.sep, '/'))

        # Byte order, matching the digest on every platform
        paths.sort(key=lambda p: p.encode('utf-8'))

        hasher = hashlib.sha256()
        for rel_path in paths:
            hasher.update(rel_path.encode('utf-8'))
            hasher.update(b'\x00')
            hasher.update(_hash_file(os.path.join(root, *rel_path.split('/'))))
    except OSError as e:
        raise LocalIOError(f"Failed to hash {root}: {e}") from e

    return hasher.hexdigest()


def hash_bytes(payload):
    """Hex SHA-256 of a byte payload."""
    return hashlib.sha256(payload).hexdigest()


def calculate_content_hash(content):
    """Hex SHA-256 of a text body, ignoring surrounding whitespace.

    Example:
        >>> calculate_content_hash("  hello\\n") == calculate_content_hash("hello")
        True
    """
    return hashlib.sha256((content or '').strip().encode('utf-8')).hexdigest()

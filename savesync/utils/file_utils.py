"""
File system utilities
"""
import os

PRIVATE_DIR_MODE = 0o700
PRIVATE_FILE_MODE = 0o600


def ensure_dir(directory, mode=PRIVATE_DIR_MODE):
    """
    Ensure directory exists, create if it doesn't.

    Newly created directories are restricted to the owner by default.

    Args:
        directory: Directory path
        mode: Permission bits for created directories
    """
    if directory:
        os.makedirs(directory, mode=mode, exist_ok=True)


def open_private_file(filepath):
    """
    Open *filepath* for binary writing, readable and writable by the owner only.

    Existing files are truncated and their mode is reset to 0600.

    Args:
        filepath: Destination path (parent must exist)

    Returns:
        Binary file object
    """
    fd = os.open(filepath, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PRIVATE_FILE_MODE)
    # O_CREAT mode is ignored for files that already existed
    os.chmod(filepath, PRIVATE_FILE_MODE)
    return os.fdopen(fd, 'wb')


def write_private_file(filepath, data):
    """
    Write bytes to *filepath* readable and writable by the owner only.

    Args:
        filepath: Destination path (parent must exist)
        data: Bytes to write
    """
    with open_private_file(filepath) as f:
        f.write(data)


def newest_mtime(directory):
    """
    Get the most recent modification time of any file under *directory*.

    Args:
        directory: Directory path

    Returns:
        Epoch seconds as float, or None if the directory holds no files
    """
    newest = None
    for root, _dirs, files in os.walk(directory):
        for filename in files:
            try:
                mtime = os.stat(os.path.join(root, filename)).st_mtime
            except OSError:
                continue
            if newest is None or mtime > newest:
                newest = mtime
    return newest


def has_files(directory):
    """Check whether *directory* exists and contains at least one regular file."""
    if not os.path.isdir(directory):
        return False
    for _root, _dirs, files in os.walk(directory):
        if files:
            return True
    return False

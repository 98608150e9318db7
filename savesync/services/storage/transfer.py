"""
Upload and download primitives.

Folder uploads fan out over a fixed pool of worker threads; prefix
downloads rebuild the remote tree sequentially. Neither is transactional:
a failed call can leave partial state behind, and retrying is always safe
because every write is an idempotent overwrite.
"""
import json
import os
import shutil
import threading
from queue import Empty, Queue

from ...models import UploadSummary
from ...utils.file_utils import ensure_dir, open_private_file
from ...utils.logger import get_logger
from .catalog import list_objects
from .errors import BOTO_ERRORS, LocalIOError, NotFoundError, translate_client_error

log = get_logger(__name__)

# Engine-wide ceiling on simultaneous uploads within one upload_folder call
UPLOAD_CONCURRENCY = 6

JSON_CONTENT_TYPE = "application/json"


def join_key(prefix, name):
    """Join a key prefix and a relative name with a single slash.

    Example:
        >>> join_key("/games/Foo/save_data/", "slot1/data.sav")
        'games/Foo/save_data/slot1/data.sav'
        >>> join_key("", "data.sav")
        'data.sav'
    """
    trimmed = (prefix or "").strip("/")
    if not trimmed:
        return name
    return f"{trimmed}/{name.strip('/')}"


def upload_file(client, bucket, key, path):
    """Upload file to S3.

    Args:
        client: boto3 S3 client
        bucket: Bucket name
        key: Object key
        path: Local file path

    Returns:
        File size in bytes as observed before the upload

    Raises:
        LocalIOError: If the file cannot be opened or stat'ed
        TransferError: If the provider rejects the upload
    """
    try:
        f = open(path, 'rb')
    except OSError as e:
        raise LocalIOError(f"Cannot open {path}: {e}") from e

    with f:
        try:
            size = os.fstat(f.fileno()).st_size
        except OSError as e:
            raise LocalIOError(f"Cannot stat {path}: {e}") from e

        try:
            client.put_object(Bucket=bucket, Key=key, Body=f)
        except BOTO_ERRORS as e:
            raise translate_client_error(e, "PutObject", key) from e

    log.debug("Uploaded %s (%d bytes) -> %s", path, size, key)
    return size


def _walk_error(error):
    raise error


def _collect_upload_tasks(folder_path, prefix):
    """Build (local path, object key) pairs for every file under *folder_path*."""
    if not os.path.exists(folder_path):
        raise NotFoundError(f"Folder not found: {folder_path}", key=folder_path)
    if not os.path.isdir(folder_path):
        raise NotADirectoryError(f"Not a directory: {folder_path}")

    tasks = []
    try:
        for root, _dirs, files in os.walk(folder_path, onerror=_walk_error):
            for filename in files:
                local_path = os.path.join(root, filename)
                if not os.path.isfile(local_path):
                    continue
                rel_path = os.path.relpath(local_path, folder_path).replace(os.sep, '/')
                tasks.append((local_path, join_key(prefix, rel_path)))
    except OSError as e:
        raise LocalIOError(f"Failed to walk {folder_path}: {e}") from e
    return tasks


def upload_folder(client, bucket, folder_path, prefix):
    """Upload every file under *folder_path* to ``prefix/<relative path>``.

    At most :data:`UPLOAD_CONCURRENCY` uploads are in flight at once. The
    first failure cancels all pending uploads and is raised once every
    worker has stopped; uploads already completed are left in place and no
    summary is returned.

    Args:
        client: boto3 S3 client (shared by all workers)
        bucket: Bucket name
        folder_path: Local directory
        prefix: Destination key prefix

    Returns:
        UploadSummary with keys in completion order

    Raises:
        NotFoundError: If *folder_path* does not exist
        LocalIOError: If the walk or a file read fails
        TransferError: If the provider rejects an upload
    """
    tasks = _collect_upload_tasks(folder_path, prefix)
    summary = UploadSummary()
    if not tasks:
        return summary

    work_queue = Queue()
    for task in tasks:
        work_queue.put(task)

    cancelled = threading.Event()
    lock = threading.Lock()
    first_error = []

    def fail(error):
        with lock:
            if not first_error:
                first_error.append(error)
                cancelled.set()

    def worker():
        while not cancelled.is_set():
            try:
                local_path, key = work_queue.get_nowait()
            except Empty:
                return
            try:
                size = upload_file(client, bucket, key, local_path)
            except Exception as e:  # re-raised in the calling thread below
                fail(e)
                return
            with lock:
                summary.record(key, size)

    num_workers = min(UPLOAD_CONCURRENCY, len(tasks))
    threads = [
        threading.Thread(target=worker, name=f"savesync-upload-{i}", daemon=True)
        for i in range(num_workers)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    if first_error:
        log.error("Folder upload of %s aborted: %s", folder_path, first_error[0])
        raise first_error[0]

    log.info("Uploaded %d file(s), %d bytes to '%s'", summary.file_count, summary.total_bytes, prefix)
    return summary


def _resolve_target(destination, relative):
    """Map a relative key onto a path inside *destination*."""
    parts = [p for p in relative.split('/') if p]
    target = os.path.abspath(os.path.join(destination, *parts))
    if os.path.commonpath([destination, target]) != destination or target == destination:
        raise LocalIOError(f"Refusing to write outside {destination}: {relative}")
    return target


def _download_to_path(client, bucket, key, target):
    try:
        response = client.get_object(Bucket=bucket, Key=key)
    except BOTO_ERRORS as e:
        raise translate_client_error(e, "GetObject", key) from e

    body = response["Body"]
    try:
        with open_private_file(target) as f:
            shutil.copyfileobj(body, f)
    except OSError as e:
        raise LocalIOError(f"Cannot write {target}: {e}") from e
    except BOTO_ERRORS as e:
        raise translate_client_error(e, "GetObject", key) from e
    finally:
        body.close()


def download_prefix(client, bucket, prefix, destination):
    """Download every object under *prefix* into *destination*.

    Each key has the prefix (and a leading slash) stripped to form its
    path relative to *destination*. Parent directories are created with
    mode 0700 and files written with mode 0600. Objects are fetched one at
    a time and the first failure is raised, leaving a partial tree.

    Args:
        client: boto3 S3 client
        bucket: Bucket name
        prefix: Key prefix to download
        destination: Local directory to rebuild the tree in

    Returns:
        Number of files written

    Raises:
        LocalIOError: If a directory or file cannot be written
        TransferError: If listing or a download fails
    """
    objects = list_objects(client, bucket, prefix)
    destination = os.path.abspath(destination)

    written = 0
    for obj in objects:
        if obj.key.endswith('/'):
            continue  # directory marker
        relative = obj.key[len(prefix):] if obj.key.startswith(prefix) else obj.key
        relative = relative.lstrip('/')
        if not relative:
            continue

        target = _resolve_target(destination, relative)
        try:
            ensure_dir(os.path.dirname(target))
        except OSError as e:
            raise LocalIOError(f"Cannot create directory for {target}: {e}") from e

        _download_to_path(client, bucket, obj.key, target)
        log.debug("Downloaded %s -> %s", obj.key, target)
        written += 1

    log.info("Downloaded %d file(s) from '%s' to %s", written, prefix, destination)
    return written


def download_object(client, bucket, key):
    """Fetch a whole object into memory.

    Only for objects of bounded size (documents, memos, thumbnails).

    Raises:
        NotFoundError: If the key does not exist
        TransferError: For other provider failures
    """
    try:
        response = client.get_object(Bucket=bucket, Key=key)
        body = response["Body"]
        try:
            return body.read()
        finally:
            body.close()
    except BOTO_ERRORS as e:
        raise translate_client_error(e, "GetObject", key) from e


def upload_bytes(client, bucket, key, payload, content_type=""):
    """Upload a byte payload, setting ContentType only when given.

    Raises:
        TransferError: If the provider rejects the upload
    """
    params = {"Bucket": bucket, "Key": key, "Body": payload}
    if content_type and content_type.strip():
        params["ContentType"] = content_type
    try:
        client.put_object(**params)
    except BOTO_ERRORS as e:
        raise translate_client_error(e, "PutObject", key) from e
    log.debug("Uploaded %d bytes -> %s", len(payload), key)


def upload_json(client, bucket, key, payload):
    """Upload an already-encoded JSON document (bytes or str).

    Non-string payloads are encoded with :func:`json.dumps` first.
    """
    if isinstance(payload, str):
        payload = payload.encode('utf-8')
    elif not isinstance(payload, (bytes, bytearray)):
        payload = json.dumps(payload, separators=(',', ':')).encode('utf-8')
    upload_bytes(client, bucket, key, bytes(payload), JSON_CONTENT_TYPE)

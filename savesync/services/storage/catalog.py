"""
Object listing and deletion under a key prefix.
"""
from typing import Iterator, List

from ...models import ObjectInfo
from ...utils.datetime_utils import to_epoch_ms
from ...utils.logger import get_logger
from .errors import BOTO_ERRORS, NotFoundError, TransferError, translate_client_error

log = get_logger(__name__)

# Provider hard limit on keys per DeleteObjects call
MAX_DELETE_BATCH = 1000


def iter_object_pages(client, bucket, prefix="") -> Iterator[List[ObjectInfo]]:
    """Yield one list of objects per ListObjectsV2 page.

    Pages are fetched lazily and in order by following continuation
    tokens. A fresh call always starts from the first page.

    Args:
        client: boto3 S3 client
        bucket: Bucket name
        prefix: Key prefix (empty lists the whole bucket)

    Raises:
        TransferError: If a page request fails
    """
    params = {"Bucket": bucket}
    if prefix:
        params["Prefix"] = prefix

    while True:
        try:
            page = client.list_objects_v2(**params)
        except BOTO_ERRORS as e:
            raise translate_client_error(e, "ListObjectsV2", prefix) from e

        objects = []
        for obj in page.get("Contents") or []:
            key = obj.get("Key")
            if key is None:
                continue
            objects.append(ObjectInfo(
                key=key,
                size=obj.get("Size") or 0,
                last_modified=to_epoch_ms(obj.get("LastModified")),
            ))
        yield objects

        token = page.get("NextContinuationToken")
        if not page.get("IsTruncated") or not token:
            break
        params["ContinuationToken"] = token


def list_objects(client, bucket, prefix="") -> List[ObjectInfo]:
    """List every object under *prefix*, in provider enumeration order.

    Args:
        client: boto3 S3 client
        bucket: Bucket name
        prefix: Key prefix (empty lists the whole bucket)

    Returns:
        List of ObjectInfo
    """
    objects = []
    for page in iter_object_pages(client, bucket, prefix):
        objects.extend(page)
    log.debug("Listed %d object(s) under '%s'", len(objects), prefix)
    return objects


def delete_objects_by_prefix(client, bucket, prefix) -> int:
    """Delete every object under *prefix* in batches of at most 1000 keys.

    A failed batch aborts the whole operation; batches already sent stay
    deleted.

    Args:
        client: boto3 S3 client
        bucket: Bucket name
        prefix: Key prefix (empty deletes the whole bucket)

    Returns:
        Number of objects deleted

    Raises:
        TransferError: If listing or any batch fails
    """
    objects = list_objects(client, bucket, prefix)
    if not objects:
        return 0

    deleted = 0
    for start in range(0, len(objects), MAX_DELETE_BATCH):
        batch = objects[start:start + MAX_DELETE_BATCH]
        try:
            response = client.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": obj.key} for obj in batch], "Quiet": True},
            )
        except BOTO_ERRORS as e:
            log.error("Delete batch at offset %d under '%s' failed: %s", start, prefix, e)
            raise translate_client_error(e, "DeleteObjects", prefix) from e

        errors = (response or {}).get("Errors") or []
        if errors:
            first = errors[0]
            raise TransferError(
                f"DeleteObjects failed for {len(errors)} key(s), first {first.get('Key')!r}: "
                f"{first.get('Code')}: {first.get('Message')}",
                code=first.get("Code"),
                operation="DeleteObjects",
                key=first.get("Key"),
            )
        deleted += len(batch)

    log.info("Deleted %d object(s) under '%s'", deleted, prefix)
    return deleted


def delete_object(client, bucket, key):
    """Delete one object. Succeeds whether or not the key existed.

    Raises:
        TransferError: If the provider rejects the request
    """
    try:
        client.delete_object(Bucket=bucket, Key=key)
    except BOTO_ERRORS as e:
        error = translate_client_error(e, "DeleteObject", key)
        # Some S3-compatible providers answer NoSuchKey instead of 204
        if not isinstance(error, NotFoundError):
            raise error from e
    log.debug("Deleted %s", key)


def object_exists(client, bucket, key) -> bool:
    """Check if an object exists.

    Raises:
        TransferError: For failures other than "not found"
    """
    try:
        client.head_object(Bucket=bucket, Key=key)
    except BOTO_ERRORS as e:
        error = translate_client_error(e, "HeadObject", key)
        if isinstance(error, NotFoundError):
            return False
        raise error from e
    return True

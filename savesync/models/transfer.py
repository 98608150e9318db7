"""
Transfer models: remote object listings and upload results
"""
from typing import List

from ..utils.datetime_utils import format_timestamp, from_epoch_ms


class ObjectInfo:
    """
    One remote object, rebuilt on every listing call.
    """

    def __init__(self, key, size=0, last_modified=0):
        """
        Initialize an ObjectInfo.

        Args:
            key: Object key, unique within the bucket
            size: Size in bytes
            last_modified: Last modification time in epoch milliseconds (0 if unknown)
        """
        self.key = key
        self.size = size
        self.last_modified = last_modified

    def to_dict(self):
        """Serialize to dictionary"""
        return {
            "key": self.key,
            "size": self.size,
            "lastModified": format_timestamp(from_epoch_ms(self.last_modified)),
        }

    def __eq__(self, other):
        if not isinstance(other, ObjectInfo):
            return NotImplemented
        return (self.key, self.size, self.last_modified) == (other.key, other.size, other.last_modified)

    def __repr__(self):
        return f"ObjectInfo(key={self.key!r}, size={self.size}, last_modified={self.last_modified})"


class UploadSummary:
    """
    Result of a folder upload.

    ``keys`` is in completion order, which is not filesystem order.
    """

    def __init__(self, file_count=0, total_bytes=0, keys=None):
        self.file_count = file_count
        self.total_bytes = total_bytes
        self.keys: List[str] = list(keys or [])

    def record(self, key, size):
        """Account for one completed upload."""
        self.file_count += 1
        self.total_bytes += size
        self.keys.append(key)

    def to_dict(self):
        """Serialize to dictionary"""
        return {
            "fileCount": self.file_count,
            "totalBytes": self.total_bytes,
            "keys": list(self.keys),
        }

    def __repr__(self):
        return f"UploadSummary(file_count={self.file_count}, total_bytes={self.total_bytes})"

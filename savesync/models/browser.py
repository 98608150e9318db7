"""
Read-only views over bucket contents used by the cloud browser and memo sync
"""
from ..utils.datetime_utils import format_timestamp


class CloudDataItem:
    """Aggregate of all objects stored under one game prefix."""

    def __init__(self, name, remote_path, total_size=0, file_count=0, last_modified=None):
        self.name = name
        self.remote_path = remote_path
        self.total_size = total_size
        self.file_count = file_count
        self.last_modified = last_modified

    def to_dict(self):
        """Serialize to dictionary"""
        return {
            "name": self.name,
            "totalSize": self.total_size,
            "fileCount": self.file_count,
            "lastModified": format_timestamp(self.last_modified),
            "remotePath": self.remote_path,
        }


class CloudFileDetail:
    """One remote file relative to the prefix it was listed under."""

    def __init__(self, name, size, last_modified, key, relative_path):
        self.name = name
        self.size = size
        self.last_modified = last_modified
        self.key = key
        self.relative_path = relative_path

    def to_dict(self):
        """Serialize to dictionary"""
        return {
            "name": self.name,
            "size": self.size,
            "lastModified": format_timestamp(self.last_modified),
            "key": self.key,
            "relativePath": self.relative_path,
        }


class CloudMemoInfo:
    """A memo markdown file found in the bucket."""

    def __init__(self, key, file_name, game_title, memo_title, memo_id, last_modified=None, size=0):
        self.key = key
        self.file_name = file_name
        self.game_title = game_title
        self.memo_title = memo_title
        self.memo_id = memo_id
        self.last_modified = last_modified
        self.size = size

    def to_dict(self):
        """Serialize to dictionary"""
        return {
            "key": self.key,
            "fileName": self.file_name,
            "gameTitle": self.game_title,
            "memoTitle": self.memo_title,
            "memoId": self.memo_id,
            "lastModified": format_timestamp(self.last_modified),
            "size": self.size,
        }

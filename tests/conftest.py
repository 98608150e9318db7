"""
Shared fixtures: an in-memory S3 client that speaks the subset of the
boto3 API the storage layer uses and raises real botocore errors.
"""
from __future__ import annotations

import io
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
import sys

import pytest
from botocore.exceptions import ClientError

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from savesync.models import Credential  # noqa: E402
from savesync.services.credentials import MemoryStore  # noqa: E402
from savesync.services.sync_engine import CloudSyncService  # noqa: E402
from savesync.utils.config_loader import DEFAULT_CONFIG  # noqa: E402

BUCKET = "test-bucket"


def client_error(code, operation, message=""):
    """Build a botocore ClientError the way the service would return it."""
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


class FakeBody(io.BytesIO):
    """StreamingBody stand-in that records whether it was closed."""


class FakeS3Client:
    """Thread-safe in-memory bucket.

    Attributes:
        page_size: Keys per ListObjectsV2 page
        put_delay: Seconds each put_object sleeps (to observe concurrency)
        fail_put_keys: Keys whose put_object raises AccessDenied
        fail_first_put: Make the first put_object call fail immediately
        fail_delete_batch: Index of the delete_objects call that raises
        delete_errors_batch: Index of the delete_objects call answering with Errors
    """

    def __init__(self, bucket=BUCKET):
        self.bucket = bucket
        self.objects = {}
        self.content_types = {}
        self.modified = {}
        self.page_size = 1000
        self.put_delay = 0.0
        self.fail_put_keys = set()
        self.fail_first_put = False
        self.failed_puts = []
        self.fail_delete_batch = None
        self.delete_errors_batch = None
        self.delete_batches = []
        self.put_calls = []
        self.list_calls = []
        self._lock = threading.Lock()
        self._in_flight = 0
        self.max_in_flight = 0

    def _check_bucket(self, bucket, operation):
        if bucket != self.bucket:
            raise client_error("NoSuchBucket", operation)

    # ── Writes ─────────────────────────────────────────────────────────

    def put_object(self, Bucket, Key, Body, ContentType=None):
        self._check_bucket(Bucket, "PutObject")
        with self._lock:
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
            fail_now = self.fail_first_put and not self.failed_puts
            if fail_now:
                self.failed_puts.append(Key)
        try:
            if fail_now:
                raise client_error("AccessDenied", "PutObject")
            if self.put_delay:
                time.sleep(self.put_delay)
            if Key in self.fail_put_keys:
                raise client_error("AccessDenied", "PutObject")
            data = Body.read() if hasattr(Body, "read") else bytes(Body)
            with self._lock:
                self.objects[Key] = data
                self.content_types[Key] = ContentType
                self.modified[Key] = datetime.now(timezone.utc)
                self.put_calls.append(Key)
        finally:
            with self._lock:
                self._in_flight -= 1
        return {"ETag": '"etag"'}

    def delete_object(self, Bucket, Key):
        self._check_bucket(Bucket, "DeleteObject")
        with self._lock:
            self.objects.pop(Key, None)
        return {}

    def delete_objects(self, Bucket, Delete):
        self._check_bucket(Bucket, "DeleteObjects")
        keys = [item["Key"] for item in Delete["Objects"]]
        index = len(self.delete_batches)
        self.delete_batches.append(len(keys))
        if index == self.fail_delete_batch:
            raise client_error("InternalError", "DeleteObjects")
        if index == self.delete_errors_batch:
            return {"Errors": [{"Key": keys[0], "Code": "AccessDenied", "Message": "denied"}]}
        with self._lock:
            for key in keys:
                self.objects.pop(key, None)
        return {}

    # ── Reads ──────────────────────────────────────────────────────────

    def get_object(self, Bucket, Key):
        self._check_bucket(Bucket, "GetObject")
        with self._lock:
            if Key not in self.objects:
                raise client_error("NoSuchKey", "GetObject")
            data = self.objects[Key]
        return {"Body": FakeBody(data), "ContentLength": len(data)}

    def head_object(self, Bucket, Key):
        self._check_bucket(Bucket, "HeadObject")
        with self._lock:
            if Key not in self.objects:
                raise client_error("404", "HeadObject", "Not Found")
            return {"ContentLength": len(self.objects[Key])}

    def head_bucket(self, Bucket):
        self._check_bucket(Bucket, "HeadBucket")
        return {}

    def list_objects_v2(self, Bucket, Prefix="", ContinuationToken=None):
        self._check_bucket(Bucket, "ListObjectsV2")
        self.list_calls.append((Prefix, ContinuationToken))
        with self._lock:
            keys = sorted(k for k in self.objects if k.startswith(Prefix))
            start = int(ContinuationToken or 0)
            page = keys[start:start + self.page_size]
            contents = [
                {"Key": k, "Size": len(self.objects[k]), "LastModified": self.modified[k]}
                for k in page
            ]
        response = {"Contents": contents, "IsTruncated": start + self.page_size < len(keys)}
        if response["IsTruncated"]:
            response["NextContinuationToken"] = str(start + self.page_size)
        return response

    # ── Helpers ────────────────────────────────────────────────────────

    def seed(self, key, data=b"", modified=None):
        """Store an object directly, bypassing put_object accounting."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.objects[key] = data
        self.modified[key] = modified or datetime.now(timezone.utc)


@pytest.fixture
def s3():
    return FakeS3Client()


@pytest.fixture
def settings(tmp_path):
    config = dict(DEFAULT_CONFIG)
    config["credential_dir"] = str(tmp_path / "credentials")
    config["image_dir"] = str(tmp_path / "images")
    return config


@pytest.fixture
def credential():
    return Credential(
        access_key_id="AKIATEST",
        secret_access_key="supersecretvalue",
        bucket_name=BUCKET,
        region="auto",
        endpoint="https://s3.example.com",
    )


@pytest.fixture
def service(s3, settings, credential):
    """Sync service wired to the in-memory bucket."""
    store = MemoryStore({"default": credential})
    return CloudSyncService(settings, store, client=s3, bucket=BUCKET)


def write_tree(root, files):
    """Create files under *root* from a {relative path: bytes} mapping."""
    for rel, data in files.items():
        path = Path(root, *rel.split("/"))
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, str):
            data = data.encode("utf-8")
        path.write_bytes(data)
    return Path(root)

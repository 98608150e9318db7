"""
Tests for the credential stores.
"""
import os
import stat

import pytest

from savesync.models import Credential
from savesync.services.credentials import FileStore, MemoryStore
from savesync.services.storage import MalformedDocumentError


@pytest.fixture(params=["file", "memory"])
def store(request, tmp_path):
    if request.param == "file":
        return FileStore(str(tmp_path / "credentials"))
    return MemoryStore()


def test_save_load_delete(store, credential):
    assert store.load("default") is None

    store.save("default", credential)
    assert store.load("default") == credential

    store.delete("default")
    assert store.load("default") is None
    store.delete("default")


def test_save_overwrites(store, credential):
    store.save("default", credential)
    updated = Credential("NEW", "secret2", bucket_name="other")
    store.save("default", updated)
    assert store.load("default") == updated


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_file_store_permissions(tmp_path, credential):
    directory = tmp_path / "credentials"
    FileStore(str(directory)).save("default", credential)

    assert stat.S_IMODE(os.stat(directory).st_mode) == 0o700
    assert stat.S_IMODE(os.stat(directory / "default.json").st_mode) == 0o600


def test_file_store_rejects_path_like_keys(tmp_path, credential):
    store = FileStore(str(tmp_path))
    for key in ("../escape", "a/b", "", ".."):
        with pytest.raises(ValueError):
            store.save(key, credential)


def test_file_store_corrupt_file_raises(tmp_path):
    (tmp_path / "default.json").write_text("{oops")
    with pytest.raises(MalformedDocumentError):
        FileStore(str(tmp_path)).load("default")


def test_repr_hides_secret(credential):
    assert "supersecretvalue" not in repr(credential)
    assert credential.masked_secret() == "supe...********"

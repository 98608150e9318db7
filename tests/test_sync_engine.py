"""
Tests for CloudSyncService: save-data decisions, session merge and
catalog merge.
"""
import json
import os
import stat
from datetime import datetime, timedelta, timezone

import pytest

from conftest import BUCKET, write_tree
from savesync.models import CloudGameMetadata, CloudMetadata, CloudSessionRecord, SaveHashMetadata
from savesync.services.credentials import MemoryStore
from savesync.services.storage import (
    CredentialsNotConfiguredError,
    OfflineModeError,
    hash_directory,
    load_metadata,
    load_save_hash,
    load_sessions,
    save_hash_key,
    save_metadata,
    save_save_hash,
    sessions_key,
)
from savesync.services.sync_engine import (
    ACTION_DOWNLOADED,
    ACTION_SKIPPED,
    ACTION_UPLOADED,
    CloudSyncService,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
PREFIX = "games/My Game/save_data/"


def _set_mtime(root, when):
    ts = when.timestamp()
    for current, _dirs, files in os.walk(root):
        for name in files:
            os.utime(os.path.join(current, name), (ts, ts))


# ── Connection ─────────────────────────────────────────────────────────────

def test_connect_without_credential_raises(settings):
    service = CloudSyncService(settings, MemoryStore())
    with pytest.raises(CredentialsNotConfiguredError):
        service.connect()


def test_offline_mode_blocks_cloud_calls(service):
    service.set_offline_mode(True)
    assert service.is_offline()
    with pytest.raises(OfflineModeError):
        service.sync_save_data("1", "My Game", "/nonexistent")
    service.set_offline_mode(False)
    assert service.connect()[1] == BUCKET


def test_connect_builds_client_from_stored_credential(settings, credential, monkeypatch):
    created = []
    monkeypatch.setattr("savesync.services.sync_engine.create_s3_client",
                        lambda config, cred: created.append((config, cred)) or object())
    service = CloudSyncService(settings, MemoryStore({"default": credential}))

    client, bucket = service.connect()
    service.connect()

    assert bucket == credential.bucket_name
    assert len(created) == 1
    assert created[0][0].endpoint == "https://s3.example.com"


# ── Save data ──────────────────────────────────────────────────────────────

def test_first_sync_uploads_and_records_hash(service, s3, tmp_path):
    local = write_tree(tmp_path / "save", {"slot1.dat": b"one", "cfg/opts.ini": b"x=1"})

    result = service.sync_save_data("1", "My Game", local)

    assert result.action == ACTION_UPLOADED
    assert result.upload_summary.file_count == 2
    assert s3.objects[PREFIX + "cfg/opts.ini"] == b"x=1"
    record = load_save_hash(s3, BUCKET, save_hash_key("1"))
    assert record.hash == hash_directory(local) == result.hash


def test_matching_hash_is_skipped(service, s3, tmp_path):
    local = write_tree(tmp_path / "save", {"slot1.dat": b"one"})
    service.sync_save_data("1", "My Game", local)
    s3.put_calls.clear()

    result = service.sync_save_data("1", "My Game", local)

    assert result.action == ACTION_SKIPPED
    assert s3.put_calls == []


def test_missing_local_data_downloads(service, s3, tmp_path):
    s3.seed(PREFIX + "slot1.dat", b"cloud")
    save_save_hash(s3, BUCKET, save_hash_key("1"), SaveHashMetadata("abc", T0))
    local = tmp_path / "save"

    result = service.sync_save_data("1", "My Game", local)

    assert result.action == ACTION_DOWNLOADED
    assert result.downloaded_files == 1
    assert (local / "slot1.dat").read_bytes() == b"cloud"


def test_nothing_anywhere_is_skipped(service, tmp_path):
    result = service.sync_save_data("1", "My Game", tmp_path / "save")
    assert result.action == ACTION_SKIPPED


def test_newer_local_data_wins(service, s3, tmp_path):
    local = write_tree(tmp_path / "save", {"slot1.dat": b"local"})
    _set_mtime(local, T0 + timedelta(days=2))
    s3.seed(PREFIX + "slot1.dat", b"cloud")
    save_save_hash(s3, BUCKET, save_hash_key("1"), SaveHashMetadata("old", T0))

    result = service.sync_save_data("1", "My Game", local)

    assert result.action == ACTION_UPLOADED
    assert s3.objects[PREFIX + "slot1.dat"] == b"local"


def test_newer_cloud_data_wins(service, s3, tmp_path):
    local = write_tree(tmp_path / "save", {"slot1.dat": b"local"})
    _set_mtime(local, T0)
    s3.seed(PREFIX + "slot1.dat", b"cloud")
    save_save_hash(s3, BUCKET, save_hash_key("1"), SaveHashMetadata("other", T0 + timedelta(days=2)))

    result = service.sync_save_data("1", "My Game", local)

    assert result.action == ACTION_DOWNLOADED
    assert (local / "slot1.dat").read_bytes() == b"cloud"


def test_forced_upload_ignores_timestamps(service, s3, tmp_path):
    local = write_tree(tmp_path / "save", {"slot1.dat": b"local"})
    _set_mtime(local, T0)
    save_save_hash(s3, BUCKET, save_hash_key("1"), SaveHashMetadata("other", T0 + timedelta(days=2)))

    assert service.upload_save_data("1", "My Game", local).action == ACTION_UPLOADED


def test_forced_download(service, s3, tmp_path):
    local = write_tree(tmp_path / "save", {"slot1.dat": b"local"})
    s3.seed(PREFIX + "slot1.dat", b"cloud")
    save_save_hash(s3, BUCKET, save_hash_key("1"), SaveHashMetadata("other", T0))

    assert service.download_save_data("1", "My Game", local).action == ACTION_DOWNLOADED
    assert (local / "slot1.dat").read_bytes() == b"cloud"


def test_unknown_direction_is_rejected(service, tmp_path):
    with pytest.raises(ValueError):
        service.sync_save_data("1", "My Game", tmp_path, direction="sideways")


# ── Sessions ───────────────────────────────────────────────────────────────

def test_upsert_sessions_merges_by_id_and_updated_at(service, s3):
    key = sessions_key("1")
    service.upsert_sessions("1", [
        CloudSessionRecord("s1", T0, duration=10, updated_at=T0 + timedelta(hours=1)),
        CloudSessionRecord("s2", T0, duration=20),
    ])

    merged = service.upsert_sessions("1", [
        CloudSessionRecord("s1", T0, duration=99, updated_at=T0),
        CloudSessionRecord("s2", T0, duration=25, updated_at=T0 + timedelta(hours=2)),
        CloudSessionRecord("s3", T0, duration=30),
    ])

    assert [(r.id, r.duration) for r in merged] == [("s1", 10), ("s2", 25), ("s3", 30)]
    assert [r.id for r in load_sessions(s3, BUCKET, key)] == ["s1", "s2", "s3"]


# ── Catalog ────────────────────────────────────────────────────────────────

def _game(game_id, updated_at, title=None):
    return CloudGameMetadata(game_id, title=title or f"Game {game_id}", created_at=T0, updated_at=updated_at)


def test_sync_games_merges_by_updated_at(service, s3):
    save_metadata(s3, BUCKET, CloudMetadata([
        _game("a", T0 + timedelta(days=1), "cloud a"),
        _game("b", T0 + timedelta(days=3), "cloud b"),
        _game("c", T0, "cloud c"),
        _game("d", T0, "cloud only"),
    ]))
    sessions = [CloudSessionRecord("s1", T0, duration=5)]
    s3.seed(sessions_key("b"), json.dumps([{"id": "x", "playedAt": "2024-01-01T00:00:00Z"}]))
    s3.put_calls.clear()

    summary = service.sync_games(
        [
            _game("a", T0 + timedelta(days=2), "local a"),
            _game("b", T0 + timedelta(days=1), "local b"),
            _game("c", T0, "local c"),
            _game("e", T0, "local only"),
        ],
        local_sessions={"a": sessions, "e": []},
    )

    assert summary.uploaded_games == 2
    assert summary.downloaded_games == 2
    assert summary.skipped_games == 1
    assert summary.uploaded_sessions == 1
    assert summary.downloaded_sessions == 1
    assert sorted(g.id for g in summary.to_apply) == ["b", "d"]
    assert [r.id for r in summary.sessions_to_apply["b"]] == ["x"]
    assert summary.sessions_to_apply["d"] == []

    catalog = load_metadata(s3, BUCKET)
    titles = {g.id: g.title for g in catalog.games}
    assert titles == {"a": "local a", "b": "cloud b", "c": "cloud c", "d": "cloud only", "e": "local only"}
    assert s3.put_calls.count("games.json") == 1


def test_sync_games_without_changes_does_not_write_catalog(service, s3):
    save_metadata(s3, BUCKET, CloudMetadata([_game("a", T0)]))
    s3.put_calls.clear()

    summary = service.sync_games([_game("a", T0)])

    assert summary.skipped_games == 1
    assert s3.put_calls == []


def test_sync_games_can_target_one_game(service, s3):
    summary = service.sync_games([_game("a", T0), _game("b", T0)], game_id="b")
    assert summary.uploaded_games == 1
    assert [g.id for g in load_metadata(s3, BUCKET).games] == ["b"]


def test_delete_game_removes_objects_and_catalog_entry(service, s3, tmp_path):
    local = write_tree(tmp_path / "save", {"slot1.dat": b"one"})
    service.sync_save_data("1", "My Game", local)
    service.sync_games([_game("1", T0, "My Game"), _game("2", T0)])
    s3.seed("games/My Game/save_data_old/keep.dat", b"keep")

    deleted = service.delete_game("1", "My Game")

    assert deleted == 2
    assert not any(k.startswith(PREFIX) or k.startswith("games/1/") for k in s3.objects)
    assert "games/My Game/save_data_old/keep.dat" in s3.objects
    assert [g.id for g in load_metadata(s3, BUCKET).games] == ["2"]


def test_upload_game_image_uses_content_address(service, s3, tmp_path):
    image = tmp_path / "cover.png"
    image.write_bytes(b"\x89PNG")

    key, uploaded = service.upload_game_image("1", str(image))

    assert uploaded
    assert key.startswith("games/1/thumbnail/") and key.endswith(".png")
    assert s3.objects[key] == b"\x89PNG"
    assert s3.content_types[key] == "image/png"

    s3.put_calls.clear()
    assert service.upload_game_image("1", str(image), existing_key=key) == (key, False)
    assert s3.put_calls == []


# ── Cover images ───────────────────────────────────────────────────────────

def test_newer_local_entry_keeps_cloud_image_key(service, s3):
    cloud = _game("a", T0)
    cloud.image_key = "games/a/thumbnail/abc.png"
    save_metadata(s3, BUCKET, CloudMetadata([cloud]))
    local = _game("a", T0 + timedelta(days=1), "renamed")

    service.sync_games([local])

    [stored] = load_metadata(s3, BUCKET).games
    assert stored.title == "renamed"
    assert stored.image_key == "games/a/thumbnail/abc.png"
    assert local.image_key is None


def test_local_winner_uploads_cover_once(service, s3, tmp_path):
    image = tmp_path / "cover.png"
    image.write_bytes(b"\x89PNG")

    summary = service.sync_games([_game("a", T0)], local_images={"a": str(image)})

    assert summary.uploaded_images == 1
    [stored] = load_metadata(s3, BUCKET).games
    assert stored.image_key.startswith("games/a/thumbnail/")
    assert s3.objects[stored.image_key] == b"\x89PNG"

    s3.put_calls.clear()
    summary = service.sync_games([_game("a", T0 + timedelta(days=1))], local_images={"a": str(image)})

    assert summary.uploaded_images == 0
    assert stored.image_key not in s3.put_calls
    assert load_metadata(s3, BUCKET).games[0].image_key == stored.image_key


def test_unreadable_local_cover_does_not_abort_sync(service, s3, tmp_path):
    summary = service.sync_games([_game("a", T0)], local_images={"a": str(tmp_path / "missing.png")})

    assert summary.uploaded_games == 1
    assert summary.uploaded_images == 0
    assert load_metadata(s3, BUCKET).games[0].image_key is None


def test_cloud_winner_downloads_cover(service, s3, settings):
    cloud = _game("a", T0)
    cloud.image_key = "games/a/thumbnail/abc.png"
    save_metadata(s3, BUCKET, CloudMetadata([cloud]))
    s3.seed("games/a/thumbnail/abc.png", b"\x89PNG")

    summary = service.sync_games([])

    expected = os.path.join(settings["image_dir"], "a", "abc.png")
    assert summary.downloaded_images == 1
    assert summary.images_to_apply == {"a": expected}
    with open(expected, "rb") as f:
        assert f.read() == b"\x89PNG"
    if os.name != "nt":
        assert stat.S_IMODE(os.stat(expected).st_mode) == 0o600
        assert stat.S_IMODE(os.stat(os.path.dirname(expected)).st_mode) == 0o700

    summary = service.sync_games([])
    assert summary.downloaded_images == 0
    assert summary.images_to_apply == {"a": expected}

"""
Save-data and catalog synchronization engine.

Provides :class:`CloudSyncService`, which resolves credentials, builds the
S3 client and combines the storage primitives to reconcile one game's save
folder, its play sessions and the account-wide game catalog.
"""
import copy
import mimetypes
import os
import threading
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from ..models import CloudGameMetadata, CloudMetadata, CloudSessionRecord, SaveHashMetadata
from ..utils.config_loader import get_app_data_dir, parse_bool
from ..utils.datetime_utils import utc_now
from ..utils.file_utils import ensure_dir, has_files, newest_mtime, write_private_file
from ..utils.logger import get_logger
from .credentials import Store
from .storage import (
    DEFAULT_METADATA_KEY,
    create_s3_client,
    delete_objects_by_prefix,
    download_object,
    download_prefix,
    hash_bytes,
    hash_directory,
    load_metadata,
    load_save_hash,
    load_sessions,
    resolve_s3_config,
    save_data_prefix,
    save_hash_key,
    save_metadata,
    save_save_hash,
    save_sessions,
    sessions_key,
    upload_bytes,
    upload_folder,
)
from .storage.errors import CredentialsNotConfiguredError, LocalIOError, OfflineModeError, SaveSyncError

log = get_logger(__name__)

ACTION_UPLOADED = "uploaded"
ACTION_DOWNLOADED = "downloaded"
ACTION_SKIPPED = "skipped"

DIRECTION_AUTO = "auto"
DIRECTION_UPLOAD = "upload"
DIRECTION_DOWNLOAD = "download"


class SyncResult:
    """Outcome of one save-data synchronization."""

    def __init__(self, game_id, action, hash_value=None, upload_summary=None, downloaded_files=0):
        self.game_id = game_id
        self.action = action
        self.hash = hash_value
        self.upload_summary = upload_summary
        self.downloaded_files = downloaded_files

    def to_dict(self):
        """Serialize to dictionary"""
        return {
            "gameId": self.game_id,
            "action": self.action,
            "hash": self.hash,
            "upload": self.upload_summary.to_dict() if self.upload_summary else None,
            "downloadedFiles": self.downloaded_files,
        }

    def __repr__(self):
        return f"SyncResult(game_id={self.game_id!r}, action={self.action!r})"


class CloudSyncSummary:
    """Counters and cloud-side changes produced by :meth:`CloudSyncService.sync_games`.

    ``to_apply`` holds catalog entries that are newer in the cloud (or only
    exist there), ``sessions_to_apply`` their session lists and
    ``images_to_apply`` the local paths of their downloaded cover images;
    applying them to the local database is the caller's job.
    """

    def __init__(self):
        self.uploaded_games = 0
        self.downloaded_games = 0
        self.uploaded_sessions = 0
        self.downloaded_sessions = 0
        self.uploaded_images = 0
        self.downloaded_images = 0
        self.skipped_games = 0
        self.to_apply: List[CloudGameMetadata] = []
        self.sessions_to_apply: Dict[str, List[CloudSessionRecord]] = {}
        self.images_to_apply: Dict[str, str] = {}

    def to_dict(self):
        """Serialize to dictionary"""
        return {
            "uploadedGames": self.uploaded_games,
            "downloadedGames": self.downloaded_games,
            "uploadedSessions": self.uploaded_sessions,
            "downloadedSessions": self.downloaded_sessions,
            "uploadedImages": self.uploaded_images,
            "downloadedImages": self.downloaded_images,
            "skippedGames": self.skipped_games,
        }


class CloudSyncService:
    """Synchronizes game save data and catalog documents with S3.

    Args:
        settings: Configuration dictionary (see ``DEFAULT_CONFIG``)
        store: Credential store
        credential_key: Name of the credential to use (defaults to the
            configured ``credential_key``)
        client: Pre-built S3 client (skips credential resolution)
        bucket: Bucket name, required together with *client*
    """

    def __init__(self, settings, store: Store, credential_key=None, client=None, bucket=None):
        self.settings = settings
        self.store = store
        self.credential_key = (credential_key or settings.get("credential_key") or "default").strip()
        self.metadata_key = settings.get("cloud_metadata_key") or DEFAULT_METADATA_KEY
        self.image_dir = settings.get("image_dir") or os.path.join(get_app_data_dir(), "images")
        self._client = client
        self.bucket = bucket
        self._offline_lock = threading.Lock()
        self._offline = parse_bool(settings.get("offline_mode"), False)

    # ── Connection ─────────────────────────────────────────────────────

    def set_offline_mode(self, enabled):
        """Enable or disable offline mode."""
        with self._offline_lock:
            self._offline = bool(enabled)

    def is_offline(self):
        with self._offline_lock:
            return self._offline

    def connect(self):
        """Resolve the credential and build the S3 client on first use.

        Returns:
            Tuple of (client, bucket)

        Raises:
            OfflineModeError: If offline mode is enabled
            CredentialsNotConfiguredError: If no credential or bucket is configured
        """
        if self.is_offline():
            raise OfflineModeError("Cloud sync is disabled while offline mode is on")

        if self._client is None:
            credential = self.store.load(self.credential_key)
            if credential is None:
                raise CredentialsNotConfiguredError(
                    f"No credential stored under {self.credential_key!r}")
            config = resolve_s3_config(self.settings, credential)
            if not config.bucket:
                raise CredentialsNotConfiguredError("No bucket configured")
            self._client = create_s3_client(config, credential)
            self.bucket = config.bucket
            log.info("Connected to bucket '%s'", self.bucket)

        return self._client, self.bucket

    # ── Save data ──────────────────────────────────────────────────────

    @staticmethod
    def _local_hash(local_path):
        """Fingerprint of the local save folder, or None when it holds no files."""
        if not has_files(local_path):
            return None
        return hash_directory(local_path)

    @staticmethod
    def _local_is_newer(local_path, record):
        mtime = newest_mtime(local_path)
        if mtime is None:
            return False
        return datetime.fromtimestamp(mtime, tz=timezone.utc) > record.updated_at

    def _upload_save_data(self, game_id, title, local_path, local_hash):
        client, bucket = self.connect()
        summary = upload_folder(client, bucket, local_path, save_data_prefix(title))
        save_save_hash(client, bucket, save_hash_key(game_id), SaveHashMetadata(local_hash, utc_now()))
        log.info("Uploaded save data for %s: %d file(s)", title, summary.file_count)
        return SyncResult(game_id, ACTION_UPLOADED, local_hash, upload_summary=summary)

    def _download_save_data(self, game_id, title, local_path, record):
        client, bucket = self.connect()
        written = download_prefix(client, bucket, save_data_prefix(title) + "/", local_path)
        if written == 0:
            log.info("No cloud save data for %s", title)
            return SyncResult(game_id, ACTION_SKIPPED, record.hash if record else None)

        new_hash = hash_directory(local_path)
        if record is not None and record.hash != new_hash:
            log.warning("Local save data for %s differs from the cloud hash record after download "
                        "(extra local files?)", title)
        log.info("Downloaded save data for %s: %d file(s)", title, written)
        return SyncResult(game_id, ACTION_DOWNLOADED, new_hash, downloaded_files=written)

    def sync_save_data(self, game_id, title, local_path, direction=DIRECTION_AUTO):
        """Reconcile a game's local save folder with the cloud copy.

        The cloud hash record decides whether anything needs to move:

        - local hash equals the record: skip
        - no record yet: upload (if there is local data)
        - no local data: download
        - both differ: the side modified last wins

        *direction* forces an upload or a download; matching hashes are
        still skipped.

        Args:
            game_id: Stable game identifier
            title: Game title (names the save-data prefix)
            local_path: Local save folder
            direction: ``auto``, ``upload`` or ``download``

        Returns:
            SyncResult
        """
        if direction not in (DIRECTION_AUTO, DIRECTION_UPLOAD, DIRECTION_DOWNLOAD):
            raise ValueError(f"Unknown sync direction: {direction!r}")

        client, bucket = self.connect()
        local_hash = self._local_hash(local_path)
        record = load_save_hash(client, bucket, save_hash_key(game_id))

        if local_hash is not None and record is not None and record.hash == local_hash:
            log.info("Save data for %s is in sync", title)
            return SyncResult(game_id, ACTION_SKIPPED, local_hash)

        if direction == DIRECTION_UPLOAD:
            if local_hash is None:
                raise LocalIOError(f"No local save data to upload in {local_path}")
            return self._upload_save_data(game_id, title, local_path, local_hash)

        if direction == DIRECTION_DOWNLOAD or local_hash is None:
            return self._download_save_data(game_id, title, local_path, record)

        if record is None or self._local_is_newer(local_path, record):
            return self._upload_save_data(game_id, title, local_path, local_hash)
        return self._download_save_data(game_id, title, local_path, record)

    def upload_save_data(self, game_id, title, local_path):
        """Push the local save folder unless the cloud already has it."""
        return self.sync_save_data(game_id, title, local_path, direction=DIRECTION_UPLOAD)

    def download_save_data(self, game_id, title, local_path):
        """Pull the cloud save folder unless the local copy already matches."""
        return self.sync_save_data(game_id, title, local_path, direction=DIRECTION_DOWNLOAD)

    # ── Sessions ───────────────────────────────────────────────────────

    def upsert_sessions(self, game_id, records: Iterable[CloudSessionRecord]):
        """Merge session records into a game's cloud session list.

        Records are matched by id; the one with the later ``updated_at``
        wins. The whole list is rewritten.

        Returns:
            The merged list as saved
        """
        client, bucket = self.connect()
        key = sessions_key(game_id)
        merged = load_sessions(client, bucket, key) or []
        index = {record.id: i for i, record in enumerate(merged)}

        for record in records:
            i = index.get(record.id)
            if i is None:
                index[record.id] = len(merged)
                merged.append(record)
            elif record.updated_at > merged[i].updated_at:
                merged[i] = record

        save_sessions(client, bucket, key, merged)
        return merged

    # ── Catalog ────────────────────────────────────────────────────────

    def load_catalog(self) -> CloudMetadata:
        """Load the game catalog, or an empty one before the first sync."""
        client, bucket = self.connect()
        metadata = load_metadata(client, bucket, self.metadata_key)
        if metadata is None:
            log.info("No cloud catalog found at %s, starting a new one", self.metadata_key)
            return CloudMetadata()
        return metadata

    def _push_sessions(self, game_id, local_sessions):
        sessions = local_sessions.get(game_id)
        if sessions is None:
            return 0
        client, bucket = self.connect()
        save_sessions(client, bucket, sessions_key(game_id), sessions)
        return len(sessions)

    def _pull_sessions(self, game_id, summary):
        client, bucket = self.connect()
        sessions = load_sessions(client, bucket, sessions_key(game_id)) or []
        summary.sessions_to_apply[game_id] = sessions
        summary.downloaded_sessions += len(sessions)

    def _push_game(self, local, existing, local_sessions, local_images, summary):
        """Build the catalog entry stored for a local winner."""
        entry = copy.copy(local)
        summary.uploaded_games += 1
        summary.uploaded_sessions += self._push_sessions(local.id, local_sessions)

        image_path = str(local_images.get(local.id) or "").strip()
        if image_path:
            existing_key = existing.image_key if existing is not None else None
            try:
                key, uploaded = self.upload_game_image(local.id, image_path, existing_key)
            except SaveSyncError as e:
                log.warning("Cover upload for %s failed: %s", local.id, e)
            else:
                entry.image_key = key
                if uploaded:
                    summary.uploaded_images += 1
                return entry

        if entry.image_key is None and existing is not None and existing.image_key:
            entry.image_key = existing.image_key
        return entry

    def _pull_game(self, cloud, summary):
        summary.to_apply.append(cloud)
        summary.downloaded_games += 1
        if cloud.image_key and cloud.image_key.strip():
            path, downloaded = self.download_game_image(cloud.id, cloud.image_key)
            summary.images_to_apply[cloud.id] = path
            if downloaded:
                summary.downloaded_images += 1
        self._pull_sessions(cloud.id, summary)

    def sync_games(self, local_games: Iterable[CloudGameMetadata],
                   local_sessions: Optional[Dict[str, List[CloudSessionRecord]]] = None,
                   game_id=None,
                   local_images: Optional[Dict[str, str]] = None) -> CloudSyncSummary:
        """Reconcile the cloud catalog with the local game list.

        For each game id, the entry with the later ``updated_at`` wins.
        Local winners replace the cloud entry, push their session list and
        upload their cover image; a local entry without an image keeps the
        cloud entry's ``image_key``. Cloud winners are returned in
        ``summary.to_apply`` and their cover images are downloaded into
        ``image_dir``. The catalog is saved once, and only if an entry
        changed.

        Args:
            local_games: Local games encoded as CloudGameMetadata
            local_sessions: Session lists by game id, pushed for local winners
            game_id: Restrict the sync to one game
            local_images: Local cover image paths by game id

        Returns:
            CloudSyncSummary
        """
        local_sessions = local_sessions or {}
        local_images = local_images or {}
        metadata = self.load_catalog()
        local_map = {game.id: game for game in local_games}
        cloud_index = {game.id: i for i, game in enumerate(metadata.games)}

        summary = CloudSyncSummary()
        changed = False

        for gid in sorted(set(local_map) | set(cloud_index)):
            if game_id and gid != game_id:
                continue
            local = local_map.get(gid)
            i = cloud_index.get(gid)
            cloud = metadata.games[i] if i is not None else None

            if local is not None and cloud is not None:
                if local.updated_at > cloud.updated_at:
                    metadata.games[i] = self._push_game(local, cloud, local_sessions, local_images, summary)
                    changed = True
                elif cloud.updated_at > local.updated_at:
                    self._pull_game(cloud, summary)
                else:
                    summary.skipped_games += 1
            elif local is not None:
                metadata.games.append(self._push_game(local, None, local_sessions, local_images, summary))
                changed = True
            else:
                self._pull_game(cloud, summary)

        if changed:
            client, bucket = self.connect()
            metadata.updated_at = utc_now()
            save_metadata(client, bucket, metadata, self.metadata_key)

        log.info("Catalog sync: %d uploaded, %d downloaded, %d skipped, images %d up / %d down",
                 summary.uploaded_games, summary.downloaded_games, summary.skipped_games,
                 summary.uploaded_images, summary.downloaded_images)
        return summary

    def upload_game_image(self, game_id, image_path, existing_key=None):
        """Upload a cover image under a content-addressed key.

        The upload is skipped when *existing_key* already names the same
        content.

        Returns:
            Tuple of (object key, uploaded), the key being e.g.
            ``games/<id>/thumbnail/<sha256>.png``
        """
        try:
            with open(image_path, 'rb') as f:
                payload = f.read()
        except OSError as e:
            raise LocalIOError(f"Cannot read image {image_path}: {e}") from e

        ext = os.path.splitext(image_path)[1].lower() or ".png"
        key = f"games/{game_id}/thumbnail/{hash_bytes(payload)}{ext}"
        if existing_key == key:
            log.debug("Cover for %s already uploaded as %s", game_id, key)
            return key, False

        content_type = mimetypes.guess_type(image_path)[0] or ""
        client, bucket = self.connect()
        upload_bytes(client, bucket, key, payload, content_type)
        return key, True

    def download_game_image(self, game_id, key):
        """Download a cover image into ``<image_dir>/<game id>/``.

        The directory is created with mode 0700 and the file written with
        mode 0600. A file already present under the same name is kept.

        Returns:
            Tuple of (local path, downloaded)
        """
        name = key.rstrip('/').rsplit('/', 1)[-1]
        if not name:
            raise ValueError(f"Invalid image key: {key!r}")
        target_dir = os.path.join(self.image_dir, str(game_id))
        target = os.path.join(target_dir, name)
        if os.path.exists(target):
            return target, False

        client, bucket = self.connect()
        payload = download_object(client, bucket, key)
        try:
            ensure_dir(target_dir)
            write_private_file(target, payload)
        except OSError as e:
            raise LocalIOError(f"Cannot write image {target}: {e}") from e
        log.debug("Downloaded cover %s -> %s", key, target)
        return target, True

    def delete_game(self, game_id, title):
        """Remove a game's save data, documents and catalog entry.

        Returns:
            Number of objects deleted
        """
        client, bucket = self.connect()
        deleted = delete_objects_by_prefix(client, bucket, save_data_prefix(title) + "/")
        deleted += delete_objects_by_prefix(client, bucket, f"games/{game_id}/")

        metadata = load_metadata(client, bucket, self.metadata_key)
        if metadata is not None and metadata.find_game(game_id) is not None:
            metadata.games = [game for game in metadata.games if game.id != game_id]
            metadata.updated_at = utc_now()
            save_metadata(client, bucket, metadata, self.metadata_key)

        log.info("Deleted game %s from the cloud (%d object(s))", game_id, deleted)
        return deleted

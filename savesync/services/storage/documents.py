"""
JSON documents stored in the bucket: the game catalog, per-game session
lists and per-game save hashes.

Every document is read whole and rewritten whole. There is no optimistic
concurrency control: when two writers save the same key, the last
``PutObject`` to land wins in full and the other writer's changes are
lost. A single active writer per game is assumed.
"""
import json
from typing import List, Optional

from ...models import CloudMetadata, CloudSessionRecord, SaveHashMetadata
from ...utils.logger import get_logger
from ...utils.naming_utils import sanitize_title
from .errors import MalformedDocumentError, NotFoundError
from .transfer import download_object, upload_json

log = get_logger(__name__)

DEFAULT_METADATA_KEY = "games.json"
SESSIONS_FILE_NAME = "sessions.json"
SAVE_HASH_FILE_NAME = "save_hash.json"


def sessions_key(game_id):
    """Key of a game's session list, e.g. ``games/<id>/sessions.json``."""
    return f"games/{game_id}/{SESSIONS_FILE_NAME}"


def save_hash_key(game_id):
    """Key of a game's save hash record, e.g. ``games/<id>/save_hash.json``."""
    return f"games/{game_id}/{SAVE_HASH_FILE_NAME}"


def save_data_prefix(title):
    """Prefix holding a game's save folder, e.g. ``games/<title>/save_data``."""
    return f"games/{sanitize_title(title)}/save_data"


def _load_document(client, bucket, key):
    """Fetch and decode one JSON document, or ``None`` when it is absent."""
    try:
        payload = download_object(client, bucket, key)
    except NotFoundError:
        log.debug("Document %s not found", key)
        return None

    try:
        return json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedDocumentError(f"Malformed JSON document {key}: {e}", key=key) from e


def _save_document(client, bucket, key, data):
    payload = json.dumps(data, ensure_ascii=False, separators=(',', ':')).encode('utf-8')
    upload_json(client, bucket, key, payload)
    log.debug("Saved document %s (%d bytes)", key, len(payload))


def load_metadata(client, bucket, key=DEFAULT_METADATA_KEY) -> Optional[CloudMetadata]:
    """Load the game catalog document.

    Returns:
        CloudMetadata, or None if the document does not exist

    Raises:
        MalformedDocumentError: If the stored document cannot be decoded
        TransferError: For provider failures
    """
    data = _load_document(client, bucket, key)
    if data is None:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("games", []), list):
        raise MalformedDocumentError(f"{key}: expected an object with a 'games' list", key=key)
    try:
        return CloudMetadata.from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise MalformedDocumentError(f"{key}: invalid game entry: {e}", key=key) from e


def save_metadata(client, bucket, metadata: CloudMetadata, key=DEFAULT_METADATA_KEY):
    """Overwrite the game catalog document."""
    _save_document(client, bucket, key, metadata.to_dict())


def load_sessions(client, bucket, key) -> Optional[List[CloudSessionRecord]]:
    """Load a session list document.

    Returns:
        List of CloudSessionRecord, or None if the document does not exist

    Raises:
        MalformedDocumentError: If the stored document cannot be decoded
    """
    data = _load_document(client, bucket, key)
    if data is None:
        return None
    if not isinstance(data, list):
        raise MalformedDocumentError(f"{key}: expected a JSON array", key=key)
    try:
        return [CloudSessionRecord.from_dict(item) for item in data]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise MalformedDocumentError(f"{key}: invalid session record: {e}", key=key) from e


def save_sessions(client, bucket, key, sessions: List[CloudSessionRecord]):
    """Overwrite a session list document."""
    _save_document(client, bucket, key, [record.to_dict() for record in sessions])


def load_save_hash(client, bucket, key) -> Optional[SaveHashMetadata]:
    """Load a save hash record.

    Returns:
        SaveHashMetadata, or None if the game was never synced

    Raises:
        MalformedDocumentError: If the stored document cannot be decoded
    """
    data = _load_document(client, bucket, key)
    if data is None:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("hash", ""), str):
        raise MalformedDocumentError(f"{key}: expected an object with a 'hash' string", key=key)
    try:
        return SaveHashMetadata.from_dict(data)
    except (TypeError, ValueError) as e:
        raise MalformedDocumentError(f"{key}: invalid save hash record: {e}", key=key) from e


def save_save_hash(client, bucket, key, metadata: SaveHashMetadata):
    """Overwrite a save hash record."""
    _save_document(client, bucket, key, metadata.to_dict())

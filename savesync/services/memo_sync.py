"""
Memo synchronization.

Memos are markdown files stored at
``games/<sanitized game title>/memo/<sanitized memo title>_<memo id>.md``.
"""
from ..models import CloudMemoInfo
from ..utils.datetime_utils import from_epoch_ms
from ..utils.logger import get_logger
from ..utils.naming_utils import build_memo_path, build_memo_prefix, extract_memo_info, is_memo_path
from .storage import calculate_content_hash, delete_object, download_object, list_objects, upload_bytes

log = get_logger(__name__)

MEMO_CONTENT_TYPE = "text/markdown; charset=utf-8"


class MemoSyncService:
    """Uploads, lists and downloads memo files.

    Args:
        sync_service: Connected :class:`CloudSyncService` providing the
            client and bucket
    """

    def __init__(self, sync_service):
        self.sync_service = sync_service

    def upload_memo(self, game_title, memo_title, memo_id, content):
        """Upload a memo as markdown.

        Returns:
            Tuple of (object key, content hash)
        """
        client, bucket = self.sync_service.connect()
        key = build_memo_path(game_title, memo_title, memo_id)
        upload_bytes(client, bucket, key, (content or "").encode('utf-8'), MEMO_CONTENT_TYPE)
        content_hash = calculate_content_hash(content)
        log.info("Uploaded memo %s", key)
        return key, content_hash

    def list_cloud_memos(self, game_title=""):
        """List memo files, optionally for one game only.

        Keys under ``games/`` that do not parse as memo paths are skipped.

        Returns:
            List of CloudMemoInfo sorted by key
        """
        client, bucket = self.sync_service.connect()
        memos = []
        for obj in list_objects(client, bucket, build_memo_prefix(game_title)):
            if not is_memo_path(obj.key):
                continue
            game, memo_title, memo_id, ok = extract_memo_info(obj.key)
            if not ok:
                log.debug("Skipping unparseable memo key %s", obj.key)
                continue
            memos.append(CloudMemoInfo(
                key=obj.key,
                file_name=obj.key.rsplit('/', 1)[-1],
                game_title=game,
                memo_title=memo_title,
                memo_id=memo_id,
                last_modified=from_epoch_ms(obj.last_modified),
                size=obj.size,
            ))
        memos.sort(key=lambda memo: memo.key)
        return memos

    def download_memo(self, game_title, file_name):
        """Fetch a memo's markdown text.

        Raises:
            NotFoundError: If the memo does not exist
        """
        client, bucket = self.sync_service.connect()
        key = build_memo_prefix(game_title) + file_name
        return download_object(client, bucket, key).decode('utf-8')

    def delete_memo(self, key):
        """Delete a memo by key. Missing memos are ignored."""
        client, bucket = self.sync_service.connect()
        delete_object(client, bucket, key)
        log.info("Deleted memo %s", key)

"""
S3-compatible storage package.

- :mod:`client`    - client construction and endpoint normalization
- :mod:`catalog`   - paginated listing and batched deletion
- :mod:`transfer`  - folder upload and prefix download
- :mod:`documents` - whole-document JSON read/write
- :mod:`hashing`   - directory and content fingerprints
- :mod:`errors`    - error taxonomy
"""
from .catalog import (
    MAX_DELETE_BATCH,
    delete_object,
    delete_objects_by_prefix,
    iter_object_pages,
    list_objects,
    object_exists,
)
from .client import S3Config, create_s3_client, normalize_endpoint, resolve_s3_config, validate_bucket_access
from .documents import (
    DEFAULT_METADATA_KEY,
    load_metadata,
    load_save_hash,
    load_sessions,
    save_data_prefix,
    save_hash_key,
    save_metadata,
    save_save_hash,
    save_sessions,
    sessions_key,
)
from .errors import (
    CredentialsNotConfiguredError,
    LocalIOError,
    MalformedDocumentError,
    NotFoundError,
    OfflineModeError,
    SaveSyncError,
    TransferError,
)
from .hashing import calculate_content_hash, hash_bytes, hash_directory
from .transfer import (
    UPLOAD_CONCURRENCY,
    download_object,
    download_prefix,
    join_key,
    upload_bytes,
    upload_file,
    upload_folder,
    upload_json,
)

__all__ = [
    'MAX_DELETE_BATCH',
    'UPLOAD_CONCURRENCY',
    'DEFAULT_METADATA_KEY',
    'S3Config',
    'create_s3_client',
    'normalize_endpoint',
    'resolve_s3_config',
    'validate_bucket_access',
    'iter_object_pages',
    'list_objects',
    'delete_objects_by_prefix',
    'delete_object',
    'object_exists',
    'upload_file',
    'upload_folder',
    'download_prefix',
    'download_object',
    'upload_bytes',
    'upload_json',
    'join_key',
    'load_metadata',
    'save_metadata',
    'load_sessions',
    'save_sessions',
    'load_save_hash',
    'save_save_hash',
    'sessions_key',
    'save_hash_key',
    'save_data_prefix',
    'hash_directory',
    'hash_bytes',
    'calculate_content_hash',
    'SaveSyncError',
    'NotFoundError',
    'LocalIOError',
    'TransferError',
    'MalformedDocumentError',
    'CredentialsNotConfiguredError',
    'OfflineModeError',
]

"""
Sync services for savesync.

Provides modular service packages:
- storage/ - S3 client, listing, transfers, JSON documents and hashing
- credentials/ - credential store contract and implementations
"""
from .cloud_browser import build_directory_tree, get_file_details, list_cloud_data
from .memo_sync import MemoSyncService
from .sync_engine import CloudSyncService, CloudSyncSummary, SyncResult

__all__ = [
    'CloudSyncService',
    'CloudSyncSummary',
    'SyncResult',
    'MemoSyncService',
    'list_cloud_data',
    'get_file_details',
    'build_directory_tree',
]

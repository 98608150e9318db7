"""Data models for savesync."""
from .browser import CloudDataItem, CloudFileDetail, CloudMemoInfo
from .cloud import (
    CLOUD_METADATA_VERSION,
    CloudGameMetadata,
    CloudMetadata,
    CloudSessionRecord,
    SaveHashMetadata,
)
from .credential import Credential
from .transfer import ObjectInfo, UploadSummary

__all__ = [
    'CLOUD_METADATA_VERSION',
    'CloudDataItem',
    'CloudFileDetail',
    'CloudGameMetadata',
    'CloudMemoInfo',
    'CloudMetadata',
    'CloudSessionRecord',
    'Credential',
    'ObjectInfo',
    'SaveHashMetadata',
    'UploadSummary',
]

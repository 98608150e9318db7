"""Utility modules for savesync."""

from .config_loader import ConfigLoader, handle_config_update
from .file_utils import ensure_dir
from .logger import get_logger, setup_logging
from .naming_utils import build_memo_path, sanitize_for_cloud_path, sanitize_title

__all__ = [
    'ConfigLoader',
    'handle_config_update',
    'ensure_dir',
    'get_logger',
    'setup_logging',
    'build_memo_path',
    'sanitize_for_cloud_path',
    'sanitize_title',
]

"""
savesync: cloud save-data synchronization for game libraries.

Moves per-game save folders, play-session records and catalog metadata
between the local filesystem and any S3-compatible object store.
"""

__version__ = "0.4.0"

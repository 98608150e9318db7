"""Credential store contract and implementations."""
from .store import FileStore, MemoryStore, Store

__all__ = [
    'Store',
    'FileStore',
    'MemoryStore',
]

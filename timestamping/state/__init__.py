"""
timestamping.state: storage backend, write journal and the registry key layout.
"""

from .backend import MemoryBackend, StorageBackend
from .journal import Journal
from .layout import RegistryState
from .view import StorageView

__all__ = ["MemoryBackend", "StorageBackend", "Journal", "RegistryState", "StorageView"]

"""
Storage Module
In-memory item store, download queue and source groups
"""
from .memory import (
    InMemoryDownloadQueue,
    InMemorySourceGroupStore,
    MemoryItem,
    StaticSourceGroup,
    load_manifest,
)

__all__ = [
    "InMemoryDownloadQueue",
    "InMemorySourceGroupStore",
    "MemoryItem",
    "StaticSourceGroup",
    "load_manifest",
]

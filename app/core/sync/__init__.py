"""Sync modules for paginated data synchronization into staging."""

from app.core.sync.collections import CollectionSpec, SyncWindow, build_collections
from app.core.sync.engine import SyncEngine, SyncResult

__all__ = ["CollectionSpec", "SyncEngine", "SyncResult", "SyncWindow", "build_collections"]

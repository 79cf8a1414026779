"""
Store Module
============

In-memory state for the session's lifetime (no on-disk persistence).

Components:
    - ActivityLogStore: Append-only log of accepted matches
    - ReferenceRepository: CRUD store of reference faces
"""

from sentinel_id.store.activity_log import ActivityLogStore
from sentinel_id.store.references import ReferenceRepository

__all__ = [
    "ActivityLogStore",
    "ReferenceRepository",
]

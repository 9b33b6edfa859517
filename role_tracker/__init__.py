"""Core package for the VRChat role tracker.

This module exposes the reconciliation building blocks so that consumers of
the package can simply import them from ``role_tracker``.
"""

from .core.directory import Directory, aggregate
from .core.identity import extract_vrc_id
from .core.reconcile import reconcile_messages
from .core.snapshot import TrackedData, assemble_snapshot
from .core.storage import SnapshotStorage

__all__ = [
    "Directory",
    "SnapshotStorage",
    "TrackedData",
    "aggregate",
    "assemble_snapshot",
    "extract_vrc_id",
    "reconcile_messages",
]

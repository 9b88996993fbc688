"""
Persistence adapters for governance state.
"""

from daocore.repositories.snapshot_repository import JsonSnapshotRepository

__all__ = ["JsonSnapshotRepository"]

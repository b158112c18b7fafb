"""
Adapters layer - Data sources that supply schedule snapshots.
"""

from .json_snapshot_source import SAMPLE_SNAPSHOT_PATH, JsonSnapshotSource

__all__ = ["JsonSnapshotSource", "SAMPLE_SNAPSHOT_PATH"]

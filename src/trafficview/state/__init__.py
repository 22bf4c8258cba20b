"""State layer.

The reconciler here is the single owner of the current traffic snapshot
and the feed connectivity flag.
"""

from trafficview.state.reconciler import DEFAULT_CHANNEL, ReconcilerState, SnapshotReconciler

__all__ = ["DEFAULT_CHANNEL", "ReconcilerState", "SnapshotReconciler"]

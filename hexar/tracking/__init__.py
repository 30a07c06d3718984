"""
Tracking Module

Multi-person tracking and fall-risk estimation engine.

Components:
    - ConstantAccelerationKalmanFilter: Per-track Constant Acceleration Kalman Filter
    - FallDetector: Fall-risk scoring and ballistic trajectory previews
    - TrackManager: Track lifecycle, association, capacity and pruning
    - Track / TrackSnapshot: Track entity and its read-only view
    - TrackStatus: Track lifecycle states

Example:
    >>> from hexar.tracking import TrackManager
    >>> manager = TrackManager()
    >>> manager.associate_or_create(0, (1.0, 2.0))
    >>> falling = manager.get_falling_tracks()
"""

from .fall_detector import FallDetector, FallTrajectory
from .kalman import ConstantAccelerationKalmanFilter, KalmanState, SingularInnovationError
from .track import Track, TrackSnapshot, TrackStatus
from .tracker import AssociationOutcome, AssociationResult, ScanReport, TrackManager

__all__ = [
    "ConstantAccelerationKalmanFilter",
    "KalmanState",
    "SingularInnovationError",
    "FallDetector",
    "FallTrajectory",
    "Track",
    "TrackSnapshot",
    "TrackStatus",
    "TrackManager",
    "AssociationOutcome",
    "AssociationResult",
    "ScanReport",
]

"""
Hexar Tracking Engine

Real-time multi-person tracking and fall-risk estimation from radar
position detections:
- Constant Acceleration Kalman Filter per track
- Nearest-neighbor association with per-channel capacity
- Fall-risk scoring and ballistic trajectory previews
- Synthetic scenarios and a headless scan loop
"""

from hexar.io import TrackerConfig, load_tracker_config
from hexar.tracking import (
    AssociationOutcome,
    AssociationResult,
    ConstantAccelerationKalmanFilter,
    FallDetector,
    FallTrajectory,
    ScanReport,
    TrackManager,
    TrackSnapshot,
    TrackStatus,
)

__version__ = "1.0.0"
__author__ = "Hexar Contributors"

__all__ = [
    # Configuration
    "TrackerConfig",
    "load_tracker_config",
    # Tracking
    "TrackManager",
    "TrackSnapshot",
    "TrackStatus",
    "AssociationOutcome",
    "AssociationResult",
    "ScanReport",
    "ConstantAccelerationKalmanFilter",
    "FallDetector",
    "FallTrajectory",
]

"""
Track Entity

One followed person: filtered kinematics, confidence, fall-risk score and
lifecycle bookkeeping. Tracks are created, mutated and destroyed only by
the TrackManager; consumers see immutable TrackSnapshot copies.

Track Lifecycle:
    TRACKING <-> FALLING   (measurement update, branch on fall-risk score)
    any      ->  PREDICTED (coast cycle, prediction only)
    any      ->  removed   (pruned: idle timeout, low confidence, long coast)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple

import numpy as np


class TrackStatus(Enum):
    """Track lifecycle states. Lost tracks are removed, not stored."""

    TRACKING = "tracking"  # Recently measured, low fall risk
    FALLING = "falling"  # Fall-risk score above threshold
    PREDICTED = "predicted"  # Advanced without a measurement this cycle


def clamp_unit(value: float) -> float:
    """Clamp a score to [0, 1]."""
    return min(max(float(value), 0.0), 1.0)


@dataclass
class Track:
    """
    Single tracked person.

    Attributes:
        id: Unique track identifier, never reused
        channel_id: Acquisition channel (antenna) of the first detection
        position: Filtered position (x, y) in meters
        velocity: Filtered velocity (vx, vy) in m/s
        acceleration: Filtered acceleration (ax, ay) in m/s²
        status: Track lifecycle status
        confidence: Track confidence in [0, 1]
        fall_risk: Fall-risk score in [0, 1]
        creation_time: Clock reading at creation [s]
        last_update: Clock reading of the last measurement update [s]
        coast_count: Consecutive coast cycles since the last measurement
    """

    id: int
    channel_id: int
    position: Tuple[float, float]
    creation_time: float
    last_update: float
    velocity: Tuple[float, float] = (0.0, 0.0)
    acceleration: Tuple[float, float] = (0.0, 0.0)
    status: TrackStatus = TrackStatus.TRACKING
    confidence: float = 1.0
    fall_risk: float = 0.0
    coast_count: int = 0

    def set_kinematics(
        self,
        position: Tuple[float, float],
        velocity: Tuple[float, float],
        acceleration: Tuple[float, float],
    ) -> None:
        """Copy filtered kinematics into the track."""
        self.position = position
        self.velocity = velocity
        self.acceleration = acceleration

    def mark_measured(
        self, timestamp: float, fall_risk: float, falling_threshold: float, gain: float = 0.8
    ) -> None:
        """
        Apply measurement-update bookkeeping.

        Confidence is smoothed toward 1, the coast counter resets and the
        status branches on the freshly computed fall-risk score.
        """
        self.last_update = timestamp
        self.coast_count = 0
        self.confidence = clamp_unit(self.confidence * gain + (1.0 - gain))
        self.fall_risk = clamp_unit(fall_risk)
        if self.fall_risk > falling_threshold:
            self.status = TrackStatus.FALLING
        else:
            self.status = TrackStatus.TRACKING

    def mark_coasted(self, decay: float = 0.9) -> None:
        """Apply coast-cycle bookkeeping: decay confidence, count the miss."""
        self.status = TrackStatus.PREDICTED
        self.coast_count += 1
        self.confidence = clamp_unit(self.confidence * decay)

    @property
    def is_falling(self) -> bool:
        return self.status == TrackStatus.FALLING

    def snapshot(self) -> "TrackSnapshot":
        """Immutable copy for consumers."""
        return TrackSnapshot(
            id=self.id,
            channel_id=self.channel_id,
            position=self.position,
            velocity=self.velocity,
            acceleration=self.acceleration,
            status=self.status,
            confidence=self.confidence,
            fall_risk=self.fall_risk,
            last_update=self.last_update,
            coast_count=self.coast_count,
        )


@dataclass(frozen=True)
class TrackSnapshot:
    """Read-only view of a track at query time."""

    id: int
    channel_id: int
    position: Tuple[float, float]
    velocity: Tuple[float, float]
    acceleration: Tuple[float, float]
    status: TrackStatus
    confidence: float
    fall_risk: float
    last_update: float
    coast_count: int

    @property
    def is_falling(self) -> bool:
        return self.status == TrackStatus.FALLING

    @property
    def speed_mps(self) -> float:
        """Get speed in m/s."""
        return float(np.hypot(self.velocity[0], self.velocity[1]))

    @property
    def heading_rad(self) -> float:
        """Get heading in radians (0 = +y axis, CW positive)."""
        return float(np.arctan2(self.velocity[0], self.velocity[1]))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "id": self.id,
            "channel_id": self.channel_id,
            "position": list(self.position),
            "velocity": list(self.velocity),
            "acceleration": list(self.acceleration),
            "status": self.status.value,
            "confidence": self.confidence,
            "fall_risk": self.fall_risk,
            "coast_count": self.coast_count,
        }

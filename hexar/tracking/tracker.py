"""
Track Manager for Multi-Person Tracking

Manages the live tracks using one Kalman Filter per track and nearest-neighbor
detection association. Handles track initiation, per-channel capacity,
measurement updates, coasting and deletion.

Scan cycle:
    1. associate_or_create() once per detection, in arrival order
    2. coast_all() for tracks that received no measurement this cycle
    3. prune() stale tracks

All public operations are serialized by a single lock, so an alerting
thread may poll falling tracks while the scan loop mutates state.

Reference:
    - Blackman, S. "Multiple-Target Tracking with Radar Applications", 1986
    - Bar-Shalom, Y. "Multitarget-Multisensor Tracking", 1990
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np

from hexar.io.config_loader import TrackerConfig

from .fall_detector import FallDetector, FallTrajectory
from .kalman import ConstantAccelerationKalmanFilter, KalmanState, SingularInnovationError
from .track import Track, TrackSnapshot

logger = logging.getLogger(__name__)

Detection = Tuple[int, Tuple[float, float]]


class AssociationOutcome(Enum):
    """What happened to a single detection or update request."""

    UPDATED = "updated"  # Measurement applied to an existing track
    CREATED = "created"  # New track started
    SKIPPED = "skipped"  # Zero or negative elapsed time, nothing changed
    COASTED = "coasted"  # Singular innovation, degraded to a coast cycle
    CAPACITY_EXCEEDED = "capacity_exceeded"  # Channel full, detection dropped
    NOT_FOUND = "not_found"  # Unknown track id


@dataclass
class AssociationResult:
    """Outcome of associate_or_create()."""

    outcome: AssociationOutcome
    track_id: Optional[int] = None


@dataclass
class ScanReport:
    """Summary of one process_scan() cycle."""

    updated: List[int] = field(default_factory=list)
    created: List[int] = field(default_factory=list)
    coasted: List[int] = field(default_factory=list)
    pruned: List[int] = field(default_factory=list)
    falling: List[int] = field(default_factory=list)
    skipped: int = 0
    dropped: int = 0


@dataclass
class _TrackEntry:
    """A track and its estimator; stored, replaced and removed as one unit."""

    track: Track
    kf: ConstantAccelerationKalmanFilter
    filter_time: float  # Time the estimator state refers to


class TrackManager:
    """
    Multi-person track manager with Nearest-Neighbor association.

    Features:
        - Track initiation from unassociated detections
        - Per-channel track capacity
        - Nearest-neighbor association with gating (ties -> lowest id)
        - Track coasting (prediction-only when no measurement)
        - Track deletion on timeout, low confidence or long coasting
        - Fall-risk scoring and ballistic trajectory previews

    Example:
        >>> manager = TrackManager(TrackerConfig(gate_distance_m=2.0))
        >>> result = manager.associate_or_create(0, (1.0, 1.0))
        >>> manager.get_track_count()
        1
    """

    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize Track Manager.

        Args:
            config: Tracker configuration (defaults if omitted)
            clock: Time source in seconds, used for update intervals and pruning
        """
        self.config = config if config is not None else TrackerConfig()
        self.config.validate()
        self._clock = clock

        self.fall_detector = FallDetector(
            gravity_threshold=self.config.gravity_threshold,
            velocity_threshold=self.config.velocity_threshold,
            acceleration_threshold=self.config.acceleration_threshold,
            falling_threshold=self.config.falling_threshold,
            gravity_mps2=self.config.gravity_mps2,
            preview_step_s=self.config.preview_step_s,
        )

        # Track storage
        self._entries: Dict[int, _TrackEntry] = {}
        self._next_id = 1
        self._lock = threading.RLock()

        self.capacity_exceeded_count = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def associate_or_create(
        self,
        channel_id: int,
        position: Tuple[float, float],
        timestamp: Optional[float] = None,
    ) -> AssociationResult:
        """
        Route one detection to the nearest gated track, or start a new track.

        Args:
            channel_id: Acquisition channel that produced the detection
            position: Detected position (x, y) in meters
            timestamp: Detection time (defaults to the manager clock)

        Returns:
            AssociationResult with the outcome and the affected track id
        """
        with self._lock:
            track_id = self._find_nearest(position)
            if track_id is not None:
                return AssociationResult(self.update(track_id, position, timestamp), track_id)

            new_id = self.create(channel_id, position, timestamp)
            if new_id is None:
                return AssociationResult(AssociationOutcome.CAPACITY_EXCEEDED)
            return AssociationResult(AssociationOutcome.CREATED, new_id)

    def create(
        self,
        channel_id: int,
        position: Tuple[float, float],
        timestamp: Optional[float] = None,
    ) -> Optional[int]:
        """
        Start a new track and its estimator.

        Returns:
            New track id, or None if the channel is at capacity
        """
        with self._lock:
            current = self._count_channel(channel_id)
            if current >= self.config.max_tracks_per_channel:
                self.capacity_exceeded_count += 1
                logger.warning(
                    "Channel %d at maximum capacity (%d tracks), detection dropped",
                    channel_id,
                    self.config.max_tracks_per_channel,
                )
                return None

            now = self._now(timestamp)
            position = (float(position[0]), float(position[1]))
            track_id = self._next_id
            self._next_id += 1

            track = Track(
                id=track_id,
                channel_id=channel_id,
                position=position,
                creation_time=now,
                last_update=now,
            )
            kf = ConstantAccelerationKalmanFilter(
                position,
                initial_covariance=self.config.initial_covariance,
                process_noise=self.config.process_noise,
                measurement_noise=self.config.measurement_noise,
            )
            self._entries[track_id] = _TrackEntry(track=track, kf=kf, filter_time=now)

            logger.info(
                "Added track %d to channel %d at (%.2f, %.2f)",
                track_id,
                channel_id,
                position[0],
                position[1],
            )
            return track_id

    def update(
        self,
        track_id: int,
        position: Tuple[float, float],
        timestamp: Optional[float] = None,
    ) -> AssociationOutcome:
        """
        Apply a measurement to a track: predict over the elapsed time, correct,
        re-score fall risk and transition state.

        Returns:
            UPDATED, SKIPPED (dt <= 0), COASTED (singular innovation)
            or NOT_FOUND
        """
        with self._lock:
            entry = self._entries.get(track_id)
            if entry is None:
                return AssociationOutcome.NOT_FOUND

            track, kf = entry.track, entry.kf
            now = self._now(timestamp)
            dt = now - track.last_update
            if dt <= 0.0:
                return AssociationOutcome.SKIPPED

            # Coast cycles may already have advanced the estimator past last_update
            predict_dt = now - entry.filter_time
            if predict_dt > 0.0:
                kf.predict(predict_dt)
                entry.filter_time = now
            try:
                kf.update(position)
            except SingularInnovationError as exc:
                logger.warning("Track %d: measurement update skipped (%s)", track_id, exc)
                self._copy_kinematics(entry)
                track.mark_coasted(self.config.confidence_decay)
                return AssociationOutcome.COASTED

            self._copy_kinematics(entry)
            risk = self.fall_detector.analyze_fall_risk(track.velocity, track.acceleration)
            track.mark_measured(
                now, risk, self.config.falling_threshold, gain=self.config.confidence_gain
            )

            logger.debug(
                "Updated track %d: pos=(%.2f, %.2f), vel=(%.2f, %.2f), fall_risk=%.2f",
                track_id,
                track.position[0],
                track.position[1],
                track.velocity[0],
                track.velocity[1],
                track.fall_risk,
            )
            return AssociationOutcome.UPDATED

    def coast_all(self, dt: float, exclude: Iterable[int] = ()) -> List[int]:
        """
        Advance tracks by prediction only.

        Args:
            dt: Prediction interval (seconds); non-positive values are a no-op
            exclude: Track ids that were measured this cycle

        Returns:
            Ids of coasted tracks
        """
        with self._lock:
            if dt <= 0.0:
                return []

            skip = set(exclude)
            coasted = []
            for track_id in sorted(self._entries):
                if track_id in skip:
                    continue
                entry = self._entries[track_id]
                entry.kf.predict(dt)
                entry.filter_time += dt
                self._copy_kinematics(entry)
                entry.track.mark_coasted(self.config.confidence_decay)
                coasted.append(track_id)
            return coasted

    def prune(
        self, timeout: Optional[float] = None, timestamp: Optional[float] = None
    ) -> List[int]:
        """
        Remove lost tracks together with their estimators.

        A track is lost when it has been idle longer than `timeout`, its
        confidence fell below the floor, or it coasted too many cycles.

        Args:
            timeout: Idle timeout in seconds (defaults to the configured one)
            timestamp: Current time (defaults to the manager clock)

        Returns:
            Ids of removed tracks
        """
        with self._lock:
            if timeout is None:
                timeout = self.config.prune_timeout_s
            now = self._now(timestamp)

            to_remove = [
                track_id
                for track_id, entry in self._entries.items()
                if now - entry.track.last_update > timeout
                or entry.track.confidence < self.config.confidence_floor
                or entry.track.coast_count > self.config.max_coast_cycles
            ]

            for track_id in to_remove:
                del self._entries[track_id]
                logger.info("Removed lost track %d", track_id)

            return sorted(to_remove)

    def process_scan(
        self,
        detections: Iterable[Detection],
        dt: Optional[float] = None,
        timestamp: Optional[float] = None,
    ) -> ScanReport:
        """
        Run one full scan cycle.

        Args:
            detections: (channel_id, (x, y)) pairs in arrival order
            dt: Scan interval used to coast unmeasured tracks; no coasting if None
            timestamp: Scan time (defaults to the manager clock)

        Returns:
            ScanReport for the cycle
        """
        with self._lock:
            now = self._now(timestamp)
            report = ScanReport()
            touched = set()

            for channel_id, position in detections:
                result = self.associate_or_create(channel_id, position, now)
                if result.track_id is not None:
                    touched.add(result.track_id)

                if result.outcome == AssociationOutcome.UPDATED:
                    report.updated.append(result.track_id)
                elif result.outcome == AssociationOutcome.CREATED:
                    report.created.append(result.track_id)
                elif result.outcome == AssociationOutcome.COASTED:
                    report.coasted.append(result.track_id)
                elif result.outcome == AssociationOutcome.CAPACITY_EXCEEDED:
                    report.dropped += 1
                else:
                    report.skipped += 1

            if dt is not None:
                report.coasted.extend(self.coast_all(dt, exclude=touched))

            report.pruned = self.prune(timestamp=now)
            report.falling = [t.id for t in self.get_falling_tracks()]
            return report

    def clear(self) -> None:
        """Clear all tracks. Ids are not reused afterwards."""
        with self._lock:
            self._entries.clear()
            logger.info("Cleared all tracked targets")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all_tracks(self) -> List[TrackSnapshot]:
        """Get all live tracks, ordered by id."""
        with self._lock:
            return [self._entries[tid].track.snapshot() for tid in sorted(self._entries)]

    def get_falling_tracks(self) -> List[TrackSnapshot]:
        """Get only tracks in FALLING state."""
        with self._lock:
            return [t for t in self.get_all_tracks() if t.is_falling]

    def get_tracks_by_channel(self, channel_id: int) -> List[TrackSnapshot]:
        with self._lock:
            return [t for t in self.get_all_tracks() if t.channel_id == channel_id]

    def get_track(self, track_id: int) -> Optional[TrackSnapshot]:
        """Get track by ID."""
        with self._lock:
            entry = self._entries.get(track_id)
            return entry.track.snapshot() if entry is not None else None

    def get_filter_state(self, track_id: int) -> Optional[KalmanState]:
        """Copy of a track's estimator state, or None if the track is gone."""
        with self._lock:
            entry = self._entries.get(track_id)
            if entry is None:
                return None
            return KalmanState(x=entry.kf.state.x.copy(), P=entry.kf.state.P.copy())

    def get_track_count(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_track_count_by_channel(self, channel_id: int) -> int:
        with self._lock:
            return self._count_channel(channel_id)

    def get_channel_counts(self) -> Dict[int, int]:
        """Live track count for every configured channel."""
        with self._lock:
            counts = {channel: 0 for channel in range(self.config.channel_count)}
            for entry in self._entries.values():
                counts[entry.track.channel_id] = counts.get(entry.track.channel_id, 0) + 1
            return counts

    def trajectory_preview(self, track_id: int, steps: int) -> Optional[FallTrajectory]:
        """
        Ballistic preview of a track's next `steps` positions.

        Returns:
            FallTrajectory, or None if the id is unknown
        """
        with self._lock:
            entry = self._entries.get(track_id)
            if entry is None:
                return None
            return self.fall_detector.predict_fall_trajectory(
                entry.track.position, entry.track.velocity, steps
            )

    def __len__(self) -> int:
        return self.get_track_count()

    def __contains__(self, track_id: int) -> bool:
        with self._lock:
            return track_id in self._entries

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self, timestamp: Optional[float]) -> float:
        return self._clock() if timestamp is None else timestamp

    def _count_channel(self, channel_id: int) -> int:
        return sum(1 for e in self._entries.values() if e.track.channel_id == channel_id)

    def _find_nearest(self, position: Tuple[float, float]) -> Optional[int]:
        """Nearest live track strictly inside the gate; ties go to the lowest id."""
        best_id = None
        min_dist = float("inf")

        for track_id in sorted(self._entries):
            track_pos = self._entries[track_id].track.position
            dist = np.hypot(position[0] - track_pos[0], position[1] - track_pos[1])

            # Gating
            if dist < self.config.gate_distance_m and dist < min_dist:
                min_dist = dist
                best_id = track_id

        return best_id

    @staticmethod
    def _copy_kinematics(entry: _TrackEntry) -> None:
        entry.track.set_kinematics(
            entry.kf.get_position(), entry.kf.get_velocity(), entry.kf.get_acceleration()
        )

"""
Scan Loop Runner

Drives the tracking engine with a synthetic scenario, one scan cycle per
time step, without any GUI or hardware.

Features:
    - Simulated scan clock (no wall-clock dependence, reproducible)
    - Per-cycle ScanReport collection
    - Fall alerts with ballistic trajectory previews

Usage:
    scenario = Scenario.generate(walkers=2, fallers=1, seed=1)
    loop = ScanLoop(TrackManager(config), scenario, rate_hz=20.0)
    result = loop.run(duration_s=10.0)
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from hexar.tracking import ScanReport, TrackManager, TrackSnapshot

from .scenario import Scenario

logger = logging.getLogger(__name__)


@dataclass
class FallAlert:
    """
    A track that entered the FALLING state.

    Attributes:
        time_s: Scenario time of the alert [s]
        track_id: Falling track
        channel_id: Channel of the track
        fall_risk: Fall-risk score at alert time
        position: Track position at alert time [m]
        trajectory: Ballistic preview of the next positions [m]
    """

    time_s: float
    track_id: int
    channel_id: int
    fall_risk: float
    position: Tuple[float, float]
    trajectory: List[Tuple[float, float]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time_s": self.time_s,
            "track_id": self.track_id,
            "channel_id": self.channel_id,
            "fall_risk": self.fall_risk,
            "position": list(self.position),
            "trajectory": [list(p) for p in self.trajectory],
        }


@dataclass
class ScanLoopResult:
    """
    Results from a scan loop run.

    Attributes:
        cycles: Number of scan cycles executed
        duration_s: Simulated duration [s]
        runtime_s: Wall-clock execution time [s]
        reports: Per-cycle scan reports
        alerts: Fall alerts, one per track entering FALLING
        final_tracks: Live tracks after the last cycle
        max_tracks: Largest simultaneous live track count
        dropped: Detections dropped for channel capacity
    """

    cycles: int = 0
    duration_s: float = 0.0
    runtime_s: float = 0.0
    reports: List[ScanReport] = field(default_factory=list)
    alerts: List[FallAlert] = field(default_factory=list)
    final_tracks: List[TrackSnapshot] = field(default_factory=list)
    max_tracks: int = 0
    dropped: int = 0

    @property
    def tracks_created(self) -> int:
        return sum(len(r.created) for r in self.reports)

    @property
    def tracks_pruned(self) -> int:
        return sum(len(r.pruned) for r in self.reports)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON export."""
        return {
            "cycles": self.cycles,
            "duration_s": self.duration_s,
            "runtime_s": self.runtime_s,
            "tracks_created": self.tracks_created,
            "tracks_pruned": self.tracks_pruned,
            "max_tracks": self.max_tracks,
            "dropped": self.dropped,
            "alerts": [a.to_dict() for a in self.alerts],
            "final_tracks": [t.to_dict() for t in self.final_tracks],
        }


class ScanLoop:
    """
    Synthetic scan loop.

    Each cycle asks the scenario for detections, hands them to the manager
    as one scan, and raises an alert for every track that newly enters the
    FALLING state.
    """

    def __init__(
        self,
        manager: TrackManager,
        scenario: Scenario,
        rate_hz: float = 20.0,
        preview_steps: int = 10,
    ) -> None:
        """
        Args:
            manager: Tracking engine to drive
            scenario: Detection source
            rate_hz: Scan rate [Hz]
            preview_steps: Trajectory preview length attached to alerts
        """
        if rate_hz <= 0:
            raise ValueError(f"rate_hz must be positive, got {rate_hz}")

        self.manager = manager
        self.scenario = scenario
        self.dt = 1.0 / rate_hz
        self.preview_steps = preview_steps
        self.time_s = 0.0
        self._alerted: Set[int] = set()

    def step(self) -> Tuple[ScanReport, List[FallAlert]]:
        """Run one scan cycle."""
        detections = self.scenario.step(self.dt)
        self.time_s += self.dt

        report = self.manager.process_scan(detections, dt=self.dt, timestamp=self.time_s)

        alerts = []
        for track_id in report.falling:
            if track_id in self._alerted:
                continue
            self._alerted.add(track_id)
            alert = self._make_alert(track_id)
            if alert is not None:
                alerts.append(alert)

        # Tracks that recover may alert again later
        self._alerted.intersection_update(report.falling)
        return report, alerts

    def run(self, duration_s: float) -> ScanLoopResult:
        """
        Execute the scan loop.

        Args:
            duration_s: Simulated duration [s]

        Returns:
            ScanLoopResult
        """
        start_time = time.perf_counter()
        result = ScanLoopResult()

        n_cycles = int(round(duration_s / self.dt))
        for _ in range(n_cycles):
            report, alerts = self.step()
            result.reports.append(report)
            result.alerts.extend(alerts)
            result.dropped += report.dropped
            result.max_tracks = max(result.max_tracks, self.manager.get_track_count())

        result.cycles = n_cycles
        result.duration_s = n_cycles * self.dt
        result.final_tracks = self.manager.get_all_tracks()
        result.runtime_s = time.perf_counter() - start_time
        return result

    def _make_alert(self, track_id: int) -> Optional[FallAlert]:
        track = self.manager.get_track(track_id)
        preview = self.manager.trajectory_preview(track_id, self.preview_steps)
        if track is None or preview is None:
            return None

        logger.info(
            "Fall alert: track %d on channel %d, risk %.2f at t=%.2fs",
            track.id,
            track.channel_id,
            track.fall_risk,
            self.time_s,
        )
        return FallAlert(
            time_s=self.time_s,
            track_id=track.id,
            channel_id=track.channel_id,
            fall_risk=track.fall_risk,
            position=track.position,
            trajectory=list(preview),
        )

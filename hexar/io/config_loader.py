"""
Tracker Configuration Loader

YAML-based configuration for the tracking engine.

Loads the tunables the engine consumes once at start-up: channel layout,
per-channel capacity, pruning policy, Kalman noise magnitudes and the
fall-risk thresholds. Missing keys fall back to the defaults below.

File layout:
    tracker:
      channel_count: 6
      max_tracks_per_channel: 8
      prune_timeout_s: 30.0
      gate_distance_m: 2.0
      confidence_floor: 0.1
      max_coast_cycles: 10
    kalman:
      initial_covariance: 100.0
      process_noise: 0.1          # or [position, velocity, acceleration]
      measurement_noise: 1.0
    fall_detection:
      gravity_threshold: -9.5
      velocity_threshold: 2.0
      acceleration_threshold: 15.0
      falling_threshold: 0.7
      gravity_mps2: 9.81
      preview_step_s: 0.05

Usage:
    config = load_tracker_config('configs/tracker.yaml')
    manager = TrackManager(config)
"""

import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple, Union

import yaml

ProcessNoise = Union[float, Tuple[float, float, float]]

# Q diagonal (position, velocity, acceleration) that lets the filter follow
# the onset of a fall within a few 20 Hz scans
FALL_RESPONSE_PROCESS_NOISE = (1e-4, 1e-2, 20.0)


@dataclass
class TrackerConfig:
    """
    Complete tracking engine configuration.

    Attributes:
        channel_count: Number of acquisition channels (antennas)
        max_tracks_per_channel: Live track capacity of each channel
        prune_timeout_s: Idle time after which a track is dropped [s]
        gate_distance_m: Association gate radius [m]
        confidence_floor: Tracks below this confidence are dropped
        max_coast_cycles: Tracks coasting more cycles than this are dropped
        confidence_gain: Smoothing weight kept on measurement update
        confidence_decay: Multiplicative decay per coast cycle
        initial_covariance: Diagonal of the initial state covariance
        process_noise: Diagonal of Q, one value for every state or a
                       (position, velocity, acceleration) triple
        measurement_noise: Diagonal of R
        gravity_threshold: Downward acceleration counted as free fall [m/s²]
        velocity_threshold: Downward speed counted as falling [m/s]
        acceleration_threshold: Acceleration magnitude counted as a spike [m/s²]
        falling_threshold: Fall-risk score above which a track is Falling
        gravity_mps2: Gravity used for trajectory previews [m/s²]
        preview_step_s: Integration step of trajectory previews [s]
    """

    # Tracker
    channel_count: int = 6
    max_tracks_per_channel: int = 8
    prune_timeout_s: float = 30.0
    gate_distance_m: float = 2.0
    confidence_floor: float = 0.1
    max_coast_cycles: int = 10
    confidence_gain: float = 0.8
    confidence_decay: float = 0.9

    # Kalman filter
    initial_covariance: float = 100.0
    process_noise: ProcessNoise = 0.1
    measurement_noise: float = 1.0

    # Fall detection
    gravity_threshold: float = -9.5
    velocity_threshold: float = 2.0
    acceleration_threshold: float = 15.0
    falling_threshold: float = 0.7
    gravity_mps2: float = 9.81
    preview_step_s: float = 0.05

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ValueError: If any parameter is out of range
        """
        if self.channel_count <= 0:
            raise ValueError(f"channel_count must be positive, got {self.channel_count}")
        if self.max_tracks_per_channel <= 0:
            raise ValueError(
                f"max_tracks_per_channel must be positive, got {self.max_tracks_per_channel}"
            )
        if self.prune_timeout_s <= 0:
            raise ValueError(f"prune_timeout_s must be positive, got {self.prune_timeout_s}")
        if self.gate_distance_m <= 0:
            raise ValueError(f"gate_distance_m must be positive, got {self.gate_distance_m}")
        if self.max_coast_cycles < 0:
            raise ValueError(f"max_coast_cycles must be >= 0, got {self.max_coast_cycles}")
        if not 0.0 <= self.confidence_floor <= 1.0:
            raise ValueError(f"confidence_floor must be in [0, 1], got {self.confidence_floor}")
        if not 0.0 <= self.confidence_gain <= 1.0:
            raise ValueError(f"confidence_gain must be in [0, 1], got {self.confidence_gain}")
        if not 0.0 <= self.confidence_decay <= 1.0:
            raise ValueError(f"confidence_decay must be in [0, 1], got {self.confidence_decay}")
        if self.initial_covariance <= 0:
            raise ValueError(
                f"initial_covariance must be positive, got {self.initial_covariance}"
            )
        if isinstance(self.process_noise, tuple) and len(self.process_noise) != 3:
            raise ValueError(
                f"process_noise needs 3 values (position, velocity, acceleration), "
                f"got {len(self.process_noise)}"
            )
        if min(_noise_values(self.process_noise)) < 0 or self.measurement_noise < 0:
            raise ValueError("Noise magnitudes must be non-negative")
        if self.preview_step_s <= 0:
            raise ValueError(f"preview_step_s must be positive, got {self.preview_step_s}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to flat dictionary for logging/serialization."""
        data = asdict(self)
        if isinstance(self.process_noise, tuple):
            data["process_noise"] = list(self.process_noise)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TrackerConfig":
        """
        Build configuration from a parsed YAML mapping.

        Args:
            data: Mapping with optional 'tracker', 'kalman' and
                  'fall_detection' sections

        Returns:
            Validated TrackerConfig
        """
        data = data or {}
        tracker = data.get("tracker", {}) or {}
        kalman = data.get("kalman", {}) or {}
        fall = data.get("fall_detection", {}) or {}
        defaults = cls()

        config = cls(
            channel_count=int(tracker.get("channel_count", defaults.channel_count)),
            max_tracks_per_channel=int(
                tracker.get("max_tracks_per_channel", defaults.max_tracks_per_channel)
            ),
            prune_timeout_s=float(tracker.get("prune_timeout_s", defaults.prune_timeout_s)),
            gate_distance_m=float(tracker.get("gate_distance_m", defaults.gate_distance_m)),
            confidence_floor=float(tracker.get("confidence_floor", defaults.confidence_floor)),
            max_coast_cycles=int(tracker.get("max_coast_cycles", defaults.max_coast_cycles)),
            confidence_gain=float(tracker.get("confidence_gain", defaults.confidence_gain)),
            confidence_decay=float(tracker.get("confidence_decay", defaults.confidence_decay)),
            initial_covariance=float(
                kalman.get("initial_covariance", defaults.initial_covariance)
            ),
            process_noise=_parse_process_noise(kalman.get("process_noise", defaults.process_noise)),
            measurement_noise=float(kalman.get("measurement_noise", defaults.measurement_noise)),
            gravity_threshold=float(fall.get("gravity_threshold", defaults.gravity_threshold)),
            velocity_threshold=float(fall.get("velocity_threshold", defaults.velocity_threshold)),
            acceleration_threshold=float(
                fall.get("acceleration_threshold", defaults.acceleration_threshold)
            ),
            falling_threshold=float(fall.get("falling_threshold", defaults.falling_threshold)),
            gravity_mps2=float(fall.get("gravity_mps2", defaults.gravity_mps2)),
            preview_step_s=float(fall.get("preview_step_s", defaults.preview_step_s)),
        )
        config.validate()
        return config


def _noise_values(value: ProcessNoise) -> Tuple[float, ...]:
    return value if isinstance(value, tuple) else (value,)


def _parse_process_noise(value: Any) -> ProcessNoise:
    """A scalar applies to every state; a list sets position, velocity, acceleration."""
    if isinstance(value, (list, tuple)):
        return tuple(float(v) for v in value)
    return float(value)


def load_tracker_config(filepath: str) -> TrackerConfig:
    """
    Load tracker configuration from YAML file.

    Args:
        filepath: Path to YAML configuration file

    Returns:
        Validated TrackerConfig

    Raises:
        FileNotFoundError: If file doesn't exist
        yaml.YAMLError: If YAML parsing fails
        ValueError: If a parameter is out of range
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Tracker config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return TrackerConfig.from_dict(data)

"""
Synthetic Monitoring Scenario

Simulated people in a sensed area, producing noisy per-scan detections for
the tracking engine. Stands in for the acquisition front end in demos and
tests.

Coordinate system (2D sensing plane):
    - x: Lateral position [m]
    - y: Height above the floor [m] (falls are negative vy / ay)

Subjects:
    - Walker: constant velocity, reflects at the edges of its lane
    - Faller: stands still until fall_time_s, then drops at
      fall_accel_mps2 (gravity by default) and comes to rest on the floor

Detections are assigned to acquisition channels by angular sector as seen
from the sensor at the origin.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numba
import numpy as np

GRAVITY_MPS2 = 9.81

Detection = Tuple[int, Tuple[float, float]]


class SubjectKind(Enum):
    """Simulated subject behaviours."""

    WALKER = "walker"
    FALLER = "faller"


@numba.jit(nopython=True, cache=True)
def _update_kinematics_ca(
    pos: np.ndarray, vel: np.ndarray, acc: np.ndarray, dt: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    JIT-compiled Constant Acceleration (CA) motion model.

    x_new = x + v*dt + 0.5*a*dt²
    v_new = v + a*dt

    Args:
        pos: Current position [x, y]
        vel: Current velocity [vx, vy]
        acc: Current acceleration [ax, ay]
        dt: Time step [s]

    Returns:
        Tuple of (new_position, new_velocity)
    """
    dt2 = dt * dt
    new_pos = pos + vel * dt + 0.5 * acc * dt2
    new_vel = vel + acc * dt
    return new_pos, new_vel


@dataclass
class Subject:
    """
    One simulated person.

    Attributes:
        subject_id: Identifier (ground truth, not a track id)
        position: Current position [x, y] [m]
        velocity: Current velocity [vx, vy] [m/s]
        kind: Walker or faller
        lane: (x_min, x_max) a walker reflects inside
        fall_time_s: Scenario time at which a faller starts to fall
        floor_y: Height at which a fall ends [m]
        fall_accel_mps2: Downward acceleration of the fall [m/s²]
    """

    subject_id: int
    position: np.ndarray
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(2))
    kind: SubjectKind = SubjectKind.WALKER
    lane: Optional[Tuple[float, float]] = None
    fall_time_s: Optional[float] = None
    floor_y: float = 0.0
    fall_accel_mps2: float = GRAVITY_MPS2

    def __post_init__(self):
        """Ensure arrays are numpy float64."""
        self.position = np.asarray(self.position, dtype=np.float64)
        self.velocity = np.asarray(self.velocity, dtype=np.float64)
        self.acceleration = np.zeros(2)
        self.fallen = False

    @property
    def is_falling(self) -> bool:
        """True while the subject is in free fall."""
        return self.acceleration[1] < 0.0

    def update(self, dt: float, time_s: float) -> None:
        """
        Advance the subject by one time step.

        Args:
            dt: Time step [s]
            time_s: Scenario time at the end of the step [s]
        """
        if (
            self.kind == SubjectKind.FALLER
            and not self.fallen
            and self.fall_time_s is not None
            and time_s >= self.fall_time_s
        ):
            self.acceleration = np.array([0.0, -self.fall_accel_mps2])

        self.position, self.velocity = _update_kinematics_ca(
            self.position, self.velocity, self.acceleration, dt
        )

        if self.is_falling and self.position[1] <= self.floor_y:
            self.position[1] = self.floor_y
            self.velocity = np.zeros(2)
            self.acceleration = np.zeros(2)
            self.fallen = True

        if self.lane is not None:
            x_min, x_max = self.lane
            if self.position[0] < x_min or self.position[0] > x_max:
                self.position[0] = min(max(self.position[0], x_min), x_max)
                self.velocity[0] = -self.velocity[0]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "subject_id": self.subject_id,
            "kind": self.kind.value,
            "position": self.position.tolist(),
            "velocity": self.velocity.tolist(),
            "fallen": self.fallen,
        }


class Scenario:
    """
    Collection of subjects observed by a noisy sensor.

    Example:
        >>> scenario = Scenario.generate(walkers=2, fallers=1, seed=7)
        >>> detections = scenario.step(0.05)
    """

    def __init__(
        self,
        subjects: List[Subject],
        channel_count: int = 6,
        noise_std_m: float = 0.05,
        detection_probability: float = 1.0,
        seed: Optional[int] = None,
    ) -> None:
        """
        Args:
            subjects: Simulated people
            channel_count: Number of acquisition channels (angular sectors)
            noise_std_m: Gaussian position noise per axis [m]
            detection_probability: Chance each subject is detected per scan
            seed: Random seed for reproducibility
        """
        if channel_count <= 0:
            raise ValueError(f"channel_count must be positive, got {channel_count}")
        if not 0.0 <= detection_probability <= 1.0:
            raise ValueError(
                f"detection_probability must be in [0, 1], got {detection_probability}"
            )

        self.subjects = subjects
        self.channel_count = channel_count
        self.noise_std_m = noise_std_m
        self.detection_probability = detection_probability
        self.rng = np.random.default_rng(seed)
        self.time_s = 0.0

    def channel_for(self, position: Tuple[float, float]) -> int:
        """Angular sector of a position, seen from the sensor at the origin."""
        angle = np.arctan2(position[1], position[0])  # [-pi, pi]
        normalized = (angle + np.pi) / (2.0 * np.pi)
        return int(normalized * self.channel_count) % self.channel_count

    def step(self, dt: float) -> List[Detection]:
        """
        Advance all subjects and return this scan's detections.

        Args:
            dt: Scan interval [s]

        Returns:
            (channel_id, (x, y)) pairs
        """
        self.time_s += dt
        detections = []

        for subject in self.subjects:
            subject.update(dt, self.time_s)

            if self.rng.random() > self.detection_probability:
                continue

            noise = self.rng.normal(0.0, self.noise_std_m, size=2) if self.noise_std_m > 0 else 0.0
            measured = subject.position + noise
            position = (float(measured[0]), float(measured[1]))
            detections.append((self.channel_for(position), position))

        return detections

    @classmethod
    def generate(
        cls,
        walkers: int = 2,
        fallers: int = 1,
        lane_spacing_m: float = 4.0,
        standing_height_m: float = 1.7,
        walking_speed_mps: float = 0.8,
        fall_window_s: Tuple[float, float] = (2.0, 6.0),
        fall_accel_mps2: float = GRAVITY_MPS2,
        channel_count: int = 6,
        noise_std_m: float = 0.05,
        detection_probability: float = 1.0,
        seed: Optional[int] = None,
    ) -> "Scenario":
        """
        Build a random scenario with every subject in its own lane.

        Lanes are lane_spacing_m apart so subjects never come within the
        association gate of each other.
        """
        rng = np.random.default_rng(seed)
        subjects = []
        half_lane = lane_spacing_m / 5.0

        for idx in range(walkers + fallers):
            center = 1.0 + idx * lane_spacing_m
            x0 = center + rng.uniform(-half_lane, half_lane)
            is_faller = idx >= walkers

            if is_faller:
                velocity = np.zeros(2)
                fall_time = float(rng.uniform(*fall_window_s))
            else:
                direction = 1.0 if rng.random() < 0.5 else -1.0
                velocity = np.array([direction * walking_speed_mps, 0.0])
                fall_time = None

            subjects.append(
                Subject(
                    subject_id=idx + 1,
                    position=np.array([x0, standing_height_m]),
                    velocity=velocity,
                    kind=SubjectKind.FALLER if is_faller else SubjectKind.WALKER,
                    lane=(center - half_lane, center + half_lane),
                    fall_time_s=fall_time,
                    fall_accel_mps2=fall_accel_mps2,
                )
            )

        return cls(
            subjects,
            channel_count=channel_count,
            noise_std_m=noise_std_m,
            detection_probability=detection_probability,
            seed=seed,
        )

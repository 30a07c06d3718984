"""
Fall-Risk Detector

Heuristic fall-risk scoring over a track's filtered kinematics, plus a
short-horizon ballistic trajectory preview used for alert display.

Risk accumulates from four independent conditions, capped at 1.0:

Condition                          | Threshold      | Weight
-----------------------------------|----------------|-------
Downward acceleration (free fall)  | ay < -9.5 m/s² | +0.4
Downward velocity                  | vy < -2.0 m/s  | +0.3
Acceleration magnitude spike       | |a| > 15 m/s²  | +0.2
Rapid motion                       | |v| > 4.0 m/s  | +0.1

A track is falling when the score exceeds 0.7.
"""

from typing import Iterator, Tuple

import numpy as np

GRAVITY_WEIGHT = 0.4
DOWNWARD_VELOCITY_WEIGHT = 0.3
ACCELERATION_SPIKE_WEIGHT = 0.2
RAPID_MOTION_WEIGHT = 0.1


class FallTrajectory:
    """
    Lazy ballistic trajectory preview.

    Iterating yields `steps` future positions. Each iteration restarts
    from the captured initial conditions, so the preview can be consumed
    more than once.
    """

    def __init__(
        self,
        position: Tuple[float, float],
        velocity: Tuple[float, float],
        steps: int,
        gravity_mps2: float = 9.81,
        dt: float = 0.05,
    ) -> None:
        self.position = (float(position[0]), float(position[1]))
        self.velocity = (float(velocity[0]), float(velocity[1]))
        self.steps = max(int(steps), 0)
        self.gravity = np.array([0.0, -gravity_mps2])
        self.dt = dt

    def __len__(self) -> int:
        return self.steps

    def __iter__(self) -> Iterator[Tuple[float, float]]:
        pos = np.array(self.position, dtype=np.float64)
        vel = np.array(self.velocity, dtype=np.float64)
        dt = self.dt

        for _ in range(self.steps):
            # p = p0 + v*dt + 0.5*g*dt², exact under constant gravity
            pos = pos + vel * dt + 0.5 * self.gravity * dt * dt
            vel = vel + self.gravity * dt
            yield (float(pos[0]), float(pos[1]))

    def to_array(self) -> np.ndarray:
        """Materialize the preview as an (steps, 2) array."""
        return np.array(list(self), dtype=np.float64).reshape(-1, 2)


class FallDetector:
    """
    Stateless fall-risk scoring against fixed thresholds.

    Example:
        >>> detector = FallDetector()
        >>> risk = detector.analyze_fall_risk(velocity=(0.0, -5.0), acceleration=(0.0, -10.0))
        >>> detector.is_falling(risk)
        True
    """

    def __init__(
        self,
        gravity_threshold: float = -9.5,
        velocity_threshold: float = 2.0,
        acceleration_threshold: float = 15.0,
        falling_threshold: float = 0.7,
        gravity_mps2: float = 9.81,
        preview_step_s: float = 0.05,
    ) -> None:
        """
        Args:
            gravity_threshold: Downward acceleration counted as free fall [m/s²]
            velocity_threshold: Downward speed counted as falling [m/s];
                                twice this is the rapid-motion threshold
            acceleration_threshold: Acceleration magnitude spike [m/s²]
            falling_threshold: Score above which a track is falling
            gravity_mps2: Gravity used by trajectory previews [m/s²]
            preview_step_s: Trajectory preview time step [s]
        """
        self.gravity_threshold = gravity_threshold
        self.velocity_threshold = velocity_threshold
        self.acceleration_threshold = acceleration_threshold
        self.falling_threshold = falling_threshold
        self.gravity_mps2 = gravity_mps2
        self.preview_step_s = preview_step_s

    def analyze_fall_risk(
        self, velocity: Tuple[float, float], acceleration: Tuple[float, float]
    ) -> float:
        """
        Score fall risk from current kinematics.

        Args:
            velocity: Filtered velocity (vx, vy) in m/s
            acceleration: Filtered acceleration (ax, ay) in m/s²

        Returns:
            Risk score in [0, 1]
        """
        risk = 0.0

        # Free fall
        if acceleration[1] < self.gravity_threshold:
            risk += GRAVITY_WEIGHT

        # High downward velocity
        if velocity[1] < -self.velocity_threshold:
            risk += DOWNWARD_VELOCITY_WEIGHT

        # Sudden acceleration
        if np.hypot(acceleration[0], acceleration[1]) > self.acceleration_threshold:
            risk += ACCELERATION_SPIKE_WEIGHT

        # Rapid position change
        if np.hypot(velocity[0], velocity[1]) > self.velocity_threshold * 2.0:
            risk += RAPID_MOTION_WEIGHT

        return min(max(risk, 0.0), 1.0)

    def is_falling(self, risk: float) -> bool:
        return risk > self.falling_threshold

    def predict_fall_trajectory(
        self, position: Tuple[float, float], velocity: Tuple[float, float], steps: int
    ) -> FallTrajectory:
        """Ballistic preview of `steps` future positions; never touches the track."""
        return FallTrajectory(
            position,
            velocity,
            steps,
            gravity_mps2=self.gravity_mps2,
            dt=self.preview_step_s,
        )

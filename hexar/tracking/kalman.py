"""
Constant Acceleration Kalman Filter for Person Tracking

Implements a Constant Acceleration (CA) motion model driven by position-only
radar detections. One filter instance is owned by each live track.

State Vector: [x, y, vx, vy, ax, ay]^T
    - x, y: Position in Cartesian coordinates (meters)
    - vx, vy: Velocity components (m/s)
    - ax, ay: Acceleration components (m/s²)

The correction step commits the full gain-weighted innovation to every row
of the state vector, so velocity and acceleration converge from position
measurements alone.

Reference:
    - Bar-Shalom, Y. "Estimation with Applications to Tracking and Navigation", 2001
    - Blackman, S. "Design and Analysis of Modern Tracking Systems", 1999
"""

from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np
from scipy.linalg import cho_factor, cho_solve

STATE_DIM = 6
MEASUREMENT_DIM = 2

# Innovation covariances above this condition number are treated as singular
MAX_INNOVATION_CONDITION = 1e12


class SingularInnovationError(np.linalg.LinAlgError):
    """Innovation covariance could not be inverted; the update was not applied."""


@dataclass
class KalmanState:
    """
    State container for Kalman Filter.

    Attributes:
        x: State vector [x, y, vx, vy, ax, ay]
        P: State covariance matrix (6x6)
    """

    x: np.ndarray  # State vector
    P: np.ndarray  # Covariance matrix


class ConstantAccelerationKalmanFilter:
    """
    Kalman Filter for 2D person tracking.

    Uses Constant Acceleration (CA) motion model:
        x_{k+1} = x_k + vx * dt + 0.5 * ax * dt²
        vx_{k+1} = vx_k + ax * dt
        ax_{k+1} = ax_k (constant)
        (same for y)

    Measurement model:
        z = [x, y] (position only from radar)

    Example:
        >>> kf = ConstantAccelerationKalmanFilter((1.0, 2.0))
        >>> kf.predict(dt=0.1)
        >>> kf.update((1.05, 2.02))
        >>> kf.get_position()
    """

    def __init__(
        self,
        initial_position: Tuple[float, float],
        initial_covariance: float = 100.0,
        process_noise: Union[float, Sequence[float]] = 0.1,
        measurement_noise: float = 1.0,
    ) -> None:
        """
        Initialize the filter at a first detection.

        Args:
            initial_position: First detected position (x, y) in meters
            initial_covariance: Diagonal of the initial covariance P0
                                (large: uncertainty dominates)
            process_noise: Diagonal of the process noise covariance Q. A
                           scalar applies to every state; a (position,
                           velocity, acceleration) triple sets each pair
            measurement_noise: Diagonal of the measurement noise covariance R
        """
        self.process_noise = process_noise
        self.measurement_noise = measurement_noise

        # Measurement matrix H: We only observe position [x, y]
        self.H = np.zeros((MEASUREMENT_DIM, STATE_DIM), dtype=np.float64)
        self.H[0, 0] = 1.0
        self.H[1, 1] = 1.0

        # State order is [x, y, vx, vy, ax, ay], so each term covers two entries
        q = np.broadcast_to(np.asarray(process_noise, dtype=np.float64), (3,))
        self.Q = np.diag(np.repeat(q, 2))
        self.R = np.eye(MEASUREMENT_DIM) * measurement_noise

        x = np.zeros(STATE_DIM, dtype=np.float64)
        x[0] = initial_position[0]
        x[1] = initial_position[1]
        self.state = KalmanState(x=x, P=np.eye(STATE_DIM) * initial_covariance)

    @staticmethod
    def _get_transition_matrix(dt: float) -> np.ndarray:
        """
        Get state transition matrix F for time step dt.

        Constant acceleration model:
        | 1  0  dt  0  dt²/2   0    |
        | 0  1  0   dt  0     dt²/2 |
        | 0  0  1   0   dt     0    |
        | 0  0  0   1   0      dt   |
        | 0  0  0   0   1      0    |
        | 0  0  0   0   0      1    |
        """
        half_dt2 = 0.5 * dt * dt
        F = np.eye(STATE_DIM, dtype=np.float64)
        F[0, 2] = dt
        F[1, 3] = dt
        F[0, 4] = half_dt2
        F[1, 5] = half_dt2
        F[2, 4] = dt
        F[3, 5] = dt
        return F

    def predict(self, dt: float) -> KalmanState:
        """
        Predict state to next time step.

        Prediction equations:
            x_pred = F * x
            P_pred = F * P * F^T + Q

        Args:
            dt: Time step (seconds)

        Returns:
            Predicted state
        """
        F = self._get_transition_matrix(dt)

        x_pred = F @ self.state.x
        P_pred = F @ self.state.P @ F.T + self.Q

        self.state = KalmanState(x=x_pred, P=P_pred)
        return self.state

    def update(self, measurement: Tuple[float, float]) -> KalmanState:
        """
        Update state with measurement.

        Update equations:
            y = z - H * x          (innovation)
            S = H * P * H^T + R    (innovation covariance)
            K = P * H^T * S^-1     (Kalman gain)
            x_new = x + K * y
            P_new = (I - K * H) * P

        Args:
            measurement: Position measurement (x, y) in meters

        Returns:
            Updated state

        Raises:
            SingularInnovationError: If S cannot be inverted. The filter
                state is left as predicted.
        """
        z = np.asarray(measurement, dtype=np.float64)
        x, P = self.state.x, self.state.P

        # Innovation (measurement residual)
        y = z - self.H @ x

        # Innovation covariance
        S = self.H @ P @ self.H.T + self.R

        if not np.all(np.isfinite(S)):
            raise SingularInnovationError("Innovation covariance is not finite")
        cond = np.linalg.cond(S)
        if not np.isfinite(cond) or cond > MAX_INNOVATION_CONDITION:
            raise SingularInnovationError("Innovation covariance is ill-conditioned")

        # Kalman gain, K = P H^T S^-1 solved through the Cholesky factor of S
        try:
            factor = cho_factor(S)
        except (np.linalg.LinAlgError, ValueError) as exc:
            raise SingularInnovationError(
                f"Innovation covariance not invertible: {exc}"
            ) from exc
        K = cho_solve(factor, self.H @ P).T

        x_new = x + K @ y
        P_new = (np.eye(STATE_DIM) - K @ self.H) @ P

        self.state = KalmanState(x=x_new, P=P_new)
        return self.state

    def get_position(self) -> Tuple[float, float]:
        """Extract position from state."""
        return (float(self.state.x[0]), float(self.state.x[1]))

    def get_velocity(self) -> Tuple[float, float]:
        """Extract velocity from state."""
        return (float(self.state.x[2]), float(self.state.x[3]))

    def get_acceleration(self) -> Tuple[float, float]:
        """Extract acceleration from state."""
        return (float(self.state.x[4]), float(self.state.x[5]))

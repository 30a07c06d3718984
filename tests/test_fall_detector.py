"""
Fall-Risk Detector Test Suite

Test ID | Description                    | Reference                 | Tolerance
--------|--------------------------------|---------------------------|-----------
1       | Individual risk conditions     | Weights 0.4/0.3/0.2/0.1   | 1e-9
2       | Falling scenario               | v=(0,-5), a=(0,-10)       | > 0.7
3       | Score cap                      | All conditions            | <= 1.0
4       | First ballistic preview step   | y = -0.5*g*dt²            | 1e-12
5       | Preview is restartable         | Two iterations equal      | Exact
"""

import os
import sys

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from hexar.tracking.fall_detector import FallDetector, FallTrajectory

# =============================================================================
# TEST 1-3: Risk scoring
# =============================================================================


class TestFallRisk:
    @pytest.fixture
    def detector(self):
        return FallDetector()

    def test_at_rest_is_zero(self, detector):
        assert detector.analyze_fall_risk((0.0, 0.0), (0.0, 0.0)) == 0.0

    def test_free_fall_acceleration(self, detector):
        assert detector.analyze_fall_risk((0.0, 0.0), (0.0, -9.6)) == pytest.approx(0.4)

    def test_downward_velocity(self, detector):
        assert detector.analyze_fall_risk((0.0, -2.1), (0.0, 0.0)) == pytest.approx(0.3)

    def test_upward_velocity_not_counted(self, detector):
        assert detector.analyze_fall_risk((0.0, 3.0), (0.0, 0.0)) == 0.0

    def test_acceleration_spike(self, detector):
        assert detector.analyze_fall_risk((0.0, 0.0), (16.0, 0.0)) == pytest.approx(0.2)

    def test_rapid_motion(self, detector):
        assert detector.analyze_fall_risk((4.1, 0.0), (0.0, 0.0)) == pytest.approx(0.1)

    def test_falling_scenario(self, detector):
        """Free fall + downward velocity + rapid motion"""
        risk = detector.analyze_fall_risk((0.0, -5.0), (0.0, -10.0))

        assert risk == pytest.approx(0.8)
        assert risk > 0.7
        assert detector.is_falling(risk)

    def test_score_is_capped(self, detector):
        risk = detector.analyze_fall_risk((0.0, -5.0), (0.0, -20.0))

        assert risk <= 1.0
        assert risk == pytest.approx(1.0)

    def test_threshold_is_exclusive(self, detector):
        assert not detector.is_falling(0.7)
        assert detector.is_falling(0.71)

    def test_custom_thresholds(self):
        detector = FallDetector(velocity_threshold=1.0)

        assert detector.analyze_fall_risk((0.0, -1.5), (0.0, 0.0)) == pytest.approx(0.3)


# =============================================================================
# TEST 4-5: Trajectory preview
# =============================================================================


class TestTrajectoryPreview:
    """
    Validate ballistic previews.

    Reference: y = y0 + vy*t - 0.5*g*t²
    """

    def test_first_step_under_gravity(self):
        preview = FallDetector().predict_fall_trajectory((0.0, 0.0), (0.0, 0.0), 1)
        points = list(preview)

        assert len(points) == 1
        assert points[0][0] == pytest.approx(0.0)
        assert points[0][1] == pytest.approx(-0.5 * 9.81 * 0.05**2, abs=1e-12)

    def test_matches_closed_form(self):
        steps = 20
        preview = FallTrajectory((1.0, 2.0), (0.5, 1.0), steps)
        t = steps * 0.05

        x, y = list(preview)[-1]

        assert x == pytest.approx(1.0 + 0.5 * t)
        assert y == pytest.approx(2.0 + 1.0 * t - 0.5 * 9.81 * t * t)

    def test_length_and_restart(self):
        preview = FallTrajectory((0.0, 1.0), (1.0, 0.0), 5)

        first = list(preview)
        second = list(preview)

        assert len(preview) == 5
        assert first == second

    def test_zero_and_negative_steps(self):
        assert list(FallTrajectory((0.0, 0.0), (0.0, 0.0), 0)) == []
        assert list(FallTrajectory((0.0, 0.0), (0.0, 0.0), -3)) == []

    def test_to_array_shape(self):
        arr = FallTrajectory((0.0, 0.0), (0.0, 0.0), 7).to_array()

        assert arr.shape == (7, 2)
        assert np.all(np.diff(arr[:, 1]) < 0)

    def test_empty_to_array_shape(self):
        assert FallTrajectory((0.0, 0.0), (0.0, 0.0), 0).to_array().shape == (0, 2)

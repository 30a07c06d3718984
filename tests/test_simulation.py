"""
Simulation and Scan Loop Test Suite

Tests for synthetic subjects, detection generation, the headless scan loop
and the CLI.

Test ID | Description                    | Reference           | Tolerance
--------|--------------------------------|---------------------|------------
1       | Walker constant velocity       | x = x0 + v*t        | ±1e-9 m
2       | Faller drop and rest           | y -> floor          | Exact
3       | Detection generation           | One per subject     | Exact
4       | Scan loop track accounting     | One track / subject | Exact
5       | Fall alerts with previews      | Once per track      | Exact
6       | End-to-end fall detection      | Risk > 0.7          | Exact
"""

import json
import os
import sys

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import headless
from hexar.io.config_loader import FALL_RESPONSE_PROCESS_NOISE, TrackerConfig
from hexar.simulation import Scenario, ScanLoop, Subject, SubjectKind
from hexar.tracking import TrackManager, TrackStatus
from hexar.visualization import plot_tracks

# =============================================================================
# TEST 1-2: Subjects
# =============================================================================


class TestSubjects:
    def test_walker_constant_velocity(self):
        subject = Subject(subject_id=1, position=[0.0, 1.7], velocity=[0.5, 0.0])

        for k in range(1, 21):
            subject.update(0.05, k * 0.05)

        assert subject.position[0] == pytest.approx(0.5, abs=1e-9)
        assert subject.position[1] == pytest.approx(1.7)

    def test_walker_reflects_in_lane(self):
        subject = Subject(
            subject_id=1, position=[0.9, 1.7], velocity=[1.0, 0.0], lane=(0.0, 1.0)
        )

        subject.update(0.2, 0.2)

        assert subject.position[0] == pytest.approx(1.0)
        assert subject.velocity[0] == pytest.approx(-1.0)

    def test_faller_waits_then_falls_to_floor(self):
        subject = Subject(
            subject_id=1, position=[0.0, 1.7], kind=SubjectKind.FALLER, fall_time_s=1.0
        )
        dt = 0.05

        for k in range(1, 20):
            subject.update(dt, k * dt)
        assert subject.position[1] == pytest.approx(1.7)
        assert not subject.fallen

        for k in range(20, 60):
            subject.update(dt, k * dt)

        assert subject.fallen
        assert subject.position[1] == 0.0
        assert not subject.is_falling
        assert np.all(subject.velocity == 0.0)

    def test_fall_acceleration_sets_landing_time(self):
        hard = Subject(
            subject_id=1,
            position=[0.0, 1.7],
            kind=SubjectKind.FALLER,
            fall_time_s=0.0,
            fall_accel_mps2=12.0,
        )
        soft = Subject(
            subject_id=2, position=[0.0, 1.7], kind=SubjectKind.FALLER, fall_time_s=0.0
        )
        dt = 0.05

        for k in range(1, 11):
            hard.update(dt, k * dt)
            soft.update(dt, k * dt)
        assert hard.position[1] == pytest.approx(1.7 - 0.5 * 12.0 * 0.5**2)
        assert soft.position[1] == pytest.approx(1.7 - 0.5 * 9.81 * 0.5**2)

        hard.update(dt, 11 * dt)
        soft.update(dt, 11 * dt)
        assert hard.fallen
        assert not soft.fallen

    def test_to_dict(self):
        data = Subject(subject_id=3, position=[1.0, 2.0]).to_dict()

        assert data["subject_id"] == 3
        assert data["kind"] == "walker"
        assert data["position"] == [1.0, 2.0]


# =============================================================================
# TEST 3: Scenario detections
# =============================================================================


class TestScenario:
    def test_one_detection_per_subject(self):
        scenario = Scenario.generate(walkers=3, fallers=1, seed=5)

        detections = scenario.step(0.05)

        assert len(detections) == 4
        for channel, (x, y) in detections:
            assert 0 <= channel < scenario.channel_count

    def test_detection_probability_zero(self):
        scenario = Scenario.generate(walkers=2, fallers=0, detection_probability=0.0, seed=1)

        assert scenario.step(0.05) == []

    def test_noise_free_positions(self):
        subject = Subject(subject_id=1, position=[2.0, 1.0])
        scenario = Scenario([subject], noise_std_m=0.0)

        (channel, position), = scenario.step(0.05)

        assert position == pytest.approx((2.0, 1.0))

    def test_channel_sectors(self):
        scenario = Scenario([], channel_count=4)

        assert scenario.channel_for((-1.0, -0.01)) == 0
        assert scenario.channel_for((0.01, -1.0)) == 1
        assert scenario.channel_for((1.0, 0.01)) == 2
        assert scenario.channel_for((-0.01, 1.0)) == 3

    def test_seed_is_reproducible(self):
        a = Scenario.generate(walkers=2, fallers=1, seed=9)
        b = Scenario.generate(walkers=2, fallers=1, seed=9)

        assert a.step(0.05) == b.step(0.05)

    def test_lanes_keep_subjects_apart(self):
        scenario = Scenario.generate(walkers=4, fallers=2, seed=2)
        xs = sorted(s.position[0] for s in scenario.subjects)

        assert np.all(np.diff(xs) > 2.0)

    def test_fall_acceleration_reaches_fallers(self):
        scenario = Scenario.generate(walkers=1, fallers=2, fall_accel_mps2=14.0, seed=6)

        walker, *fallers = scenario.subjects
        assert walker.kind == SubjectKind.WALKER
        assert [s.fall_accel_mps2 for s in fallers] == [14.0, 14.0]

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            Scenario([], channel_count=0)
        with pytest.raises(ValueError):
            Scenario([], detection_probability=1.5)


# =============================================================================
# TEST 4-5: Scan loop
# =============================================================================


class TestScanLoop:
    def test_one_track_per_subject(self):
        scenario = Scenario.generate(walkers=2, fallers=1, noise_std_m=0.02, seed=11)
        loop = ScanLoop(TrackManager(TrackerConfig()), scenario, rate_hz=20.0)

        result = loop.run(duration_s=4.0)

        assert result.cycles == 80
        assert result.duration_s == pytest.approx(4.0)
        assert result.tracks_created == 3
        assert result.max_tracks == 3
        assert result.dropped == 0
        assert len(result.final_tracks) == 3

    def test_missed_subjects_are_pruned(self):
        scenario = Scenario.generate(walkers=1, fallers=0, seed=4)
        manager = TrackManager(TrackerConfig())
        loop = ScanLoop(manager, scenario, rate_hz=10.0)
        loop.run(duration_s=1.0)

        scenario.detection_probability = 0.0
        result = loop.run(duration_s=2.0)

        assert result.tracks_pruned == 1
        assert manager.get_track_count() == 0

    def test_alerts_raised_once_with_previews(self, monkeypatch):
        scenario = Scenario.generate(walkers=2, fallers=0, seed=3)
        manager = TrackManager(TrackerConfig())
        monkeypatch.setattr(manager.fall_detector, "analyze_fall_risk", lambda v, a: 0.95)
        loop = ScanLoop(manager, scenario, rate_hz=20.0, preview_steps=6)

        result = loop.run(duration_s=1.0)

        assert len(result.alerts) == 2
        assert len({a.track_id for a in result.alerts}) == 2
        for alert in result.alerts:
            assert len(alert.trajectory) == 6
            assert alert.fall_risk == pytest.approx(0.95)
        assert all(t.status == TrackStatus.FALLING for t in result.final_tracks)

    def test_fall_detected_end_to_end(self):
        """Noise-free drop at 12 m/s² raises exactly one alert, on the faller"""
        config = TrackerConfig(
            process_noise=FALL_RESPONSE_PROCESS_NOISE, measurement_noise=0.05**2
        )
        scenario = Scenario.generate(
            walkers=1, fallers=1, fall_accel_mps2=12.0, noise_std_m=0.0, seed=21
        )
        faller = scenario.subjects[1]
        loop = ScanLoop(TrackManager(config), scenario, rate_hz=20.0, preview_steps=8)

        result = loop.run(duration_s=8.0)

        assert faller.fallen
        assert len(result.alerts) == 1
        alert = result.alerts[0]
        assert alert.fall_risk > 0.7
        assert faller.fall_time_s < alert.time_s < faller.fall_time_s + 0.6
        assert alert.position[0] == pytest.approx(faller.position[0], abs=1e-6)

        assert len(alert.trajectory) == 8
        heights = [y for _, y in alert.trajectory]
        assert heights[0] < alert.position[1]
        assert all(b < a for a, b in zip(heights, heights[1:]))

    def test_noisy_gravity_fall_is_detected(self):
        config = TrackerConfig(
            process_noise=FALL_RESPONSE_PROCESS_NOISE, measurement_noise=0.05**2
        )
        scenario = Scenario.generate(walkers=0, fallers=1, noise_std_m=0.05, seed=5)
        faller = scenario.subjects[0]
        loop = ScanLoop(TrackManager(config), scenario, rate_hz=20.0)

        result = loop.run(duration_s=8.0)

        assert faller.fallen
        assert any(
            faller.fall_time_s < a.time_s < faller.fall_time_s + 0.8 for a in result.alerts
        )
        assert all(len(a.trajectory) == 10 for a in result.alerts)

    def test_default_tuning_misses_short_fall(self):
        """Uniform Q lags too far behind a 1.7 m drop to score it as falling"""
        scenario = Scenario.generate(walkers=0, fallers=1, noise_std_m=0.0, seed=21)

        result = ScanLoop(TrackManager(TrackerConfig()), scenario).run(duration_s=8.0)

        assert scenario.subjects[0].fallen
        assert result.alerts == []

    def test_result_to_dict_is_json_serializable(self):
        scenario = Scenario.generate(walkers=1, fallers=1, seed=8)
        result = ScanLoop(TrackManager(), scenario).run(duration_s=0.5)

        data = json.loads(json.dumps(result.to_dict()))

        assert data["cycles"] == 10
        assert len(data["final_tracks"]) == 2

    def test_invalid_rate(self):
        with pytest.raises(ValueError):
            ScanLoop(TrackManager(), Scenario([]), rate_hz=0.0)


# =============================================================================
# CLI and plotting
# =============================================================================


class TestHeadlessCli:
    def test_json_summary(self, capsys):
        code = headless.main(["--duration", "1", "--rate", "20", "--seed", "3", "--json"])
        out = capsys.readouterr().out

        assert code == 0
        assert json.loads(out)["cycles"] == 20

    def test_plot_written(self, tmp_path, capsys):
        path = tmp_path / "tracks.png"

        code = headless.main(["--duration", "0.5", "--seed", "1", "--plot", str(path)])

        assert code == 0
        assert path.exists()
        assert "Plot saved" in capsys.readouterr().out

    def test_missing_config(self, tmp_path, capsys):
        code = headless.main(["--config", str(tmp_path / "nope.yaml")])

        assert code == 1


class TestPlotting:
    def test_returns_figure_without_path(self):
        import matplotlib.pyplot as plt

        manager = TrackManager()
        track_id = manager.create(0, (1.0, 1.5))
        preview = list(manager.trajectory_preview(track_id, 5))

        fig = plot_tracks(manager.get_all_tracks(), {track_id: preview})

        assert fig is not None
        plt.close(fig)

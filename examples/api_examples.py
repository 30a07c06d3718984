"""
Hexar API Examples

Usage examples demonstrating the tracking engine API.
"""

import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def example_multi_channel_tracking():
    """
    Example 1: Tracks on Several Channels

    Create tracks on different antennas, move them, and query counts.
    """
    from hexar import TrackManager

    clock = [0.0]
    manager = TrackManager(clock=lambda: clock[0])

    walker = manager.create(1, (-1.0, 3.0))
    manager.create(0, (1.0, 1.0))
    manager.create(0, (4.0, 1.0))
    manager.create(2, (0.0, -2.0))

    for step in range(1, 21):
        clock[0] = step * 0.1
        manager.update(walker, (-1.0 + step * 0.05, 3.0))

    print("=== Multi-Channel Tracking ===")
    print(f"Total tracks: {manager.get_track_count()}")
    for channel, count in manager.get_channel_counts().items():
        if count:
            print(f"Channel {channel}: {count} tracks")
    track = manager.get_track(walker)
    print(f"Walker velocity: ({track.velocity[0]:.2f}, {track.velocity[1]:.2f}) m/s")


def example_fall_scoring():
    """
    Example 2: Fall-Risk Scoring

    Score kinematics against the fall thresholds and preview the trajectory.
    """
    from hexar import FallDetector

    detector = FallDetector()

    print("\n=== Fall-Risk Scoring ===")
    cases = {
        "standing": ((0.0, 0.0), (0.0, 0.0)),
        "walking": ((1.2, 0.0), (0.1, 0.0)),
        "falling": ((0.0, -5.0), (0.0, -10.0)),
    }
    for name, (velocity, acceleration) in cases.items():
        risk = detector.analyze_fall_risk(velocity, acceleration)
        print(f"{name:>9}: risk={risk:.2f} falling={detector.is_falling(risk)}")

    preview = detector.predict_fall_trajectory((0.0, 1.7), (0.0, -5.0), 5)
    print("Preview: " + " ".join(f"({x:.2f},{y:.2f})" for x, y in preview))


def example_scan_loop():
    """
    Example 3: Headless Scan Loop

    Drive the engine with simulated walkers and a faller.
    """
    from hexar import TrackerConfig, TrackManager
    from hexar.io import FALL_RESPONSE_PROCESS_NOISE
    from hexar.simulation import Scenario, ScanLoop

    config = TrackerConfig(process_noise=FALL_RESPONSE_PROCESS_NOISE, measurement_noise=0.05**2)
    scenario = Scenario.generate(walkers=2, fallers=1, seed=42)
    result = ScanLoop(TrackManager(config), scenario, rate_hz=20.0).run(duration_s=8.0)

    print("\n=== Scan Loop ===")
    print(f"Cycles: {result.cycles}")
    print(f"Tracks created: {result.tracks_created}")
    print(f"Fall alerts: {len(result.alerts)}")
    for alert in result.alerts:
        print(f"  t={alert.time_s:.2f}s track {alert.track_id} risk={alert.fall_risk:.2f}")
        print("  Preview: " + " ".join(f"({x:.2f},{y:.2f})" for x, y in alert.trajectory[:4]))


if __name__ == "__main__":
    print("Hexar API Examples")
    print("=" * 60)

    example_multi_channel_tracking()
    example_fall_scoring()
    example_scan_loop()

    print("\n" + "=" * 60)
    print("All examples completed successfully!")

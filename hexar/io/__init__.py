"""
I/O Module

Configuration loading for the tracking engine.
"""

from .config_loader import FALL_RESPONSE_PROCESS_NOISE, TrackerConfig, load_tracker_config

__all__ = ["FALL_RESPONSE_PROCESS_NOISE", "TrackerConfig", "load_tracker_config"]

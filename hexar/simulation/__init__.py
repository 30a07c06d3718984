"""
Simulation Module

Synthetic detection sources and a headless scan loop for the tracking engine.
"""

from .scan_loop import FallAlert, ScanLoop, ScanLoopResult
from .scenario import Scenario, Subject, SubjectKind

__all__ = ["Scenario", "Subject", "SubjectKind", "ScanLoop", "ScanLoopResult", "FallAlert"]

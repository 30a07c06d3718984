"""
Visualization Module

Static rendering of tracks and fall trajectory previews.
"""

from .track_plot import plot_tracks

__all__ = ["plot_tracks"]

"""
Track Plotting

Renders live tracks and fall trajectory previews to an image file with a
non-interactive matplotlib backend.

Symbology:
    - Tracking: blue circle
    - Predicted: grey circle
    - Falling: red triangle, with its ballistic preview as a dashed line
    - Velocity: arrow from each track position
"""

from typing import Dict, List, Optional, Sequence, Tuple

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend

import matplotlib.pyplot as plt  # noqa: E402

from hexar.tracking import TrackSnapshot, TrackStatus  # noqa: E402

STATUS_STYLE = {
    TrackStatus.TRACKING: ("o", "tab:blue"),
    TrackStatus.PREDICTED: ("o", "tab:gray"),
    TrackStatus.FALLING: ("^", "tab:red"),
}


def plot_tracks(
    tracks: Sequence[TrackSnapshot],
    previews: Optional[Dict[int, List[Tuple[float, float]]]] = None,
    save_path: Optional[str] = None,
    title: str = "Tracked Persons",
):
    """
    Plot track positions, velocities and fall previews.

    Args:
        tracks: Track snapshots to draw
        previews: Optional {track_id: [(x, y), ...]} trajectory previews
        save_path: If given, the figure is written there and closed
        title: Axes title

    Returns:
        The matplotlib Figure (None once saved and closed)
    """
    previews = previews or {}
    fig, ax = plt.subplots(figsize=(10, 6))

    for track in tracks:
        marker, color = STATUS_STYLE[track.status]
        x, y = track.position
        ax.plot(x, y, marker, color=color, markersize=8)
        ax.annotate(
            f"{track.id} ({track.fall_risk:.1f})",
            (x, y),
            textcoords="offset points",
            xytext=(6, 6),
            fontsize=8,
        )
        if track.speed_mps > 0.0:
            ax.arrow(
                x,
                y,
                track.velocity[0] * 0.25,
                track.velocity[1] * 0.25,
                color=color,
                width=0.01,
                length_includes_head=True,
            )

        trajectory = previews.get(track.id)
        if trajectory:
            xs = [x] + [p[0] for p in trajectory]
            ys = [y] + [p[1] for p in trajectory]
            ax.plot(xs, ys, "--", color="tab:red", alpha=0.7, linewidth=1.5)

    ax.axhline(0.0, color="k", linewidth=0.8, alpha=0.5)  # Floor
    ax.set_xlabel("X (m)", fontsize=12)
    ax.set_ylabel("Height (m)", fontsize=12)
    ax.set_title(title, fontsize=14)
    ax.grid(True, alpha=0.3)

    if save_path:
        fig.savefig(save_path, dpi=100, bbox_inches="tight")
        plt.close(fig)
        return None
    return fig

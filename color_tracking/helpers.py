# helpers.py
"""Small pure functions that don’t fit elsewhere."""
from __future__ import annotations

from color_tracking.common import ActuationCommand, DetectedObject, NormalizedError


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def normalize_error(target: DetectedObject, width: int, height: int) -> NormalizedError:
    """
    Offset of ``target`` from the frame centre, scaled by the frame size.

    x grows to the right, y grows *up* (screen y is flipped), so a centroid
    at (0, 0) gives (-0.5, +0.5).
    """
    err_x = (target.x - width / 2.0) / width
    err_y = (height / 2.0 - target.y) / height
    return NormalizedError(err_x, err_y)


def needs_correction(err: NormalizedError, deadband: float = 0.0) -> bool:
    """False when both axes are inside the deadband (exactly zero by default)."""
    return abs(err.x) > deadband or abs(err.y) > deadband


def make_command(yaw_output: float, pitch_output: float) -> ActuationCommand:
    """Yaw drives stick X; pitch drives stick Y with the vertical sense inverted."""
    return ActuationCommand(
        x=clamp(yaw_output, -1.0, 1.0),
        y=clamp(-pitch_output, -1.0, 1.0),
    )

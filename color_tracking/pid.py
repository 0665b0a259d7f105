# pid.py
"""Discrete per-axis PID controller, one call per control cycle."""
from __future__ import annotations

from color_tracking.config import PIDConfig
from color_tracking.helpers import clamp


class PIDController:
    """
    Positional PID without time scaling.

    Each call to :meth:`output` treats the previous call as one step back:

        integral'  = integral + error
        derivative = error - prev_error
        raw        = kp*error + ki*integral' + kd*derivative

    The result is clamped to ``[out_min, out_max]``. By default the integral
    keeps accumulating while the output is saturated; with ``anti_windup``
    the step is not integrated when it would push further into saturation.
    """

    def __init__(self, cfg: PIDConfig):
        self.cfg = cfg
        self._integral = 0.0
        self._prev_error = 0.0

    @property
    def integral(self) -> float:
        return self._integral

    @property
    def prev_error(self) -> float:
        return self._prev_error

    def output(self, error: float) -> float:
        cfg = self.cfg
        integral = self._integral + error
        derivative = error - self._prev_error
        raw = cfg.kp * error + cfg.ki * integral + cfg.kd * derivative
        out = clamp(raw, cfg.out_min, cfg.out_max)

        if cfg.anti_windup and out != raw and (raw > out) == (error > 0):
            # Saturated and the error pushes the same way: hold the integral.
            integral = self._integral
            raw = cfg.kp * error + cfg.ki * integral + cfg.kd * derivative
            out = clamp(raw, cfg.out_min, cfg.out_max)

        self._integral = integral
        self._prev_error = error
        return out

    def __repr__(self) -> str:
        c = self.cfg
        return (
            f"<PIDController kp={c.kp} ki={c.ki} kd={c.kd} "
            f"out=[{c.out_min}, {c.out_max}] integral={self._integral:.4f}>"
        )

# config.py
"""Typed configuration blobs for the whole system."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

HSV = Tuple[int, int, int]

_INT_COMPONENT = re.compile(r"^[+-]?\d+$")
_HSV_MAX = (179, 255, 255)   # OpenCV 8-bit HSV


class ConfigError(ValueError):
    """Raised for invalid startup configuration (fatal)."""


class ControlMode(str, Enum):
    """Operating mode tag sent along with every stick command."""
    SDK = "SDK"
    FPV = "FPV"
    FREE = "FREE"


# ---------------------- HSV strings -----------------------
def parse_hsv_values(hsv_string: str) -> HSV:
    """
    Parse ``"h,s,v"`` into an integer triple.

    Exactly three comma-separated base-10 integers are accepted; anything
    else raises :class:`ConfigError`.
    """
    components = hsv_string.split(",")
    if len(components) != 3:
        raise ConfigError(
            f"invalid hsv values {hsv_string!r}: expected 3 components, "
            f"got {len(components)}"
        )

    values = []
    for name, raw in zip("hsv", components):
        if not _INT_COMPONENT.match(raw.strip()):
            raise ConfigError(f"invalid {name} value {raw!r}")
        values.append(int(raw))
    return values[0], values[1], values[2]


def format_hsv_values(hsv: HSV) -> str:
    return ",".join(str(int(c)) for c in hsv)


# ---------------------- Color range ------------------------
@dataclass(frozen=True)
class ColorRange:
    """Inclusive HSV bounds. OpenCV scale: H 0‒179, S/V 0‒255."""
    lower: HSV
    upper: HSV

    def __post_init__(self) -> None:
        if len(self.lower) != 3 or len(self.upper) != 3:
            raise ConfigError("color range bounds must have 3 components")
        for name, lo, hi, top in zip("hsv", self.lower, self.upper, _HSV_MAX):
            for bound in (lo, hi):
                if not 0 <= bound <= top:
                    raise ConfigError(
                        f"color range {name}: {bound} outside 0..{top}"
                    )
            if lo > hi:
                raise ConfigError(
                    f"color range {name}: lower bound {lo} exceeds upper bound {hi}"
                )

    @classmethod
    def from_strings(cls, lower: str, upper: str) -> "ColorRange":
        return cls(parse_hsv_values(lower), parse_hsv_values(upper))


# ---------------------- Camera ----------------------
@dataclass
class CameraConfig:
    device_index: int = 0
    width: int = 1280
    height: int = 720
    fps_request: int = 30
    use_v4l2: bool = False
    fourcc_str: str = "MJPG"


# --------------------- Detector ---------------------
@dataclass
class DetectorConfig:
    color_range: ColorRange = field(
        default_factory=lambda: ColorRange((35, 219, 90), (119, 255, 255))
    )
    min_radius: float = 0.0         # px, smaller blobs count as "not found"
    blur_size: int = 0              # odd Gaussian kernel, 0 = off
    morph_iterations: int = 0       # erode+dilate passes, 0 = off

    def __post_init__(self) -> None:
        if self.min_radius < 0:
            raise ConfigError("min_radius must be >= 0")
        if self.blur_size < 0 or (self.blur_size and self.blur_size % 2 == 0):
            raise ConfigError("blur_size must be 0 or a positive odd number")
        if self.morph_iterations < 0:
            raise ConfigError("morph_iterations must be >= 0")


# ----------------------- PID ------------------------
@dataclass
class PIDConfig:
    kp: float = 0.7
    ki: float = 0.0
    kd: float = 0.0
    out_min: float = -1.0
    out_max: float = 1.0
    anti_windup: bool = False

    def __post_init__(self) -> None:
        for name in ("kp", "ki", "kd", "out_min", "out_max"):
            if not math.isfinite(getattr(self, name)):
                raise ConfigError(f"{name} must be a finite number")
        if self.out_min > self.out_max:
            raise ConfigError(
                f"out_min ({self.out_min}) must not exceed out_max ({self.out_max})"
            )


# ---------------------- Gimbal ----------------------
@dataclass
class GimbalConfig:
    port: Optional[str] = None      # "/dev/ttyACM0", COM-port or pyserial URL
    baudrate: int = 115_200
    timeout: float = 1.0
    mode: ControlMode = ControlMode.SDK
    wait_ack: bool = False


# ---------------------- Control ---------------------
@dataclass
class ControlConfig:
    yaw: PIDConfig = field(default_factory=PIDConfig)
    pitch: PIDConfig = field(default_factory=PIDConfig)
    deadband: float = 0.0           # |err| <= deadband on both axes → no command

    def __post_init__(self) -> None:
        if not (0.0 <= self.deadband <= 0.5):
            raise ConfigError("deadband must be within [0, 0.5]")


# ---------------------- Display ---------------------
@dataclass
class DisplayConfig:
    enabled: bool = True
    window_name: str = "Color Tracking"
    scale: float = 0.5              # window size relative to the frame

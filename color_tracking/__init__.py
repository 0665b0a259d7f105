# color_tracking/__init__.py
"""Colour-object gimbal tracking – re-export high-level API."""
from .processor import TrackingProcessor         # noqa: F401
from .config import (                            # noqa: F401
    CameraConfig, ColorRange, ConfigError, ControlConfig, ControlMode,
    DetectorConfig, DisplayConfig, GimbalConfig, PIDConfig,
    parse_hsv_values,
)
from .common import (                            # noqa: F401
    ActuationCommand, CycleReport, DetectedObject, Frame, FrameFormatError,
    NormalizedError, TrackingState,
)

__version__ = "0.1.0"

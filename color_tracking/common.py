# common.py
"""Objects that are shared across multiple modules."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import cv2
import numpy as np

Buffer = Union[bytes, bytearray, memoryview, np.ndarray]


class FrameFormatError(ValueError):
    """A frame's payload does not match its declared shape (per-frame, recoverable)."""


class TrackingState(str, Enum):
    IDLE = "IDLE"
    TRACKING = "TRACKING"


@dataclass(frozen=True)
class Frame:
    """
    One video frame as delivered by the video source.
    ``pix`` is a packed, row-major, 3-bytes-per-pixel buffer.
    """
    width: int
    height: int
    pix: Buffer
    encoding: str = "bgr24"     # "bgr24" | "rgb24"

    def to_bgr(self) -> np.ndarray:
        if self.width <= 0 or self.height <= 0:
            raise FrameFormatError(f"invalid frame size {self.width}x{self.height}")
        if self.encoding not in ("bgr24", "rgb24"):
            raise FrameFormatError(f"unsupported encoding {self.encoding!r}")

        if isinstance(self.pix, np.ndarray):
            flat = np.ascontiguousarray(self.pix, dtype=np.uint8).reshape(-1)
        else:
            flat = np.frombuffer(self.pix, dtype=np.uint8)

        expected = self.width * self.height * 3
        if flat.size != expected:
            raise FrameFormatError(
                f"payload of {flat.size} bytes does not match "
                f"{self.width}x{self.height}x3 = {expected}"
            )
        img = flat.reshape(self.height, self.width, 3)
        if self.encoding == "rgb24":
            return cv2.cvtColor(img, cv2.COLOR_RGB2BGR)
        return img.copy()

    @classmethod
    def from_bgr(cls, img: np.ndarray) -> "Frame":
        h, w = img.shape[:2]
        return cls(width=w, height=h, pix=img, encoding="bgr24")


@dataclass(frozen=True)
class DetectedObject:
    """Largest matching blob, pixel space."""
    x: float
    y: float
    radius: float
    area: int


@dataclass(frozen=True)
class NormalizedError:
    """Offset from the frame centre, each axis in [-0.5, 0.5]; +y is up."""
    x: float
    y: float


@dataclass(frozen=True)
class ActuationCommand:
    """Normalized stick deflection, each axis in [-1, 1]."""
    x: float
    y: float


@dataclass(frozen=True)
class CycleReport:
    """What a single control cycle saw and did."""
    state: TrackingState
    target: Optional[DetectedObject] = None
    error: Optional[NormalizedError] = None
    command: Optional[ActuationCommand] = None
    sent: bool = False

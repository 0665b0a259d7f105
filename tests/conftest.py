from typing import List, Optional

import cv2
import numpy as np
import pytest

from color_tracking.common import ActuationCommand, Frame
from color_tracking.config import ColorRange, ControlMode, DetectorConfig
from color_tracking.gimbal import GimbalError

GREEN = (0, 255, 0)          # BGR, HSV (60, 255, 255)
WIDTH, HEIGHT = 640, 480


def blank(width: int = WIDTH, height: int = HEIGHT) -> np.ndarray:
    return np.zeros((height, width, 3), np.uint8)


def disc_image(cx: int, cy: int, radius: int, width: int = WIDTH, height: int = HEIGHT) -> np.ndarray:
    img = blank(width, height)
    cv2.circle(img, (cx, cy), radius, GREEN, -1)
    return img


def disc_frame(cx: int, cy: int, radius: int = 30) -> Frame:
    return Frame.from_bgr(disc_image(cx, cy, radius))


class FakeGimbal:
    def __init__(self) -> None:
        self.commands: List[ActuationCommand] = []
        self.modes: List[ControlMode] = []

    def move(self, command: ActuationCommand, mode: ControlMode) -> None:
        self.commands.append(command)
        self.modes.append(mode)


class FailingGimbal:
    def __init__(self) -> None:
        self.calls = 0

    def move(self, command: ActuationCommand, mode: ControlMode) -> None:
        self.calls += 1
        raise GimbalError("link down")


class FakeDisplay:
    def __init__(self) -> None:
        self.frames: List[np.ndarray] = []

    def show(self, frame: np.ndarray) -> None:
        self.frames.append(frame.copy())

    @property
    def last(self) -> Optional[np.ndarray]:
        return self.frames[-1] if self.frames else None


@pytest.fixture
def green_range() -> ColorRange:
    return ColorRange((35, 219, 90), (119, 255, 255))


@pytest.fixture
def detector_cfg(green_range) -> DetectorConfig:
    return DetectorConfig(color_range=green_range)

# camera.py
"""Thin VideoCapture wrapper plus a callback-driven video source."""

from __future__ import annotations

import itertools
import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

import cv2
import numpy as np

from color_tracking.common import Frame
from color_tracking.config import CameraConfig

logger = logging.getLogger(__name__)

FrameCallback = Callable[[Frame], None]


class Camera:
    def __init__(self, config: CameraConfig) -> None:
        self.config = config
        self.cap: Optional[cv2.VideoCapture] = None

        # Exposed runtime-queryable values
        self.actual_width: int = 0
        self.actual_height: int = 0
        self.actual_fps: float = 0.0
        self.actual_fourcc_str: str = ""

    # ------------------------------------------------------------------ #
    #   I N T E R N A L   H E L P E R S
    # ------------------------------------------------------------------ #
    @staticmethod
    def _get_fourcc_str(fourcc_val: int) -> str:
        if fourcc_val == 0:
            return ""
        return "".join(chr((fourcc_val >> (8 * i)) & 0xFF) for i in range(4))

    # ------------------------------------------------------------------ #
    #   P U B L I C   A P I
    # ------------------------------------------------------------------ #
    def open(self) -> bool:
        """Open camera and apply resolution/fps/fourcc."""
        # -------- open device -----------------------------------------
        backend = cv2.CAP_V4L2 if self.config.use_v4l2 else cv2.CAP_ANY
        self.cap = cv2.VideoCapture(self.config.device_index, backend)
        if not self.cap or not self.cap.isOpened():
            logger.error("Could not open camera device %s", self.config.device_index)
            self.cap = None
            return False

        # -------- core settings (res / fps / fourcc) ------------------
        if self.config.fourcc_str:
            self.cap.set(
                cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*self.config.fourcc_str)
            )
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        if self.config.fps_request > 0:
            self.cap.set(cv2.CAP_PROP_FPS, self.config.fps_request)

        time.sleep(0.1)  # Let driver settle

        # -------- query what we actually got --------------------------
        self.actual_fourcc_str = self._get_fourcc_str(
            int(self.cap.get(cv2.CAP_PROP_FOURCC))
        )
        self.actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.actual_fps = self.cap.get(cv2.CAP_PROP_FPS)

        logger.info(
            "Camera %dx%d@%.1f FPS (FOURCC=%r)",
            self.actual_width, self.actual_height, self.actual_fps, self.actual_fourcc_str,
        )
        if self.actual_width == 0 or self.actual_height == 0:
            logger.error("Camera returned zero resolution")
            self.release()
            return False
        return True

    # ------------------------------------------------------------------ #
    #   S T A N D A R D   W R A P P E R S
    # ------------------------------------------------------------------ #
    def read(self) -> Tuple[float, Optional[np.ndarray]]:
        if not self.is_opened():
            return time.time(), None
        ts = time.time()
        ret, frame = self.cap.read()
        return (ts, frame) if ret and frame is not None else (ts, None)

    def is_opened(self) -> bool:
        return bool(self.cap and self.cap.isOpened())

    def release(self) -> None:
        if self.cap:
            logger.info("Releasing capture device")
            self.cap.release()
            self.cap = None


class VideoSource:
    """
    Pulls frames from a :class:`Camera` on its own thread and hands each one
    to every registered callback exactly once. Callbacks run on the capture
    thread and must not keep the frame after returning.
    """

    def __init__(self, camera: Camera, max_reopens: int = 5) -> None:
        self.camera = camera
        self.max_reopens = max_reopens
        self._callbacks: Dict[int, FrameCallback] = {}
        self._tokens = itertools.count(1)
        self._cb_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.frames_delivered = 0

    def add_video_callback(self, callback: FrameCallback) -> int:
        with self._cb_lock:
            token = next(self._tokens)
            self._callbacks[token] = callback
        return token

    def remove_video_callback(self, token: int) -> None:
        with self._cb_lock:
            if self._callbacks.pop(token, None) is None:
                raise KeyError(f"unknown video callback token {token}")

    def deliver(self, frame: Frame) -> None:
        with self._cb_lock:
            callbacks = list(self._callbacks.values())
        for cb in callbacks:
            try:
                cb(frame)
            except Exception:
                logger.exception("Video callback %r failed", cb)
        self.frames_delivered += 1

    def start(self) -> bool:
        if not self.camera.is_opened() and not self.camera.open():
            return False
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="video-source", daemon=True)
        self._thread.start()
        return True

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout)
        self._thread = None
        self.camera.release()

    def _run(self) -> None:
        reopens = 0
        while not self._stop.is_set():
            _, img = self.camera.read()
            if img is None:
                if self.camera.is_opened() or reopens >= self.max_reopens:
                    time.sleep(0.05)
                    continue
                reopens += 1
                logger.warning("Camera lost, reopening (%d/%d)", reopens, self.max_reopens)
                if self.camera.open():
                    reopens = 0
                else:
                    time.sleep(0.5)
                continue
            self.deliver(Frame.from_bgr(img))
        logger.info("Video source stopped after %d frames", self.frames_delivered)

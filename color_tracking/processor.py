# processor.py
"""Frame → colour detector → PID → gimbal glue, one cycle per delivered frame.

Cycle
-----
* Not found (IDLE): the frame goes to the display untouched, nothing is sent.
* Found (TRACKING): the blob is circled, the centre offset is normalized and,
  unless both axes sit inside the deadband, yaw/pitch PID outputs are sent as
  one stick command.

Only one cycle runs at a time; frames that arrive while a cycle is in flight
are dropped. Transport and frame-format errors are logged and cost at most the
current cycle.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

import cv2
import numpy as np
import serial

from color_tracking.camera import VideoSource
from color_tracking.common import (
    ActuationCommand,
    CycleReport,
    DetectedObject,
    Frame,
    FrameFormatError,
    NormalizedError,
    TrackingState,
)
from color_tracking.config import ControlConfig, DetectorConfig, GimbalConfig
from color_tracking.detector import ColorObjectDetector
from color_tracking.display import Display
from color_tracking.gimbal import GimbalError, GimbalTransport
from color_tracking.helpers import make_command, needs_correction, normalize_error
from color_tracking.pid import PIDController

logger = logging.getLogger(__name__)

QuitPredicate = Callable[[], bool]

_TARGET_COLOR = (255, 255, 0)   # BGR cyan


class TrackingProcessor:
    """The main high-level orchestrator."""

    # ------------------------------------------------------------------ #
    #   I N I T
    # ------------------------------------------------------------------ #
    def __init__(
        self,
        detector_cfg: DetectorConfig,
        control_cfg: ControlConfig,
        gimbal_cfg: Optional[GimbalConfig] = None,
        *,
        gimbal: Optional[GimbalTransport] = None,
        display: Optional[Display] = None,
        quit_predicate: Optional[QuitPredicate] = None,
    ):
        # Config blobs --------------------------------------------------
        self.detector_cfg = detector_cfg
        self.control_cfg = control_cfg
        self.gimbal_cfg = gimbal_cfg or GimbalConfig()

        # Core pipeline objects ----------------------------------------
        self.detector = ColorObjectDetector(detector_cfg)
        self.pid_yaw = PIDController(control_cfg.yaw)
        self.pid_pitch = PIDController(control_cfg.pitch)

        # Collaborators -------------------------------------------------
        self.gimbal = gimbal
        self.display = display
        self.quit_predicate = quit_predicate
        self.quit_event = threading.Event()

        # At most one cycle in flight
        self._cycle_lock = threading.Lock()
        self._stats_lock = threading.Lock()

        # Stats ---------------------------------------------------------
        self.frames_total = 0
        self.frames_dropped = 0
        self.frames_tracked = 0
        self.commands_sent = 0
        self.command_errors = 0
        self.last_state = TrackingState.IDLE

        self._fps_count = 0
        self._fps_timer_start = time.time()
        self.disp_fps = 0.0

    # ------------------------------------------------------------------ #
    #   D R A W I N G   U T I L S
    # ------------------------------------------------------------------ #
    def _draw_overlay(
        self, img: np.ndarray, target: DetectedObject, err: NormalizedError
    ) -> None:
        cv2.circle(
            img,
            (int(target.x), int(target.y)),
            int(target.radius),
            _TARGET_COLOR,
            2,
        )
        cv2.putText(
            img,
            f"FPS:{self.disp_fps:.1f}",
            (10, 30),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.7,
            (0, 255, 0),
            2,
        )
        cv2.putText(
            img,
            f"err x:{err.x:+.3f} y:{err.y:+.3f}",
            (10, 60),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            (0, 255, 255),
            1,
        )

    def _present(self, img: np.ndarray) -> None:
        if self.display is None:
            return
        try:
            self.display.show(img)
        except (RuntimeError, cv2.error) as exc:
            logger.debug("Display update skipped: %s", exc)

    # ------------------------------------------------------------------ #
    #   G I M B A L   C O N T R O L
    # ------------------------------------------------------------------ #
    def _send_gimbal(self, cmd: ActuationCommand) -> bool:
        """Fire-and-forget: failures are logged, never retried."""
        if self.gimbal is None:
            return False
        try:
            self.gimbal.move(cmd, self.gimbal_cfg.mode)
        except (GimbalError, serial.SerialException, OSError) as exc:
            self.command_errors += 1
            logger.warning("Gimbal command failed: %s", exc)
            return False
        self.commands_sent += 1
        return True

    # ------------------------------------------------------------------ #
    #   F R A M E   P R O C E S S I N G
    # ------------------------------------------------------------------ #
    def handle_frame(self, frame: Frame) -> Optional[CycleReport]:
        """
        Run one control cycle. Returns ``None`` when the frame was dropped
        (another cycle in flight, or a malformed frame).
        """
        if not self._cycle_lock.acquire(blocking=False):
            self._count_drop()
            logger.debug("Cycle in flight, dropping frame")
            return None
        try:
            report = self._process_frame(frame)
        finally:
            self._cycle_lock.release()
        self._check_quit()
        return report

    def _process_frame(self, frame: Frame) -> Optional[CycleReport]:
        self.frames_total += 1
        try:
            bgr = frame.to_bgr()
            target = self.detector.detect(bgr)
        except FrameFormatError as exc:
            self._count_drop()
            logger.warning("Dropping malformed frame: %s", exc)
            return None

        self._update_fps()

        if target is None:
            self.last_state = TrackingState.IDLE
            self._present(bgr)
            return CycleReport(state=TrackingState.IDLE)

        self.last_state = TrackingState.TRACKING
        self.frames_tracked += 1
        h, w = bgr.shape[:2]
        err = normalize_error(target, w, h)
        logger.debug("errX: %.4f errY: %.4f", err.x, err.y)

        out = bgr.copy()
        self._draw_overlay(out, target, err)

        cmd = None
        sent = False
        if needs_correction(err, self.control_cfg.deadband):
            yaw = self.pid_yaw.output(err.x)
            pitch = self.pid_pitch.output(err.y)
            cmd = make_command(yaw, pitch)
            logger.debug("x: %.4f, y: %.4f", cmd.x, cmd.y)
            sent = self._send_gimbal(cmd)

        self._present(out)
        return CycleReport(
            state=TrackingState.TRACKING,
            target=target,
            error=err,
            command=cmd,
            sent=sent,
        )

    def _count_drop(self) -> None:
        # drops are counted from both inside and outside the cycle lock
        with self._stats_lock:
            self.frames_dropped += 1

    def _update_fps(self) -> None:
        self._fps_count += 1
        now = time.time()
        if now - self._fps_timer_start >= 1.0:
            self.disp_fps = self._fps_count / (now - self._fps_timer_start)
            self._fps_count = 0
            self._fps_timer_start = now

    # ------------------------------------------------------------------ #
    #   Q U I T
    # ------------------------------------------------------------------ #
    def _check_quit(self) -> None:
        if self.quit_event.is_set() or self.quit_predicate is None:
            return
        try:
            should_quit = self.quit_predicate()
        except (RuntimeError, cv2.error) as exc:
            logger.debug("Quit predicate failed: %s", exc)
            return
        if should_quit:
            logger.info("Quit condition met")
            self.quit_event.set()

    def request_quit(self) -> None:
        self.quit_event.set()

    # ------------------------------------------------------------------ #
    #   R U N   L O O P
    # ------------------------------------------------------------------ #
    def run(self, source: VideoSource, poll_s: float = 0.1) -> None:
        """Feed frames from ``source`` into :meth:`handle_frame` until quit."""
        token = source.add_video_callback(self.handle_frame)
        try:
            if not source.start():
                logger.error("Video source failed to start")
                return
            logger.info("Tracking started")
            while not self.quit_event.wait(poll_s):
                pass
        finally:
            source.remove_video_callback(token)
            source.stop()
            logger.info(
                "Tracking stopped. frames=%d tracked=%d dropped=%d sent=%d errors=%d",
                self.frames_total,
                self.frames_tracked,
                self.frames_dropped,
                self.commands_sent,
                self.command_errors,
            )

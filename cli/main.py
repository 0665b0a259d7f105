# main.py
"""
Entry-point for the colour-tracking gimbal system.

The object to follow is described by two HSV bounds (OpenCV scale, H 0‒179)
given as ``h,s,v`` strings. Frames are captured on a background thread; the
OpenCV window is serviced from the main thread.

Examples
--------
    python cli/main.py --port /dev/ttyACM0
    python cli/main.py --hsvlower 0,120,70 --hsvupper 10,255,255 --no-display
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from color_tracking.camera import Camera, VideoSource
from color_tracking.config import (
    CameraConfig,
    ColorRange,
    ConfigError,
    ControlConfig,
    ControlMode,
    DetectorConfig,
    DisplayConfig,
    GimbalConfig,
    PIDConfig,
)
from color_tracking.display import Display, MainThreadDispatcher
from color_tracking.gimbal import GimbalError, SerialGimbal
from color_tracking.processor import TrackingProcessor

logger = logging.getLogger("color_tracking.cli")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Keep a coloured object centred with a gimbal.")
    p.add_argument("--hsvlower", default="35,219,90",
                   help="lower bound for color filtering (h,s,v)")
    p.add_argument("--hsvupper", default="119,255,255",
                   help="upper bound for color filtering (h,s,v)")
    p.add_argument("--min-radius", type=float, default=10.0,
                   help="ignore blobs whose enclosing radius is smaller (px)")
    p.add_argument("--blur", type=int, default=0, help="odd Gaussian kernel, 0 = off")
    p.add_argument("--morph", type=int, default=0, help="erode/dilate passes, 0 = off")

    p.add_argument("--device", type=int, default=0, help="camera index")
    p.add_argument("--width", type=int, default=1280)
    p.add_argument("--height", type=int, default=720)
    p.add_argument("--fps", type=int, default=30)

    p.add_argument("--port", default=None,
                   help="gimbal serial port or pyserial URL (omit to disable)")
    p.add_argument("--baudrate", type=int, default=115_200)
    p.add_argument("--mode", choices=[m.value for m in ControlMode], default="SDK")
    p.add_argument("--wait-ack", action="store_true",
                   help="wait for STICK_OK after every command")

    p.add_argument("--kp", type=float, default=0.7)
    p.add_argument("--ki", type=float, default=0.0)
    p.add_argument("--kd", type=float, default=0.0)
    p.add_argument("--anti-windup", action="store_true",
                   help="stop integrating while the output is saturated")
    p.add_argument("--deadband", type=float, default=0.0,
                   help="normalized error below which no command is sent")

    p.add_argument("--no-display", action="store_true")
    p.add_argument("--quit-on-close", action="store_true",
                   help="stop when the display window is closed")
    p.add_argument("--log-level", default="INFO",
                   choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p


def _configs(args: argparse.Namespace):
    pid = dict(kp=args.kp, ki=args.ki, kd=args.kd, anti_windup=args.anti_windup)
    return (
        CameraConfig(
            device_index=args.device, width=args.width,
            height=args.height, fps_request=args.fps,
        ),
        DetectorConfig(
            color_range=ColorRange.from_strings(args.hsvlower, args.hsvupper),
            min_radius=args.min_radius,
            blur_size=args.blur,
            morph_iterations=args.morph,
        ),
        ControlConfig(yaw=PIDConfig(**pid), pitch=PIDConfig(**pid), deadband=args.deadband),
        GimbalConfig(
            port=args.port, baudrate=args.baudrate,
            mode=ControlMode(args.mode), wait_ack=args.wait_ack,
        ),
        DisplayConfig(enabled=not args.no_display),
    )


# ────────────────────────────────────────────────────────────────────────────
#   M A I N
# ────────────────────────────────────────────────────────────────────────────
def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
    )

    try:
        cam_cfg, det_cfg, ctl_cfg, gim_cfg, disp_cfg = _configs(args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    # ------------------------ Banner ----------------------
    print("Initializing Colour-Tracking System…")
    rng = det_cfg.color_range
    print(f"Camera: idx={cam_cfg.device_index}, {cam_cfg.width}x{cam_cfg.height}@{cam_cfg.fps_request} FPS")
    print(f"Color range: lower={rng.lower}, upper={rng.upper}, min_radius={det_cfg.min_radius}px")
    print(
        f"PID: kp={ctl_cfg.yaw.kp}, ki={ctl_cfg.yaw.ki}, kd={ctl_cfg.yaw.kd}, "
        f"anti_windup={ctl_cfg.yaw.anti_windup}, deadband={ctl_cfg.deadband}"
    )
    print(f"Gimbal: port={gim_cfg.port}, mode={gim_cfg.mode.value}" if gim_cfg.port else "Gimbal: DISABLED")

    # ------------------------ Wiring ----------------------
    dispatcher = MainThreadDispatcher()
    display = Display(disp_cfg, dispatcher) if disp_cfg.enabled else None

    gimbal: Optional[SerialGimbal] = None
    if gim_cfg.port:
        gimbal = SerialGimbal.from_config(gim_cfg)
        try:
            gimbal.open()
        except GimbalError as exc:
            print(f"Gimbal error: {exc}", file=sys.stderr)
            return 1

    processor = TrackingProcessor(
        det_cfg,
        ctl_cfg,
        gim_cfg,
        gimbal=gimbal,
        display=display,
        quit_predicate=display.window_closed if (display and args.quit_on_close) else None,
    )
    source = VideoSource(Camera(cam_cfg))

    # ------------------------ Run -------------------------
    try:
        dispatcher.run(lambda: processor.run(source))
    except KeyboardInterrupt:
        print("\nStopped by user.")
        processor.request_quit()
        source.stop()
    finally:
        if display:
            display.close()
        if gimbal:
            try:
                gimbal.center()
            except GimbalError as exc:
                logger.warning("Could not re-centre gimbal: %s", exc)
            gimbal.close()
    print("Main program finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

# gimbal.py
"""Serial-controlled gimbal interface (normalized stick commands)."""
from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Optional, Protocol

import serial

from color_tracking.common import ActuationCommand
from color_tracking.config import ControlMode, GimbalConfig

logger = logging.getLogger(__name__)


# ------------------- Exceptions / Enums -------------------
class GimbalError(RuntimeError):
    """Raised when a command could not be delivered to the gimbal."""


class FirmwareError(GimbalError):
    """Raised when the firmware replies with an unexpected line."""


class _Ack(str, Enum):
    STICK_OK = auto()
    CENTER_OK = auto()


_ERR_PATTERN = re.compile(r"^ERR(?::\s*(.*))?$")


# ------------------------ Protocol ------------------------
class GimbalTransport(Protocol):
    """Anything that can deliver a stick command; raises on failure."""

    def move(self, command: ActuationCommand, mode: ControlMode) -> None:
        ...


# ------------------ Internal dataclass -------------------
@dataclass(slots=True)
class _SerialCfg:
    port: str
    baudrate: int = 115_200
    timeout: float = 1.0


# ---------------------- Main class ----------------------
class SerialGimbal:
    """
    High-level wrapper around the gimbal firmware's ASCII protocol.

    ``STICK <x> <y> <MODE>`` sets the normalized stick deflection, ``CENTER``
    re-centres both axes. With ``wait_ack`` each command blocks until the
    firmware answers ``STICK_OK`` / ``CENTER_OK``.
    """

    def __init__(
        self,
        port: str | Path,
        baudrate: int = 115_200,
        timeout: float = 1.0,
        *,
        wait_ack: bool = False,
        eol: str = "\n",
    ):
        self._cfg = _SerialCfg(str(port), baudrate, timeout)
        self._eol = eol.encode()
        self._wait_ack = wait_ack
        self._ser: Optional[serial.SerialBase] = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, cfg: GimbalConfig) -> "SerialGimbal":
        if not cfg.port:
            raise GimbalError("no gimbal port configured")
        return cls(cfg.port, cfg.baudrate, cfg.timeout, wait_ack=cfg.wait_ack)

    # ---------------- Serial plumbing ----------------
    def open(self) -> None:
        if self._ser and self._ser.is_open:
            return
        try:
            # serial_for_url also understands plain device names
            self._ser = serial.serial_for_url(
                self._cfg.port,
                baudrate=self._cfg.baudrate,
                timeout=self._cfg.timeout,
                write_timeout=self._cfg.timeout,
            )
        except serial.SerialException as exc:
            raise GimbalError(f"could not open {self._cfg.port!r}: {exc}") from exc
        time.sleep(0.05)
        if self._ser.is_open:
            self._ser.reset_input_buffer()
        logger.info("Gimbal connected on %s @ %d baud", self._cfg.port, self._cfg.baudrate)

    def close(self) -> None:
        if self._ser and self._ser.is_open:
            self._ser.close()
            logger.info("Gimbal link closed")
        self._ser = None

    def is_open(self) -> bool:
        return bool(self._ser and self._ser.is_open)

    # ------------------ Public API -------------------
    def move(self, command: ActuationCommand, mode: ControlMode = ControlMode.SDK) -> None:
        self._cmd(
            f"STICK {command.x:.4f} {command.y:.4f} {ControlMode(mode).value}",
            expect=_Ack.STICK_OK,
        )

    def center(self) -> None:
        self._cmd("CENTER", expect=_Ack.CENTER_OK)

    # ----------------- Internal core -----------------
    def _cmd(self, cmd: str, expect: Optional[_Ack] = None) -> Optional[str]:
        if not self.is_open():
            raise GimbalError("Serial port is not open")
        with self._lock:
            try:
                self._ser.write(cmd.upper().encode() + self._eol)
                self._ser.flush()
                if not (self._wait_ack and expect):
                    return None
                while True:
                    raw = self._ser.readline()
                    if not raw:
                        raise FirmwareError(f"Timeout waiting for response to {cmd!r}")
                    line = raw.decode(errors="replace").strip()
                    if line == expect.name:
                        return line
                    m = _ERR_PATTERN.match(line)
                    if m:
                        raise FirmwareError(f"{cmd!r} rejected: {m.group(1) or line}")
            except serial.SerialException as exc:
                raise GimbalError(f"{cmd!r} failed: {exc}") from exc

    # ---------------- Context / repr ---------------
    def __enter__(self) -> "SerialGimbal":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open() else "closed"
        return f"<SerialGimbal port={self._cfg.port!r} ({state})>"

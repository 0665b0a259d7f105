import pytest

from color_tracking.common import ActuationCommand
from color_tracking.config import ControlMode, GimbalConfig
from color_tracking.gimbal import FirmwareError, GimbalError, SerialGimbal


@pytest.fixture
def gimbal():
    # loop:// echoes every write back to the read side
    g = SerialGimbal("loop://", timeout=0.1)
    g.open()
    yield g
    g.close()


@pytest.fixture
def acking_gimbal():
    g = SerialGimbal("loop://", timeout=0.1, wait_ack=True)
    g.open()
    yield g
    g.close()


def test_stick_wire_format(gimbal):
    gimbal.move(ActuationCommand(0.5, -0.25), ControlMode.SDK)
    assert gimbal._ser.readline() == b"STICK 0.5000 -0.2500 SDK\n"


def test_mode_is_sent_verbatim(gimbal):
    gimbal.move(ActuationCommand(-1.0, 1.0), ControlMode.FPV)
    assert gimbal._ser.readline() == b"STICK -1.0000 1.0000 FPV\n"


def test_center_command(gimbal):
    gimbal.center()
    assert gimbal._ser.readline() == b"CENTER\n"


def test_ack_is_awaited(acking_gimbal):
    acking_gimbal._ser.write(b"STICK_OK\n")
    acking_gimbal.move(ActuationCommand(0.1, 0.2), ControlMode.SDK)


def test_missing_ack_times_out(acking_gimbal):
    with pytest.raises(FirmwareError, match="Timeout"):
        acking_gimbal.move(ActuationCommand(0.1, 0.2), ControlMode.SDK)


def test_firmware_error_line(acking_gimbal):
    acking_gimbal._ser.write(b"ERR: busy\n")
    with pytest.raises(FirmwareError, match="busy"):
        acking_gimbal.move(ActuationCommand(0.1, 0.2), ControlMode.SDK)


def test_move_on_closed_port():
    g = SerialGimbal("loop://")
    assert not g.is_open()
    with pytest.raises(GimbalError):
        g.move(ActuationCommand(0.0, 0.0))


def test_context_manager_closes():
    with SerialGimbal("loop://", timeout=0.1) as g:
        assert g.is_open()
        assert "open" in repr(g)
    assert not g.is_open()


def test_from_config_requires_port():
    with pytest.raises(GimbalError):
        SerialGimbal.from_config(GimbalConfig(port=None))


def test_from_config_carries_settings():
    g = SerialGimbal.from_config(GimbalConfig(port="loop://", baudrate=9600, timeout=0.2, wait_ack=True))
    assert "loop://" in repr(g)
    assert g._wait_ack

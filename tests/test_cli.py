import pytest

from cli.main import _build_parser, _configs, main
from color_tracking.config import ControlMode


def _parse(*argv):
    return _build_parser().parse_args(list(argv))


def test_defaults():
    cam, det, ctl, gim, disp = _configs(_parse())
    assert det.color_range.lower == (35, 219, 90)
    assert det.color_range.upper == (119, 255, 255)
    assert det.min_radius == 10.0
    assert (ctl.yaw.kp, ctl.yaw.ki, ctl.yaw.kd) == (0.7, 0.0, 0.0)
    assert ctl.pitch == ctl.yaw
    assert ctl.deadband == 0.0
    assert gim.port is None
    assert gim.mode is ControlMode.SDK
    assert disp.enabled


def test_flags_reach_configs():
    cam, det, ctl, gim, disp = _configs(_parse(
        "--hsvlower", "0, 120, 70", "--hsvupper", "10,255,255",
        "--kp", "0.5", "--ki", "0.01", "--anti-windup", "--deadband", "0.02",
        "--port", "loop://", "--mode", "FPV", "--wait-ack", "--no-display",
        "--device", "2", "--fps", "60",
    ))
    assert det.color_range.lower == (0, 120, 70)
    assert ctl.yaw.anti_windup and ctl.pitch.ki == 0.01
    assert ctl.deadband == 0.02
    assert gim.mode is ControlMode.FPV and gim.wait_ack
    assert not disp.enabled
    assert (cam.device_index, cam.fps_request) == (2, 60)


@pytest.mark.parametrize("argv", [
    ["--hsvlower", "35,219"],
    ["--hsvupper", "1,x,3"],
    ["--hsvlower", "200,0,0", "--hsvupper", "10,255,255"],
    ["--deadband", "0.9"],
    ["--hsvupper", "119,255,300"],
    ["--hsvlower=-5,0,0"],
])
def test_bad_config_exits_2(argv, capsys):
    assert main(argv + ["--no-display"]) == 2
    assert "Configuration error" in capsys.readouterr().err


def test_unopenable_port_exits_1(capsys):
    assert main(["--no-display", "--port", "/dev/no-such-gimbal-port"]) == 1
    assert "Gimbal error" in capsys.readouterr().err

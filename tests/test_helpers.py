import itertools

import pytest

from color_tracking.common import DetectedObject, NormalizedError
from color_tracking.helpers import clamp, make_command, needs_correction, normalize_error


def _obj(x, y):
    return DetectedObject(x=x, y=y, radius=5.0, area=80)


def test_centre_gives_zero_error():
    err = normalize_error(_obj(640, 360), 1280, 720)
    assert (err.x, err.y) == (0.0, 0.0)


def test_top_left_corner():
    err = normalize_error(_obj(0, 0), 1280, 720)
    assert err.x == -0.5
    assert err.y == 0.5


def test_up_is_positive():
    assert normalize_error(_obj(320, 100), 640, 480).y > 0
    assert normalize_error(_obj(320, 400), 640, 480).y < 0


def test_errors_stay_within_half():
    w, h = 640, 480
    for x, y in itertools.product(range(0, w, 37), range(0, h, 29)):
        err = normalize_error(_obj(x, y), w, h)
        assert -0.5 <= err.x <= 0.5
        assert -0.5 <= err.y <= 0.5


def test_needs_correction_exact_zero_only_by_default():
    assert not needs_correction(NormalizedError(0.0, 0.0))
    assert needs_correction(NormalizedError(1e-12, 0.0))
    assert needs_correction(NormalizedError(0.0, -1e-12))


def test_needs_correction_with_deadband():
    assert not needs_correction(NormalizedError(0.01, -0.01), deadband=0.02)
    assert needs_correction(NormalizedError(0.03, 0.0), deadband=0.02)


def test_make_command_inverts_pitch_and_clamps():
    cmd = make_command(0.3, 0.4)
    assert (cmd.x, cmd.y) == (0.3, -0.4)
    cmd = make_command(2.0, -3.0)
    assert (cmd.x, cmd.y) == (1.0, 1.0)


@pytest.mark.parametrize("v, expected", [(-2, -1), (0.5, 0.5), (7, 1)])
def test_clamp(v, expected):
    assert clamp(v, -1, 1) == expected

"""Tests for SkewCompensator"""

import pytest

from swerve_drive.geometry import ChassisVelocity, Pose, Twist
from swerve_drive.skew import SkewCompensator


def test_no_rotation_is_identity():
    """Test translation-only commands pass through"""
    velocity = ChassisVelocity(2.0, -1.0, 0.0)

    assert SkewCompensator(0.02).compensate(velocity) is velocity


def test_arc_ends_at_commanded_pose():
    """Test the compensated arc lands where the straight command aims"""
    dt = 0.02
    velocity = ChassisVelocity(3.0, 1.0, 5.0)

    corrected = SkewCompensator(dt).compensate(velocity)
    end = Pose().exp(Twist(corrected.vx * dt, corrected.vy * dt, corrected.omega * dt))

    assert end.x == pytest.approx(velocity.vx * dt)
    assert end.y == pytest.approx(velocity.vy * dt)
    assert end.heading == pytest.approx(velocity.omega * dt)


def test_rotation_rate_preserved():
    """Test only the translation is corrected"""
    corrected = SkewCompensator(0.02).compensate(ChassisVelocity(1.0, 0.0, 2.0))

    assert corrected.omega == pytest.approx(2.0)
    # Moving forward while turning left leans the command right
    assert corrected.vy < 0.0


def test_default_period():
    """Test the control period defaults to config"""
    from swerve_drive import config

    assert SkewCompensator().dt == config.CONTROL_PERIOD


@pytest.mark.parametrize("dt", [0.0, -0.02])
def test_invalid_period(dt):
    """Test non-positive periods are rejected"""
    with pytest.raises(ValueError):
        SkewCompensator(dt)


@pytest.mark.parametrize("omega", [200.0, -200.0, 158.0])
def test_half_turn_per_period_unchanged(omega):
    """Test commands turning half a revolution or more per period keep their direction"""
    velocity = ChassisVelocity(1.0, 0.0, omega)

    corrected = SkewCompensator(0.02).compensate(velocity)

    assert corrected is velocity


def test_fast_turn_keeps_rotation_sign():
    """Test a fast turn just under half a revolution is not reversed"""
    corrected = SkewCompensator(0.02).compensate(ChassisVelocity(1.0, 0.0, 150.0))

    assert corrected.omega == pytest.approx(150.0)

"""Tests for poses, twists and module states"""

import math

import pytest

from swerve_drive.geometry import (
    ChassisVelocity,
    ModulePosition,
    ModuleState,
    Orientation,
    Pose,
    Twist,
    angle_difference,
    interpolate_angle,
    wrap_angle,
)


def test_wrap_angle():
    """Test angles wrap into [-π, π]"""
    assert wrap_angle(1.5 * math.pi) == pytest.approx(-0.5 * math.pi)
    assert wrap_angle(-1.5 * math.pi) == pytest.approx(0.5 * math.pi)
    assert wrap_angle(0.3) == pytest.approx(0.3)


def test_angle_difference_short_way():
    """Test difference across the ±π seam"""
    assert angle_difference(3.0, -3.0) == pytest.approx(6.0 - 2.0 * math.pi)
    assert abs(interpolate_angle(3.0, -3.0, 0.5)) == pytest.approx(math.pi)


def test_exp_quarter_circle():
    """Test following a quarter arc of radius 1"""
    pose = Pose().exp(Twist(math.pi / 2.0, 0.0, math.pi / 2.0))

    assert pose.x == pytest.approx(1.0)
    assert pose.y == pytest.approx(1.0)
    assert pose.heading == pytest.approx(math.pi / 2.0)


def test_log_inverts_exp():
    """Test log returns the twist that exp follows"""
    start = Pose(1.0, -2.0, 0.4)
    end = Pose(2.5, 0.5, -1.1)

    result = start.exp(start.log(end))

    assert result.x == pytest.approx(end.x)
    assert result.y == pytest.approx(end.y)
    assert result.heading == pytest.approx(end.heading)


def test_log_pure_translation():
    """Test log without rotation is the relative translation"""
    twist = Pose(0.0, 0.0, math.pi / 2.0).log(Pose(0.0, 1.0, math.pi / 2.0))

    assert twist.dx == pytest.approx(1.0)
    assert twist.dy == pytest.approx(0.0, abs=1e-12)
    assert twist.dtheta == pytest.approx(0.0, abs=1e-12)


def test_log_keeps_magnitude_when_rotating():
    """Test the translation magnitude survives a large rotation"""
    twist = Pose().log(Pose(1.0, 1.0, math.pi / 2.0))

    # Quarter circle of radius 1
    assert twist.dx == pytest.approx(math.pi / 2.0)
    assert twist.dy == pytest.approx(0.0, abs=1e-12)
    assert twist.dtheta == pytest.approx(math.pi / 2.0)


def test_pose_interpolate_endpoints():
    """Test interpolation clamps at both ends"""
    a = Pose(0.0, 0.0, 0.0)
    b = Pose(2.0, 0.0, 0.0)

    assert a.interpolate(b, -1.0) == a
    assert a.interpolate(b, 2.0) == b
    assert a.interpolate(b, 0.5).x == pytest.approx(1.0)


def test_optimize_flips_past_90_degrees():
    """Test a target behind the wheel reverses the drive instead"""
    state = ModuleState(1.0, math.pi).optimize(0.0)

    assert state.speed == pytest.approx(-1.0)
    assert state.angle == pytest.approx(0.0, abs=1e-12)


def test_optimize_keeps_small_turns():
    """Test a target within 90° is unchanged"""
    state = ModuleState(2.0, 1.0).optimize(0.0)

    assert state.speed == 2.0
    assert state.angle == pytest.approx(1.0)


def test_field_relative_conversion():
    """Test a field-frame command rotates into the robot frame"""
    velocity = ChassisVelocity.from_field_relative(1.0, 0.0, 0.5, math.pi / 2.0)

    assert velocity.vx == pytest.approx(0.0, abs=1e-12)
    assert velocity.vy == pytest.approx(-1.0)
    assert velocity.omega == 0.5


def test_chassis_velocity_helpers():
    """Test scaling and speed"""
    velocity = ChassisVelocity(3.0, 4.0, 1.0)

    assert velocity.translational_speed == pytest.approx(5.0)
    assert velocity.scaled(0.5) == ChassisVelocity(1.5, 2.0, 0.5)
    assert ChassisVelocity().is_zero()
    assert not velocity.is_zero()


def test_module_position_interpolate():
    """Test distance and angle interpolation"""
    position = ModulePosition(1.0, 0.0).interpolate(ModulePosition(3.0, 1.0), 0.25)

    assert position.distance == pytest.approx(1.5)
    assert position.angle == pytest.approx(0.25)


def test_orientation_minus_offset():
    """Test offsets subtract per axis with wrapping"""
    orientation = Orientation(3.0, 0.2, -0.1).minus(Orientation(-3.0, 0.1, 0.0))

    assert orientation.yaw == pytest.approx(6.0 - 2.0 * math.pi)
    assert orientation.pitch == pytest.approx(0.1)
    assert orientation.roll == pytest.approx(-0.1)

"""Tests for PIDController"""

import math

import pytest

from swerve_drive.controllers import PIDController


def test_proportional():
    """Test output is Kp times the error"""
    controller = PIDController(kp=2.0)

    assert controller.calculate(0.0, 1.0, 0.01) == pytest.approx(2.0)


def test_feedforward():
    """Test feedforward scales the setpoint"""
    controller = PIDController(kp=0.0, kf=0.5)

    assert controller.calculate(3.0, 3.0, 0.01) == pytest.approx(1.5)


def test_output_limit():
    """Test output is clamped"""
    controller = PIDController(kp=100.0, output_limit=5.0)

    assert controller.calculate(0.0, 1.0, 0.01) == 5.0
    assert controller.calculate(0.0, -1.0, 0.01) == -5.0


def test_integral_anti_windup():
    """Test the integral state is clamped"""
    controller = PIDController(kp=0.0, ki=1.0, integral_limit=0.5)

    for _ in range(100):
        controller.calculate(0.0, 1.0, 0.1)

    assert controller.integral == 0.5
    assert controller.calculate(0.0, 1.0, 0.1) == pytest.approx(0.5)


def test_continuous_input_short_way():
    """Test wrapped inputs turn the short way around"""
    controller = PIDController(kp=1.0)
    controller.enable_continuous_input(-math.pi, math.pi)

    assert controller.compute_error(3.0, -3.0) == pytest.approx(2.0 * math.pi - 6.0)
    assert controller.compute_error(-3.0, 3.0) == pytest.approx(6.0 - 2.0 * math.pi)


def test_invalid_continuous_range():
    """Test an empty range is rejected"""
    with pytest.raises(ValueError):
        PIDController(kp=1.0).enable_continuous_input(1.0, 1.0)


def test_reset():
    """Test reset clears the integral and derivative state"""
    controller = PIDController(kp=1.0, ki=1.0, kd=1.0)
    controller.calculate(0.0, 1.0, 0.1)
    controller.calculate(0.0, 2.0, 0.1)

    controller.reset()

    diagnostics = controller.get_diagnostics()
    assert diagnostics == {"error": 0.0, "integral": 0.0, "output": 0.0}
    # No derivative kick on the first step after a reset
    assert controller.calculate(0.0, 1.0, 0.1) == pytest.approx(1.0 + 0.1)

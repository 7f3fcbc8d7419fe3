"""Closed-loop feedback controller for motor velocity and position loops.

This module provides the PID controller that closes the velocity loop of
drive motors and the position loop of steer motors. Steer loops use
continuous input so the controller always turns the short way around.
"""

import math
from typing import Dict, Optional, Tuple


class PIDController:
    """PID feedback controller with setpoint feedforward and anti-windup.

    Control law:
        output = Kp * e + Ki * integral(e) + Kd * d(e)/dt + Kf * setpoint

    where e is the setpoint minus the measurement, wrapped into the input
    range when continuous input is enabled.

    Attributes:
        kp: Proportional gain.
        ki: Integral gain.
        kd: Derivative gain.
        kf: Feedforward gain applied to the setpoint.
        integral_limit: Clamp on the accumulated integral (anti-windup).
        output_limit: Clamp on the controller output, or None for no clamp.
    """

    def __init__(
        self,
        kp: float,
        ki: float = 0.0,
        kd: float = 0.0,
        kf: float = 0.0,
        integral_limit: float = 0.5,
        output_limit: Optional[float] = None,
    ):
        """Initialize the controller.

        Args:
            kp: Proportional gain. Output units per unit of error.
            ki: Integral gain. Output units per unit of integrated error.
            kd: Derivative gain. Output units per unit of error rate.
            kf: Feedforward gain. Output units per unit of setpoint.
            integral_limit: Anti-windup clamp on the integral term's state.
            output_limit: Symmetric clamp on the output. None disables it.
        """
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.kf = kf
        self.integral_limit = integral_limit
        self.output_limit = output_limit

        self.continuous_range: Optional[Tuple[float, float]] = None

        self.integral: float = 0.0
        self.prev_error: float = 0.0
        self.has_prev_error: bool = False
        self.last_output: float = 0.0

    def enable_continuous_input(self, minimum: float, maximum: float) -> None:
        """Treat the input as wrapping between ``minimum`` and ``maximum``.

        Args:
            minimum: Lower end of the input range (e.g. -π).
            maximum: Upper end of the input range (e.g. π).

        Raises:
            ValueError: If the range is empty.
        """
        if maximum <= minimum:
            raise ValueError(f"Invalid continuous range [{minimum}, {maximum}]")
        self.continuous_range = (minimum, maximum)

    def compute_error(self, measurement: float, setpoint: float) -> float:
        error = setpoint - measurement
        if self.continuous_range is not None:
            minimum, maximum = self.continuous_range
            span = maximum - minimum
            half = span / 2.0
            error = math.fmod(error + half, span)
            if error < 0:
                error += span
            error -= half
        return error

    def calculate(self, measurement: float, setpoint: float, dt: float) -> float:
        """Compute the controller output for one step.

        Args:
            measurement: Current process value.
            setpoint: Desired process value.
            dt: Time step since the last call (seconds).

        Returns:
            Controller output, clamped to output_limit when set.
        """
        error = self.compute_error(measurement, setpoint)

        if dt > 0 and self.has_prev_error:
            error_derivative = (error - self.prev_error) / dt
        else:
            error_derivative = 0.0

        self.prev_error = error
        self.has_prev_error = True

        if dt > 0:
            self.integral += error * dt
            self.integral = max(-self.integral_limit, min(self.integral_limit, self.integral))

        output = (
            self.kp * error
            + self.ki * self.integral
            + self.kd * error_derivative
            + self.kf * setpoint
        )

        if self.output_limit is not None:
            output = max(-self.output_limit, min(self.output_limit, output))

        self.last_output = output
        return output

    def reset(self) -> None:
        """Reset integral and derivative states to zero.

        Call this when the loop changes mode or setpoint discontinuously.
        """
        self.integral = 0.0
        self.prev_error = 0.0
        self.has_prev_error = False
        self.last_output = 0.0

    def get_diagnostics(self) -> Dict[str, float]:
        """Get diagnostic information for logging and debugging."""
        return {
            "error": self.prev_error,
            "integral": self.integral,
            "output": self.last_output,
        }

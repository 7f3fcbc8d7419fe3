"""Swerve module: one drive motor, one steer motor, one absolute encoder.

This module converts a desired wheel speed and angle into motor references
and reports the measured wheel state for kinematics and odometry.
"""

import logging
import math

from .geometry import ModulePosition, ModuleState, wrap_angle
from .interfaces import AbsoluteEncoder, Motor
from .kinematics import NUM_MODULES


class SwerveModule:
    """A single independently steered and driven wheel.

    Steering always takes the short way: a target more than 90° away is
    reached by reversing the drive direction instead. If the absolute encoder
    drops out, the module keeps reporting its last good angle, stops
    commanding the steer motor and keeps driving.

    Attributes:
        index: Module index 0..3 (front left, front right, back left, back right).
        drive_motor: Drive motor, mechanism units of meters and m/s.
        steer_motor: Steer motor, mechanism units of radians.
        encoder: Absolute steer angle sensor.
        max_velocity: Absolute maximum wheel speed (m/s).
        desired_state: Last state dispatched to the motors.
        degraded: True while the absolute encoder is unavailable.
    """

    def __init__(
        self,
        index: int,
        drive_motor: Motor,
        steer_motor: Motor,
        encoder: AbsoluteEncoder,
        config=None,
    ):
        """Initialize and configure the module hardware.

        Args:
            index: Module index in kinematics order (0..3).
            drive_motor: Drive motor controller.
            steer_motor: Steer motor controller.
            encoder: Absolute steer angle sensor.
            config: Configuration module or object. If None, uses
                swerve_drive.config.

        Raises:
            ValueError: If index is not a valid module index.
        """
        if config is None:
            from swerve_drive import config as cfg
        else:
            cfg = config

        if not isinstance(index, int) or not 0 <= index < NUM_MODULES:
            raise ValueError(f"Invalid module index {index!r}, expected 0..{NUM_MODULES - 1}")

        self.index = index
        self.drive_motor = drive_motor
        self.steer_motor = steer_motor
        self.encoder = encoder

        self.max_velocity: float = cfg.MAX_MODULE_SPEED
        self.angle_hold_speed: float = cfg.MODULE_ANGLE_HOLD_SPEED

        self.drive_motor.set_current_limit(cfg.DRIVE_CURRENT_LIMIT)
        self.steer_motor.set_current_limit(cfg.STEER_CURRENT_LIMIT)
        self.drive_motor.set_voltage_compensation(cfg.NOMINAL_VOLTAGE)
        self.steer_motor.set_voltage_compensation(cfg.NOMINAL_VOLTAGE)
        self.set_brake_mode(True)

        # Distance reading that counts as zero traveled
        self.distance_offset: float = 0.0

        # Encoder fallback state
        self.last_angle: float = 0.0
        self.degraded: bool = False

        self.desired_state = ModuleState(0.0, self.get_angle())

    def get_angle(self) -> float:
        """Read the steer angle, falling back to the last good reading."""
        try:
            angle = self.encoder.get_angle()
        except Exception as e:
            logging.debug(f"Module {self.index}: absolute encoder read failed: {e}")
            angle = None

        if angle is None or not math.isfinite(angle):
            if not self.degraded:
                logging.warning(
                    f"Module {self.index}: absolute encoder unavailable, "
                    f"holding last angle {math.degrees(self.last_angle):.1f}°"
                )
            self.degraded = True
            return self.last_angle

        if self.degraded:
            logging.info(f"Module {self.index}: absolute encoder recovered")
        self.degraded = False
        self.last_angle = wrap_angle(angle)
        return self.last_angle

    def set_desired_state(self, state: ModuleState) -> None:
        """Dispatch a wheel target to the motors.

        Args:
            state: Desired wheel speed (m/s) and angle (rad).
        """
        current_angle = self.get_angle()

        # Standing still: keep the wheels where they are
        if abs(state.speed) < self.angle_hold_speed:
            state = ModuleState(0.0, self.desired_state.angle)

        optimized = state.optimize(current_angle)
        self.desired_state = optimized

        self.drive_motor.set_velocity_reference(optimized.speed)
        if self.degraded:
            self.steer_motor.stop()
        else:
            self.steer_motor.set_position_reference(optimized.angle)

    def get_position(self) -> ModulePosition:
        return ModulePosition(
            self.drive_motor.get_position() - self.distance_offset, self.get_angle()
        )

    def get_state(self) -> ModuleState:
        return ModuleState(self.drive_motor.get_velocity(), self.get_angle())

    def reset_position(self) -> None:
        """Zero the distance traveled without moving the wheel."""
        self.distance_offset = self.drive_motor.get_position()

    def stop(self) -> None:
        self.drive_motor.stop()
        self.steer_motor.stop()

    def set_brake_mode(self, enable: bool) -> None:
        self.drive_motor.set_brake_mode(enable)
        self.steer_motor.set_brake_mode(enable)

"""Swerve drivebase orchestration.

This module ties the four swerve modules, the kinematics, the skew
compensator, the pose estimator and the IMU together behind the public drive
and pose API, and runs the periodic odometry and vision loops.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence

from .geometry import ChassisVelocity, ModulePosition, ModuleState, Orientation, Pose, wrap_angle
from .interfaces import IMU, VisionSource
from .kinematics import NUM_MODULES, SwerveKinematics
from .module import SwerveModule
from .periodic import PeriodicTask
from .pose_estimator import SwerveDrivePoseEstimator
from .skew import SkewCompensator


class SwerveDrivebase:
    """Swerve drivebase with latency-compensated pose estimation.

    The drive pipeline is:
        field-relative rotation → slow mode → skew compensation →
        inverse kinematics → desaturation → module dispatch

    Two periodic tasks keep the pose current: wheel odometry at
    ODOMETRY_PERIOD and vision polling at VISION_PERIOD. Sensors are read
    outside the estimator lock; the lock only guards the pose itself.

    Attributes:
        modules: The four swerve modules in index order.
        imu: Inertial measurement unit providing yaw.
        vision_source: Optional vision pose source polled by the vision task.
        kinematics: Kinematics shared by driving and odometry.
        skew_compensator: Curvature drift correction for drive commands.
        pose_estimator: Odometry/vision fusion engine.
        slow_mode: Whether commands are scaled by the slow mode multiplier.
    """

    def __init__(
        self,
        modules: Sequence[SwerveModule],
        imu: IMU,
        vision_source: Optional[VisionSource] = None,
        config=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the drivebase.

        Args:
            modules: Exactly four swerve modules with indices 0..3.
            imu: Inertial measurement unit.
            vision_source: Vision pose source. None disables vision.
            config: Configuration module or object. If None, uses
                swerve_drive.config.
            clock: Time source shared with the estimator and vision sources.

        Raises:
            ValueError: If the modules are not exactly indices 0..3.
        """
        if config is None:
            from swerve_drive import config as cfg
        else:
            cfg = config

        if len(modules) != NUM_MODULES:
            raise ValueError(f"A swerve drivebase needs {NUM_MODULES} modules, got {len(modules)}")
        indices = sorted(module.index for module in modules)
        if indices != list(range(NUM_MODULES)):
            raise ValueError(f"Module indices must be 0..{NUM_MODULES - 1} exactly once, got {indices}")

        self.modules: List[SwerveModule] = sorted(modules, key=lambda module: module.index)
        self.imu = imu
        self.vision_source = vision_source
        self.clock = clock

        self.kinematics = SwerveKinematics(cfg.MODULE_OFFSETS)
        self.skew_compensator = SkewCompensator(cfg.CONTROL_PERIOD)

        self.slow_mode: bool = False
        self.slow_mode_multiplier: float = cfg.SLOW_MODE_MULTIPLIER
        self.max_translational_vel: float = cfg.MAX_TRANSLATIONAL_VEL
        self.max_rotational_vel: float = cfg.MAX_ROTATIONAL_VEL
        self.vision_poll_timeout: float = cfg.VISION_POLL_TIMEOUT_SECONDS

        for module in self.modules:
            module.reset_position()

        self.pose_estimator = SwerveDrivePoseEstimator(
            self.kinematics,
            self.get_yaw(),
            self.get_module_positions(),
            Pose(),
            cfg.STATE_STD_DEVS,
            cfg.VISION_STD_DEVS,
            config=cfg,
            clock=clock,
        )

        self.odometry_task = PeriodicTask("odometry", self.update_odometry, cfg.ODOMETRY_PERIOD)
        self.vision_task = PeriodicTask("vision", self.poll_vision, cfg.VISION_PERIOD)

        # Last command after slow mode and skew compensation
        self.last_command = ChassisVelocity()

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    def drive(self, velocity: ChassisVelocity, field_relative: bool = False) -> None:
        """Drive the robot.

        Args:
            velocity: Commanded velocity. Positive x is forward (robot frame)
                or away from the driver station (field frame); positive y is
                left; positive omega is counter-clockwise.
            field_relative: True to interpret velocity in the field frame.
        """
        if field_relative:
            velocity = ChassisVelocity.from_field_relative(
                velocity.vx, velocity.vy, velocity.omega, self.get_yaw()
            )

        if self.slow_mode:
            velocity = velocity.scaled(self.slow_mode_multiplier)

        velocity = self.skew_compensator.compensate(velocity)

        states = self.kinematics.to_module_states(velocity)
        states = SwerveKinematics.desaturate(
            states,
            velocity,
            self.get_absolute_max_vel(),
            self.get_max_translational_vel(),
            self.get_max_rot_vel(),
        )

        for module in self.modules:
            module.set_desired_state(states[module.index])
        self.last_command = velocity

    def robot_relative_drive(self, velocity: ChassisVelocity) -> None:
        self.drive(velocity, field_relative=False)

    def field_oriented_drive(self, velocity: ChassisVelocity) -> None:
        self.drive(velocity, field_relative=True)

    def stop_modules(self) -> None:
        for module in self.modules:
            module.stop()

    def toggle_slow_mode(self) -> None:
        self.slow_mode = not self.slow_mode
        logging.info(f"Slow mode {'enabled' if self.slow_mode else 'disabled'}")

    def get_slow_mode(self) -> bool:
        return self.slow_mode

    def get_absolute_max_vel(self) -> float:
        """Maximum wheel speed of the hardware (m/s), not the configured limit."""
        return self.modules[0].max_velocity

    def get_max_translational_vel(self) -> float:
        return self.max_translational_vel

    def get_max_rot_vel(self) -> float:
        return self.max_rotational_vel

    # ------------------------------------------------------------------
    # Sensors
    # ------------------------------------------------------------------

    def get_rotation(self) -> Orientation:
        return self.imu.get_rotation()

    def get_yaw(self) -> float:
        return self.get_rotation().yaw

    def get_pitch(self) -> float:
        return self.get_rotation().pitch

    def get_roll(self) -> float:
        return self.get_rotation().roll

    def get_module_positions(self) -> List[ModulePosition]:
        return [module.get_position() for module in self.modules]

    def get_states(self) -> List[ModuleState]:
        return [module.get_state() for module in self.modules]

    def get_robot_velocity(self) -> ChassisVelocity:
        """Measured robot-relative chassis velocity from the module states."""
        return self.kinematics.to_chassis_velocity(self.get_states())

    def reset_states(self) -> None:
        """Zero every module's distance traveled, keeping the current pose."""
        for module in self.modules:
            module.reset_position()
        self.pose_estimator.reset_position(
            self.get_yaw(), self.get_module_positions(), self.get_pose()
        )

    # ------------------------------------------------------------------
    # Pose
    # ------------------------------------------------------------------

    def get_pose(self) -> Pose:
        """Current best estimate of the field pose.

        (0, 0) is the blue alliance corner; heading 0 faces away from the blue
        driver station.
        """
        return self.pose_estimator.get_pose()

    def reset_pose(self, pose: Pose) -> None:
        """Reset the pose estimate and re-zero the IMU yaw to match it.

        Args:
            pose: The new field pose.
        """
        offset = self.imu.get_offset()
        raw = self.imu.get_raw_rotation()
        self.imu.set_offset(
            Orientation(wrap_angle(raw.yaw - pose.heading), offset.pitch, offset.roll)
        )

        self.pose_estimator.reset_position(self.get_yaw(), self.get_module_positions(), pose)
        logging.info(f"Pose reset to ({pose.x:.2f}, {pose.y:.2f}, {pose.heading:.2f} rad)")

    def update_odometry(self) -> Pose:
        """Odometry tick: read the wheels and gyro, then integrate."""
        resets = self.pose_estimator.resets
        yaw = self.get_yaw()
        positions = self.get_module_positions()
        timestamp = self.clock()
        return self.pose_estimator.update_odometry(yaw, positions, timestamp, expected_resets=resets)

    def add_vision_measurement(
        self,
        pose: Pose,
        timestamp: float,
        std_devs: Optional[Sequence[float]] = None,
    ) -> bool:
        """Blend a vision pose taken at ``timestamp`` into the estimate."""
        return self.pose_estimator.add_vision_measurement(pose, timestamp, std_devs)

    async def poll_vision(self) -> bool:
        """Vision tick: poll the vision source once and apply its measurement.

        A timeout, an error or an empty poll is a no-op for this tick.

        Returns:
            True if a measurement was applied.
        """
        if self.vision_source is None:
            return False

        try:
            measurement = await asyncio.wait_for(
                self.vision_source.poll(), timeout=self.vision_poll_timeout
            )
        except asyncio.TimeoutError:
            logging.debug("Vision poll timed out")
            return False
        except Exception as e:
            logging.warning(f"Vision source error: {e}")
            return False

        if measurement is None:
            return False
        return self.add_vision_measurement(
            measurement.pose, measurement.timestamp, measurement.std_devs
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the odometry and vision loops on the running event loop."""
        self.odometry_task.start()
        if self.vision_source is not None:
            self.vision_task.start()

    async def stop(self) -> None:
        """Stop the periodic loops and the motors."""
        await self.odometry_task.stop()
        await self.vision_task.stop()
        self.stop_modules()

    async def __aenter__(self) -> "SwerveDrivebase":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

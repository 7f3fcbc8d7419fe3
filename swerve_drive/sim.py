"""
Simulated swerve hardware.

Implements the motor, absolute encoder, IMU and vision protocols against a
simple kinematic plant so the drivebase can be run and tested without a
robot. The simulation keeps its own clock and a ground-truth pose that the
estimate can be compared against.
"""

import bisect
import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .controllers import PIDController
from .geometry import ModuleState, Orientation, Pose, Twist, VisionMeasurement, wrap_angle
from .kinematics import NUM_MODULES, SwerveKinematics
from .module import SwerveModule
from .periodic import PeriodicTask


class SimMotor:
    """
    Motor with ideal sensing and a PID-closed velocity or position loop.

    In velocity mode the PID output is an acceleration; in position mode it
    is a velocity. Followers mirror the leader's motion every step.

    Attributes:
        name: Motor name used in log messages.
        position: Mechanism position (m or rad).
        velocity: Mechanism velocity (m/s or rad/s).
        mode: "idle", "velocity" or "position".
        reference: Active setpoint for the current mode.
    """

    def __init__(
        self,
        name: str,
        kp: float,
        max_output: Optional[float] = None,
        continuous: bool = False,
    ) -> None:
        self.name = name
        self.controller = PIDController(kp, output_limit=max_output)
        self.continuous = continuous
        if continuous:
            self.controller.enable_continuous_input(-math.pi, math.pi)

        self.position: float = 0.0
        self.velocity: float = 0.0
        self.mode: str = "idle"
        self.reference: float = 0.0

        self.current_limit: Optional[float] = None
        self.voltage_compensation: Optional[float] = None
        self.brake_mode: bool = True

        self.leader: Optional["SimMotor"] = None
        self.followers: List[Tuple["SimMotor", bool]] = []

    def _set_mode(self, mode: str, reference: float) -> None:
        if mode != self.mode:
            self.controller.reset()
        self.mode = mode
        self.reference = reference

    def set_velocity_reference(self, velocity: float) -> None:
        self._set_mode("velocity", velocity)

    def set_position_reference(self, position: float) -> None:
        self._set_mode("position", position)

    def stop(self) -> None:
        self._set_mode("idle", 0.0)

    def get_position(self) -> float:
        return self.position

    def get_velocity(self) -> float:
        return self.velocity

    def set_current_limit(self, amps: float) -> None:
        self.current_limit = amps

    def set_voltage_compensation(self, volts: float) -> None:
        self.voltage_compensation = volts

    def set_brake_mode(self, enable: bool) -> None:
        self.brake_mode = enable

    def follow(self, leader: "SimMotor", inverted: bool = False) -> None:
        self.leader = leader
        leader.followers.append((self, inverted))

    def step(self, dt: float) -> None:
        """Advance the plant by ``dt`` seconds."""
        if self.leader is not None:
            return

        if self.mode == "velocity":
            self.velocity += self.controller.calculate(self.velocity, self.reference, dt) * dt
        elif self.mode == "position":
            self.velocity = self.controller.calculate(self.position, self.reference, dt)
        elif self.brake_mode:
            self.velocity = 0.0
        else:
            # Coasting: friction bleeds off speed
            self.velocity *= max(0.0, 1.0 - 2.0 * dt)

        self._move(self.velocity, dt)
        for follower, inverted in self.followers:
            follower.velocity = -self.velocity if inverted else self.velocity
            follower._move(follower.velocity, dt)

    def _move(self, velocity: float, dt: float) -> None:
        self.position += velocity * dt
        if self.continuous:
            self.position = wrap_angle(self.position)


class SimAbsoluteEncoder:
    """
    Absolute encoder reading a simulated steer motor.

    The raw reading is the steer position plus the magnet mounting angle;
    ``offset`` is the calibration subtracted from it. Setting ``available``
    to False simulates a disconnected sensor.
    """

    def __init__(self, motor: SimMotor, magnet_offset: float = 0.0, offset: Optional[float] = None) -> None:
        self.motor = motor
        self.magnet_offset = magnet_offset
        self.offset = magnet_offset if offset is None else offset
        self.available = True

    def get_angle(self) -> Optional[float]:
        if not self.available:
            return None
        raw = self.motor.get_position() + self.magnet_offset
        return wrap_angle(raw - self.offset)


class SimIMU:
    """IMU whose raw yaw is driven by the simulated chassis."""

    def __init__(self, yaw: float = 0.0) -> None:
        self.raw = Orientation(wrap_angle(yaw), 0.0, 0.0)
        self.offset = Orientation()

    def rotate(self, dyaw: float) -> None:
        self.raw = Orientation(wrap_angle(self.raw.yaw + dyaw), self.raw.pitch, self.raw.roll)

    def get_rotation(self) -> Orientation:
        return self.raw.minus(self.offset)

    def get_raw_rotation(self) -> Orientation:
        return self.raw

    def get_offset(self) -> Orientation:
        return self.offset

    def set_offset(self, offset: Orientation) -> None:
        self.offset = offset


class DrivebaseSimulation:
    """
    Ground-truth simulation of a four-module swerve chassis.

    Every step advances all motors, recovers the true chassis velocity from
    the module states and integrates it into ``true_pose``. The IMU follows the
    true heading exactly. The simulation clock only advances with ``step``.

    Attributes:
        drive_motors: Drive motors in module index order.
        steer_motors: Steer motors in module index order.
        encoders: Absolute encoders in module index order.
        imu: Simulated IMU.
        true_pose: Ground-truth field pose.
        time: Simulated time (seconds).
        physics_task: Periodic task stepping the simulation in real time.
    """

    def __init__(self, initial_pose: Pose = Pose(), config=None) -> None:
        if config is None:
            from swerve_drive import config as cfg
        else:
            cfg = config
        self.config = cfg

        self.drive_motors = [
            SimMotor(f"drive{i}", cfg.SIM_DRIVE_KP, max_output=cfg.SIM_DRIVE_MAX_ACCEL)
            for i in range(NUM_MODULES)
        ]
        self.steer_motors = [
            SimMotor(f"steer{i}", cfg.SIM_STEER_KP, max_output=cfg.SIM_STEER_MAX_VEL, continuous=True)
            for i in range(NUM_MODULES)
        ]
        self.encoders = [SimAbsoluteEncoder(motor) for motor in self.steer_motors]
        self.imu = SimIMU(initial_pose.heading)
        self.kinematics = SwerveKinematics(cfg.MODULE_OFFSETS)

        self.true_pose = initial_pose
        self.time: float = 0.0
        self.physics_period: float = cfg.SIM_PHYSICS_PERIOD
        self.physics_task = PeriodicTask("physics", self.tick, self.physics_period)

        # Recent ground truth for latency simulation
        self.history_window: float = cfg.HISTORY_WINDOW_SECONDS
        self.history_times: List[float] = [0.0]
        self.history_poses: List[Pose] = [initial_pose]

    def clock(self) -> float:
        return self.time

    def build_modules(self) -> List[SwerveModule]:
        return [
            SwerveModule(i, self.drive_motors[i], self.steer_motors[i], self.encoders[i], config=self.config)
            for i in range(NUM_MODULES)
        ]

    def tick(self) -> None:
        self.step(self.physics_period)

    def step(self, dt: float) -> None:
        """Advance the simulation by ``dt`` seconds."""
        for motor in self.drive_motors + self.steer_motors:
            motor.step(dt)

        states = [
            ModuleState(drive.get_velocity(), wrap_angle(steer.get_position()))
            for drive, steer in zip(self.drive_motors, self.steer_motors)
        ]
        velocity = self.kinematics.to_chassis_velocity(states)
        self.true_pose = self.true_pose.exp(
            Twist(velocity.vx * dt, velocity.vy * dt, velocity.omega * dt)
        )
        self.imu.rotate(velocity.omega * dt)
        self.time += dt

        self.history_times.append(self.time)
        self.history_poses.append(self.true_pose)
        stale = bisect.bisect_left(self.history_times, self.time - self.history_window)
        if stale:
            del self.history_times[:stale]
            del self.history_poses[:stale]

    def run_for(self, duration: float) -> None:
        steps = int(round(duration / self.physics_period))
        for _ in range(steps):
            self.step(self.physics_period)

    def pose_at(self, timestamp: float) -> Pose:
        """Ground-truth pose at ``timestamp``, clamped to the recorded window."""
        i = bisect.bisect_left(self.history_times, timestamp)
        if i <= 0:
            return self.history_poses[0]
        if i >= len(self.history_times):
            return self.history_poses[-1]
        t0, t1 = self.history_times[i - 1], self.history_times[i]
        return self.history_poses[i - 1].interpolate(self.history_poses[i], (timestamp - t0) / (t1 - t0))

    def pose_error(self, estimate: Pose) -> Tuple[float, float]:
        """Translation (m) and heading (rad) error of ``estimate``."""
        dx = estimate.x - self.true_pose.x
        dy = estimate.y - self.true_pose.y
        dtheta = wrap_angle(estimate.heading - self.true_pose.heading)
        return math.hypot(dx, dy), abs(dtheta)


class SimVisionSource:
    """
    Vision source reporting noisy, delayed ground truth.

    Each poll returns the true pose from ``latency`` seconds ago with
    Gaussian noise added, stamped with that capture time. A fraction of polls
    return nothing to mimic frames without a tag in view.
    """

    def __init__(
        self,
        simulation: DrivebaseSimulation,
        noise_std: Optional[Sequence[float]] = None,
        latency: Optional[float] = None,
        dropout: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> None:
        cfg = simulation.config
        self.simulation = simulation
        self.noise_std = np.asarray(
            noise_std if noise_std is not None else cfg.SIM_VISION_NOISE_STD, dtype=float
        )
        self.latency = cfg.SIM_VISION_LATENCY_SECONDS if latency is None else latency
        self.dropout = cfg.SIM_VISION_DROPOUT if dropout is None else dropout
        self.rng = np.random.default_rng(seed)

        self.frames: int = 0
        self.dropped: int = 0

    async def poll(self) -> Optional[VisionMeasurement]:
        self.frames += 1
        if self.rng.random() < self.dropout:
            self.dropped += 1
            return None

        capture_time = self.simulation.time - self.latency
        true_pose = self.simulation.pose_at(capture_time)
        noise = self.rng.normal(0.0, self.noise_std)
        pose = Pose(
            true_pose.x + float(noise[0]),
            true_pose.y + float(noise[1]),
            wrap_angle(true_pose.heading + float(noise[2])),
        )
        logging.debug(f"Sim vision frame at t={capture_time:.3f}: ({pose.x:.3f}, {pose.y:.3f}, {pose.heading:.3f})")
        return VisionMeasurement(pose, capture_time)

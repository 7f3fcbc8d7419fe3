"""Pose estimation for the swerve drivebase.

This module fuses wheel odometry with vision pose measurements:
- Wheel odometry at 50 Hz for continuous pose prediction
- Vision corrections at ~25 Hz, stamped with their capture time
- Latency compensation by correcting the historical pose at capture time and
  replaying the newer odometry on top of it
- Kalman-style per-axis weighting from configured standard deviations
- A single lock serializing every pose read and mutation
"""

import bisect
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .geometry import ModulePosition, Pose, Twist, interpolate_angle
from .kinematics import SwerveKinematics
from .odometry import SwerveOdometry


@dataclass(frozen=True)
class OdometrySample:
    """Estimator state recorded at one odometry update."""

    pose: Pose
    gyro_angle: float
    module_positions: Tuple[ModulePosition, ...]

    def interpolate(self, end: "OdometrySample", t: float) -> "OdometrySample":
        return OdometrySample(
            self.pose.interpolate(end.pose, t),
            interpolate_angle(self.gyro_angle, end.gyro_angle, t),
            tuple(a.interpolate(b, t) for a, b in zip(self.module_positions, end.module_positions)),
        )


class PoseHistory:
    """Time-ordered buffer of odometry samples with interpolated lookup.

    Samples older than ``window`` seconds behind the newest one are dropped.
    """

    def __init__(self, window: float):
        self.window = window
        self.times: List[float] = []
        self.samples: List[OdometrySample] = []

    def __len__(self) -> int:
        return len(self.times)

    @property
    def oldest_time(self) -> float:
        return self.times[0]

    @property
    def newest_time(self) -> float:
        return self.times[-1]

    def add(self, timestamp: float, sample: OdometrySample) -> None:
        i = bisect.bisect_left(self.times, timestamp)
        if i < len(self.times) and self.times[i] == timestamp:
            self.samples[i] = sample
        else:
            self.times.insert(i, timestamp)
            self.samples.insert(i, sample)

        cutoff = self.times[-1] - self.window
        stale = bisect.bisect_left(self.times, cutoff)
        if stale:
            del self.times[:stale]
            del self.samples[:stale]

    def sample(self, timestamp: float) -> Optional[OdometrySample]:
        """Interpolated sample at ``timestamp``, clamped to the buffer ends."""
        if not self.times:
            return None
        if timestamp <= self.times[0]:
            return self.samples[0]
        if timestamp >= self.times[-1]:
            return self.samples[-1]

        i = bisect.bisect_left(self.times, timestamp)
        if self.times[i] == timestamp:
            return self.samples[i]
        t0, t1 = self.times[i - 1], self.times[i]
        return self.samples[i - 1].interpolate(self.samples[i], (timestamp - t0) / (t1 - t0))

    def entries_after(self, timestamp: float) -> List[Tuple[float, OdometrySample]]:
        i = bisect.bisect_right(self.times, timestamp)
        return list(zip(self.times[i:], self.samples[i:]))

    def clear(self) -> None:
        self.times.clear()
        self.samples.clear()


class SwerveDrivePoseEstimator:
    """Latency-compensated fusion of wheel odometry and vision.

    State: a single pose, owned by the internal odometry integrator, plus the
    recent odometry history needed to apply late vision measurements.

    Vision update (per axis i, with q = state std², r = vision std²):
        K_i = q_i / (q_i + sqrt(q_i * r_i))
        twist = log(historical_pose → vision_pose)
        corrected = exp(historical_pose, K ∘ twist)

    The corrected historical pose then becomes the base for replaying all
    odometry recorded after the capture time, so wheel motion that happened
    while the frame was in flight is kept.

    Thread safety: every public method takes the same lock, held only while
    the pose and history are read or mutated.
    """

    def __init__(
        self,
        kinematics: SwerveKinematics,
        gyro_angle: float,
        module_positions: Sequence[ModulePosition],
        initial_pose: Pose = Pose(),
        state_std_devs: Optional[Sequence[float]] = None,
        vision_std_devs: Optional[Sequence[float]] = None,
        config=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the estimator.

        Args:
            kinematics: Kinematics shared with the drivebase.
            gyro_angle: Current gyro yaw (rad).
            module_positions: Current position of every module.
            initial_pose: Starting field pose.
            state_std_devs: Odometry trust (x, y, heading). If None, uses
                STATE_STD_DEVS from config.
            vision_std_devs: Default vision trust (x, y, heading). If None,
                uses VISION_STD_DEVS from config.
            config: Configuration module or object. If None, uses
                swerve_drive.config.
            clock: Time source for odometry updates without a timestamp.
        """
        if config is None:
            from swerve_drive import config as cfg
        else:
            cfg = config

        self._lock = threading.Lock()
        self.clock = clock
        self.std_dev_epsilon: float = cfg.STD_DEV_EPSILON

        self.odometry = SwerveOdometry(kinematics, gyro_angle, module_positions, initial_pose)
        self.history = PoseHistory(cfg.HISTORY_WINDOW_SECONDS)

        self.q = self._variance(
            state_std_devs if state_std_devs is not None else cfg.STATE_STD_DEVS
        )
        self.vision_gain = self.compute_gain(
            vision_std_devs if vision_std_devs is not None else cfg.VISION_STD_DEVS
        )

        # Incremented by every hard reset
        self.resets: int = 0

        # Diagnostics
        self.odometry_discarded: int = 0
        self.vision_accepted: int = 0
        self.vision_rejected: int = 0
        self.last_correction = Twist()

    def _variance(self, std_devs: Sequence[float]) -> np.ndarray:
        std = np.asarray(std_devs, dtype=float)
        if std.shape != (3,):
            raise ValueError(f"Expected 3 standard deviations (x, y, heading), got {std_devs!r}")
        return np.maximum(np.abs(std), self.std_dev_epsilon) ** 2

    def compute_gain(self, vision_std_devs: Sequence[float]) -> np.ndarray:
        """Per-axis Kalman gain for vision measurements with these std-devs."""
        r = self._variance(vision_std_devs)
        return self.q / (self.q + np.sqrt(self.q * r))

    def set_vision_std_devs(self, std_devs: Sequence[float]) -> None:
        """Change the default trust in vision measurements."""
        gain = self.compute_gain(std_devs)
        with self._lock:
            self.vision_gain = gain

    def get_pose(self) -> Pose:
        with self._lock:
            return self.odometry.pose

    def reset_position(
        self, gyro_angle: float, module_positions: Sequence[ModulePosition], pose: Pose
    ) -> None:
        """Hard override: discard history and re-seed at ``pose``."""
        with self._lock:
            self.odometry.reset_position(gyro_angle, module_positions, pose)
            self.history.clear()
            self.resets += 1

    def update_odometry(
        self,
        gyro_angle: float,
        module_positions: Sequence[ModulePosition],
        timestamp: Optional[float] = None,
        expected_resets: Optional[int] = None,
    ) -> Pose:
        """Integrate one odometry sample and record it in the history.

        Args:
            gyro_angle: Gyro yaw (rad).
            module_positions: Current position of every module.
            timestamp: Sample time (seconds). If None, reads the clock.
            expected_resets: Value of ``resets`` observed before the sensors
                were read. If a reset happened since, the sample predates it
                and is discarded.

        Returns:
            The updated pose.
        """
        if timestamp is None:
            timestamp = self.clock()
        positions = tuple(module_positions)

        with self._lock:
            if expected_resets is not None and expected_resets != self.resets:
                self.odometry_discarded += 1
                return self.odometry.pose
            return self._update_locked(timestamp, gyro_angle, positions)

    def _update_locked(
        self, timestamp: float, gyro_angle: float, positions: Tuple[ModulePosition, ...]
    ) -> Pose:
        pose = self.odometry.update(gyro_angle, positions)
        self.history.add(timestamp, OdometrySample(pose, gyro_angle, positions))
        return pose

    def add_vision_measurement(
        self,
        vision_pose: Pose,
        timestamp: float,
        std_devs: Optional[Sequence[float]] = None,
    ) -> bool:
        """Blend a vision pose into the estimate at its capture time.

        Args:
            vision_pose: Field pose reported by the vision pipeline.
            timestamp: Capture time on the estimator's clock (seconds).
            std_devs: Trust for this measurement only. If None, uses the
                configured vision standard deviations.

        Returns:
            True if the measurement was applied, False if it was rejected for
            being older than the buffered odometry.
        """
        gain = self.compute_gain(std_devs) if std_devs is not None else None

        with self._lock:
            if not self.history or timestamp < self.history.oldest_time:
                self.vision_rejected += 1
                logging.debug(f"Vision measurement at t={timestamp:.3f} outside odometry history, rejected")
                return False

            timestamp = min(timestamp, self.history.newest_time)
            sample = self.history.sample(timestamp)
            if gain is None:
                gain = self.vision_gain

            twist = sample.pose.log(vision_pose)
            correction = twist.scale_axes(*(float(k) for k in gain))
            corrected = sample.pose.exp(correction)
            later = self.history.entries_after(timestamp)

            self.odometry.reset_position(sample.gyro_angle, sample.module_positions, corrected)
            self.history.add(
                timestamp, OdometrySample(corrected, sample.gyro_angle, sample.module_positions)
            )
            for t, entry in later:
                self._update_locked(t, entry.gyro_angle, entry.module_positions)

            self.vision_accepted += 1
            self.last_correction = correction
            return True

    def get_diagnostics(self) -> dict:
        """Get fusion diagnostic information for tuning and monitoring."""
        with self._lock:
            return {
                "history_size": len(self.history),
                "resets": self.resets,
                "odometry_discarded": self.odometry_discarded,
                "vision_accepted": self.vision_accepted,
                "vision_rejected": self.vision_rejected,
                "correction_dx": self.last_correction.dx,
                "correction_dy": self.last_correction.dy,
                "correction_dtheta": self.last_correction.dtheta,
                "gain_x": float(self.vision_gain[0]),
                "gain_y": float(self.vision_gain[1]),
                "gain_heading": float(self.vision_gain[2]),
            }

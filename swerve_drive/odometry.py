"""Wheel odometry for the swerve drivebase.

Integrates per-module distance deltas into a field-frame pose. Distances are
used instead of wheel velocities because they integrate cleanly across
angle wrap and wheel slip. Heading comes from the gyro, which is far more
accurate than the rotation implied by the wheels.
"""

from typing import List, Sequence

from .geometry import ModulePosition, Pose, Twist, angle_difference, wrap_angle
from .kinematics import NUM_MODULES, SwerveKinematics


class SwerveOdometry:
    """Dead-reckoning pose integrator.

    Each update turns the distance each wheel traveled since the previous
    update into a chassis twist (least squares), replaces the twist's rotation
    with the gyro delta, and follows it as an arc from the previous pose.

    Attributes:
        kinematics: Kinematics shared with the drivebase.
        pose: Current dead-reckoned pose.
    """

    def __init__(
        self,
        kinematics: SwerveKinematics,
        gyro_angle: float,
        module_positions: Sequence[ModulePosition],
        initial_pose: Pose = Pose(),
    ):
        self.kinematics = kinematics
        self.reset_position(gyro_angle, module_positions, initial_pose)

    def reset_position(
        self, gyro_angle: float, module_positions: Sequence[ModulePosition], pose: Pose
    ) -> None:
        """Re-seed the integrator.

        The gyro reading is remembered relative to ``pose.heading`` so the gyro
        does not need to be zeroed.
        """
        self._check_positions(module_positions)
        self.pose = pose
        self.gyro_offset = angle_difference(pose.heading, gyro_angle)
        self.previous_angle = pose.heading
        self.previous_positions: List[ModulePosition] = list(module_positions)

    def update(self, gyro_angle: float, module_positions: Sequence[ModulePosition]) -> Pose:
        """Integrate one odometry sample.

        Args:
            gyro_angle: Raw gyro yaw (rad).
            module_positions: Current position of every module.

        Returns:
            The updated pose.
        """
        self._check_positions(module_positions)
        angle = wrap_angle(gyro_angle + self.gyro_offset)

        deltas = [
            ModulePosition(current.distance - previous.distance, current.angle)
            for current, previous in zip(module_positions, self.previous_positions)
        ]
        twist = self.kinematics.to_twist(deltas)
        twist = Twist(twist.dx, twist.dy, angle_difference(angle, self.previous_angle))

        new_pose = self.pose.exp(twist)
        self.pose = Pose(new_pose.x, new_pose.y, angle)

        self.previous_angle = angle
        self.previous_positions = list(module_positions)
        return self.pose

    @staticmethod
    def _check_positions(module_positions: Sequence[ModulePosition]) -> None:
        if len(module_positions) != NUM_MODULES:
            raise ValueError(
                f"Expected {NUM_MODULES} module positions, got {len(module_positions)}"
            )

"""Second-order skew compensation for swerve drive commands.

A swerve drive applies one chassis velocity for a whole control period. When
that velocity both translates and rotates, the robot actually follows an arc,
so its heading at the end of the period is not the one the straight-line
command assumed and the robot drifts sideways. Treating the desired one-period
displacement as a pose and taking its logarithm gives the twist whose arc ends
exactly at that pose; dividing by the period turns it back into a velocity.
"""

import math
from typing import Optional

from .geometry import ChassisVelocity, Pose


class SkewCompensator:
    """Corrects chassis velocity commands for curvature drift.

    Pure numerical transform with no hardware dependency.

    Attributes:
        dt: Control period the command will be held for (seconds).
    """

    def __init__(self, dt: Optional[float] = None):
        """Initialize the compensator.

        Args:
            dt: Control period in seconds. If None, uses CONTROL_PERIOD from
                swerve_drive.config.

        Raises:
            ValueError: If dt is not positive.
        """
        if dt is None:
            from swerve_drive import config as cfg

            dt = cfg.CONTROL_PERIOD
        if dt <= 0:
            raise ValueError(f"Control period must be positive, got {dt}")
        self.dt = dt

    def compensate(self, velocity: ChassisVelocity) -> ChassisVelocity:
        """Return the velocity whose one-period arc ends at the commanded pose.

        A heading change of half a turn or more per period has no unique arc,
        so such commands are returned unchanged and left to desaturation.

        Args:
            velocity: Robot-frame command (m/s, m/s, rad/s).

        Returns:
            Corrected robot-frame command. Identical to the input when
            omega is zero or ``|omega * dt| >= π``.
        """
        dt = self.dt
        dtheta = velocity.omega * dt
        if dtheta == 0.0 or abs(dtheta) >= math.pi:
            return velocity

        target = Pose(velocity.vx * dt, velocity.vy * dt, dtheta)
        twist = Pose().log(target)

        return ChassisVelocity(twist.dx / dt, twist.dy / dt, twist.dtheta / dt)

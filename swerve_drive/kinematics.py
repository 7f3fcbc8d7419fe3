"""
Four-module swerve drive kinematic model.

This module converts between chassis velocities and individual wheel vectors
for a swerve drive with four fixed wheel offsets, and limits wheel commands to
the hardware speed ceiling.
"""

import math
from typing import List, Optional, Sequence

import numpy as np

from .geometry import ChassisVelocity, ModulePosition, ModuleState, Twist

NUM_MODULES = 4


class SwerveKinematics:
    """Rigid-body kinematics for four wheels at fixed offsets from the center.

    For each wheel at offset r = (x, y) the wheel velocity is
        v_wheel = v_center + ω × r = (vx - ω·y, vy + ω·x)

    Stacking the four wheels gives an 8×3 linear system. Inverse kinematics
    multiplies by that matrix; forward kinematics uses its pseudo-inverse,
    which is the least-squares fit of the overdetermined system.

    Attributes:
        module_offsets: (4, 2) array of wheel offsets (meters), robot frame.
        inverse_matrix: (8, 3) matrix mapping [vx, vy, ω] to wheel components.
        forward_matrix: (3, 8) pseudo-inverse of ``inverse_matrix``.
    """

    def __init__(self, module_offsets: Optional[Sequence[Sequence[float]]] = None):
        """Build the kinematic matrices.

        Args:
            module_offsets: Four (x, y) wheel offsets in meters. If None, uses
                MODULE_OFFSETS from swerve_drive.config.

        Raises:
            ValueError: If the geometry is malformed (wrong count, non-finite,
                or coincident wheels).
        """
        if module_offsets is None:
            from swerve_drive import config as cfg

            module_offsets = cfg.MODULE_OFFSETS

        offsets = np.asarray(module_offsets, dtype=float)
        if offsets.shape != (NUM_MODULES, 2):
            raise ValueError(
                f"Expected {NUM_MODULES} (x, y) module offsets, got shape {offsets.shape}"
            )
        if not np.all(np.isfinite(offsets)):
            raise ValueError("Module offsets must be finite")
        for i in range(NUM_MODULES):
            for j in range(i + 1, NUM_MODULES):
                if np.allclose(offsets[i], offsets[j]):
                    raise ValueError(f"Modules {i} and {j} share the same offset {offsets[i]}")

        self.module_offsets = offsets

        self.inverse_matrix = np.zeros((2 * NUM_MODULES, 3))
        for i, (x, y) in enumerate(offsets):
            self.inverse_matrix[2 * i] = [1.0, 0.0, -y]
            self.inverse_matrix[2 * i + 1] = [0.0, 1.0, x]

        if np.linalg.matrix_rank(self.inverse_matrix) < 3:
            raise ValueError("Module geometry does not constrain all three chassis axes")

        self.forward_matrix = np.linalg.pinv(self.inverse_matrix)

    def to_module_states(self, velocity: ChassisVelocity) -> List[ModuleState]:
        """Inverse kinematics: chassis velocity to four wheel vectors.

        Args:
            velocity: Desired robot-frame chassis velocity.

        Returns:
            Module states in module index order. A wheel with zero speed
            reports angle 0; callers that care hold their previous angle.
        """
        chassis = np.array([velocity.vx, velocity.vy, velocity.omega])
        wheel_components = (self.inverse_matrix @ chassis).reshape(NUM_MODULES, 2)

        return [
            ModuleState(float(math.hypot(vx, vy)), float(math.atan2(vy, vx)))
            for vx, vy in wheel_components
        ]

    def to_chassis_velocity(self, states: Sequence[ModuleState]) -> ChassisVelocity:
        """Forward kinematics: least-squares chassis velocity from wheel states."""
        vx, vy, omega = self._solve([(s.speed, s.angle) for s in states])
        return ChassisVelocity(vx, vy, omega)

    def to_twist(self, deltas: Sequence[ModulePosition]) -> Twist:
        """Least-squares chassis twist from per-module distance deltas.

        Args:
            deltas: Distance traveled by each wheel since the last sample,
                paired with the wheel angle at the end of the interval.
        """
        dx, dy, dtheta = self._solve([(d.distance, d.angle) for d in deltas])
        return Twist(dx, dy, dtheta)

    def _solve(self, polar: Sequence[tuple]) -> tuple:
        if len(polar) != NUM_MODULES:
            raise ValueError(f"Expected {NUM_MODULES} module values, got {len(polar)}")

        wheel_components = np.array(
            [[magnitude * math.cos(angle), magnitude * math.sin(angle)] for magnitude, angle in polar]
        ).reshape(2 * NUM_MODULES)

        vx, vy, omega = self.forward_matrix @ wheel_components
        return float(vx), float(vy), float(omega)

    @staticmethod
    def desaturate(
        states: Sequence[ModuleState],
        velocity: Optional[ChassisVelocity],
        abs_max: float,
        max_translational: float = 0.0,
        max_rotational: float = 0.0,
    ) -> List[ModuleState]:
        """Scale all wheel speeds uniformly so none exceeds the hardware limit.

        The same factor is applied to every wheel, so the commanded direction
        in velocity space and the ratio between any two wheels is preserved;
        only the magnitude shrinks.

        Args:
            states: Wheel targets from inverse kinematics.
            velocity: Chassis velocity the states were solved from. When given
                together with positive translational/rotational limits, the
                factor is also reduced so neither chassis limit is exceeded.
            abs_max: Absolute maximum wheel speed (m/s).
            max_translational: Chassis translational limit (m/s), 0 to ignore.
            max_rotational: Chassis rotational limit (rad/s), 0 to ignore.

        Returns:
            New list of module states; the input is not modified.
        """
        real_max = max((abs(s.speed) for s in states), default=0.0)

        scale = 1.0
        if abs_max > 0.0 and real_max > abs_max:
            scale = abs_max / real_max

        if velocity is not None and max_translational > 0.0 and max_rotational > 0.0:
            k = max(
                velocity.translational_speed / max_translational,
                abs(velocity.omega) / max_rotational,
            )
            if k > 1.0:
                scale = min(scale, 1.0 / k)

        if scale == 1.0:
            return list(states)
        return [ModuleState(s.speed * scale, s.angle) for s in states]

"""Planar geometry and value types for the swerve drivebase.

All angles are in radians and all value types are immutable, so snapshots can
be handed to other threads without copying. Poses live on SE(2); ``Pose.exp``
and ``Pose.log`` move between a pose and the constant-curvature twist that
reaches it.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

# Threshold below which the exp/log maps switch to their Taylor expansions.
EPSILON = 1e-9


def wrap_angle(angle: float) -> float:
    """Wrap an angle to [-π, π]."""
    return math.atan2(math.sin(angle), math.cos(angle))


def angle_difference(a: float, b: float) -> float:
    """Shortest signed rotation from ``b`` to ``a`` (radians)."""
    return wrap_angle(a - b)


def interpolate_angle(a: float, b: float, t: float) -> float:
    """Interpolate along the shortest arc from ``a`` to ``b``."""
    return wrap_angle(a + angle_difference(b, a) * t)


@dataclass(frozen=True)
class ChassisVelocity:
    """Robot-frame chassis velocity.

    Attributes:
        vx: Forward speed (m/s).
        vy: Leftward speed (m/s).
        omega: Counter-clockwise angular speed (rad/s).
    """

    vx: float = 0.0
    vy: float = 0.0
    omega: float = 0.0

    @classmethod
    def from_field_relative(
        cls, vx: float, vy: float, omega: float, heading: float
    ) -> "ChassisVelocity":
        """Convert a field-frame velocity into the robot frame.

        Args:
            vx: Speed along the field x axis (m/s).
            vy: Speed along the field y axis (m/s).
            omega: Angular speed (rad/s), identical in both frames.
            heading: Current robot heading in the field frame (rad).
        """
        cos_h = math.cos(heading)
        sin_h = math.sin(heading)
        return cls(vx * cos_h + vy * sin_h, -vx * sin_h + vy * cos_h, omega)

    def scaled(self, factor: float) -> "ChassisVelocity":
        return ChassisVelocity(self.vx * factor, self.vy * factor, self.omega * factor)

    @property
    def translational_speed(self) -> float:
        return math.hypot(self.vx, self.vy)

    def is_zero(self) -> bool:
        return self.vx == 0.0 and self.vy == 0.0 and self.omega == 0.0


@dataclass(frozen=True)
class ModuleState:
    """Wheel speed (m/s) and steer angle (rad) of one module."""

    speed: float = 0.0
    angle: float = 0.0

    def optimize(self, current_angle: float) -> "ModuleState":
        """Return the equivalent state reachable with at most a 90° turn.

        If the target is more than 90° away from ``current_angle``, the wheel
        is driven backwards and steered to the opposite direction instead.
        """
        delta = angle_difference(self.angle, current_angle)
        if abs(delta) > math.pi / 2.0:
            return ModuleState(-self.speed, wrap_angle(self.angle + math.pi))
        return ModuleState(self.speed, wrap_angle(self.angle))


@dataclass(frozen=True)
class ModulePosition:
    """Cumulative distance traveled (m) and current steer angle (rad)."""

    distance: float = 0.0
    angle: float = 0.0

    def interpolate(self, end: "ModulePosition", t: float) -> "ModulePosition":
        return ModulePosition(
            self.distance + (end.distance - self.distance) * t,
            interpolate_angle(self.angle, end.angle, t),
        )


@dataclass(frozen=True)
class Twist:
    """Pose delta along a constant-curvature arc, in the starting pose's frame."""

    dx: float = 0.0
    dy: float = 0.0
    dtheta: float = 0.0

    def __mul__(self, factor: float) -> "Twist":
        return Twist(self.dx * factor, self.dy * factor, self.dtheta * factor)

    __rmul__ = __mul__

    def scale_axes(self, kx: float, ky: float, ktheta: float) -> "Twist":
        """Scale each component by its own factor."""
        return Twist(self.dx * kx, self.dy * ky, self.dtheta * ktheta)


@dataclass(frozen=True)
class Pose:
    """Robot position (m) and heading (rad) in the field frame."""

    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0

    def transform_by(self, dx: float, dy: float, dtheta: float) -> "Pose":
        """Apply a transform expressed in this pose's own frame."""
        cos_h = math.cos(self.heading)
        sin_h = math.sin(self.heading)
        return Pose(
            self.x + dx * cos_h - dy * sin_h,
            self.y + dx * sin_h + dy * cos_h,
            wrap_angle(self.heading + dtheta),
        )

    def relative_to(self, other: "Pose") -> "Pose":
        """Express this pose in the frame of ``other``."""
        dx = self.x - other.x
        dy = self.y - other.y
        cos_h = math.cos(other.heading)
        sin_h = math.sin(other.heading)
        return Pose(
            dx * cos_h + dy * sin_h,
            -dx * sin_h + dy * cos_h,
            angle_difference(self.heading, other.heading),
        )

    def exp(self, twist: Twist) -> "Pose":
        """Follow ``twist`` as a constant-curvature arc starting at this pose."""
        dtheta = twist.dtheta
        sin_theta = math.sin(dtheta)
        cos_theta = math.cos(dtheta)
        if abs(dtheta) < EPSILON:
            s = 1.0 - dtheta * dtheta / 6.0
            c = 0.5 * dtheta
        else:
            s = sin_theta / dtheta
            c = (1.0 - cos_theta) / dtheta
        return self.transform_by(
            twist.dx * s - twist.dy * c,
            twist.dx * c + twist.dy * s,
            dtheta,
        )

    def log(self, end: "Pose") -> Twist:
        """Return the twist that takes this pose to ``end`` along one arc.

        Inverse of :meth:`exp`. The translation is multiplied by the complex
        number ``(h, -dθ/2)`` where ``h = (dθ/2) / tan(dθ/2)``; near
        ``dθ = 0`` the second-order expansion ``1 - dθ²/12`` is used.
        """
        transform = end.relative_to(self)
        dtheta = transform.heading
        half_dtheta = 0.5 * dtheta
        cos_minus_one = math.cos(dtheta) - 1.0
        if abs(cos_minus_one) < EPSILON:
            half_theta_by_tan = 1.0 - dtheta * dtheta / 12.0
        else:
            half_theta_by_tan = -(half_dtheta * math.sin(dtheta)) / cos_minus_one
        return Twist(
            transform.x * half_theta_by_tan + transform.y * half_dtheta,
            -transform.x * half_dtheta + transform.y * half_theta_by_tan,
            dtheta,
        )

    def interpolate(self, end: "Pose", t: float) -> "Pose":
        """Interpolate along the arc from this pose to ``end`` (t in [0, 1])."""
        if t <= 0.0:
            return self
        if t >= 1.0:
            return end
        return self.exp(self.log(end) * t)


@dataclass(frozen=True)
class Orientation:
    """Three-axis orientation from the inertial sensor (radians)."""

    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0

    def minus(self, offset: "Orientation") -> "Orientation":
        return Orientation(
            angle_difference(self.yaw, offset.yaw),
            angle_difference(self.pitch, offset.pitch),
            angle_difference(self.roll, offset.roll),
        )


@dataclass(frozen=True)
class VisionMeasurement:
    """Vision pose estimate stamped with its capture time.

    Attributes:
        pose: Field-frame robot pose reported by the vision pipeline.
        timestamp: Capture time on the estimator's clock (seconds). Sources
            compute it as ``now - latency``.
        std_devs: Optional per-measurement trust (x, y, heading). When None the
            estimator's configured vision standard deviations are used.
    """

    pose: Pose
    timestamp: float
    std_devs: Optional[Tuple[float, float, float]] = None

"""
Hardware capability interfaces (protocols) for the swerve drivebase.

These define the contracts that motor, encoder, IMU and vision
implementations must follow. The kinematics, module and fusion code depend
only on these protocols, never on a vendor driver.
"""

from typing import Optional, Protocol

from .geometry import Orientation, VisionMeasurement


class Motor(Protocol):
    """
    Interface for a closed-loop motor controller.

    Positions and velocities are in mechanism units: meters and m/s for drive
    motors, radians and rad/s for steer motors.
    """

    def set_velocity_reference(self, velocity: float) -> None:
        """Run the onboard velocity loop towards ``velocity``."""
        ...

    def set_position_reference(self, position: float) -> None:
        """Run the onboard position loop towards ``position``."""
        ...

    def stop(self) -> None:
        """Cut output and drop any active reference."""
        ...

    def get_position(self) -> float:
        ...

    def get_velocity(self) -> float:
        ...

    def set_current_limit(self, amps: float) -> None:
        ...

    def set_voltage_compensation(self, volts: float) -> None:
        ...

    def set_brake_mode(self, enable: bool) -> None:
        """Brake (True) or coast (False) when no output is applied."""
        ...

    def follow(self, leader: "Motor", inverted: bool = False) -> None:
        """Mirror every output of ``leader``."""
        ...


class AbsoluteEncoder(Protocol):
    """
    Interface for an absolute steer angle sensor.

    Attributes:
        offset: Zero offset (radians) subtracted from the raw reading so that
            0 means the wheel points forward.
    """

    offset: float

    def get_angle(self) -> Optional[float]:
        """
        Read the wrapped steer angle.

        Returns:
            Angle in radians within [-π, π], or None if the sensor is
            unavailable this cycle.
        """
        ...


class IMU(Protocol):
    """
    Interface for the inertial measurement unit.

    Reported orientation is the raw orientation minus a software offset that
    the drivebase sets when the pose is reset.
    """

    def get_rotation(self) -> Orientation:
        """Orientation with the software offset applied."""
        ...

    def get_raw_rotation(self) -> Orientation:
        """Orientation without the software offset."""
        ...

    def get_offset(self) -> Orientation:
        ...

    def set_offset(self, offset: Orientation) -> None:
        ...


class VisionSource(Protocol):
    """
    Interface for a vision pose source (tag detector, co-processor, ...).
    """

    async def poll(self) -> Optional[VisionMeasurement]:
        """
        Return the newest unconsumed pose estimate.

        Should return promptly. Returns None when no detection is available
        this cycle.
        """
        ...

"""Tests for SwerveDrivebase"""

import asyncio
import math

import pytest

from swerve_drive import config
from swerve_drive.drivebase import SwerveDrivebase
from swerve_drive.geometry import ChassisVelocity, Orientation, Pose, VisionMeasurement
from swerve_drive.sim import SimVisionSource


class StaticVisionSource:
    """Vision source returning a fixed measurement"""

    def __init__(self, measurement):
        self.measurement = measurement

    async def poll(self):
        return self.measurement


class SlowVisionSource:
    """Vision source that never answers in time"""

    async def poll(self):
        await asyncio.sleep(1.0)
        return VisionMeasurement(Pose(9.0, 9.0, 0.0), 0.0)


class FailingVisionSource:
    """Vision source whose poll raises"""

    async def poll(self):
        raise ConnectionError("camera unplugged")


def drive_for(drivebase, simulation, velocity, seconds, field_relative=False):
    """Run the drive and odometry loops in lockstep with the physics"""
    for _ in range(int(round(seconds / config.CONTROL_PERIOD))):
        drivebase.drive(velocity, field_relative)
        simulation.run_for(config.CONTROL_PERIOD)
        drivebase.update_odometry()


def test_requires_four_modules(simulation):
    """Test the drivebase refuses anything but four modules"""
    modules = simulation.build_modules()

    with pytest.raises(ValueError):
        SwerveDrivebase(modules[:3], simulation.imu)


def test_rejects_duplicate_indices(simulation):
    """Test each module index must appear exactly once"""
    modules = simulation.build_modules()

    with pytest.raises(ValueError):
        SwerveDrivebase([modules[0], modules[0], modules[2], modules[3]], simulation.imu)


def test_forward_command(drivebase):
    """Test field-relative 1 m/s forward at yaw 0 commands every wheel to 1 m/s at 0°"""
    assert drivebase.get_yaw() == 0.0

    drivebase.drive(ChassisVelocity(1.0, 0.0, 0.0), field_relative=True)

    for module in drivebase.modules:
        assert module.desired_state.speed == pytest.approx(1.0)
        assert module.desired_state.angle == pytest.approx(0.0)
        assert module.drive_motor.reference == pytest.approx(1.0)


def test_slow_mode(drivebase):
    """Test slow mode scales the command by the multiplier"""
    drivebase.toggle_slow_mode()
    assert drivebase.get_slow_mode() is True

    drivebase.drive(ChassisVelocity(2.0, 0.0, 0.0))

    for module in drivebase.modules:
        assert module.desired_state.speed == pytest.approx(0.6)

    drivebase.toggle_slow_mode()
    assert drivebase.get_slow_mode() is False


def test_command_desaturated(drivebase):
    """Test wheel speeds never exceed the hardware maximum"""
    drivebase.drive(ChassisVelocity(10.0, 0.0, 0.0))

    for module in drivebase.modules:
        assert module.desired_state.speed == pytest.approx(drivebase.get_absolute_max_vel())


def test_speed_limits(drivebase):
    """Test limit getters come from config"""
    assert drivebase.get_absolute_max_vel() == config.MAX_MODULE_SPEED
    assert drivebase.get_max_translational_vel() == config.MAX_TRANSLATIONAL_VEL
    assert drivebase.get_max_rot_vel() == config.MAX_ROTATIONAL_VEL


def test_field_relative_command(drivebase):
    """Test a field-frame command is rotated by the yaw"""
    drivebase.reset_pose(Pose(0.0, 0.0, math.pi / 2.0))

    drivebase.field_oriented_drive(ChassisVelocity(1.0, 0.0, 0.0))

    assert drivebase.last_command.vx == pytest.approx(0.0, abs=1e-12)
    assert drivebase.last_command.vy == pytest.approx(-1.0)


def test_robot_relative_ignores_yaw(drivebase):
    """Test a robot-frame command is not rotated"""
    drivebase.reset_pose(Pose(0.0, 0.0, math.pi / 2.0))

    drivebase.robot_relative_drive(ChassisVelocity(1.0, 0.0, 0.0))

    assert drivebase.last_command == ChassisVelocity(1.0, 0.0, 0.0)


def test_reset_pose_rezeroes_imu(drivebase, simulation):
    """Test reset_pose moves the estimate and the IMU yaw together"""
    simulation.imu.set_offset(Orientation(0.0, 0.1, 0.2))
    raw = simulation.imu.get_raw_rotation()

    drivebase.reset_pose(Pose(1.0, 2.0, math.pi / 2.0))

    assert drivebase.get_pose() == Pose(1.0, 2.0, math.pi / 2.0)
    assert drivebase.get_yaw() == pytest.approx(math.pi / 2.0)
    assert simulation.imu.get_raw_rotation() == raw
    assert simulation.imu.get_offset().pitch == 0.1
    assert simulation.imu.get_offset().roll == 0.2


def test_odometry_tracks_truth(drivebase, simulation):
    """Test the estimate follows the simulated chassis driving straight"""
    drive_for(drivebase, simulation, ChassisVelocity(1.0, 0.0, 0.0), 1.0)

    pose = drivebase.get_pose()
    assert simulation.true_pose.x > 0.8
    assert pose.x == pytest.approx(simulation.true_pose.x, abs=1e-6)
    assert pose.y == pytest.approx(simulation.true_pose.y, abs=1e-6)


def test_odometry_tracks_arc(drivebase, simulation):
    """Test the estimate follows the simulated chassis while turning"""
    drive_for(drivebase, simulation, ChassisVelocity(1.0, 0.0, 1.0), 2.0)

    translation_error, heading_error = simulation.pose_error(drivebase.get_pose())
    assert translation_error < 0.05
    assert heading_error < 0.01


def test_robot_velocity(drivebase, simulation):
    """Test measured velocity comes from the wheel states"""
    for motor in simulation.drive_motors:
        motor.velocity = 1.0

    velocity = drivebase.get_robot_velocity()

    assert velocity.vx == pytest.approx(1.0)
    assert velocity.vy == pytest.approx(0.0, abs=1e-12)
    assert velocity.omega == pytest.approx(0.0, abs=1e-12)


def test_reset_states_keeps_pose(drivebase, simulation):
    """Test zeroing the wheel distances does not move the estimate"""
    drive_for(drivebase, simulation, ChassisVelocity(1.0, 0.0, 0.0), 0.5)
    before = drivebase.get_pose()

    drivebase.reset_states()
    drivebase.update_odometry()

    assert all(p.distance == 0.0 for p in drivebase.get_module_positions())
    assert drivebase.get_pose().x == pytest.approx(before.x)


def test_vision_applied(drivebase):
    """Test a polled measurement is blended into the estimate"""
    drivebase.update_odometry()
    drivebase.vision_source = StaticVisionSource(VisionMeasurement(Pose(1.0, 0.0, 0.0), 0.0))

    assert asyncio.run(drivebase.poll_vision()) is True
    assert drivebase.get_pose().x == pytest.approx(0.25)


@pytest.mark.parametrize(
    "source",
    [SlowVisionSource(), FailingVisionSource(), StaticVisionSource(None), None],
)
def test_vision_tick_noop(drivebase, source):
    """Test a timed-out, failing, empty or missing source changes nothing"""
    drivebase.update_odometry()
    drivebase.vision_source = source
    drivebase.vision_poll_timeout = 0.01

    assert asyncio.run(drivebase.poll_vision()) is False
    assert drivebase.get_pose() == Pose()


def test_periodic_loops(drivebase, simulation):
    """Test start/stop run the odometry loop and stop the motors"""

    async def run():
        async with drivebase:
            simulation.physics_task.start()
            drivebase.drive(ChassisVelocity(1.0, 0.0, 0.0))
            await asyncio.sleep(0.2)
            await simulation.physics_task.stop()
            assert drivebase.odometry_task.running
            assert not drivebase.vision_task.running

    asyncio.run(run())

    assert drivebase.odometry_task.ticks > 0
    assert not drivebase.odometry_task.running
    assert drivebase.get_pose().x > 0.0
    for motor in simulation.drive_motors:
        assert motor.mode == "idle"


def test_periodic_vision(simulation):
    """Test the vision loop feeds simulated camera frames into the estimate"""
    vision = SimVisionSource(simulation, noise_std=(0.0, 0.0, 0.0), dropout=0.0, seed=1)
    drivebase = SwerveDrivebase(
        simulation.build_modules(), simulation.imu, vision_source=vision, clock=simulation.clock
    )

    async def run():
        async with drivebase:
            simulation.physics_task.start()
            await asyncio.sleep(0.3)
            await simulation.physics_task.stop()

    asyncio.run(run())

    assert vision.frames > 0
    assert drivebase.pose_estimator.vision_accepted >= 1

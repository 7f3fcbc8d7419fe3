"""Shared fixtures for drivebase tests"""

import pytest

from swerve_drive.drivebase import SwerveDrivebase
from swerve_drive.kinematics import SwerveKinematics
from swerve_drive.sim import DrivebaseSimulation


@pytest.fixture
def kinematics():
    """Kinematics with the default module geometry"""
    return SwerveKinematics()


@pytest.fixture
def simulation():
    """Simulated chassis starting at the origin"""
    return DrivebaseSimulation()


@pytest.fixture
def drivebase(simulation):
    """Drivebase on simulated hardware, sharing the simulation clock"""
    return SwerveDrivebase(simulation.build_modules(), simulation.imu, clock=simulation.clock)

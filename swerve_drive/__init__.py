"""Swerve Drive - Swerve Drivebase Control with Latency-Compensated Pose Estimation

Drive control and pose estimation for a four-module swerve chassis.

## Architecture Overview

Commands flow down a fixed pipeline:

### Layer 1: Command Shaping (drivebase.py, skew.py)
Field-relative rotation, slow mode, and skew compensation.
- Field-relative: rotate by the IMU yaw into the robot frame
- Slow mode: scale the whole command by a constant multiplier
- Skew compensation: correct curvature drift while translating and rotating

### Layer 2: Kinematics (kinematics.py)
Chassis velocity to per-module wheel states and back.
- Inverse kinematics: 8×3 linear map from (vx, vy, ω)
- Forward kinematics: least squares via the pseudo-inverse
- Desaturation: scale all wheels together to respect speed limits

### Layer 3: Modules (module.py)
Per-wheel dispatch to drive and steer motors.
- Shortest-path steering (flip the drive instead of turning past 90°)
- Angle hold when stopped
- Absolute encoder outage fallback

Pose is estimated alongside the command path:

### Pose Estimation (odometry.py, pose_estimator.py)
- Wheel odometry at 50 Hz with gyro heading
- Vision at ~25 Hz, applied at its capture time and replayed forward
- Kalman-style per-axis weighting from configured standard deviations

## Modules

- `config.py` - Centralized configuration parameters with documentation
- `geometry.py` - Poses, twists, velocities and module states
- `kinematics.py` - Swerve kinematics and desaturation
- `skew.py` - Skew compensation
- `module.py` - Swerve module
- `odometry.py` - Wheel odometry integrator
- `pose_estimator.py` - Odometry/vision fusion
- `drivebase.py` - Drivebase orchestration and periodic loops
- `periodic.py` - Periodic asyncio tasks
- `interfaces.py` - Hardware protocols
- `controllers.py` - PID controller
- `vision.py` - WebSocket vision source
- `sim.py` - Simulated hardware and ground truth
- `runner.py` - Simulated run and logging setup

## Quick Start

```bash
python -m swerve_drive --vx 1.0 --omega 0.5 --duration 5
```

## Version

0.1.0 - Initial implementation
"""

__version__ = "0.1.0"

# Export key classes for convenience
from .drivebase import SwerveDrivebase
from .kinematics import SwerveKinematics
from .module import SwerveModule
from .pose_estimator import SwerveDrivePoseEstimator
from .skew import SkewCompensator

__all__ = [
    "SwerveDrivebase",
    "SwerveKinematics",
    "SwerveModule",
    "SwerveDrivePoseEstimator",
    "SkewCompensator",
]

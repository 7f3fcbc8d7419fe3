"""Configuration parameters for the swerve drivebase.

This module centralizes all configuration parameters including:
- Physical drivebase geometry and speed limits
- Sensor fusion trust parameters
- Periodic loop rates
- Simulated hardware parameters
- Vision co-processor connection parameters

All parameters are documented with their purpose, units, and tuning rationale.
Classes that take a ``config`` argument accept this module or any object with
the same attribute names.
"""

import math

# ============================================================================
# Physical Drivebase Parameters
# ============================================================================

MODULE_OFFSETS = (
    (0.2667, 0.2667),  # Front left
    (0.2667, -0.2667),  # Front right
    (-0.2667, 0.2667),  # Back left
    (-0.2667, -0.2667),  # Back right
)
"""Wheel contact point offsets from the robot center (meters), robot frame.

Positive x is forward, positive y is left. Order is module index 0..3 and is
shared by forward kinematics, inverse kinematics and odometry.
Fixed by frame design (10.5 in from center on each axis).
"""

MAX_MODULE_SPEED = 4.5
"""Absolute maximum wheel speed (m/s).

Free speed of the drive motor through the gear reduction. Desaturation
never commands a wheel above this value.
"""

MAX_TRANSLATIONAL_VEL = 4.5
"""Maximum configured translational speed of the chassis (m/s)."""

MAX_ROTATIONAL_VEL = 2.0 * math.pi
"""Maximum configured rotational speed of the chassis (rad/s).

One full turn per second keeps the skew correction within its useful range.
"""

MODULE_ANGLE_HOLD_SPEED = 1e-3
"""Wheel speed below which a module keeps its previous steer target (m/s).

Prevents the wheels from snapping back to 0 rad whenever the robot is
commanded to stand still.
"""


# ============================================================================
# Driving Parameters
# ============================================================================

SLOW_MODE_MULTIPLIER = 0.3
"""Scale factor applied to every velocity component while slow mode is on.

Tuning rationale:
- 0.3 gives fine positioning control near field elements
- Applied before skew compensation so the correction matches the real command
"""

CONTROL_PERIOD = 0.02
"""Nominal control period used by skew compensation (seconds).

Matches the 50 Hz command rate of the caller.
"""


# ============================================================================
# Actuator Configuration
# ============================================================================

DRIVE_CURRENT_LIMIT = 100.0
"""Stator current limit applied to drive motors (amps)."""

STEER_CURRENT_LIMIT = 40.0
"""Stator current limit applied to steer motors (amps)."""

NOMINAL_VOLTAGE = 12.0
"""Voltage compensation target for all motors (volts)."""


# ============================================================================
# Pose Estimation Parameters (Sensor Fusion)
# ============================================================================

STATE_STD_DEVS = (0.1, 0.1, 0.1)
"""Trust in the wheel odometry model (x m, y m, heading rad).

Expressed as standard deviations. These set relative trust against
VISION_STD_DEVS, they are not absolute error bars.
"""

VISION_STD_DEVS = (0.3, 0.3, 0.3)
"""Trust in vision pose measurements (x m, y m, heading rad).

Larger values = trust vision less, trust odometry more.

Tuning rationale:
- 0.3 vs 0.1 state gives a per-axis Kalman gain of 0.25
- A single tag frame pulls the estimate a quarter of the way, so one bad
  detection cannot teleport the robot
"""

STD_DEV_EPSILON = 1e-6
"""Floor applied to every standard deviation before computing gains.

Zero standard deviations would divide by zero in the gain formula.
"""

HISTORY_WINDOW_SECONDS = 1.5
"""Length of the odometry history kept for latency compensation (seconds).

Vision measurements older than the oldest buffered sample are rejected.
Must exceed the worst-case vision pipeline latency.
"""


# ============================================================================
# Periodic Loop Rates
# ============================================================================

ODOMETRY_PERIOD = 0.02
"""Wheel odometry update period (seconds). 50 Hz."""

VISION_FRAMERATE = 25.0
"""Expected tag-detection frame rate of the vision co-processor (Hz)."""

VISION_PERIOD = 1.0 / VISION_FRAMERATE
"""Vision polling period (seconds)."""

VISION_POLL_TIMEOUT_SECONDS = 0.02
"""Maximum time a vision poll may take before the tick is skipped (seconds)."""


# ============================================================================
# Simulated Hardware Parameters
# ============================================================================

SIM_PHYSICS_PERIOD = 0.005
"""Physics integration step for the simulated drivebase (seconds). 200 Hz."""

SIM_DRIVE_KP = 50.0
"""Velocity loop gain of simulated drive motors (1/s).

Acceleration command per m/s of velocity error. Gives a 20 ms time constant.
"""

SIM_DRIVE_MAX_ACCEL = 14.0
"""Acceleration limit of simulated drive motors (m/s²)."""

SIM_STEER_KP = 30.0
"""Position loop gain of simulated steer motors (rad/s per rad)."""

SIM_STEER_MAX_VEL = 4.0 * math.pi
"""Maximum simulated steer rate (rad/s)."""

SIM_VISION_NOISE_STD = (0.05, 0.05, 0.02)
"""Noise added to simulated vision poses (x m, y m, heading rad), 1-sigma."""

SIM_VISION_LATENCY_SECONDS = 0.035
"""Capture plus pipeline latency of simulated vision frames (seconds)."""

SIM_VISION_DROPOUT = 0.2
"""Probability that a simulated vision poll sees no tag (range: [0, 1])."""


# ============================================================================
# Terminal Colors
# ============================================================================

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for status messages."""

TERM_ORANGE = "\033[38;2;247;72;35m"
"""Terminal color code for highlighted results."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""


# ============================================================================
# Vision Co-processor Connection
# ============================================================================

VISION_WS_URI = "ws://10.1.67.11:5810"
"""WebSocket URI of the vision co-processor pose stream."""

WS_RETRY_DELAY_SECONDS = 1
"""Initial retry delay for failed WebSocket connections (seconds)."""

WS_MAX_RETRY_DELAY_SECONDS = 60
"""Maximum retry delay with exponential backoff (seconds)."""

WS_TIMEOUT_SECONDS = 5.0
"""Timeout for WebSocket message reception (seconds)."""


# ============================================================================
# Simulation Run Configuration
# ============================================================================

RUN_DURATION = 5.0
"""Default duration of a simulated run (seconds)."""

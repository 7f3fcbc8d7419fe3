"""
Simulated Drivebase Runner

This module drives a simulated swerve chassis with a constant command, runs
the odometry and vision loops against it, and reports the fused pose against
the ground truth when the run ends. Vision comes from the simulated camera,
or from a live vision server when a WebSocket URI is given.
"""

import asyncio
import logging
import signal
from typing import Optional

from swerve_drive.config import CONTROL_PERIOD, RUN_DURATION, TERM_BLUE, TERM_ORANGE, TERM_RESET
from swerve_drive.drivebase import SwerveDrivebase
from swerve_drive.geometry import ChassisVelocity
from swerve_drive.periodic import PeriodicTask
from swerve_drive.sim import DrivebaseSimulation, SimVisionSource
from swerve_drive.vision import WebSocketVisionSource


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    This formatter provides clean console output by showing INFO messages without
    timestamps while preserving full context for WARNING, ERROR, and DEBUG messages.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


def report(drivebase: SwerveDrivebase, simulation: DrivebaseSimulation) -> None:
    """Log the fused pose against the ground truth, then the fusion and drive tracking statistics."""
    pose = drivebase.get_pose()
    truth = simulation.true_pose
    translation_error, heading_error = simulation.pose_error(pose)
    diagnostics = drivebase.pose_estimator.get_diagnostics()
    tracking = max(
        (motor.controller.get_diagnostics() for motor in simulation.drive_motors),
        key=lambda d: abs(d["error"]),
    )

    logging.info(f"{TERM_BLUE}\033[1m→ Estimate: ({pose.x:.3f}, {pose.y:.3f}, {pose.heading:.3f} rad){TERM_RESET}")
    logging.info(f"{TERM_BLUE}\033[1m→ Truth:    ({truth.x:.3f}, {truth.y:.3f}, {truth.heading:.3f} rad){TERM_RESET}")
    logging.info(
        f"{TERM_BLUE}\033[1m→ Error: {translation_error * 1000.0:.1f}mm  "
        f"Heading: {heading_error * 1000.0:.1f}mrad{TERM_RESET}"
    )
    logging.info(
        f"{TERM_ORANGE}Vision accepted: {diagnostics['vision_accepted']}  "
        f"rejected: {diagnostics['vision_rejected']}{TERM_RESET}"
    )
    logging.info(
        f"{TERM_ORANGE}Drive PID error: {tracking['error']:.3f} m/s  "
        f"output: {tracking['output']:.3f}{TERM_RESET}"
    )


async def main(
    duration: float = RUN_DURATION,
    command: ChassisVelocity = ChassisVelocity(1.0, 0.0, 0.0),
    field_relative: bool = False,
    slow_mode: bool = False,
    vision_uri: Optional[str] = None,
    seed: Optional[int] = None,
) -> None:
    """Run the simulated drivebase.

    Args:
        duration: Run length (seconds).
        command: Constant velocity command.
        field_relative: Interpret the command in the field frame.
        slow_mode: Start with slow mode enabled.
        vision_uri: WebSocket URI of a live vision server. If None, uses the
            simulated camera.
        seed: Seed for the simulated camera noise.
    """
    simulation = DrivebaseSimulation()
    if vision_uri is not None:
        vision = WebSocketVisionSource(vision_uri, clock=simulation.clock)
        await vision.start()
    else:
        vision = SimVisionSource(simulation, seed=seed)

    drivebase = SwerveDrivebase(
        simulation.build_modules(), simulation.imu, vision_source=vision, clock=simulation.clock
    )
    if slow_mode:
        drivebase.toggle_slow_mode()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler() -> None:
        """Handle shutdown signals (SIGINT, SIGTERM)."""
        logging.info("\nShutdown signal received...")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    drive_task = PeriodicTask("drive", lambda: drivebase.drive(command, field_relative), CONTROL_PERIOD)

    if command.is_zero():
        logging.info(f"{TERM_BLUE}✓ Holding position for {duration:.1f}s{TERM_RESET}")
    else:
        logging.info(f"{TERM_BLUE}✓ Driving {command} for {duration:.1f}s{TERM_RESET}")
    try:
        async with drivebase:
            simulation.physics_task.start()
            drive_task.start()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=duration)
            except asyncio.TimeoutError:
                pass
            await drive_task.stop()
            await simulation.physics_task.stop()
    finally:
        if isinstance(vision, WebSocketVisionSource):
            await vision.stop()

    report(drivebase, simulation)

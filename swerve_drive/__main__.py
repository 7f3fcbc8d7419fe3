"""
Main entry point when running the swerve_drive module with python -m.
"""

import argparse
import asyncio
import logging
import sys

from .config import RUN_DURATION
from .geometry import ChassisVelocity
from .runner import main, setup_logging


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Drive a simulated swerve drivebase and report the fused pose"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    parser.add_argument(
        "-d", "--duration", type=float, default=RUN_DURATION, help="Run length in seconds"
    )
    parser.add_argument("--vx", type=float, default=1.0, help="Forward velocity command (m/s)")
    parser.add_argument("--vy", type=float, default=0.0, help="Leftward velocity command (m/s)")
    parser.add_argument("--omega", type=float, default=0.0, help="Angular velocity command (rad/s)")
    parser.add_argument(
        "--field-relative", action="store_true", help="Interpret the command in the field frame"
    )
    parser.add_argument("--slow", action="store_true", help="Enable slow mode")
    parser.add_argument(
        "--vision-uri", default=None, help="WebSocket URI of a live vision server (default: simulated camera)"
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for simulated vision noise")
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()

    # Setup logging based on verbose flag
    setup_logging(args.verbose)

    try:
        asyncio.run(
            main(
                duration=args.duration,
                command=ChassisVelocity(args.vx, args.vy, args.omega),
                field_relative=args.field_relative,
                slow_mode=args.slow,
                vision_uri=args.vision_uri,
                seed=args.seed,
            )
        )
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        sys.exit(0)

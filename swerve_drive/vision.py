"""
WebSocket vision source.

Connects to a vision co-processor that streams pose estimates as JSON and
keeps the newest unconsumed one for the drivebase's vision loop. Message
format:

    {
        "message_type": "vision",
        "pose": [x, y, heading],
        "latency_ms": 35.0,
        "std_devs": [0.3, 0.3, 0.5]
    }

Latency may also be split into "capture_latency_ms" and
"pipeline_latency_ms"; all present latency fields are summed. "std_devs" is
optional. A message with "tag_count": 0 carries no detection.
"""

import asyncio
import json
import logging
import math
import time
from typing import Callable, Optional, Union

import websockets

from .geometry import Pose, VisionMeasurement, wrap_angle

LATENCY_FIELDS = ("latency_ms", "capture_latency_ms", "pipeline_latency_ms")


class WebSocketVisionSource:
    """Vision pose source fed by a WebSocket stream.

    Attributes:
        uri: WebSocket URI of the vision co-processor.
        clock: Time source used to stamp capture times. Must be the
            drivebase's clock.
        latest: Newest measurement not yet returned by ``poll``.
        should_stop: Flag that ends the receive loop.
        messages_received: Count of valid vision messages.
        messages_dropped: Count of malformed messages.
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        config=None,
    ) -> None:
        """Initialize the source.

        Args:
            uri: WebSocket URI (must start with ws:// or wss://). If None,
                uses VISION_WS_URI from config.
            clock: Time source shared with the pose estimator.
            config: Configuration module or object. If None, uses
                swerve_drive.config.

        Raises:
            ValueError: If URI format is invalid.
        """
        if config is None:
            from swerve_drive import config as cfg
        else:
            cfg = config

        if uri is None:
            uri = cfg.VISION_WS_URI
        if not uri or not uri.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URI: {uri}. Must start with 'ws://' or 'wss://'")

        self.uri: str = uri
        self.clock = clock
        self.retry_delay: float = cfg.WS_RETRY_DELAY_SECONDS
        self.max_retry_delay: float = cfg.WS_MAX_RETRY_DELAY_SECONDS
        self.timeout: float = cfg.WS_TIMEOUT_SECONDS
        self.term_blue: str = cfg.TERM_BLUE
        self.term_reset: str = cfg.TERM_RESET

        self.latest: Optional[VisionMeasurement] = None
        self.should_stop: bool = False
        self.messages_received: int = 0
        self.messages_dropped: int = 0
        self._task: Optional[asyncio.Task] = None

    async def poll(self) -> Optional[VisionMeasurement]:
        measurement = self.latest
        self.latest = None
        return measurement

    def parse_message(self, message: Union[str, bytes]) -> Optional[VisionMeasurement]:
        """Parse one message into a measurement stamped on ``clock``.

        Args:
            message: Raw JSON message string or bytes from WebSocket.

        Returns:
            The measurement, or None if the message carries no usable pose.
        """
        try:
            if isinstance(message, bytes):
                message = message.decode("utf-8")
            data = json.loads(message)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")

            if data.get("message_type") != "vision":
                logging.debug(f"Ignoring message: {json.dumps(data)}")
                return None
            if data.get("tag_count", 1) == 0:
                return None

            x, y, heading = (float(v) for v in data["pose"])
            if not all(math.isfinite(v) for v in (x, y, heading)):
                raise ValueError(f"non-finite pose {data['pose']!r}")

            latency = sum(float(data[field]) for field in LATENCY_FIELDS if field in data) / 1000.0
            if latency < 0 or not math.isfinite(latency):
                raise ValueError(f"invalid latency {latency * 1000.0} ms")

            std_devs = data.get("std_devs")
            if std_devs is not None:
                std_devs = tuple(float(v) for v in std_devs)
                if len(std_devs) != 3:
                    raise ValueError(f"expected 3 standard deviations, got {len(std_devs)}")

        except json.JSONDecodeError as e:
            self.messages_dropped += 1
            logging.error(f"Error parsing JSON: {e}")
            return None
        except (KeyError, TypeError, ValueError, UnicodeDecodeError) as e:
            self.messages_dropped += 1
            logging.error(f"Error processing vision message: {e}")
            return None

        self.messages_received += 1
        return VisionMeasurement(Pose(x, y, wrap_angle(heading)), self.clock() - latency, std_devs)

    def handle_message(self, message: Union[str, bytes]) -> None:
        measurement = self.parse_message(message)
        if measurement is not None:
            self.latest = measurement

    async def run(self) -> None:
        """Receive vision messages until stopped.

        Maintains a connection to the WebSocket server with automatic retry
        logic and exponential backoff.
        """
        retry_delay = self.retry_delay

        while not self.should_stop:
            try:
                async with websockets.connect(self.uri) as websocket:
                    logging.info(f"{self.term_blue}✓ Connected to vision server{self.term_reset}")
                    retry_delay = self.retry_delay

                    while not self.should_stop:
                        try:
                            message = await asyncio.wait_for(websocket.recv(), timeout=self.timeout)
                        except asyncio.TimeoutError:
                            logging.debug("No vision message received, still waiting")
                            continue
                        except websockets.exceptions.ConnectionClosed:
                            logging.warning("Vision connection closed by server")
                            break
                        self.handle_message(message)

            except Exception as e:
                if self.should_stop:
                    break
                logging.error(f"Vision connection error: {e}")
                logging.info(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
                retry_delay = min(retry_delay * 2, self.max_retry_delay)
                continue

            if not self.should_stop:
                await asyncio.sleep(retry_delay)

    async def start(self) -> None:
        """Start the receive loop on the running event loop."""
        self.should_stop = False
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run(), name="vision-ws")

    async def stop(self) -> None:
        """Signal the receive loop to stop and wait for it."""
        self.should_stop = True
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

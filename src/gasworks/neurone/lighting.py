"""
Lighting: The serial link to the light controller.

The controller (an Arduino on a USB-serial adapter) understands frames of
one command byte followed by a little-endian float32 argument:

    b"e" <energy>   display an energy level
    b"c" <energy>   one frame of the cooldown animation
    b"p" <0.0>      start the powerup flash

When no controller is attached the neurone keeps running with a
NullLightingSink, so the state machine never has to care.
"""

from pathlib import Path
from typing import Callable, Iterable, Optional
import asyncio
import logging
import struct

import serial

from .exceptions import LightingCommandError

logger = logging.getLogger(__name__)


class LightingCommand:
    """Command bytes understood by the light controller."""
    ENERGY = b"e"
    COOLDOWN = b"c"
    POWERUP = b"p"

    ALL = (ENERGY, COOLDOWN, POWERUP)


DEFAULT_DEVICE_DIR = "/dev"
DEFAULT_DEVICE_MARKERS = ("tty.usbserial", "ttyUSB")
DEFAULT_BAUDRATE = 9600
DEFAULT_SETTLE_TIME = 1.0
DEFAULT_WRITE_TIMEOUT = 0.1

_FRAME = struct.Struct("<cf")


def encode_command(command: bytes, argument: float = 0.0) -> bytes:
    """
    Encode one controller frame.

    Raises:
        LightingCommandError: If ``command`` is not a known command byte
    """
    if command not in LightingCommand.ALL:
        raise LightingCommandError("Unknown lighting command", command=command)
    return _FRAME.pack(command, argument)


def find_lighting_device(
    device_dir: str = DEFAULT_DEVICE_DIR,
    markers: Iterable[str] = DEFAULT_DEVICE_MARKERS,
) -> Optional[str]:
    """
    Look for the serial device the light controller is plugged into.

    Returns:
        The full path of the first device whose name contains one of
        ``markers``, or None when nothing looks like a controller
    """
    markers = tuple(markers)
    try:
        entries = sorted(Path(device_dir).iterdir())
    except OSError as e:
        logger.debug(f"Unable to list {device_dir}: {e}")
        return None

    for entry in entries:
        if any(marker in entry.name for marker in markers):
            return str(entry)
    return None


class NullLightingSink:
    """A lighting sink for nodes without a controller. Does nothing."""

    def update_energy(self, energy: float) -> None:
        pass

    def cooldown(self, energy: float) -> None:
        pass

    def powerup(self) -> None:
        pass

    def close(self) -> None:
        pass

    def __repr__(self) -> str:
        return "<NullLightingSink>"


class SerialLightingSink:
    """
    A lighting sink writing controller frames to a serial port.

    Write failures are logged and dropped; the animation simply carries
    on without physical output.
    """

    def __init__(self, port, name: Optional[str] = None):
        self.port = port
        self.name = name or getattr(port, "port", None) or "serial"
        self.write_errors = 0

    def send(self, command: bytes, argument: float = 0.0) -> bool:
        """Write one frame. Returns False if the write failed."""
        frame = encode_command(command, argument)
        try:
            self.port.write(frame)
            return True
        except (serial.SerialException, OSError) as e:
            self.write_errors += 1
            logger.warning(f"Lighting write failed | device={self.name} command={command!r} error={e}")
            return False

    def update_energy(self, energy: float) -> None:
        self.send(LightingCommand.ENERGY, energy)

    def cooldown(self, energy: float) -> None:
        self.send(LightingCommand.COOLDOWN, energy)

    def powerup(self) -> None:
        self.send(LightingCommand.POWERUP, 0.0)

    def close(self) -> None:
        try:
            self.port.close()
        except (serial.SerialException, OSError) as e:
            logger.warning(f"Error closing lighting device {self.name}: {e}")

    def __repr__(self) -> str:
        return f"<SerialLightingSink device={self.name}>"


async def open_lighting_sink(
    locate: Callable[[], Optional[str]] = find_lighting_device,
    opener: Callable[..., object] = serial.Serial,
    baudrate: int = DEFAULT_BAUDRATE,
    settle_time: float = DEFAULT_SETTLE_TIME,
    write_timeout: float = DEFAULT_WRITE_TIMEOUT,
):
    """
    Find and open the light controller.

    Older controllers reset when the port opens, so after opening we wait
    ``settle_time`` before handing the sink out. Writes time out
    after ``write_timeout`` seconds.

    Returns:
        A SerialLightingSink, or a NullLightingSink when no controller is
        found or it cannot be opened
    """
    device = locate()
    if not device:
        logger.warning("No lighting controller found, running without lights")
        return NullLightingSink()

    try:
        port = opener(device, baudrate=baudrate, write_timeout=write_timeout)
    except (serial.SerialException, OSError) as e:
        logger.warning(f"Unable to open lighting controller {device}: {e}")
        return NullLightingSink()

    if settle_time > 0:
        await asyncio.sleep(settle_time)

    logger.info(f"Lighting controller opened | device={device} baudrate={baudrate}")
    return SerialLightingSink(port, name=device)

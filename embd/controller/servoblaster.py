"""Servo control through the ServoBlaster software PWM device."""

from __future__ import annotations

import logging
import os
from typing import BinaryIO, Optional

log = logging.getLogger(__name__)

DEFAULT_DEVICE = "/dev/servoblaster"


class ServoBlaster:
    """A ServoBlaster device, opened on first use."""

    def __init__(self, device: str = DEFAULT_DEVICE) -> None:
        self.device = device
        self._file: Optional[BinaryIO] = None

    def _handle(self) -> BinaryIO:
        if self._file is None:
            fd = os.open(self.device, os.O_WRONLY)
            self._file = os.fdopen(fd, "wb", buffering=0)
        return self._file

    def _set_microseconds(self, channel: int, us: int) -> None:
        handle = self._handle()
        command = f"{channel}={us}us\n"
        log.debug("servoblaster: sending command %r", command)
        handle.write(command.encode("ascii"))

    def channel(self, channel: int) -> "ServoChannel":
        """Return a handle for one servo channel."""
        return ServoChannel(self, channel)

    def close(self) -> None:
        """Close the device handle, if it was opened."""
        handle, self._file = self._file, None
        if handle is not None:
            handle.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ServoChannel:
    """One channel of a ServoBlaster device."""

    def __init__(self, blaster: ServoBlaster, channel: int) -> None:
        self.blaster = blaster
        self.channel = channel

    def set_microseconds(self, us: int) -> None:
        """Generate a pulse us microseconds wide on the channel."""
        self.blaster._set_microseconds(self.channel, us)
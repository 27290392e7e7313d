"""SPI bus access through the Linux spidev interface."""

from __future__ import annotations

import array
import fcntl
import logging
import os
import struct
import threading
from typing import Callable, Optional

log = logging.getLogger(__name__)

SPI_IOC_WR_MODE = 0x40016B01
SPI_IOC_WR_BITS_PER_WORD = 0x40016B03
SPI_IOC_WR_MAX_SPEED_HZ = 0x40046B04

SPI_IOC_RD_MODE = 0x80016B01
SPI_IOC_RD_BITS_PER_WORD = 0x80016B03
SPI_IOC_RD_MAX_SPEED_HZ = 0x80046B04

SPI_IOC_MESSAGE_0 = 0x40006B00
SPI_IOC_INCREMENTOR = 0x200000

DEFAULT_DELAY = 0
DEFAULT_BPW = 8
DEFAULT_SPEED = 1_000_000

# struct spi_ioc_transfer: tx_buf, rx_buf, len, speed_hz, delay_usecs,
# bits_per_word, cs_change, pad.
_TRANSFER = struct.Struct("=QQIIHBBI")


def spi_ioc_message(n: int) -> int:
    """Return the ioctl request number for a transfer of n messages."""
    return SPI_IOC_MESSAGE_0 + n * SPI_IOC_INCREMENTOR


class LinuxSPIBus:
    """One SPI device, opened and configured on first use."""

    def __init__(
        self,
        dev_minor: int,
        mode: int,
        channel: int,
        speed: int = 0,
        bpw: int = 0,
        delay: int = 0,
        initializer: Optional[Callable[[], None]] = None,
    ) -> None:
        self.dev_minor = dev_minor
        self.mode = mode
        self.channel = channel
        self.speed = speed
        self.bpw = bpw
        self.delay = delay
        self.initializer = initializer
        self.device = f"/dev/spidev{dev_minor}.{channel}"
        self._fd: Optional[int] = None
        self._speed_hz = 0
        self._bits_per_word = 0
        self._delay_us = 0
        self._lock = threading.RLock()

    def _init(self) -> int:
        with self._lock:
            if self._fd is not None:
                return self._fd
            if self.initializer is not None:
                self.initializer()
            fd = os.open(self.device, os.O_RDWR)
            log.debug("spi: successfully opened file %s", self.device)
            try:
                self._configure(fd)
            except OSError:
                os.close(fd)
                raise
            self._fd = fd
            log.debug("spi: bus %s initialized", self.channel)
            return fd

    def _configure(self, fd: int) -> None:
        mode = self.mode & 0xFF
        log.debug("spi: setting spi mode to %d", mode)
        fcntl.ioctl(fd, SPI_IOC_WR_MODE, struct.pack("B", mode))

        speed = self.speed if self.speed > 0 else DEFAULT_SPEED
        log.debug("spi: setting spi speedMax to %d", speed)
        fcntl.ioctl(fd, SPI_IOC_WR_MAX_SPEED_HZ, struct.pack("=I", speed & 0xFFFFFFFF))
        self._speed_hz = speed & 0xFFFFFFFF

        bpw = (self.bpw if self.bpw > 0 else DEFAULT_BPW) & 0xFF
        log.debug("spi: setting spi bpw to %d", bpw)
        fcntl.ioctl(fd, SPI_IOC_WR_BITS_PER_WORD, struct.pack("B", bpw))
        self._bits_per_word = bpw

        self._delay_us = (self.delay if self.delay > 0 else DEFAULT_DELAY) & 0xFFFF
        log.debug("spi: delay set to %d", self._delay_us)

    def transfer_and_receive_data(self, data) -> bytes:
        """Send data and return the bytes clocked in; a bytearray is updated in place."""
        if len(data) == 0:
            raise ValueError("spi: cannot transfer an empty buffer")
        fd = self._init()
        buffer = array.array("B", bytes(data))
        address = buffer.buffer_info()[0]
        carrier = _TRANSFER.pack(
            address,
            address,
            len(buffer),
            self._speed_hz,
            self._delay_us,
            self._bits_per_word,
            0,
            0,
        )
        log.debug("spi: sending data buffer %s", list(buffer))
        fcntl.ioctl(fd, spi_ioc_message(1), carrier)
        received = buffer.tobytes()
        log.debug("spi: read into data buffer %s", list(received))
        if isinstance(data, bytearray):
            data[:] = received
        return received

    def receive_data(self, length: int) -> bytes:
        """Clock in length bytes while sending zeros."""
        return self.transfer_and_receive_data(bytearray(length))

    def transfer_and_receive_byte(self, data: int) -> int:
        """Send one byte and return the byte clocked in."""
        return self.transfer_and_receive_data(bytearray([data & 0xFF]))[0]

    def receive_byte(self) -> int:
        """Clock in one byte while sending a zero."""
        return self.transfer_and_receive_data(bytearray(1))[0]

    def write(self, data: bytes) -> int:
        """Write data straight to the device and return the count written."""
        fd = self._init()
        return os.write(fd, bytes(data))

    def close(self) -> None:
        """Close the device, if it was opened."""
        with self._lock:
            fd, self._fd = self._fd, None
            if fd is not None:
                os.close(fd)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"LinuxSPIBus(device={self.device!r})"
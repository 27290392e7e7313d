"""I2C bus access through the Linux i2c-dev interface."""

from __future__ import annotations

import array
import errno
import fcntl
import logging
import os
import struct
import threading
import time
from typing import Iterable, List, Optional, Tuple

from embd.i2c import I2CBus

log = logging.getLogger(__name__)

I2C_SLAVE = 0x0703
I2C_RDWR = 0x0707
I2C_M_RD = 0x0001

WRITE_DELAY = 0.020

# struct i2c_msg { __u16 addr; __u16 flags; __u16 len; __u8 *buf; }
_MESSAGE = struct.Struct("HHHP")
# struct i2c_rdwr_ioctl_data { struct i2c_msg *msgs; __u32 nmsgs; }
_RDWR_DATA = struct.Struct("PI0P")

_Message = Tuple[int, int, array.array]


class LinuxI2CBus(I2CBus):
    """One I2C bus line, opened on first use."""

    def __init__(self, line: int) -> None:
        self.line = line
        self.device = f"/dev/i2c-{line}"
        self._fd: Optional[int] = None
        self._addr: Optional[int] = None
        self._lock = threading.RLock()

    def _open(self) -> int:
        if self._fd is None:
            self._fd = os.open(self.device, os.O_RDWR)
            log.debug("i2c: bus %s initialized", self.line)
        return self._fd

    def _select(self, addr: int) -> int:
        fd = self._open()
        if addr != self._addr:
            log.debug("i2c: setting bus %s address to %#04x", self.line, addr)
            fcntl.ioctl(fd, I2C_SLAVE, addr)
            self._addr = addr
        return fd

    @staticmethod
    def _transfer(fd: int, messages: Iterable[_Message]) -> None:
        messages = list(messages)
        table = array.array(
            "B",
            b"".join(
                _MESSAGE.pack(addr & 0xFFFF, flags, len(buf), buf.buffer_info()[0])
                for addr, flags, buf in messages
            ),
        )
        data = _RDWR_DATA.pack(table.buffer_info()[0], len(messages))
        # The table and the buffers stay referenced until the call returns.
        fcntl.ioctl(fd, I2C_RDWR, data)

    @staticmethod
    def _unexpected(count: int, where: str = "") -> OSError:
        suffix = f" in {where}" if where else ""
        kind = "written" if where else "read"
        return OSError(
            errno.EIO, f"i2c: Unexpected number ({count}) of bytes {kind}{suffix}"
        )

    def read_byte(self, addr: int) -> int:
        with self._lock:
            fd = self._select(addr)
            data = os.read(fd, 1)
            if len(data) != 1:
                raise self._unexpected(len(data))
            return data[0]

    def read_bytes(self, addr: int, num: int) -> bytes:
        with self._lock:
            fd = self._select(addr)
            data = os.read(fd, num)
            if len(data) != num:
                raise self._unexpected(len(data))
            return data

    def write_byte(self, addr: int, value: int) -> None:
        with self._lock:
            fd = self._select(addr)
            count = os.write(fd, bytes([value & 0xFF]))
            if count != 1:
                raise self._unexpected(count, "WriteByte")

    def write_bytes(self, addr: int, value: bytes) -> None:
        """Write the bytes one at a time, pausing after each."""
        with self._lock:
            fd = self._select(addr)
            for byte in bytes(value):
                count = os.write(fd, bytes([byte]))
                if count != 1:
                    raise self._unexpected(count, "WriteBytes")
                time.sleep(WRITE_DELAY)

    def read_from_reg(self, addr: int, reg: int, length: int) -> bytes:
        with self._lock:
            fd = self._select(addr)
            register = array.array("B", [reg & 0xFF])
            received = array.array("B", bytes(length))
            messages: List[_Message] = [
                (addr, 0, register),
                (addr, I2C_M_RD, received),
            ]
            self._transfer(fd, messages)
            return received.tobytes()

    def read_byte_from_reg(self, addr: int, reg: int) -> int:
        return self.read_from_reg(addr, reg, 1)[0]

    def read_word_from_reg(self, addr: int, reg: int) -> int:
        high, low = self.read_from_reg(addr, reg, 2)
        return (high << 8) | low

    def write_to_reg(self, addr: int, reg: int, value: bytes) -> None:
        with self._lock:
            fd = self._select(addr)
            out = array.array("B", bytes([reg & 0xFF]) + bytes(value))
            self._transfer(fd, [(addr, 0, out)])

    def write_byte_to_reg(self, addr: int, reg: int, value: int) -> None:
        self.write_to_reg(addr, reg, bytes([value & 0xFF]))

    def write_word_to_reg(self, addr: int, reg: int, value: int) -> None:
        self.write_to_reg(addr, reg, bytes([(value >> 8) & 0xFF, value & 0xFF]))

    def close(self) -> None:
        with self._lock:
            fd, self._fd = self._fd, None
            self._addr = None
            if fd is not None:
                os.close(fd)

    def __repr__(self) -> str:
        return f"LinuxI2CBus(line={self.line!r})"
"""I2C bus interface, the generic I2C driver and the module-wide driver."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from embd.host import FeatureNotSupportedError, describe_host

log = logging.getLogger(__name__)


class I2CBus(ABC):
    """Access to one I2C bus."""

    @abstractmethod
    def read_byte(self, addr: int) -> int:
        """Read a byte from the given address."""

    @abstractmethod
    def read_bytes(self, addr: int, num: int) -> bytes:
        """Read num bytes from the given address."""

    @abstractmethod
    def write_byte(self, addr: int, value: int) -> None:
        """Write a byte to the given address."""

    @abstractmethod
    def write_bytes(self, addr: int, value: bytes) -> None:
        """Write bytes to the given address."""

    @abstractmethod
    def read_from_reg(self, addr: int, reg: int, length: int) -> bytes:
        """Read length bytes from a register of the given address."""

    @abstractmethod
    def read_byte_from_reg(self, addr: int, reg: int) -> int:
        """Read a byte from a register of the given address."""

    @abstractmethod
    def read_word_from_reg(self, addr: int, reg: int) -> int:
        """Read a big-endian 16-bit word from a register."""

    @abstractmethod
    def write_to_reg(self, addr: int, reg: int, value: bytes) -> None:
        """Write bytes to a register of the given address."""

    @abstractmethod
    def write_byte_to_reg(self, addr: int, reg: int, value: int) -> None:
        """Write a byte to a register of the given address."""

    @abstractmethod
    def write_word_to_reg(self, addr: int, reg: int, value: int) -> None:
        """Write a big-endian 16-bit word to a register."""

    @abstractmethod
    def close(self) -> None:
        """Release the resources held by the bus."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class I2CDriver:
    """Hands out one bus object per bus line, created on first use."""

    def __init__(self, bus_factory: Callable[[int], I2CBus]) -> None:
        self._bus_factory = bus_factory
        self._buses: Dict[int, I2CBus] = {}
        self._lock = threading.Lock()

    def bus(self, line: int) -> I2CBus:
        """Return the bus for the given line."""
        with self._lock:
            found = self._buses.get(line)
            if found is None:
                found = self._bus_factory(line)
                self._buses[line] = found
            return found

    def close(self) -> None:
        """Close every bus handed out; errors while closing are logged."""
        with self._lock:
            buses, self._buses = list(self._buses.values()), {}
        for bus in buses:
            try:
                bus.close()
            except OSError as exc:
                log.warning("i2c: error closing bus: %s", exc)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


_driver: Optional[I2CDriver] = None


def init_i2c() -> I2CDriver:
    """Initialise the I2C driver of the host once and return it."""
    global _driver
    if _driver is not None:
        return _driver
    descriptor = describe_host()
    if descriptor.i2c_driver is None:
        raise FeatureNotSupportedError()
    _driver = descriptor.i2c_driver()
    return _driver


def close_i2c() -> None:
    """Close the I2C driver, if one was initialised."""
    global _driver
    driver, _driver = _driver, None
    if driver is not None:
        driver.close()


def new_i2c_bus(line: int) -> I2CBus:
    """Return the I2C bus for the given line."""
    return init_i2c().bus(line)
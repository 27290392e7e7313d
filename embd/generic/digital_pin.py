"""Digital IO through the Linux sysfs GPIO interface."""

from __future__ import annotations

import errno
import os
import time
from typing import Any, Callable, Optional

from embd.generic.interrupt import register_interrupt, unregister_interrupt
from embd.gpio import HIGH, LOW, DigitalPin, Direction, Edge
from embd.host import FeatureNotImplementedError

DEFAULT_GPIO_ROOT = "/sys/class/gpio"


class SysfsDigitalPin(DigitalPin):
    """A GPIO pin exported and driven through sysfs; opened on first use."""

    def __init__(
        self,
        pin_id: str,
        n: int,
        driver: Any,
        gpio_root: str = DEFAULT_GPIO_ROOT,
    ) -> None:
        self.pin_id = pin_id
        self._n = n
        self.driver = driver
        self.gpio_root = gpio_root
        self._direction_fd: Optional[int] = None
        self._value_fd: Optional[int] = None
        self._active_low_fd: Optional[int] = None
        self._initialized = False

    @property
    def n(self) -> int:
        return self._n

    @property
    def base_path(self) -> str:
        return os.path.join(self.gpio_root, f"gpio{self._n}")

    def _init(self) -> None:
        if self._initialized:
            return
        self._export()
        opened = []
        try:
            for name in ("direction", "value", "active_low"):
                opened.append(os.open(os.path.join(self.base_path, name), os.O_RDWR))
        except OSError:
            for fd in opened:
                os.close(fd)
            raise
        self._direction_fd, self._value_fd, self._active_low_fd = opened
        self._initialized = True

    def _write_control(self, name: str, text: str, ignore_busy: bool = False) -> None:
        fd = os.open(os.path.join(self.gpio_root, name), os.O_WRONLY)
        try:
            os.write(fd, text.encode("ascii"))
        except OSError as exc:
            if not (ignore_busy and exc.errno == errno.EBUSY):
                raise
        finally:
            os.close(fd)

    def _export(self) -> None:
        # EBUSY means the pin has already been exported.
        self._write_control("export", str(self._n), ignore_busy=True)

    def _unexport(self) -> None:
        self._write_control("unexport", str(self._n))

    @staticmethod
    def _put(fd: int, text: str) -> None:
        os.pwrite(fd, text.encode("ascii"), 0)

    def set_direction(self, direction: Direction) -> None:
        self._init()
        self._put(self._direction_fd, "out" if direction == Direction.OUT else "in")

    def _read(self) -> int:
        data = os.pread(self._value_fd, 1, 0)
        if not data:
            raise EOFError(f"gpio: no value read from pin {self._n}")
        return HIGH if data == b"1" else LOW

    def read(self) -> int:
        self._init()
        return self._read()

    def write(self, val: int) -> None:
        self._init()
        self._put(self._value_fd, "1" if val == HIGH else "0")

    def time_pulse(self, state: int) -> float:
        """Wait for a pulse of the given state and return its length in seconds."""
        self._init()
        around = HIGH if state == LOW else LOW
        while self._read() != around:
            pass
        while self._read() != state:
            pass
        start = time.monotonic()
        while self._read() != around:
            pass
        return time.monotonic() - start

    def active_low(self, enabled: bool) -> None:
        self._init()
        self._put(self._active_low_fd, "1" if enabled else "0")

    def _set_pull(self, mode: str) -> None:
        """The sysfs interface has no control over the pull resistors."""
        error = FeatureNotImplementedError("gpio: not implemented")
        error.add_note(f"pull {mode} requested on pin {self._n}") if hasattr(
            error, "add_note"
        ) else None
        raise error

    def pull_up(self) -> None:
        self._set_pull("up")

    def pull_down(self) -> None:
        self._set_pull("down")

    def _set_edge(self, edge: Edge) -> None:
        fd = os.open(os.path.join(self.base_path, "edge"), os.O_RDWR)
        try:
            os.pwrite(fd, str(edge).encode("ascii"), 0)
        finally:
            os.close(fd)

    def watch(self, edge: Edge, handler: Callable[[DigitalPin], None]) -> None:
        self._init()
        self._set_edge(edge)
        register_interrupt(self, self._value_fd, handler)

    def stop_watching(self) -> None:
        if self._value_fd is None:
            return
        unregister_interrupt(self._value_fd)

    def close(self) -> None:
        self.stop_watching()
        self.driver.unregister(self.pin_id)
        if not self._initialized:
            return
        for fd in (self._direction_fd, self._value_fd, self._active_low_fd):
            os.close(fd)
        self._direction_fd = self._value_fd = self._active_low_fd = None
        self._unexport()
        self._initialized = False

    def __repr__(self) -> str:
        return f"SysfsDigitalPin(pin_id={self.pin_id!r}, n={self._n})"
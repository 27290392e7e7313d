"""LED control through the Linux sysfs LED interface."""

from __future__ import annotations

import os
from typing import Optional


class SysfsLED:
    """An LED switched through its sysfs brightness file; opened on first use."""

    def __init__(self, led_id: str, path: Optional[str] = None) -> None:
        self.led_id = led_id
        self.path = path
        self._fd: Optional[int] = None

    @property
    def brightness_path(self) -> str:
        if self.path:
            return self.path
        return f"/sys/class/leds/{self.led_id}/brightness"

    def _brightness(self) -> int:
        if self._fd is None:
            self._fd = os.open(self.brightness_path, os.O_RDWR)
        return self._fd

    def _set(self, text: str) -> None:
        os.pwrite(self._brightness(), text.encode("ascii"), 0)

    def on(self) -> None:
        """Switch the LED on."""
        self._set("1")

    def off(self) -> None:
        """Switch the LED off."""
        self._set("0")

    def is_on(self) -> bool:
        """Return True if the LED's brightness reads as 1."""
        data = os.pread(self._brightness(), 4096, 0)
        return data.decode("ascii", errors="replace").strip() == "1"

    def toggle(self) -> None:
        """Switch the LED to the opposite state."""
        if self.is_on():
            self.off()
        else:
            self.on()

    def close(self) -> None:
        """Close the brightness file, if it was opened."""
        fd, self._fd = self._fd, None
        if fd is not None:
            os.close(fd)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
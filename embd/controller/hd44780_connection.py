"""Connections over which an HD44780 character LCD controller is driven."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from embd.gpio import HIGH, LOW, DigitalPin
from embd.i2c import I2CBus

log = logging.getLogger(__name__)

WRITE_DELAY = 37e-6
PULSE_DELAY = 1e-6


class BacklightPolarity(Enum):
    """Logical level that switches the backlight on."""

    NEGATIVE = False
    POSITIVE = True


class Connection(ABC):
    """A way of sending bytes to an HD44780 controller."""

    @abstractmethod
    def write(self, rs: bool, data: int) -> None:
        """Write a byte with the register select flag set to rs."""

    @abstractmethod
    def backlight_off(self) -> None:
        """Turn the optional backlight off."""

    @abstractmethod
    def backlight_on(self) -> None:
        """Turn the optional backlight on."""

    @abstractmethod
    def close(self) -> None:
        """Release every resource held by the connection."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _bit(value: int, shift: int) -> int:
    return (value >> shift) & 0x01


@dataclass(eq=False)
class GPIOConnection(Connection):
    """A connection over a 4-bit GPIO bus."""

    rs: DigitalPin
    en: DigitalPin
    d4: DigitalPin
    d5: DigitalPin
    d6: DigitalPin
    d7: DigitalPin
    backlight: Optional[DigitalPin] = None
    bl_polarity: BacklightPolarity = BacklightPolarity.NEGATIVE

    def _backlight_signal(self, state: bool) -> int:
        return HIGH if state == self.bl_polarity.value else LOW

    def backlight_off(self) -> None:
        if self.backlight is not None:
            self.backlight.write(self._backlight_signal(False))

    def backlight_on(self) -> None:
        if self.backlight is not None:
            self.backlight.write(self._backlight_signal(True))

    def _pulse_enable(self) -> None:
        for level in (LOW, HIGH, LOW):
            time.sleep(PULSE_DELAY)
            self.en.write(level)

    def _write_nibble(self, nibble: int) -> None:
        data_pins = (self.d4, self.d5, self.d6, self.d7)
        for shift, pin in enumerate(data_pins):
            pin.write(_bit(nibble, shift))
        self._pulse_enable()

    def write(self, rs: bool, data: int) -> None:
        """Write the high nibble, then the low nibble, each latched by EN."""
        log.debug("hd44780: writing to GPIO RS: %s, data: %#x", rs, data)
        self.rs.write(HIGH if rs else LOW)
        self._write_nibble((data >> 4) & 0x0F)
        self._write_nibble(data & 0x0F)
        time.sleep(WRITE_DELAY)

    def close(self) -> None:
        log.debug("hd44780: closing all GPIO pins")
        pins = (self.rs, self.en, self.d4, self.d5, self.d6, self.d7, self.backlight)
        for pin in pins:
            if pin is None:
                continue
            try:
                pin.close()
            except Exception as exc:
                log.error("hd44780: error closing pin %r: %s", pin, exc)
                raise


@dataclass(frozen=True)
class I2CPinMap:
    """Which port expander bit drives each HD44780 line."""

    rs: int
    rw: int
    en: int
    d4: int
    d5: int
    d6: int
    d7: int
    backlight: int
    bl_polarity: BacklightPolarity


MJKDZ_PIN_MAP = I2CPinMap(
    rs=6, rw=5, en=4,
    d4=0, d5=1, d6=2, d7=3,
    backlight=7,
    bl_polarity=BacklightPolarity.NEGATIVE,
)

PCF8574_PIN_MAP = I2CPinMap(
    rs=0, rw=1, en=2,
    d4=4, d5=5, d6=6, d7=7,
    backlight=3,
    bl_polarity=BacklightPolarity.POSITIVE,
)


class I2CConnection(Connection):
    """A connection over an I2C port expander."""

    def __init__(self, bus: I2CBus, addr: int, pin_map: I2CPinMap) -> None:
        self.bus = bus
        self.addr = addr
        self.pin_map = pin_map
        self.backlight = False

    def backlight_off(self) -> None:
        self.backlight = False
        self.write(False, 0x00)

    def backlight_on(self) -> None:
        self.backlight = True
        self.write(False, 0x00)

    def _nibble(self, nibble: int) -> int:
        pm = self.pin_map
        return (
            (_bit(nibble, 0) << pm.d4)
            | (_bit(nibble, 1) << pm.d5)
            | (_bit(nibble, 2) << pm.d6)
            | (_bit(nibble, 3) << pm.d7)
        )

    def _pulse_enable(self, data: int) -> None:
        for value in (data, data | (0x01 << self.pin_map.en), data):
            time.sleep(PULSE_DELAY)
            self.bus.write_byte(self.addr, value & 0xFF)

    def write(self, rs: bool, data: int) -> None:
        """Write the high nibble, then the low nibble, each latched by EN."""
        pm = self.pin_map
        for nibble in ((data >> 4) & 0x0F, data & 0x0F):
            ins = self._nibble(nibble)
            if rs:
                ins |= 0x01 << pm.rs
            if self.backlight == pm.bl_polarity.value:
                ins |= 0x01 << pm.backlight
            ins &= 0xFF
            log.debug("hd44780: writing to I2C: %#x", ins)
            self._pulse_enable(ins)
        time.sleep(WRITE_DELAY)

    def close(self) -> None:
        log.debug("hd44780: closing I2C bus")
        self.bus.close()
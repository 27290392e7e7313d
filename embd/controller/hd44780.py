"""Driver for HD44780-compatible character LCD controllers (write only)."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Sequence, Tuple

from embd.controller.hd44780_connection import (
    BacklightPolarity,
    Connection,
    GPIOConnection,
    I2CConnection,
    I2CPinMap,
)
from embd.gpio import DigitalPin, Direction, new_digital_pin
from embd.i2c import I2CBus

log = logging.getLogger(__name__)

RowAddress = Tuple[int, int, int, int]

# DDRAM address of the first column of each row, for 16 and 20 column displays.
ROW_ADDRESS_16COL: RowAddress = (0x00, 0x40, 0x10, 0x50)
ROW_ADDRESS_20COL: RowAddress = (0x00, 0x40, 0x14, 0x54)

CLEAR_DELAY = 1520e-6

LCD_INIT = 0x33
LCD_INIT_4BIT = 0x32

LCD_CLEAR_DISPLAY = 0x01
LCD_RETURN_HOME = 0x02
LCD_CURSOR_SHIFT = 0x10
LCD_SET_CGRAM_ADDR = 0x40
LCD_SET_DDRAM_ADDR = 0x80

LCD_CURSOR_MOVE = 0x00
LCD_DISPLAY_MOVE = 0x08
LCD_MOVE_LEFT = 0x00
LCD_MOVE_RIGHT = 0x04

LCD_SET_ENTRY_MODE = 0x04
LCD_ENTRY_INCREMENT = 0x02
LCD_ENTRY_SHIFT_ON = 0x01

LCD_SET_DISPLAY_MODE = 0x08
LCD_DISPLAY_ON = 0x04
LCD_CURSOR_ON = 0x02
LCD_BLINK_ON = 0x01

LCD_SET_FUNCTION_MODE = 0x20
LCD_8BIT_MODE = 0x10
LCD_2LINE = 0x08
LCD_5X10_DOTS = 0x04

ModeSetter = Callable[["HD44780"], None]


class HD44780:
    """An HD44780-compatible character LCD controller on a Connection."""

    def __init__(self, connection: Connection, row_addr: Sequence[int], *args: ModeSetter) -> None:
        self.connection = connection
        self.row_addr: RowAddress = tuple(row_addr)  # type: ignore[assignment]
        if len(self.row_addr) != 4:
            raise ValueError("hd44780: a row address needs exactly 4 entries")
        self._e_mode = 0x00
        self._d_mode = 0x00
        self._f_mode = 0x00
        self._lcd_init()
        self.set_mode(*DEFAULT_MODES, *args)

    def _lcd_init(self) -> None:
        log.debug("hd44780: initializing display")
        self.write_instruction(LCD_INIT)
        log.debug("hd44780: initializing display in 4-bit mode")
        self.write_instruction(LCD_INIT_4BIT)

    def set_mode(self, *args: ModeSetter) -> None:
        """Apply the mode setters, then send all three mode registers."""
        for setter in args:
            setter(self)
        self._send_entry_mode()
        self._send_display_mode()
        self._send_function_mode()

    def _send_entry_mode(self) -> None:
        self.write_instruction(LCD_SET_ENTRY_MODE | self._e_mode)

    def _send_display_mode(self) -> None:
        self.write_instruction(LCD_SET_DISPLAY_MODE | self._d_mode)

    def _send_function_mode(self) -> None:
        self.write_instruction(LCD_SET_FUNCTION_MODE | self._f_mode)

    def entry_increment_enabled(self) -> bool:
        return bool(self._e_mode & LCD_ENTRY_INCREMENT)

    def entry_shift_enabled(self) -> bool:
        return bool(self._e_mode & LCD_ENTRY_SHIFT_ON)

    def display_enabled(self) -> bool:
        return bool(self._d_mode & LCD_DISPLAY_ON)

    def cursor_enabled(self) -> bool:
        return bool(self._d_mode & LCD_CURSOR_ON)

    def blink_enabled(self) -> bool:
        return bool(self._d_mode & LCD_BLINK_ON)

    def eight_bit_mode_enabled(self) -> bool:
        return bool(self._f_mode & LCD_8BIT_MODE)

    def two_line_enabled(self) -> bool:
        return bool(self._f_mode & LCD_2LINE)

    def dots_5x10_enabled(self) -> bool:
        return bool(self._f_mode & LCD_5X10_DOTS)

    def display_off(self) -> None:
        display_off(self)
        self._send_display_mode()

    def display_on(self) -> None:
        display_on(self)
        self._send_display_mode()

    def cursor_off(self) -> None:
        cursor_off(self)
        self._send_display_mode()

    def cursor_on(self) -> None:
        cursor_on(self)
        self._send_display_mode()

    def blink_off(self) -> None:
        blink_off(self)
        self._send_display_mode()

    def blink_on(self) -> None:
        blink_on(self)
        self._send_display_mode()

    def shift_left(self) -> None:
        """Shift the cursor and all characters to the left."""
        self.write_instruction(LCD_CURSOR_SHIFT | LCD_DISPLAY_MOVE | LCD_MOVE_LEFT)

    def shift_right(self) -> None:
        """Shift the cursor and all characters to the right."""
        self.write_instruction(LCD_CURSOR_SHIFT | LCD_DISPLAY_MOVE | LCD_MOVE_RIGHT)

    def home(self) -> None:
        """Move the cursor and all characters to the home position."""
        try:
            self.write_instruction(LCD_RETURN_HOME)
        finally:
            time.sleep(CLEAR_DELAY)

    def clear(self) -> None:
        """Clear the display and move the cursor home, restoring the modes."""
        self.write_instruction(LCD_CLEAR_DISPLAY)
        time.sleep(CLEAR_DELAY)
        # Clearing also resets some mode settings.
        self.set_mode()

    def _row_offset(self, row: int) -> int:
        if row < 0:
            raise IndexError(f"hd44780: invalid row {row}")
        return self.row_addr[min(row, 3)]

    def set_cursor(self, col: int, row: int) -> None:
        """Move the input cursor to the given column and row."""
        self.set_ddram_addr((col + self._row_offset(row)) & 0xFF)

    def set_ddram_addr(self, value: int) -> None:
        """Move the input cursor to the given DDRAM address."""
        self.write_instruction((LCD_SET_DDRAM_ADDR | value) & 0xFF)

    def write_char(self, value: int) -> None:
        """Write a byte in data mode."""
        self.connection.write(True, value & 0xFF)

    def write_instruction(self, value: int) -> None:
        """Write a byte in command mode."""
        self.connection.write(False, value & 0xFF)

    def backlight_on(self) -> None:
        self.connection.backlight_on()

    def backlight_off(self) -> None:
        self.connection.backlight_off()

    def close(self) -> None:
        """Close the underlying connection."""
        self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _resolve_pin(key: Any) -> Optional[DigitalPin]:
    if key is None or isinstance(key, DigitalPin):
        return key
    try:
        return new_digital_pin(key)
    except Exception as exc:
        log.debug("hd44780: error creating digital pin %r: %s", key, exc)
        raise


def new_gpio(
    rs: Any,
    en: Any,
    d4: Any,
    d5: Any,
    d6: Any,
    d7: Any,
    backlight: Any,
    bl_polarity: BacklightPolarity,
    row_addr: Sequence[int],
    *args: ModeSetter,
) -> HD44780:
    """Create an HD44780 on a 4-bit GPIO bus; pins may be pins or pin keys."""
    pins = [_resolve_pin(key) for key in (rs, en, d4, d5, d6, d7, backlight)]
    for pin in pins:
        if pin is None:
            continue
        try:
            pin.set_direction(Direction.OUT)
        except Exception as exc:
            log.error("hd44780: error setting pin %r to out direction: %s", pin, exc)
            raise
    connection = GPIOConnection(*pins, bl_polarity=bl_polarity)
    return HD44780(connection, row_addr, *args)


def new_i2c(
    bus: I2CBus,
    addr: int,
    pin_map: I2CPinMap,
    row_addr: Sequence[int],
    *args: ModeSetter,
) -> HD44780:
    """Create an HD44780 behind an I2C port expander."""
    return HD44780(I2CConnection(bus, addr, pin_map), row_addr, *args)


def entry_decrement(hd: HD44780) -> None:
    hd._e_mode &= ~LCD_ENTRY_INCREMENT


def entry_increment(hd: HD44780) -> None:
    hd._e_mode |= LCD_ENTRY_INCREMENT


def entry_shift_off(hd: HD44780) -> None:
    hd._e_mode &= ~LCD_ENTRY_SHIFT_ON


def entry_shift_on(hd: HD44780) -> None:
    hd._e_mode |= LCD_ENTRY_SHIFT_ON


def display_off(hd: HD44780) -> None:
    hd._d_mode &= ~LCD_DISPLAY_ON


def display_on(hd: HD44780) -> None:
    hd._d_mode |= LCD_DISPLAY_ON


def cursor_off(hd: HD44780) -> None:
    hd._d_mode &= ~LCD_CURSOR_ON


def cursor_on(hd: HD44780) -> None:
    hd._d_mode |= LCD_CURSOR_ON


def blink_off(hd: HD44780) -> None:
    hd._d_mode &= ~LCD_BLINK_ON


def blink_on(hd: HD44780) -> None:
    hd._d_mode |= LCD_BLINK_ON


def four_bit_mode(hd: HD44780) -> None:
    hd._f_mode &= ~LCD_8BIT_MODE


def eight_bit_mode(hd: HD44780) -> None:
    hd._f_mode |= LCD_8BIT_MODE


def one_line(hd: HD44780) -> None:
    hd._f_mode &= ~LCD_2LINE


def two_line(hd: HD44780) -> None:
    hd._f_mode |= LCD_2LINE


def dots_5x8(hd: HD44780) -> None:
    hd._f_mode &= ~LCD_5X10_DOTS


def dots_5x10(hd: HD44780) -> None:
    hd._f_mode |= LCD_5X10_DOTS


DEFAULT_MODES: Tuple[ModeSetter, ...] = (
    four_bit_mode,
    one_line,
    dots_5x8,
    entry_increment,
    entry_shift_off,
    display_on,
    cursor_off,
    blink_off,
)
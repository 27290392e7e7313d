"""Driver for the MCP4725 12-bit digital-to-analog converter."""

from __future__ import annotations

import logging
import threading

from embd.i2c import I2CBus

log = logging.getLogger(__name__)

DAC_REG = 0x40
PROGRAM_REG = 0x60
POWER_DOWN = 0x46

GEN_RESET = 0x06
POWER_UP = 0x09

MAX_VALUE = 4095


class MCP4725:
    """An MCP4725 DAC on an I2C bus."""

    def __init__(self, bus: I2CBus, addr: int) -> None:
        self.bus = bus
        self.addr = addr
        self._initialized = False
        self._lock = threading.Lock()

    def _setup(self) -> None:
        with self._lock:
            if self._initialized:
                return
            log.debug("mcp4725: general call reset")
            self.bus.write_byte_to_reg(self.addr, 0x00, POWER_UP)
            self.bus.write_byte_to_reg(self.addr, 0x00, GEN_RESET)
            self._initialized = True

    def _set_voltage(self, voltage: int, reg: int) -> None:
        self._setup()
        voltage = max(0, min(MAX_VALUE, voltage))
        log.debug("mcp4725: setting voltage to %04d", voltage)
        self.bus.write_word_to_reg(self.addr, reg, (voltage << 4) & 0xFFFF)

    def set_voltage(self, voltage: int) -> None:
        """Set the output to voltage, clamped to 0..4095."""
        self._set_voltage(voltage, DAC_REG)

    def set_persisted_voltage(self, voltage: int) -> None:
        """Set the output and store it in EEPROM so it survives a reboot."""
        self._set_voltage(voltage, PROGRAM_REG)

    def close(self) -> None:
        """Put the DAC into power down mode."""
        log.debug("mcp4725: powering down")
        self.bus.write_word_to_reg(self.addr, POWER_DOWN, 0)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
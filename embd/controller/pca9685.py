"""Driver for the PCA9685 16-channel, 12-bit PWM controller."""

from __future__ import annotations

import logging
import threading
import time

from embd.i2c import I2CBus

log = logging.getLogger(__name__)

CLOCK_FREQ = 25_000_000
PWM_CONTROL_POINTS = 4096

MODE1_REG_ADDR = 0x00
PRE_SCALE_REG_ADDR = 0xFE

PWM0_ON_LOW_REG = 0x06
PWM_LAST_REG = 0x45

DEFAULT_FREQ = 490


class PCA9685:
    """A PCA9685 PWM generator on an I2C bus."""

    def __init__(self, bus: I2CBus, addr: int, freq: int = 0) -> None:
        self.bus = bus
        self.addr = addr
        self.freq = freq
        self._initialized = False
        self._lock = threading.Lock()

    def _mode1(self) -> int:
        return self.bus.read_byte_from_reg(self.addr, MODE1_REG_ADDR)

    def _write(self, reg: int, value: int) -> None:
        self.bus.write_byte_to_reg(self.addr, reg & 0xFF, value & 0xFF)

    def _setup(self) -> None:
        with self._lock:
            if self._initialized:
                return

            mode1 = self._mode1()
            log.debug("pca9685: read MODE1 reg value %#04x", mode1)

            self._sleep()

            if self.freq == 0:
                self.freq = DEFAULT_FREQ
            prescale = (CLOCK_FREQ // (PWM_CONTROL_POINTS * self.freq) - 1) & 0xFF
            self._write(PRE_SCALE_REG_ADDR, prescale)
            log.debug("pca9685: prescale value %#04x written", prescale)

            self._wake()

            new_mode = (mode1 | 0x01) & 0xDF
            self._write(MODE1_REG_ADDR, new_mode)
            log.debug("pca9685: new mode %#04x written to MODE1", new_mode)

            self._initialized = True
            log.debug("pca9685: driver initialized with pwm freq %d", self.freq)

    def set_pwm(self, channel: int, on_time: int, off_time: int) -> None:
        """Set the ON and OFF times (0-4095) of a channel (0-15)."""
        self._setup()
        base = PWM0_ON_LOW_REG + 4 * channel
        values = (on_time & 0xFF, on_time >> 8, off_time & 0xFF, off_time >> 8)
        for offset, value in enumerate(values):
            self._write(base + offset, value)
            log.debug(
                "pca9685: channel %d reg %#04x <- %#04x",
                channel, (base + offset) & 0xFF, value & 0xFF,
            )

    def servo_channel(self, channel: int) -> "PWMChannel":
        """Return a servo control handle for a channel."""
        return PWMChannel(self, channel)

    def analog_channel(self, channel: int) -> "PWMChannel":
        """Return a PWM handle for a channel."""
        return PWMChannel(self, channel)

    def _set_microseconds(self, channel: int, us: int) -> None:
        self._setup()
        off_time = us * self.freq * PWM_CONTROL_POINTS // 1_000_000
        self.set_pwm(channel, 0, off_time)

    def _sleep(self) -> None:
        log.debug("pca9685: sleep request received")
        sleep_mode = (self._mode1() & 0x7F) | 0x10
        self._write(MODE1_REG_ADDR, sleep_mode)
        log.debug("pca9685: sleep mode %#04x written to MODE1", sleep_mode)

    def sleep(self) -> None:
        """Put the controller to sleep; the PWM registers are kept."""
        self._setup()
        self._sleep()

    def _wake(self) -> None:
        log.debug("pca9685: wake request received")
        mode1 = self._mode1()
        wake_mode = mode1 & 0xEF
        if mode1 & 0x80:
            self._write(MODE1_REG_ADDR, wake_mode)
            log.debug("pca9685: wake mode %#04x written to MODE1", wake_mode)
            time.sleep(500e-6)
        restart = wake_mode | 0x80
        self._write(MODE1_REG_ADDR, restart)
        log.debug("pca9685: restart mode %#04x written to MODE1", restart)

    def wake(self) -> None:
        """Leave sleep mode and resume PWM generation."""
        self._setup()
        self._wake()

    def close(self) -> None:
        """Stop the controller and reset the mode and PWM registers."""
        self._setup()
        self._sleep()
        log.debug("pca9685: reset request received")
        self._write(MODE1_REG_ADDR, 0x00)
        for reg in range(PWM0_ON_LOW_REG, PWM_LAST_REG + 1):
            self._write(reg, 0x00)
        log.debug("pca9685: controller reset")

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class PWMChannel:
    """One channel of a PCA9685."""

    def __init__(self, controller: PCA9685, channel: int) -> None:
        self.controller = controller
        self.channel = channel

    def set_microseconds(self, us: int) -> None:
        """Generate a pulse us microseconds wide on the channel."""
        self.controller._set_microseconds(self.channel, us)
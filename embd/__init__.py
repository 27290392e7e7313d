"""Hardware abstraction layer for embedded Linux boards: host detection, GPIO, I2C, SPI and device drivers."""

__version__ = "0.1.0"
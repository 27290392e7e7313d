"""Driver for the MCP3008 8-channel, 10-bit analog-to-digital converter on SPI."""

from __future__ import annotations

import logging
from typing import Any

log = logging.getLogger(__name__)

SINGLE_MODE = 1
DIFFERENCE_MODE = 0

START_BIT = 1


class MCP3008:
    """An MCP3008 ADC on an SPI bus."""

    def __init__(self, mode: int, bus: Any) -> None:
        self.mode = mode
        self.bus = bus

    def analog_value_at(self, channel: int) -> int:
        """Return the 10-bit value sampled on the given channel."""
        buffer = bytearray(
            [START_BIT, ((self.mode << 7) | (channel << 4)) & 0xFF, 0x00]
        )
        log.debug("mcp3008: sending data buffer %s", list(buffer))
        received = self.bus.transfer_and_receive_data(buffer)
        # The bus fills the buffer in place; a returned buffer takes precedence.
        if received is None:
            received = buffer
        return ((received[1] & 0x03) << 8) | received[2]
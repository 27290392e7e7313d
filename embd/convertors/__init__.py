"""Drivers for analog-to-digital convertors: the MCP3008."""
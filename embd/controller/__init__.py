"""Drivers for device controllers: HD44780 character LCDs, the PCA9685 PWM generator, the MCP4725 DAC and ServoBlaster."""
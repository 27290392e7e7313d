"""Linux drivers for sysfs digital GPIO, GPIO interrupts, sysfs LEDs, i2c-dev and spidev."""
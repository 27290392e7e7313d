# embd

A small hardware abstraction layer for embedded Linux boards such as the
Raspberry Pi, BeagleBone Black and C.H.I.P. It identifies the board it runs
on, talks to the kernel's sysfs and `/dev` interfaces for digital GPIO,
LEDs, I2C and SPI, and has drivers for a handful of common devices.

## Installing

```
pip install .
```

The tests need pytest:

```
pip install ".[test]"
pytest
```

## Command line

Find out which board you are running on:

```
embd detect
```

It prints the detected host and its board revision, for example
`detected host Raspberry Pi (rev 0xa02082)`, or the reason the host could
not be identified (for example a kernel older than 3.8), and then exits
with status 1. `embd --version` prints the version.

## Host detection

```python
from embd.host import Host, detect_host, parse_version, cpu_info

parse_version("3.8.10+")   # (3, 8, 10)
info = cpu_info()          # CpuInfo(model=..., hardware=..., revision=...)
host, rev = detect_host()  # e.g. (Host.RPI, 2)
```

`detect_host` recognises the BeagleBone Black, the Raspberry Pi and the
C.H.I.P. (which needs kernel 4.4 or later).

`register(host, describer)` makes a board's drivers available: the describer
is called with the board revision and returns a `Descriptor` whose
`gpio_driver`, `i2c_driver`, `led_driver` and `spi_driver` fields are
factories (or `None` where the board lacks the feature). `describe_host()`
returns the descriptor for the detected board, and `set_host(host, rev)`
overrides detection. Registering the same host twice raises `ValueError`;
asking `describe_host` for a host nobody registered raises `LookupError`.

## GPIO

`embd.gpio` defines the pin interfaces (`DigitalPin`, `AnalogPin`,
`PWMPin`, `GPIODriver`) and the `Direction`, `Edge` and `Polarity` enums.
Its module-level helpers initialise the registered board's GPIO driver on
first use:

```python
from embd.gpio import Direction, HIGH, set_direction, digital_write, close_gpio

set_direction("P1_11", Direction.OUT)
digital_write("P1_11", HIGH)
close_gpio()
```

If the board's descriptor has no GPIO driver, `FeatureNotSupportedError`
is raised.

`embd.generic.digital_pin.SysfsDigitalPin` drives one pin through
`/sys/class/gpio`: it exports the pin on first use and supports
`set_direction`, `read`, `write`, `active_low`, `time_pulse` and edge
interrupts with `watch(edge, handler)` / `stop_watching()`. Interrupts are
delivered by a shared background epoll listener
(`embd.generic.interrupt`); the first trigger after registering is
swallowed. `pull_up` and `pull_down` raise `FeatureNotImplementedError`,
since sysfs has no control over the pull resistors. Closing the pin calls
`unregister(pin_id)` on the driver it was given and unexports it.

## LEDs

```python
from embd.generic.led import SysfsLED

with SysfsLED("led0") as led:
    led.on()
    led.toggle()
```

The brightness file is `/sys/class/leds/<id>/brightness` unless a `path`
is given.

## I2C and SPI

```python
from embd.generic.i2c_bus import LinuxI2CBus
from embd.generic.spi_bus import LinuxSPIBus

with LinuxI2CBus(1) as bus:
    bus.write_byte_to_reg(0x40, 0x00, 0x01)
    word = bus.read_word_from_reg(0x40, 0x02)

with LinuxSPIBus(0, 0, 0) as spi:
    reply = spi.transfer_and_receive_data(bytearray([0x01, 0x80, 0x00]))
```

`embd.i2c.I2CDriver` hands out one bus per line from a bus factory, and
`embd.i2c.new_i2c_bus(line)` does the same through the registered board's
I2C driver.

## Device drivers

- `embd.controller.hd44780` — HD44780 character LCDs over a 4-bit GPIO
  bus (`new_gpio`) or an I2C port expander (`new_i2c`, with
  `MJKDZ_PIN_MAP` or `PCF8574_PIN_MAP` from
  `embd.controller.hd44780_connection`).
- `embd.controller.pca9685` — 16-channel, 12-bit PWM controller.
- `embd.controller.mcp4725` — 12-bit DAC.
- `embd.controller.servoblaster` — the ServoBlaster software servo device.
- `embd.convertors.mcp3008` — 8-channel, 10-bit ADC over SPI.

```python
from embd.generic.i2c_bus import LinuxI2CBus
from embd.controller.pca9685 import PCA9685
from embd.controller.mcp4725 import MCP4725
from embd.controller.hd44780 import new_i2c, ROW_ADDRESS_16COL
from embd.controller.hd44780_connection import PCF8574_PIN_MAP

bus = LinuxI2CBus(1)

pwm = PCA9685(bus, 0x41, 50)
pwm.servo_channel(0).set_microseconds(1500)

dac = MCP4725(bus, 0x62)
dac.set_voltage(2048)

lcd = new_i2c(bus, 0x27, PCF8574_PIN_MAP, ROW_ADDRESS_16COL)
lcd.backlight_on()
lcd.set_cursor(0, 1)
lcd.write_char(ord("A"))
```

## What is not included

The package registers no boards itself: it carries no pin maps and no
ready-made GPIO driver that looks pins up by ID or alias. Until you call
`register` with a describer for your board, `describe_host` and the
`embd.gpio` and `embd.i2c` module-level helpers raise `LookupError`.
There is no analog-input or PWM pin implementation, and no LED or SPI
driver object that the descriptor's `led_driver` and `spi_driver` fields
could return; use `SysfsLED` and `LinuxSPIBus` directly.
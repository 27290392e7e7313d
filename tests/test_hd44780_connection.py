import pytest

from embd.controller.hd44780_connection import (
    MJKDZ_PIN_MAP,
    PCF8574_PIN_MAP,
    BacklightPolarity,
    GPIOConnection,
    I2CConnection,
)
from embd.gpio import HIGH, LOW

TEST_ADDR = 0x20
LCD_DISPLAY_MOVE_RIGHT = 0x08 | 0x04


class MockPin:
    def __init__(self):
        self.values = []
        self.closed = False

    def write(self, val):
        self.values.append(val)

    def close(self):
        self.closed = True


class MockI2CBus:
    def __init__(self):
        self.writes = []
        self.closed = False

    def write_byte(self, addr, value):
        self.writes.append(value)

    def close(self):
        self.closed = True


def make_gpio_connection(polarity=BacklightPolarity.NEGATIVE, backlight=True):
    pins = [MockPin() for _ in range(7)]
    conn = GPIOConnection(*pins[:6], pins[6] if backlight else None, polarity)
    return conn, pins


def decode_gpio(pins):
    rs, en, d4, d5, d6, d7 = pins[:6]
    high = d4.values[0] << 4 | d5.values[0] << 5 | d6.values[0] << 6 | d7.values[0] << 7
    low = d4.values[1] | d5.values[1] << 1 | d6.values[1] << 2 | d7.values[1] << 3
    return rs.values[0], high | low


@pytest.mark.parametrize(
    "pin_map,expected",
    [
        (MJKDZ_PIN_MAP, [0x0, 0x10, 0x0, 0xC, 0x1C, 0xC]),
        (PCF8574_PIN_MAP, [0x8, 0xC, 0x8, 0xC8, 0xCC, 0xC8]),
    ],
)
def test_i2c_connection_pin_map(pin_map, expected):
    bus = MockI2CBus()
    conn = I2CConnection(bus, TEST_ADDR, pin_map)
    conn.backlight = True
    conn.write(False, LCD_DISPLAY_MOVE_RIGHT)
    assert bus.writes == expected


def test_i2c_connection_close():
    bus = MockI2CBus()
    conn = I2CConnection(bus, TEST_ADDR, MJKDZ_PIN_MAP)
    conn.close()
    assert bus.closed


def test_i2c_rs_bit_set_for_data():
    bus = MockI2CBus()
    conn = I2CConnection(bus, TEST_ADDR, PCF8574_PIN_MAP)
    conn.write(True, 0x41)
    rs_mask = 1 << PCF8574_PIN_MAP.rs
    assert len(bus.writes) == 6
    assert all(b & rs_mask for b in bus.writes)


def test_i2c_backlight_on_positive_sets_bit():
    bus = MockI2CBus()
    conn = I2CConnection(bus, TEST_ADDR, PCF8574_PIN_MAP)
    conn.backlight_on()
    mask = 1 << PCF8574_PIN_MAP.backlight
    assert conn.backlight is True
    assert all(b & mask for b in bus.writes)


def test_i2c_backlight_off_positive_clears_bit():
    bus = MockI2CBus()
    conn = I2CConnection(bus, TEST_ADDR, PCF8574_PIN_MAP)
    conn.backlight_off()
    mask = 1 << PCF8574_PIN_MAP.backlight
    assert conn.backlight is False
    assert not any(b & mask for b in bus.writes)


def test_i2c_backlight_negative_polarity_inverts():
    bus = MockI2CBus()
    conn = I2CConnection(bus, TEST_ADDR, MJKDZ_PIN_MAP)
    conn.backlight_off()
    mask = 1 << MJKDZ_PIN_MAP.backlight
    assert conn.backlight is False
    assert len(bus.writes) == 6
    assert [b & mask for b in bus.writes] == [mask] * 6


def test_i2c_enable_pulse_shape():
    bus = MockI2CBus()
    conn = I2CConnection(bus, TEST_ADDR, MJKDZ_PIN_MAP)
    conn.write(True, 0x5A)
    en = 1 << MJKDZ_PIN_MAP.en
    for first, pulse, last in (bus.writes[0:3], bus.writes[3:6]):
        assert first == last
        assert pulse == first | en
        assert not first & en


def test_gpio_connection_close():
    conn, pins = make_gpio_connection()
    conn.close()
    assert all(pin.closed for pin in pins)


def test_gpio_connection_close_without_backlight():
    conn, pins = make_gpio_connection(backlight=False)
    conn.close()
    assert all(pin.closed for pin in pins[:6])
    assert not pins[6].closed


@pytest.mark.parametrize("rs", [False, True])
@pytest.mark.parametrize("data", [0x00, 0x33, 0xA5, 0xFF])
def test_gpio_write_round_trip(rs, data):
    conn, pins = make_gpio_connection()
    conn.write(rs, data)
    rs_value, decoded = decode_gpio(pins)
    assert rs_value == (HIGH if rs else LOW)
    assert decoded == data


def test_gpio_enable_pulses():
    conn, pins = make_gpio_connection()
    conn.write(False, 0x12)
    assert pins[1].values == [LOW, HIGH, LOW, LOW, HIGH, LOW]


@pytest.mark.parametrize(
    "polarity,on_level,off_level",
    [
        (BacklightPolarity.NEGATIVE, LOW, HIGH),
        (BacklightPolarity.POSITIVE, HIGH, LOW),
    ],
)
def test_gpio_backlight(polarity, on_level, off_level):
    conn, pins = make_gpio_connection(polarity)
    conn.backlight_on()
    conn.backlight_off()
    assert pins[6].values == [on_level, off_level]


def test_gpio_backlight_without_pin_touches_nothing():
    conn, pins = make_gpio_connection(backlight=False)
    conn.backlight_on()
    assert all(pin.values == [] for pin in pins)


def test_gpio_write_error_propagates():
    class FailingPin(MockPin):
        def write(self, val):
            raise OSError("write failed")

    pins = [MockPin() for _ in range(7)]
    pins[2] = FailingPin()
    conn = GPIOConnection(*pins)
    with pytest.raises(OSError, match="write failed"):
        conn.write(False, 0x01)
"""GPIO pin interfaces and the module-wide GPIO driver."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum, IntEnum
from typing import Any, Callable, Optional

from embd.host import FeatureNotSupportedError, describe_host

LOW = 0
HIGH = 1


class Direction(IntEnum):
    """Direction of a GPIO pin."""

    IN = 0
    OUT = 1


class Edge(str, Enum):
    """Edge trigger for a GPIO interrupt."""

    NONE = "none"
    RISING = "rising"
    FALLING = "falling"
    BOTH = "both"

    def __str__(self) -> str:
        return self.value


class Polarity(IntEnum):
    """Polarity of a PWM pin."""

    POSITIVE = 0
    NEGATIVE = 1


class _Closeable(ABC):
    @abstractmethod
    def close(self) -> None:
        """Release the resources held by the object."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class DigitalPin(_Closeable, ABC):
    """A digital IO capable GPIO pin that can also watch for interrupts."""

    @property
    @abstractmethod
    def n(self) -> int:
        """The logical GPIO number."""

    @abstractmethod
    def watch(self, edge: Edge, handler: Callable[["DigitalPin"], None]) -> None:
        """Call handler whenever the given edge occurs on the pin."""

    @abstractmethod
    def stop_watching(self) -> None:
        """Stop watching the pin for interrupts."""

    @abstractmethod
    def write(self, val: int) -> None:
        """Write LOW or HIGH to the pin."""

    @abstractmethod
    def read(self) -> int:
        """Read LOW or HIGH from the pin."""

    @abstractmethod
    def time_pulse(self, state: int) -> float:
        """Measure the duration in seconds of a pulse of the given state."""

    @abstractmethod
    def set_direction(self, direction: Direction) -> None:
        """Set the pin to input or output."""

    @abstractmethod
    def active_low(self, enabled: bool) -> None:
        """Invert the logical level of the pin when enabled."""

    @abstractmethod
    def pull_up(self) -> None:
        """Pull the pin up."""

    @abstractmethod
    def pull_down(self) -> None:
        """Pull the pin down."""

    @abstractmethod
    def close(self) -> None:
        """Release the resources held by the pin."""


class AnalogPin(_Closeable, ABC):
    """An analog input capable GPIO pin."""

    @property
    @abstractmethod
    def n(self) -> int:
        """The logical analog number."""

    @abstractmethod
    def read(self) -> int:
        """Read the analog value."""

    @abstractmethod
    def close(self) -> None:
        """Release the resources held by the pin."""


class PWMPin(_Closeable, ABC):
    """A PWM capable GPIO pin."""

    @property
    @abstractmethod
    def n(self) -> str:
        """The logical PWM id."""

    @abstractmethod
    def set_period(self, ns: int) -> None:
        """Set the period in nanoseconds."""

    @abstractmethod
    def set_duty(self, ns: int) -> None:
        """Set the duty in nanoseconds."""

    @abstractmethod
    def set_polarity(self, polarity: Polarity) -> None:
        """Set the polarity."""

    @abstractmethod
    def set_microseconds(self, us: int) -> None:
        """Generate a pulse us microseconds wide."""

    @abstractmethod
    def set_analog(self, value: int) -> None:
        """Set the duty from a value in the range 0-255."""

    @abstractmethod
    def close(self) -> None:
        """Release the resources held by the pin."""


class GPIODriver(_Closeable, ABC):
    """A driver handing out the GPIO pins of a host."""

    @abstractmethod
    def unregister(self, pin_id: str) -> None:
        """Forget a pin; called when the pin is closed."""

    @abstractmethod
    def digital_pin(self, key: Any) -> DigitalPin:
        """Return the digital pin matching key."""

    @abstractmethod
    def analog_pin(self, key: Any) -> AnalogPin:
        """Return the analog pin matching key."""

    @abstractmethod
    def pwm_pin(self, key: Any) -> PWMPin:
        """Return the PWM pin matching key."""

    @abstractmethod
    def close(self) -> None:
        """Release the resources held by the driver."""


_driver: Optional[GPIODriver] = None


def init_gpio() -> GPIODriver:
    """Initialise the GPIO driver of the host once and return it."""
    global _driver
    if _driver is not None:
        return _driver
    descriptor = describe_host()
    if descriptor.gpio_driver is None:
        raise FeatureNotSupportedError()
    _driver = descriptor.gpio_driver()
    return _driver


def close_gpio() -> None:
    """Close the GPIO driver, if one was initialised."""
    global _driver
    driver, _driver = _driver, None
    if driver is not None:
        driver.close()


def new_digital_pin(key: Any) -> DigitalPin:
    """Return the digital pin matching key."""
    return init_gpio().digital_pin(key)


def digital_write(key: Any, val: int) -> None:
    """Write val to the digital pin matching key."""
    new_digital_pin(key).write(val)


def digital_read(key: Any) -> int:
    """Read the digital pin matching key."""
    return new_digital_pin(key).read()


def set_direction(key: Any, direction: Direction) -> None:
    """Set the direction of the digital pin matching key."""
    new_digital_pin(key).set_direction(direction)


def active_low(key: Any, enabled: bool) -> None:
    """Make the digital pin matching key active low."""
    new_digital_pin(key).active_low(enabled)


def pull_up(key: Any) -> None:
    """Pull the digital pin matching key up."""
    new_digital_pin(key).pull_up()


def pull_down(key: Any) -> None:
    """Pull the digital pin matching key down."""
    new_digital_pin(key).pull_down()


def new_analog_pin(key: Any) -> AnalogPin:
    """Return the analog pin matching key."""
    return init_gpio().analog_pin(key)


def analog_read(key: Any) -> int:
    """Read the analog pin matching key."""
    return new_analog_pin(key).read()


def new_pwm_pin(key: Any) -> PWMPin:
    """Return the PWM pin matching key."""
    return init_gpio().pwm_pin(key)
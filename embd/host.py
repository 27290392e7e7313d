"""Host descriptors, registration of host describers and host detection."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

log = logging.getLogger(__name__)

_INT_RE = re.compile(r"[+-]?[0-9]+")
_HEX_RE = re.compile(r"[+-]?[0-9a-fA-F]+")


class Host(str, Enum):
    """The supported host types."""

    NULL = ""
    RPI = "Raspberry Pi"
    BBB = "BeagleBone Black"
    GALILEO = "Intel Galileo"
    CUBIE_TRUCK = "CubieTruck"
    RADXA = "Radxa"
    CHIP = "CHIP"

    def __str__(self) -> str:
        return self.value


class FeatureNotSupportedError(Exception):
    """The host does not support the requested feature."""

    def __init__(self, message: str = "embd: requested feature is not supported") -> None:
        super().__init__(message)


class FeatureNotImplementedError(Exception):
    """The host supports the requested feature but it is not implemented yet."""

    def __init__(self, message: str = "embd: requested feature is not implemented") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class Descriptor:
    """Factories for the drivers a host provides; None where unsupported."""

    gpio_driver: Optional[Callable[[], Any]] = None
    i2c_driver: Optional[Callable[[], Any]] = None
    led_driver: Optional[Callable[[], Any]] = None
    spi_driver: Optional[Callable[[], Any]] = None


@dataclass(frozen=True)
class CpuInfo:
    """The fields of the CPU information file that identify a host."""

    model: str = ""
    hardware: str = ""
    revision: int = 0


Describer = Callable[[int], Descriptor]
HostKey = Union[Host, str]

_describers: Dict[str, Describer] = {}
_override: Optional[Tuple[HostKey, int]] = None


def _key(host: HostKey) -> str:
    return host.value if isinstance(host, Host) else str(host)


def register(host: HostKey, describer: Optional[Describer]) -> None:
    """Make a host describer available under the given host key."""
    if describer is None:
        raise ValueError("embd: describer is None")
    key = _key(host)
    if key in _describers:
        raise ValueError("embd: describer already registered")
    _describers[key] = describer
    log.debug("embd: host %s is registered", key)


def set_host(host: HostKey, rev: int) -> None:
    """Override the detected host and revision."""
    global _override
    _override = (host, rev)


def describe_host() -> Descriptor:
    """Return the descriptor of the detected (or overridden) host."""
    if _override is not None:
        host, rev = _override
    else:
        host, rev = detect_host()
    describer = _describers.get(_key(host))
    if describer is None:
        raise LookupError(f'host: invalid host "{_key(host)}"')
    return describer(rev)


def _atoi(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    return int(text)


def parse_version(text: str) -> Tuple[int, int, int]:
    """Parse a kernel release string into (major, minor, patch)."""
    number = text.split("-", 1)[0]
    parts = number.split(".")
    if len(parts) < 2:
        raise ValueError(f"embd: malformed kernel version {text!r}")
    major = _atoi(parts[0])
    minor = _atoi(parts[1])
    patch = _atoi(parts[2].removesuffix("+")) if len(parts) > 2 else 0
    return major, minor, patch


def kernel_version() -> Tuple[int, int, int]:
    """Return the running kernel's (major, minor, patch) version."""
    return parse_version(os.uname().release.strip())


def cpu_info(path: str = "/proc/cpuinfo") -> CpuInfo:
    """Read the model name, hardware and revision from a cpuinfo file."""
    with open(path, encoding="utf-8", errors="replace") as handle:
        text = handle.read()

    model = ""
    hardware = ""
    revision = 0
    for line in text.split("\n"):
        fields = line.split(":")
        name = fields[0]
        value = fields[1] if len(fields) > 1 else ""
        if name.startswith("Revision"):
            digits = value.strip()
            if not _HEX_RE.fullmatch(digits):
                continue
            parsed = int(digits, 16)
            if not -(2**31) <= parsed < 2**31:
                continue
            revision = parsed
        elif name.startswith("Hardware"):
            hardware = value.strip()
        elif name.startswith("model name"):
            model = value
    return CpuInfo(model=model, hardware=hardware, revision=revision)


def _identify(major: int, minor: int, patch: int, info: CpuInfo) -> Tuple[Host, int]:
    if (major, minor) < (3, 8):
        raise RuntimeError(
            "embd: linux kernel versions lower than 3.8 are not supported, "
            f"you have {major}.{minor}.{patch}"
        )

    hardware = info.hardware
    if "ARMv7" in info.model and ("AM33XX" in hardware or "AM335X" in hardware):
        return Host.BBB, info.revision
    if any(chip in hardware for chip in ("BCM2708", "BCM2709", "BCM2835")):
        return Host.RPI, info.revision
    if hardware == "Allwinner sun4i/sun5i Families":
        if (major, minor) < (4, 4):
            raise RuntimeError(
                f"embd: linux kernel version 4.4+ required, you have {major}.{minor}"
            )
        return Host.CHIP, info.revision
    raise RuntimeError(
        f'embd: your host "{Host.NULL}:{info.model}" is not supported at this moment'
    )


def detect_host() -> Tuple[Host, int]:
    """Detect the host this process runs on and its revision number."""
    major, minor, patch = kernel_version()
    return _identify(major, minor, patch, cpu_info())
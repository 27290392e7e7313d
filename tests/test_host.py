import itertools
from types import SimpleNamespace
from unittest import mock

import pytest

from embd.host import (
    CpuInfo,
    Descriptor,
    FeatureNotImplementedError,
    FeatureNotSupportedError,
    Host,
    _identify,
    cpu_info,
    describe_host,
    kernel_version,
    parse_version,
    register,
    set_host,
)

_names = itertools.count()


def _unique_host():
    return f"host test board {next(_names)}"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("3.8.2", (3, 8, 2)),
        ("3.8.10+", (3, 8, 10)),
        ("4.9.80-v7+", (4, 9, 80)),
        ("5.10", (5, 10, 0)),
    ],
)
def test_parse_version(text, expected):
    assert parse_version(text) == expected


@pytest.mark.parametrize("text", ["abc", "3", "3.x.1", "3.8.q"])
def test_parse_version_rejects_malformed(text):
    with pytest.raises(ValueError):
        parse_version(text)


def test_kernel_version_reads_release():
    with mock.patch("os.uname", return_value=SimpleNamespace(release="4.9.80-v7+\n")):
        assert kernel_version() == (4, 9, 80)


def test_cpu_info_parses_fields(tmp_path):
    path = tmp_path / "cpuinfo"
    path.write_text(
        "processor\t: 0\n"
        "model name\t: ARMv7 Processor rev 2 (v7l)\n"
        "Hardware\t: Generic AM33XX (Flattened Device Tree)\n"
        "Revision\t: a02082\n"
    )
    info = cpu_info(str(path))
    assert info.model == " ARMv7 Processor rev 2 (v7l)"
    assert info.hardware == "Generic AM33XX (Flattened Device Tree)"
    assert info.revision == 0xA02082


def test_cpu_info_skips_bad_revision(tmp_path):
    path = tmp_path / "cpuinfo"
    path.write_text("Hardware\t: BCM2835\nRevision\t: zz\nno colon here\n")
    info = cpu_info(str(path))
    assert info.revision == 0
    assert info.hardware == "BCM2835"


def test_cpu_info_missing_file(tmp_path):
    with pytest.raises(OSError):
        cpu_info(str(tmp_path / "absent"))


def test_identify_beaglebone():
    info = CpuInfo(model=" ARMv7 Processor", hardware="Generic AM33XX", revision=0)
    assert _identify(3, 8, 13, info) == (Host.BBB, 0)


@pytest.mark.parametrize("hardware", ["BCM2708", "BCM2709", "BCM2835"])
def test_identify_raspberry_pi(hardware):
    info = CpuInfo(hardware=hardware, revision=0x10)
    assert _identify(4, 19, 0, info) == (Host.RPI, 0x10)


def test_identify_chip():
    info = CpuInfo(hardware="Allwinner sun4i/sun5i Families", revision=0)
    assert _identify(4, 4, 0, info) == (Host.CHIP, 0)


def test_identify_chip_needs_newer_kernel():
    info = CpuInfo(hardware="Allwinner sun4i/sun5i Families")
    with pytest.raises(RuntimeError, match="4.4"):
        _identify(4, 3, 0, info)


def test_identify_old_kernel():
    with pytest.raises(RuntimeError, match="lower than 3.8"):
        _identify(3, 7, 1, CpuInfo(hardware="BCM2835"))


def test_identify_unsupported():
    with pytest.raises(RuntimeError, match="not supported"):
        _identify(5, 4, 0, CpuInfo(model=" x86", hardware="PC"))


def test_register_rejects_none():
    with pytest.raises(ValueError):
        register(_unique_host(), None)


def test_register_rejects_duplicate():
    name = _unique_host()
    register(name, lambda rev: Descriptor())
    with pytest.raises(ValueError, match="already registered"):
        register(name, lambda rev: Descriptor())


def test_describe_host_uses_override():
    name = _unique_host()
    seen = []
    expected = Descriptor()

    def describer(rev):
        seen.append(rev)
        return expected

    register(name, describer)
    set_host(name, 7)
    assert describe_host() is expected
    assert seen == [7]


def test_describe_host_unknown():
    set_host(_unique_host(), 0)
    with pytest.raises(LookupError, match="invalid host"):
        describe_host()


def test_feature_errors_carry_messages():
    assert str(FeatureNotSupportedError()) == "embd: requested feature is not supported"
    assert str(FeatureNotImplementedError()) == "embd: requested feature is not implemented"
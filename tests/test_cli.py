import builtins
import io
from types import SimpleNamespace

import pytest

import embd.host as host_module
from embd.cli import main


def _fake_system(monkeypatch, release, cpuinfo):
    monkeypatch.setattr(host_module.os, "uname", lambda: SimpleNamespace(release=release))
    real_open = builtins.open

    def fake_open(path, *args, **kwargs):
        if path == "/proc/cpuinfo":
            return io.StringIO(cpuinfo)
        return real_open(path, *args, **kwargs)

    monkeypatch.setattr(host_module, "open", fake_open, raising=False)


def test_detect_chip(monkeypatch, capsys):
    _fake_system(
        monkeypatch,
        "4.4.13-ntc-mlc",
        "Hardware\t: Allwinner sun4i/sun5i Families\nRevision\t: 0000\n",
    )
    assert main(["detect"]) == 0
    assert capsys.readouterr().out == "detected host CHIP (rev 0x0)\n"


def test_detect_raspberry_pi(monkeypatch, capsys):
    _fake_system(
        monkeypatch,
        "4.9.35-v7+",
        "model name\t: ARMv7 Processor\nHardware\t: BCM2709\nRevision\t: a02082\n",
    )
    assert main(["detect"]) == 0
    assert capsys.readouterr().out == "detected host Raspberry Pi (rev 0xa02082)\n"


def test_detect_old_kernel_fails(monkeypatch, capsys):
    _fake_system(monkeypatch, "3.2.0", "")
    assert main(["detect"]) == 1
    out = capsys.readouterr().out
    assert "linux kernel versions lower than 3.8 are not supported" in out
    assert "3.2.0" in out


def test_detect_unsupported_host_fails(monkeypatch, capsys):
    _fake_system(monkeypatch, "4.9.0", "Hardware\t: Unknown\n")
    assert main(["detect"]) == 1
    assert "is not supported at this moment" in capsys.readouterr().out


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0
    assert "0.1.0" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "embedded utility belt" in out
    assert "detect" in out


def test_unknown_command_exits_with_error():
    with pytest.raises(SystemExit) as excinfo:
        main(["bogus"])
    assert excinfo.value.code == 2
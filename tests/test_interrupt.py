import os
import threading
import time

import pytest

from embd.generic.interrupt import (
    EpollListener,
    Interrupt,
    PinAlreadyRegisteredError,
    register_interrupt,
    unregister_interrupt,
)


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def pipe():
    r, w = os.pipe()
    yield r, w
    os.close(r)
    os.close(w)


def test_signal_skips_first_trigger():
    calls = []
    interrupt = Interrupt(pin="pin", handler=calls.append)
    interrupt.signal()
    assert calls == []
    assert interrupt.initial_trigger is True
    interrupt.signal()
    interrupt.signal()
    assert calls == ["pin", "pin"]


def test_listener_delivers_edges(pipe):
    r, w = pipe
    calls = []
    fired = threading.Event()

    def handler(pin):
        calls.append(pin)
        fired.set()

    with EpollListener() as listener:
        interrupt = listener.register(r, "pin", handler)
        assert os.get_blocking(r) is False
        os.write(w, b"a")
        assert _wait_for(lambda: interrupt.initial_trigger)
        os.read(r, 100)
        os.write(w, b"b")
        assert fired.wait(2.0)
        assert calls == ["pin"]
        listener.unregister(r)
        assert os.get_blocking(r) is True


def test_listener_rejects_duplicate(pipe):
    r, _ = pipe
    with EpollListener() as listener:
        listener.register(r, "pin", lambda pin: None)
        with pytest.raises(PinAlreadyRegisteredError):
            listener.register(r, "pin", lambda pin: None)
        listener.unregister(r)
        again = listener.register(r, "other", lambda pin: None)
        assert again.pin == "other"


def test_unregister_unknown_fd_is_ignored(pipe):
    r, _ = pipe
    with EpollListener() as listener:
        listener.unregister(r)
        assert os.get_blocking(r) is True


def test_register_after_close_fails(pipe):
    r, _ = pipe
    listener = EpollListener()
    listener.close()
    with pytest.raises(RuntimeError):
        listener.register(r, "pin", lambda pin: None)


def test_module_level_registration(pipe):
    r, _ = pipe
    interrupt = register_interrupt("pin", r, lambda pin: None)
    try:
        assert interrupt.pin == "pin"
        with pytest.raises(PinAlreadyRegisteredError):
            register_interrupt("pin", r, lambda pin: None)
    finally:
        unregister_interrupt(r)
    assert os.get_blocking(r) is True
"""Edge-triggered GPIO interrupts delivered through a shared epoll listener."""

from __future__ import annotations

import logging
import os
import select
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

log = logging.getLogger(__name__)

MAX_GPIO_INTERRUPT = 64

_EVENT_MASK = select.EPOLLIN | select.EPOLLET | select.EPOLLPRI


class PinAlreadyRegisteredError(Exception):
    """The pin is already being watched for interrupts."""

    def __init__(self, message: str = "pin interrupt already registered") -> None:
        super().__init__(message)


@dataclass(eq=False)
class Interrupt:
    """A watched pin and the handler to call when it triggers."""

    pin: Any
    handler: Callable[[Any], None]
    initial_trigger: bool = False

    def signal(self) -> None:
        """Call the handler, except on the first trigger after registration."""
        if not self.initial_trigger:
            self.initial_trigger = True
            return
        self.handler(self.pin)


class EpollListener:
    """Waits on registered file descriptors in a background thread."""

    def __init__(self) -> None:
        self._epoll = select.epoll()
        self._lock = threading.RLock()
        self._interrupts: Dict[int, Interrupt] = {}
        self._wake_read, self._wake_write = os.pipe()
        self._epoll.register(self._wake_read, select.EPOLLIN)
        self._closed = False
        self._thread = threading.Thread(
            target=self._run, name="embd-epoll", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        while True:
            try:
                events = self._epoll.poll(-1, MAX_GPIO_INTERRUPT)
            except (OSError, ValueError):
                return
            with self._lock:
                for fd, _ in events:
                    if fd == self._wake_read:
                        return
                    interrupt = self._interrupts.get(fd)
                    if interrupt is None:
                        continue
                    try:
                        interrupt.signal()
                    except Exception:
                        log.exception("interrupt: handler for fd %d failed", fd)

    def register(self, fd: int, pin: Any, handler: Callable[[Any], None]) -> Interrupt:
        """Start watching fd; handler(pin) is called on each edge after the first."""
        with self._lock:
            if self._closed:
                raise RuntimeError("interrupt: listener is closed")
            if fd in self._interrupts:
                raise PinAlreadyRegisteredError()
            self._epoll.register(fd, _EVENT_MASK)
            try:
                os.set_blocking(fd, False)
            except OSError:
                self._epoll.unregister(fd)
                raise
            interrupt = Interrupt(pin=pin, handler=handler)
            self._interrupts[fd] = interrupt
            return interrupt

    def unregister(self, fd: int) -> None:
        """Stop watching fd; does nothing if fd is not watched."""
        with self._lock:
            if fd not in self._interrupts:
                return
            self._epoll.unregister(fd)
            os.set_blocking(fd, True)
            del self._interrupts[fd]

    def close(self) -> None:
        """Stop the background thread and release the epoll instance."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for fd in list(self._interrupts):
                self.unregister(fd)
        os.write(self._wake_write, b"\0")
        self._thread.join()
        self._epoll.close()
        os.close(self._wake_read)
        os.close(self._wake_write)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


_listener: Optional[EpollListener] = None
_listener_lock = threading.Lock()


def _instance() -> EpollListener:
    global _listener
    with _listener_lock:
        if _listener is None:
            _listener = EpollListener()
        return _listener


def register_interrupt(pin: Any, fd: int, handler: Callable[[Any], None]) -> Interrupt:
    """Watch fd on the shared listener, calling handler(pin) on interrupts."""
    return _instance().register(fd, pin, handler)


def unregister_interrupt(fd: int) -> None:
    """Stop watching fd on the shared listener."""
    if _listener is None:
        return
    _listener.unregister(fd)
"""Closable bounded channel and cancellation token shared by the pipeline threads."""

from __future__ import annotations

from collections import deque
from threading import Condition, Event, Lock
from typing import Callable, Deque, Generic, Iterator, TypeVar

T = TypeVar("T")


class ChannelClosed(Exception):
    """Raised by ``get`` once the channel is closed and drained, and by ``put`` after close."""


class Cancelled(Exception):
    """Raised when a blocking channel operation is interrupted by cancellation."""


class CancelToken:
    """Run-wide cancellation flag; blocked channel operations are woken on cancel."""

    def __init__(self) -> None:
        self._event = Event()
        self._lock = Lock()
        self._callbacks: list[Callable[[], None]] = []
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        with self._lock:
            if self._event.is_set():
                return
            self.reason = reason
            self._event.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


class Channel(Generic[T]):
    """Multi-producer multi-consumer FIFO with explicit close.

    ``maxsize == 0`` means unbounded. After ``close`` no more items are accepted,
    consumers keep receiving until the buffer is empty and then get
    ``ChannelClosed``. When a cancel token is attached, cancellation stops both
    sides: producers get ``Cancelled`` and consumers see the channel as closed.
    """

    def __init__(self, maxsize: int = 0, cancel: CancelToken | None = None) -> None:
        self.maxsize = maxsize
        self._items: Deque[T] = deque()
        self._cond = Condition()
        self._closed = False
        self._cancel = cancel
        if cancel is not None:
            cancel.add_callback(self._wake_all)

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def _cancelled(self) -> bool:
        return self._cancel is not None and self._cancel.cancelled

    def _full(self) -> bool:
        return self.maxsize > 0 and len(self._items) >= self.maxsize

    def _wake_all(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def put(self, item: T) -> None:
        with self._cond:
            while self._full() and not self._closed and not self._cancelled():
                self._cond.wait()
            if self._closed:
                raise ChannelClosed("put on closed channel")
            if self._cancelled():
                raise Cancelled(self._cancel.reason if self._cancel else "cancelled")
            self._items.append(item)
            self._cond.notify_all()

    def get(self) -> T:
        with self._cond:
            while not self._items and not self._closed and not self._cancelled():
                self._cond.wait()
            if self._cancelled():
                raise ChannelClosed("channel cancelled")
            if self._items:
                item = self._items.popleft()
                self._cond.notify_all()
                return item
            raise ChannelClosed("channel closed and drained")

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.get()
            except ChannelClosed:
                return


__all__ = ["CancelToken", "Cancelled", "Channel", "ChannelClosed"]

"""Asynchronous delivery of accepted jumps to subscribers."""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable

from vert_watch.core.logging import get_logger
from vert_watch.core.types import JumpEvent

logger = get_logger(__name__)

JumpCallback = Callable[[JumpEvent], None]

_STOP = object()


class EventPublisher(threading.Thread):
    """Background worker: queue of JumpEvents -> subscriber callbacks.

    Events are delivered in emission order on the worker thread, never on
    the thread that processes samples.
    """

    def __init__(self, maxsize: int = 0) -> None:
        super().__init__(name="vert-watch-publisher", daemon=True)
        self._queue: queue.Queue[object] = queue.Queue(maxsize=maxsize)
        self._subscribers: list[JumpCallback] = []
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._drained = threading.Condition()
        self._pending = 0

    @property
    def is_running(self) -> bool:
        """True while the worker accepts events."""
        return self.is_alive() and not self._stopped.is_set()

    def subscribe(self, callback: JumpCallback) -> None:
        """Register a callback for accepted jumps."""
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: JumpCallback) -> None:
        """Remove a previously registered callback."""
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def publish(self, event: JumpEvent) -> None:
        """Queue an event for delivery; returns immediately."""
        if self._stopped.is_set():
            logger.debug("Publisher stopped, dropping event at t=%.3f", event.timestamp)
            return
        with self._drained:
            self._pending += 1
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self._settle()
            logger.warning("Event queue full, dropping jump at t=%.3f", event.timestamp)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until every queued event has been delivered.

        Args:
            timeout: Seconds to wait, None to wait indefinitely

        Returns:
            True if the queue drained in time
        """
        with self._drained:
            if not self.is_alive():
                return self._pending == 0
            return self._drained.wait_for(lambda: self._pending == 0, timeout)

    def stop(self, timeout: float | None = 1.0) -> None:
        """Deliver pending events, then stop the worker."""
        if self._stopped.is_set():
            return
        self._stopped.set()
        if self.is_alive():
            self._queue.put(_STOP)
            self.join(timeout)

    def run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            if isinstance(item, JumpEvent):
                try:
                    self._deliver(item)
                finally:
                    self._settle()

    def _settle(self) -> None:
        with self._drained:
            self._pending -= 1
            self._drained.notify_all()

    def _deliver(self, event: JumpEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Jump subscriber %r failed", callback)


__all__ = ["EventPublisher", "JumpCallback"]

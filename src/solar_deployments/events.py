"""Asynchronous, ordered delivery of deployment lifecycle events."""

import logging
import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Lifecycle events, named after the state entered."""

    DEPLOY_STARTED = "deploy_started"
    CREATED = "created"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    SAVED = "saved"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    contract: str
    data: Dict[str, Any] = field(default_factory=dict)


EventSink = Callable[[Event], None]

_STOP = object()


def log_sink(event: Event) -> None:
    """Report events through logging."""
    logger.info("%s %s %s", event.kind.value, event.contract, event.data or "")


class EventChannel:
    """
    Unbounded FIFO queue drained by a single background thread.

    `emit` never blocks on the sink. Events reach the sink in emission order,
    each exactly once. The first exception raised by the sink is re-raised
    from `close`; later events are still delivered.
    """

    def __init__(self, sink: EventSink = log_sink):
        self.sink = sink
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._error: Optional[BaseException] = None
        self._closed = False
        self._worker = threading.Thread(target=self._drain, name="solar-events", daemon=True)
        self._worker.start()

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            try:
                self.sink(item)
            except Exception as e:
                logger.exception("Event sink failed on %s", item.kind.value)
                if self._error is None:
                    self._error = e

    def emit(self, kind: EventKind, contract: str, **data: Any) -> None:
        if self._closed:
            raise RuntimeError("Event channel is closed")
        self._queue.put(Event(kind, contract, data))

    def close(self, timeout: Optional[float] = None) -> None:
        """
        Deliver everything emitted so far and stop the worker.

        Raises:
            Exception: The first error raised by the sink, if any
        """
        if not self._closed:
            self._closed = True
            self._queue.put(_STOP)
        self._worker.join(timeout)
        if self._error is not None:
            error, self._error = self._error, None
            raise error

    def __enter__(self) -> "EventChannel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

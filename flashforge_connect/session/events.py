"""
Event normalization.

Raw adapter events are translated into a closed set of event kinds and
queued for the application. The normalizer owns its one subscription to the
raw source; attaching to a new source always drops the previous one first.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from flashforge_connect.const import (
    LOGGER,
    RAW_BED_TEMPERATURE,
    RAW_COMMAND_EXECUTED,
    RAW_COMMAND_FAILED,
    RAW_DISCONNECTED,
    RAW_ERROR,
    RAW_EXTRUDER_TEMPERATURE,
    RAW_MACHINE_STATE,
    RAW_PRINTER_INFO,
    RAW_UPLOAD_COMPLETED,
    RAW_UPLOAD_FAILED,
    UNSUPPORTED_OPERATION_MESSAGE,
)
from flashforge_connect.models.enums import EventKind
from flashforge_connect.utils import is_transport_error

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from flashforge_connect.clients import RawEventSource

_DIRECT_KINDS = {
    RAW_PRINTER_INFO: EventKind.PRINTER_DATA,
    RAW_MACHINE_STATE: EventKind.MACHINE_STATE_CHANGED,
    RAW_BED_TEMPERATURE: EventKind.BED_TEMPERATURE_CHANGED,
    RAW_EXTRUDER_TEMPERATURE: EventKind.EXTRUDER_TEMPERATURE_CHANGED,
    RAW_UPLOAD_COMPLETED: EventKind.UPLOAD_COMPLETED,
    RAW_UPLOAD_FAILED: EventKind.UPLOAD_FAILED,
    RAW_DISCONNECTED: EventKind.PRINTER_DISCONNECTED,
}


def classify_error(error: str | BaseException | None) -> EventKind:
    """
    Classify a failure on an established session.

    Socket-level faults are connection errors, which should lead to a
    reconnect. Everything else is a printer error.
    """
    if is_transport_error(error):
        return EventKind.CONNECTION_ERROR
    return EventKind.PRINTER_ERROR


@dataclass(frozen=True)
class PrinterEvent:
    """A normalized event."""

    kind: EventKind
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class Subscription:
    """Handle of one listener registration on a raw event source."""

    def __init__(self, source: RawEventSource, listener: Any) -> None:
        """Register ``listener`` on ``source``."""
        self.source = source
        self._listener = listener
        source.add_listener(listener)
        self._active = True

    @property
    def active(self) -> bool:
        """Return True until cancelled."""
        return self._active

    def cancel(self) -> None:
        """Remove the listener. Safe to call more than once."""
        if self._active:
            self.source.remove_listener(self._listener)
            self._active = False


class EventNormalizer:
    """Republishes raw adapter events as PrinterEvent objects on a queue."""

    def __init__(self, maxsize: int = 0, logger: Any = LOGGER) -> None:
        """
        Initialize an EventNormalizer.

        Arguments:
            maxsize: Queue bound. Events are dropped with a warning when full.
            logger: The logger to use.

        """
        self.logger = logger
        self._queue: asyncio.Queue[PrinterEvent | None] = asyncio.Queue(maxsize)
        self._subscription: Subscription | None = None
        self._closed = False

    @property
    def subscription(self) -> Subscription | None:
        """Return the active subscription, if attached."""
        return self._subscription

    @property
    def is_attached(self) -> bool:
        """Return True while subscribed to a raw source."""
        return self._subscription is not None and self._subscription.active

    def attach(self, source: RawEventSource) -> Subscription:
        """Subscribe to ``source``, detaching from any previous source first."""
        self.detach()
        self._subscription = Subscription(source, self._handle_raw)
        return self._subscription

    def detach(self) -> None:
        """Drop the current subscription."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def publish(self, kind: EventKind, **data: Any) -> None:
        """Queue an event."""
        if self._closed:
            return
        try:
            self._queue.put_nowait(PrinterEvent(kind=kind, data=data))
        except asyncio.QueueFull:
            self.logger.warning("Event queue full, dropping %s", kind.value)

    def _handle_raw(self, event: str, payload: dict[str, Any]) -> None:
        kind = _DIRECT_KINDS.get(event)
        if kind is not None:
            self.publish(kind, **payload)
            return

        if event == RAW_COMMAND_EXECUTED:
            self.publish(EventKind.COMMAND_RESPONSE, success=True, **payload)
        elif event == RAW_COMMAND_FAILED:
            self.publish(EventKind.COMMAND_RESPONSE, success=False, **payload)
            if payload.get("unsupported"):
                self.publish(
                    EventKind.LOG_MESSAGE,
                    message=UNSUPPORTED_OPERATION_MESSAGE,
                    command=payload.get("command"),
                )
        elif event == RAW_ERROR:
            error = payload.get("error")
            cause = payload.get("exception")
            self.publish(classify_error(cause if cause is not None else error), error=error)
        else:
            self.logger.debug("Ignoring unknown raw event %s", event)

    def get_nowait(self) -> PrinterEvent:
        """Return the next queued event or raise ``asyncio.QueueEmpty``."""
        event = self._queue.get_nowait()
        if event is None:
            self._queue.put_nowait(None)
            raise asyncio.QueueEmpty
        return event

    async def get(self) -> PrinterEvent | None:
        """Wait for the next event. Returns None once closed and empty."""
        if self._closed and self._queue.empty():
            return None
        event = await self._queue.get()
        if event is None:
            # Leave the marker for other waiting consumers
            self._queue.put_nowait(None)
        return event

    def drain(self) -> list[PrinterEvent]:
        """Return every queued event without waiting."""
        events = []
        while not self._queue.empty():
            event = self._queue.get_nowait()
            if event is None:
                self._queue.put_nowait(None)
                break
            events.append(event)
        return events

    async def __aiter__(self) -> AsyncIterator[PrinterEvent]:
        """Yield events as they arrive until closed and empty."""
        while (event := await self.get()) is not None:
            yield event

    def close(self) -> None:
        """Detach, stop accepting events and wake up waiting consumers."""
        if self._closed:
            return
        self.detach()
        self._closed = True
        # A full queue has no consumer blocked on it
        with contextlib.suppress(asyncio.QueueFull):
            self._queue.put_nowait(None)

"""Tests for the event normalizer."""

import asyncio
import socket
from unittest.mock import AsyncMock, Mock

import pytest

from flashforge_connect.backends import ADVENTURER_5M, GENERIC_LEGACY, DualProtocolBackend
from flashforge_connect.exceptions import TransportError
from flashforge_connect.models.enums import EventKind, MachineState
from flashforge_connect.session.adapter import PrinterClientAdapter
from flashforge_connect.session.events import EventNormalizer, classify_error


class FakeSource:
    """Raw event source that keeps its listeners in a list."""

    def __init__(self) -> None:
        """Start without listeners."""
        self.listeners: list = []

    def add_listener(self, listener) -> None:
        """Register a listener."""
        self.listeners.append(listener)

    def remove_listener(self, listener) -> None:
        """Unregister a listener."""
        self.listeners.remove(listener)

    def emit(self, event: str, **payload) -> None:
        """Publish a raw event."""
        for listener in list(self.listeners):
            listener(event, payload)


@pytest.fixture
def normalizer() -> EventNormalizer:
    """Create a normalizer."""
    return EventNormalizer(logger=Mock())


class TestSubscription:
    """Test the single subscription guarantee."""

    def test_attach_twice_subscribes_once(self, normalizer: EventNormalizer) -> None:
        """Test that re-attaching to a source never doubles the listener."""
        source = FakeSource()
        normalizer.attach(source)
        normalizer.attach(source)
        assert len(source.listeners) == 1
        source.emit("disconnected")
        assert len(normalizer.drain()) == 1

    def test_attach_new_source_detaches_old(self, normalizer: EventNormalizer) -> None:
        """Test that attaching elsewhere drops the previous subscription."""
        old, new = FakeSource(), FakeSource()
        first = normalizer.attach(old)
        normalizer.attach(new)
        assert old.listeners == []
        assert len(new.listeners) == 1
        assert first.active is False

    def test_detach(self, normalizer: EventNormalizer) -> None:
        """Test that detaching removes the listener and is repeatable."""
        source = FakeSource()
        normalizer.attach(source)
        normalizer.detach()
        normalizer.detach()
        assert source.listeners == []
        assert normalizer.is_attached is False

    def test_close_stops_publishing(self, normalizer: EventNormalizer) -> None:
        """Test that a closed normalizer ignores further events."""
        source = FakeSource()
        normalizer.attach(source)
        normalizer.close()
        normalizer.publish(EventKind.LOG_MESSAGE, message="late")
        assert source.listeners == []
        assert normalizer.drain() == []


class TestNormalization:
    """Test the mapping from raw events to event kinds."""

    @pytest.fixture
    def source(self, normalizer: EventNormalizer) -> FakeSource:
        """Create a source the normalizer is attached to."""
        source = FakeSource()
        normalizer.attach(source)
        return source

    def test_state_transition(
        self, normalizer: EventNormalizer, source: FakeSource
    ) -> None:
        """Test that state changes keep the old and new state."""
        source.emit(
            "machine-state-changed",
            old_state=MachineState.READY,
            new_state=MachineState.PRINTING,
        )
        event = normalizer.get_nowait()
        assert event.kind is EventKind.MACHINE_STATE_CHANGED
        assert event.data == {
            "old_state": MachineState.READY,
            "new_state": MachineState.PRINTING,
        }

    @pytest.mark.parametrize(
        ("raw", "kind"),
        [
            ("printer-info-updated", EventKind.PRINTER_DATA),
            ("bed-temperature-changed", EventKind.BED_TEMPERATURE_CHANGED),
            ("extruder-temperature-changed", EventKind.EXTRUDER_TEMPERATURE_CHANGED),
            ("upload-completed", EventKind.UPLOAD_COMPLETED),
            ("upload-failed", EventKind.UPLOAD_FAILED),
            ("disconnected", EventKind.PRINTER_DISCONNECTED),
        ],
    )
    def test_direct_kinds(
        self, normalizer: EventNormalizer, source: FakeSource, raw: str, kind: EventKind
    ) -> None:
        """Test the one to one mappings."""
        source.emit(raw)
        assert normalizer.get_nowait().kind is kind

    def test_command_success(self, normalizer: EventNormalizer, source: FakeSource) -> None:
        """Test that executed commands become successful responses."""
        source.emit("command-executed", command="home_axes", result=True)
        event = normalizer.get_nowait()
        assert event.kind is EventKind.COMMAND_RESPONSE
        assert event.data["success"] is True
        assert event.data["command"] == "home_axes"

    def test_unsupported_command(
        self, normalizer: EventNormalizer, source: FakeSource
    ) -> None:
        """Test that unsupported commands also produce an informational log."""
        source.emit(
            "command-failed",
            command="clear_platform",
            error="Clear platform not supported on legacy printers",
            unsupported=True,
        )
        response, log = normalizer.drain()
        assert response.kind is EventKind.COMMAND_RESPONSE
        assert response.data["success"] is False
        assert log.kind is EventKind.LOG_MESSAGE
        assert log.data["message"] == "Operation not supported on this printer"

    def test_plain_command_failure(
        self, normalizer: EventNormalizer, source: FakeSource
    ) -> None:
        """Test that ordinary failures produce no log message."""
        source.emit("command-failed", command="home_axes", error="busy", unsupported=False)
        assert [e.kind for e in normalizer.drain()] == [EventKind.COMMAND_RESPONSE]

    @pytest.mark.parametrize(
        ("message", "kind"),
        [
            ("[Errno 104] Connection reset by peer", EventKind.CONNECTION_ERROR),
            ("timed out", EventKind.CONNECTION_ERROR),
            ("[Errno 32] Broken pipe", EventKind.CONNECTION_ERROR),
            ("[Errno -2] Name or service not known", EventKind.CONNECTION_ERROR),
            ("[Errno 113] No route to host", EventKind.CONNECTION_ERROR),
            ("Nozzle temperature out of range", EventKind.PRINTER_ERROR),
        ],
    )
    def test_error_classification(
        self,
        normalizer: EventNormalizer,
        source: FakeSource,
        message: str,
        kind: EventKind,
    ) -> None:
        """Test that transport faults are told apart from printer errors."""
        source.emit("error", error=message)
        event = normalizer.get_nowait()
        assert event.kind is kind
        assert event.data["error"] == message
        assert classify_error(message) is kind

    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (TransportError("link lost"), EventKind.CONNECTION_ERROR),
            (ConnectionResetError("peer closed"), EventKind.CONNECTION_ERROR),
            (TimeoutError(), EventKind.CONNECTION_ERROR),
            (socket.gaierror(-2, "Name or service not known"), EventKind.CONNECTION_ERROR),
            (ValueError("bad reply"), EventKind.PRINTER_ERROR),
            (None, EventKind.PRINTER_ERROR),
        ],
    )
    def test_exception_classification(
        self, error: BaseException | None, kind: EventKind
    ) -> None:
        """Test that transport exceptions are connection errors regardless of text."""
        assert classify_error(error) is kind

    def test_error_carries_exception(
        self, normalizer: EventNormalizer, source: FakeSource
    ) -> None:
        """Test that the exception behind an error decides its kind."""
        source.emit("error", error="", exception=ConnectionAbortedError())
        source.emit("error", error="link lost", exception=ValueError("bad reply"))
        first, second = normalizer.drain()
        assert first.kind is EventKind.CONNECTION_ERROR
        assert first.data == {"error": ""}
        assert second.kind is EventKind.PRINTER_ERROR

    @pytest.mark.anyio
    async def test_adapter_connection_reset(
        self, normalizer: EventNormalizer, legacy_client: AsyncMock
    ) -> None:
        """Test that a reset seen by a legacy session becomes a connection error."""
        adapter = PrinterClientAdapter(
            DualProtocolBackend(GENERIC_LEGACY, legacy_client), logger=Mock()
        )
        normalizer.attach(adapter)
        legacy_client.get_printer_info.side_effect = ConnectionResetError(
            104, "Connection reset by peer"
        )

        await adapter.get_printer_info()

        event = normalizer.get_nowait()
        assert event.kind is EventKind.CONNECTION_ERROR
        assert event.data == {"error": "[Errno 104] Connection reset by peer"}

    @pytest.mark.anyio
    async def test_adapter_command_timeout(
        self,
        normalizer: EventNormalizer,
        legacy_client: AsyncMock,
        modern_client: AsyncMock,
    ) -> None:
        """Test that a command timing out on the socket becomes a connection error."""
        adapter = PrinterClientAdapter(
            DualProtocolBackend(ADVENTURER_5M, legacy_client, modern_client),
            logger=Mock(),
        )
        normalizer.attach(adapter)
        modern_client.home_axes.side_effect = TimeoutError()

        await adapter.home_axes()

        kinds = [event.kind for event in normalizer.drain()]
        assert kinds == [EventKind.COMMAND_RESPONSE, EventKind.CONNECTION_ERROR]

    def test_unknown_events_ignored(
        self, normalizer: EventNormalizer, source: FakeSource
    ) -> None:
        """Test that unknown raw events are dropped."""
        source.emit("firmware-banner")
        assert normalizer.drain() == []

    @pytest.mark.anyio
    async def test_get_waits_for_event(
        self, normalizer: EventNormalizer, source: FakeSource
    ) -> None:
        """Test that consumers can wait for the next event."""
        waiter = asyncio.create_task(normalizer.get())
        await asyncio.sleep(0)
        source.emit("disconnected")
        event = await asyncio.wait_for(waiter, timeout=1)
        assert event.kind is EventKind.PRINTER_DISCONNECTED


class TestStreamEnd:
    """Test that closing ends the event stream."""

    @pytest.mark.anyio
    async def test_close_wakes_iterating_consumer(
        self, normalizer: EventNormalizer
    ) -> None:
        """Test that a consumer blocked in async for finishes on close."""
        received = []

        async def consume() -> None:
            async for event in normalizer:
                received.append(event.kind)

        consumer = asyncio.create_task(consume())
        await asyncio.sleep(0)
        normalizer.publish(EventKind.LOG_MESSAGE, message="hello")
        await asyncio.sleep(0)
        normalizer.close()

        await asyncio.wait_for(consumer, timeout=1)
        assert received == [EventKind.LOG_MESSAGE]

    @pytest.mark.anyio
    async def test_close_wakes_every_waiter(self, normalizer: EventNormalizer) -> None:
        """Test that all consumers waiting on get are released."""
        waiters = [asyncio.create_task(normalizer.get()) for _ in range(3)]
        await asyncio.sleep(0)
        normalizer.close()
        assert await asyncio.wait_for(asyncio.gather(*waiters), timeout=1) == [
            None,
            None,
            None,
        ]

    @pytest.mark.anyio
    async def test_queued_events_delivered_before_end(
        self, normalizer: EventNormalizer
    ) -> None:
        """Test that events queued before close are still handed out."""
        normalizer.publish(EventKind.LOG_MESSAGE, message="one")
        normalizer.publish(EventKind.LOG_MESSAGE, message="two")
        normalizer.close()
        normalizer.close()

        messages = [event.data["message"] async for event in normalizer]

        assert messages == ["one", "two"]
        assert await normalizer.get() is None
        with pytest.raises(asyncio.QueueEmpty):
            normalizer.get_nowait()

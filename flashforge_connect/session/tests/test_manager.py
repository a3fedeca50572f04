"""Tests for the connection manager."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest

from flashforge_connect.config import ConnectionOptions
from flashforge_connect.const import CMD_LOGOUT
from flashforge_connect.discovery import PrinterDiscovery
from flashforge_connect.exceptions import PrinterNotConnectedError, TransportError
from flashforge_connect.models.enums import EventKind
from flashforge_connect.session.manager import PrinterConnectionManager


def poll_tasks() -> list[asyncio.Task]:
    """Return the live polling tasks."""
    return [
        task
        for task in asyncio.all_tasks()
        if task.get_name() == "flashforge-status-poll" and not task.done()
    ]


@pytest.fixture
def status_listener() -> Mock:
    """Create a status listener."""
    return Mock()


@pytest.fixture
async def manager(client_factory, store, options, status_listener):
    """Create a manager and close it after the test."""
    manager = PrinterConnectionManager(
        client_factory,
        store,
        options=options,
        progress=Mock(),
        status_listener=status_listener,
        logger=Mock(),
    )
    yield manager
    await manager.aclose()


async def connect_5m(manager: PrinterConnectionManager):
    """Connect to the 5M at its known address."""
    return await manager.connect_and_save("10.0.0.5", "SN1", "abc", "Workshop 5M", False)


class TestDiscovery:
    """Test the scanner the manager hands to the connect flow."""

    def test_scanner_built_from_options(self, client_factory, store) -> None:
        """Test that a broadcast scanner is built from the connection options."""
        options = ConnectionOptions(
            settle_delay=0,
            discovery_timeout=3,
            discovery_idle_timeout=1,
            discovery_retries=2,
        )
        manager = PrinterConnectionManager(client_factory, store, options=options)
        scanner = manager.flow.discovery
        assert isinstance(scanner, PrinterDiscovery)
        assert (scanner.timeout, scanner.idle_timeout, scanner.retries) == (3, 1, 2)

    def test_injected_scanner_kept(self, client_factory, store, options) -> None:
        """Test that a caller supplied scanner is used as is."""
        discovery = AsyncMock()
        manager = PrinterConnectionManager(
            client_factory, store, discovery=discovery, options=options
        )
        assert manager.flow.discovery is discovery

    @pytest.mark.anyio
    async def test_connect_scans(self, client_factory, store, options) -> None:
        """Test that a connect without a saved printer runs a scan."""
        with patch.object(
            PrinterDiscovery, "discover", AsyncMock(return_value=[])
        ) as discover:
            manager = PrinterConnectionManager(
                client_factory, store, options=options, logger=Mock()
            )
            assert await manager.connect() is None
        discover.assert_awaited_once()
        await manager.aclose()


class TestReconnect:
    """Test that reconnecting never leaks the previous session."""

    @pytest.mark.anyio
    async def test_repeated_reconnects(
        self, manager: PrinterConnectionManager, client_factory
    ) -> None:
        """Test that each reconnect leaves one session, one poller and one listener."""
        sessions = [await connect_5m(manager) for _ in range(4)]
        await asyncio.sleep(0.001)

        current = manager.session
        assert current is sessions[-1]
        assert len(poll_tasks()) == 1
        assert current.adapter.listener_count == 1
        assert manager.forwarder.client is current.adapter
        for old in sessions[:-1]:
            assert old.adapter.listener_count == 0
            assert old.is_connected is False
            old.legacy_client.send_raw_cmd.assert_any_await(CMD_LOGOUT)
            old.legacy_client.dispose.assert_awaited_once()
            old.modern_client.dispose.assert_awaited_once()
        current.legacy_client.dispose.assert_not_awaited()

    @pytest.mark.anyio
    async def test_failed_reconnect_leaves_no_session(
        self, manager: PrinterConnectionManager
    ) -> None:
        """Test that the old session is gone even when the new connect fails."""
        old = await connect_5m(manager)
        session = await manager.connect_and_save("10.0.0.99", "SN9", "abc", "Ghost", False)
        await asyncio.sleep(0.001)

        assert session is None
        assert manager.session is None
        assert manager.is_connected is False
        assert old.is_connected is False
        assert poll_tasks() == []
        assert manager.last_error.ip_address == "10.0.0.99"

    @pytest.mark.anyio
    async def test_stale_forwarded_command(
        self, manager: PrinterConnectionManager
    ) -> None:
        """Test that a command captured before reconnect cannot reach the old client."""
        old = await connect_5m(manager)
        stale = manager.forwarder.commands["home_axes"]
        new = await connect_5m(manager)

        with pytest.raises(PrinterNotConnectedError):
            await stale()
        await manager.command("home_axes")
        old.modern_client.home_axes.assert_not_awaited()
        new.modern_client.home_axes.assert_awaited_once()


class TestWithoutSession:
    """Test operations before any connect."""

    @pytest.mark.anyio
    async def test_operations_report_not_connected(
        self, manager: PrinterConnectionManager
    ) -> None:
        """Test that operations return failures instead of raising."""
        results = [
            await manager.get_status(),
            await manager.execute_raw("M105"),
            await manager.pause_job(),
            await manager.resume_job(),
            await manager.cancel_job(),
            await manager.start_job(file_name="a.gcode"),
            await manager.get_local_jobs(),
            await manager.get_recent_jobs(),
            await manager.set_led_enabled(True),
        ]
        for result in results:
            assert result.success is False
            assert result.error == "Printer not connected"
        assert await manager.get_job_thumbnail("a.gcode") is None
        assert await manager.get_model_preview() is None
        assert manager.get_material_station_status() is None
        assert manager.get_feature_set() is None

    @pytest.mark.anyio
    async def test_command_raises(self, manager: PrinterConnectionManager) -> None:
        """Test that forwarded commands refuse without a printer."""
        with pytest.raises(PrinterNotConnectedError):
            await manager.command("home_axes")

    @pytest.mark.anyio
    async def test_disconnect_is_noop(self, manager: PrinterConnectionManager) -> None:
        """Test that disconnecting twice without a session is harmless."""
        await manager.disconnect()
        await manager.disconnect()
        assert manager.events.drain() == []


class TestConnectedOperations:
    """Test operations on a live session."""

    @pytest.mark.anyio
    async def test_execute_raw(self, manager: PrinterConnectionManager) -> None:
        """Test that raw command output is returned as data."""
        session = await connect_5m(manager)
        session.legacy_client.send_raw_cmd.return_value = "ok T0:210 B:60"
        result = await manager.execute_raw("M105")
        assert result.success is True
        assert result.data == "ok T0:210 B:60"

    @pytest.mark.anyio
    async def test_status_listener_receives_polls(
        self, manager: PrinterConnectionManager, status_listener: Mock
    ) -> None:
        """Test that timed polls reach the status listener."""
        await connect_5m(manager)
        await asyncio.sleep(0.05)
        error, result = status_listener.call_args.args
        assert error is None
        assert result.success is True

    @pytest.mark.anyio
    async def test_refresh_status(
        self, manager: PrinterConnectionManager, status_listener: Mock
    ) -> None:
        """Test that a refresh is delivered like a timed poll."""
        manager.poller.interval = 60
        await connect_5m(manager)
        await manager.refresh_status()
        status_listener.assert_called_once()

    @pytest.mark.anyio
    async def test_refresh_skipped_during_upload(
        self, manager: PrinterConnectionManager, status_listener: Mock
    ) -> None:
        """Test that no refresh runs while a file is uploading."""
        manager.poller.interval = 60
        session = await connect_5m(manager)
        session.adapter._upload_lock = Mock()
        session.adapter._upload_lock.locked.return_value = True
        await manager.refresh_status()
        status_listener.assert_not_called()

    @pytest.mark.anyio
    async def test_model_preview(self, manager: PrinterConnectionManager) -> None:
        """Test that the preview is the thumbnail of the job being printed."""
        manager.poller.interval = 60
        session = await connect_5m(manager)
        session.modern_client.get_machine_info.return_value = {
            "PrintFileName": "benchy.gcode"
        }
        session.modern_client.get_gcode_thumbnail.return_value = b"\x89PNG"

        assert await manager.get_model_preview() == "data:image/png;base64,iVBORw=="
        session.modern_client.get_gcode_thumbnail.assert_awaited_once_with("benchy.gcode")

    @pytest.mark.anyio
    async def test_feature_set(self, manager: PrinterConnectionManager) -> None:
        """Test that the session's features are exposed."""
        session = await connect_5m(manager)
        assert manager.get_feature_set() is session.features
        assert manager.get_feature_set().led_control.builtin is True


class TestEvents:
    """Test the normalized event stream."""

    @pytest.mark.anyio
    async def test_disconnect_publishes(self, manager: PrinterConnectionManager) -> None:
        """Test that disconnecting publishes a disconnect event once."""
        await connect_5m(manager)
        manager.events.drain()
        await manager.disconnect()
        kinds = [event.kind for event in manager.events.drain()]
        assert kinds == [EventKind.PRINTER_DISCONNECTED]

    @pytest.mark.anyio
    async def test_status_failure_is_connection_error(
        self, manager: PrinterConnectionManager
    ) -> None:
        """Test that a dropped connection is classified as such."""
        session = await connect_5m(manager)
        manager.poller.stop()
        manager.events.drain()
        session.modern_client.get_status.side_effect = ConnectionResetError(
            104, "Connection reset by peer"
        )
        session.legacy_client.get_printer_info.side_effect = ConnectionResetError(
            104, "Connection reset by peer"
        )

        result = await manager.get_status()

        assert result.success is False
        kinds = [event.kind for event in manager.events.drain()]
        assert EventKind.CONNECTION_ERROR in kinds

    @pytest.mark.anyio
    async def test_poll_exception_is_printer_error(
        self, manager: PrinterConnectionManager, status_listener: Mock
    ) -> None:
        """Test that a poll that raises is published and still reported."""
        await connect_5m(manager)
        manager.poller.stop()
        manager.events.drain()
        error = RuntimeError("boom")
        manager.poller.start(AsyncMock(side_effect=error), manager._on_poll, interval=60)

        await manager.poller.send_single_update()

        status_listener.assert_called_with(error, None)
        event = manager.events.get_nowait()
        assert event.kind is EventKind.PRINTER_ERROR
        assert event.data == {"error": "boom"}

    @pytest.mark.anyio
    async def test_poll_transport_error(
        self, manager: PrinterConnectionManager
    ) -> None:
        """Test that a transport fault during polling triggers reconnection handling."""
        await connect_5m(manager)
        manager.poller.stop()
        manager.events.drain()
        manager.poller.start(
            AsyncMock(side_effect=TransportError("link lost")), manager._on_poll, interval=60
        )

        await manager.poller.send_single_update()

        assert manager.events.get_nowait().kind is EventKind.CONNECTION_ERROR

    @pytest.mark.anyio
    async def test_aclose_closes_stream(self, manager: PrinterConnectionManager) -> None:
        """Test that closing the manager ends the event stream."""
        await connect_5m(manager)
        await manager.aclose()
        assert manager.session is None
        manager.events.publish(EventKind.LOG_MESSAGE, message="late")
        kinds = [event.kind for event in manager.events.drain()]
        assert EventKind.LOG_MESSAGE not in kinds

"""
Connection manager.

Owns the single live session and the collaborators bound to it: the event
normalizer, the command forwarder and the status poller. Installing a new
session always tears the previous one down completely first.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from flashforge_connect.backends.ad5x import validate_material_mappings
from flashforge_connect.config import ConnectionOptions
from flashforge_connect.const import LOGGER, NOT_CONNECTED_MESSAGE
from flashforge_connect.discovery import PrinterDiscovery
from flashforge_connect.models.enums import JobSource
from flashforge_connect.models.results import (
    CommandResult,
    JobListResult,
    JobStartResult,
    StatusResult,
)

from .events import EventNormalizer, classify_error
from .flow import ConnectionFlowManager
from .forwarder import CommandForwarder
from .polling import ConnectionStateManager

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from flashforge_connect.clients import (
        ClientFactory,
        Discoverer,
        PairingCodeProvider,
        PrinterStore,
        ProgressEmitter,
        SelectionProvider,
    )
    from flashforge_connect.models.features import FeatureSet
    from flashforge_connect.models.material_station import (
        MappingValidation,
        MaterialStationStatus,
        RawSlotInfo,
        ToolRequirement,
    )

    from .session import ConnectionSession


class PrinterConnectionManager:
    """
    Public entry point of the connection layer.

    Operations return result envelopes and never raise because no printer is
    connected.
    """

    def __init__(  # noqa: PLR0913
        self,
        client_factory: ClientFactory,
        store: PrinterStore,
        discovery: Discoverer | None = None,
        pairing_provider: PairingCodeProvider | None = None,
        selection_provider: SelectionProvider | None = None,
        options: ConnectionOptions | None = None,
        progress: ProgressEmitter | None = None,
        status_listener: Callable[[BaseException | None, Any], Any] | None = None,
        logger: Any = LOGGER,
    ) -> None:
        """
        Initialize a PrinterConnectionManager.

        Arguments:
            client_factory: Builds the vendor clients for an address.
            store: Saved printer records.
            discovery: Network scanner. Defaults to a broadcast scanner built
                from ``options``.
            pairing_provider: Asks the user for a pairing code.
            selection_provider: Asks the user to pick a printer.
            options: Connection options.
            progress: Receives human readable progress lines.
            status_listener: Called with ``(error, result)`` after every poll.
            logger: The logger to use.

        """
        self.options = options or ConnectionOptions()
        self.logger = logger
        if discovery is None:
            discovery = PrinterDiscovery.from_options(self.options, logger=logger)
        self.flow = ConnectionFlowManager(
            client_factory,
            store,
            discovery=discovery,
            pairing_provider=pairing_provider,
            selection_provider=selection_provider,
            options=self.options,
            progress=progress,
            logger=logger,
        )
        self.events = EventNormalizer(logger=logger)
        self.forwarder = CommandForwarder(lambda: self.is_connected)
        self.poller = ConnectionStateManager(self.options.poll_interval, logger=logger)
        self.status_listener = status_listener
        self._session: ConnectionSession | None = None
        self._lock = asyncio.Lock()

    @property
    def session(self) -> ConnectionSession | None:
        """Return the live session, if connected."""
        return self._session

    @property
    def is_connected(self) -> bool:
        """Return True while a session is installed and not disposed."""
        return self._session is not None and self._session.is_connected

    @property
    def last_error(self) -> Exception | None:
        """Return the most recent connect failure."""
        return self.flow.last_error

    async def connect(self) -> ConnectionSession | None:
        """Run the full connect flow, replacing any live session on success."""
        async with self._lock:
            await self._teardown()
            session = await self.flow.connect()
            if session is not None:
                self._install(session)
            return session

    async def connect_and_save(  # noqa: PLR0913
        self,
        ip_address: str,
        serial_number: str,
        check_code: str | None,
        name: str | None,
        is_legacy: bool,
    ) -> ConnectionSession | None:
        """Connect to a known address, bypassing discovery and selection."""
        async with self._lock:
            await self._teardown()
            session = await self.flow.connect_and_save(
                ip_address, serial_number, check_code, name, is_legacy
            )
            if session is not None:
                self._install(session)
            return session

    async def _teardown(self) -> None:
        session = self._session
        if session is None:
            return
        self.logger.info("Disconnecting from %s", session.printer_name)
        await self.poller.aclose()
        self.forwarder.unbind()
        try:
            await session.dispose()
        except Exception:
            self.logger.exception("Error disposing session for %s", session.printer_name)
        self.events.detach()
        self._session = None
        if self.options.settle_delay:
            await asyncio.sleep(self.options.settle_delay)

    def _install(self, session: ConnectionSession) -> None:
        self._session = session
        self.events.attach(session.adapter)
        self.forwarder.bind(session.adapter)
        self.poller.start(session.adapter.get_printer_info, self._on_poll)
        self.logger.info(
            "Connected to %s (%s, %s)",
            session.printer_name,
            session.model_type.display_name,
            session.client_type.value,
        )

    async def _on_poll(self, error: BaseException | None, result: Any) -> None:
        if error is not None:
            self.events.publish(classify_error(error), error=str(error))
        if self.status_listener is not None:
            outcome = self.status_listener(error, result)
            if asyncio.iscoroutine(outcome):
                await outcome

    async def disconnect(self) -> None:
        """Tear down the live session, if any."""
        async with self._lock:
            await self._teardown()

    async def aclose(self) -> None:
        """Disconnect and close the event stream."""
        await self.disconnect()
        self.events.close()

    async def get_status(self) -> StatusResult:
        """Read status through the adapter."""
        if not self.is_connected:
            return StatusResult(success=False, error=NOT_CONNECTED_MESSAGE)
        return await self._session.adapter.get_printer_info()

    async def refresh_status(self) -> None:
        """Poll once now, delivering the result like a timed poll."""
        if not self.is_connected:
            return
        if self._session.adapter.upload_in_progress:
            self.logger.debug("Skipping status refresh during upload")
            return
        await self.poller.send_single_update()

    async def execute_raw(self, command: str) -> CommandResult:
        """Send a raw command over the legacy client."""
        if not self.is_connected:
            return CommandResult(success=False, error=NOT_CONNECTED_MESSAGE)
        result = await self._session.backend.execute_gcode(command)
        return CommandResult(
            success=result.success,
            data=result.response,
            error=result.error,
            timestamp=result.timestamp,
        )

    async def pause_job(self) -> CommandResult:
        """Pause the running job."""
        if not self.is_connected:
            return CommandResult(success=False, error=NOT_CONNECTED_MESSAGE)
        return await self._session.backend.pause_job()

    async def resume_job(self) -> CommandResult:
        """Resume the paused job."""
        if not self.is_connected:
            return CommandResult(success=False, error=NOT_CONNECTED_MESSAGE)
        return await self._session.backend.resume_job()

    async def cancel_job(self) -> CommandResult:
        """Cancel the running job."""
        if not self.is_connected:
            return CommandResult(success=False, error=NOT_CONNECTED_MESSAGE)
        return await self._session.backend.cancel_job()

    async def start_job(
        self,
        file_name: str | None = None,
        file_path: str | None = None,
        start_now: bool = True,
        leveling: bool = False,
    ) -> JobStartResult:
        """Print a stored file or upload a local one."""
        if not self.is_connected:
            return JobStartResult(
                success=False, file_name=file_name or "", error=NOT_CONNECTED_MESSAGE
            )
        return await self._session.backend.start_job(
            file_name=file_name,
            file_path=file_path,
            start_now=start_now,
            leveling=leveling,
        )

    async def get_local_jobs(self) -> JobListResult:
        """List files stored on the printer."""
        if not self.is_connected:
            return JobListResult(
                success=False, source=JobSource.LOCAL, error=NOT_CONNECTED_MESSAGE
            )
        return await self._session.backend.get_local_jobs()

    async def get_recent_jobs(self) -> JobListResult:
        """List recently printed files."""
        if not self.is_connected:
            return JobListResult(
                success=False, source=JobSource.RECENT, error=NOT_CONNECTED_MESSAGE
            )
        return await self._session.backend.get_recent_jobs()

    async def set_led_enabled(self, enabled: bool) -> CommandResult:
        """Switch the chamber light."""
        if not self.is_connected:
            return CommandResult(success=False, error=NOT_CONNECTED_MESSAGE)
        return await self._session.backend.set_led_enabled(enabled)

    async def get_job_thumbnail(self, file_name: str) -> str | None:
        """Return a job thumbnail as a data URL."""
        if not self.is_connected:
            return None
        return await self._session.backend.get_job_thumbnail(file_name)

    async def get_model_preview(self) -> str | None:
        """Return the thumbnail of the job currently printing as a data URL."""
        if not self.is_connected:
            return None
        return await self._session.backend.get_model_preview()

    def get_material_station_status(self) -> MaterialStationStatus | None:
        """Return material station state, or None on families without one."""
        if not self.is_connected:
            return None
        return self._session.backend.get_material_station_status()

    def validate_material_mappings(
        self,
        tools: Sequence[ToolRequirement],
        slots: Sequence[RawSlotInfo],
        mappings: Iterable[tuple[int, int]],
    ) -> MappingValidation:
        """Check tool to slot assignments for a multi-color job."""
        return validate_material_mappings(tools, slots, mappings)

    def get_feature_set(self) -> FeatureSet | None:
        """Return the feature set of the live session."""
        if self._session is None:
            return None
        return self._session.features

    async def command(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """
        Invoke a forwarded adapter command by name.

        Raises:
            PrinterNotConnectedError: If no printer is connected.
            UnsupportedOperationError: If ``name`` is not a forwarded command.

        """
        return await self.forwarder.call(name, *args, **kwargs)

"""
Client adapter.

Wraps a backend and its vendor clients behind one command surface, routes
each command to the protocol that supports it and publishes raw events for
the event normalizer.
"""

from __future__ import annotations

import asyncio
import base64
import contextlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from flashforge_connect.const import (
    CMD_LOGOUT,
    LOGGER,
    NOT_CONNECTED_MESSAGE,
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
)
from flashforge_connect.exceptions import (
    FlashForgeError,
    PrinterNotConnectedError,
    UnsupportedOperationError,
)
from flashforge_connect.models.enums import ClientType, MachineState
from flashforge_connect.models.results import PrinterStatus, StatusResult

if TYPE_CHECKING:
    from flashforge_connect.backends.dual import DualProtocolBackend
    from flashforge_connect.clients import RawListener


@dataclass(frozen=True)
class CommandRoute:
    """Method names implementing a command on each protocol."""

    modern: str | None
    legacy: str | None
    unsupported_message: str | None = None


COMMAND_ROUTES: dict[str, CommandRoute] = {
    "home_axes": CommandRoute("home_axes", "home_axes"),
    "set_extruder_temp": CommandRoute("set_extruder_temp", "set_extruder_temp"),
    "cancel_extruder_temp": CommandRoute("cancel_extruder_temp", "cancel_extruder_temp"),
    "set_bed_temp": CommandRoute("set_bed_temp", "set_bed_temp"),
    "cancel_bed_temp": CommandRoute("cancel_bed_temp", "cancel_bed_temp"),
    "clear_platform": CommandRoute(
        "clear_platform", None, "Clear platform not supported on legacy printers"
    ),
    "set_external_filtration_on": CommandRoute(
        "set_external_filtration_on",
        None,
        "External filtration not supported on legacy printers",
    ),
    "set_internal_filtration_on": CommandRoute(
        "set_internal_filtration_on",
        None,
        "Internal filtration not supported on legacy printers",
    ),
    "set_filtration_off": CommandRoute(
        "set_filtration_off", None, "Filtration control not supported on legacy printers"
    ),
}


class PrinterClientAdapter:
    """
    Unified command surface for one connected printer.

    Raw events are delivered synchronously to registered listeners as
    ``listener(event_name, payload)``.
    """

    def __init__(self, backend: DualProtocolBackend, logger: Any = LOGGER) -> None:
        """
        Initialize a PrinterClientAdapter.

        Arguments:
            backend: An initialized backend owning the vendor clients.
            logger: The logger to use.

        """
        self.backend = backend
        self.logger = logger
        self.client_type = (
            ClientType.MODERN if backend.modern_client is not None else ClientType.LEGACY
        )
        self._listeners: list[RawListener] = []
        self._upload_lock = asyncio.Lock()
        self._connected = True
        self._last_machine_state: MachineState | None = None
        self._last_bed_temp: float | None = None
        self._last_extruder_temp: float | None = None

    @property
    def is_connected(self) -> bool:
        """Return True until the adapter is disposed."""
        return self._connected

    @property
    def upload_in_progress(self) -> bool:
        """Return True while a file upload holds the upload lock."""
        return self._upload_lock.locked()

    @property
    def listener_count(self) -> int:
        """Return the number of registered raw listeners."""
        return len(self._listeners)

    def add_listener(self, listener: RawListener) -> None:
        """Register a raw event listener."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: RawListener) -> None:
        """Unregister a raw event listener."""
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    def _emit(self, event: str, **payload: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                self.logger.exception("Listener failed while handling %s", event)

    def _check_can_send(self) -> None:
        if not self._connected:
            raise PrinterNotConnectedError(NOT_CONNECTED_MESSAGE)
        if self.upload_in_progress:
            msg = "Command blocked: File upload in progress"
            raise FlashForgeError(msg)

    async def get_printer_info(self) -> StatusResult:
        """
        Read status and publish change events.

        While an upload is running, no request is sent and a busy snapshot
        is returned instead.
        """
        if not self._connected:
            return StatusResult(success=False, error=NOT_CONNECTED_MESSAGE)
        if self.upload_in_progress:
            result = StatusResult(
                success=True, status=PrinterStatus(printer_state="Uploading File")
            )
            self._emit(RAW_PRINTER_INFO, status=result.status, uploading=True)
            return result

        result = await self.backend.get_status()
        if not result.success:
            self._emit(
                RAW_ERROR,
                error=result.error or "Failed to get printer info",
                exception=result.cause,
            )
            return result

        status = result.status
        machine_state = MachineState.from_status(status.printer_state)
        if machine_state != self._last_machine_state:
            self._emit(
                RAW_MACHINE_STATE,
                new_state=machine_state,
                old_state=self._last_machine_state,
                status=status,
            )
            self._last_machine_state = machine_state
        if status.bed_temperature != self._last_bed_temp:
            self._emit(
                RAW_BED_TEMPERATURE,
                new_temperature=status.bed_temperature,
                old_temperature=self._last_bed_temp,
            )
            self._last_bed_temp = status.bed_temperature
        if status.nozzle_temperature != self._last_extruder_temp:
            self._emit(
                RAW_EXTRUDER_TEMPERATURE,
                new_temperature=status.nozzle_temperature,
                old_temperature=self._last_extruder_temp,
            )
            self._last_extruder_temp = status.nozzle_temperature

        self._emit(RAW_PRINTER_INFO, status=status, uploading=False)
        return result

    async def execute_command(self, name: str, *args: Any) -> Any:
        """
        Run a routed command on the protocol that supports it.

        Raises:
            UnsupportedOperationError: If the command has no route for this
                session's protocol.

        """
        route = COMMAND_ROUTES.get(name)
        if route is None:
            msg = f"Unknown command: {name}"
            raise UnsupportedOperationError(msg)

        if self.client_type is ClientType.MODERN:
            client, method = self.backend.modern_client, route.modern
        else:
            client, method = self.backend.legacy_client, route.legacy
        if method is None:
            raise UnsupportedOperationError(
                route.unsupported_message or f"{name} not supported on legacy printers"
            )
        return await getattr(client, method)(*args)

    async def _run(self, name: str, *args: Any) -> Any:
        try:
            self._check_can_send()
            result = await self.execute_command(name, *args)
        except UnsupportedOperationError as err:
            self._emit(RAW_COMMAND_FAILED, command=name, error=str(err), unsupported=True)
            return False
        except Exception as err:  # noqa: BLE001
            self._emit(RAW_COMMAND_FAILED, command=name, error=str(err), unsupported=False)
            self._emit(RAW_ERROR, error=str(err), exception=err)
            return False
        self._emit(RAW_COMMAND_EXECUTED, command=name, result=result)
        return result

    async def home_axes(self) -> bool:
        """Home all axes."""
        return await self._run("home_axes")

    async def clear_platform(self) -> bool:
        """Confirm the build plate has been cleared."""
        return await self._run("clear_platform")

    async def set_bed_temp(self, temperature: float) -> bool:
        """Set the bed target temperature."""
        return await self._run("set_bed_temp", temperature)

    async def cancel_bed_temp(self) -> bool:
        """Turn bed heating off."""
        return await self._run("cancel_bed_temp")

    async def set_extruder_temp(self, temperature: float) -> bool:
        """Set the extruder target temperature."""
        return await self._run("set_extruder_temp", temperature)

    async def cancel_extruder_temp(self) -> bool:
        """Turn extruder heating off."""
        return await self._run("cancel_extruder_temp")

    async def set_external_filtration_on(self) -> bool:
        """Switch filtration to external mode."""
        return await self._run("set_external_filtration_on")

    async def set_internal_filtration_on(self) -> bool:
        """Switch filtration to internal mode."""
        return await self._run("set_internal_filtration_on")

    async def set_filtration_off(self) -> bool:
        """Switch filtration off."""
        return await self._run("set_filtration_off")

    async def _run_backend(self, name: str, operation: Any) -> bool:
        try:
            self._check_can_send()
        except FlashForgeError as err:
            self._emit(RAW_COMMAND_FAILED, command=name, error=str(err), unsupported=False)
            return False
        result = await operation()
        if result.success:
            self._emit(RAW_COMMAND_EXECUTED, command=name, result=result.data)
        else:
            self._emit(
                RAW_COMMAND_FAILED, command=name, error=result.error, unsupported=False
            )
            if result.cause is not None:
                self._emit(RAW_ERROR, error=result.error, exception=result.cause)
        return result.success

    async def pause_print_job(self) -> bool:
        """Pause the running job, falling back to the raw pause command."""
        return await self._run_backend("pause_print_job", self.backend.pause_job)

    async def resume_print_job(self) -> bool:
        """Resume a paused job."""
        return await self._run_backend("resume_print_job", self.backend.resume_job)

    async def cancel_print_job(self) -> bool:
        """Cancel the running job."""
        return await self._run_backend("cancel_print_job", self.backend.cancel_job)

    async def set_led_on(self) -> bool:
        """Turn the chamber light on."""
        return await self._run_backend(
            "set_led_on", lambda: self.backend.set_led_enabled(True)
        )

    async def set_led_off(self) -> bool:
        """Turn the chamber light off."""
        return await self._run_backend(
            "set_led_off", lambda: self.backend.set_led_enabled(False)
        )

    async def send_raw_cmd(self, command: str) -> str:
        """Send a raw command. Returns the response, or "" on failure."""
        try:
            self._check_can_send()
        except FlashForgeError as err:
            self._emit(RAW_ERROR, error=f"Cannot send command: {err}")
            return ""

        result = await self.backend.execute_gcode(command)
        if not result.success:
            self._emit(
                RAW_COMMAND_FAILED,
                command="send_raw_cmd",
                raw_command=command,
                error=result.error,
                unsupported=False,
            )
            self._emit(RAW_ERROR, error=result.error, exception=result.cause)
            return ""
        self._emit(
            RAW_COMMAND_EXECUTED,
            command="send_raw_cmd",
            raw_command=command,
            result=result.response,
        )
        return result.response or ""

    async def upload_file(
        self, file_path: str, start_now: bool = False, leveling: bool = False
    ) -> bool:
        """
        Upload a file, holding the upload lock for the duration.

        Status reads and other commands are refused while the lock is held.
        """
        if not self._connected:
            self._emit(RAW_UPLOAD_FAILED, file_path=file_path, error=NOT_CONNECTED_MESSAGE)
            return False

        async with self._upload_lock:
            try:
                if self.client_type is ClientType.MODERN:
                    result = await self.backend.start_job(
                        file_path=file_path, start_now=start_now, leveling=leveling
                    )
                    success, error = result.success, result.error
                else:
                    success = await self.backend.legacy_client.upload_file(file_path)
                    error = None if success else "Failed to upload file"
            except Exception as err:  # noqa: BLE001
                success, error = False, str(err)

        if success:
            self._emit(RAW_UPLOAD_COMPLETED, file_path=file_path, started=start_now)
        else:
            self._emit(RAW_UPLOAD_FAILED, file_path=file_path, error=error)
        return success

    async def get_legacy_thumbnail(self, file_name: str) -> str | None:
        """Return a PNG data URL fetched over the legacy protocol."""
        try:
            self._check_can_send()
            thumbnail = await self.backend.legacy_client.get_thumbnail(file_name)
        except Exception as err:  # noqa: BLE001
            self.logger.warning("Error getting legacy thumbnail for %s: %s", file_name, err)
            return None
        if not thumbnail:
            return None
        return "data:image/png;base64," + base64.b64encode(thumbnail).decode("ascii")

    async def dispose(self) -> None:
        """Log out, release both vendor clients and publish the disconnect."""
        if not self._connected:
            return
        self._connected = False

        legacy = self.backend.legacy_client
        try:
            await legacy.send_raw_cmd(CMD_LOGOUT)
        except Exception as err:  # noqa: BLE001
            self.logger.debug("Logout command failed: %s", err)

        for client in (self.backend.modern_client, legacy):
            if client is None:
                continue
            try:
                await client.dispose()
            except Exception as err:  # noqa: BLE001
                self.logger.warning("Error disposing client: %s", err)

        self._emit(RAW_DISCONNECTED)

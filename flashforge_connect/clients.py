"""
Interfaces of the collaborators the connection layer is handed.

The vendor clients implement the two wire protocols. Their correctness is
not this package's concern; only the surface below is relied upon.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence

    from .models.printer import DiscoveredPrinter, SavedPrinterRecord

    RawListener = Callable[[str, dict[str, Any]], None]
    PairingCodeProvider = Callable[[str], Awaitable[str | None]]
    SelectionProvider = Callable[
        [Sequence[DiscoveredPrinter]], Awaitable[DiscoveredPrinter | None]
    ]
    ProgressEmitter = Callable[[str], None]


class LegacyClient(Protocol):
    """Client for the raw-command TCP protocol."""

    async def init_control(self) -> bool:
        """Open the control channel."""
        ...

    async def get_printer_info(self) -> Mapping[str, Any] | None:
        """
        Return the printer info block.

        Expected keys include TypeName, Name, FirmwareVersion, SerialNumber
        and, depending on firmware, MachineStatus/Status, BedTemperature/
        BedTemp, NozzleTemperature/NozzleTemp/ExtruderTemp, Progress,
        CurrentFile, CurrentPrintLayer and TotalPrintLayers.
        """
        ...

    async def send_raw_cmd(self, command: str) -> str: ...

    async def home_axes(self) -> bool: ...

    async def led_on(self) -> bool: ...

    async def led_off(self) -> bool: ...

    async def set_extruder_temp(self, temperature: float) -> bool: ...

    async def cancel_extruder_temp(self) -> bool: ...

    async def set_bed_temp(self, temperature: float) -> bool: ...

    async def cancel_bed_temp(self) -> bool: ...

    async def pause_job(self) -> bool: ...

    async def resume_job(self) -> bool: ...

    async def stop_job(self) -> bool: ...

    async def upload_file(self, file_path: str) -> bool: ...

    async def get_thumbnail(self, file_name: str) -> bytes | None: ...

    async def dispose(self) -> None: ...


class ModernClient(Protocol):
    """Client for the HTTP based protocol spoken by the 5M family."""

    product_info: Mapping[str, Any] | None

    async def initialize(self) -> bool: ...

    async def init_control(self) -> bool: ...

    async def send_product_command(self) -> bool:
        """Query the product endpoint and populate ``product_info``."""
        ...

    async def get_status(self) -> str | None: ...

    async def get_machine_info(self) -> Mapping[str, Any] | None:
        """
        Return detailed machine info.

        Keys used here: PrintBed/Extruder ({"current", "set"}), PrintProgress,
        PrintFileName, EstimatedTime, PrintDuration (seconds),
        CurrentPrintLayer, TotalPrintLayers and, per family, ExternalFanOn,
        InternalFanOn and MatlStationInfo.
        """
        ...

    async def home_axes(self) -> bool: ...

    async def clear_platform(self) -> bool: ...

    async def pause_print_job(self) -> bool: ...

    async def resume_print_job(self) -> bool: ...

    async def cancel_print_job(self) -> bool: ...

    async def set_led_on(self) -> bool: ...

    async def set_led_off(self) -> bool: ...

    async def set_extruder_temp(self, temperature: float) -> bool: ...

    async def cancel_extruder_temp(self) -> bool: ...

    async def set_bed_temp(self, temperature: float) -> bool: ...

    async def cancel_bed_temp(self) -> bool: ...

    async def set_external_filtration_on(self) -> bool: ...

    async def set_internal_filtration_on(self) -> bool: ...

    async def set_filtration_off(self) -> bool: ...

    async def get_local_file_list(self) -> Sequence[str]: ...

    async def get_recent_file_list(self) -> Sequence[Mapping[str, Any]]: ...

    async def upload_file(self, file_path: str, start_now: bool, leveling: bool) -> bool: ...

    async def print_local_file(self, file_name: str, leveling: bool) -> bool: ...

    async def get_gcode_thumbnail(self, file_name: str) -> bytes | None: ...

    async def dispose(self) -> None: ...


class ClientFactory(Protocol):
    """Builds vendor clients for an address."""

    def create_legacy(self, ip_address: str) -> LegacyClient: ...

    def create_modern(
        self, ip_address: str, serial_number: str, check_code: str
    ) -> ModernClient: ...


class RawEventSource(Protocol):
    """Anything that publishes raw client events to registered listeners."""

    def add_listener(self, listener: RawListener) -> None: ...

    def remove_listener(self, listener: RawListener) -> None: ...


class PrinterStore(Protocol):
    """Persisted key/value store for saved printer records."""

    def get(self, serial_number: str) -> SavedPrinterRecord | None: ...

    def get_last_used(self) -> SavedPrinterRecord | None: ...

    def set(self, record: SavedPrinterRecord) -> None: ...


class Discoverer(Protocol):
    """Scans the local network for printers."""

    async def discover(self) -> list[DiscoveredPrinter]: ...


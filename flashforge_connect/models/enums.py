"""FlashForge printer enums."""

from __future__ import annotations

from enum import Enum


class ClientType(Enum):
    """
    Wire protocol used for the primary client of a session.

    The stored values match what is persisted in saved printer records.
    """

    LEGACY = "legacy"
    MODERN = "new"

    @classmethod
    def from_value(cls, value: str | None) -> ClientType | None:
        """
        Convert a stored client type string to a ClientType member.

        Arguments:
            value: The persisted string, e.g. "legacy" or "new".

        Returns:
            The matching ClientType, or None if the value is missing or unknown.

        """
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class PrinterModelType(Enum):
    """
    Known printer families.

    Attributes:
        ADVENTURER_5M: Camera-less modern printer.
        ADVENTURER_5M_PRO: Modern printer with camera and filtration.
        AD5X: Modern printer with a multi-material station.
        GENERIC_LEGACY: Anything that only speaks the legacy protocol.

    Example:
        >>> PrinterModelType.from_type_name("Adventurer 5M Pro")
        <PrinterModelType.ADVENTURER_5M_PRO: 'adventurer-5m-pro'>

    """

    ADVENTURER_5M = "adventurer-5m"
    ADVENTURER_5M_PRO = "adventurer-5m-pro"
    AD5X = "ad5x"
    GENERIC_LEGACY = "generic-legacy"

    @classmethod
    def from_type_name(cls, type_name: str | None) -> PrinterModelType:
        """
        Classify a vendor type name into a model family.

        Arguments:
            type_name: The TypeName reported by the printer.

        Returns:
            The detected model type. Unknown or empty names are generic legacy.

        """
        if not type_name:
            return cls.GENERIC_LEGACY
        lowered = type_name.lower()
        if "5m pro" in lowered:
            return cls.ADVENTURER_5M_PRO
        if "5m" in lowered:
            return cls.ADVENTURER_5M
        if "ad5x" in lowered:
            return cls.AD5X
        return cls.GENERIC_LEGACY

    @property
    def display_name(self) -> str:
        """Return a human readable model name."""
        return _DISPLAY_NAMES[self]

    @property
    def supports_dual_api(self) -> bool:
        """Return True if the family speaks both protocols."""
        return self is not PrinterModelType.GENERIC_LEGACY


_DISPLAY_NAMES = {
    PrinterModelType.ADVENTURER_5M: "Adventurer 5M",
    PrinterModelType.ADVENTURER_5M_PRO: "Adventurer 5M Pro",
    PrinterModelType.AD5X: "AD5X",
    PrinterModelType.GENERIC_LEGACY: "Legacy Printer",
}


class MachineState(Enum):
    """Machine state as reported over the legacy protocol."""

    PRINTING = "Printing"
    COMPLETED = "Completed"
    PAUSED = "Paused"
    BUSY = "Busy"
    READY = "Ready"
    UNKNOWN = "Unknown"

    @classmethod
    def from_status(cls, status: str | None) -> MachineState:
        """
        Map a raw machine status string to a MachineState.

        Accepts the legacy endstop vocabulary (BUILDING_FROM_SD, PAUSED, ...)
        as well as the member values themselves. Anything unrecognised is
        UNKNOWN.
        """
        if not status:
            return cls.UNKNOWN
        normalized = status.strip().upper()
        match normalized:
            case "BUILDING_FROM_SD" | "PRINTING":
                return cls.PRINTING
            case "BUILDING_COMPLETED" | "COMPLETED":
                return cls.COMPLETED
            case "PAUSED":
                return cls.PAUSED
            case "BUSY":
                return cls.BUSY
            case "READY" | "IDLE":
                return cls.READY
            case _:
                return cls.UNKNOWN


class ConnectionState(Enum):
    """States of the connection flow."""

    IDLE = "idle"
    DISCOVERING = "discovering"
    TRYING_SAVED = "trying_saved"
    SELECTING = "selecting"
    AWAITING_PAIRING_CODE = "awaiting_pairing_code"
    PROBING = "probing"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class EventKind(Enum):
    """Closed vocabulary of normalized session events."""

    PRINTER_DATA = "printer-data"
    MACHINE_STATE_CHANGED = "machine-state-changed"
    BED_TEMPERATURE_CHANGED = "bed-temperature-changed"
    EXTRUDER_TEMPERATURE_CHANGED = "extruder-temperature-changed"
    COMMAND_RESPONSE = "command-response"
    LOG_MESSAGE = "log-message"
    UPLOAD_COMPLETED = "upload-completed"
    UPLOAD_FAILED = "upload-failed"
    CONNECTION_ERROR = "connection-error"
    PRINTER_ERROR = "printer-error"
    PRINTER_DISCONNECTED = "printer-disconnected"


class MaterialStationState(Enum):
    """Overall state of a material station."""

    READY = "ready"
    BUSY = "busy"
    DISCONNECTED = "disconnected"


class JobSource(Enum):
    """Origin of a job listing."""

    LOCAL = "local"
    RECENT = "recent"

"""Data models for FlashForge printers."""

from .enums import (
    ClientType,
    ConnectionState,
    EventKind,
    JobSource,
    MachineState,
    MaterialStationState,
    PrinterModelType,
)
from .features import FeatureSet
from .material_station import MaterialSlot, MaterialStationStatus, ToolRequirement
from .printer import DiscoveredPrinter, SavedPrinterRecord
from .results import (
    CommandResult,
    GCodeCommandResult,
    JobInfo,
    JobListResult,
    JobStartResult,
    PrinterStatus,
    StatusResult,
)

__all__ = [
    "ClientType",
    "CommandResult",
    "ConnectionState",
    "DiscoveredPrinter",
    "EventKind",
    "FeatureSet",
    "GCodeCommandResult",
    "JobInfo",
    "JobListResult",
    "JobSource",
    "JobStartResult",
    "MachineState",
    "MaterialSlot",
    "MaterialStationState",
    "MaterialStationStatus",
    "PrinterModelType",
    "PrinterStatus",
    "SavedPrinterRecord",
    "StatusResult",
    "ToolRequirement",
]

"""FlashForge printer connection layer."""

from .config import ConnectionOptions
from .const import DEBUG, LOGGER
from .discovery import PrinterDiscovery
from .exceptions import (
    ConnectionInitError,
    DiscoveryError,
    FlashForgeError,
    MaterialValidationError,
    PairingCancelled,
    PrinterNotConnectedError,
    ProtocolMismatchError,
    TransportError,
    UnsupportedOperationError,
)
from .session import ConnectionSession, PrinterConnectionManager
from .store import MemoryPrinterStore

__all__ = [
    "DEBUG",
    "LOGGER",
    "ConnectionInitError",
    "ConnectionOptions",
    "ConnectionSession",
    "DiscoveryError",
    "FlashForgeError",
    "MaterialValidationError",
    "MemoryPrinterStore",
    "PairingCancelled",
    "PrinterConnectionManager",
    "PrinterDiscovery",
    "PrinterNotConnectedError",
    "ProtocolMismatchError",
    "TransportError",
    "UnsupportedOperationError",
]

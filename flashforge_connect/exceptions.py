"""Custom exceptions for the FlashForge connection layer."""


class FlashForgeError(Exception):
    """Base class for other exceptions"""

    pass


class DiscoveryError(FlashForgeError):
    """Exception raised when a network scan fails."""


class PairingCancelled(FlashForgeError):
    """Exception raised when the user declines to provide a pairing code."""


class ConnectionInitError(FlashForgeError):
    """Exception raised when a client could not be constructed or initialized."""

    def __init__(self, message: str, ip_address: str = "", serial_number: str = "") -> None:
        """Store the address and serial that failed alongside the message."""
        super().__init__(message)
        self.ip_address = ip_address
        self.serial_number = serial_number


class TransportError(FlashForgeError):
    """Exception to indicate a socket-level fault on an established session."""


class UnsupportedOperationError(FlashForgeError):
    """Exception raised when an operation is absent on this model or protocol."""


class ProtocolMismatchError(FlashForgeError):
    """Exception raised when model detection disagrees with a saved protocol."""


class PrinterNotConnectedError(FlashForgeError):
    """Exception to indicate that no printer session is active."""


class MaterialValidationError(FlashForgeError):
    """Exception raised for an invalid tool to slot material mapping."""

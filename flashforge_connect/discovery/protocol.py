"""UDP protocol handler that collects discovery replies."""

from __future__ import annotations

import asyncio
from typing import Any

from flashforge_connect.const import (
    DISCOVERY_FIELD_LENGTH,
    DISCOVERY_NAME_OFFSET,
    DISCOVERY_RESPONSE_MIN_LENGTH,
    DISCOVERY_SERIAL_OFFSET,
    LOGGER,
)
from flashforge_connect.models.printer import DiscoveredPrinter


def _read_field(data: bytes, offset: int) -> str:
    raw = data[offset : offset + DISCOVERY_FIELD_LENGTH]
    return raw.split(b"\x00", 1)[0].decode("ascii", errors="ignore").strip()


def parse_discovery_response(data: bytes, ip_address: str) -> DiscoveredPrinter | None:
    """
    Parse one discovery reply.

    Arguments:
        data: The datagram payload.
        ip_address: The address the datagram came from.

    Returns:
        The printer described by the reply, or None if the reply is too short
        to be a printer announcement.

    """
    if len(data) < DISCOVERY_RESPONSE_MIN_LENGTH:
        return None
    name = _read_field(data, DISCOVERY_NAME_OFFSET)
    serial_number = _read_field(data, DISCOVERY_SERIAL_OFFSET)
    return DiscoveredPrinter(
        name=name or f"Printer at {ip_address}",
        ip_address=ip_address,
        serial_number=serial_number,
    )


class DiscoveryProtocol(asyncio.DatagramProtocol):
    """
    Datagram handler for one scan.

    Every reply from a printer not seen before is stored in ``printers`` and
    pushed onto ``arrivals`` so the scanner can track idle time.
    """

    def __init__(self, logger: Any = LOGGER) -> None:
        """Initialize the discovery protocol."""
        self.logger = logger
        self.transport: asyncio.DatagramTransport | None = None
        self.printers: dict[str, DiscoveredPrinter] = {}
        self.arrivals: asyncio.Queue[DiscoveredPrinter] = asyncio.Queue()
        self.error: OSError | None = None

    def connection_made(self, transport: asyncio.DatagramTransport) -> None:  # type: ignore[override]
        """Handle UDP transport ready event."""
        self.transport = transport

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        """Record a printer announcement."""
        printer = parse_discovery_response(data, addr[0])
        if printer is None:
            self.logger.debug("Ignoring %d byte datagram from %s", len(data), addr[0])
            return

        key = printer.serial_number or printer.ip_address
        if key in self.printers:
            self.logger.debug("Skipping duplicate response from %s (SN: %s)", addr[0], key)
            return

        self.printers[key] = printer
        self.arrivals.put_nowait(printer)
        self.logger.debug(
            "Discovered printer: %s (%s) at %s",
            printer.name,
            printer.serial_number,
            printer.ip_address,
        )

    def error_received(self, exc: Exception) -> None:
        """Remember socket errors reported during the scan."""
        self.logger.warning("Discovery socket error: %s", exc)
        if isinstance(exc, OSError):
            self.error = exc

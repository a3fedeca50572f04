"""The live result of a successful connect."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from flashforge_connect.backends.dual import DualProtocolBackend
    from flashforge_connect.clients import LegacyClient, ModernClient
    from flashforge_connect.models.enums import ClientType, PrinterModelType
    from flashforge_connect.models.features import FeatureSet

    from .adapter import PrinterClientAdapter


@dataclass
class ConnectionSession:
    """
    Handles and identity of the connected printer.

    Only the connection manager creates and destroys sessions. Everything
    else receives the session as an opaque handle.
    """

    adapter: PrinterClientAdapter
    backend: DualProtocolBackend
    legacy_client: LegacyClient
    modern_client: ModernClient | None
    features: FeatureSet
    printer_name: str
    serial_number: str
    ip_address: str
    client_type: ClientType
    model_type: PrinterModelType
    firmware: str | None = None
    printer_info: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_legacy(self) -> bool:
        """Return True when the session runs without the modern client."""
        return self.modern_client is None

    @property
    def is_connected(self) -> bool:
        """Return True until the session is disposed."""
        return self.adapter.is_connected

    async def dispose(self) -> None:
        """Log out and release the vendor clients."""
        await self.adapter.dispose()

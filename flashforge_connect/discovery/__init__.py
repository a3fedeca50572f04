"""
Local network discovery for FlashForge printers.

A probe datagram is broadcast on the discovery port and every printer on the
segment answers with a fixed-layout reply carrying its name and serial.
"""

from .protocol import DiscoveryProtocol, parse_discovery_response
from .scanner import PrinterDiscovery

__all__ = ["DiscoveryProtocol", "PrinterDiscovery", "parse_discovery_response"]

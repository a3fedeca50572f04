"""Fixtures shared by the session tests."""

from unittest.mock import AsyncMock

import pytest

from flashforge_connect.config import ConnectionOptions
from flashforge_connect.store import MemoryPrinterStore

PRINTER_INFO = {
    "10.0.0.5": {
        "TypeName": "Flashforge Adventurer 5M",
        "Name": "Workshop 5M",
        "SerialNumber": "SN1",
        "FirmwareVersion": "2.7.5",
        "MachineStatus": "READY",
    },
    "10.0.0.9": {
        "TypeName": "Flashforge Adventurer 5M",
        "Name": "Workshop 5M",
        "SerialNumber": "SN1",
        "FirmwareVersion": "2.7.5",
        "MachineStatus": "READY",
    },
    "10.0.0.20": {
        "TypeName": "Flashforge Adventurer 3",
        "Name": "Old Faithful",
        "SerialNumber": "SN3",
        "FirmwareVersion": "1.2.1",
        "MachineStatus": "READY",
    },
}


def make_legacy_client(ip_address: str) -> AsyncMock:
    """Create a legacy client mock answering with the info for an address."""
    client = AsyncMock()
    client.ip_address = ip_address
    info = PRINTER_INFO.get(ip_address)
    client.init_control.return_value = info is not None
    client.get_printer_info.return_value = info
    client.send_raw_cmd.return_value = "ok"
    client.upload_file.return_value = True
    client.get_thumbnail.return_value = b"\x89PNG"
    return client


def make_modern_client(ip_address: str, serial_number: str, check_code: str) -> AsyncMock:
    """Create a modern client mock for an idle 5M."""
    client = AsyncMock()
    client.ip_address = ip_address
    client.serial_number = serial_number
    client.check_code = check_code
    client.product_info = {"lightCtrlState": 1}
    client.initialize.return_value = True
    client.init_control.return_value = True
    client.send_product_command.return_value = True
    client.get_status.return_value = "ready"
    client.get_machine_info.return_value = {
        "PrintBed": {"current": 25.0, "set": 0},
        "Extruder": {"current": 30.0, "set": 0},
    }
    client.upload_file.return_value = True
    return client


class FakeClientFactory:
    """Client factory that records every client it hands out."""

    def __init__(self) -> None:
        """Initialize the factory."""
        self.legacy_clients: list[AsyncMock] = []
        self.modern_clients: list[AsyncMock] = []

    def create_legacy(self, ip_address: str) -> AsyncMock:
        """Create a legacy client."""
        client = make_legacy_client(ip_address)
        self.legacy_clients.append(client)
        return client

    def create_modern(
        self, ip_address: str, serial_number: str, check_code: str
    ) -> AsyncMock:
        """Create a modern client."""
        client = make_modern_client(ip_address, serial_number, check_code)
        self.modern_clients.append(client)
        return client


@pytest.fixture
def client_factory() -> FakeClientFactory:
    """Create a recording client factory."""
    return FakeClientFactory()


@pytest.fixture
def store() -> MemoryPrinterStore:
    """Create an empty printer store."""
    return MemoryPrinterStore()


@pytest.fixture
def options() -> ConnectionOptions:
    """Create options without settle delay and with fast polling."""
    return ConnectionOptions(settle_delay=0, poll_interval=0.01)


@pytest.fixture
def legacy_client() -> AsyncMock:
    """Create a legacy client for the 5M at 10.0.0.5."""
    return make_legacy_client("10.0.0.5")


@pytest.fixture
def modern_client() -> AsyncMock:
    """Create a modern client for the 5M at 10.0.0.5."""
    return make_modern_client("10.0.0.5", "SN1", "abc")

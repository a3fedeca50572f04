"""Printer records: what is saved between runs and what discovery returns."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from flashforge_connect.const import (
    CONF_CHECK_CODE,
    CONF_CLIENT_TYPE,
    CONF_IP,
    CONF_LAST_CONNECTED,
    CONF_NAME,
    CONF_PRINTER_MODEL,
    CONF_SERIAL,
    DEFAULT_CHECK_CODE,
)

from .enums import ClientType, PrinterModelType


@dataclass
class SavedPrinterRecord:
    """
    A printer the user connected to successfully before.

    The record is persisted by an external store. It is only rewritten after
    a successful connect, and an empty pairing code never replaces a stored
    one.
    """

    name: str
    ip_address: str
    serial_number: str
    check_code: str = DEFAULT_CHECK_CODE
    client_type: ClientType | None = None
    printer_model: str | None = None
    last_connected: str | None = None

    @property
    def model_type(self) -> PrinterModelType:
        """Return the model family implied by the saved type name."""
        return PrinterModelType.from_type_name(self.printer_model)

    def merged_with(self, newer: SavedPrinterRecord) -> SavedPrinterRecord:
        """
        Return ``newer`` with blank fields filled from this record.

        A blank or default check code in ``newer`` keeps the stored code.
        """
        check_code = newer.check_code
        if not check_code or (
            check_code == DEFAULT_CHECK_CODE and self.check_code != DEFAULT_CHECK_CODE
        ):
            check_code = self.check_code
        return SavedPrinterRecord(
            name=newer.name or self.name,
            ip_address=newer.ip_address or self.ip_address,
            serial_number=newer.serial_number or self.serial_number,
            check_code=check_code,
            client_type=newer.client_type,
            printer_model=newer.printer_model or self.printer_model,
            last_connected=newer.last_connected or self.last_connected,
        )

    def touch(self) -> None:
        """Stamp the record with the current time."""
        self.last_connected = datetime.now(UTC).isoformat()

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON serializable representation of the record."""
        data: dict[str, Any] = {
            CONF_NAME: self.name,
            CONF_IP: self.ip_address,
            CONF_SERIAL: self.serial_number,
            CONF_CHECK_CODE: self.check_code,
        }
        if self.client_type is not None:
            data[CONF_CLIENT_TYPE] = self.client_type.value
        if self.printer_model:
            data[CONF_PRINTER_MODEL] = self.printer_model
        if self.last_connected:
            data[CONF_LAST_CONNECTED] = self.last_connected
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SavedPrinterRecord:
        """
        Build a record from its stored form.

        Raises:
            vol.Invalid: If the stored data does not validate.

        """
        # Local import to avoid circular dependency
        from flashforge_connect.config import SAVED_PRINTER_SCHEMA  # noqa: PLC0415

        validated = SAVED_PRINTER_SCHEMA(dict(data))
        return cls(
            name=validated[CONF_NAME],
            ip_address=validated[CONF_IP],
            serial_number=validated[CONF_SERIAL],
            check_code=validated[CONF_CHECK_CODE],
            client_type=ClientType.from_value(validated.get(CONF_CLIENT_TYPE)),
            printer_model=validated.get(CONF_PRINTER_MODEL),
            last_connected=validated.get(CONF_LAST_CONNECTED),
        )


@dataclass(frozen=True)
class DiscoveredPrinter:
    """A printer that answered the most recent network scan."""

    name: str
    ip_address: str
    serial_number: str = ""
    model: str | None = None
    status: str | None = None

    def __str__(self) -> str:
        """Return a short label for selection lists."""
        serial = f" [{self.serial_number}]" if self.serial_number else ""
        return f"{self.name} ({self.ip_address}){serial}"

"""In-memory saved printer store."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models.printer import SavedPrinterRecord


class MemoryPrinterStore:
    """
    Saved printer records keyed by serial number.

    Applications persist records themselves; this store is what they load
    them into at start-up and read back from when saving.
    """

    def __init__(self, records: list[SavedPrinterRecord] | None = None) -> None:
        """Initialize the store, optionally pre-populated."""
        self._records: dict[str, SavedPrinterRecord] = {}
        self._last_used: str | None = None
        for record in records or []:
            self.set(record)

    def get(self, serial_number: str) -> SavedPrinterRecord | None:
        """Return the record for a serial number, if any."""
        return self._records.get(serial_number)

    def get_last_used(self) -> SavedPrinterRecord | None:
        """Return the most recently saved or connected record."""
        if not self._records:
            return None
        stamped = [r for r in self._records.values() if r.last_connected]
        if stamped:
            return max(stamped, key=lambda record: record.last_connected or "")
        return self._records.get(self._last_used or "")

    def set(self, record: SavedPrinterRecord) -> None:
        """Insert or replace a record."""
        self._records[record.serial_number] = record
        self._last_used = record.serial_number

    def remove(self, serial_number: str) -> None:
        """Forget a saved printer."""
        self._records.pop(serial_number, None)
        if self._last_used == serial_number:
            self._last_used = None

    def all(self) -> list[SavedPrinterRecord]:
        """Return every saved record."""
        return list(self._records.values())

    def __len__(self) -> int:
        """Return the number of saved printers."""
        return len(self._records)

"""Result envelopes returned across the session boundary."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .enums import JobSource


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class CommandResult:
    """
    Outcome of a printer operation.

    ``cause`` keeps the exception behind a failure so it can be classified.
    """

    success: bool
    data: Any = None
    error: str | None = None
    timestamp: datetime = field(default_factory=_now)
    cause: BaseException | None = field(default=None, repr=False, compare=False)


@dataclass
class GCodeCommandResult:
    """Outcome of a raw command sent over the legacy protocol."""

    success: bool
    command: str
    response: str | None = None
    error: str | None = None
    execution_time: float = 0.0
    timestamp: datetime = field(default_factory=_now)
    cause: BaseException | None = field(default=None, repr=False, compare=False)


@dataclass
class PrinterStatus:
    """
    Normalized status snapshot.

    Temperatures are in degrees Celsius, progress is a percentage and
    estimated/remaining times are in minutes. ``extra`` carries fields only
    some families report, e.g. filtration fan state.
    """

    printer_state: str = "unknown"
    bed_temperature: float = 0.0
    bed_target_temperature: float = 0.0
    nozzle_temperature: float = 0.0
    nozzle_target_temperature: float = 0.0
    progress: float = 0.0
    current_job: str | None = None
    estimated_time: int | None = None
    remaining_time: int | None = None
    print_duration: float = 0.0
    current_layer: int | None = None
    total_layers: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def zeroed(cls) -> PrinterStatus:
        """Return the placeholder used when no status could be read."""
        return cls(printer_state="error")


@dataclass
class StatusResult:
    """Status query outcome. ``status`` is always populated."""

    success: bool
    status: PrinterStatus = field(default_factory=PrinterStatus.zeroed)
    error: str | None = None
    timestamp: datetime = field(default_factory=_now)
    cause: BaseException | None = field(default=None, repr=False, compare=False)


@dataclass
class JobInfo:
    """A print job known to the printer."""

    file_name: str
    printing_time: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class JobListResult:
    """Outcome of a job listing query."""

    success: bool
    source: JobSource
    jobs: list[JobInfo] = field(default_factory=list)
    error: str | None = None
    timestamp: datetime = field(default_factory=_now)

    @property
    def total_count(self) -> int:
        """Return the number of jobs listed."""
        return len(self.jobs)


@dataclass
class JobStartResult:
    """Outcome of a job start or upload."""

    success: bool
    file_name: str
    started: bool = False
    error: str | None = None
    timestamp: datetime = field(default_factory=_now)

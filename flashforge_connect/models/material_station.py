"""Material station models."""

from __future__ import annotations

from dataclasses import dataclass, field

from flashforge_connect.exceptions import MaterialValidationError

from .enums import MaterialStationState


@dataclass(frozen=True)
class MaterialSlot:
    """
    One filament slot.

    ``slot_id`` is 0-based. Material name and color are None for empty slots.
    """

    slot_id: int
    material_name: str | None = None
    material_color: str | None = None

    @property
    def is_empty(self) -> bool:
        """Return True if no filament is loaded."""
        return self.material_name is None


@dataclass(frozen=True)
class MaterialStationStatus:
    """Derived state of a material station, rebuilt from every telemetry read."""

    connected: bool
    slots: tuple[MaterialSlot, ...] = ()
    active_slot: int | None = None
    overall_status: MaterialStationState = MaterialStationState.DISCONNECTED
    error_message: str | None = None

    @classmethod
    def empty(cls) -> MaterialStationStatus:
        """Return the status reported when no station data is available."""
        return cls(
            connected=False,
            error_message="Material station not available",
        )


@dataclass(frozen=True)
class ToolRequirement:
    """Material a sliced job expects on one tool head."""

    tool_id: int
    material_name: str
    material_color: str


@dataclass(frozen=True)
class RawSlotInfo:
    """A slot exactly as reported by the printer (``slot_id`` is 1-based)."""

    slot_id: int
    has_filament: bool
    material_name: str = ""
    material_color: str = ""


@dataclass
class MappingValidation:
    """Result of checking a tool to slot mapping."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def raise_for_errors(self) -> None:
        """
        Raise if the mapping cannot be used.

        Raises:
            MaterialValidationError: With every error joined into the message.

        """
        if not self.valid:
            msg = "; ".join(self.errors)
            raise MaterialValidationError(msg)

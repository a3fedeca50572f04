"""
AD5X material station support.

The AD5X reports its four-slot material station inside the machine info
block. Everything here is derived from the latest cached telemetry and is
rebuilt on every read.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from flashforge_connect.const import LOGGER
from flashforge_connect.models.enums import JobSource, MaterialStationState
from flashforge_connect.models.material_station import (
    MappingValidation,
    MaterialSlot,
    MaterialStationStatus,
    RawSlotInfo,
    ToolRequirement,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from flashforge_connect.models.results import JobInfo

    from .dual import DualProtocolBackend

MACHINE_INFO_KEY = "machine_info"
_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


def is_valid_tool_id(tool_id: int) -> bool:
    """Return True for tool IDs 0 to 3."""
    return 0 <= tool_id <= 3  # noqa: PLR2004


def is_valid_slot_id(slot_id: int) -> bool:
    """Return True for slot IDs 1 to 4. Slots are 1-based on the wire."""
    return 1 <= slot_id <= 4  # noqa: PLR2004


def is_valid_material_color(color: str) -> bool:
    """Return True for colors in #RRGGBB form."""
    return bool(color) and _COLOR_PATTERN.match(color) is not None


def tool_display_name(tool_id: int) -> str:
    """Return the 1-based label for a tool."""
    return f"Tool {tool_id + 1}"


def slot_display_name(slot_id: int) -> str:
    """Return the 1-based label for a 0-based slot."""
    return f"Slot {slot_id + 1}"


def validate_material_compatibility(tool: ToolRequirement, slot: RawSlotInfo) -> bool:
    """
    Return True if a slot can feed a tool.

    The slot must hold filament and its material name must equal the tool's
    exactly. Colors are not considered.
    """
    if not slot.has_filament:
        return False
    return tool.material_name == slot.material_name


def has_color_difference(tool_color: str, slot_color: str | None) -> bool:
    """Return True if the colors differ, ignoring case."""
    if not slot_color:
        return False
    return tool_color.lower() != slot_color.lower()


def material_mismatch_message(
    tool_id: int, tool_material: str, slot_id: int, slot_material: str | None
) -> str:
    """Describe a material mismatch. ``slot_id`` is 1-based."""
    return (
        f"Material type mismatch: {tool_display_name(tool_id)} requires "
        f"{tool_material}, but {slot_display_name(slot_id - 1)} contains "
        f"{slot_material or 'no material'}"
    )


def color_difference_message(
    tool_id: int, tool_color: str, slot_id: int, slot_color: str
) -> str:
    """Describe a color difference. ``slot_id`` is 1-based."""
    return (
        f"Color difference detected: {tool_display_name(tool_id)} expects "
        f"{tool_color} but {slot_display_name(slot_id - 1)} has {slot_color}. "
        "This is allowed but may affect print appearance."
    )


def parse_slot_infos(station_info: Mapping[str, Any]) -> list[RawSlotInfo]:
    """Read the raw slot list of a MatlStationInfo block."""
    slots = []
    for index, slot in enumerate(station_info.get("slotInfos") or []):
        slots.append(
            RawSlotInfo(
                slot_id=int(slot.get("slotId", index + 1)),
                has_filament=bool(slot.get("hasFilament")),
                material_name=slot.get("materialName") or "",
                material_color=slot.get("materialColor") or "",
            )
        )
    return slots


def _overall_status(station_info: Mapping[str, Any]) -> MaterialStationState:
    action = station_info.get("stateAction", 0) or 0
    step = station_info.get("stateStep", 0) or 0
    if action == 0 and step == 0:
        return MaterialStationState.READY
    if action > 0:
        return MaterialStationState.BUSY
    return MaterialStationState.READY


def transform_material_station(station_info: Mapping[str, Any]) -> MaterialStationStatus:
    """Convert a MatlStationInfo block into a MaterialStationStatus."""
    slots = tuple(
        MaterialSlot(
            slot_id=index,
            material_name=slot.get("materialName") if slot.get("hasFilament") else None,
            material_color=slot.get("materialColor") if slot.get("hasFilament") else None,
        )
        for index, slot in enumerate(station_info["slotInfos"])
    )
    return MaterialStationStatus(
        connected=True,
        slots=slots,
        active_slot=station_info.get("currentSlot"),
        overall_status=_overall_status(station_info),
    )


def extract_material_station_status(
    machine_info: Mapping[str, Any] | None,
) -> MaterialStationStatus | None:
    """
    Derive material station state from a machine info block.

    Returns:
        None when the block carries no station data, the empty status when
        the data cannot be read, otherwise the derived status.

    """
    if not isinstance(machine_info, Mapping):
        return None
    station_info = machine_info.get("MatlStationInfo")
    if not isinstance(station_info, Mapping) or not isinstance(
        station_info.get("slotInfos"), list
    ):
        return None
    try:
        return transform_material_station(station_info)
    except (AttributeError, KeyError, TypeError) as err:
        LOGGER.error("Error extracting material station status: %s", err)
        return MaterialStationStatus.empty()


def validate_material_mappings(
    tools: Sequence[ToolRequirement],
    slots: Sequence[RawSlotInfo],
    mappings: Iterable[tuple[int, int]],
) -> MappingValidation:
    """
    Check a set of (tool_id, slot_id) assignments for a multi-color job.

    Material mismatches and out-of-range IDs are errors. A color difference
    on a compatible slot is only a warning.
    """
    tools_by_id = {tool.tool_id: tool for tool in tools}
    slots_by_id = {slot.slot_id: slot for slot in slots}
    result = MappingValidation(valid=True)

    for tool_id, slot_id in mappings:
        if not is_valid_tool_id(tool_id):
            result.errors.append(f"Invalid tool ID: {tool_id}")
            continue
        if not is_valid_slot_id(slot_id):
            result.errors.append(f"Invalid slot ID: {slot_id}")
            continue
        tool = tools_by_id.get(tool_id)
        if tool is None:
            result.errors.append(f"{tool_display_name(tool_id)} is not used by this job")
            continue

        slot = slots_by_id.get(slot_id, RawSlotInfo(slot_id=slot_id, has_filament=False))
        if not validate_material_compatibility(tool, slot):
            result.errors.append(
                material_mismatch_message(
                    tool_id,
                    tool.material_name,
                    slot_id,
                    slot.material_name if slot.has_filament else None,
                )
            )
            continue
        if has_color_difference(tool.material_color, slot.material_color):
            result.warnings.append(
                color_difference_message(
                    tool_id, tool.material_color, slot_id, slot.material_color
                )
            )

    result.valid = not result.errors
    return result


def parse_tool_requirements(raw_tools: Iterable[Mapping[str, Any]]) -> list[ToolRequirement]:
    """Read tool data of a sliced file listing."""
    return [
        ToolRequirement(
            tool_id=int(tool.get("toolId", 0)),
            material_name=tool.get("materialName", ""),
            material_color=tool.get("materialColor", ""),
        )
        for tool in raw_tools
    ]


def process_machine_info(
    backend: DualProtocolBackend, machine_info: Mapping[str, Any] | None
) -> None:
    """Cache the latest machine info for material station queries."""
    backend.telemetry[MACHINE_INFO_KEY] = machine_info


def material_station_status(backend: DualProtocolBackend) -> MaterialStationStatus:
    """Return station state from cached telemetry, or the empty status."""
    status = extract_material_station_status(backend.telemetry.get(MACHINE_INFO_KEY))
    return status or MaterialStationStatus.empty()


def transform_job_list(jobs: list[JobInfo], source: JobSource) -> list[JobInfo]:
    """Attach tool requirements to recent jobs sliced for several materials."""
    if source is not JobSource.RECENT:
        return jobs
    for job in jobs:
        tools = parse_tool_requirements(job.metadata.get("gcodeToolDatas") or [])
        job.metadata["tools"] = tools
        job.metadata["is_multi_color"] = len(tools) > 0
        job.metadata["use_material_station"] = bool(job.metadata.get("useMatlStation"))
    return jobs

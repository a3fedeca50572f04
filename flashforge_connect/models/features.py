"""Capability snapshot computed once per session."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CameraFeature:
    """Camera availability."""

    builtin: bool = False
    custom_url: str | None = None
    custom_enabled: bool = False


@dataclass(frozen=True)
class LedControlFeature:
    """LED control availability."""

    builtin: bool = False
    custom_control_enabled: bool = False
    uses_legacy_api: bool = True


@dataclass(frozen=True)
class FiltrationFeature:
    """Air filtration availability."""

    available: bool = False
    controllable: bool = False
    reason: str = "Hardware does not support filtration control"


@dataclass(frozen=True)
class GCodeFeature:
    """Raw command support."""

    available: bool = True
    uses_legacy_api: bool = True
    supported_commands: tuple[str, ...] = ()

    def supports(self, command: str) -> bool:
        """Return True if the command's leading word is whitelisted."""
        word = command.strip().lstrip("~").split(" ", 1)[0].upper()
        return word in self.supported_commands


@dataclass(frozen=True)
class StatusMonitoringFeature:
    """Status query paths."""

    available: bool = True
    uses_new_api: bool = False
    uses_legacy_api: bool = True
    real_time_updates: bool = False


@dataclass(frozen=True)
class JobManagementFeature:
    """Job listing and control capabilities."""

    local_jobs: bool = False
    recent_jobs: bool = False
    upload_jobs: bool = False
    start_jobs: bool = False
    pause_resume: bool = True
    cancel_jobs: bool = True
    uses_new_api: bool = False


@dataclass(frozen=True)
class MaterialStationFeature:
    """Material station capabilities."""

    available: bool = False
    slot_count: int = 0
    per_slot_info: bool = False
    material_detection: bool = False


@dataclass(frozen=True)
class FeatureSet:
    """
    Everything a session can do.

    Built from a model template, then layered with the product query result.
    Instances are frozen: use ``dataclasses.replace`` to derive a new one.
    """

    camera: CameraFeature = field(default_factory=CameraFeature)
    led_control: LedControlFeature = field(default_factory=LedControlFeature)
    filtration: FiltrationFeature = field(default_factory=FiltrationFeature)
    gcode_commands: GCodeFeature = field(default_factory=GCodeFeature)
    status_monitoring: StatusMonitoringFeature = field(
        default_factory=StatusMonitoringFeature
    )
    job_management: JobManagementFeature = field(default_factory=JobManagementFeature)
    material_station: MaterialStationFeature = field(
        default_factory=MaterialStationFeature
    )

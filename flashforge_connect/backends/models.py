"""Profiles of the known printer families."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flashforge_connect.const import LEGACY_GCODE_WHITELIST, MODERN_GCODE_WHITELIST
from flashforge_connect.models.enums import PrinterModelType
from flashforge_connect.models.features import (
    CameraFeature,
    FeatureSet,
    FiltrationFeature,
    GCodeFeature,
    JobManagementFeature,
    LedControlFeature,
    MaterialStationFeature,
    StatusMonitoringFeature,
)

from . import ad5x
from .profile import ModelProfile

if TYPE_CHECKING:
    from collections.abc import Mapping

_MODERN_GCODE = GCodeFeature(supported_commands=MODERN_GCODE_WHITELIST)
_MODERN_STATUS = StatusMonitoringFeature(
    uses_new_api=True, uses_legacy_api=True, real_time_updates=True
)
_MODERN_JOBS = JobManagementFeature(
    local_jobs=True,
    recent_jobs=True,
    upload_jobs=True,
    start_jobs=True,
    uses_new_api=True,
)


def pro_status_fields(machine_info: Mapping[str, Any] | None) -> dict[str, Any]:
    """Report filtration fan state so the filtration mode can be shown."""
    info = machine_info or {}
    return {
        "external_fan_on": bool(info.get("ExternalFanOn", False)),
        "internal_fan_on": bool(info.get("InternalFanOn", False)),
    }


ADVENTURER_5M = ModelProfile(
    model_type=PrinterModelType.ADVENTURER_5M,
    features=FeatureSet(
        gcode_commands=_MODERN_GCODE,
        status_monitoring=_MODERN_STATUS,
        job_management=_MODERN_JOBS,
    ),
)

ADVENTURER_5M_PRO = ModelProfile(
    model_type=PrinterModelType.ADVENTURER_5M_PRO,
    features=FeatureSet(
        camera=CameraFeature(builtin=True),
        led_control=LedControlFeature(builtin=True),
        filtration=FiltrationFeature(
            available=True,
            controllable=True,
            reason="Hardware supports filtration control",
        ),
        gcode_commands=_MODERN_GCODE,
        status_monitoring=_MODERN_STATUS,
        job_management=_MODERN_JOBS,
    ),
    additional_status_fields=pro_status_fields,
)

# LED control on the AD5X is only available through custom LED commands
AD5X = ModelProfile(
    model_type=PrinterModelType.AD5X,
    features=FeatureSet(
        gcode_commands=_MODERN_GCODE,
        status_monitoring=_MODERN_STATUS,
        job_management=_MODERN_JOBS,
        material_station=MaterialStationFeature(
            available=True, slot_count=4, per_slot_info=True, material_detection=True
        ),
    ),
    detect_led_from_product=False,
    process_machine_info=ad5x.process_machine_info,
    transform_job_list=ad5x.transform_job_list,
    material_station=ad5x.material_station_status,
)

GENERIC_LEGACY = ModelProfile(
    model_type=PrinterModelType.GENERIC_LEGACY,
    features=FeatureSet(
        gcode_commands=GCodeFeature(supported_commands=LEGACY_GCODE_WHITELIST),
    ),
    requires_modern=False,
    detect_led_from_product=False,
)

PROFILES = {
    profile.model_type: profile
    for profile in (ADVENTURER_5M, ADVENTURER_5M_PRO, AD5X, GENERIC_LEGACY)
}


def profile_for_model(model_type: PrinterModelType, legacy_only: bool = False) -> ModelProfile:
    """
    Return the profile for a model family.

    Arguments:
        model_type: The detected family.
        legacy_only: True when the session runs without the modern client,
            e.g. because legacy mode is forced. The generic legacy profile is
            returned in that case.

    """
    if legacy_only:
        return GENERIC_LEGACY
    return PROFILES[model_type]

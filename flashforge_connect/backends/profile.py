"""Per-family capability description consumed by the dual-protocol backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from flashforge_connect.models.enums import JobSource, PrinterModelType
    from flashforge_connect.models.features import FeatureSet
    from flashforge_connect.models.material_station import MaterialStationStatus
    from flashforge_connect.models.results import JobInfo

    from .dual import DualProtocolBackend

    StatusFieldsHook = Callable[[Mapping[str, Any] | None], dict[str, Any]]
    MachineInfoHook = Callable[[DualProtocolBackend, Mapping[str, Any] | None], None]
    JobListHook = Callable[[list[JobInfo], JobSource], list[JobInfo]]
    MaterialStationHook = Callable[[DualProtocolBackend], MaterialStationStatus | None]


@dataclass(frozen=True)
class ModelProfile:
    """
    Static description of a printer family.

    Arguments:
        model_type: The family this profile describes.
        features: Feature template before the product query is layered on.
        requires_modern: True if the modern client must be present.
        detect_led_from_product: If False the template's LED flag is kept
            even when the product query reports a light controller.
        additional_status_fields: Extra telemetry merged into status.
        process_machine_info: Called with every machine info read.
        transform_job_list: Reshapes job listings.
        material_station: Derives material station state from cached
            telemetry.

    """

    model_type: PrinterModelType
    features: FeatureSet
    requires_modern: bool = True
    detect_led_from_product: bool = True
    additional_status_fields: StatusFieldsHook | None = None
    process_machine_info: MachineInfoHook | None = None
    transform_job_list: JobListHook | None = None
    material_station: MaterialStationHook | None = None

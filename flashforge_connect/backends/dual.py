"""
Dual-protocol execution strategy.

Operations prefer the modern client and fall back to the legacy client per
call. Raw commands always travel over the legacy client because the modern
protocol has no raw-command surface.
"""

from __future__ import annotations

import base64
import re
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from flashforge_connect.config import ConnectionOptions
from flashforge_connect.const import (
    CMD_CANCEL,
    CMD_LED_OFF,
    CMD_LED_ON,
    CMD_PAUSE,
    CMD_RESUME,
    LOGGER,
)
from flashforge_connect.exceptions import (
    ConnectionInitError,
    FlashForgeError,
    UnsupportedOperationError,
)
from flashforge_connect.models.enums import JobSource
from flashforge_connect.models.features import FeatureSet, FiltrationFeature
from flashforge_connect.models.results import (
    CommandResult,
    GCodeCommandResult,
    JobInfo,
    JobListResult,
    JobStartResult,
    PrinterStatus,
    StatusResult,
)
from flashforge_connect.utils import calculate_remaining_seconds

if TYPE_CHECKING:
    from collections.abc import Mapping

    from flashforge_connect.clients import LegacyClient, ModernClient
    from flashforge_connect.models.enums import PrinterModelType
    from flashforge_connect.models.material_station import MaterialStationStatus

    from .profile import ModelProfile

_FLOAT_PREFIX = re.compile(r"^\s*[-+]?(\d+\.?\d*|\.\d+)")
_INT_PREFIX = re.compile(r"^\s*[-+]?\d+")


def _first(info: Mapping[str, Any], *keys: str) -> Any:
    """Return the first truthy value among ``keys``."""
    for key in keys:
        value = info.get(key)
        if value:
            return value
    return None


def parse_float(value: Any) -> float:
    """Parse the leading number of a value that may arrive as a string."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, int | float):
        return float(value)
    match = _FLOAT_PREFIX.match(str(value or ""))
    return float(match.group(0)) if match else 0.0


def parse_int(value: Any) -> int | None:
    """Parse the leading integer of a value, or None if there is none."""
    if not value:
        return None
    if isinstance(value, int | float):
        return int(value)
    match = _INT_PREFIX.match(str(value))
    return int(match.group(0)) if match else None


def _error_text(err: BaseException) -> str:
    return str(err) or err.__class__.__name__


class DualProtocolBackend:
    """
    Uniform operation surface over a modern and a legacy client.

    The feature set is computed once by ``initialize`` and never refreshed
    during the session.
    """

    def __init__(
        self,
        profile: ModelProfile,
        legacy_client: LegacyClient,
        modern_client: ModernClient | None = None,
        options: ConnectionOptions | None = None,
        logger: Any = LOGGER,
    ) -> None:
        """
        Initialize a DualProtocolBackend.

        Arguments:
            profile: Family description supplying templates and hooks.
            legacy_client: Connected legacy client. Always required.
            modern_client: Connected modern client, None for legacy sessions.
            options: Connection options (custom LED handling).
            logger: The logger to use.

        """
        self.profile = profile
        self.legacy_client = legacy_client
        self.modern_client = modern_client
        self.options = options or ConnectionOptions()
        self.logger = logger
        self.product_info: Mapping[str, Any] | None = None
        self.telemetry: dict[str, Any] = {}
        self._features: FeatureSet | None = None

    @property
    def model_type(self) -> PrinterModelType:
        """Return the model family of this backend."""
        return self.profile.model_type

    @property
    def features(self) -> FeatureSet | None:
        """Return the feature set, or None before ``initialize``."""
        return self._features

    @property
    def is_initialized(self) -> bool:
        """Return True once features have been detected."""
        return self._features is not None

    async def initialize(self) -> FeatureSet:
        """
        Validate the clients and detect features.

        Calling this again returns the feature set from the first call.

        Raises:
            ConnectionInitError: If a required client is missing.

        """
        if self._features is not None:
            return self._features

        if self.legacy_client is None:
            msg = "Legacy client is required for all printer backends"
            raise ConnectionInitError(msg)
        if self.profile.requires_modern and self.modern_client is None:
            msg = f"{self.profile.model_type.display_name} requires the modern client"
            raise ConnectionInitError(msg)

        if self.modern_client is not None:
            await self._fetch_product_info()

        self._features = self._build_features()
        self.logger.info(
            "Features detected for %s: LED=%s, filtration=%s, camera=%s",
            self.profile.model_type.display_name,
            self._features.led_control.builtin,
            self._features.filtration.available,
            self._features.camera.builtin,
        )
        return self._features

    async def _fetch_product_info(self) -> None:
        try:
            success = await self.modern_client.send_product_command()
        except Exception as err:  # noqa: BLE001
            self.logger.warning("Error fetching product info: %s", err)
            return
        if not success or not self.modern_client.product_info:
            self.logger.warning(
                "Failed to retrieve product info for feature detection"
            )
            return
        self.product_info = self.modern_client.product_info

    def _build_features(self) -> FeatureSet:
        template = self.profile.features
        led = replace(
            template.led_control, custom_control_enabled=self.options.custom_leds
        )
        features = replace(template, led_control=led)
        if self.product_info is None:
            return features

        internal = self.product_info.get("internalFanCtrlState", 0)
        external = self.product_info.get("externalFanCtrlState", 0)
        has_filtration = internal != 0 or external != 0
        if self.profile.detect_led_from_product:
            led = replace(led, builtin=self.product_info.get("lightCtrlState", 0) != 0)

        return replace(
            features,
            led_control=led,
            filtration=FiltrationFeature(
                available=has_filtration,
                controllable=has_filtration,
                reason=(
                    "Hardware supports filtration control"
                    if has_filtration
                    else "Hardware does not support filtration control"
                ),
            ),
        )

    def _require_modern(self) -> ModernClient:
        if self.modern_client is None:
            msg = "Modern protocol not available on this printer"
            raise UnsupportedOperationError(msg)
        return self.modern_client

    async def execute_gcode(self, command: str) -> GCodeCommandResult:
        """Send a raw command over the legacy client."""
        started = time.monotonic()
        try:
            response = await self.legacy_client.send_raw_cmd(command)
        except Exception as err:  # noqa: BLE001
            return GCodeCommandResult(
                success=False,
                command=command,
                error=_error_text(err),
                execution_time=time.monotonic() - started,
                cause=err,
            )
        return GCodeCommandResult(
            success=True,
            command=command,
            response=str(response),
            execution_time=time.monotonic() - started,
        )

    async def get_status(self) -> StatusResult:
        """
        Query printer status.

        The modern client is tried first; any failure falls back to the
        legacy info block. The fallback is decided per call. Legacy sessions
        go straight to the legacy info block.
        """
        if self.modern_client is None:
            return await self._get_status_legacy()
        try:
            return await self._get_status_modern()
        except Exception as err:  # noqa: BLE001
            self.logger.debug("Modern status query failed, using legacy: %s", err)
            return await self._get_status_legacy(err)

    async def _get_status_modern(self) -> StatusResult:
        client = self._require_modern()
        state = await client.get_status()
        if not state:
            msg = "Failed to get printer status"
            raise FlashForgeError(msg)

        info = await client.get_machine_info()
        if self.profile.process_machine_info is not None:
            self.profile.process_machine_info(self, info)
        info = info or {}

        estimated = float(info.get("EstimatedTime") or 0)
        elapsed = float(info.get("PrintDuration") or 0)
        remaining = calculate_remaining_seconds(estimated, elapsed)
        bed = info.get("PrintBed") or {}
        extruder = info.get("Extruder") or {}

        extra: dict[str, Any] = {}
        if self.profile.additional_status_fields is not None:
            extra = self.profile.additional_status_fields(info)

        status = PrinterStatus(
            printer_state=str(state),
            bed_temperature=parse_float(bed.get("current")),
            bed_target_temperature=parse_float(bed.get("set")),
            nozzle_temperature=parse_float(extruder.get("current")),
            nozzle_target_temperature=parse_float(extruder.get("set")),
            progress=parse_float(info.get("PrintProgress")),
            current_job=info.get("PrintFileName") or None,
            estimated_time=round(estimated / 60) if estimated else None,
            remaining_time=round(remaining / 60) if estimated else None,
            print_duration=elapsed,
            current_layer=parse_int(info.get("CurrentPrintLayer")),
            total_layers=parse_int(info.get("TotalPrintLayers")),
            extra=extra,
        )
        return StatusResult(success=True, status=status)

    async def _get_status_legacy(
        self, original_error: BaseException | None = None
    ) -> StatusResult:
        try:
            info = await self.legacy_client.get_printer_info()
            if not info:
                msg = "Failed to get printer information from legacy API"
                raise FlashForgeError(msg)
        except Exception as err:  # noqa: BLE001
            self.logger.debug("Legacy status query failed: %s", err)
            cause = original_error if original_error is not None else err
            return StatusResult(
                success=False,
                status=PrinterStatus.zeroed(),
                error=_error_text(cause),
                cause=cause,
            )

        current_file = info.get("CurrentFile")
        status = PrinterStatus(
            printer_state=str(_first(info, "MachineStatus", "Status") or "unknown"),
            bed_temperature=parse_float(_first(info, "BedTemperature", "BedTemp")),
            nozzle_temperature=parse_float(
                _first(info, "NozzleTemperature", "NozzleTemp", "ExtruderTemp")
            ),
            progress=parse_float(info.get("Progress")),
            current_job=str(current_file) if current_file else None,
            current_layer=parse_int(info.get("CurrentPrintLayer")),
            total_layers=parse_int(info.get("TotalPrintLayers")),
        )
        return StatusResult(success=True, status=status)

    async def get_local_jobs(self) -> JobListResult:
        """List the files stored on the printer."""
        try:
            names = await self._require_modern().get_local_file_list()
            if names is None:
                msg = "Failed to get local jobs"
                raise FlashForgeError(msg)
        except Exception as err:  # noqa: BLE001
            return JobListResult(
                success=False, source=JobSource.LOCAL, error=_error_text(err)
            )

        jobs = [JobInfo(file_name=name) for name in names]
        return JobListResult(
            success=True, source=JobSource.LOCAL, jobs=self._transform(jobs, JobSource.LOCAL)
        )

    async def get_recent_jobs(self) -> JobListResult:
        """List recently printed files with their printing time."""
        try:
            entries = await self._require_modern().get_recent_file_list()
            if entries is None:
                msg = "Failed to get recent jobs"
                raise FlashForgeError(msg)
        except Exception as err:  # noqa: BLE001
            return JobListResult(
                success=False, source=JobSource.RECENT, error=_error_text(err)
            )

        jobs = [
            JobInfo(
                file_name=entry.get("gcodeFileName", ""),
                printing_time=float(entry.get("printingTime") or 0),
                metadata={
                    key: value
                    for key, value in entry.items()
                    if key not in ("gcodeFileName", "printingTime")
                },
            )
            for entry in entries
        ]
        return JobListResult(
            success=True, source=JobSource.RECENT, jobs=self._transform(jobs, JobSource.RECENT)
        )

    def _transform(self, jobs: list[JobInfo], source: JobSource) -> list[JobInfo]:
        if self.profile.transform_job_list is None:
            return jobs
        return self.profile.transform_job_list(jobs, source)

    async def start_job(
        self,
        file_name: str | None = None,
        file_path: str | None = None,
        start_now: bool = False,
        leveling: bool = False,
    ) -> JobStartResult:
        """
        Start a print.

        Arguments:
            file_name: A file already stored on the printer.
            file_path: A local file to upload first.
            start_now: Begin printing immediately.
            leveling: Run bed leveling before printing.

        Returns:
            The outcome. A stored file with ``start_now`` False is reported
            as successful but not started.

        """
        try:
            client = self._require_modern()
            if file_path:
                if not await client.upload_file(file_path, start_now, leveling):
                    msg = "Failed to upload and start job"
                    raise FlashForgeError(msg)
                return JobStartResult(
                    success=True, file_name=file_name or file_path, started=start_now
                )

            if not file_name:
                msg = "file_name or file_path is required"
                raise FlashForgeError(msg)
            if not start_now:
                return JobStartResult(success=True, file_name=file_name, started=False)
            if not await client.print_local_file(file_name, leveling):
                msg = "Failed to start job"
                raise FlashForgeError(msg)
            return JobStartResult(success=True, file_name=file_name, started=True)
        except Exception as err:  # noqa: BLE001
            return JobStartResult(
                success=False, file_name=file_name or "", error=_error_text(err)
            )

    async def pause_job(self) -> CommandResult:
        """Pause the running job."""
        return await self._job_control("pause_print_job", CMD_PAUSE, "paused", "pause")

    async def resume_job(self) -> CommandResult:
        """Resume a paused job."""
        return await self._job_control("resume_print_job", CMD_RESUME, "resumed", "resume")

    async def cancel_job(self) -> CommandResult:
        """Cancel the running job."""
        return await self._job_control("cancel_print_job", CMD_CANCEL, "cancelled", "cancel")

    async def _job_control(
        self, method: str, fallback_command: str, past: str, verb: str
    ) -> CommandResult:
        original: BaseException | None = None
        if self.modern_client is not None:
            try:
                if not await getattr(self.modern_client, method)():
                    msg = f"Failed to {verb} job"
                    raise FlashForgeError(msg)
                return CommandResult(success=True, data=f"Job {past}")
            except Exception as err:  # noqa: BLE001
                original = err

        try:
            await self.legacy_client.send_raw_cmd(fallback_command)
        except Exception as fallback_err:  # noqa: BLE001
            self.logger.debug("Legacy %s fallback failed: %s", fallback_command, fallback_err)
            cause = original if original is not None else fallback_err
            return CommandResult(success=False, error=_error_text(cause), cause=cause)
        if original is None:
            return CommandResult(success=True, data=f"Job {past}")
        return CommandResult(success=True, data=f"Job {past} (via legacy API)")

    async def set_led_enabled(self, enabled: bool) -> CommandResult:
        """Switch the chamber light using the modern call or raw commands."""
        data = "LED turned on" if enabled else "LED turned off"
        if self.options.custom_leds or self.modern_client is None:
            result = await self.execute_gcode(CMD_LED_ON if enabled else CMD_LED_OFF)
            return CommandResult(
                success=result.success, data=data, error=result.error, cause=result.cause
            )

        try:
            if enabled:
                success = await self.modern_client.set_led_on()
            else:
                success = await self.modern_client.set_led_off()
        except Exception as err:  # noqa: BLE001
            return CommandResult(success=False, error=_error_text(err), cause=err)
        return CommandResult(
            success=success, data=data, error=None if success else "Failed to control LED"
        )

    async def get_job_thumbnail(self, file_name: str) -> str | None:
        """Return a PNG data URL for a stored file, or None."""
        if not file_name:
            self.logger.warning("get_job_thumbnail: No filename provided")
            return None
        try:
            if self.modern_client is not None:
                thumbnail = await self.modern_client.get_gcode_thumbnail(file_name)
            else:
                thumbnail = await self.legacy_client.get_thumbnail(file_name)
        except Exception as err:  # noqa: BLE001
            self.logger.error("Error getting thumbnail for %s: %s", file_name, err)
            return None
        if not thumbnail:
            self.logger.warning("No thumbnail available for file: %s", file_name)
            return None
        return "data:image/png;base64," + base64.b64encode(thumbnail).decode("ascii")

    async def get_model_preview(self) -> str | None:
        """Return the thumbnail of the job currently printing, if any."""
        if self.modern_client is None:
            return None
        try:
            info = await self.modern_client.get_machine_info()
        except Exception as err:  # noqa: BLE001
            self.logger.error("Error getting model preview: %s", err)
            return None
        file_name = (info or {}).get("PrintFileName")
        if not file_name:
            return None
        return await self.get_job_thumbnail(file_name)

    def get_material_station_status(self) -> MaterialStationStatus | None:
        """Return material station state, or None if the family has none."""
        if self.profile.material_station is None:
            return None
        return self.profile.material_station(self)

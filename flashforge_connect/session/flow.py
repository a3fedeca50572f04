"""
Connection flow.

Combines discovery, the saved printer record, interactive selection and
pairing into one connect operation. Every step is sequential: the probe
connection used for model detection is disposed before the real
connection is opened.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flashforge_connect.backends import DualProtocolBackend, profile_for_model
from flashforge_connect.config import ConnectionOptions
from flashforge_connect.const import DEFAULT_CHECK_CODE, LOGGER
from flashforge_connect.exceptions import (
    ConnectionInitError,
    DiscoveryError,
    PairingCancelled,
    ProtocolMismatchError,
)
from flashforge_connect.models.enums import ClientType, ConnectionState, PrinterModelType
from flashforge_connect.models.printer import SavedPrinterRecord
from flashforge_connect.utils import (
    detect_printer_family,
    format_printer_name,
    get_connection_error_message,
    should_prompt_for_check_code,
)

from .adapter import PrinterClientAdapter
from .session import ConnectionSession

if TYPE_CHECKING:
    from collections.abc import Mapping

    from flashforge_connect.clients import (
        ClientFactory,
        Discoverer,
        LegacyClient,
        ModernClient,
        PairingCodeProvider,
        PrinterStore,
        ProgressEmitter,
        SelectionProvider,
    )
    from flashforge_connect.models.printer import DiscoveredPrinter
    from flashforge_connect.utils import PrinterFamilyInfo


class ConnectionFlowManager:
    """
    Drives discovery, saved reconnection, selection and pairing.

    The flow never raises across its public methods. Failures are logged,
    kept in ``last_error`` and turned into a None result.
    """

    def __init__(  # noqa: PLR0913
        self,
        client_factory: ClientFactory,
        store: PrinterStore,
        discovery: Discoverer | None = None,
        pairing_provider: PairingCodeProvider | None = None,
        selection_provider: SelectionProvider | None = None,
        options: ConnectionOptions | None = None,
        progress: ProgressEmitter | None = None,
        logger: Any = LOGGER,
    ) -> None:
        """
        Initialize a ConnectionFlowManager.

        Arguments:
            client_factory: Builds the vendor clients for an address.
            store: Saved printer records.
            discovery: Network scanner. Without one, discovery finds nothing.
            pairing_provider: Asks the user for a pairing code. Returns None
                or an empty string when the user cancels.
            selection_provider: Asks the user to pick a printer. Returns None
                when the user cancels.
            options: Connection options.
            progress: Receives human readable progress lines.
            logger: The logger to use.

        """
        self.client_factory = client_factory
        self.store = store
        self.discovery = discovery
        self.pairing_provider = pairing_provider
        self.selection_provider = selection_provider
        self.options = options or ConnectionOptions()
        self.logger = logger
        self._progress = progress
        self._state = ConnectionState.IDLE
        self.last_error: Exception | None = None

    @property
    def state(self) -> ConnectionState:
        """Return the current flow state."""
        return self._state

    def _set_state(self, state: ConnectionState) -> None:
        self.logger.debug("Connection flow: %s -> %s", self._state.value, state.value)
        self._state = state

    def _emit(self, message: str) -> None:
        if self._progress is None:
            self.logger.info(message)
            return
        try:
            self._progress(message)
        except Exception:
            self.logger.exception("Progress emitter failed")

    async def connect(self) -> ConnectionSession | None:
        """
        Run the full flow.

        Returns:
            The new session, or None when every path failed or the user
            cancelled.

        """
        self.last_error = None
        discovered = await self.discover()

        saved = self.store.get_last_used()
        if saved is not None:
            self._set_state(ConnectionState.TRYING_SAVED)
            session = await self._try_saved(saved, discovered)
            if session is not None:
                return session
            self._emit("Saved printer connection failed, showing discovered printers")

        self._set_state(ConnectionState.SELECTING)
        candidate = None
        if self.selection_provider is not None:
            candidate = await self.selection_provider(discovered)
        if candidate is None:
            self._emit("No printer selected")
            self._set_state(ConnectionState.FAILED)
            return None

        return await self.connect_to_printer(candidate)

    async def discover(self) -> list[DiscoveredPrinter]:
        """Scan once. A scan failure is logged and yields an empty list."""
        self._set_state(ConnectionState.DISCOVERING)
        if self.discovery is None:
            return []

        self._emit("Searching for printers...")
        try:
            printers = list(await self.discovery.discover())
        except (DiscoveryError, OSError) as err:
            self.last_error = err if isinstance(err, DiscoveryError) else DiscoveryError(str(err))
            self.logger.warning("Printer discovery failed: %s", err)
            return []

        scan_error = getattr(self.discovery, "last_error", None)
        if scan_error is not None:
            self.last_error = scan_error
            self.logger.warning("Printer discovery failed: %s", scan_error)
        self._emit(f"Found {len(printers)} printer(s)")
        return printers

    async def _try_saved(
        self, saved: SavedPrinterRecord, discovered: list[DiscoveredPrinter]
    ) -> ConnectionSession | None:
        match = next(
            (p for p in discovered if p.serial_number == saved.serial_number), None
        )
        if match is not None:
            ip_address = match.ip_address
            if ip_address != saved.ip_address:
                self._emit(
                    f"Saved printer {saved.name} moved from {saved.ip_address} "
                    f"to {ip_address}"
                )
            else:
                self._emit(f"Found saved printer {saved.name} at {ip_address}")
        else:
            ip_address = saved.ip_address
            self._emit(
                f"Saved printer {saved.name} not discovered, trying {ip_address} directly"
            )

        is_legacy = await self._saved_protocol_is_legacy(saved, ip_address)
        if is_legacy is None:
            return None

        check_code: str | None = saved.check_code
        if should_prompt_for_check_code(
            not is_legacy, saved.check_code, self.options.force_legacy_api
        ):
            check_code = await self._request_pairing_code(saved.name)
            if check_code is None:
                return None

        return await self.connect_and_save(
            ip_address,
            saved.serial_number,
            check_code,
            saved.name,
            is_legacy,
            type_name=saved.printer_model,
        )

    async def _saved_protocol_is_legacy(
        self, saved: SavedPrinterRecord, ip_address: str
    ) -> bool | None:
        """
        Decide which protocol a saved printer is reconnected with.

        Returns None if the printer had to be probed and the probe failed.
        """
        if self.options.force_legacy_api:
            return True

        family = detect_printer_family(saved.printer_model) if saved.printer_model else None
        if saved.client_type is not None:
            if family is not None and family.client_type != saved.client_type:
                mismatch = ProtocolMismatchError(
                    f"Saved protocol {saved.client_type.value} does not match "
                    f"{family.model_type.display_name}"
                )
                self.logger.warning("%s, using detected protocol", mismatch)
                return not family.is_5m_family
            return saved.client_type is ClientType.LEGACY
        if family is not None:
            return not family.is_5m_family

        info = await self._probe(ip_address, saved.serial_number)
        if info is None:
            return None
        return not detect_printer_family(info.get("TypeName")).is_5m_family

    async def connect_to_printer(
        self, candidate: DiscoveredPrinter
    ) -> ConnectionSession | None:
        """Probe a selected printer, pair if needed, then connect."""
        info = await self._probe(candidate.ip_address, candidate.serial_number)
        if info is None:
            self._set_state(ConnectionState.FAILED)
            return None

        type_name = info.get("TypeName")
        family = detect_printer_family(type_name)
        serial_number = candidate.serial_number or info.get("SerialNumber") or ""
        is_legacy = self.options.force_legacy_api or not family.is_5m_family
        self._emit(
            f"Detected {family.model_type.display_name} "
            f"({'legacy' if is_legacy else 'dual'} protocol)"
        )

        check_code = await self._resolve_check_code(
            family, serial_number, candidate.name
        )
        if check_code is None and family.requires_check_code and not is_legacy:
            self._set_state(ConnectionState.FAILED)
            return None

        return await self.connect_and_save(
            candidate.ip_address,
            serial_number,
            check_code,
            candidate.name,
            is_legacy,
            type_name=type_name,
        )

    async def _resolve_check_code(
        self, family: PrinterFamilyInfo, serial_number: str, name: str
    ) -> str | None:
        if self.options.force_legacy_api or not family.requires_check_code:
            return None
        saved = self.store.get(serial_number) if serial_number else None
        saved_code = saved.check_code if saved is not None else None
        if not should_prompt_for_check_code(True, saved_code):
            return saved_code
        return await self._request_pairing_code(name)

    async def _request_pairing_code(self, name: str) -> str | None:
        self._set_state(ConnectionState.AWAITING_PAIRING_CODE)
        self._emit(f"Pairing code required for {name}")
        code = None
        if self.pairing_provider is not None:
            code = await self.pairing_provider(name)
        if not code or not code.strip():
            cancelled = PairingCancelled(f"Pairing cancelled for {name}")
            self.logger.info("%s", cancelled)
            self._emit(str(cancelled))
            return None
        return code.strip()

    async def _probe(self, ip_address: str, serial_number: str = "") -> dict[str, Any] | None:
        """Read printer info over a throwaway legacy connection."""
        self._set_state(ConnectionState.PROBING)
        self._emit(f"Checking printer type at {ip_address}...")
        client = None
        try:
            client = self.client_factory.create_legacy(ip_address)
            if not await client.init_control():
                msg = "Failed to open control connection"
                raise ConnectionInitError(msg, ip_address, serial_number)
            info = await client.get_printer_info()
            if not info:
                msg = "Printer did not report its type"
                raise ConnectionInitError(msg, ip_address, serial_number)
            return dict(info)
        except Exception as err:  # noqa: BLE001
            self._fail(err, ip_address, serial_number)
            return None
        finally:
            if client is not None:
                await self._dispose(client)

    async def connect_and_save(  # noqa: PLR0913
        self,
        ip_address: str,
        serial_number: str,
        check_code: str | None,
        name: str | None,
        is_legacy: bool,
        type_name: str | None = None,
    ) -> ConnectionSession | None:
        """
        Connect directly and save the printer on success.

        Arguments:
            ip_address: Printer address.
            serial_number: Printer serial, used as the store key.
            check_code: Pairing code for the modern protocol.
            name: Name to use if the printer does not report one.
            is_legacy: Connect with the legacy client only.
            type_name: Known vendor type name, used when the printer info
                does not carry one.

        Returns:
            The new session, or None if any client failed to initialize.

        """
        self._set_state(ConnectionState.CONNECTING)
        self._emit(f"Connecting to {name or ip_address} at {ip_address}...")
        legacy: LegacyClient | None = None
        modern: ModernClient | None = None
        try:
            legacy = self.client_factory.create_legacy(ip_address)
            if not await legacy.init_control():
                msg = "Failed to initialize legacy client"
                raise ConnectionInitError(msg, ip_address, serial_number)
            info: Mapping[str, Any] = dict(await legacy.get_printer_info() or {})
            type_name = info.get("TypeName") or type_name
            model_type = detect_printer_family(type_name).model_type

            if not is_legacy:
                modern = self.client_factory.create_modern(
                    ip_address, serial_number, check_code or DEFAULT_CHECK_CODE
                )
                if not await modern.initialize() or not await modern.init_control():
                    msg = "Failed to initialize modern client"
                    raise ConnectionInitError(msg, ip_address, serial_number)
                if model_type is PrinterModelType.GENERIC_LEGACY:
                    self.logger.warning(
                        "%s",
                        ProtocolMismatchError(
                            f"Type {type_name!r} is not a dual protocol model, "
                            "treating it as an Adventurer 5M"
                        ),
                    )
                    model_type = PrinterModelType.ADVENTURER_5M

            backend = DualProtocolBackend(
                profile_for_model(model_type, legacy_only=is_legacy),
                legacy,
                modern,
                options=self.options,
                logger=self.logger,
            )
            features = await backend.initialize()
        except Exception as err:  # noqa: BLE001
            self._fail(err, ip_address, serial_number)
            await self._dispose(modern, legacy)
            self._set_state(ConnectionState.FAILED)
            return None

        serial_number = serial_number or info.get("SerialNumber") or ""
        printer_name = format_printer_name(info.get("Name") or name, serial_number)
        session = ConnectionSession(
            adapter=PrinterClientAdapter(backend, logger=self.logger),
            backend=backend,
            legacy_client=legacy,
            modern_client=modern,
            features=features,
            printer_name=printer_name,
            serial_number=serial_number,
            ip_address=ip_address,
            client_type=ClientType.LEGACY if is_legacy else ClientType.MODERN,
            model_type=model_type,
            firmware=info.get("FirmwareVersion"),
            printer_info=info,
        )
        self._save(session, check_code, type_name)
        self._set_state(ConnectionState.CONNECTED)
        self._emit(f"Connected to {printer_name}")
        return session

    def _save(
        self, session: ConnectionSession, check_code: str | None, type_name: str | None
    ) -> None:
        if not session.serial_number:
            self.logger.warning(
                "Printer at %s reported no serial number, not saving it",
                session.ip_address,
            )
            return

        record = SavedPrinterRecord(
            name=session.printer_name,
            ip_address=session.ip_address,
            serial_number=session.serial_number,
            check_code=check_code or DEFAULT_CHECK_CODE,
            # A forced protocol is not remembered
            client_type=None if self.options.force_legacy_api else session.client_type,
            printer_model=type_name,
        )
        existing = self.store.get(session.serial_number)
        if existing is not None:
            record = existing.merged_with(record)
        record.touch()
        try:
            self.store.set(record)
        except Exception:
            self.logger.exception("Failed to save printer %s", session.serial_number)

    def _fail(self, err: Exception, ip_address: str, serial_number: str) -> None:
        if isinstance(err, ConnectionInitError):
            error = err
            error.ip_address = error.ip_address or ip_address
            error.serial_number = error.serial_number or serial_number
        else:
            error = ConnectionInitError(
                get_connection_error_message(err), ip_address, serial_number
            )
        self.last_error = error
        self.logger.error(
            "Failed to connect to printer at %s (serial %s): %s",
            ip_address,
            serial_number or "unknown",
            error,
        )
        self._emit(f"Connection to {ip_address} failed: {error}")

    async def _dispose(self, *clients: LegacyClient | ModernClient | None) -> None:
        for client in clients:
            if client is None:
                continue
            try:
                await client.dispose()
            except Exception as err:  # noqa: BLE001
                self.logger.debug("Error disposing client: %s", err)

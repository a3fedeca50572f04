"""Helpers shared by the connection flow, backends and configuration."""

from __future__ import annotations

import re
import socket
from dataclasses import dataclass

from .const import CONNECTION_ERROR_MARKERS, DEFAULT_CHECK_CODE
from .exceptions import TransportError
from .models.enums import ClientType, PrinterModelType

_IP_PATTERN = re.compile(
    r"^((25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)
_SERIAL_PATTERN = re.compile(r"^[A-Za-z0-9\-_]+$")

TRANSPORT_EXCEPTIONS = (TransportError, ConnectionError, TimeoutError, socket.gaierror)


@dataclass(frozen=True)
class PrinterFamilyInfo:
    """Result of classifying a vendor type name."""

    is_5m_family: bool
    requires_check_code: bool
    model_type: PrinterModelType

    @property
    def client_type(self) -> ClientType:
        """Return the protocol the family should be driven with."""
        return ClientType.MODERN if self.is_5m_family else ClientType.LEGACY


def detect_printer_family(type_name: str | None) -> PrinterFamilyInfo:
    """
    Classify a printer by the TypeName it reports over the legacy protocol.

    Every family except generic legacy speaks both protocols and needs a
    check code to pair.
    """
    model_type = PrinterModelType.from_type_name(type_name)
    is_5m_family = model_type.supports_dual_api
    return PrinterFamilyInfo(
        is_5m_family=is_5m_family,
        requires_check_code=is_5m_family,
        model_type=model_type,
    )


def should_prompt_for_check_code(
    is_5m_family: bool,
    saved_check_code: str | None = None,
    force_legacy_api: bool = False,
) -> bool:
    """Return True if the user has to be asked for a pairing code."""
    if force_legacy_api or not is_5m_family:
        return False
    return (
        not saved_check_code
        or not saved_check_code.strip()
        or saved_check_code == DEFAULT_CHECK_CODE
    )


def format_printer_name(name: str | None, serial_number: str | None = None) -> str:
    """Return a display name, falling back to the serial number."""
    if not name or not name.strip():
        return f"Printer ({serial_number})" if serial_number else "Unknown Printer"
    return name.strip()


def is_valid_ip_address(ip_address: str | None) -> bool:
    """Return True for a dotted-quad IPv4 address."""
    if not ip_address or not isinstance(ip_address, str):
        return False
    return _IP_PATTERN.match(ip_address) is not None


def is_valid_serial_number(serial_number: str | None) -> bool:
    """Return True for serials of at least 3 characters of [A-Za-z0-9-_]."""
    if not serial_number or not isinstance(serial_number, str):
        return False
    trimmed = serial_number.strip()
    return len(trimmed) >= 3 and _SERIAL_PATTERN.match(trimmed) is not None  # noqa: PLR2004


def is_valid_check_code(check_code: str | None) -> bool:
    """Return True for check codes between 1 and 20 characters."""
    if not check_code or not isinstance(check_code, str):
        return False
    return 1 <= len(check_code.strip()) <= 20  # noqa: PLR2004


def get_connection_error_message(error: BaseException | str | None) -> str:
    """
    Turn a connection failure into a message fit for the user.

    Arguments:
        error: The exception raised by a client, a plain message, or None.

    Returns:
        A human readable description of what went wrong.

    """
    if error is None:
        return "Unknown connection error"
    if isinstance(error, str):
        return error
    message = str(error)
    if message:
        return message
    if isinstance(error, ConnectionRefusedError):
        return "Connection refused - printer may be offline or unreachable"
    if isinstance(error, TimeoutError):
        return "Connection timed out - check network connection"
    if isinstance(error, socket.gaierror):
        return "Printer not found - check IP address"
    return "Connection failed - please check printer and network settings"


def is_transport_error(error: BaseException | str | None) -> bool:
    """
    Return True if ``error`` is a socket-level fault.

    Exceptions are judged by type first. Anything else, including plain
    messages, is matched against the texts Python uses for resets, refusals,
    timeouts, broken pipes and name resolution failures.
    """
    if isinstance(error, TRANSPORT_EXCEPTIONS):
        return True
    text = str(error or "").lower()
    return any(marker in text for marker in CONNECTION_ERROR_MARKERS)


def calculate_remaining_seconds(estimated: float | None, elapsed: float | None) -> float:
    """Return estimated minus elapsed time, never below zero."""
    return max(0.0, float(estimated or 0) - float(elapsed or 0))

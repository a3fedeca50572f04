"""Tests for the shared helpers."""

import socket

import pytest

from flashforge_connect.exceptions import TransportError
from flashforge_connect.models.enums import ClientType, PrinterModelType
from flashforge_connect.utils import (
    calculate_remaining_seconds,
    detect_printer_family,
    format_printer_name,
    get_connection_error_message,
    is_transport_error,
    is_valid_check_code,
    is_valid_ip_address,
    is_valid_serial_number,
    should_prompt_for_check_code,
)


class TestDetectPrinterFamily:
    """Test classification of vendor type names."""

    @pytest.mark.parametrize(
        ("type_name", "is_5m", "model_type"),
        [
            ("Flashforge Adventurer 5M", True, PrinterModelType.ADVENTURER_5M),
            ("Flashforge Adventurer 5M Pro", True, PrinterModelType.ADVENTURER_5M_PRO),
            ("FlashForge AD5X", True, PrinterModelType.AD5X),
            ("flashforge ad5x", True, PrinterModelType.AD5X),
            ("FlashForge Adventurer 4", False, PrinterModelType.GENERIC_LEGACY),
            ("Finder", False, PrinterModelType.GENERIC_LEGACY),
            ("", False, PrinterModelType.GENERIC_LEGACY),
            (None, False, PrinterModelType.GENERIC_LEGACY),
        ],
    )
    def test_family(
        self, type_name: str | None, is_5m: bool, model_type: PrinterModelType
    ) -> None:
        """Test that type names map to the expected family."""
        family = detect_printer_family(type_name)
        assert family.is_5m_family is is_5m
        assert family.requires_check_code is is_5m
        assert family.model_type is model_type

    def test_client_type(self) -> None:
        """Test that the family picks the protocol."""
        assert detect_printer_family("Adventurer 5M").client_type is ClientType.MODERN
        assert detect_printer_family("Adventurer 3").client_type is ClientType.LEGACY


class TestShouldPromptForCheckCode:
    """Test when a pairing code has to be requested."""

    @pytest.mark.parametrize(
        ("is_5m", "saved", "forced", "expected"),
        [
            (True, None, False, True),
            (True, "", False, True),
            (True, "   ", False, True),
            (True, "123", False, True),
            (True, "abcd1234", False, False),
            (True, None, True, False),
            (False, None, False, False),
            (False, "123", False, False),
        ],
    )
    def test_prompt(
        self, is_5m: bool, saved: str | None, forced: bool, expected: bool
    ) -> None:
        """Test the prompt decision for each combination."""
        assert should_prompt_for_check_code(is_5m, saved, forced) is expected


class TestNames:
    """Test printer name helpers."""

    def test_format_uses_name(self) -> None:
        """Test that a non-blank name is trimmed and kept."""
        assert format_printer_name("  Office 5M ", "SN1") == "Office 5M"

    def test_format_falls_back_to_serial(self) -> None:
        """Test that a blank name falls back to the serial."""
        assert format_printer_name("", "SN1") == "Printer (SN1)"

    def test_format_unknown(self) -> None:
        """Test the fallback without a serial."""
        assert format_printer_name(None) == "Unknown Printer"


class TestValidators:
    """Test input validators."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("192.168.1.10", True),
            ("10.0.0.255", True),
            ("256.1.1.1", False),
            ("10.0.0", False),
            ("printer.local", False),
            ("", False),
            (None, False),
        ],
    )
    def test_ip_address(self, value: str | None, expected: bool) -> None:
        """Test IPv4 validation."""
        assert is_valid_ip_address(value) is expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("SNMOMC9900728", True),
            ("abc-123_x", True),
            ("ab", False),
            ("has space", False),
            ("", False),
        ],
    )
    def test_serial_number(self, value: str, expected: bool) -> None:
        """Test serial number validation."""
        assert is_valid_serial_number(value) is expected

    def test_check_code(self) -> None:
        """Test check code length bounds."""
        assert is_valid_check_code("1")
        assert is_valid_check_code("x" * 20)
        assert not is_valid_check_code("x" * 21)
        assert not is_valid_check_code("   ")
        assert not is_valid_check_code(None)


class TestConnectionErrorMessage:
    """Test user facing connection error texts."""

    def test_message_is_kept(self) -> None:
        """Test that an exception message is passed through."""
        assert get_connection_error_message(OSError("boom")) == "boom"

    def test_string_is_kept(self) -> None:
        """Test that plain strings are passed through."""
        assert get_connection_error_message("already a message") == "already a message"

    def test_none(self) -> None:
        """Test the text for a missing error."""
        assert get_connection_error_message(None) == "Unknown connection error"

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (
                ConnectionRefusedError(),
                "Connection refused - printer may be offline or unreachable",
            ),
            (TimeoutError(), "Connection timed out - check network connection"),
            (socket.gaierror(), "Printer not found - check IP address"),
            (
                RuntimeError(),
                "Connection failed - please check printer and network settings",
            ),
        ],
    )
    def test_fallback_texts(self, error: BaseException, expected: str) -> None:
        """Test the fixed texts used for errors without a message."""
        assert get_connection_error_message(error) == expected


class TestRemainingTime:
    """Test remaining time math."""

    @pytest.mark.parametrize(
        ("estimated", "elapsed", "expected"),
        [
            (3600, 600, 3000),
            (600, 600, 0),
            (600, 615, 0),
            (0, 10, 0),
            (None, None, 0),
        ],
    )
    def test_never_negative(
        self, estimated: float | None, elapsed: float | None, expected: float
    ) -> None:
        """Test that remaining time is floored at zero."""
        assert calculate_remaining_seconds(estimated, elapsed) == expected


class TestTransportError:
    """Test recognition of socket level faults."""

    @pytest.mark.parametrize(
        "error",
        [
            TransportError("link lost"),
            ConnectionResetError(104, "Connection reset by peer"),
            ConnectionRefusedError(111, "Connection refused"),
            BrokenPipeError(32, "Broken pipe"),
            TimeoutError(),
            socket.gaierror(-2, "Name or service not known"),
        ],
    )
    def test_exception_types(self, error: BaseException) -> None:
        """Test that socket exceptions are transport errors whatever their text."""
        assert is_transport_error(error) is True

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (OSError(113, "No route to host"), True),
            (OSError(101, "Network is unreachable"), True),
            ("[Errno 104] Connection reset by peer", True),
            ("timed out", True),
            ("Temporary failure in name resolution", True),
            ("Nozzle temperature out of range", False),
            (ValueError("bad reply"), False),
            ("", False),
            (None, False),
        ],
    )
    def test_messages(self, error: BaseException | str | None, expected: bool) -> None:
        """Test that socket error messages are recognized without the exception type."""
        assert is_transport_error(error) is expected

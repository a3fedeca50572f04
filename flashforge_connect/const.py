"""Constants for the FlashForge connection layer."""

import os
from logging import getLogger

LOGGER = getLogger(__package__)

DEBUG = os.environ.get("DEBUG", "false").lower() == "true"

# Configuration keys
CONF_CHECK_CODE = "check_code"
CONF_CLIENT_TYPE = "client_type"
CONF_CUSTOM_LEDS = "custom_leds"
CONF_DISCOVERY_IDLE_TIMEOUT = "discovery_idle_timeout"
CONF_DISCOVERY_RETRIES = "discovery_retries"
CONF_DISCOVERY_TIMEOUT = "discovery_timeout"
CONF_FORCE_LEGACY_API = "force_legacy_api"
CONF_IP = "ip_address"
CONF_LAST_CONNECTED = "last_connected"
CONF_NAME = "name"
CONF_POLL_INTERVAL = "poll_interval"
CONF_PRINTER_MODEL = "printer_model"
CONF_SERIAL = "serial_number"
CONF_SETTLE_DELAY = "settle_delay"

# Discovery
DEFAULT_BROADCAST_ADDRESS = "255.255.255.255"
DISCOVERY_PORT = 48899
DISCOVERY_MESSAGE = bytes(
    [0x77, 0x77, 0x77, 0x2E, 0x75, 0x73, 0x72, 0x22, 0x65, 0x36]
    + [0xC0, 0xA8, 0x00, 0x01, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]
)
DISCOVERY_RESPONSE_MIN_LENGTH = 0xC4
DISCOVERY_NAME_OFFSET = 0x00
DISCOVERY_SERIAL_OFFSET = 0x92
DISCOVERY_FIELD_LENGTH = 32
DEFAULT_DISCOVERY_TIMEOUT = 10.0
DEFAULT_DISCOVERY_IDLE_TIMEOUT = 2.0
DEFAULT_DISCOVERY_RETRIES = 3

# Connection
DEFAULT_CHECK_CODE = "123"
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_SETTLE_DELAY = 0.5
CLIENT_TYPE_LEGACY = "legacy"
CLIENT_TYPE_MODERN = "new"

# Raw commands
CMD_PAUSE = "M25"
CMD_RESUME = "M24"
CMD_CANCEL = "M26"
CMD_LOGOUT = "~M602"
CMD_LED_ON = "~M146 r255 g255 b255 F0"
CMD_LED_OFF = "~M146 r0 g0 b0 F0"

MODERN_GCODE_WHITELIST = (
    "G0", "G1", "G28", "G29", "G90", "G91", "G92",
    "M0", "M1", "M17", "M18", "M20", "M21", "M23", "M24", "M25", "M26",
    "M104", "M105", "M106", "M107", "M109", "M140", "M190",
    "M200", "M201", "M203", "M204", "M205", "M206", "M207", "M208", "M209",
    "M220", "M221", "M301", "M302", "M303", "M304", "M400", "M500", "M501",
    "M502", "M503", "M504", "M905", "M906", "M907", "M908",
)  # fmt: skip

LEGACY_GCODE_WHITELIST = (
    "G0", "G1", "G28", "G90", "G91", "G92",
    "M17", "M18", "M23", "M24", "M25", "M26",
    "M104", "M105", "M106", "M107", "M140", "M146", "M601", "M602",
)  # fmt: skip

# Raw events published by the client adapter
RAW_PRINTER_INFO = "printer-info-updated"
RAW_MACHINE_STATE = "machine-state-changed"
RAW_BED_TEMPERATURE = "bed-temperature-changed"
RAW_EXTRUDER_TEMPERATURE = "extruder-temperature-changed"
RAW_COMMAND_EXECUTED = "command-executed"
RAW_COMMAND_FAILED = "command-failed"
RAW_UPLOAD_COMPLETED = "upload-completed"
RAW_UPLOAD_FAILED = "upload-failed"
RAW_ERROR = "error"
RAW_DISCONNECTED = "disconnected"

# Lowercase substrings of socket error messages that mark a transport failure
CONNECTION_ERROR_MARKERS = (
    "connection reset",
    "connection refused",
    "connection aborted",
    "broken pipe",
    "timed out",
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "network is unreachable",
    "no route to host",
    "socket closed",
)

UNSUPPORTED_OPERATION_MESSAGE = "Operation not supported on this printer"
NOT_CONNECTED_MESSAGE = "Printer not connected"

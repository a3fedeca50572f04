"""Configuration schemas for the FlashForge connection layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import voluptuous as vol

from .const import (
    CLIENT_TYPE_LEGACY,
    CLIENT_TYPE_MODERN,
    CONF_CHECK_CODE,
    CONF_CLIENT_TYPE,
    CONF_CUSTOM_LEDS,
    CONF_DISCOVERY_IDLE_TIMEOUT,
    CONF_DISCOVERY_RETRIES,
    CONF_DISCOVERY_TIMEOUT,
    CONF_FORCE_LEGACY_API,
    CONF_IP,
    CONF_LAST_CONNECTED,
    CONF_NAME,
    CONF_POLL_INTERVAL,
    CONF_PRINTER_MODEL,
    CONF_SERIAL,
    CONF_SETTLE_DELAY,
    DEFAULT_CHECK_CODE,
    DEFAULT_DISCOVERY_IDLE_TIMEOUT,
    DEFAULT_DISCOVERY_RETRIES,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SETTLE_DELAY,
)
from .utils import is_valid_check_code, is_valid_ip_address, is_valid_serial_number


def _validator(check: Any, message: str) -> Any:
    def validate(value: Any) -> str:
        if not isinstance(value, str) or not check(value):
            raise vol.Invalid(message)
        return value.strip()

    return validate


IpAddress = _validator(is_valid_ip_address, "invalid IPv4 address")
SerialNumber = _validator(is_valid_serial_number, "invalid serial number")
CheckCode = _validator(is_valid_check_code, "check code must be 1-20 characters")

PositiveSeconds = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))

CONNECTION_OPTIONS_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_FORCE_LEGACY_API, default=False): bool,
        vol.Optional(CONF_CUSTOM_LEDS, default=False): bool,
        vol.Optional(CONF_POLL_INTERVAL, default=DEFAULT_POLL_INTERVAL): PositiveSeconds,
        vol.Optional(
            CONF_DISCOVERY_TIMEOUT, default=DEFAULT_DISCOVERY_TIMEOUT
        ): PositiveSeconds,
        vol.Optional(
            CONF_DISCOVERY_IDLE_TIMEOUT, default=DEFAULT_DISCOVERY_IDLE_TIMEOUT
        ): PositiveSeconds,
        vol.Optional(CONF_DISCOVERY_RETRIES, default=DEFAULT_DISCOVERY_RETRIES): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(CONF_SETTLE_DELAY, default=DEFAULT_SETTLE_DELAY): vol.All(
            vol.Coerce(float), vol.Range(min=0)
        ),
    }
)

SAVED_PRINTER_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_NAME): str,
        vol.Required(CONF_IP): IpAddress,
        vol.Required(CONF_SERIAL): SerialNumber,
        vol.Optional(CONF_CHECK_CODE, default=DEFAULT_CHECK_CODE): CheckCode,
        vol.Optional(CONF_CLIENT_TYPE): vol.Any(
            None, vol.In([CLIENT_TYPE_LEGACY, CLIENT_TYPE_MODERN])
        ),
        vol.Optional(CONF_PRINTER_MODEL): vol.Any(None, str),
        vol.Optional(CONF_LAST_CONNECTED): vol.Any(None, str),
    },
    extra=vol.REMOVE_EXTRA,
)


@dataclass(frozen=True)
class ConnectionOptions:
    """Validated options that steer the connection flow."""

    force_legacy_api: bool = False
    custom_leds: bool = False
    poll_interval: float = DEFAULT_POLL_INTERVAL
    discovery_timeout: float = DEFAULT_DISCOVERY_TIMEOUT
    discovery_idle_timeout: float = DEFAULT_DISCOVERY_IDLE_TIMEOUT
    discovery_retries: int = DEFAULT_DISCOVERY_RETRIES
    settle_delay: float = DEFAULT_SETTLE_DELAY

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None = None) -> ConnectionOptions:
        """
        Build options from a raw mapping.

        Arguments:
            data: User supplied options. Missing keys take their defaults.

        Raises:
            vol.Invalid: If a value has the wrong type or is out of range.

        """
        return cls(**CONNECTION_OPTIONS_SCHEMA(dict(data or {})))

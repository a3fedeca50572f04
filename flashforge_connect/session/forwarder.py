"""
Command forwarding.

Command names are dispatched through a table of closures bound to the
active adapter. Rebinding swaps the whole table, so no closure over a
disposed adapter survives a reconnect.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from flashforge_connect.const import NOT_CONNECTED_MESSAGE
from flashforge_connect.exceptions import PrinterNotConnectedError, UnsupportedOperationError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from .adapter import PrinterClientAdapter

FORWARDED_COMMANDS = (
    "home_axes",
    "clear_platform",
    "pause_print_job",
    "resume_print_job",
    "cancel_print_job",
    "set_led_on",
    "set_led_off",
    "set_bed_temp",
    "cancel_bed_temp",
    "set_extruder_temp",
    "cancel_extruder_temp",
    "set_external_filtration_on",
    "set_internal_filtration_on",
    "set_filtration_off",
    "upload_file",
    "send_raw_cmd",
    "get_legacy_thumbnail",
)

_EMPTY: Mapping[str, Callable[..., Awaitable[Any]]] = MappingProxyType({})


class CommandForwarder:
    """Static dispatch table from command name to guarded adapter call."""

    def __init__(
        self,
        is_connected: Callable[[], bool],
        commands: tuple[str, ...] = FORWARDED_COMMANDS,
    ) -> None:
        """
        Initialize a CommandForwarder.

        Arguments:
            is_connected: Returns the owner's connected flag. Checked on every
                call, before the adapter is reached.
            commands: Names of the adapter methods to forward.

        """
        self._is_connected = is_connected
        self._commands = commands
        self._client: PrinterClientAdapter | None = None
        self._table = _EMPTY

    @property
    def commands(self) -> Mapping[str, Callable[..., Awaitable[Any]]]:
        """Return the current read-only dispatch table."""
        return self._table

    @property
    def client(self) -> PrinterClientAdapter | None:
        """Return the adapter the table is bound to."""
        return self._client

    def bind(self, client: PrinterClientAdapter) -> None:
        """Replace the dispatch table with one bound to ``client``."""
        self.unbind()
        table = {}
        for name in self._commands:
            method = getattr(client, name, None)
            if method is None:
                continue
            table[name] = self._guard(client, name, method)
        self._client = client
        self._table = MappingProxyType(table)

    def unbind(self) -> None:
        """Drop every forwarded command."""
        self._client = None
        self._table = _EMPTY

    def _guard(
        self,
        client: PrinterClientAdapter,
        name: str,
        method: Callable[..., Awaitable[Any]],
    ) -> Callable[..., Awaitable[Any]]:
        async def forwarded(*args: Any, **kwargs: Any) -> Any:
            if self._client is not client or not self._is_connected():
                raise PrinterNotConnectedError(NOT_CONNECTED_MESSAGE)
            return await method(*args, **kwargs)

        forwarded.__name__ = name
        return forwarded

    async def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """
        Invoke a forwarded command.

        Raises:
            PrinterNotConnectedError: If nothing is bound or the owner is not
                connected.
            UnsupportedOperationError: If ``name`` is not a forwarded command.

        """
        if name not in self._commands:
            msg = f"Unknown command: {name}"
            raise UnsupportedOperationError(msg)
        command = self._table.get(name)
        if command is None:
            raise PrinterNotConnectedError(NOT_CONNECTED_MESSAGE)
        return await command(*args, **kwargs)

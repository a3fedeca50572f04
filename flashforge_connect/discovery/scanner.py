"""Bounded network scan for FlashForge printers."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from flashforge_connect.const import (
    DEFAULT_BROADCAST_ADDRESS,
    DEFAULT_DISCOVERY_IDLE_TIMEOUT,
    DEFAULT_DISCOVERY_RETRIES,
    DEFAULT_DISCOVERY_TIMEOUT,
    DISCOVERY_MESSAGE,
    DISCOVERY_PORT,
    LOGGER,
)
from flashforge_connect.exceptions import DiscoveryError

from .protocol import DiscoveryProtocol

if TYPE_CHECKING:
    from flashforge_connect.config import ConnectionOptions
    from flashforge_connect.models.printer import DiscoveredPrinter


class PrinterDiscovery:
    """
    Broadcast discovery with a total budget, an idle cutoff and retries.

    A scan never takes longer than ``timeout`` seconds. Within one attempt,
    listening stops once ``idle_timeout`` seconds pass without a new printer.
    Further attempts are only made while nothing has been found.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_DISCOVERY_TIMEOUT,
        idle_timeout: float = DEFAULT_DISCOVERY_IDLE_TIMEOUT,
        retries: int = DEFAULT_DISCOVERY_RETRIES,
        broadcast_address: str = DEFAULT_BROADCAST_ADDRESS,
        port: int = DISCOVERY_PORT,
        logger: Any = LOGGER,
    ) -> None:
        """
        Initialize a PrinterDiscovery.

        Arguments:
            timeout: Total scan window in seconds.
            idle_timeout: Seconds without a new reply that end an attempt.
            retries: Maximum number of broadcasts.
            broadcast_address: Where to send the probe. A unicast address
                scans a single host.
            port: Discovery port.
            logger: The logger to use.

        """
        self.timeout = timeout
        self.idle_timeout = idle_timeout
        self.retries = retries
        self.broadcast_address = broadcast_address
        self.port = port
        self.logger = logger
        self.last_error: DiscoveryError | None = None

    @classmethod
    def from_options(cls, options: ConnectionOptions, logger: Any = LOGGER) -> PrinterDiscovery:
        """Build a scanner from validated connection options."""
        return cls(
            timeout=options.discovery_timeout,
            idle_timeout=options.discovery_idle_timeout,
            retries=options.discovery_retries,
            logger=logger,
        )

    async def discover(self) -> list[DiscoveredPrinter]:
        """
        Scan the local network.

        Returns:
            The printers that answered, or an empty list. A transport failure
            is logged and kept in ``last_error``; it is never raised.

        """
        self.last_error = None
        loop = asyncio.get_running_loop()
        self.logger.info(
            "Printer discovery on port %s (address: %s, timeout: %ss, idle: %ss, retries: %d)",
            self.port,
            self.broadcast_address,
            self.timeout,
            self.idle_timeout,
            self.retries,
        )

        try:
            transport, protocol = await loop.create_datagram_endpoint(
                lambda: DiscoveryProtocol(self.logger),
                local_addr=("0.0.0.0", 0),  # noqa: S104
                allow_broadcast=True,
            )
        except OSError as err:
            self._fail(err)
            return []

        try:
            await self._scan(loop, transport, protocol)
        except OSError as err:
            self._fail(err)
        finally:
            transport.close()

        if protocol.error is not None and not protocol.printers:
            self._fail(protocol.error)

        printers = list(protocol.printers.values())
        self.logger.info("Discovered %d printers.", len(printers))
        return printers

    async def _scan(
        self,
        loop: asyncio.AbstractEventLoop,
        transport: asyncio.DatagramTransport,
        protocol: DiscoveryProtocol,
    ) -> None:
        deadline = loop.time() + self.timeout
        for attempt in range(1, self.retries + 1):
            self.logger.debug("Discovery attempt %d/%d", attempt, self.retries)
            transport.sendto(DISCOVERY_MESSAGE, (self.broadcast_address, self.port))

            while (remaining := deadline - loop.time()) > 0:
                try:
                    await asyncio.wait_for(
                        protocol.arrivals.get(), timeout=min(self.idle_timeout, remaining)
                    )
                except TimeoutError:
                    break

            if protocol.printers or loop.time() >= deadline:
                return

    def _fail(self, err: OSError) -> None:
        self.last_error = DiscoveryError(f"Could not scan for printers: {err}")
        self.logger.error("Error during printer discovery: %s", err)

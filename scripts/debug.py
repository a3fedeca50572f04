"""Debug file for testing FlashForge discovery."""

import asyncio
import os
import sys

from loguru import logger

from flashforge_connect.const import DEBUG
from flashforge_connect.discovery import PrinterDiscovery
from flashforge_connect.utils import detect_printer_family

LOG_LEVEL = "DEBUG"
PRINTER_IP = os.getenv("PRINTER_IP")

logger.remove()
logger.add(sys.stdout, colorize=DEBUG, level=LOG_LEVEL)


async def main() -> None:
    """
    Scan for FlashForge printers and log what answered.

    With PRINTER_IP set, the probe is sent to that address only instead of
    being broadcast on the local segment.
    """
    if PRINTER_IP:
        discovery = PrinterDiscovery(broadcast_address=PRINTER_IP, logger=logger)
    else:
        discovery = PrinterDiscovery(logger=logger)

    try:
        printers = await discovery.discover()
    except asyncio.CancelledError:
        return

    if discovery.last_error is not None:
        logger.error(f"Discovery failed: {discovery.last_error}")
    if not printers:
        logger.warning("No printers discovered.")
        return

    for printer in printers:
        family = detect_printer_family(printer.name)
        logger.debug(f"Printer: {printer}")
        logger.debug(
            f"Family guess from name: {family.model_type.display_name} "
            f"(pairing code needed: {family.requires_check_code})"
        )


if __name__ == "__main__":
    asyncio.run(main())

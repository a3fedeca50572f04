"""Periodic status polling."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from typing import TYPE_CHECKING, Any

from flashforge_connect.const import DEFAULT_POLL_INTERVAL, LOGGER

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    StatusQuery = Callable[[], Awaitable[Any]]
    PollCallback = Callable[[BaseException | None, Any], Any]


class ConnectionStateManager:
    """
    Runs one polling loop at a time.

    Each tick calls ``query`` and hands ``(error, result)`` to the callback.
    Nothing raised by the query or the callback escapes the loop. Suppressing
    polls during uploads is up to the caller.
    """

    def __init__(self, interval: float = DEFAULT_POLL_INTERVAL, logger: Any = LOGGER) -> None:
        """
        Initialize a ConnectionStateManager.

        Arguments:
            interval: Default seconds between polls.
            logger: The logger to use.

        """
        self.interval = interval
        self.logger = logger
        self._task: asyncio.Task | None = None
        self._query: StatusQuery | None = None
        self._callback: PollCallback | None = None

    @property
    def is_running(self) -> bool:
        """Return True while a polling loop is active."""
        return self._task is not None and not self._task.done()

    def start(
        self,
        query: StatusQuery,
        callback: PollCallback,
        interval: float | None = None,
    ) -> None:
        """
        Start polling, stopping any loop already running.

        Arguments:
            query: Coroutine function returning the status result.
            callback: Receives ``(error, result)`` after each poll. May be a
                plain function or a coroutine function.
            interval: Seconds between polls, defaults to ``self.interval``.

        """
        self.stop()
        self._query = query
        self._callback = callback
        self._task = asyncio.get_running_loop().create_task(
            self._run(interval or self.interval), name="flashforge-status-poll"
        )
        self.logger.debug("Status polling started")

    async def _run(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._poll_once()

    async def _poll_once(self) -> None:
        if self._query is None or self._callback is None:
            return
        error: BaseException | None = None
        result = None
        try:
            result = await self._query()
        except Exception as err:  # noqa: BLE001
            error = err
        try:
            outcome = self._callback(error, result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            self.logger.exception("Status poll callback failed")

    async def send_single_update(self) -> None:
        """Poll once outside the timer cadence."""
        await self._poll_once()

    def stop(self) -> None:
        """Cancel the polling loop, if any."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
            self.logger.debug("Status polling stopped")

    async def aclose(self) -> None:
        """Cancel the polling loop and wait for it to finish."""
        task = self._task
        self.stop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._query = None
        self._callback = None

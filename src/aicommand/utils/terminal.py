"""Line input from the terminal that never blocks the event loop.

``input()`` cannot be interrupted once it runs in a worker thread, so a
read abandoned by a timeout or a cancelled task keeps its thread.  The
:class:`TerminalReader` runs that thread as a daemon, so it never holds up
interpreter shutdown, and hands the late line to the next caller instead
of letting a second thread race for stdin.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class TerminalReader:
    """Reads one line at a time with *read* (``input`` by default).

    Usage::

        line = await stdin_reader.readline()
    """

    def __init__(self, read: Callable[[], str] = input) -> None:
        self._read = read
        self._pending: asyncio.Future[str] | None = None

    async def readline(self) -> str:
        """Return the next line; raises ``EOFError`` at end of input.

        Cancelling the caller leaves the read in flight for the next call.
        """
        loop = asyncio.get_running_loop()
        pending = self._pending
        if pending is None or pending.get_loop() is not loop:
            pending = loop.create_future()
            self._pending = pending
            threading.Thread(
                target=self._run, args=(pending,), name="terminal-reader", daemon=True
            ).start()

        await asyncio.wait({pending})
        self._pending = None
        return pending.result()

    def _run(self, future: asyncio.Future[str]) -> None:
        try:
            line = self._read()
        except Exception as exc:
            settle = functools.partial(_settle_exception, future, exc)
        else:
            settle = functools.partial(_settle, future, line)
        try:
            future.get_loop().call_soon_threadsafe(settle)
        except RuntimeError:
            logger.debug("Event loop closed before terminal input arrived")


def _settle(future: asyncio.Future[str], line: str) -> None:
    if not future.done():
        future.set_result(line)


def _settle_exception(future: asyncio.Future[str], exc: Exception) -> None:
    if not future.done():
        future.set_exception(exc)


stdin_reader = TerminalReader()

"""
Shutdown coordination.

First SIGINT/SIGTERM: stop admitting batches, let the in-flight batch
drain, checkpoint, exit 0. Second signal: exit immediately; the last
checkpoint may not include the in-flight batch.
"""
import asyncio
import logging
import os
import signal
from typing import Callable, Optional

logger = logging.getLogger(__name__)

FORCE_EXIT_CODE = 1


class ShutdownCoordinator:
    """Two-stage escalation for termination signals."""

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(
        self,
        force_exit: Callable[[int], None] = os._exit,
        on_request: Optional[Callable[[], None]] = None,
        on_force: Optional[Callable[[], None]] = None,
    ):
        self._force_exit = force_exit
        self._on_request = on_request
        self._on_force = on_force
        self._requested = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._installed = []
        self._previous = {}

    @property
    def requested(self) -> bool:
        return self._requested

    def request(self) -> None:
        """Handle a termination signal."""
        if self._requested:
            logger.warning("Second interrupt received, forcing exit; progress may not be saved")
            if self._on_force:
                self._on_force()
            self._force_exit(FORCE_EXIT_CODE)
            return

        self._requested = True
        logger.warning("Shutdown requested, finishing current batch")
        if self._on_request:
            self._on_request()

    def install(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Register signal handlers on the running loop."""
        self._loop = loop or asyncio.get_running_loop()
        for sig in self.SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self.request)
            except (NotImplementedError, RuntimeError):
                # Windows event loops: fall back to signal.signal
                self._previous[sig] = signal.signal(sig, self._threadsafe_handler)
            self._installed.append(sig)

    def uninstall(self) -> None:
        for sig in self._installed:
            if sig in self._previous:
                signal.signal(sig, self._previous.pop(sig))
            elif self._loop is not None:
                self._loop.remove_signal_handler(sig)
        self._installed = []

    def _threadsafe_handler(self, signum, frame) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.request)
        else:
            self.request()

"""Single-fire cancellation fed by SIGINT and explicit cancel calls."""

import asyncio
import signal

from vkube.logging import get_logger

logger = get_logger(__name__)


class CancellationController:
    """Merge an interrupt signal and explicit cancels into one event.

    The event fires at most once. The interrupt handler is registered by
    ``start`` and removed as soon as the event fires (or on ``stop``), so a
    handler never outlives the session that installed it.
    """

    def __init__(self, signum: int = signal.SIGINT):
        self._signum = signum
        self._event = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._listening = False
        self._fired = False
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._fired

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def listening(self) -> bool:
        return self._listening

    def start(self) -> "CancellationController":
        """Begin listening for the interrupt. Returns immediately."""
        if self._listening or self._fired:
            return self

        self._loop = asyncio.get_running_loop()
        try:
            self._loop.add_signal_handler(self._signum, self._on_signal)
        except (NotImplementedError, RuntimeError, ValueError) as e:
            # Still usable through cancel(); only ctrl+C handling is lost
            logger.warning(
                {"event": "signal_handler_unavailable", "signal": self._signum, "error": str(e)}
            )
            return self

        self._listening = True
        logger.debug({"event": "signal_handler_registered", "signal": self._signum})
        return self

    def stop(self) -> None:
        """Stop listening for the interrupt without firing."""
        if not self._listening:
            return
        self._listening = False
        if self._loop is not None and not self._loop.is_closed():
            self._loop.remove_signal_handler(self._signum)
        logger.debug({"event": "signal_handler_removed", "signal": self._signum})

    def _on_signal(self) -> None:
        self.cancel("interrupted")

    def cancel(self, reason: str = "cancelled") -> bool:
        """Fire the event. Only the first call has any effect."""
        if self._fired:
            logger.debug({"event": "cancel_ignored", "reason": reason})
            return False

        self._fired = True
        self._reason = reason
        self._event.set()
        self.stop()
        logger.info({"event": "cancelled", "reason": reason})
        return True

    async def wait(self) -> None:
        """Block until the event fires."""
        await self._event.wait()

    async def __aenter__(self) -> "CancellationController":
        return self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()

"""Universe handle with single-shot finalization."""

from abc import ABC, abstractmethod
from pathlib import Path

from vkube.errors import UniverseClosedError
from vkube.logging import get_logger
from vkube.types import VM, Cluster, UniverseConfig

logger = get_logger(__name__)


class Universe(ABC):
    """A set of VMs and clusters sharing one lifecycle.

    A universe is finalized exactly once, either by ``save`` or by ``close``.
    After that the handle is dead: ``close`` becomes a no-op and ``save``
    raises ``UniverseClosedError``. Providers implement ``_save`` and
    ``_close``; this class owns the closed-status bookkeeping.
    """

    def __init__(self, directory: Path, snapshot: str, config: UniverseConfig):
        self.directory = Path(directory)
        self.snapshot = snapshot
        self.config = config
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def vms(self) -> list[VM]:
        """VMs currently running in the universe."""

    @abstractmethod
    def clusters(self) -> list[Cluster]:
        """Clusters currently running in the universe."""

    @abstractmethod
    async def _save(self, name: str) -> None:
        ...

    @abstractmethod
    async def _close(self) -> None:
        ...

    async def save(self, name: str = "") -> None:
        """Persist the universe under snapshot ``name`` and shut it down."""
        if self._closed:
            raise UniverseClosedError(str(self.directory))
        # Marked first so a failing save is never followed by a second finalize
        self._closed = True
        logger.debug({"event": "universe_save", "dir": str(self.directory), "snapshot": name})
        await self._save(name)

    async def close(self) -> None:
        """Shut the universe down, discarding changes since it was opened."""
        if self._closed:
            logger.debug({"event": "universe_close_skipped", "dir": str(self.directory)})
            return
        self._closed = True
        logger.debug({"event": "universe_close", "dir": str(self.directory)})
        await self._close()

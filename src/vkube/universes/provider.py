"""Universe provider interface and open-or-create logic."""

import importlib
import os
from pathlib import Path
from typing import Protocol

from vkube.errors import ProviderLoadError, UniverseOpenError
from vkube.logging import get_logger
from vkube.types import UniverseConfig
from vkube.universes.universe import Universe

logger = get_logger(__name__)


class UniverseProvider(Protocol):
    async def create(self, directory: Path, config: UniverseConfig) -> Universe:
        ...

    async def open(self, directory: Path, snapshot: str, config: UniverseConfig) -> Universe:
        ...


async def open_or_create_universe(
    directory: str, snapshot: str, config: UniverseConfig, provider: UniverseProvider
) -> Universe:
    """Create a universe in ``directory`` if it is missing, otherwise open it.

    Errors from the existence check other than "not found" propagate
    unchanged. Provider failures are wrapped in ``UniverseOpenError``.
    """
    if not directory:
        raise UniverseOpenError("universe directory not specified")

    path = Path(directory)
    try:
        os.stat(path)
    except FileNotFoundError:
        exists = False
    else:
        exists = True

    try:
        if exists:
            logger.info({"event": "universe_open", "dir": str(path), "snapshot": snapshot})
            universe = await provider.open(path, snapshot, config)
        else:
            logger.info({"event": "universe_create", "dir": str(path)})
            universe = await provider.create(path, config)
    except Exception as e:
        raise UniverseOpenError(
            f"getting universe: {e}", details={"dir": str(path), "snapshot": snapshot}
        ) from e

    return universe


def load_provider(target: str) -> UniverseProvider:
    """Load a provider from a ``module:attribute`` path.

    A class (or any callable) is called with no arguments to build the
    provider; anything else is used as-is.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ProviderLoadError(target, "expected 'module:attribute'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ProviderLoadError(target, str(e)) from e

    try:
        obj = getattr(module, attr)
    except AttributeError as e:
        raise ProviderLoadError(target, f"module has no attribute {attr!r}") from e

    provider = obj() if callable(obj) else obj
    if not all(callable(getattr(provider, m, None)) for m in ("create", "open")):
        raise ProviderLoadError(target, "object does not implement create() and open()")

    logger.debug({"event": "provider_loaded", "target": target})
    return provider

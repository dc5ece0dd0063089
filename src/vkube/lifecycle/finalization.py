"""Save-or-revert decision applied when a session ends."""

from vkube.errors import UniverseCloseError, UniverseSaveError
from vkube.logging import get_logger
from vkube.types import Finalization
from vkube.universes.universe import Universe

logger = get_logger(__name__)


def resolve_save_name(save_snapshot: str, opened_snapshot: str) -> str:
    """Snapshot to save to: the override if given, else the one opened."""
    return save_snapshot or opened_snapshot


async def finalize_universe(
    universe: Universe, save: bool, save_snapshot: str = ""
) -> tuple[Finalization, str | None]:
    """Save or close ``universe``. Exactly one of the two is attempted."""
    if save:
        name = resolve_save_name(save_snapshot, universe.snapshot)
        logger.info({"event": "finalize_save", "dir": str(universe.directory), "snapshot": name})
        try:
            await universe.save(name)
        except Exception as e:
            raise UniverseSaveError(
                f"saving universe: {e}", details={"snapshot": name}
            ) from e
        return Finalization.SAVE, name

    logger.info({"event": "finalize_revert", "dir": str(universe.directory)})
    try:
        await universe.close()
    except Exception as e:
        raise UniverseCloseError(f"closing universe: {e}") from e
    return Finalization.REVERT, None

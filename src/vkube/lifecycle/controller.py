"""Universe session orchestration: open, work, wait, finalize."""

import sys
import time
from datetime import timedelta
from typing import Awaitable, Callable, TextIO

from vkube.errors import UniverseOpenError, log_error
from vkube.lifecycle.cancellation import CancellationController
from vkube.lifecycle.finalization import finalize_universe
from vkube.lifecycle.reporting import format_duration, format_resources
from vkube.logging import get_logger
from vkube.types import (
    LifecycleOptions,
    LifecycleResult,
    LifecycleState,
    UniverseConfig,
)
from vkube.universes.local import LocalProvider
from vkube.universes.provider import UniverseProvider, open_or_create_universe
from vkube.universes.universe import Universe

logger = get_logger(__name__)

UniverseWork = Callable[[Universe], Awaitable[None]]


def build_config(options: LifecycleOptions, out: TextIO) -> UniverseConfig:
    return UniverseConfig(
        show_graphics=options.graphics,
        use_acceleration=options.acceleration,
        interactive=options.wait,
        command_log=out if options.verbose else None,
    )


class _Session:
    """Tracks the lifecycle state of one run for logging."""

    def __init__(self, directory: str):
        self.directory = directory
        self.state = LifecycleState.IDLE

    def enter(self, state: LifecycleState) -> None:
        logger.debug(
            {"event": "lifecycle_state", "dir": self.directory, "from": self.state.name, "to": state.name}
        )
        self.state = state


async def run_with_universe(
    options: LifecycleOptions,
    work: UniverseWork,
    provider: UniverseProvider | None = None,
    out: TextIO | None = None,
    cancellation: CancellationController | None = None,
) -> LifecycleResult:
    """Open or create a universe, run ``work`` against it and finalize it.

    Open failures are raised as ``UniverseOpenError`` before any universe
    exists. If ``work`` raises, the universe is closed without saving and
    the work's exception is re-raised as is. Otherwise the universe is
    optionally held open until interrupted, then saved or reverted
    according to ``options``. Save and close failures are raised as
    ``UniverseSaveError``/``UniverseCloseError``.
    """
    provider = provider or LocalProvider()
    out = out or sys.stdout
    cancellation = cancellation or CancellationController()
    session = _Session(options.universe_dir)

    cancellation.start()
    try:
        session.enter(LifecycleState.OPENING)
        start = time.monotonic()
        try:
            universe = await open_or_create_universe(
                options.universe_dir, options.snapshot, build_config(options, out), provider
            )
        except OSError as e:
            raise UniverseOpenError(
                f"getting universe: {e}", details={"dir": options.universe_dir}
            ) from e

        try:
            return await _drive(session, universe, options, work, out, cancellation, start)
        finally:
            # Only reached with an open universe on paths that skipped finalizing
            if not universe.closed:
                logger.warning({"event": "universe_guard_close", "dir": options.universe_dir})
                try:
                    await universe.close()
                except Exception as close_error:
                    log_error(close_error, {"dir": options.universe_dir, "after": "guard"}, logger)
    finally:
        cancellation.stop()


async def _drive(
    session: _Session,
    universe: Universe,
    options: LifecycleOptions,
    work: UniverseWork,
    out: TextIO,
    cancellation: CancellationController,
    start: float,
) -> LifecycleResult:
    session.enter(LifecycleState.RUNNING)
    try:
        await work(universe)
    except Exception:
        cancellation.cancel("work failed")
        session.enter(LifecycleState.FINALIZING)
        try:
            await universe.close()
        except Exception as close_error:
            log_error(close_error, {"dir": options.universe_dir, "after": "work_failure"}, logger)
        session.enter(LifecycleState.CLOSED)
        raise

    elapsed = timedelta(seconds=time.monotonic() - start)
    print(f"Operation took {format_duration(elapsed)}.", file=out)

    if options.wait:
        session.enter(LifecycleState.WAITING)
        print(format_resources(universe), file=out)
        print("\nHit ctrl+C to shut down", file=out)
        await cancellation.wait()

    session.enter(LifecycleState.FINALIZING)
    if options.save:
        print("Saving universe...", file=out)
    else:
        print("Closing (and reverting) universe...", file=out)
    finalization, saved_as = await finalize_universe(universe, options.save, options.save_snapshot)
    session.enter(LifecycleState.CLOSED)

    logger.info(
        {"event": "lifecycle_complete", "dir": options.universe_dir, "finalization": finalization.name}
    )
    return LifecycleResult(elapsed=elapsed, finalization=finalization, saved_as=saved_as)

"""Open, run, wait and finalize a universe."""

from vkube.lifecycle.cancellation import CancellationController
from vkube.lifecycle.controller import run_with_universe
from vkube.lifecycle.finalization import finalize_universe, resolve_save_name
from vkube.lifecycle.reporting import format_duration, format_resources, list_resources

__all__ = [
    "CancellationController",
    "run_with_universe",
    "finalize_universe",
    "resolve_save_name",
    "format_duration",
    "format_resources",
    "list_resources",
]

"""vkube command line interface."""

import asyncio
import logging
from typing import Annotated, Optional

import typer

from vkube.errors import VkubeError, log_error
from vkube.lifecycle.controller import UniverseWork, run_with_universe
from vkube.lifecycle.reporting import format_resources
from vkube.logging import configure_logging, get_logger
from vkube.types import LifecycleOptions
from vkube.universes.local import LocalProvider
from vkube.universes.provider import UniverseProvider, load_provider
from vkube.universes.universe import Universe

logger = get_logger("cli")

app = typer.Typer(
    name="vkube",
    help="Create, resume and snapshot universes of VMs and Kubernetes clusters",
    no_args_is_help=True,
    epilog="""
Examples:
  vkube new-cluster -u ./lab k8s
  vkube new-vm -u ./lab client --save-snapshot with-client
  vkube start -u ./lab -s with-client
    """,
)

UniverseOpt = Annotated[
    str, typer.Option("--universe", "-u", help="Directory containing the universe")
]
SnapshotOpt = Annotated[
    str, typer.Option("--snapshot", "-s", help="Snapshot to resume in the universe")
]
VerboseOpt = Annotated[
    bool, typer.Option("--verbose", "-v", help="Show commands being executed under the hood")
]
GraphicsOpt = Annotated[bool, typer.Option("--graphics", help="Show a GUI for each running VM")]
AccelerationOpt = Annotated[
    bool, typer.Option("--acceleration/--no-acceleration", help="Use KVM to accelerate VMs")
]
WaitOpt = Annotated[bool, typer.Option("--wait/--no-wait", "-w", help="Wait for ctrl+C before exiting")]
SaveOpt = Annotated[bool, typer.Option("--save/--no-save", help="Save the universe on exit")]
SaveSnapshotOpt = Annotated[
    str, typer.Option("--save-snapshot", help="Snapshot to save to, if different from --snapshot")
]
ProviderOpt = Annotated[
    Optional[str],
    typer.Option("--provider", help="Universe provider as module:attribute (default: local)"),
]


def resolve_provider(target: Optional[str]) -> UniverseProvider:
    if target:
        return load_provider(target)
    return LocalProvider()


def run_command(options: LifecycleOptions, provider: Optional[str], work: UniverseWork) -> None:
    """Run ``work`` inside a universe session, exiting non-zero on failure."""
    configure_logging(logging.DEBUG if options.verbose else logging.WARNING)
    try:
        asyncio.run(run_with_universe(options, work, provider=resolve_provider(provider)))
    except Exception as e:
        log_error(e, {"dir": options.universe_dir}, logger)
        typer.echo(str(e))
        raise typer.Exit(1)


def require(universe: Universe, method: str):
    func = getattr(universe, method, None)
    if func is None:
        raise VkubeError(f"universe provider does not support {method}()")
    return func


@app.command()
def start(
    universe: UniverseOpt,
    snapshot: SnapshotOpt = "",
    verbose: VerboseOpt = False,
    graphics: GraphicsOpt = False,
    acceleration: AccelerationOpt = True,
    wait: WaitOpt = True,
    save: SaveOpt = False,
    save_snapshot: SaveSnapshotOpt = "",
    provider: ProviderOpt = None,
) -> None:
    """Bring a universe up and keep it running until ctrl+C."""
    async def work(u: Universe) -> None:
        pass

    run_command(
        LifecycleOptions(universe, snapshot, save, save_snapshot, wait, verbose, graphics, acceleration),
        provider,
        work,
    )


@app.command("new-vm")
def new_vm(
    hostname: Annotated[str, typer.Argument(help="Hostname of the new VM")],
    universe: UniverseOpt,
    snapshot: SnapshotOpt = "",
    verbose: VerboseOpt = False,
    graphics: GraphicsOpt = False,
    acceleration: AccelerationOpt = True,
    wait: WaitOpt = False,
    save: SaveOpt = True,
    save_snapshot: SaveSnapshotOpt = "",
    provider: ProviderOpt = None,
) -> None:
    """Add a VM to the universe."""
    async def work(u: Universe) -> None:
        vm = require(u, "new_vm")(hostname)
        typer.echo(f'Created VM "{vm.hostname}"')

    run_command(
        LifecycleOptions(universe, snapshot, save, save_snapshot, wait, verbose, graphics, acceleration),
        provider,
        work,
    )


@app.command("new-cluster")
def new_cluster(
    name: Annotated[str, typer.Argument(help="Name of the new cluster")],
    universe: UniverseOpt,
    snapshot: SnapshotOpt = "",
    verbose: VerboseOpt = False,
    graphics: GraphicsOpt = False,
    acceleration: AccelerationOpt = True,
    wait: WaitOpt = False,
    save: SaveOpt = True,
    save_snapshot: SaveSnapshotOpt = "",
    provider: ProviderOpt = None,
) -> None:
    """Add a Kubernetes cluster to the universe."""
    async def work(u: Universe) -> None:
        cluster = require(u, "new_cluster")(name)
        typer.echo(f'Created cluster "{cluster.name}"')

    run_command(
        LifecycleOptions(universe, snapshot, save, save_snapshot, wait, verbose, graphics, acceleration),
        provider,
        work,
    )


@app.command("list")
def list_command(
    universe: UniverseOpt,
    snapshot: SnapshotOpt = "",
    verbose: VerboseOpt = False,
    provider: ProviderOpt = None,
) -> None:
    """Show the clusters and VMs in a universe snapshot."""
    async def work(u: Universe) -> None:
        typer.echo(format_resources(u))

    run_command(LifecycleOptions(universe, snapshot, verbose=verbose), provider, work)


def main() -> None:
    """Run the vkube CLI."""
    app()

"""Human-readable reporting of universe resources and timings."""

from datetime import timedelta

from vkube.universes.universe import Universe


def list_resources(universe: Universe) -> list[str]:
    lines = []
    for cluster in universe.clusters():
        lines.append(f'Cluster "{cluster.name}": export KUBECONFIG="{cluster.kubeconfig}"')
    for vm in universe.vms():
        lines.append(f'VM "{vm.hostname}": ssh -p{vm.ssh_port} root@localhost')
    return lines


def format_resources(universe: Universe) -> str:
    """Block listing how to reach every cluster and VM."""
    lines = ["Resources available:", ""]
    lines.extend(f"  {line}" for line in list_resources(universe))
    return "\n".join(lines)


def format_duration(elapsed: timedelta) -> str:
    """Milliseconds under one second, whole seconds otherwise (truncated)."""
    if elapsed < timedelta(seconds=1):
        return f"{elapsed // timedelta(milliseconds=1)}ms"
    return f"{elapsed // timedelta(seconds=1)}s"

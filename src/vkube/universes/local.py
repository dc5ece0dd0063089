"""Directory-backed universe provider.

The local provider keeps VM and cluster definitions in a JSON manifest
inside the universe directory. It does not boot anything; it exists so
universes can be created, snapshotted and reverted without a hypervisor.

Manifest layout::

    <dir>/universe.json    {"snapshots": {"<name>": {"vms": [...], "clusters": [...]}}}
    <dir>/clusters/<name>/kubeconfig
"""

import json
import os
import shutil
import socket
import tempfile
from pathlib import Path
from typing import Any, Dict

from vkube.errors import SnapshotNotFoundError, UniverseClosedError
from vkube.logging import get_logger
from vkube.types import SSH_PORT, VM, Cluster, UniverseConfig
from vkube.universes.universe import Universe

logger = get_logger(__name__)

MANIFEST_NAME = "universe.json"
DEFAULT_SNAPSHOT = "default"

KUBECONFIG_TEMPLATE = """apiVersion: v1
kind: Config
clusters:
- name: {name}
  cluster:
    server: https://127.0.0.1:{port}
contexts:
- name: {name}
  context:
    cluster: {name}
    user: admin
current-context: {name}
users:
- name: admin
  user: {{}}
"""


def snapshot_key(name: str) -> str:
    return name or DEFAULT_SNAPSHOT


def find_free_port() -> int:
    """Ask the kernel for an unused localhost TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def read_manifest(directory: Path) -> Dict[str, Any]:
    path = directory / MANIFEST_NAME
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def write_manifest(directory: Path, manifest: Dict[str, Any]) -> None:
    """Atomically replace the manifest; a failed write leaves the old one."""
    fd, tmp = tempfile.mkstemp(prefix=".universe-", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(manifest, fh, indent=2, sort_keys=True)
        os.replace(tmp, directory / MANIFEST_NAME)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


class LocalUniverse(Universe):
    """Universe whose state lives in a JSON manifest."""

    def __init__(
        self,
        directory: Path,
        snapshot: str,
        config: UniverseConfig,
        state: Dict[str, Any] | None = None,
        created: bool = False,
    ):
        super().__init__(directory, snapshot, config)
        # Set for a universe made in this session until its first save
        self._created = created
        state = state or {}
        self._vms: Dict[str, Dict[str, Any]] = {
            vm["hostname"]: vm for vm in state.get("vms", [])
        }
        self._clusters: Dict[str, Dict[str, Any]] = {
            c["name"]: c for c in state.get("clusters", [])
        }

    def _trace(self, line: str) -> None:
        log = self.config.command_log
        if log is not None:
            log.write(f"+ {line}\n")
            log.flush()

    def _check_open(self) -> None:
        if self.closed:
            raise UniverseClosedError(str(self.directory))

    def kubeconfig_path(self, name: str) -> Path:
        return self.directory / "clusters" / name / "kubeconfig"

    def vms(self) -> list[VM]:
        return [
            VM(
                hostname=vm["hostname"],
                forwarded_ports={int(g): int(h) for g, h in vm["ports"].items()},
            )
            for vm in self._vms.values()
        ]

    def clusters(self) -> list[Cluster]:
        return [
            Cluster(name=c["name"], kubeconfig=self.kubeconfig_path(c["name"]))
            for c in self._clusters.values()
        ]

    def new_vm(self, hostname: str) -> VM:
        """Register a VM with its SSH port forwarded to localhost."""
        self._check_open()
        if not hostname:
            raise ValueError("VM hostname must not be empty")
        if hostname in self._vms:
            raise ValueError(f"VM {hostname!r} already exists")

        port = find_free_port()
        self._vms[hostname] = {
            "hostname": hostname,
            "ports": {str(SSH_PORT): port},
            "graphics": self.config.show_graphics,
            "acceleration": self.config.use_acceleration,
        }
        self._trace(f"vm create {hostname} ssh={port}")
        logger.info({"event": "vm_created", "hostname": hostname, "ssh_port": port})
        return VM(hostname=hostname, forwarded_ports={SSH_PORT: port})

    def new_cluster(self, name: str) -> Cluster:
        """Register a cluster and reserve a port for its API server."""
        self._check_open()
        if not name:
            raise ValueError("Cluster name must not be empty")
        if name in self._clusters:
            raise ValueError(f"Cluster {name!r} already exists")

        port = find_free_port()
        self._clusters[name] = {"name": name, "api_port": port}
        self._trace(f"cluster create {name} api={port}")
        logger.info({"event": "cluster_created", "cluster": name, "api_port": port})
        return Cluster(name=name, kubeconfig=self.kubeconfig_path(name))

    def state(self) -> Dict[str, Any]:
        return {
            "vms": list(self._vms.values()),
            "clusters": list(self._clusters.values()),
        }

    async def _save(self, name: str) -> None:
        key = snapshot_key(name)
        self._trace(f"snapshot save {key}")

        manifest = read_manifest(self.directory)
        manifest.setdefault("snapshots", {})[key] = self.state()
        write_manifest(self.directory, manifest)
        self._created = False

        # Only after the manifest records the clusters
        for cluster in self._clusters.values():
            path = self.kubeconfig_path(cluster["name"])
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                KUBECONFIG_TEMPLATE.format(name=cluster["name"], port=cluster["api_port"]),
                encoding="utf-8",
            )
        logger.info({"event": "snapshot_saved", "dir": str(self.directory), "snapshot": key})

    async def _close(self) -> None:
        self._trace("universe close")
        self._vms.clear()
        self._clusters.clear()

        if self._created:
            # Never saved, so nothing to revert to
            self._trace(f"universe remove {self.directory}")
            shutil.rmtree(self.directory)
            logger.info({"event": "universe_removed", "dir": str(self.directory)})


class LocalProvider:
    """Creates and opens manifest-backed universes."""

    async def create(self, directory: Path, config: UniverseConfig) -> LocalUniverse:
        directory = Path(directory)
        directory.mkdir(parents=True)
        write_manifest(directory, {"snapshots": {}})
        if config.command_log is not None:
            config.command_log.write(f"+ universe create {directory}\n")
        return LocalUniverse(directory, "", config, created=True)

    async def open(self, directory: Path, snapshot: str, config: UniverseConfig) -> LocalUniverse:
        directory = Path(directory)
        key = snapshot_key(snapshot)
        try:
            manifest = read_manifest(directory)
        except FileNotFoundError as e:
            raise SnapshotNotFoundError(str(directory), key) from e

        state = manifest.get("snapshots", {}).get(key)
        if state is None:
            raise SnapshotNotFoundError(str(directory), key)

        if config.command_log is not None:
            config.command_log.write(f"+ universe open {directory} snapshot={key}\n")
        return LocalUniverse(directory, snapshot, config, state)

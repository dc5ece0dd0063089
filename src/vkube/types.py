"""Core type definitions"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import TextIO

LifecycleState = Enum(
    'LifecycleState', ['IDLE', 'OPENING', 'RUNNING', 'WAITING', 'FINALIZING', 'CLOSED']
)
Finalization = Enum('Finalization', ['SAVE', 'REVERT'])

SSH_PORT = 22


@dataclass(frozen=True)
class UniverseConfig:
    """Universe behaviour, fixed before the universe is opened"""
    show_graphics: bool = False
    use_acceleration: bool = True
    interactive: bool = False
    command_log: TextIO | None = None


@dataclass(frozen=True)
class VM:
    """Virtual machine running inside a universe"""
    hostname: str
    forwarded_ports: dict[int, int] = field(default_factory=dict)

    def forwarded_port(self, guest_port: int) -> int:
        return self.forwarded_ports.get(guest_port, 0)

    @property
    def ssh_port(self) -> int:
        return self.forwarded_port(SSH_PORT)


@dataclass(frozen=True)
class Cluster:
    """Kubernetes cluster running inside a universe"""
    name: str
    kubeconfig: Path


@dataclass(frozen=True)
class LifecycleOptions:
    """Options controlling one open/work/finalize session"""
    universe_dir: str
    snapshot: str = ""
    save: bool = False
    save_snapshot: str = ""
    wait: bool = False
    verbose: bool = False
    graphics: bool = False
    acceleration: bool = True


@dataclass(frozen=True)
class LifecycleResult:
    """Outcome of a completed session"""
    elapsed: timedelta
    finalization: Finalization
    saved_as: str | None = None

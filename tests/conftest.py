import logging
import pytest
from pathlib import Path

from vkube.types import VM, Cluster, UniverseConfig
from vkube.universes.local import LocalProvider
from vkube.universes.universe import Universe


class RecordingUniverse(Universe):
    """Universe that records finalize calls instead of doing anything"""

    def __init__(self, directory, snapshot, config, fail_save=None, fail_close=None):
        super().__init__(directory, snapshot, config)
        self.saves: list[str] = []
        self.close_calls = 0
        self.fail_save = fail_save
        self.fail_close = fail_close

    def vms(self) -> list[VM]:
        return [VM(hostname="node1", forwarded_ports={22: 50022})]

    def clusters(self) -> list[Cluster]:
        return [Cluster(name="k8s", kubeconfig=Path(self.directory) / "k8s.kubeconfig")]

    async def _save(self, name: str) -> None:
        self.saves.append(name)
        if self.fail_save:
            raise self.fail_save

    async def _close(self) -> None:
        self.close_calls += 1
        if self.fail_close:
            raise self.fail_close


class RecordingProvider:
    """Provider that hands out RecordingUniverse instances"""

    def __init__(self, fail_open=None, fail_save=None, fail_close=None):
        self.calls: list[tuple] = []
        self.universes: list[RecordingUniverse] = []
        self.fail_open = fail_open
        self.fail_save = fail_save
        self.fail_close = fail_close

    def _make(self, directory, snapshot, config):
        if self.fail_open:
            raise self.fail_open
        u = RecordingUniverse(directory, snapshot, config, self.fail_save, self.fail_close)
        self.universes.append(u)
        return u

    async def create(self, directory, config):
        self.calls.append(("create", str(directory)))
        return self._make(directory, "", config)

    async def open(self, directory, snapshot, config):
        self.calls.append(("open", str(directory), snapshot))
        return self._make(directory, snapshot, config)

    @property
    def universe(self) -> RecordingUniverse:
        assert len(self.universes) == 1
        return self.universes[0]


@pytest.fixture
def recording_provider():
    return RecordingProvider()


@pytest.fixture
def local_provider():
    return LocalProvider()


@pytest.fixture
def universe_dir(tmp_path: Path) -> Path:
    """Path for a universe that does not exist yet"""
    return tmp_path / "universe"


@pytest.fixture
def config():
    return UniverseConfig()


@pytest.fixture
def provider_factory():
    """Build a RecordingProvider with injected failures"""
    return RecordingProvider


@pytest.fixture(autouse=True)
def reset_vkube_logger():
    """Drop handlers installed by the CLI so they never outlive a test"""
    yield
    app_logger = logging.getLogger("vkube")
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
    app_logger.propagate = True
    app_logger.setLevel(logging.NOTSET)

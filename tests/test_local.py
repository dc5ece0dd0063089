"""Tests for the manifest-backed local provider."""

import json
from io import StringIO

import pytest

from vkube.errors import SnapshotNotFoundError, UniverseClosedError
from vkube.types import UniverseConfig
from vkube.universes import local as local_module
from vkube.universes.local import MANIFEST_NAME


@pytest.mark.asyncio
async def test_create_writes_empty_manifest(local_provider, universe_dir, config):
    universe = await local_provider.create(universe_dir, config)

    manifest = json.loads((universe_dir / MANIFEST_NAME).read_text())
    assert manifest == {"snapshots": {}}
    assert universe.vms() == []
    assert universe.clusters() == []
    assert universe.snapshot == ""


@pytest.mark.asyncio
async def test_create_existing_directory_fails(local_provider, tmp_path, config):
    with pytest.raises(FileExistsError):
        await local_provider.create(tmp_path, config)


@pytest.mark.asyncio
async def test_save_and_reopen(local_provider, universe_dir, config):
    universe = await local_provider.create(universe_dir, config)
    vm = universe.new_vm("client")
    universe.new_cluster("k8s")
    await universe.save("base")

    reopened = await local_provider.open(universe_dir, "base", config)

    assert [v.hostname for v in reopened.vms()] == ["client"]
    assert reopened.vms()[0].ssh_port == vm.ssh_port
    assert vm.ssh_port > 0
    cluster = reopened.clusters()[0]
    assert cluster.name == "k8s"
    assert cluster.kubeconfig == universe_dir / "clusters" / "k8s" / "kubeconfig"
    assert "current-context: k8s" in cluster.kubeconfig.read_text()


@pytest.mark.asyncio
async def test_close_reverts_changes(local_provider, universe_dir, config):
    universe = await local_provider.create(universe_dir, config)
    await universe.save("base")

    universe = await local_provider.open(universe_dir, "base", config)
    universe.new_vm("scratch")
    await universe.close()

    reopened = await local_provider.open(universe_dir, "base", config)
    assert reopened.vms() == []


@pytest.mark.asyncio
async def test_empty_snapshot_name_is_default(local_provider, universe_dir, config):
    universe = await local_provider.create(universe_dir, config)
    universe.new_vm("client")
    await universe.save("")

    manifest = json.loads((universe_dir / MANIFEST_NAME).read_text())
    assert list(manifest["snapshots"]) == ["default"]

    reopened = await local_provider.open(universe_dir, "", config)
    assert reopened.snapshot == ""
    assert len(reopened.vms()) == 1


@pytest.mark.asyncio
async def test_save_keeps_other_snapshots(local_provider, universe_dir, config):
    universe = await local_provider.create(universe_dir, config)
    await universe.save("base")

    universe = await local_provider.open(universe_dir, "base", config)
    universe.new_vm("extra")
    await universe.save("with-extra")

    base = await local_provider.open(universe_dir, "base", config)
    extra = await local_provider.open(universe_dir, "with-extra", config)
    assert base.vms() == []
    assert len(extra.vms()) == 1


@pytest.mark.asyncio
async def test_open_unknown_snapshot(local_provider, universe_dir, config):
    universe = await local_provider.create(universe_dir, config)
    await universe.save("base")

    with pytest.raises(SnapshotNotFoundError, match="nope"):
        await local_provider.open(universe_dir, "nope", config)


@pytest.mark.asyncio
async def test_open_without_manifest(local_provider, tmp_path, config):
    with pytest.raises(SnapshotNotFoundError):
        await local_provider.open(tmp_path, "", config)


@pytest.mark.asyncio
async def test_duplicate_names_rejected(local_provider, universe_dir, config):
    universe = await local_provider.create(universe_dir, config)
    universe.new_vm("client")
    universe.new_cluster("k8s")

    with pytest.raises(ValueError):
        universe.new_vm("client")
    with pytest.raises(ValueError):
        universe.new_cluster("k8s")


@pytest.mark.asyncio
async def test_changes_after_close_rejected(local_provider, universe_dir, config):
    universe = await local_provider.create(universe_dir, config)
    await universe.close()

    with pytest.raises(UniverseClosedError):
        universe.new_vm("late")


@pytest.mark.asyncio
async def test_command_log_and_vm_options(local_provider, universe_dir):
    log = StringIO()
    config = UniverseConfig(show_graphics=True, use_acceleration=False, command_log=log)

    universe = await local_provider.create(universe_dir, config)
    universe.new_vm("client")
    await universe.save("base")

    trace = log.getvalue().splitlines()
    assert trace[0] == f"+ universe create {universe_dir}"
    assert trace[1].startswith("+ vm create client ssh=")
    assert trace[2] == "+ snapshot save base"

    manifest = json.loads((universe_dir / MANIFEST_NAME).read_text())
    vm = manifest["snapshots"]["base"]["vms"][0]
    assert vm["graphics"] is True
    assert vm["acceleration"] is False


@pytest.mark.asyncio
async def test_close_before_first_save_removes_universe(local_provider, universe_dir, config):
    universe = await local_provider.create(universe_dir, config)
    universe.new_vm("client")
    await universe.close()

    assert not universe_dir.exists()

    recreated = await local_provider.create(universe_dir, config)
    assert recreated.vms() == []


@pytest.mark.asyncio
async def test_close_after_save_keeps_universe(local_provider, universe_dir, config):
    universe = await local_provider.create(universe_dir, config)
    await universe.save("base")

    universe = await local_provider.open(universe_dir, "base", config)
    await universe.close()

    assert (universe_dir / MANIFEST_NAME).exists()


@pytest.mark.asyncio
async def test_failed_save_leaves_no_kubeconfig(local_provider, universe_dir, config, monkeypatch):
    """Test that kubeconfig stubs only appear once the manifest is written"""
    universe = await local_provider.create(universe_dir, config)
    cluster = universe.new_cluster("k8s")

    def failing_write(directory, manifest):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(local_module, "write_manifest", failing_write)

    with pytest.raises(OSError):
        await universe.save("base")

    assert not cluster.kubeconfig.exists()
    assert json.loads((universe_dir / MANIFEST_NAME).read_text()) == {"snapshots": {}}

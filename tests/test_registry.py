import json

import pytest

from ignition.engine import ExecutionEngine
from ignition.registry import RegistryEntry, read_registry, registry_from_deployment, write_registry
from modules.contract_upgrade import ContractUpgrade
from tests.conftest import CHAIN_ID, CONTRACT_ABI


@pytest.fixture
def upgrade_result(chain_client, artifacts, journal):
    engine = ExecutionEngine(chain_client, artifacts, journal, silent=True)
    return engine.run(ContractUpgrade)


def _entry(chain_id=CHAIN_ID, name="Contract"):
    return RegistryEntry(
        chain_id=chain_id,
        name=name,
        address="0x" + "12" * 20,
        abi=CONTRACT_ABI,
        tx_hash="0x" + "ab" * 32,
        block_number=7,
        deployer="0x" + "34" * 20,
    )


def test_registry_from_deployment(tmp_path, artifacts, upgrade_result):
    filepath = registry_from_deployment(
        module=ContractUpgrade,
        result=upgrade_result,
        artifacts=artifacts,
        chain_id=CHAIN_ID,
        output_filepath=tmp_path / "registry.json",
        silent=True,
    )

    entries = {entry.name: entry for entry in read_registry(filepath)}
    assert sorted(entries) == [
        "ContractImplementation",
        "ContractInstance",
        "ContractProxy",
        "ContractV2Implementation",
        "ContractV2Instance",
    ]

    proxy = upgrade_result.results["ContractDeployment#ContractProxy"]
    instance = entries["ContractInstance"]
    assert instance.address == proxy["address"]
    assert instance.tx_hash == proxy["tx_hash"]
    assert instance.block_number == proxy["block_number"]
    assert {e["name"] for e in instance.abi if e["type"] == "function"} >= {"initialize"}
    assert entries["ContractV2Instance"].address == proxy["address"]


def test_registry_names_remap_entries(tmp_path, artifacts, upgrade_result):
    filepath = registry_from_deployment(
        module=ContractUpgrade,
        result=upgrade_result,
        artifacts=artifacts,
        chain_id=CHAIN_ID,
        output_filepath=tmp_path / "registry.json",
        registry_names={"ContractDeployment#ContractInstance": "Contract"},
        silent=True,
    )
    names = {entry.name for entry in read_registry(filepath)}
    assert "Contract" in names
    assert "ContractInstance" not in names


def test_registry_name_collision(tmp_path, artifacts, upgrade_result):
    with pytest.raises(ValueError, match="more than one contract"):
        registry_from_deployment(
            module=ContractUpgrade,
            result=upgrade_result,
            artifacts=artifacts,
            chain_id=CHAIN_ID,
            output_filepath=tmp_path / "registry.json",
            registry_names={"ContractInstance": "Same", "ContractV2Instance": "Same"},
            silent=True,
        )


def test_write_registry_is_sorted_and_normalized(tmp_path):
    filepath = write_registry([_entry(name="B"), _entry(name="A")], tmp_path / "r.json", True)
    data = json.loads(filepath.read_text())
    assert list(data[str(CHAIN_ID)]) == ["A", "B"]
    abi_names = [e["name"] for e in data[str(CHAIN_ID)]["A"]["abi"]]
    assert abi_names == sorted(abi_names)


def test_write_registry_merges_other_chains(tmp_path):
    filepath = tmp_path / "registry.json"
    write_registry([_entry(chain_id=1)], filepath, silent=True)
    write_registry([_entry(chain_id=137)], filepath, silent=True)
    assert sorted(e.chain_id for e in read_registry(filepath)) == [1, 137]


def test_write_registry_never_overwrites_same_chain(tmp_path):
    filepath = tmp_path / "registry.json"
    write_registry([_entry()], filepath, silent=True)
    output = write_registry([_entry(name="Other")], filepath, silent=True)
    assert output == tmp_path / "registry.unmerged.json"
    assert [e.name for e in read_registry(filepath)] == ["Contract"]


def test_empty_registry_is_not_written(tmp_path):
    filepath = tmp_path / "registry.json"
    assert write_registry([], filepath, silent=True) == filepath
    assert not filepath.exists()

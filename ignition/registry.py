import json
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from ignition.actions import AttachExistingAction, DeployAction
from ignition.client import ABI, ArtifactSource
from ignition.engine import DeploymentResult
from ignition.module import Module
from ignition.utils import _load_json

ChainId = int
ContractName = str


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """Represents a single entry in a contract registry."""

    chain_id: ChainId
    name: ContractName
    address: ChecksumAddress
    abi: ABI
    tx_hash: str
    block_number: int
    deployer: str


def read_registry(filepath: Path) -> List[RegistryEntry]:
    data = _load_json(filepath)
    registry_entries = list()
    for chain_id, entries in data.items():
        for contract_name, artifacts in entries.items():
            registry_entry = RegistryEntry(
                chain_id=int(chain_id),
                name=contract_name,
                address=artifacts["address"],
                abi=artifacts["abi"],
                tx_hash=artifacts["tx_hash"],
                block_number=artifacts["block_number"],
                deployer=artifacts["deployer"],
            )
            registry_entries.append(registry_entry)
    return registry_entries


def write_registry(entries: List[RegistryEntry], filepath: Path, silent: bool = False) -> Path:
    """Writes a contract registry to a file, merging into an existing one for other chains."""

    if not entries:
        if not silent:
            print("No entries provided.")
        return filepath

    # Sort registry entries to enforce common order
    entries = sorted(entries, key=lambda entry: (str(entry.chain_id), entry.name))

    data = defaultdict(dict)
    for entry in entries:
        entry_abi = list(entry.abi)
        entry_abi.sort(key=lambda d: (d["type"], d.get("name", "")))

        data[str(entry.chain_id)][entry.name] = {
            "address": entry.address,
            "abi": entry_abi,
            "tx_hash": entry.tx_hash,
            "block_number": int(entry.block_number),
            "deployer": entry.deployer,
        }

    filepath.parent.mkdir(parents=True, exist_ok=True)

    # If the file already exists, attempt to merge the data, if not create a new file
    if filepath.exists():
        if not silent:
            print(f"Updating existing registry at {filepath}.")
        existing_data = _load_json(filepath)

        if any(chain_id in existing_data for chain_id in data):
            filepath = filepath.with_suffix(".unmerged.json")
            if not silent:
                print(
                    "Cannot merge registries with overlapping chain IDs.\n"
                    f"Writing to {filepath} to avoid overwriting existing data."
                )
        else:
            existing_data.update(data)
            data = existing_data
    elif not silent:
        print(f"Creating new registry at {filepath}.")

    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)

    return filepath


def _get_entries(
    module: Module,
    result: DeploymentResult,
    artifacts: ArtifactSource,
    chain_id: ChainId,
    registry_names: Dict[str, ContractName],
) -> List[RegistryEntry]:
    """One entry per contract handle (deployed or attached), named by action id."""
    entries = dict()
    for action in module.actions.values():
        if not isinstance(action, (DeployAction, AttachExistingAction)):
            continue
        snapshot = result.results.get(action.id)
        if snapshot is None:
            continue

        name = registry_names.get(action.id, registry_names.get(action.local_id, action.local_id))
        if name in entries:
            raise ValueError(
                f"Registry name '{name}' is used by more than one contract; "
                "pass registry_names to disambiguate"
            )
        entries[name] = RegistryEntry(
            chain_id=chain_id,
            name=name,
            address=to_checksum_address(snapshot["address"]),
            abi=artifacts.get_artifact(action.artifact_name).abi,
            tx_hash=snapshot.get("tx_hash", ""),
            block_number=snapshot.get("block_number", 0),
            deployer=snapshot.get("deployer", ""),
        )
    return list(entries.values())


def registry_from_deployment(
    module: Module,
    result: DeploymentResult,
    artifacts: ArtifactSource,
    chain_id: ChainId,
    output_filepath: Path,
    registry_names: Optional[Dict[str, ContractName]] = None,
    silent: bool = False,
) -> Path:
    """Creates a contract registry from the contracts deployed or attached by a module."""
    registry_names = registry_names or dict()
    entries = _get_entries(
        module=module,
        result=result,
        artifacts=artifacts,
        chain_id=chain_id,
        registry_names=registry_names,
    )
    output_filepath = write_registry(entries=entries, filepath=output_filepath, silent=silent)
    if not silent:
        print(f"(i) Registry written to {output_filepath}!")
    return output_filepath

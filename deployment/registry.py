import json
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional

from ape.contracts import ContractInstance
from eth_typing import ABI, ChecksumAddress
from eth_utils import to_checksum_address

from deployment.utils import _load_json, get_contract_container

ChainId = int
ContractName = str


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """Represents a single deployment artifact in a contract registry."""

    chain_id: ChainId
    name: ContractName
    address: ChecksumAddress
    abi: ABI
    tx_hash: str
    block_number: int
    deployer: str


def _get_abi(contract_instance: ContractInstance) -> ABI:
    """Returns the ABI of a contract instance."""
    contract_abi = list()
    for entry in contract_instance.contract_type.abi:
        contract_abi.append(entry.model_dump(mode="json", by_alias=True))
    return contract_abi


def _get_entry(contract_instance: ContractInstance) -> RegistryEntry:
    contract_abi = _get_abi(contract_instance)
    contract_name = contract_instance.contract_type.name
    receipt = contract_instance.receipt
    entry = RegistryEntry(
        name=contract_name,
        address=to_checksum_address(contract_instance.address),
        abi=contract_abi,
        chain_id=receipt.chain_id,
        tx_hash=receipt.txn_hash,
        block_number=receipt.block_number,
        deployer=receipt.transaction.sender,
    )
    return entry


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


def get_registry_entry(
    filepath: Path, chain_id: ChainId, name: ContractName
) -> Optional[RegistryEntry]:
    """Returns the entry recorded for a contract on a chain, if any."""
    if not filepath.exists():
        return None
    for entry in read_registry(filepath=filepath):
        if entry.chain_id == chain_id and entry.name == name:
            return entry
    return None


def _has_conflicts(
    existing_data: dict, data: dict, replace: Iterable[ContractName] = ()
) -> bool:
    """
    True if any contract in data is already recorded at a different address,
    unless it is named in replace.
    """
    for chain_id, entries in data.items():
        existing_entries = existing_data.get(chain_id, {})
        for name, artifacts in entries.items():
            if name in replace:
                continue
            existing = existing_entries.get(name)
            if existing and existing["address"] != artifacts["address"]:
                return True
    return False


def write_registry(
    entries: List[RegistryEntry],
    filepath: Path,
    silent: bool = False,
    replace: Iterable[ContractName] = (),
) -> Path:
    """Writes a contract registry to a file, merging into an existing one."""

    if not entries:
        if not silent:
            print("No entries provided.")
        return filepath

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

    if filepath.exists():
        existing_data = _load_json(filepath)
        if _has_conflicts(existing_data, data, replace=set(replace)):
            filepath = filepath.with_suffix(".unmerged.json")
            if not silent:
                print(
                    "Cannot merge registries with conflicting contract addresses.\n"
                    f"Writing to {filepath} to avoid overwriting existing data."
                )
        else:
            if not silent:
                print(f"Updating existing registry at {filepath}.")
            for chain_id, chain_entries in data.items():
                existing_data.setdefault(chain_id, {}).update(chain_entries)
            data = existing_data
    elif not silent:
        print(f"Creating new registry at {filepath}.")

    # common order: chain id, then contract name
    ordered = {
        chain_id: dict(sorted(data[chain_id].items())) for chain_id in sorted(data, key=str)
    }
    with open(filepath, "w") as file:
        json.dump(ordered, file, **STANDARD_REGISTRY_JSON_FORMAT)

    return filepath


def registry_from_ape_deployments(
    deployments: List[ContractInstance],
    output_filepath: Path,
    replace: Iterable[ContractName] = (),
    silent: bool = False,
) -> Path:
    """Creates a contract registry from ape deployments API."""
    entries = [_get_entry(instance) for instance in deployments]
    output_filepath = write_registry(
        entries=entries, filepath=output_filepath, silent=silent, replace=replace
    )
    if not silent:
        print(f"(i) Registry written to {output_filepath}!")
    return output_filepath


def contracts_from_registry(filepath: Path, chain_id: ChainId) -> Dict[str, ContractInstance]:
    """Returns a dictionary of contract instances from a contract registry."""
    registry_entries = read_registry(filepath=filepath)
    deployments = dict()
    for registry_entry in registry_entries:
        if registry_entry.chain_id != chain_id:
            continue
        contract_type = registry_entry.name
        contract_container = get_contract_container(contract_type)
        contract_instance = contract_container.at(registry_entry.address)
        deployments[contract_type] = contract_instance
    return deployments

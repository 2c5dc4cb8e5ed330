import typing
from typing import Any, Dict, Sequence

from ape import accounts, networks, project
from ape.api import AccountAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractContainer
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from ignition.client import (
    Artifact,
    ArtifactSource,
    ChainClient,
    DeployResult,
    TransactionResult,
)
from ignition.confirm import _confirm_resolution
from ignition.errors import MissingArtifactError
from ignition.utils import is_local_chain


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise MissingArtifactError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            contract_container = getattr(dependency_api, contract)
            return contract_container
        except AttributeError:
            continue
    raise MissingArtifactError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container


def _named_args(abi: typing.Optional[Dict[str, Any]], args: Sequence[Any]) -> Dict[str, Any]:
    inputs = abi.get("inputs", []) if abi else []
    return {
        (abi_input.get("name") or f"arg{position}"): arg
        for position, (abi_input, arg) in enumerate(zip(inputs, args))
    }


class ApeArtifactSource(ArtifactSource):
    """Artifacts compiled by the ape project, including its dependencies (e.g. openzeppelin)."""

    def __init__(self):
        self._cache: Dict[str, Artifact] = dict()

    def get_artifact(self, name: str) -> Artifact:
        if name not in self._cache:
            contract_type = get_contract_container(name).contract_type
            abi = [entry.model_dump(mode="json", by_alias=True) for entry in contract_type.abi]
            bytecode = ""
            if contract_type.deployment_bytecode:
                bytecode = contract_type.deployment_bytecode.bytecode or ""
            self._cache[name] = Artifact(name=name, abi=abi, bytecode=bytecode)
        return self._cache[name]


class ApeChainClient(ChainClient):
    """
    Represents an ape account plus annotated transaction execution.
    Every submission is confirmed interactively unless autosign is enabled.
    """

    def __init__(
        self,
        account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
        verify: bool = False,
    ):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        self._account.set_autosign(autosign)
        self.verify = verify

    @property
    def chain_id(self) -> int:
        return networks.provider.network.chain_id

    def get_account(self, index: int) -> ChecksumAddress:
        """
        On local networks the Nth test account; on live networks only the
        transacting account (index 0) is available.
        """
        if is_local_chain(self.chain_id):
            return to_checksum_address(accounts.test_accounts[index].address)
        if index != 0:
            raise ValueError("Only account 0 (the deployer) is available on live networks.")
        return to_checksum_address(self._account.address)

    def deploy(self, artifact: Artifact, args: Sequence[Any]) -> DeployResult:
        container = get_contract_container(artifact.name)
        if not self._autosign:
            _confirm_resolution(_named_args(artifact.constructor, args), f"Deploy {artifact.name}")

        instance = self._account.deploy(container, *args, publish=self.verify)
        receipt = instance.receipt
        return DeployResult(
            address=to_checksum_address(instance.address),
            tx_hash=receipt.txn_hash,
            block_number=receipt.block_number,
            deployer=receipt.transaction.sender,
        )

    def send_transaction(
        self, artifact: Artifact, address: str, function: str, args: Sequence[Any]
    ) -> TransactionResult:
        abi = artifact.get_function_abi(function, args)
        description = f"Transact {artifact.name}[{address[:10]}].{function}"
        if not self._autosign:
            _confirm_resolution(_named_args(abi, args), description)
        else:
            print(f"\n{description}")

        instance = get_contract_container(artifact.name).at(address)
        method = getattr(instance, function)
        receipt = method(*args, sender=self._account)
        return TransactionResult(
            tx_hash=receipt.txn_hash,
            block_number=receipt.block_number,
            sender=receipt.transaction.sender,
        )

    def print_info(self) -> None:
        print(
            f"Account: {self._account.address}",
            f"Verify: {self.verify}",
            f"Ecosystem: {networks.provider.network.ecosystem.name}",
            f"Network: {networks.provider.network.name}",
            f"Chain ID: {networks.provider.network.chain_id}",
            f"Gas Price: {networks.provider.gas_price}",
            sep="\n",
        )

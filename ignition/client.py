import typing
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Sequence

from eth_typing import ChecksumAddress
from eth_utils.abi import collapse_if_tuple, function_abi_to_4byte_selector
from hexbytes import HexBytes
from web3.auto import w3

from ignition.errors import BuildError, MissingArtifactError
from ignition.utils import _load_json

ABI = List[Dict[str, Any]]


class DeployResult(NamedTuple):
    """The terminal result of a mined contract deployment."""

    address: ChecksumAddress
    tx_hash: str
    block_number: int
    deployer: str


class TransactionResult(NamedTuple):
    """The terminal result of a mined contract call."""

    tx_hash: str
    block_number: int
    sender: str


def _input_types(abi: Dict[str, Any]) -> List[str]:
    return [collapse_if_tuple(abi_input) for abi_input in abi.get("inputs", [])]


class Artifact(NamedTuple):
    """The interface (ABI) and bytecode of a compiled contract."""

    name: str
    abi: ABI
    bytecode: str = ""

    @property
    def constructor(self) -> typing.Optional[Dict[str, Any]]:
        for entry in self.abi:
            if entry.get("type") == "constructor":
                return entry
        return None

    def functions(self, name: str) -> ABI:
        return [e for e in self.abi if e.get("type") == "function" and e.get("name") == name]

    def check_function(self, name: str, arity: int) -> None:
        """Raises a build error unless the artifact declares `name` taking `arity` inputs."""
        method_abis = self.functions(name)
        if not method_abis:
            raise BuildError(f"{self.name} has no function named '{name}'")
        if not any(len(abi.get("inputs", [])) == arity for abi in method_abis):
            raise BuildError(f"{self.name}.{name} does not accept {arity} argument(s)")

    def check_constructor(self, arity: int) -> None:
        constructor = self.constructor
        expected = len(constructor.get("inputs", [])) if constructor else 0
        if expected != arity:
            raise BuildError(
                f"Constructor parameters length mismatch - "
                f"{self.name} ABI requires {expected}, Got {arity}."
            )

    def get_function_abi(self, name: str, args: Sequence[Any]) -> Dict[str, Any]:
        """Selects the (possibly overloaded) function ABI matching the given arguments."""
        method_abis = self.functions(name)
        if len(method_abis) == 0:
            raise ValueError(f"{self.name} has no function named '{name}'")

        abis_matching_args_length = [
            abi for abi in method_abis if len(abi.get("inputs", [])) == len(args)
        ]
        for abi in abis_matching_args_length:
            if all(w3.is_encodable(t, arg) for t, arg in zip(_input_types(abi), args)):
                return abi
        raise ValueError(
            f"Could not find ABI for '{name}' with {len(args)} arg(s) and given type(s)"
        )

    def encode_function_call(self, name: str, args: Sequence[Any]) -> HexBytes:
        """Returns the calldata (selector + encoded arguments) for a function call."""
        abi = self.get_function_abi(name, args)
        selector = function_abi_to_4byte_selector(abi)
        encoded_args = w3.codec.encode(_input_types(abi), list(args))
        return HexBytes(selector + encoded_args)


class ArtifactSource(ABC):
    """Supplies contract artifacts by name."""

    @abstractmethod
    def get_artifact(self, name: str) -> Artifact:
        """Returns the named artifact or raises MissingArtifactError."""
        raise NotImplementedError


class JSONArtifactSource(ArtifactSource):
    """
    Loads artifacts from a directory of compiler output JSON files, one per contract.
    Both hardhat (`bytecode`) and ape (`deploymentBytecode.bytecode`) layouts are read.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self._cache: Dict[str, Artifact] = dict()

    def get_artifact(self, name: str) -> Artifact:
        if name in self._cache:
            return self._cache[name]

        matches = sorted(self.directory.rglob(f"{name}.json"))
        if not matches:
            raise MissingArtifactError(f"No artifact found for '{name}' in {self.directory}")
        if len(matches) > 1:
            raise MissingArtifactError(
                f"Artifact '{name}' is ambiguous - found {len(matches)} files in {self.directory}"
            )

        data = _load_json(matches[0])
        bytecode = data.get("bytecode")
        if bytecode is None:
            bytecode = data.get("deploymentBytecode", {}).get("bytecode", "")
        artifact = Artifact(name=name, abi=data.get("abi", []), bytecode=bytecode or "")
        self._cache[name] = artifact
        return artifact


class ChainClient(ABC):
    """
    The collaborator that submits actions to a chain. Every method may block
    while awaiting confirmation and may fail with network or revert errors.
    """

    @property
    @abstractmethod
    def chain_id(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def deploy(self, artifact: Artifact, args: Sequence[Any]) -> DeployResult:
        raise NotImplementedError

    @abstractmethod
    def send_transaction(
        self, artifact: Artifact, address: str, function: str, args: Sequence[Any]
    ) -> TransactionResult:
        raise NotImplementedError

    @abstractmethod
    def get_account(self, index: int) -> ChecksumAddress:
        raise NotImplementedError

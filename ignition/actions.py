import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from eth_utils import to_checksum_address, to_hex

from ignition.client import ArtifactSource, ChainClient
from ignition.futures import (
    ActionFuture,
    CallFuture,
    ContractFuture,
    EncodedCallFuture,
    Future,
    ResolutionContext,
    argument_dependencies,
    qualify,
)

Snapshot = Dict[str, Any]


@dataclass(frozen=True)
class Action(ABC):
    """A single declared unit of on-chain work, identified within its module."""

    module_name: str
    local_id: str

    KIND: typing.ClassVar[str] = ""
    # no chain side effect; an action left pending can simply run again
    SIDE_EFFECT_FREE: typing.ClassVar[bool] = False

    @property
    def id(self) -> str:
        return qualify(self.module_name, self.local_id)

    @property
    @abstractmethod
    def artifact_name(self) -> str:
        raise NotImplementedError

    @property
    def function(self) -> typing.Optional[str]:
        return None

    @abstractmethod
    def inputs(self) -> Tuple[Any, ...]:
        """Every declared input; futures among them are the action's dependencies."""
        raise NotImplementedError

    @property
    def dependencies(self) -> List[str]:
        return argument_dependencies(self.inputs())

    @abstractmethod
    def future(self) -> Future:
        """The future through which other actions consume this action's result."""
        raise NotImplementedError

    def fingerprint(self) -> Dict[str, Any]:
        """Identifies what was declared under this id; stored alongside journal entries."""
        return {"kind": self.KIND, "artifact": self.artifact_name, "function": self.function}

    def validate(self, artifacts: ArtifactSource) -> None:
        """Checks the action against its artifact before anything is executed."""
        artifacts.get_artifact(self.artifact_name)

    @abstractmethod
    def execute(
        self, client: ChainClient, artifacts: ArtifactSource, context: ResolutionContext
    ) -> Snapshot:
        """Performs the action and returns a JSON-serializable snapshot of its result."""
        raise NotImplementedError

    def describe(self) -> str:
        return f"{self.KIND} {self.artifact_name}"


@dataclass(frozen=True)
class DeployAction(Action):
    """Deploys a new instance of an artifact."""

    artifact: str
    args: Tuple[Any, ...] = tuple()

    KIND: typing.ClassVar[str] = "deploy"

    @property
    def artifact_name(self) -> str:
        return self.artifact

    def inputs(self) -> Tuple[Any, ...]:
        return self.args

    def future(self) -> ContractFuture:
        return ContractFuture(action_id=self.id, artifact=self.artifact)

    def validate(self, artifacts: ArtifactSource) -> None:
        artifacts.get_artifact(self.artifact).check_constructor(len(self.args))

    def execute(self, client, artifacts, context) -> Snapshot:
        artifact = artifacts.get_artifact(self.artifact)
        resolved_args = context.resolve(self.args)
        result = client.deploy(artifact, resolved_args)
        return {
            "address": to_checksum_address(result.address),
            "tx_hash": result.tx_hash,
            "block_number": int(result.block_number),
            "deployer": result.deployer,
        }


@dataclass(frozen=True)
class _ContractCallAction(Action):
    contract: ContractFuture
    method: str
    args: Tuple[Any, ...] = tuple()

    @property
    def artifact_name(self) -> str:
        return self.contract.artifact

    @property
    def function(self) -> str:
        return self.method

    def inputs(self) -> Tuple[Any, ...]:
        return (self.contract, *self.args)

    def validate(self, artifacts: ArtifactSource) -> None:
        artifacts.get_artifact(self.artifact_name).check_function(self.method, len(self.args))

    def describe(self) -> str:
        return f"{self.KIND} {self.artifact_name}.{self.method}"


@dataclass(frozen=True)
class EncodeCallAction(_ContractCallAction):
    """Encodes calldata for a function of the target contract; no side effect."""

    KIND: typing.ClassVar[str] = "encode"
    SIDE_EFFECT_FREE: typing.ClassVar[bool] = True

    def future(self) -> EncodedCallFuture:
        return EncodedCallFuture(action_id=self.id)

    def execute(self, client, artifacts, context) -> Snapshot:
        artifact = artifacts.get_artifact(self.artifact_name)
        resolved_args = context.resolve(self.args)
        data = artifact.encode_function_call(self.method, resolved_args)
        return {"data": to_hex(data)}


@dataclass(frozen=True)
class SendCallAction(_ContractCallAction):
    """Submits a transaction calling a function of the target contract."""

    KIND: typing.ClassVar[str] = "call"

    def future(self) -> CallFuture:
        return CallFuture(action_id=self.id)

    def execute(self, client, artifacts, context) -> Snapshot:
        artifact = artifacts.get_artifact(self.artifact_name)
        address = context.resolve(self.contract)
        resolved_args = context.resolve(self.args)
        result = client.send_transaction(artifact, address, self.method, resolved_args)
        return {
            "tx_hash": result.tx_hash,
            "block_number": int(result.block_number),
            "sender": result.sender,
        }


@dataclass(frozen=True)
class AttachExistingAction(Action):
    """Attaches an artifact's interface to an existing address; no on-chain effect."""

    artifact: str
    address: Any

    KIND: typing.ClassVar[str] = "attach"
    SIDE_EFFECT_FREE: typing.ClassVar[bool] = True

    # receipt details inherited from the action that deployed the attached address
    INHERITED_FIELDS: typing.ClassVar[Tuple[str, ...]] = ("tx_hash", "block_number", "deployer")

    @property
    def artifact_name(self) -> str:
        return self.artifact

    def inputs(self) -> Tuple[Any, ...]:
        return (self.address,)

    def future(self) -> ContractFuture:
        return ContractFuture(action_id=self.id, artifact=self.artifact)

    def execute(self, client, artifacts, context) -> Snapshot:
        snapshot = {"address": to_checksum_address(context.resolve(self.address))}
        if isinstance(self.address, ActionFuture):
            source = context.result_of(self.address.action_id)
            for name in self.INHERITED_FIELDS:
                if name in source:
                    snapshot[name] = source[name]
        return snapshot

    def describe(self) -> str:
        target = self.address.local_id if isinstance(self.address, ActionFuture) else self.address
        return f"{self.KIND} {self.artifact} at {target}"

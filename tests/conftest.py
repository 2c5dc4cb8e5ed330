from typing import Any, List, Sequence

import pytest
from eth_utils import keccak, to_checksum_address

from ignition.client import Artifact, ArtifactSource, ChainClient, DeployResult, TransactionResult
from ignition.errors import MissingArtifactError
from ignition.journal import MemoryJournal
from ignition.module import build_module

CHAIN_ID = 31337


def _address_input(name: str) -> dict:
    return {"name": name, "type": "address", "internalType": "address"}


def _function(name: str, inputs: List[dict], outputs: List[dict] = None) -> dict:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs or [],
        "stateMutability": "nonpayable",
    }


CONTRACT_ABI = [
    _function(
        "initialize",
        [_address_input("defaultAdmin"), _address_input("pauser"), _address_input("upgrader")],
    ),
    _function("upgradeTo", [_address_input("newImplementation")]),
    _function("pause", []),
]

CONTRACT_V2_ABI = CONTRACT_ABI + [
    _function("version", [], [{"name": "", "type": "uint256", "internalType": "uint256"}]),
]

PROXY_ABI = [
    {
        "type": "constructor",
        "inputs": [
            _address_input("implementation"),
            {"name": "_data", "type": "bytes", "internalType": "bytes"},
        ],
        "stateMutability": "payable",
    },
]

TOKEN_ABI = [
    {
        "type": "constructor",
        "inputs": [{"name": "_totalSupply", "type": "uint256", "internalType": "uint256"}],
        "stateMutability": "nonpayable",
    },
    _function(
        "transfer",
        [_address_input("to"), {"name": "value", "type": "uint256", "internalType": "uint256"}],
    ),
]

ARTIFACTS = {
    "Contract": CONTRACT_ABI,
    "ContractV2": CONTRACT_V2_ABI,
    "ERC1967Proxy": PROXY_ABI,
    "TestToken": TOKEN_ABI,
}


class FakeArtifactSource(ArtifactSource):
    def __init__(self, abis=None):
        self.abis = dict(ARTIFACTS if abis is None else abis)

    def get_artifact(self, name: str) -> Artifact:
        try:
            abi = self.abis[name]
        except KeyError:
            raise MissingArtifactError(f"No contract found with name '{name}'.")
        return Artifact(name=name, abi=abi, bytecode="0x6080")


class FakeChainClient(ChainClient):
    """
    Records every call it receives. Submissions listed in `failures` raise once;
    those listed in `interruptions` raise KeyboardInterrupt once.
    """

    def __init__(self):
        self.calls: List[tuple] = list()
        self.failures = set()
        self.interruptions = set()
        self._nonce = 0

    @property
    def chain_id(self) -> int:
        return CHAIN_ID

    @property
    def submissions(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in ("deploy", "send_transaction")]

    def _next_hash(self) -> str:
        self._nonce += 1
        return "0x" + keccak(text=f"tx-{self._nonce}").hex()

    def _maybe_fail(self, key: str) -> None:
        if key in self.interruptions:
            self.interruptions.remove(key)
            raise KeyboardInterrupt(key)
        if key in self.failures:
            self.failures.remove(key)
            raise RuntimeError(f"execution reverted: {key}")

    def deploy(self, artifact: Artifact, args: Sequence[Any]) -> DeployResult:
        self.calls.append(("deploy", artifact.name, list(args)))
        self._maybe_fail(artifact.name)
        tx_hash = self._next_hash()
        address = to_checksum_address(keccak(text=tx_hash)[-20:])
        return DeployResult(
            address=address,
            tx_hash=tx_hash,
            block_number=self._nonce,
            deployer=account(0),
        )

    def send_transaction(self, artifact, address, function, args) -> TransactionResult:
        self.calls.append(("send_transaction", artifact.name, address, function, list(args)))
        self._maybe_fail(f"{artifact.name}.{function}")
        return TransactionResult(
            tx_hash=self._next_hash(), block_number=self._nonce, sender=account(0)
        )

    def get_account(self, index: int) -> str:
        self.calls.append(("get_account", index))
        return to_checksum_address(keccak(text=f"account-{index}")[-20:])


def account(index: int) -> str:
    return to_checksum_address(keccak(text=f"account-{index}")[-20:])


@pytest.fixture
def chain_client():
    return FakeChainClient()


@pytest.fixture
def artifacts():
    return FakeArtifactSource()


@pytest.fixture
def journal():
    return MemoryJournal()


@pytest.fixture
def signers():
    return [account(i) for i in range(4)]


@pytest.fixture
def proxy_module():
    """The classic implementation + initializer + proxy module."""

    def definition(m):
        admin = m.get_parameter("admin", m.get_account(0))
        implementation = m.contract("Contract", id="Impl")
        data = m.encode_function_call(implementation, "initialize", [admin, admin, admin])
        proxy = m.contract("ERC1967Proxy", [implementation, data], id="Proxy")
        return {"proxy": proxy, "implementation": implementation}

    return build_module("ProxyDeployment", definition)

import pytest

from ignition.engine import ExecutionEngine
from ignition.errors import OrphanedJournalEntryError
from ignition.journal import EntryStatus, FileJournal
from ignition.module import build_module
from ignition.resolver import resolve
from modules.contract_deployment import ContractDeployment
from modules.contract_upgrade import ContractUpgrade
from tests.conftest import FakeChainClient

DEPLOYMENT_IDS = [
    "ContractDeployment#ContractImplementation",
    "ContractDeployment#ContractImplementation.initialize.encoded",
    "ContractDeployment#ContractProxy",
    "ContractDeployment#ContractInstance",
]

UPGRADE_IDS = [
    "ContractUpgrade#ContractV2Implementation",
    "ContractUpgrade#ContractInstance.upgradeTo",
    "ContractUpgrade#ContractV2Instance",
]


class CrashingJournal(FileJournal):
    """Simulates the process dying right before the given action starts."""

    def __init__(self, path, crash_before):
        self.crash_before = crash_before
        super().__init__(path)

    def record(self, module_name, action_id, entry):
        if action_id == self.crash_before and entry.status == EntryStatus.PENDING:
            raise KeyboardInterrupt("simulated crash")
        super().record(module_name, action_id, entry)


@pytest.fixture
def journal_path(tmp_path):
    return tmp_path / "deployments" / "chain-31337" / "journal.jsonl"


def _engine(client, artifacts, journal):
    return ExecutionEngine(client=client, artifacts=artifacts, journal=journal, silent=True)


def test_deployment_order():
    assert resolve(ContractDeployment).ids == DEPLOYMENT_IDS


def test_deployment_outputs(chain_client, artifacts, journal):
    result = _engine(chain_client, artifacts, journal).run(ContractDeployment)

    proxy_address = result.results["ContractDeployment#ContractProxy"]["address"]
    implementation_address = result.results["ContractDeployment#ContractImplementation"]["address"]
    assert result.outputs == {
        "deployedContract": proxy_address,
        "proxy": proxy_address,
        "implementation": implementation_address,
    }
    assert [call[1] for call in chain_client.submissions] == ["Contract", "ERC1967Proxy"]


def test_upgrade_order_places_new_work_after_deployment():
    assert resolve(ContractUpgrade).ids == DEPLOYMENT_IDS + UPGRADE_IDS


def test_upgrade_reuses_journaled_deployment(chain_client, artifacts, journal_path):
    deployment = _engine(chain_client, artifacts, FileJournal(journal_path)).run(ContractDeployment)
    proxy_address = deployment.outputs["proxy"]

    upgrade_client = FakeChainClient()
    upgrade = _engine(upgrade_client, artifacts, FileJournal(journal_path)).run(ContractUpgrade)

    assert upgrade.skipped == DEPLOYMENT_IDS
    assert upgrade.executed == UPGRADE_IDS

    new_implementation = upgrade.outputs["newImplementation"]
    assert upgrade_client.submissions == [
        ("deploy", "ContractV2", []),
        ("send_transaction", "Contract", proxy_address, "upgradeTo", [new_implementation]),
    ]
    assert upgrade.outputs["upgradedContract"] == proxy_address


def test_upgrade_from_scratch_deploys_everything_once(chain_client, artifacts, journal):
    _engine(chain_client, artifacts, journal).run(ContractUpgrade)
    assert [call[1] for call in chain_client.submissions] == [
        "Contract",
        "ERC1967Proxy",
        "ContractV2",
        "Contract",
    ]


def test_crash_between_actions_resumes_without_resubmission(artifacts, journal_path):
    first_client = FakeChainClient()
    crashing = CrashingJournal(journal_path, crash_before="ContractProxy")
    with pytest.raises(KeyboardInterrupt):
        _engine(first_client, artifacts, crashing).run(ContractDeployment)

    second_client = FakeChainClient()
    result = _engine(second_client, artifacts, FileJournal(journal_path)).run(ContractDeployment)

    submissions = first_client.submissions + second_client.submissions
    assert [call[1] for call in submissions] == ["Contract", "ERC1967Proxy"]
    assert result.skipped == DEPLOYMENT_IDS[:2]
    assert result.executed == DEPLOYMENT_IDS[2:]


def test_resumed_run_reproduces_outputs_after_restart(chain_client, artifacts, journal_path):
    first = _engine(chain_client, artifacts, FileJournal(journal_path)).run(ContractUpgrade)

    idle_client = FakeChainClient()
    second = _engine(idle_client, artifacts, FileJournal(journal_path)).run(ContractUpgrade)
    assert idle_client.calls == []
    assert second.outputs == first.outputs


def test_composing_twice_never_deploys_twice(chain_client, artifacts, journal):
    def definition(m):
        first = m.use_module(ContractDeployment)
        second = m.use_module(ContractDeployment)
        m.call(first["deployedContract"], "pause", id="PauseFirst")
        m.call(second["deployedContract"], "pause", id="PauseSecond")

    _engine(chain_client, artifacts, journal).run(build_module("Operations", definition))
    deployed = [call[1] for call in chain_client.submissions if call[0] == "deploy"]
    assert deployed == ["Contract", "ERC1967Proxy"]


def test_renamed_action_orphans_journal_history(chain_client, artifacts, journal_path):
    _engine(chain_client, artifacts, FileJournal(journal_path)).run(ContractDeployment)

    def renamed(m):
        implementation = m.contract("Contract", id="Implementation")
        return {"implementation": implementation}

    module = build_module("ContractDeployment", renamed)
    with pytest.raises(OrphanedJournalEntryError, match="ContractDeployment#ContractProxy"):
        _engine(FakeChainClient(), artifacts, FileJournal(journal_path)).run(module)

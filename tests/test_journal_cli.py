from click.testing import CliRunner

from ignition.journal import EntryStatus, FileJournal, JournalEntry
from scripts.journal import cli


def test_lists_entries(tmp_path):
    journal = FileJournal.from_directory(tmp_path)
    journal.record("ContractDeployment", "ContractImplementation", JournalEntry.success({}, {}))
    journal.record("ContractDeployment", "ContractProxy", JournalEntry.failure({}, "reverted"))

    result = CliRunner().invoke(cli, ["--deployment-dir", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert "ContractDeployment#ContractImplementation" in result.output
    assert "ContractDeployment#ContractProxy - reverted" in result.output


def test_resets_pending_action(tmp_path):
    journal = FileJournal.from_directory(tmp_path)
    journal.record("ContractDeployment", "ContractProxy", JournalEntry.pending({}))

    result = CliRunner().invoke(
        cli, ["-d", str(tmp_path), "--reset", "ContractDeployment#ContractProxy"]
    )
    assert result.exit_code == 0, result.output
    assert "will be retried" in result.output

    reloaded = FileJournal.from_directory(tmp_path)
    assert reloaded.lookup("ContractDeployment", "ContractProxy").status == EntryStatus.FAILED


def test_rejects_malformed_action_id(tmp_path):
    result = CliRunner().invoke(cli, ["-d", str(tmp_path), "--reset", "ContractProxy"])
    assert result.exit_code != 0


def test_empty_journal(tmp_path):
    result = CliRunner().invoke(cli, ["-d", str(tmp_path)])
    assert result.exit_code == 0
    assert "No journal entries" in result.output

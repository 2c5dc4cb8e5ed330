import json
import os
import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional, Tuple

from ignition.constants import JOURNAL_FILENAME, STANDARD_JOURNAL_JSON_FORMAT
from ignition.errors import JournalCorruptionError

JournalKey = Tuple[str, str]  # (module name, action id)


class EntryStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JournalEntry(NamedTuple):
    """The recorded state of a single action."""

    status: EntryStatus
    result: Dict[str, Any] = {}
    error: Optional[str] = None
    fingerprint: Dict[str, Any] = {}
    timestamp: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == EntryStatus.SUCCEEDED

    @classmethod
    def pending(cls, fingerprint: Dict[str, Any]) -> "JournalEntry":
        return cls(status=EntryStatus.PENDING, fingerprint=fingerprint, timestamp=_now())

    @classmethod
    def success(cls, fingerprint: Dict[str, Any], result: Dict[str, Any]) -> "JournalEntry":
        return cls(
            status=EntryStatus.SUCCEEDED, result=result, fingerprint=fingerprint, timestamp=_now()
        )

    @classmethod
    def failure(cls, fingerprint: Dict[str, Any], error: str) -> "JournalEntry":
        return cls(
            status=EntryStatus.FAILED, error=error, fingerprint=fingerprint, timestamp=_now()
        )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Journal(ABC):
    """
    Record of which actions of a deployment have completed, keyed by
    (module name, action id). A succeeded entry is never replaced.
    """

    path: Optional[Path] = None

    def __init__(self):
        self._entries: "OrderedDict[JournalKey, JournalEntry]" = OrderedDict()

    def lookup(self, module_name: str, action_id: str) -> Optional[JournalEntry]:
        return self._entries.get((module_name, action_id))

    def entries(self) -> typing.Dict[JournalKey, JournalEntry]:
        return OrderedDict(self._entries)

    def record(self, module_name: str, action_id: str, entry: JournalEntry) -> None:
        """Durably replaces the whole entry stored for a single key."""
        existing = self.lookup(module_name, action_id)
        if existing is not None and existing.succeeded:
            raise JournalCorruptionError(
                f"Refusing to overwrite succeeded entry {module_name}#{action_id} "
                f"with status '{entry.status.value}'",
                path=self.path,
            )
        self._persist(module_name, action_id, entry)
        self._entries[(module_name, action_id)] = entry

    def reset(self, module_name: str, action_id: str) -> JournalEntry:
        """Marks a pending or failed entry as failed so that the next run retries it."""
        existing = self.lookup(module_name, action_id)
        if existing is None:
            raise ValueError(f"No journal entry for {module_name}#{action_id}")
        if existing.succeeded:
            raise ValueError(
                f"{module_name}#{action_id} succeeded; its transaction cannot be undone. "
                "Declare a new action (e.g. a compensating upgrade) instead."
            )
        entry = JournalEntry.failure(existing.fingerprint, error="reset by operator")
        self.record(module_name, action_id, entry)
        return entry

    @abstractmethod
    def _persist(self, module_name: str, action_id: str, entry: JournalEntry) -> None:
        raise NotImplementedError


class MemoryJournal(Journal):
    """A journal that lives only as long as the process; used for dry runs and tests."""

    def _persist(self, module_name: str, action_id: str, entry: JournalEntry) -> None:
        pass


def _serialize(module_name: str, action_id: str, entry: JournalEntry) -> str:
    record = {
        "module": module_name,
        "action": action_id,
        "status": entry.status.value,
        "result": entry.result,
        "error": entry.error,
        "fingerprint": entry.fingerprint,
        "timestamp": entry.timestamp,
    }
    return json.dumps(record, **STANDARD_JOURNAL_JSON_FORMAT)


def _deserialize(line: str) -> Tuple[JournalKey, JournalEntry]:
    record = json.loads(line)
    key = (record["module"], record["action"])
    entry = JournalEntry(
        status=EntryStatus(record["status"]),
        result=record.get("result") or {},
        error=record.get("error"),
        fingerprint=record.get("fingerprint") or {},
        timestamp=record.get("timestamp", ""),
    )
    return key, entry


class FileJournal(Journal):
    """
    Append-only JSON lines journal. Every record is the complete state of one key and
    is flushed and fsynced before `record` returns; the last record for a key wins.
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        self._load()

    @classmethod
    def from_directory(cls, deployment_dir: Path) -> "FileJournal":
        return cls(Path(deployment_dir) / JOURNAL_FILENAME)

    def _load(self) -> None:
        if not self.path.exists():
            return

        with open(self.path, "r") as file:
            for line_number, line in enumerate(file, start=1):
                if not line.strip():
                    continue
                try:
                    key, entry = _deserialize(line)
                except (ValueError, KeyError, TypeError) as e:
                    raise JournalCorruptionError(
                        f"Unreadable journal record at line {line_number}: {e}", path=self.path
                    ) from e

                existing = self._entries.get(key)
                if existing is not None and existing.succeeded:
                    raise JournalCorruptionError(
                        f"Journal line {line_number} overwrites succeeded entry "
                        f"{key[0]}#{key[1]}",
                        path=self.path,
                    )
                self._entries[key] = entry

    def _persist(self, module_name: str, action_id: str, entry: JournalEntry) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = _serialize(module_name, action_id, entry)
        with open(self.path, "a") as file:
            file.write(line + "\n")
            file.flush()
            os.fsync(file.fileno())

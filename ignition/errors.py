from pathlib import Path
from typing import Iterable, Optional


class IgnitionError(Exception):
    """Base class for every error raised by the deployment engine."""


#
# Build time
#


class BuildError(IgnitionError):
    """Raised while building or resolving a module; nothing has been executed yet."""


class NamingConflictError(BuildError):
    """Raised when an action id (or module name) is declared twice."""


class UnresolvedReferenceError(BuildError):
    """Raised when an action references a future that no action in the module produces."""


class CycleError(BuildError):
    """Raised when the action graph contains a dependency cycle."""

    def __init__(self, action_ids: Iterable[str]):
        self.action_ids = list(action_ids)
        super().__init__(f"Dependency cycle detected between: {', '.join(self.action_ids)}")


class MissingArtifactError(BuildError):
    """Raised when an artifact named by an action is not available."""


class ParameterError(BuildError):
    """Raised when a module parameter cannot be resolved."""


#
# Execution
#


class ExecutionError(IgnitionError):
    """Raised when a single action fails during a run."""

    def __init__(self, module_name: str, action_id: str, cause: BaseException):
        self.module_name = module_name
        self.action_id = action_id
        self.cause = cause
        super().__init__(
            f"Action '{action_id}' of module '{module_name}' failed: "
            f"{type(cause).__name__}: {cause}\n"
            "Completed actions are journaled; re-run the module to resume from this action."
        )


#
# Journal
#


class JournalCorruptionError(IgnitionError):
    """Raised when the persisted journal is unreadable or inconsistent with the module."""

    GUIDANCE = (
        "Inspect the journal at {path} and the chain state before resetting it; "
        "journaled transactions are irreversible."
    )

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path is not None:
            message = f"{message}\n{self.GUIDANCE.format(path=path)}"
        super().__init__(message)


class OrphanedJournalEntryError(JournalCorruptionError):
    """Raised when the journal holds entries for actions the module no longer declares."""


class InFlightActionError(JournalCorruptionError):
    """Raised when an action was started but its outcome was never recorded."""


class ReconciliationError(JournalCorruptionError):
    """Raised when a journaled action no longer matches its declaration."""

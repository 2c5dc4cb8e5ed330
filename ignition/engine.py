import typing
from typing import Any, Dict, List, NamedTuple, Optional

from ignition.actions import Action
from ignition.client import ArtifactSource, ChainClient
from ignition.errors import (
    ExecutionError,
    InFlightActionError,
    OrphanedJournalEntryError,
    ReconciliationError,
)
from ignition.futures import ParameterFuture, ResolutionContext, qualify
from ignition.journal import EntryStatus, Journal, JournalEntry
from ignition.module import Module
from ignition.params import ParameterProvider
from ignition.resolver import ExecutionPlan, resolve


class DeploymentResult(NamedTuple):
    """Concrete values of a module's outputs after a run."""

    module_name: str
    outputs: Dict[str, Any]
    results: Dict[str, Dict[str, Any]]  # qualified action id -> result snapshot
    executed: List[str]
    skipped: List[str]


class _RunContext(ResolutionContext):
    def __init__(self, client: ChainClient, parameters: ParameterProvider):
        self.client = client
        self.parameters = parameters
        self.results: Dict[str, Dict[str, Any]] = dict()
        self._accounts: Dict[int, str] = dict()

    def result_of(self, action_id: str) -> Dict[str, Any]:
        try:
            return self.results[action_id]
        except KeyError:
            # the plan guarantees producers run first; reaching this is a bug
            raise RuntimeError(f"Result of '{action_id}' requested before it was recorded")

    def get_account(self, index: int) -> str:
        if index not in self._accounts:
            self._accounts[index] = self.client.get_account(index)
        return self._accounts[index]

    def get_parameter(self, parameter: ParameterFuture) -> Any:
        return self.parameters.resolve(parameter, resolve_default=self.resolve)


def _check_orphans(module: Module, journal: Journal) -> None:
    module_names = module.module_names
    orphans = list()
    for (module_name, action_id), entry in journal.entries().items():
        if module_name not in module_names or entry.status == EntryStatus.FAILED:
            continue
        if qualify(module_name, action_id) not in module.actions:
            orphans.append(f"{module_name}#{action_id} ({entry.status.value})")
    if orphans:
        raise OrphanedJournalEntryError(
            "The journal records actions that the module no longer declares: "
            f"{', '.join(orphans)}. Module names and action ids are persisted; "
            "renaming or removing them orphans their history.",
            path=journal.path,
        )


def plan_deployment(
    module: Module,
    artifacts: ArtifactSource,
    journal: Journal,
    parameters: ParameterProvider,
    silent: bool = False,
) -> ExecutionPlan:
    """
    Resolves a module and runs every check a deployment would stop on: artifacts and
    function signatures, missing parameters and orphaned journal entries.
    Unused parameter overrides are reported as warnings.
    """
    plan = resolve(module)
    for action in plan:
        action.validate(artifacts)

    declared = module.all_parameters()
    parameters.validate(declared)
    for unused in parameters.unused(declared):
        if not silent:
            print(f"WARNING: Parameter {unused} is not declared by any module.")

    _check_orphans(module, journal)
    return plan


class ExecutionEngine:
    """
    Executes the actions of a module exactly once, in plan order, journaling each
    outcome before moving on. Actions already journaled as succeeded are skipped and
    their recorded results reused; a failure stops the run.
    """

    def __init__(
        self,
        client: ChainClient,
        artifacts: ArtifactSource,
        journal: Journal,
        parameters: Optional[ParameterProvider] = None,
        silent: bool = False,
    ):
        self.client = client
        self.artifacts = artifacts
        self.journal = journal
        self.parameters = parameters or ParameterProvider()
        self.silent = silent

    def _print(self, *args) -> None:
        if not self.silent:
            print(*args)

    def plan(self, module: Module) -> ExecutionPlan:
        """Resolves and validates a module without executing anything."""
        return plan_deployment(
            module=module,
            artifacts=self.artifacts,
            journal=self.journal,
            parameters=self.parameters,
            silent=self.silent,
        )

    def _reconcile(self, action: Action, entry: JournalEntry) -> None:
        fingerprint = action.fingerprint()
        if entry.fingerprint and entry.fingerprint != fingerprint:
            raise ReconciliationError(
                f"{action.id} was journaled as {entry.fingerprint} "
                f"but is now declared as {fingerprint}",
                path=self.journal.path,
            )

    def _check_in_flight(self, plan: ExecutionPlan) -> None:
        for action in plan:
            entry = self.journal.lookup(action.module_name, action.local_id)
            if entry is None or entry.status != EntryStatus.PENDING:
                continue
            if action.SIDE_EFFECT_FREE:
                continue
            raise InFlightActionError(
                f"{action.id} was started but no outcome was recorded; it may have been "
                "mined. Verify on-chain, then reset the entry to retry it.",
                path=self.journal.path,
            )

    def run(self, module: Module) -> DeploymentResult:
        plan = self.plan(module)
        self._check_in_flight(plan)
        context = _RunContext(client=self.client, parameters=self.parameters)
        executed, skipped = list(), list()

        self._print(f"\n(i) Executing {module.name}: {len(plan)} action(s)")
        for action in plan:
            entry = self.journal.lookup(action.module_name, action.local_id)
            if entry is not None and entry.succeeded:
                self._reconcile(action, entry)
                context.results[action.id] = entry.result
                skipped.append(action.id)
                self._print(f"(i) Skipping {action.id}; already journaled as succeeded")
                continue
            context.results[action.id] = self._execute(action, context)
            executed.append(action.id)

        outputs = {name: context.resolve(future) for name, future in module.results.items()}
        self._print(
            f"(i) {module.name} complete: {len(executed)} executed, {len(skipped)} skipped"
        )
        return DeploymentResult(
            module_name=module.name,
            outputs=outputs,
            results=dict(context.results),
            executed=executed,
            skipped=skipped,
        )

    def _execute(self, action: Action, context: _RunContext) -> typing.Dict[str, Any]:
        fingerprint = action.fingerprint()
        self._print(f"\n{action.id}: {action.describe()}")
        self.journal.record(action.module_name, action.local_id, JournalEntry.pending(fingerprint))
        try:
            result = action.execute(self.client, self.artifacts, context)
        except BaseException as e:
            # interruptions are journaled as failures too
            error = f"{type(e).__name__}: {e}"
            self.journal.record(
                action.module_name, action.local_id, JournalEntry.failure(fingerprint, error)
            )
            if isinstance(e, Exception):
                raise ExecutionError(action.module_name, action.local_id, e) from e
            raise

        self.journal.record(
            action.module_name, action.local_id, JournalEntry.success(fingerprint, result)
        )
        self._print(f"(i) {action.id} succeeded {_summarize(result)}")
        return result


def _summarize(result: Dict[str, Any]) -> str:
    for key in ("address", "tx_hash", "data"):
        if key in result:
            return f"({key}={result[key]})"
    return ""

import heapq
import typing
from typing import Dict, Iterator, List, Optional, Tuple

from ignition.actions import Action
from ignition.errors import CycleError, UnresolvedReferenceError

if typing.TYPE_CHECKING:
    from ignition.journal import Journal
    from ignition.module import Module

EXECUTE = "execute"
SKIP = "skip"
RETRY = "retry"
# started without a recorded outcome; the run stops until the entry is reset
BLOCKED = "blocked"


class ExecutionPlan:
    """A deterministic execution order for every action of a module."""

    def __init__(self, module: "Module", actions: List[Action]):
        self.module = module
        self.actions = tuple(actions)

    def __iter__(self) -> Iterator[Action]:
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)

    @property
    def ids(self) -> List[str]:
        return [action.id for action in self.actions]

    def diff(self, journal: Optional["Journal"] = None) -> List[Tuple[Action, str]]:
        """Pairs every step with what a run would do with it given the journal."""
        from ignition.journal import EntryStatus

        steps = list()
        for action in self.actions:
            entry = journal.lookup(action.module_name, action.local_id) if journal else None
            if entry is None:
                status = EXECUTE
            elif entry.status == EntryStatus.SUCCEEDED:
                status = SKIP
            elif entry.status == EntryStatus.PENDING and not action.SIDE_EFFECT_FREE:
                status = BLOCKED
            else:
                status = RETRY
            steps.append((action, status))
        return steps

    def render(self, journal: Optional["Journal"] = None) -> str:
        lines = [f"Execution plan for {self.module.name} ({len(self)} actions)"]
        for position, (action, status) in enumerate(self.diff(journal), start=1):
            lines.append(f"  {position:>3}. [{status:^7}] {action.id} - {action.describe()}")
        return "\n".join(lines)


def _find_cycle(remaining: Dict[str, List[str]]) -> List[str]:
    """Returns the ids along one dependency cycle among the unsorted actions."""
    visiting: List[str] = list()
    visited = set()

    def visit(node: str) -> Optional[List[str]]:
        if node in visiting:
            return visiting[visiting.index(node):]
        if node in visited:
            return None
        visiting.append(node)
        for dependency in remaining.get(node, []):
            if dependency in remaining:
                cycle = visit(dependency)
                if cycle:
                    return cycle
        visiting.pop()
        visited.add(node)
        return None

    for node in remaining:
        cycle = visit(node)
        if cycle:
            return cycle
    return list(remaining)  # unreachable for a consistent graph


def resolve(module: "Module") -> ExecutionPlan:
    """
    Topologically orders the actions of a module. Every action follows the actions
    producing its inputs; independent actions keep their declaration order.
    Performs no I/O and always yields the same plan for the same module.
    """
    actions = module.actions
    position = {action_id: index for index, action_id in enumerate(actions)}

    dependencies: Dict[str, List[str]] = dict()
    dependents: Dict[str, List[str]] = {action_id: [] for action_id in actions}
    for action_id, action in actions.items():
        action_dependencies = action.dependencies
        for dependency in action_dependencies:
            if dependency not in actions:
                raise UnresolvedReferenceError(
                    f"Action '{action_id}' references '{dependency}', which is not declared in "
                    f"module '{module.name}'; embed its module with use_module()"
                )
            dependents[dependency].append(action_id)
        dependencies[action_id] = action_dependencies

    for output_name, future in module.results.items():
        for dependency in future.dependencies:
            if dependency not in actions:
                raise UnresolvedReferenceError(
                    f"Output '{output_name}' of module '{module.name}' references "
                    f"'{dependency}', which is not declared in the module"
                )

    in_degree = {action_id: len(deps) for action_id, deps in dependencies.items()}
    ready = [position[action_id] for action_id, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)
    ids = list(actions)

    ordered: List[Action] = list()
    while ready:
        action_id = ids[heapq.heappop(ready)]
        ordered.append(actions[action_id])
        for dependent in dependents[action_id]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, position[dependent])

    if len(ordered) != len(actions):
        remaining = {k: v for k, v in dependencies.items() if in_degree[k] > 0}
        raise CycleError(_find_cycle(remaining))

    return ExecutionPlan(module=module, actions=ordered)

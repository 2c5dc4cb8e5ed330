import re
import typing
from collections import OrderedDict
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence

from ignition.actions import (
    Action,
    AttachExistingAction,
    DeployAction,
    EncodeCallAction,
    SendCallAction,
)
from ignition.constants import MODULE_ID_SEPARATOR
from ignition.errors import BuildError, NamingConflictError
from ignition.futures import (
    NO_DEFAULT,
    AccountFuture,
    CallFuture,
    ContractFuture,
    EncodedCallFuture,
    Future,
    ParameterFuture,
    freeze_argument,
)

# user supplied module names and action ids
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def _validate_identifier(kind: str, value: str) -> None:
    if not isinstance(value, str) or not IDENTIFIER_PATTERN.match(value):
        raise BuildError(
            f"Invalid {kind} '{value}': must start with a letter and contain only "
            f"letters, digits and underscores"
        )


def _add_action(actions: "OrderedDict[str, Action]", action: Action) -> None:
    """Adds an action keyed by its qualified id; identical re-declarations are merged."""
    existing = actions.get(action.id)
    if existing is None:
        actions[action.id] = action
    elif existing != action:
        raise NamingConflictError(
            f"Action id '{action.local_id}' is declared more than once in module "
            f"'{action.module_name}'; pass a unique id= to disambiguate"
        )


class Module:
    """
    A named, immutable action graph plus the output futures it exposes.
    Actions of embedded modules keep their own module qualification, so the same
    component always maps to the same journal key no matter which module embeds it.
    """

    def __init__(
        self,
        name: str,
        actions: Iterable[Action],
        results: Optional[Mapping[str, Future]] = None,
        submodules: Sequence["Module"] = tuple(),
        parameters: Sequence[ParameterFuture] = tuple(),
    ):
        _validate_identifier("module name", name)
        self.name = name

        ordered_actions = OrderedDict()
        for action in actions:
            _add_action(ordered_actions, action)
        self._actions = MappingProxyType(ordered_actions)

        results = dict(results or {})
        for output_name, future in results.items():
            if not isinstance(future, Future):
                raise BuildError(
                    f"Output '{output_name}' of module '{name}' is not a future: {future!r}"
                )
        self._results = MappingProxyType(results)
        self.submodules = tuple(submodules)
        self.parameters = tuple(parameters)

    def __repr__(self) -> str:
        return f"<Module {self.name} actions={len(self._actions)}>"

    @property
    def actions(self) -> Mapping[str, Action]:
        """All actions of the graph, own and embedded, in declaration order."""
        return self._actions

    @property
    def results(self) -> Mapping[str, Future]:
        return self._results

    @property
    def module_names(self) -> typing.List[str]:
        """Names of every module contributing actions, this one included."""
        names = [self.name]
        for action in self._actions.values():
            if action.module_name not in names:
                names.append(action.module_name)
        return names

    def all_parameters(self) -> typing.List[ParameterFuture]:
        parameters = list()
        for submodule in self.submodules:
            for parameter in submodule.all_parameters():
                if parameter not in parameters:
                    parameters.append(parameter)
        for parameter in self.parameters:
            if parameter not in parameters:
                parameters.append(parameter)
        return parameters


class ModuleBuilder:
    """
    Declarative DSL used inside a module definition. Declarations perform no I/O;
    each returns a future that can be passed as an argument to later declarations.
    """

    def __init__(self, name: str):
        _validate_identifier("module name", name)
        self.name = name
        self._actions: "OrderedDict[str, Action]" = OrderedDict()
        self._submodules: Dict[str, Module] = OrderedDict()
        self._parameters: Dict[str, ParameterFuture] = OrderedDict()

    #
    # Values
    #

    def get_parameter(self, name: str, default: Any = NO_DEFAULT) -> ParameterFuture:
        """Declares a module parameter, optionally overridden by the operator."""
        _validate_identifier("parameter name", name)
        parameter = ParameterFuture(module_name=self.name, name=name, default=default)
        existing = self._parameters.get(name)
        if existing is not None:
            if existing != parameter:
                raise NamingConflictError(
                    f"Parameter '{name}' of module '{self.name}' is declared twice "
                    f"with different defaults"
                )
            return existing
        self._parameters[name] = parameter
        return parameter

    def get_account(self, index: int) -> AccountFuture:
        if not isinstance(index, int) or index < 0:
            raise BuildError(f"Account index must be a non-negative integer, got {index!r}")
        return AccountFuture(index=index)

    #
    # Actions
    #

    def contract(
        self, artifact: str, args: Sequence[Any] = tuple(), id: Optional[str] = None
    ) -> ContractFuture:
        """Declares the deployment of a new contract instance."""
        action = DeployAction(
            module_name=self.name,
            local_id=self._local_id(id, default=artifact),
            artifact=artifact,
            args=freeze_argument(args),
        )
        return self._declare(action)

    def encode_function_call(
        self,
        contract: ContractFuture,
        function: str,
        args: Sequence[Any] = tuple(),
        id: Optional[str] = None,
    ) -> EncodedCallFuture:
        """Declares calldata for `contract.function(*args)`, e.g. a proxy initializer."""
        self._check_contract(contract, "encode_function_call")
        action = EncodeCallAction(
            module_name=self.name,
            local_id=self._local_id(id, default=f"{contract.local_id}.{function}.encoded"),
            contract=contract,
            method=function,
            args=freeze_argument(args),
        )
        return self._declare(action)

    def call(
        self,
        contract: ContractFuture,
        function: str,
        args: Sequence[Any] = tuple(),
        id: Optional[str] = None,
    ) -> CallFuture:
        """Declares a transaction calling `contract.function(*args)`."""
        self._check_contract(contract, "call")
        action = SendCallAction(
            module_name=self.name,
            local_id=self._local_id(id, default=f"{contract.local_id}.{function}"),
            contract=contract,
            method=function,
            args=freeze_argument(args),
        )
        return self._declare(action)

    def contract_at(self, artifact: str, address: Any, id: Optional[str] = None) -> ContractFuture:
        """Declares a typed handle for an existing address, e.g. the ABI of a proxy target."""
        if not isinstance(address, (str, ContractFuture, ParameterFuture)):
            raise BuildError(
                f"contract_at address must be a string, contract or parameter; got {address!r}"
            )
        action = AttachExistingAction(
            module_name=self.name,
            local_id=self._local_id(id, default=artifact),
            artifact=artifact,
            address=address,
        )
        return self._declare(action)

    #
    # Composition
    #

    def use_module(self, module: Module) -> Dict[str, Future]:
        """
        Embeds another module's graph and returns its output futures.
        Embedding the same module again returns the same futures without new actions.
        """
        if not isinstance(module, Module):
            raise BuildError(f"use_module expects a built module, got {module!r}")
        if module.name == self.name:
            raise NamingConflictError(f"Module '{self.name}' cannot embed itself")

        existing = self._submodules.get(module.name)
        if existing is not None and existing is not module:
            raise NamingConflictError(
                f"Two different modules named '{module.name}' are used by '{self.name}'"
            )

        for action in module.actions.values():
            if action.module_name == self.name:
                raise NamingConflictError(
                    f"Module '{module.name}' embeds actions of '{self.name}' ({action.id})"
                )
            _add_action(self._actions, action)

        self._submodules[module.name] = module
        return dict(module.results)

    def build(self, results: Optional[Mapping[str, Future]] = None) -> Module:
        return Module(
            name=self.name,
            actions=self._actions.values(),
            results=results,
            submodules=list(self._submodules.values()),
            parameters=list(self._parameters.values()),
        )

    #
    # Internal
    #

    def _local_id(self, id: Optional[str], default: str) -> str:
        if id is None:
            if not default or MODULE_ID_SEPARATOR in default:
                raise BuildError(f"Cannot derive an action id from '{default}'; pass id=")
            return default
        _validate_identifier("action id", id)
        return id

    def _check_contract(self, contract: Any, operation: str) -> None:
        if not isinstance(contract, ContractFuture):
            raise BuildError(
                f"{operation} expects a contract future (from contract() or contract_at()), "
                f"got {contract!r}"
            )

    def _declare(self, action: Action) -> Future:
        if action.id in self._actions:
            raise NamingConflictError(
                f"Action id '{action.local_id}' is already declared in module '{self.name}'; "
                f"pass a unique id= to disambiguate"
            )
        self._actions[action.id] = action
        return action.future()


def build_module(name: str, definition: Callable[[ModuleBuilder], Any]) -> Module:
    """
    Builds a module from a definition function receiving a ModuleBuilder and returning a
    dict of output futures. The graph is resolved once so that naming conflicts, dangling
    references and cycles are reported here, before anything can be executed.
    """
    from ignition.resolver import resolve

    builder = ModuleBuilder(name)
    results = definition(builder)
    module = builder.build(results=results)
    resolve(module)
    return module

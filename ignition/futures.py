import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Tuple

from hexbytes import HexBytes

from ignition.constants import MODULE_ID_SEPARATOR


def qualify(module_name: str, action_id: str) -> str:
    """Returns the journal-stable, module-qualified identifier of an action."""
    return f"{module_name}{MODULE_ID_SEPARATOR}{action_id}"


def split_qualified_id(qualified_id: str) -> Tuple[str, str]:
    module_name, separator, action_id = qualified_id.partition(MODULE_ID_SEPARATOR)
    if not separator or not module_name or not action_id:
        raise ValueError(f"'{qualified_id}' is not a qualified action id (Module#Action)")
    return module_name, action_id


class ResolutionContext(ABC):
    """Source of concrete values while a module is being executed."""

    @abstractmethod
    def result_of(self, action_id: str) -> typing.Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def get_account(self, index: int) -> str:
        raise NotImplementedError

    @abstractmethod
    def get_parameter(self, parameter: "ParameterFuture") -> Any:
        raise NotImplementedError

    def resolve(self, value: Any) -> Any:
        return resolve_argument(value, self)


class Future(ABC):
    """A placeholder for a value that is not known while the module is being built."""

    @property
    def dependencies(self) -> Tuple[str, ...]:
        """Qualified ids of the actions that must run before this value is known."""
        return tuple()

    @abstractmethod
    def resolve(self, context: ResolutionContext) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class ActionFuture(Future):
    """A value extracted from the recorded result of a single action."""

    action_id: str
    FIELD: typing.ClassVar[str] = ""

    @property
    def dependencies(self) -> Tuple[str, ...]:
        return (self.action_id,)

    @property
    def module_name(self) -> str:
        return split_qualified_id(self.action_id)[0]

    @property
    def local_id(self) -> str:
        return split_qualified_id(self.action_id)[1]

    def resolve(self, context: ResolutionContext) -> Any:
        result = context.result_of(self.action_id)
        try:
            return result[self.FIELD]
        except KeyError:
            raise KeyError(f"Result of '{self.action_id}' has no '{self.FIELD}' value")


@dataclass(frozen=True)
class ContractFuture(ActionFuture):
    """The address of a deployed (or attached) contract, typed by its artifact."""

    artifact: str = ""
    FIELD: typing.ClassVar[str] = "address"


@dataclass(frozen=True)
class EncodedCallFuture(ActionFuture):
    """ABI-encoded calldata, e.g. an initializer passed to a proxy constructor."""

    FIELD: typing.ClassVar[str] = "data"

    def resolve(self, context: ResolutionContext) -> HexBytes:
        return HexBytes(super().resolve(context))


@dataclass(frozen=True)
class CallFuture(ActionFuture):
    """The hash of a mined contract call transaction."""

    FIELD: typing.ClassVar[str] = "tx_hash"


@dataclass(frozen=True)
class AccountFuture(Future):
    """The Nth account made available by the chain client."""

    index: int

    def resolve(self, context: ResolutionContext) -> str:
        return context.get_account(self.index)


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT = _NoDefault()


@dataclass(frozen=True)
class ParameterFuture(Future):
    """A named module parameter; overridable by the operator at run start."""

    module_name: str
    name: str
    default: Any = field(default=NO_DEFAULT)

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    @property
    def dependencies(self) -> Tuple[str, ...]:
        """A future default is a dependency whether or not the parameter is overridden."""
        if not self.has_default:
            return tuple()
        return tuple(argument_dependencies([self.default]))

    def resolve(self, context: ResolutionContext) -> Any:
        return context.get_parameter(self)


#
# Arguments
#


def freeze_argument(value: Any) -> Any:
    """Converts (nested) lists into tuples so that declared arguments are immutable."""
    if isinstance(value, (list, tuple)):
        return tuple(freeze_argument(v) for v in value)
    return value


def iter_futures(value: Any) -> Iterator[Future]:
    """Yields every future found in a (nested) argument value."""
    if isinstance(value, Future):
        yield value
    elif isinstance(value, (list, tuple)):
        for v in value:
            yield from iter_futures(v)
    elif isinstance(value, dict):
        for v in value.values():
            yield from iter_futures(v)


def resolve_argument(value: Any, context: ResolutionContext) -> Any:
    """Resolves a single argument value or a (nested) list of argument values."""
    if isinstance(value, Future):
        return value.resolve(context)
    if isinstance(value, (list, tuple)):
        return [resolve_argument(v, context) for v in value]
    if isinstance(value, dict):
        return {k: resolve_argument(v, context) for k, v in value.items()}
    return value  # literally a value


def argument_dependencies(values: typing.Iterable[Any]) -> List[str]:
    """Returns the ordered, de-duplicated action ids the given arguments depend on."""
    dependencies = list()
    for value in values:
        for future in iter_futures(value):
            for action_id in future.dependencies:
                if action_id not in dependencies:
                    dependencies.append(action_id)
    return dependencies

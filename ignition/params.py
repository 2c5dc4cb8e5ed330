import typing
from collections import OrderedDict
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import yaml
from eth_utils import is_hex_address, to_checksum_address

from ignition.errors import ParameterError
from ignition.futures import Future, ParameterFuture
from ignition.utils import _load_config_file

Overrides = Dict[str, Dict[str, Any]]  # module name -> parameter name -> value

PARAMETER_ASSIGNMENT = "="
PARAMETER_QUALIFIER = "."


def _normalize_value(value: Any) -> Any:
    """Checksums address-like strings, recursively."""
    if isinstance(value, list):
        return [_normalize_value(v) for v in value]
    if isinstance(value, str) and is_hex_address(value):
        return to_checksum_address(value)
    return value


def _validate_overrides(overrides: Any) -> Overrides:
    if overrides is None:
        return dict()
    if not isinstance(overrides, dict):
        raise ParameterError("Parameters must map module names to parameter values.")

    validated = OrderedDict()
    for module_name, values in overrides.items():
        if not isinstance(values, dict):
            raise ParameterError(f"Malformed parameters for module '{module_name}'.")
        validated[module_name] = {name: _normalize_value(v) for name, v in values.items()}
    return validated


def parse_parameter_assignment(assignment: str) -> Tuple[str, str, Any]:
    """Parses a 'Module.name=value' command line assignment; the value is read as YAML."""
    target, separator, raw_value = assignment.partition(PARAMETER_ASSIGNMENT)
    module_name, qualifier, name = target.partition(PARAMETER_QUALIFIER)
    if not separator or not qualifier or not module_name or not name:
        raise ParameterError(f"Expected 'Module.parameter=value', got '{assignment}'")
    if raw_value.startswith("0x"):
        value = raw_value  # YAML would read hex strings as integers
    else:
        value = yaml.safe_load(raw_value) if raw_value else ""
    return module_name, name, _normalize_value(value)


class ParameterProvider:
    """
    Resolves module parameters from operator overrides, falling back to their
    declared defaults. Each parameter is resolved at most once per provider.
    """

    def __init__(self, overrides: Optional[Overrides] = None):
        self.overrides = _validate_overrides(overrides)
        self._resolved: Dict[Tuple[str, str], Any] = dict()

    @classmethod
    def from_file(cls, filepath: Path) -> "ParameterProvider":
        """Loads overrides from a YAML or JSON file keyed by module name."""
        print(f"Loading parameters from {filepath}...")
        return cls(overrides=_load_config_file(filepath))

    @classmethod
    def from_config(cls, config: typing.Dict) -> "ParameterProvider":
        return cls(overrides=config.get("parameters"))

    def update(self, assignments: Iterable[str]) -> "ParameterProvider":
        """Applies command line assignments on top of the current overrides."""
        for assignment in assignments:
            module_name, name, value = parse_parameter_assignment(assignment)
            self.overrides.setdefault(module_name, dict())[name] = value
        return self

    def has_override(self, parameter: ParameterFuture) -> bool:
        return parameter.name in self.overrides.get(parameter.module_name, {})

    def validate(self, parameters: Iterable[ParameterFuture]) -> None:
        """Fails before execution if a parameter has neither an override nor a default."""
        missing = [
            f"{p.module_name}.{p.name}"
            for p in parameters
            if not p.has_default and not self.has_override(p)
        ]
        if missing:
            raise ParameterError(f"No value provided for parameter(s): {', '.join(missing)}")

    def unused(self, parameters: Iterable[ParameterFuture]) -> List[str]:
        """Returns overrides that no declared parameter consumes (likely typos)."""
        declared = {(p.module_name, p.name) for p in parameters}
        return [
            f"{module_name}.{name}"
            for module_name, values in self.overrides.items()
            for name in values
            if (module_name, name) not in declared
        ]

    def resolve(self, parameter: ParameterFuture, resolve_default: Callable[[Any], Any]) -> Any:
        key = (parameter.module_name, parameter.name)
        if key in self._resolved:
            return self._resolved[key]

        if self.has_override(parameter):
            value = self.overrides[parameter.module_name][parameter.name]
        elif parameter.has_default:
            default = parameter.default
            value = resolve_default(default) if isinstance(default, Future) else default
        else:
            raise ParameterError(
                f"No value provided for parameter {parameter.module_name}.{parameter.name}"
            )

        self._resolved[key] = value
        return value

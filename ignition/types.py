import click

from ignition.errors import ParameterError
from ignition.futures import split_qualified_id
from ignition.params import parse_parameter_assignment
from ignition.utils import load_module


class ParameterAssignment(click.ParamType):
    name = "parameter_assignment"

    def convert(self, value, param, ctx):
        try:
            parse_parameter_assignment(value)
        except ParameterError as e:
            self.fail(str(e), param, ctx)
        return value


class QualifiedActionId(click.ParamType):
    name = "qualified_action_id"

    def convert(self, value, param, ctx):
        try:
            return split_qualified_id(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


class DeploymentModule(click.ParamType):
    name = "deployment_module"

    def convert(self, value, param, ctx):
        try:
            return load_module(value)
        except (ImportError, ValueError) as e:
            self.fail(f"Cannot load deployment module '{value}': {e}", param, ctx)

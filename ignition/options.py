from pathlib import Path

import click

from ignition.types import DeploymentModule, ParameterAssignment, QualifiedActionId

module_option = click.option(
    "--module",
    "-m",
    help="Deployment module, as 'package.module:Name' (e.g. modules.contract_deployment).",
    type=DeploymentModule(),
    required=True,
)

config_option = click.option(
    "--config",
    "-c",
    "config_filepath",
    help="Deployment config YAML (chain id, journal and registry locations, parameters).",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)

parameters_file_option = click.option(
    "--parameters",
    "-p",
    "parameters_filepath",
    help="YAML or JSON file of parameter overrides, keyed by module name.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)

parameter_option = click.option(
    "--parameter",
    "-P",
    "parameter_assignments",
    help="Parameter override as Module.name=value; may be repeated.",
    type=ParameterAssignment(),
    multiple=True,
)

deployment_dir_option = click.option(
    "--deployment-dir",
    "-d",
    help="Directory holding the deployment journal.",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    required=True,
)

reset_option = click.option(
    "--reset",
    "reset_actions",
    help="Mark a pending or failed action (Module#Action) for retry; may be repeated.",
    type=QualifiedActionId(),
    multiple=True,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without interactive confirmation.",
    is_flag=True,
    default=False,
)

verify_option = click.option(
    "--verify",
    help="Publish deployed contracts to the block explorer.",
    is_flag=True,
    default=False,
)

artifacts_dir_option = click.option(
    "--artifacts-dir",
    help="Directory of compiler output JSON to read ABIs from, instead of the ape project.",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    required=False,
)
